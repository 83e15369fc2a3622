"""Session state machine for food logging and plan generation."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol, TypeVar
from uuid import uuid4
from zoneinfo import ZoneInfo

from adaptive_planner.domain.errors import (
    ParseFailure,
    PlanGenerationFailure,
    PlannerError,
    SessionBusyError,
)
from adaptive_planner.domain.macros import DailyGoal, FoodItem, Macros, MealSuggestion
from adaptive_planner.domain.profile import DEFAULT_GOALS, UserProfile
from adaptive_planner.domain.sessions import AppState, SessionSnapshot
from adaptive_planner.services.goals import GoalReconciler
from adaptive_planner.services.ledger import remaining_macros, sum_macros
from adaptive_planner.services.meal_count import recommended_meal_count
from adaptive_planner.services.persistence import NutritionStore
from adaptive_planner.services.planning import PlanRequest, build_plan_request
from adaptive_planner.services.recognition import MAX_IMAGE_BYTES, check_image_size

TEXT_PARSE_ERROR = "Could not process food log. Try being more specific."
IMAGE_PARSE_ERROR = "Could not analyze image. Please try again."
PLAN_ERROR = "Failed to generate plan. Please check your connection."

ERROR_RESET_SECONDS = 3.0

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class FoodRecognizer(Protocol):
    """Recognizes foods from text or images."""

    async def parse_text(self, text: str) -> list[FoodItem]:
        """Return food items described by the text."""

    async def analyze_image(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> list[FoodItem]:
        """Return food items visible in the image."""


class PlanGenerator(Protocol):
    """Generates meal suggestions for a plan request."""

    async def generate(self, request: PlanRequest) -> list[MealSuggestion]:
        """Return the generated meals in response order."""


@dataclass
class SessionService:
    """Owns the day's food log, goal and plan, and gates collaborator calls.

    At most one request is outstanding: parse and generate calls are admitted
    only from IDLE. A failure moves to ERROR, which reverts to IDLE after
    ``error_reset_seconds``. Quick-log and delete are not gated.
    """

    recognizer: FoodRecognizer
    plan_generator: PlanGenerator
    store: NutritionStore
    timezone: str = "UTC"
    error_reset_seconds: float = ERROR_RESET_SECONDS
    max_image_bytes: int = MAX_IMAGE_BYTES
    clock: Callable[[], datetime] | None = None

    state: AppState = field(default=AppState.IDLE, init=False)
    error_message: str | None = field(default=None, init=False)
    day: date = field(init=False)
    foods: list[FoodItem] = field(default_factory=list, init=False)
    plan: list[MealSuggestion] = field(default_factory=list, init=False)
    goals: DailyGoal = field(default=DEFAULT_GOALS, init=False)
    needs_setup: bool = field(default=True, init=False)
    settings: GoalReconciler = field(init=False)
    _reset_handle: asyncio.TimerHandle | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.day = self.now().date()
        self.foods = self.store.load_food_log(self.day)
        self.needs_setup = self.store.load_profile() is None
        self.goals = self.store.load_goals() or DEFAULT_GOALS
        self.settings = GoalReconciler.load(self.store)

    def now(self) -> datetime:
        """Return the current time in the session timezone."""
        if self.clock is not None:
            return self.clock()
        return datetime.now(tz=ZoneInfo(self.timezone))

    def consumed(self) -> Macros:
        """Return totals of the day's logged foods."""
        return sum_macros(self.foods)

    def remaining(self) -> Macros:
        """Return what is left of the goal for the day."""
        return remaining_macros(self.goals, self.consumed())

    def snapshot(self) -> SessionSnapshot:
        """Return the current view of the day."""
        self._sync_day()
        remaining = self.remaining()
        return SessionSnapshot(
            day=self.day,
            state=self.state,
            error_message=self.error_message,
            needs_setup=self.needs_setup,
            goals=self.goals,
            consumed=self.consumed(),
            remaining=remaining,
            recommended_meal_count=recommended_meal_count(remaining.calories),
            foods=list(self.foods),
            plan=list(self.plan),
        )

    async def log_food_text(self, text: str) -> list[FoodItem]:
        """Recognize foods from a description and append them to the log."""
        if not text.strip():
            raise ValueError("Food description must not be empty")
        self._sync_day()
        day = self.day
        items = await self._run_request(
            AppState.PARSING_FOOD,
            lambda: self.recognizer.parse_text(text),
            ParseFailure,
            TEXT_PARSE_ERROR,
        )
        self._append_foods(items, day)
        return items

    async def log_food_image(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> list[FoodItem]:
        """Recognize foods in a photo and append them to the log."""
        check_image_size(image_bytes, self.max_image_bytes)
        self._sync_day()
        day = self.day
        items = await self._run_request(
            AppState.PARSING_FOOD,
            lambda: self.recognizer.analyze_image(image_bytes, mime_type),
            ParseFailure,
            IMAGE_PARSE_ERROR,
        )
        self._append_foods(items, day)
        return items

    async def generate_plan(
        self, instruction: str | None = None, meal_count: int | None = None
    ) -> list[MealSuggestion]:
        """Generate a plan for the remaining macros, replacing the current one."""
        self._sync_day()
        if self.state != AppState.IDLE:
            raise SessionBusyError(f"Cannot generate a plan while {self.state.value}")
        request = build_plan_request(
            self.remaining(), self.now(), instruction, meal_count
        )
        meals = await self._run_request(
            AppState.GENERATING_PLAN,
            lambda: self.plan_generator.generate(request),
            PlanGenerationFailure,
            PLAN_ERROR,
        )
        self.plan = list(meals)
        return self.plan

    def quick_log(self, index: int) -> FoodItem:
        """Log a suggested meal as eaten; the plan becomes stale."""
        self._sync_day()
        if not 0 <= index < len(self.plan):
            raise IndexError(f"No meal suggestion at position {index}")
        meal = self.plan[index]
        item = FoodItem(
            id=str(uuid4()),
            name=meal.name,
            timestamp=self.now(),
            calories=meal.calories,
            protein=meal.protein,
            carbs=meal.carbs,
            fat=meal.fat,
        )
        self._append_foods([item])
        return item

    def delete_food(self, food_id: str) -> bool:
        """Remove a logged food by id; returns False when it is not logged."""
        self._sync_day()
        kept = [item for item in self.foods if item.id != food_id]
        if len(kept) == len(self.foods):
            return False
        self._replace_foods(kept)
        return True

    def reset_day(self) -> None:
        """Clear the day's log and plan."""
        self._sync_day()
        self._replace_foods([])

    def dismiss_error(self) -> None:
        """Leave ERROR immediately instead of waiting for the auto-revert."""
        self._cancel_reset()
        if self.state == AppState.ERROR:
            self.state = AppState.IDLE
        self.error_message = None

    def commit_settings(self) -> tuple[UserProfile, DailyGoal]:
        """Persist the settings draft and adopt its goal for the day."""
        profile, goal = self.settings.commit()
        self.goals = goal
        self.needs_setup = False
        self.plan = []
        _logger.info("Goals updated: %s", goal)
        return profile, goal

    def discard_settings(self) -> GoalReconciler:
        """Drop uncommitted settings edits and reopen from saved records."""
        self.settings = GoalReconciler.load(self.store)
        return self.settings

    async def _run_request(
        self,
        state: AppState,
        call: Callable[[], Awaitable[T]],
        failure: type[PlannerError],
        message: str,
    ) -> T:
        self._admit(state)
        try:
            result = await call()
        except asyncio.CancelledError:
            self.state = AppState.IDLE
            raise
        except Exception as exc:
            self._fail(message)
            if isinstance(exc, failure):
                raise
            raise failure(message) from exc
        self.state = AppState.IDLE
        return result

    def _admit(self, state: AppState) -> None:
        if self.state != AppState.IDLE:
            raise SessionBusyError(f"Cannot start {state.value} while {self.state.value}")
        self._cancel_reset()
        self.error_message = None
        self.state = state

    def _fail(self, message: str) -> None:
        _logger.warning("Session request failed: %s", message)
        self.state = AppState.ERROR
        self.error_message = message
        self._cancel_reset()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self.error_reset_seconds, self._auto_reset)

    def _auto_reset(self) -> None:
        self._reset_handle = None
        if self.state == AppState.ERROR:
            self.state = AppState.IDLE

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _append_foods(self, items: list[FoodItem], day: date | None = None) -> None:
        if day is not None and day != self.day:
            # The day rolled over while the request was outstanding.
            _logger.info("Logging %d items to %s after day rollover", len(items), day)
            self.store.save_food_log(day, [*self.store.load_food_log(day), *items])
            return
        self._replace_foods([*self.foods, *items])

    def _replace_foods(self, items: list[FoodItem]) -> None:
        self.foods = items
        self.plan = []
        self.store.save_food_log(self.day, self.foods)

    def _sync_day(self) -> None:
        today = self.now().date()
        if today == self.day:
            return
        _logger.info("Day rolled over from %s to %s", self.day, today)
        self.day = today
        self.foods = self.store.load_food_log(today)
        self.plan = []
