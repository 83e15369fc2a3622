"""Domain models for the planning session."""

from dataclasses import dataclass
from datetime import date
from enum import Enum

from adaptive_planner.domain.macros import DailyGoal, FoodItem, Macros, MealSuggestion


class AppState(Enum):
    """Session states gating requests to the inference collaborator."""

    IDLE = "idle"
    PARSING_FOOD = "parsing_food"
    GENERATING_PLAN = "generating_plan"
    ERROR = "error"


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time view of the day."""

    day: date
    state: AppState
    error_message: str | None
    needs_setup: bool
    goals: DailyGoal
    consumed: Macros
    remaining: Macros
    recommended_meal_count: int
    foods: list[FoodItem]
    plan: list[MealSuggestion]
