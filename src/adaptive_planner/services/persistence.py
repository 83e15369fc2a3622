"""Key/value persistence for the day log, profile and goals."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from adaptive_planner.domain.errors import PersistenceReadFailure
from adaptive_planner.domain.macros import DailyGoal, FoodItem
from adaptive_planner.domain.profile import UserProfile

_logger = logging.getLogger(__name__)

_FOOD_LOG_ADAPTER = TypeAdapter(list[FoodItem])
_PROFILE_ADAPTER = TypeAdapter(UserProfile)
_GOAL_ADAPTER = TypeAdapter(DailyGoal)


class KeyValueStore(Protocol):
    """Durable store with get/set-by-key semantics."""

    def get(self, key: str) -> object | None:
        """Return the stored value for a key, if present."""

    def set(self, key: str, value: object) -> None:
        """Store a JSON-compatible value under a key."""


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store used when no database is configured."""

    def __init__(self) -> None:
        self._entries: dict[str, object] = {}

    def get(self, key: str) -> object | None:
        """Return the stored value for a key."""
        return self._entries.get(key)

    def set(self, key: str, value: object) -> None:
        """Store a value under a key."""
        self._entries[key] = value


def food_log_key(user_id: str, day: date) -> str:
    return f"meal_log_{user_id}_{day.isoformat()}"


def profile_key(user_id: str) -> str:
    return f"user_profile_{user_id}"


def goals_key(user_id: str) -> str:
    return f"user_goals_{user_id}"


@dataclass
class NutritionStore:
    """Typed access to the three records kept per user."""

    store: KeyValueStore
    user_id: str

    def load_food_log(self, day: date) -> list[FoodItem]:
        """Return the food log for a day, empty when absent or malformed."""
        items = self._read(food_log_key(self.user_id, day), _FOOD_LOG_ADAPTER)
        return items or []

    def save_food_log(self, day: date, items: list[FoodItem]) -> None:
        """Persist the food log for a day."""
        self.store.set(
            food_log_key(self.user_id, day),
            _FOOD_LOG_ADAPTER.dump_python(items, mode="json"),
        )

    def load_profile(self) -> UserProfile | None:
        """Return the saved profile; None signals a first run."""
        return self._read(profile_key(self.user_id), _PROFILE_ADAPTER)

    def save_profile(self, profile: UserProfile) -> None:
        """Persist the user profile."""
        self.store.set(
            profile_key(self.user_id),
            _PROFILE_ADAPTER.dump_python(profile, mode="json"),
        )

    def load_goals(self) -> DailyGoal | None:
        """Return the saved effective goal, if any."""
        return self._read(goals_key(self.user_id), _GOAL_ADAPTER)

    def save_goals(self, goals: DailyGoal) -> None:
        """Persist the effective goal."""
        self.store.set(
            goals_key(self.user_id),
            _GOAL_ADAPTER.dump_python(goals, mode="json"),
        )

    def _read(self, key: str, adapter: TypeAdapter):  # type: ignore[no-untyped-def]
        raw = self.store.get(key)
        if raw is None:
            return None
        try:
            return decode_record(key, raw, adapter)
        except PersistenceReadFailure:
            _logger.warning("Ignoring malformed record %s", key, exc_info=True)
            return None


def decode_record(key: str, raw: object, adapter: TypeAdapter):  # type: ignore[no-untyped-def]
    """Validate a stored value, raising PersistenceReadFailure when malformed."""
    try:
        if isinstance(raw, str | bytes):
            return adapter.validate_json(raw)
        return adapter.validate_python(raw)
    except ValidationError as exc:
        raise PersistenceReadFailure(f"Malformed record: {key}") from exc
