"""Reconciles calculated targets with manual goal overrides."""

import logging
from dataclasses import dataclass, field, replace

from adaptive_planner.domain.macros import MACRO_FIELDS, DailyGoal
from adaptive_planner.domain.profile import (
    BIOMETRIC_FIELDS,
    DEFAULT_PROFILE,
    ActivityLevel,
    Gender,
    GoalType,
    UserProfile,
)
from adaptive_planner.services.persistence import NutritionStore
from adaptive_planner.services.targets import calculate_targets, round_half_up

CM_PER_INCH = 2.54
LBS_PER_KG = 2.20462

_FIELD_TYPES: dict[str, type] = {
    "gender": Gender,
    "age": int,
    "height": float,
    "weight": float,
    "activity": ActivityLevel,
    "goal": GoalType,
}

_logger = logging.getLogger(__name__)


@dataclass
class GoalReconciler:
    """Owns the profile, the manual toggle and the optional goal override.

    The toggle and the override are tracked separately: editing a goal field
    creates an override without flipping the toggle, and commit treats either
    one as manual mode.
    """

    store: NutritionStore
    profile: UserProfile = DEFAULT_PROFILE
    override: DailyGoal | None = None
    manual: bool = field(init=False)

    def __post_init__(self) -> None:
        self.manual = self.profile.is_manual

    @classmethod
    def load(cls, store: NutritionStore) -> "GoalReconciler":
        """Open the reconciler from saved records.

        A saved manual profile reopens with its saved goal as the override.
        """
        profile = store.load_profile()
        if profile is None:
            return cls(store=store)
        override = store.load_goals() if profile.is_manual else None
        return cls(store=store, profile=profile, override=override)

    def calculated_goal(self) -> DailyGoal:
        """Return the target calculated from the current profile."""
        return calculate_targets(self.profile)

    def effective_goal(self) -> DailyGoal:
        """Return the override if present, else the calculated goal."""
        if self.override is not None:
            return self.override
        return self.calculated_goal()

    def set_manual_mode(self, enabled: bool) -> None:
        """Toggle manual goals; enabling seeds the override from calculation."""
        self.manual = enabled
        self.profile = replace(self.profile, is_manual=enabled)
        if enabled and self.override is None:
            self.override = self.calculated_goal()
        elif not enabled:
            self.override = None

    def update_profile_field(self, name: str, value: object) -> bool:
        """Update a biometric field; returns False while manual mode is on."""
        if name not in BIOMETRIC_FIELDS:
            raise ValueError(f"Unknown profile field: {name}")
        if self.manual:
            _logger.info("Ignoring profile edit of %s in manual mode", name)
            return False
        self.profile = replace(self.profile, **{name: _coerce_field(name, value)})
        self.override = None
        return True

    def update_goal_field(self, name: str, value: float) -> DailyGoal:
        """Set one goal field, keeping the other three as currently effective."""
        if name not in MACRO_FIELDS:
            raise ValueError(f"Unknown goal field: {name}")
        if value < 0:
            raise ValueError(f"Goal {name} must not be negative")
        self.override = replace(self.effective_goal(), **{name: value})
        return self.override

    def set_height_imperial(self, feet: int, inches: int) -> bool:
        """Set height from feet and inches, stored as whole centimetres."""
        cm = (feet * 12 + inches) * CM_PER_INCH
        return self.update_profile_field("height", round_half_up(cm))

    def set_weight_pounds(self, pounds: float) -> bool:
        """Set weight from pounds."""
        return self.update_profile_field("weight", pounds / LBS_PER_KG)

    def commit(self) -> tuple[UserProfile, DailyGoal]:
        """Persist the profile and effective goal and return them."""
        profile = replace(
            self.profile, is_manual=self.manual or self.override is not None
        )
        goal = self.effective_goal()
        self.store.save_profile(profile)
        self.store.save_goals(goal)
        self.profile = profile
        self.manual = profile.is_manual
        return profile, goal


def _coerce_field(name: str, value: object) -> object:
    field_type = _FIELD_TYPES[name]
    if field_type is int and isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be a whole number: {value!r}")
    try:
        return field_type(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {name}: {value!r}") from exc
