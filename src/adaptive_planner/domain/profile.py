"""User profile models used for target calculation."""

from dataclasses import dataclass
from enum import StrEnum

from adaptive_planner.domain.macros import DailyGoal


class Gender(StrEnum):
    """Biological sex used by the Mifflin-St Jeor formula."""

    MALE = "male"
    FEMALE = "female"


class ActivityLevel(StrEnum):
    """Weekly activity level."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"


class GoalType(StrEnum):
    """Body composition goal."""

    LOSE = "lose"
    MAINTAIN = "maintain"
    GAIN = "gain"


@dataclass(frozen=True)
class UserProfile:
    """Body metrics and preferences for a user."""

    gender: Gender
    age: int
    height: float
    weight: float
    activity: ActivityLevel
    goal: GoalType
    is_manual: bool = False


BIOMETRIC_FIELDS = ("gender", "age", "height", "weight", "activity", "goal")

DEFAULT_PROFILE = UserProfile(
    gender=Gender.MALE,
    age=30,
    height=175,
    weight=75,
    activity=ActivityLevel.MODERATE,
    goal=GoalType.MAINTAIN,
    is_manual=False,
)

DEFAULT_GOALS = DailyGoal(calories=2200, protein=150, carbs=200, fat=70)
