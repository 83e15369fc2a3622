"""Daily calorie and macro targets from body metrics."""

import math

from adaptive_planner.domain.macros import DailyGoal
from adaptive_planner.domain.profile import ActivityLevel, Gender, GoalType, UserProfile

MIN_CALORIES = 1200
KCAL_PER_GRAM_PROTEIN = 4
KCAL_PER_GRAM_CARBS = 4
KCAL_PER_GRAM_FAT = 9

ACTIVITY_MULTIPLIERS: dict[str, float] = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.HEAVY: 1.725,
}
DEFAULT_ACTIVITY_MULTIPLIER = 1.2

GOAL_CALORIE_ADJUSTMENTS: dict[str, float] = {
    GoalType.LOSE: -500,
    GoalType.MAINTAIN: 0,
    GoalType.GAIN: 300,
}

# (protein grams per kg of body weight, share of calories from fat)
MACRO_SPLITS: dict[str, tuple[float, float]] = {
    GoalType.LOSE: (2.2, 0.30),
    GoalType.MAINTAIN: (1.6, 0.30),
    GoalType.GAIN: (2.0, 0.25),
}


def basal_metabolic_rate(profile: UserProfile) -> float:
    """Return BMR using the Mifflin-St Jeor equation."""
    bmr = 10 * profile.weight + 6.25 * profile.height - 5 * profile.age
    return bmr + (5 if profile.gender == Gender.MALE else -161)


def total_daily_expenditure(profile: UserProfile) -> float:
    """Return BMR scaled by the activity multiplier."""
    multiplier = ACTIVITY_MULTIPLIERS.get(
        profile.activity, DEFAULT_ACTIVITY_MULTIPLIER
    )
    return basal_metabolic_rate(profile) * multiplier


def calculate_targets(profile: UserProfile) -> DailyGoal:
    """Derive the daily goal for a profile.

    Calories are the goal-adjusted TDEE floored at 1200 kcal. Protein is set
    per kg of body weight, fat as a share of calories, and carbs take whatever
    calories remain. Each value is rounded on its own.
    """
    tdee = total_daily_expenditure(profile)
    tdee += GOAL_CALORIE_ADJUSTMENTS.get(profile.goal, 0)
    target_calories = max(MIN_CALORIES, round_half_up(tdee))

    protein_per_kg, fat_share = MACRO_SPLITS.get(
        profile.goal, MACRO_SPLITS[GoalType.MAINTAIN]
    )
    protein = profile.weight * protein_per_kg
    fat_calories = target_calories * fat_share
    fat = fat_calories / KCAL_PER_GRAM_FAT
    remaining_calories = (
        target_calories - fat_calories - protein * KCAL_PER_GRAM_PROTEIN
    )
    carbs = max(0.0, remaining_calories / KCAL_PER_GRAM_CARBS)

    return DailyGoal(
        calories=target_calories,
        protein=round_half_up(protein),
        carbs=round_half_up(carbs),
        fat=round_half_up(fat),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up."""
    return math.floor(value + 0.5)
