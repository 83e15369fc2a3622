"""Meal count recommendation from remaining calories."""

SMALL_MEAL_THRESHOLD = 400
MEDIUM_MEAL_THRESHOLD = 900


def recommended_meal_count(calories_remaining: float) -> int:
    """Return how many meals to suggest for the calories left."""
    if calories_remaining < SMALL_MEAL_THRESHOLD:
        return 1
    if calories_remaining < MEDIUM_MEAL_THRESHOLD:
        return 2
    return 3
