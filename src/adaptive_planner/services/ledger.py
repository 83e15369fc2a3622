"""Consumed and remaining macro totals for a day."""

from collections.abc import Iterable

from adaptive_planner.domain.macros import DailyGoal, Macros


def sum_macros(items: Iterable[Macros]) -> Macros:
    """Return the field-wise sum of the given entries."""
    total = Macros()
    for item in items:
        total = Macros(
            calories=total.calories + item.calories,
            protein=total.protein + item.protein,
            carbs=total.carbs + item.carbs,
            fat=total.fat + item.fat,
        )
    return total


def remaining_macros(goal: DailyGoal, consumed: Macros) -> Macros:
    """Return what is left of the goal, never below zero."""
    return Macros(
        calories=max(0.0, goal.calories - consumed.calories),
        protein=max(0.0, goal.protein - consumed.protein),
        carbs=max(0.0, goal.carbs - consumed.carbs),
        fat=max(0.0, goal.fat - consumed.fat),
    )
