"""Domain models for macros, logged foods and meal suggestions."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated

from pydantic import Field

MACRO_FIELDS = ("calories", "protein", "carbs", "fat")

# Checked when records are validated, not on construction.
NonNegative = Annotated[float, Field(ge=0.0)]


@dataclass(frozen=True, kw_only=True)
class Macros:
    """Calories (kcal) with protein, carbs and fat (grams)."""

    calories: NonNegative = 0.0
    protein: NonNegative = 0.0
    carbs: NonNegative = 0.0
    fat: NonNegative = 0.0


DailyGoal = Macros


@dataclass(frozen=True, kw_only=True)
class FoodItem(Macros):
    """A logged food entry for the day."""

    id: str
    name: str
    timestamp: datetime


@dataclass(frozen=True, kw_only=True)
class Ingredient:
    """Ingredient line of a suggested meal."""

    name: str
    grams: float
    protein: float
    carbs: float
    fat: float
    calories: float


@dataclass(frozen=True, kw_only=True)
class MealSuggestion(Macros):
    """Generated meal with its totals flattened onto the macro fields."""

    name: str
    meal_type: str
    description: str
    ingredients: tuple[Ingredient, ...] = field(default_factory=tuple)
    instructions: tuple[str, ...] = field(default_factory=tuple)
    alternative: str = ""
