"""Models for structured inference responses."""

from pydantic import BaseModel, Field


class ParsedFood(BaseModel):
    """Single food recognized from text or an image."""

    name: str
    calories: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    carbs: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)


class ParsedFoodList(BaseModel):
    """Structured output for food recognition."""

    items: list[ParsedFood]


class GeneratedIngredient(BaseModel):
    """Ingredient with exact grams and macros."""

    name: str
    grams: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    carbs: float = Field(ge=0.0)
    calories: float = Field(ge=0.0)


class MealTotals(BaseModel):
    """Nested macro totals of a generated meal."""

    protein: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    carbs: float = Field(ge=0.0)
    calories: float = Field(ge=0.0)


class GeneratedMeal(BaseModel):
    """Meal as returned by the plan generator."""

    name: str
    meal_type: str = Field(alias="mealType")
    description: str
    ingredients: list[GeneratedIngredient]
    totals: MealTotals
    instructions: list[str]
    alternative: str


class GeneratedPlan(BaseModel):
    """Structured output for plan generation."""

    meals: list[GeneratedMeal]
