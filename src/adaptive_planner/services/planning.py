"""Meal plan request construction and response normalization."""

import logging
from dataclasses import dataclass
from datetime import datetime

from pydantic import ValidationError

from adaptive_planner.domain.errors import PlanGenerationFailure
from adaptive_planner.domain.inference import GeneratedMeal, GeneratedPlan
from adaptive_planner.domain.macros import Ingredient, Macros, MealSuggestion
from adaptive_planner.services.ledger import sum_macros
from adaptive_planner.services.meal_count import (
    MEDIUM_MEAL_THRESHOLD,
    SMALL_MEAL_THRESHOLD,
)
from adaptive_planner.services.recognition import InferenceClient
from adaptive_planner.services.targets import round_half_up

CALORIE_TOLERANCE = 0.05
MACRO_TOLERANCE = 0.08

ALLOWED_INGREDIENTS = (
    "lean meats",
    "eggs",
    "fish",
    "veggies",
    "rice",
    "potatoes",
    "oats",
    "fruit",
    "nut butters",
    "greek yogurt",
    "tofu",
    "beans",
    "bread",
    "pasta",
)

# (hour upper bound, suggested meal windows)
MEAL_WINDOWS: tuple[tuple[int, tuple[str, ...]], ...] = (
    (11, ("breakfast", "lunch", "snack", "dinner")),
    (15, ("lunch", "snack", "dinner")),
    (17, ("snack", "dinner")),
    (21, ("dinner",)),
)
LATE_WINDOWS = ("night snack",)

_NUMBER = {"type": "number"}

PLAN_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "meals": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "mealType": {
                        "type": "string",
                        "description": (
                            "Suggested label based on time "
                            "(Breakfast, Lunch, Dinner, Snack)"
                        ),
                    },
                    "description": {
                        "type": "string",
                        "description": "Short appetizing description",
                    },
                    "ingredients": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string"},
                                "grams": _NUMBER,
                                "protein": _NUMBER,
                                "fat": _NUMBER,
                                "carbs": _NUMBER,
                                "calories": _NUMBER,
                            },
                            "required": [
                                "name",
                                "grams",
                                "protein",
                                "fat",
                                "carbs",
                                "calories",
                            ],
                            "additionalProperties": False,
                        },
                    },
                    "totals": {
                        "type": "object",
                        "properties": {
                            "protein": _NUMBER,
                            "fat": _NUMBER,
                            "carbs": _NUMBER,
                            "calories": _NUMBER,
                        },
                        "required": ["protein", "fat", "carbs", "calories"],
                        "additionalProperties": False,
                    },
                    "instructions": {"type": "array", "items": {"type": "string"}},
                    "alternative": {"type": "string"},
                },
                "required": [
                    "name",
                    "mealType",
                    "description",
                    "ingredients",
                    "totals",
                    "instructions",
                    "alternative",
                ],
                "additionalProperties": False,
            },
        }
    },
    "required": ["meals"],
    "additionalProperties": False,
}

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanRequest:
    """Everything the plan generator needs to close the day's gap."""

    remaining: Macros
    meal_directive: str
    meal_windows: tuple[str, ...]
    current_time: datetime
    instruction: str | None = None

    def to_prompt(self) -> str:
        """Render the request as generator instructions."""
        lines = [
            "You are a nutrition engine.",
            "Your job is to generate meals that perfectly hit a user's "
            "remaining daily calories and macros.",
            "",
            "INPUT:",
            f"- calories_left: {int(self.remaining.calories)}",
            f"- protein_left: {int(self.remaining.protein)}",
            f"- fat_left: {int(self.remaining.fat)}",
            f"- carbs_left: {int(self.remaining.carbs)}",
            f"- current_time: {self.current_time.strftime('%H:%M')}",
            f"- suggested_windows: {', '.join(self.meal_windows)}",
        ]
        if self.instruction:
            lines.append(
                f'- IMPORTANT USER TWEAK/INSTRUCTION: "{self.instruction}". '
                "Adjust the generated meals to fit this request while still "
                "hitting macros."
            )
        lines += [
            "",
            "RULES:",
            f"1. {self.meal_directive}",
            "2. Meals must match remaining macros within:",
            f"   - ±{CALORIE_TOLERANCE:.0%} calories",
            f"   - ±{MACRO_TOLERANCE:.0%} protein/fat/carbs",
            "3. Every meal must include exact gram weights for ingredients.",
            f"4. Allowed ingredients: {', '.join(ALLOWED_INGREDIENTS)}. "
            "No exotic ingredients.",
            "5. Label the 'mealType' logically based on the current time "
            "(e.g. if it's 6pm, suggest Dinner).",
            "",
            "Output the 'meals' array.",
        ]
        return "\n".join(lines)


def meal_directive(calories_remaining: float, meal_count: int | None = None) -> str:
    """Return the meal-count rule for the generator."""
    if meal_count:
        return f"Create exactly {meal_count} meal(s) that fit the remaining intake."
    if calories_remaining < SMALL_MEAL_THRESHOLD:
        return "Create 1 small meal/snack."
    if calories_remaining < MEDIUM_MEAL_THRESHOLD:
        return "Create 1 medium meal."
    return "Create 2-3 meals."


def meal_windows(hour: int) -> tuple[str, ...]:
    """Return the meal types that still make sense at this hour."""
    for upper_bound, windows in MEAL_WINDOWS:
        if hour < upper_bound:
            return windows
    return LATE_WINDOWS


def build_plan_request(
    remaining: Macros,
    current_time: datetime,
    instruction: str | None = None,
    meal_count: int | None = None,
) -> PlanRequest:
    """Build a generation request for the remaining macros."""
    if meal_count is not None and meal_count < 1:
        raise ValueError("meal_count must be at least 1")
    rounded = Macros(
        calories=round_half_up(remaining.calories),
        protein=round_half_up(remaining.protein),
        carbs=round_half_up(remaining.carbs),
        fat=round_half_up(remaining.fat),
    )
    cleaned_instruction = instruction.strip() if instruction else None
    return PlanRequest(
        remaining=rounded,
        meal_directive=meal_directive(remaining.calories, meal_count),
        meal_windows=meal_windows(current_time.hour),
        current_time=current_time,
        instruction=cleaned_instruction or None,
    )


def normalize_plan_response(raw: object) -> list[MealSuggestion]:
    """Validate a generator response and flatten meal totals.

    The response is accepted or rejected as a whole.
    """
    try:
        plan = GeneratedPlan.model_validate(raw)
    except ValidationError as exc:
        raise PlanGenerationFailure("Plan response is missing required fields") from exc
    return [_to_suggestion(meal) for meal in plan.meals]


def _to_suggestion(meal: GeneratedMeal) -> MealSuggestion:
    return MealSuggestion(
        name=meal.name,
        meal_type=meal.meal_type,
        description=meal.description,
        ingredients=tuple(
            Ingredient(
                name=ingredient.name,
                grams=ingredient.grams,
                protein=ingredient.protein,
                carbs=ingredient.carbs,
                fat=ingredient.fat,
                calories=ingredient.calories,
            )
            for ingredient in meal.ingredients
        ),
        instructions=tuple(meal.instructions),
        alternative=meal.alternative,
        calories=meal.totals.calories,
        protein=meal.totals.protein,
        carbs=meal.totals.carbs,
        fat=meal.totals.fat,
    )


def check_plan_tolerance(
    meals: list[MealSuggestion], remaining: Macros
) -> dict[str, float]:
    """Return relative deviations of plan totals that exceed tolerance.

    Fields with a zero target are not checked.
    """
    totals = sum_macros(meals)
    violations: dict[str, float] = {}
    for name, tolerance in (
        ("calories", CALORIE_TOLERANCE),
        ("protein", MACRO_TOLERANCE),
        ("carbs", MACRO_TOLERANCE),
        ("fat", MACRO_TOLERANCE),
    ):
        target = getattr(remaining, name)
        if target <= 0:
            continue
        deviation = abs(getattr(totals, name) - target) / target
        if deviation > tolerance:
            violations[name] = deviation
    return violations


@dataclass
class PlanService:
    """Requests meal plans from the inference client."""

    client: InferenceClient
    model: str
    reasoning_effort: str | None
    store: bool
    enforce_tolerance: bool = False

    async def generate(self, request: PlanRequest) -> list[MealSuggestion]:
        """Generate meals for a request; failures raise PlanGenerationFailure."""
        try:
            raw = await self.client.generate_json(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=request.to_prompt(),
                schema=PLAN_SCHEMA,
                schema_name="meal_plan",
            )
        except Exception as exc:
            _logger.exception("Plan generation failed")
            raise PlanGenerationFailure("Failed to generate meal plan") from exc

        meals = normalize_plan_response(raw)
        violations = check_plan_tolerance(meals, request.remaining)
        if violations:
            _logger.warning(
                "Generated plan outside tolerance: %s",
                {name: f"{value:.1%}" for name, value in violations.items()},
            )
            if self.enforce_tolerance:
                raise PlanGenerationFailure(
                    f"Plan totals outside tolerance: {', '.join(violations)}"
                )
        return meals
