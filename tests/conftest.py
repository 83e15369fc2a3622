"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from adaptive_planner.config import Settings
from adaptive_planner.containers import AppContainer
from adaptive_planner.domain.macros import FoodItem, Ingredient, MealSuggestion
from adaptive_planner.services.persistence import InMemoryKeyValueStore, NutritionStore
from adaptive_planner.services.planning import PlanRequest
from adaptive_planner.services.recognition import InferenceClient
from adaptive_planner.services.sessions import (
    FoodRecognizer,
    PlanGenerator,
    SessionService,
)


@dataclass
class FakeClock:
    """Controllable clock for day rollover and timestamps."""

    current: datetime = field(
        default_factory=lambda: datetime(2026, 10, 17, 12, 30, tzinfo=UTC)
    )

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current = self.current + timedelta(**kwargs)


@dataclass
class FakeInferenceClient(InferenceClient):
    """Fake inference client returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=dict)
    error: Exception | None = None
    calls: list[dict[str, object]] = field(default_factory=list)

    async def generate_json(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        prompt: str,
        schema: dict[str, object],
        schema_name: str,
        instructions: str | None = None,
        image_data_url: str | None = None,
    ) -> dict[str, object]:
        self.calls.append(
            {
                "model": model,
                "prompt": prompt,
                "schema_name": schema_name,
                "instructions": instructions,
                "image_data_url": image_data_url,
            }
        )
        if self.error:
            raise self.error
        return self.payload


@dataclass
class StubRecognizer(FoodRecognizer):
    """Recognizer returning canned items, optionally held until released."""

    items: list[FoodItem] = field(default_factory=list)
    error: Exception | None = None
    gate: asyncio.Event | None = None
    calls: list[str] = field(default_factory=list)

    async def parse_text(self, text: str) -> list[FoodItem]:
        self.calls.append(text)
        return await self._respond()

    async def analyze_image(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> list[FoodItem]:
        self.calls.append(f"image:{len(image_bytes)}")
        return await self._respond()

    async def _respond(self) -> list[FoodItem]:
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return list(self.items)


@dataclass
class StubPlanGenerator(PlanGenerator):
    """Plan generator returning canned meals."""

    meals: list[MealSuggestion] = field(default_factory=list)
    error: Exception | None = None
    gate: asyncio.Event | None = None
    requests: list[PlanRequest] = field(default_factory=list)

    async def generate(self, request: PlanRequest) -> list[MealSuggestion]:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return list(self.meals)


def make_food(  # noqa: PLR0913
    name: str = "Oatmeal",
    calories: float = 300,
    protein: float = 20,
    carbs: float = 30,
    fat: float = 10,
    food_id: str | None = None,
) -> FoodItem:
    return FoodItem(
        id=food_id or str(uuid4()),
        name=name,
        timestamp=datetime(2026, 10, 17, 8, 0, tzinfo=UTC),
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
    )


def make_meal(
    name: str = "Chicken rice bowl",
    calories: float = 650,
    protein: float = 45,
    carbs: float = 70,
    fat: float = 18,
) -> MealSuggestion:
    return MealSuggestion(
        name=name,
        meal_type="Lunch",
        description="Grilled chicken over rice with veggies",
        ingredients=(
            Ingredient(
                name="chicken breast",
                grams=150,
                protein=protein,
                carbs=0,
                fat=fat,
                calories=calories,
            ),
        ),
        instructions=("Grill the chicken.", "Serve over rice."),
        alternative="Swap chicken for tofu",
        calories=calories,
        protein=protein,
        carbs=carbs,
        fat=fat,
    )


def generated_meal_payload(  # noqa: PLR0913
    name: str = "Chicken rice bowl",
    calories: float = 650,
    protein: float = 45,
    carbs: float = 70,
    fat: float = 18,
) -> dict[str, object]:
    return {
        "name": name,
        "mealType": "Lunch",
        "description": "Grilled chicken over rice",
        "ingredients": [
            {
                "name": "chicken breast",
                "grams": 150,
                "protein": 40,
                "fat": 5,
                "carbs": 0,
                "calories": 220,
            },
            {
                "name": "rice",
                "grams": 200,
                "protein": 5,
                "fat": 13,
                "carbs": 70,
                "calories": 430,
            },
        ],
        "totals": {
            "protein": protein,
            "fat": fat,
            "carbs": carbs,
            "calories": calories,
        },
        "instructions": ["Grill the chicken.", "Serve over rice."],
        "alternative": "Swap chicken for tofu",
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def nutrition_store(kv_store: InMemoryKeyValueStore) -> NutritionStore:
    return NutritionStore(store=kv_store, user_id="user-1")


@pytest.fixture
def recognizer() -> StubRecognizer:
    return StubRecognizer(items=[make_food()])


@pytest.fixture
def plan_generator() -> StubPlanGenerator:
    return StubPlanGenerator(meals=[make_meal(), make_meal(name="Greek yogurt")])


@pytest.fixture
def session_service(
    recognizer: StubRecognizer,
    plan_generator: StubPlanGenerator,
    nutrition_store: NutritionStore,
    clock: FakeClock,
) -> SessionService:
    return SessionService(
        recognizer=recognizer,
        plan_generator=plan_generator,
        store=nutrition_store,
        error_reset_seconds=0.01,
        clock=clock,
    )


@pytest.fixture
def container(
    settings: Settings,
    nutrition_store: NutritionStore,
    session_service: SessionService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=nutrition_store,
        session_service=session_service,
        close_resources=close_resources,
    )
