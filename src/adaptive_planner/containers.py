"""Dependency container wiring for the application."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from adaptive_planner.adapters.openai_inference_client import OpenAIInferenceClient
from adaptive_planner.adapters.supabase_kv_store import SupabaseKeyValueStore
from adaptive_planner.config import Settings
from adaptive_planner.services.persistence import (
    InMemoryKeyValueStore,
    KeyValueStore,
    NutritionStore,
)
from adaptive_planner.services.planning import PlanService
from adaptive_planner.services.recognition import FoodRecognitionService
from adaptive_planner.services.sessions import SessionService

_logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: NutritionStore
    session_service: SessionService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    store = NutritionStore(
        store=_build_key_value_store(resolved_settings),
        user_id=resolved_settings.user_id,
    )
    inference_client = OpenAIInferenceClient.create(resolved_settings.openai_api_key)
    recognition_service = FoodRecognitionService(
        client=inference_client,
        text_model=resolved_settings.openai_text_model,
        vision_model=resolved_settings.openai_vision_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        max_image_bytes=resolved_settings.max_image_bytes,
    )
    plan_service = PlanService(
        client=inference_client,
        model=resolved_settings.openai_text_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        enforce_tolerance=resolved_settings.enforce_plan_tolerance,
    )
    session_service = SessionService(
        recognizer=recognition_service,
        plan_generator=plan_service,
        store=store,
        timezone=resolved_settings.timezone,
        error_reset_seconds=resolved_settings.error_reset_seconds,
        max_image_bytes=resolved_settings.max_image_bytes,
    )

    async def close_resources() -> None:
        await inference_client.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        session_service=session_service,
        close_resources=close_resources,
    )


def _build_key_value_store(settings: Settings) -> KeyValueStore:
    if settings.uses_supabase:
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseKeyValueStore(client)
    _logger.warning("Supabase is not configured; records are kept in memory")
    return InMemoryKeyValueStore()
