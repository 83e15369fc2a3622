"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter

from adaptive_planner.api.models import (
    FoodImageRequest,
    FoodTextRequest,
    GoalFieldUpdate,
    ImperialHeightUpdate,
    ManualModeRequest,
    PlanGenerateRequest,
    PoundsWeightUpdate,
    ProfileFieldUpdate,
)
from adaptive_planner.app_logging import configure_logging
from adaptive_planner.containers import AppContainer
from adaptive_planner.domain.errors import (
    ImageTooLargeError,
    ParseFailure,
    PlanGenerationFailure,
    SessionBusyError,
)
from adaptive_planner.domain.macros import FoodItem, Macros, MealSuggestion
from adaptive_planner.domain.profile import UserProfile
from adaptive_planner.domain.sessions import SessionSnapshot
from adaptive_planner.services.goals import GoalReconciler
from adaptive_planner.services.sessions import SessionService

_SNAPSHOT = TypeAdapter(SessionSnapshot)
_FOODS = TypeAdapter(list[FoodItem])
_PLAN = TypeAdapter(list[MealSuggestion])
_FOOD = TypeAdapter(FoodItem)
_PROFILE = TypeAdapter(UserProfile)
_MACROS = TypeAdapter(Macros)


def _session(request: Request) -> SessionService:
    container: AppContainer = request.app.state.container
    return container.session_service


async def require_token(
    request: Request, x_api_token: str | None = Header(default=None)
) -> None:
    """Ensure requests carry the API token when one is configured."""
    container: AppContainer = request.app.state.container
    expected = container.settings.api_token
    if expected and x_api_token != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(SessionBusyError)
    async def busy_handler(_request: Request, exc: SessionBusyError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(ImageTooLargeError)
    async def too_large_handler(
        _request: Request, exc: ImageTooLargeError
    ) -> JSONResponse:
        return JSONResponse(status_code=413, content={"detail": str(exc)})

    @app.exception_handler(ParseFailure)
    @app.exception_handler(PlanGenerationFailure)
    async def inference_failure_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        session = _session(request)
        logger.info("Inference request failed: %s", exc)
        return JSONResponse(
            status_code=502,
            content={"detail": session.error_message or str(exc)},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(_request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    guarded = [Depends(require_token)]

    @app.get("/today", dependencies=guarded)
    async def today(request: Request) -> dict[str, object]:
        """Return goals, consumption, plan and session state for today."""
        return _SNAPSHOT.dump_python(_session(request).snapshot(), mode="json")

    @app.post("/foods", dependencies=guarded)
    async def log_food(payload: FoodTextRequest, request: Request) -> dict[str, object]:
        """Log foods from a free-text description."""
        items = await _session(request).log_food_text(payload.description)
        return {"items": _FOODS.dump_python(items, mode="json")}

    @app.post("/foods/image", dependencies=guarded)
    async def log_food_image(
        payload: FoodImageRequest, request: Request
    ) -> dict[str, object]:
        """Log foods recognized in a photo."""
        try:
            image_bytes = base64.b64decode(payload.data_base64, validate=True)
        except binascii.Error as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Image data is not valid base64",
            ) from exc
        items = await _session(request).log_food_image(image_bytes, payload.mime_type)
        return {"items": _FOODS.dump_python(items, mode="json")}

    @app.delete("/foods/{food_id}", dependencies=guarded)
    async def delete_food(food_id: str, request: Request) -> dict[str, str]:
        """Delete a logged food."""
        if not _session(request).delete_food(food_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return {"status": "ok"}

    @app.post("/day/reset", dependencies=guarded)
    async def reset_day(request: Request) -> dict[str, str]:
        """Clear today's log and plan."""
        _session(request).reset_day()
        return {"status": "ok"}

    @app.post("/plan", dependencies=guarded)
    async def generate_plan(
        payload: PlanGenerateRequest, request: Request
    ) -> dict[str, object]:
        """Generate or tweak the meal plan."""
        meals = await _session(request).generate_plan(
            instruction=payload.instruction, meal_count=payload.meal_count
        )
        return {"meals": _PLAN.dump_python(meals, mode="json")}

    @app.post("/plan/{index}/log", dependencies=guarded)
    async def quick_log(index: int, request: Request) -> dict[str, object]:
        """Log a suggested meal as eaten."""
        try:
            item = _session(request).quick_log(index)
        except IndexError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
            ) from exc
        return {"item": _FOOD.dump_python(item, mode="json")}

    @app.post("/session/dismiss-error", dependencies=guarded)
    async def dismiss_error(request: Request) -> dict[str, str]:
        """Return to idle without waiting for the error timeout."""
        _session(request).dismiss_error()
        return {"status": "ok"}

    @app.get("/settings", dependencies=guarded)
    async def get_settings(request: Request) -> dict[str, object]:
        """Return the settings draft with its effective goal."""
        return _settings_view(_session(request))

    @app.post("/settings/manual", dependencies=guarded)
    async def set_manual(
        payload: ManualModeRequest, request: Request
    ) -> dict[str, object]:
        """Toggle manual goal mode."""
        _session(request).settings.set_manual_mode(payload.enabled)
        return _settings_view(_session(request))

    @app.patch("/settings/profile", dependencies=guarded)
    async def update_profile(
        payload: ProfileFieldUpdate, request: Request
    ) -> dict[str, object]:
        """Edit one profile field; ignored in manual mode."""
        session = _session(request)
        applied = session.settings.update_profile_field(payload.field, payload.value)
        return {**_settings_view(session), "applied": applied}

    @app.patch("/settings/profile/height", dependencies=guarded)
    async def update_height(
        payload: ImperialHeightUpdate, request: Request
    ) -> dict[str, object]:
        """Edit height in feet and inches."""
        session = _session(request)
        applied = session.settings.set_height_imperial(payload.feet, payload.inches)
        return {**_settings_view(session), "applied": applied}

    @app.patch("/settings/profile/weight", dependencies=guarded)
    async def update_weight(
        payload: PoundsWeightUpdate, request: Request
    ) -> dict[str, object]:
        """Edit weight in pounds."""
        session = _session(request)
        applied = session.settings.set_weight_pounds(payload.pounds)
        return {**_settings_view(session), "applied": applied}

    @app.patch("/settings/goals", dependencies=guarded)
    async def update_goal(
        payload: GoalFieldUpdate, request: Request
    ) -> dict[str, object]:
        """Edit one goal field."""
        _session(request).settings.update_goal_field(payload.field, payload.value)
        return _settings_view(_session(request))

    @app.post("/settings/commit", dependencies=guarded)
    async def commit_settings(request: Request) -> dict[str, object]:
        """Save the settings draft and adopt its goal."""
        session = _session(request)
        session.commit_settings()
        return _settings_view(session)

    @app.post("/settings/discard", dependencies=guarded)
    async def discard_settings(request: Request) -> dict[str, object]:
        """Drop unsaved settings edits."""
        session = _session(request)
        session.discard_settings()
        return _settings_view(session)

    return app


def _settings_view(session: SessionService) -> dict[str, object]:
    reconciler: GoalReconciler = session.settings
    return {
        "profile": _PROFILE.dump_python(reconciler.profile, mode="json"),
        "manual": reconciler.manual,
        "has_override": reconciler.override is not None,
        "calculated_goal": _MACROS.dump_python(reconciler.calculated_goal()),
        "effective_goal": _MACROS.dump_python(reconciler.effective_goal()),
        "needs_setup": session.needs_setup,
    }

