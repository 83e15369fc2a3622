"""Food recognition from free text or images using LLMs."""

import base64
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from pydantic import ValidationError

from adaptive_planner.domain.errors import ImageTooLargeError, ParseFailure
from adaptive_planner.domain.inference import ParsedFoodList
from adaptive_planner.domain.macros import FoodItem

MAX_IMAGE_BYTES = 5 * 1024 * 1024

_MACRO_PROPERTIES: dict[str, object] = {
    "calories": {"type": "number", "description": "Total calories in kcal"},
    "protein": {"type": "number", "description": "Protein in grams"},
    "carbs": {"type": "number", "description": "Carbohydrates in grams"},
    "fat": {"type": "number", "description": "Fat in grams"},
}

FOOD_ITEMS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Name of the food item",
                    },
                    **_MACRO_PROPERTIES,
                },
                "required": ["name", "calories", "protein", "carbs", "fat"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["items"],
    "additionalProperties": False,
}

TEXT_INSTRUCTIONS = (
    "You are a precise nutrition assistant. Your goal is to accurately "
    "estimate calories and macros from free-text food logs."
)
IMAGE_INSTRUCTIONS = (
    "You are an expert nutritionist with computer vision capabilities. "
    "Identify food visually, estimate portion sizes based on standard "
    "dishware, and calculate nutrition facts."
)
IMAGE_PROMPT = (
    "Analyze this image. Identify all food items visible, estimate their "
    "portion sizes, and calculate total calories and macros."
)

_logger = logging.getLogger(__name__)


class InferenceClient(Protocol):
    """Interface for LLM calls returning schema-constrained JSON."""

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
        """Return structured output matching the schema."""


@dataclass
class FoodRecognitionService:
    """Turns food descriptions and photos into logged food items."""

    client: InferenceClient
    text_model: str
    vision_model: str
    reasoning_effort: str | None
    store: bool
    max_image_bytes: int = MAX_IMAGE_BYTES
    clock: Callable[[], datetime] = field(default=lambda: datetime.now(tz=UTC))

    async def parse_text(self, text: str) -> list[FoodItem]:
        """Extract food items from a free-text description."""
        prompt = (
            "Analyze the following food log and extract nutritional "
            f'information: "{text}". Estimate portion sizes if not specified.'
        )
        try:
            raw = await self.client.generate_json(
                model=self.text_model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=prompt,
                schema=FOOD_ITEMS_SCHEMA,
                schema_name="food_items",
                instructions=TEXT_INSTRUCTIONS,
            )
        except Exception as exc:
            _logger.exception("Food text recognition failed")
            raise ParseFailure("Failed to process food log") from exc
        return self._to_food_items(raw)

    async def analyze_image(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> list[FoodItem]:
        """Identify food items in a photo."""
        check_image_size(image_bytes, self.max_image_bytes)
        data_url = to_data_url(image_bytes, mime_type)
        try:
            raw = await self.client.generate_json(
                model=self.vision_model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                prompt=IMAGE_PROMPT,
                schema=FOOD_ITEMS_SCHEMA,
                schema_name="food_items",
                instructions=IMAGE_INSTRUCTIONS,
                image_data_url=data_url,
            )
        except Exception as exc:
            _logger.exception("Food image recognition failed")
            raise ParseFailure("Failed to analyze food image") from exc
        return self._to_food_items(raw)

    def _to_food_items(self, raw: dict[str, object]) -> list[FoodItem]:
        try:
            parsed = ParsedFoodList.model_validate(raw)
        except ValidationError as exc:
            _logger.warning("Food recognition returned invalid data: %s", exc)
            raise ParseFailure("Food recognition returned incomplete items") from exc
        now = self.clock()
        return [
            FoodItem(
                id=str(uuid4()),
                name=item.name,
                timestamp=now,
                calories=item.calories,
                protein=item.protein,
                carbs=item.carbs,
                fat=item.fat,
            )
            for item in parsed.items
        ]


def check_image_size(image_bytes: bytes, max_bytes: int = MAX_IMAGE_BYTES) -> None:
    """Reject images larger than the size cap."""
    if len(image_bytes) > max_bytes:
        raise ImageTooLargeError(
            f"Image is {len(image_bytes)} bytes; the limit is {max_bytes} bytes"
        )


def to_data_url(image_bytes: bytes, mime_type: str | None = None) -> str:
    """Convert bytes to a base64 data URL for image input."""
    resolved = mime_type or detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{resolved};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    return "image/jpeg"
