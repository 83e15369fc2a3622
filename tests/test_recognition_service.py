"""Tests for food recognition."""

import asyncio
from datetime import UTC, datetime

import pytest

from adaptive_planner.domain.errors import ImageTooLargeError, ParseFailure
from adaptive_planner.services.recognition import (
    FOOD_ITEMS_SCHEMA,
    FoodRecognitionService,
    detect_mime_type,
    to_data_url,
)
from tests.conftest import FakeInferenceClient

NOW = datetime(2026, 10, 17, 9, 15, tzinfo=UTC)


def _service(client: FakeInferenceClient, **kwargs) -> FoodRecognitionService:  # type: ignore[no-untyped-def]
    return FoodRecognitionService(
        client=client,
        text_model="text-model",
        vision_model="vision-model",
        reasoning_effort="low",
        store=False,
        clock=lambda: NOW,
        **kwargs,
    )


def test_parse_text_wraps_items_with_ids_and_timestamps() -> None:
    client = FakeInferenceClient(
        payload={
            "items": [
                {"name": "Eggs", "calories": 140, "protein": 12, "carbs": 1, "fat": 10},
                {"name": "Toast", "calories": 80, "protein": 3, "carbs": 15, "fat": 1},
            ]
        }
    )

    items = asyncio.run(_service(client).parse_text("2 eggs and toast"))

    assert [item.name for item in items] == ["Eggs", "Toast"]
    assert items[0].id != items[1].id
    assert all(item.timestamp == NOW for item in items)
    assert items[0].calories == 140
    assert client.calls[0]["model"] == "text-model"
    assert "2 eggs and toast" in client.calls[0]["prompt"]
    assert client.calls[0]["image_data_url"] is None


def test_parse_text_rejects_incomplete_items() -> None:
    client = FakeInferenceClient(
        payload={"items": [{"name": "Eggs", "calories": 140, "protein": 12}]}
    )

    with pytest.raises(ParseFailure):
        asyncio.run(_service(client).parse_text("eggs"))


def test_parse_text_wraps_client_errors() -> None:
    client = FakeInferenceClient(error=RuntimeError("timeout"))

    with pytest.raises(ParseFailure):
        asyncio.run(_service(client).parse_text("eggs"))


def test_analyze_image_uses_vision_model_and_data_url() -> None:
    client = FakeInferenceClient(payload={"items": []})
    png = b"\x89PNG\r\n\x1a\n" + b"pixels"

    items = asyncio.run(_service(client).analyze_image(png))

    assert items == []
    assert client.calls[0]["model"] == "vision-model"
    assert str(client.calls[0]["image_data_url"]).startswith("data:image/png;base64,")


def test_analyze_image_rejects_large_payload_before_calling() -> None:
    client = FakeInferenceClient(payload={"items": []})

    with pytest.raises(ImageTooLargeError):
        asyncio.run(_service(client, max_image_bytes=4).analyze_image(b"12345"))

    assert client.calls == []


def test_to_data_url_prefers_explicit_mime_type() -> None:
    assert to_data_url(b"data", "image/heic").startswith("data:image/heic;base64,")


def test_detect_mime_type_signatures() -> None:
    assert detect_mime_type(b"\xff\xd8\xff\xe0rest") == "image/jpeg"
    assert detect_mime_type(b"GIF89a...") == "image/gif"
    assert detect_mime_type(b"RIFF\x00\x00\x00\x00WEBPVP8") == "image/webp"
    assert detect_mime_type(b"unknown") == "image/jpeg"


def test_schema_requires_all_macro_fields() -> None:
    item_schema = FOOD_ITEMS_SCHEMA["properties"]["items"]["items"]  # type: ignore[index]

    assert item_schema["required"] == ["name", "calories", "protein", "carbs", "fat"]
