"""Tests for OpenAI and Supabase adapters."""

import asyncio
import json
from dataclasses import dataclass, field

import pytest

from adaptive_planner.adapters.openai_inference_client import OpenAIInferenceClient
from adaptive_planner.adapters.supabase_kv_store import SupabaseKeyValueStore


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str = json.dumps({"items": []})) -> None:
        self.responses = _FakeResponses(output_text)


def test_openai_client_sends_structured_request() -> None:
    fake = _FakeOpenAI()
    client = OpenAIInferenceClient(client=fake)

    result = asyncio.run(
        client.generate_json(
            model="gpt-5.2",
            reasoning_effort="high",
            store=False,
            prompt="Detect foods",
            schema={"type": "object"},
            schema_name="food_items",
            instructions="Be precise",
            image_data_url="data:image/jpeg;base64,ZmFrZQ==",
        )
    )

    assert result == {"items": []}
    payload = fake.responses.last_payload
    assert payload is not None
    content = payload["input"][0]["content"]  # type: ignore[index]
    assert content[0] == {"type": "input_text", "text": "Detect foods"}
    assert content[1]["type"] == "input_image"
    assert payload["text"]["format"]["name"] == "food_items"  # type: ignore[index]
    assert payload["text"]["format"]["strict"] is True  # type: ignore[index]
    assert payload["instructions"] == "Be precise"
    assert payload["reasoning"] == {"effort": "high"}


def test_openai_client_omits_optional_fields() -> None:
    fake = _FakeOpenAI(json.dumps({"meals": []}))
    client = OpenAIInferenceClient(client=fake)

    asyncio.run(
        client.generate_json(
            model="gpt-5-mini",
            reasoning_effort=None,
            store=True,
            prompt="Plan meals",
            schema={"type": "object"},
            schema_name="meal_plan",
        )
    )

    payload = fake.responses.last_payload
    assert payload is not None
    assert "instructions" not in payload
    assert "reasoning" not in payload
    assert len(payload["input"][0]["content"]) == 1  # type: ignore[index]
    assert payload["store"] is True


def test_openai_client_rejects_empty_output() -> None:
    client = OpenAIInferenceClient(client=_FakeOpenAI(""))

    with pytest.raises(RuntimeError):
        asyncio.run(
            client.generate_json(
                model="gpt-5-mini",
                reasoning_effort=None,
                store=False,
                prompt="Plan meals",
                schema={"type": "object"},
                schema_name="meal_plan",
            )
        )


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    rows: dict[str, object] = field(default_factory=dict)
    last_payload: dict[str, object] | None = None
    last_on_conflict: str | None = None
    filters: list[tuple[str, object]] = field(default_factory=list)

    def select(self, *_args) -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "select"
        self.filters = []
        return self

    def upsert(self, payload, on_conflict: str = "") -> "FakeTable":  # type: ignore[no-untyped-def]
        self._action = "upsert"
        self.last_payload = payload
        self.last_on_conflict = on_conflict
        return self

    def eq(self, column: str, value: object) -> "FakeTable":
        self.filters.append((column, value))
        return self

    def limit(self, _count: int) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        if self._action == "upsert":
            assert self.last_payload is not None
            self.rows[str(self.last_payload["key"])] = self.last_payload["value"]
            return FakeResponse(data=[self.last_payload])
        key = dict(self.filters)["key"]
        if key not in self.rows:
            return FakeResponse(data=[])
        return FakeResponse(data=[{"value": self.rows[key]}])


@dataclass
class FakeSupabase:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        return self.tables.setdefault(name, FakeTable())


def test_supabase_store_upserts_by_key() -> None:
    supabase = FakeSupabase()
    store = SupabaseKeyValueStore(client=supabase)  # type: ignore[arg-type]

    store.set("user_goals_user-1", {"calories": 2000})
    store.set("user_goals_user-1", {"calories": 1800})

    table = supabase.tables["kv_store"]
    assert table.last_on_conflict == "key"
    assert table.last_payload is not None
    assert "updated_at" in table.last_payload
    assert store.get("user_goals_user-1") == {"calories": 1800}


def test_supabase_store_returns_none_for_missing_key() -> None:
    store = SupabaseKeyValueStore(client=FakeSupabase(), table_name="records")  # type: ignore[arg-type]

    assert store.get("user_profile_user-1") is None
