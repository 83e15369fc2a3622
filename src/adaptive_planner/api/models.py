"""Pydantic models for the HTTP API."""

from pydantic import BaseModel, Field


class FoodTextRequest(BaseModel):
    """Free-text food description to log."""

    description: str = Field(min_length=1)


class FoodImageRequest(BaseModel):
    """Base64-encoded food photo to log."""

    data_base64: str
    mime_type: str | None = None


class PlanGenerateRequest(BaseModel):
    """Plan generation or tweak request."""

    instruction: str | None = None
    meal_count: int | None = Field(default=None, ge=1)


class ManualModeRequest(BaseModel):
    """Manual goal mode toggle."""

    enabled: bool


class ProfileFieldUpdate(BaseModel):
    """Single profile field edit."""

    field: str
    value: str | float


class GoalFieldUpdate(BaseModel):
    """Single goal field edit."""

    field: str
    value: float = Field(ge=0)


class ImperialHeightUpdate(BaseModel):
    """Height in feet and inches."""

    feet: int = Field(ge=0)
    inches: int = Field(ge=0)


class PoundsWeightUpdate(BaseModel):
    """Weight in pounds."""

    pounds: float = Field(gt=0)
