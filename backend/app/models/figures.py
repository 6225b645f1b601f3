"""Pydantic schemas for analyzable figures."""

from __future__ import annotations

from pydantic import BaseModel, Field

FIGURE_ID_PATTERN = r"^[a-z0-9_]+$"


class FigureDefinition(BaseModel):
    id: str = Field(..., min_length=1, pattern=FIGURE_ID_PATTERN, description="Stable slug used as JSON key.")
    name: str = Field(..., min_length=1, description="Display label.")
    description: str = Field(..., min_length=1, description="Extraction instruction for the model.")
    enabled: bool = Field(default=True)
    order: int = Field(default=0, ge=0, description="1-based position in the registry.")


class FigureRegistrySnapshot(BaseModel):
    figures: list[FigureDefinition]
    revision: int


class FigureCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    expected_revision: int | None = None


class FigureUpdateRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    enabled: bool | None = None
    expected_revision: int | None = None


class FigureReorderRequest(BaseModel):
    position: int = Field(..., description="Target 1-based position, clamped to the registry size.")
    expected_revision: int | None = None


class FigureReplaceRequest(BaseModel):
    figures: list[FigureDefinition]
    expected_revision: int | None = None


class CustomFigure(BaseModel):
    """Loosely validated figure override sent with an extraction request."""

    id: str | None = None
    name: str | None = None
    description: str | None = None
