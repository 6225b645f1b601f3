"""Pydantic schemas for financial figure extraction results."""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .figures import CustomFigure, FigureDefinition


class AnalysisMode(str, Enum):
    SINGLE_PERIOD = "single-period"
    TIMESERIES = "timeseries"
    COMPREHENSIVE = "comprehensive"


def _coerce_numeric(value: Any) -> int | float | None:
    """Keep JSON numbers and numeric strings; map placeholders and other types to null."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return None

    cleaned = value.replace(",", "").replace("_", "").replace(" ", "").strip()
    try:
        return int(cleaned)
    except ValueError:
        pass
    try:
        number = float(cleaned)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


class _FigureValue(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    value: int | float | None = None
    currency: str | None = None

    @field_validator("value", mode="before")
    @classmethod
    def _numeric_or_null(cls, value: Any) -> int | float | None:
        return _coerce_numeric(value)


class PeriodValue(_FigureValue):
    period: str | None = None


class YearValue(_FigureValue):
    note: str | None = None


class TimeSeriesFigure(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    metric_name: str | None = None
    years: dict[str, YearValue] = Field(default_factory=dict)


class ComprehensiveItem(PeriodValue):
    metric_name: str | None = None
    context: str | None = None
    category: str | None = None


class _ResultBase(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    company_name: str | None = None
    currency: str | None = None


class SinglePeriodResult(_ResultBase):
    analysis_type: Literal["single-period"] = "single-period"
    report_period: str | None = None
    financial_data: dict[str, PeriodValue] = Field(default_factory=dict)


class TimeSeriesResult(_ResultBase):
    analysis_type: Literal["timeseries"] = "timeseries"
    financial_data: dict[str, TimeSeriesFigure] = Field(default_factory=dict)


class ComprehensiveResult(_ResultBase):
    analysis_type: Literal["comprehensive"] = "comprehensive"
    extracted_data: list[ComprehensiveItem] = Field(default_factory=list)


ExtractionResult = Annotated[
    Union[SinglePeriodResult, TimeSeriesResult, ComprehensiveResult],
    Field(discriminator="analysis_type"),
]


class ExtractionErrorRecord(BaseModel):
    """Displayable sentinel returned when model output cannot be decoded."""

    extraction_error: str
    raw_response: str


InterpretedResult = Union[ExtractionResult, ExtractionErrorRecord]


class SourceCitation(BaseModel):
    document: str = Field(default="", description="Document title reported by the workspace.")
    text: str = Field(default="", description="Quoted chunk supporting the answer.")


class FinanceExtractionRequest(BaseModel):
    workspace_slug: str = Field(..., min_length=1)
    company_name: str | None = Field(default=None, description="Subject named in the prompt; defaults to the slug.")
    analysis_type: AnalysisMode = AnalysisMode.SINGLE_PERIOD
    custom_figures: list[CustomFigure] | None = None


class PromptPreviewRequest(BaseModel):
    analysis_type: AnalysisMode = AnalysisMode.SINGLE_PERIOD
    company_name: str = Field(default="the company")
    for_direct_upload: bool = False
    custom_figures: list[CustomFigure] | None = None


class PromptPreviewResponse(BaseModel):
    prompt: str
    analysis_type: AnalysisMode
    figures: list[FigureDefinition]


class FinanceExtractionResponse(BaseModel):
    analysis_type: AnalysisMode
    result: InterpretedResult
    raw_response: str
    figures: list[FigureDefinition] = Field(default_factory=list)
    sources: list[SourceCitation] = Field(default_factory=list)
    files_processed: list[str] = Field(default_factory=list)
    response_id: str | None = None


class ExportRequest(BaseModel):
    result: InterpretedResult
    name: str = Field(default="financial_data", description="Workspace or company name used for the filename.")
    figures: list[FigureDefinition] | None = Field(
        default=None, description="Registry snapshot used for row order and guidance; defaults to the live registry."
    )
    current_year: int | None = Field(
        default=None, description="Anchor year of the time-series column window; defaults to the current year."
    )
