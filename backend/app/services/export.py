"""JSON and spreadsheet exports of extraction results."""

from __future__ import annotations

import io
import json
import re
from collections.abc import Sequence
from typing import Any, Literal

import pandas as pd
from openpyxl.utils import get_column_letter

from app.core.errors import ValidationError
from app.models.extraction import (
    AnalysisMode,
    ComprehensiveResult,
    ExtractionErrorRecord,
    InterpretedResult,
    SinglePeriodResult,
    TimeSeriesResult,
)
from app.models.figures import FigureDefinition
from app.services.prompts import timeseries_years

SHEET_NAME = "Financial Data"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_UNSAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9\-_]+")

SINGLE_PERIOD_WIDTHS = (15, 15, 10, 15, 50)
COMPREHENSIVE_WIDTHS = (30, 15, 10, 15, 20, 60)


def _cell(value: Any) -> Any:
    return "" if value is None else value


def _ensure_exportable(result: InterpretedResult) -> None:
    if isinstance(result, ExtractionErrorRecord):
        raise ValidationError("Extraction failed to parse; there is nothing to export. Re-run the extraction.")


def export_json(result: InterpretedResult) -> str:
    """Pretty-print the result as UTF-8 JSON with a 2-space indent."""

    _ensure_exportable(result)
    return json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False)


def _row_order(figures: Sequence[FigureDefinition], data_keys: Sequence[str]) -> list[tuple[str, str, str]]:
    """Registry figures first, then ids the model returned that the registry does not know."""

    rows = [(figure.id, figure.name, figure.description) for figure in figures]
    known = {figure.id for figure in figures}
    rows.extend((key, key, "") for key in data_keys if key not in known)
    return rows


def single_period_rows(result: SinglePeriodResult, figures: Sequence[FigureDefinition]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for figure_id, name, guidance in _row_order(figures, list(result.financial_data)):
        entry = result.financial_data.get(figure_id)
        rows.append(
            {
                "Metric": name,
                "Value": _cell(entry.value if entry else None),
                "Currency": (entry.currency if entry else None) or result.currency or "",
                "Period": (entry.period if entry else None) or "",
                "Guidance": guidance,
            }
        )
    return rows


def timeseries_years_in(result: TimeSeriesResult, current_year: int | None = None) -> list[str]:
    """Reported years, widened to the eight-year window of ``current_year`` when given."""

    years: set[str] = set(timeseries_years(current_year)) if current_year is not None else set()
    for entry in result.financial_data.values():
        years.update(entry.years)
    return sorted(years)


def timeseries_rows(
    result: TimeSeriesResult,
    figures: Sequence[FigureDefinition],
    current_year: int | None = None,
) -> list[dict[str, Any]]:
    years = timeseries_years_in(result, current_year)
    rows: list[dict[str, Any]] = []

    for figure_id, name, guidance in _row_order(figures, list(result.financial_data)):
        entry = result.financial_data.get(figure_id)
        row: dict[str, Any] = {"Metric": (entry.metric_name if entry else None) or name, "Guidance": guidance}
        for year in years:
            value = entry.years.get(year) if entry else None
            row[year] = _cell(value.value if value else None)
            row[f"{year}_Note"] = (value.note if value else None) or ""
        rows.append(row)
    return rows


def comprehensive_rows(result: ComprehensiveResult) -> list[dict[str, Any]]:
    return [
        {
            "Metric": item.metric_name or "",
            "Value": _cell(item.value),
            "Currency": item.currency or result.currency or "",
            "Period": item.period or "",
            "Category": item.category or "",
            "Context": item.context or "",
        }
        for item in result.extracted_data
    ]


def _layout(
    result: InterpretedResult,
    figures: Sequence[FigureDefinition],
    current_year: int | None,
) -> tuple[pd.DataFrame, list[int]]:
    if isinstance(result, TimeSeriesResult):
        years = timeseries_years_in(result, current_year)
        columns = ["Metric", "Guidance"]
        widths = [20, 50]
        for year in years:
            columns.extend([year, f"{year}_Note"])
            widths.extend([15, 20])
        return pd.DataFrame(timeseries_rows(result, figures, current_year), columns=columns), widths

    if isinstance(result, ComprehensiveResult):
        columns = ["Metric", "Value", "Currency", "Period", "Category", "Context"]
        return pd.DataFrame(comprehensive_rows(result), columns=columns), list(COMPREHENSIVE_WIDTHS)

    columns = ["Metric", "Value", "Currency", "Period", "Guidance"]
    return pd.DataFrame(single_period_rows(result, figures), columns=columns), list(SINGLE_PERIOD_WIDTHS)


def export_workbook(
    result: InterpretedResult,
    figures: Sequence[FigureDefinition],
    *,
    current_year: int | None = None,
) -> bytes:
    """Render the result as an ``.xlsx`` workbook with a variant-specific column layout."""

    _ensure_exportable(result)
    frame, widths = _layout(result, figures, current_year)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        worksheet = writer.sheets[SHEET_NAME]
        for index, width in enumerate(widths, start=1):
            worksheet.column_dimensions[get_column_letter(index)].width = width

    return buffer.getvalue()


def export_filename(name: str, kind: Literal["json", "xlsx"], mode: AnalysisMode | str) -> str:
    """``<safe name>_financial_data[_timeseries|_comprehensive].<kind>``"""

    safe = _UNSAFE_FILENAME_RE.sub("_", name.strip()) or "export"
    mode = AnalysisMode(mode)
    suffix = "" if mode is AnalysisMode.SINGLE_PERIOD else f"_{mode.value}"
    return f"{safe}_financial_data{suffix}.{kind}"
