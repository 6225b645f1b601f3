"""Tests for spreadsheet figure import and custom figure sanitisation."""

from __future__ import annotations

import io

import pandas as pd
import pytest

from app.core.errors import ValidationError
from app.models.figures import CustomFigure
from app.services.figure_import import (
    DEFAULT_GUIDANCE,
    TEMPLATE_ROWS,
    TEMPLATE_SHEET_NAME,
    figure_template_workbook,
    read_figure_workbook,
    rows_to_figures,
    sanitize_custom_figures,
)


def _workbook(rows: list[dict]) -> bytes:
    buffer = io.BytesIO()
    pd.DataFrame(rows).to_excel(buffer, index=False, engine="openpyxl")
    return buffer.getvalue()


def test_rows_to_figures_assigns_slugs_and_order() -> None:
    figures = rows_to_figures(
        [
            {"Name": "Revenue", "Instructions": "Top line"},
            {"Name": "Burn Rate", "Instructions": "Monthly cash burn"},
        ]
    )

    assert [(figure.id, figure.name, figure.order) for figure in figures] == [
        ("revenue", "Revenue", 1),
        ("burn_rate", "Burn Rate", 2),
    ]
    assert all(figure.enabled for figure in figures)


def test_column_names_are_case_insensitive_with_aliases() -> None:
    figures = rows_to_figures(
        [
            {"METRIC": "ARR", "Guidance": "Annual recurring revenue"},
            {"name": "Churn", "description": "Monthly logo churn"},
        ]
    )

    assert [(figure.id, figure.description) for figure in figures] == [
        ("arr", "Annual recurring revenue"),
        ("churn", "Monthly logo churn"),
    ]


def test_duplicate_names_get_numeric_suffixes() -> None:
    figures = rows_to_figures([{"Name": "Revenue"}, {"Name": "revenue"}, {"Name": "REVENUE "}])

    assert [figure.id for figure in figures] == ["revenue", "revenue_1", "revenue_2"]


def test_rows_without_name_are_dropped_and_guidance_defaults() -> None:
    figures = rows_to_figures(
        [
            {"Name": "", "Instructions": "orphaned instruction"},
            {"Name": None, "Instructions": "also orphaned"},
            {"Name": "Cash Balance", "Instructions": ""},
        ]
    )

    assert len(figures) == 1
    assert figures[0].id == "cash_balance"
    assert figures[0].description == DEFAULT_GUIDANCE
    assert figures[0].order == 1


def test_name_without_slug_characters_uses_row_position() -> None:
    figures = rows_to_figures([{"Name": "Revenue"}, {"Name": "%%%", "Instructions": "Symbols only"}])

    assert [figure.id for figure in figures] == ["revenue", "figure_2"]


def test_no_valid_rows_raises() -> None:
    with pytest.raises(ValidationError, match="No valid rows found"):
        rows_to_figures([{"Instructions": "nothing to name"}])


def test_read_figure_workbook_handles_blank_cells() -> None:
    content = _workbook(
        [
            {"Name": "Revenue", "Instructions": "Top line"},
            {"Name": None, "Instructions": "dropped"},
            {"Name": "Runway", "Instructions": None},
        ]
    )

    figures = read_figure_workbook(content)

    assert [figure.id for figure in figures] == ["revenue", "runway"]
    assert figures[1].description == DEFAULT_GUIDANCE


def test_read_figure_workbook_rejects_garbage() -> None:
    with pytest.raises(ValidationError):
        read_figure_workbook(b"definitely not a spreadsheet")


def test_template_round_trips_through_import() -> None:
    content = figure_template_workbook()

    frame = pd.read_excel(io.BytesIO(content), sheet_name=TEMPLATE_SHEET_NAME)
    assert list(frame.columns) == ["Name", "Instructions"]

    figures = read_figure_workbook(content)
    assert [figure.name for figure in figures] == [name for name, _ in TEMPLATE_ROWS]
    assert figures[-1].id == "monthly_recurring_revenue_mrr"


def test_sanitize_custom_figures_skips_unusable_entries() -> None:
    figures = sanitize_custom_figures(
        [
            CustomFigure(id="ARR", name="Annual Recurring Revenue", description="ARR at period end"),
            CustomFigure(id="", name="No id"),
            CustomFigure(id="nameless"),
            CustomFigure(id="arr", name="Duplicate ARR"),
            CustomFigure(id="burn rate", name="Burn"),
        ]
    )

    assert [(figure.id, figure.name, figure.order) for figure in figures] == [
        ("arr", "Annual Recurring Revenue", 1),
        ("burn_rate", "Burn", 2),
    ]
    assert figures[1].description == DEFAULT_GUIDANCE
