"""Spreadsheet import and export helpers for analyzable figures."""

from __future__ import annotations

import io
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import pandas as pd

from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.models.figures import CustomFigure, FigureDefinition
from app.services.registry import renumber, slugify_figure_name

logger = get_logger(__name__)

DEFAULT_GUIDANCE = "No guidance provided."
TEMPLATE_SHEET_NAME = "Analyzable Figures"

_NAME_COLUMNS = ("name", "metric")
_INSTRUCTION_COLUMNS = ("instructions", "guidance", "description")

TEMPLATE_ROWS: tuple[tuple[str, str], ...] = (
    (
        "Revenue",
        "Total revenue, turnover or net sales. Convert any abbreviated figures (M, K, etc.) to whole numbers "
        "and specify the currency.",
    ),
    (
        "Funding Raised",
        "Cumulative equity funding raised to date. Provide the most recent total in absolute numbers and list "
        "the period covered.",
    ),
    (
        "Burn Rate",
        "Monthly cash consumption rate. Calculate as the average monthly decrease in cash balance, expressed as "
        "a positive number with currency.",
    ),
    (
        "Runway",
        "Number of months until cash depletion at current burn rate. Calculate as current cash divided by "
        "monthly burn rate, rounded to one decimal place.",
    ),
    (
        "Cash Balance",
        "Total cash and cash equivalents available. Include both restricted and unrestricted cash, specify "
        "currency and reporting date.",
    ),
    (
        "Gross Margin",
        "Gross profit as a percentage of revenue. Calculate as (Revenue - Cost of Goods Sold) / Revenue x 100, "
        "expressed as a percentage.",
    ),
    (
        "Operating Expenses",
        "Total operating costs including R&D, sales & marketing, and general & administrative expenses. "
        "Exclude cost of goods sold, specify period and currency.",
    ),
    (
        "Net Loss",
        "Bottom line net income (typically negative for startups). Report as a negative number if loss, "
        "positive if profit, with currency and period.",
    ),
    (
        "Customer Acquisition Cost (CAC)",
        "Total sales and marketing expenses divided by number of new customers acquired in the period. "
        "Specify currency and time period.",
    ),
    (
        "Monthly Recurring Revenue (MRR)",
        "Predictable monthly revenue from subscriptions or recurring contracts. Normalize annual contracts to "
        "monthly amounts, specify currency and reporting date.",
    ),
)


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def _lookup(row: Mapping[str, Any], candidates: Sequence[str]) -> str:
    lowered = {str(key).strip().lower(): value for key, value in row.items()}
    for column in candidates:
        text = _cell_text(lowered.get(column))
        if text:
            return text
    return ""


def rows_to_figures(rows: Iterable[Mapping[str, Any]]) -> list[FigureDefinition]:
    """Convert tabular rows into enabled figure definitions.

    Rows without a name are dropped, empty instructions fall back to a stock
    sentence and duplicate ids get ``_1``, ``_2``... suffixes in row order.
    Raises :class:`ValidationError` when no row survives.
    """

    figures: list[FigureDefinition] = []
    used_ids: set[str] = set()
    dropped = 0

    for index, row in enumerate(rows):
        name = _lookup(row, _NAME_COLUMNS)
        if not name:
            dropped += 1
            continue

        description = _lookup(row, _INSTRUCTION_COLUMNS) or DEFAULT_GUIDANCE
        base_id = slugify_figure_name(name) or f"figure_{index + 1}"

        figure_id = base_id
        suffix = 1
        while figure_id in used_ids:
            figure_id = f"{base_id}_{suffix}"
            suffix += 1
        used_ids.add(figure_id)

        figures.append(FigureDefinition(id=figure_id, name=name, description=description, enabled=True))

    if not figures:
        raise ValidationError(
            'No valid rows found. Please provide at least one row with "Name" and "Instructions" columns.'
        )

    if dropped:
        logger.info("figures.import.rows_dropped", dropped=dropped, kept=len(figures))

    return renumber(figures)


def read_figure_workbook(content: bytes) -> list[FigureDefinition]:
    """Parse the first sheet of an ``.xlsx``/``.xls`` workbook into figures."""

    try:
        frame = pd.read_excel(io.BytesIO(content), sheet_name=0, dtype=object)
    except (ValueError, OSError, KeyError) as exc:
        raise ValidationError(f"Could not read spreadsheet: {exc}") from exc

    records = frame.to_dict(orient="records")
    return rows_to_figures(records)


def figure_template_workbook() -> bytes:
    """Build the downloadable Name/Instructions template workbook."""

    frame = pd.DataFrame(TEMPLATE_ROWS, columns=["Name", "Instructions"])
    buffer = io.BytesIO()

    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=TEMPLATE_SHEET_NAME, index=False)
        worksheet = writer.sheets[TEMPLATE_SHEET_NAME]
        worksheet.column_dimensions["A"].width = 30
        worksheet.column_dimensions["B"].width = 70

    return buffer.getvalue()


def sanitize_custom_figures(raw: Sequence[CustomFigure]) -> list[FigureDefinition]:
    """Turn per-request figure overrides into definitions, skipping unusable entries."""

    figures: list[FigureDefinition] = []
    seen: set[str] = set()

    for entry in raw:
        figure_id = (entry.id or "").strip()
        name = (entry.name or "").strip()
        if not figure_id or not name:
            logger.warning("figures.custom.skipped", reason="missing id or name", figure_id=figure_id or None)
            continue

        slug = slugify_figure_name(figure_id)
        if not slug or slug in seen:
            logger.warning("figures.custom.skipped", reason="invalid or duplicate id", figure_id=figure_id)
            continue
        seen.add(slug)

        description = (entry.description or "").strip() or DEFAULT_GUIDANCE
        figures.append(FigureDefinition(id=slug, name=name, description=description, enabled=True))

    return renumber(figures)
