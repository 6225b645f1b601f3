"""Prompt generation for structured financial figure extraction.

Turns a figure registry snapshot into an instruction plus an example JSON
object the model has to fill in. All functions are pure: the time series
window depends only on the ``current_year`` argument.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from app.core.errors import ConfigurationError
from app.models.extraction import AnalysisMode
from app.models.figures import FigureDefinition

TIMESERIES_YEARS_BEFORE = 3
TIMESERIES_YEARS_AFTER = 4

DIRECT_UPLOAD_LEAD = (
    "You are a financial data extraction expert. "
    "Your task is to analyze PDF documents and extract key financial figures."
)
WORKSPACE_LEAD = "Please analyze all the uploaded PDF documents for {subject} and extract the key financial data."

NORMALIZATION_RULES = """CRITICAL VALUE CONVERSION GUIDELINES:
1. Convert every value to an absolute integer in the currency stated by the document:
   - "M", "Mill", "million" = multiply by 1,000,000
   - "K", "k", "thousand", "'000" = multiply by 1,000
   - "B", "billion" = multiply by 1,000,000,000
2. Look for document-level scale statements such as "All figures in thousands", "(000s)", "in millions" or "Values shown in EUR thousand" and apply that scale to every value taken from the affected tables.
3. Examples:
   - "15.5M EUR" -> 15500000
   - "450k" -> 450000
   - "2,500" in a table stated in thousands -> 2500000
   - "25.3" in a table stated in millions -> 25300000
   - "1,250" with no scale statement -> 1250
4. Prefer consolidated (group) figures over segment, subsidiary or regional figures.
5. Use null, never a placeholder string such as "N/A" or "Not found", when a value cannot be found."""

SINGLE_PERIOD_RULE = (
    "6. When several periods are reported, use the most recent full-year (annual) figure "
    "and state that period in the \"period\" field."
)

CLOSING_RULE = "CRITICAL: All value fields must be absolute integers (numbers without quotes). Use null if not found."

COMPREHENSIVE_TAXONOMY: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Revenue & Income",
        ("total revenue / net sales / turnover", "recurring vs. one-off revenue", "revenue by segment or product",
         "other operating income", "grant and subsidy income"),
    ),
    (
        "Costs & Expenses",
        ("cost of goods sold", "personnel costs", "research & development", "sales & marketing",
         "general & administrative", "depreciation & amortization", "total operating expenses"),
    ),
    (
        "Profitability",
        ("gross profit and gross margin", "EBITDA and EBITDA margin", "EBIT / operating result",
         "net income / net loss", "earnings per share"),
    ),
    (
        "Cash Flow & Liquidity",
        ("operating cash flow", "investing cash flow", "financing cash flow", "free cash flow",
         "cash and cash equivalents", "monthly burn rate", "runway in months"),
    ),
    (
        "Balance Sheet",
        ("total assets", "total liabilities", "shareholders' equity", "financial debt", "working capital",
         "inventory", "receivables and payables"),
    ),
    (
        "SaaS & Unit Economics",
        ("MRR and ARR", "net revenue retention", "churn rate", "customer acquisition cost (CAC)",
         "customer lifetime value (LTV)", "LTV/CAC ratio", "payback period", "average revenue per user"),
    ),
    (
        "Fundraising & Ownership",
        ("total funding raised", "current round size", "pre-money and post-money valuation",
         "investors and lead investor", "option pool size", "founder ownership"),
    ),
    (
        "Operations & Team",
        ("number of employees (FTE)", "number of customers", "active users", "units sold or produced",
         "order backlog"),
    ),
    (
        "Market",
        ("total addressable market (TAM)", "serviceable addressable market (SAM)",
         "serviceable obtainable market (SOM)", "market growth rate (CAGR)", "market share"),
    ),
)


def timeseries_years(current_year: int) -> list[str]:
    """Return the eight year labels ``current_year-3 .. current_year+4`` in ascending order."""

    return [str(year) for year in range(current_year - TIMESERIES_YEARS_BEFORE, current_year + TIMESERIES_YEARS_AFTER + 1)]


def format_figure_list(figures: Sequence[FigureDefinition]) -> str:
    return "\n".join(f'- {figure.name} → "{figure.id}" ({figure.description})' for figure in figures)


def _lead_sentence(subject_name: str, for_direct_upload: bool) -> str:
    if for_direct_upload:
        return DIRECT_UPLOAD_LEAD
    subject = subject_name.strip() or "the company"
    return WORKSPACE_LEAD.format(subject=subject)


def _render_example(example: dict[str, Any]) -> str:
    return json.dumps(example, indent=2, ensure_ascii=False)


def single_period_example(figures: Sequence[FigureDefinition]) -> dict[str, Any]:
    return {
        "company_name": "Company Name",
        "report_period": "2024 or Q4 2024 etc",
        "currency": "EUR or USD etc",
        "financial_data": {
            figure.id: {"value": 15500000, "currency": "currency code", "period": "time period"}
            for figure in figures
        },
    }


def timeseries_example(figures: Sequence[FigureDefinition], years: Sequence[str]) -> dict[str, Any]:
    return {
        "analysis_type": AnalysisMode.TIMESERIES.value,
        "company_name": "Company Name",
        "currency": "EUR or USD etc",
        "financial_data": {
            figure.id: {
                "metric_name": figure.name,
                "years": {
                    year: {"value": None, "currency": "currency code", "note": "actual / budget / forecast and source"}
                    for year in years
                },
            }
            for figure in figures
        },
    }


def comprehensive_example() -> dict[str, Any]:
    return {
        "analysis_type": AnalysisMode.COMPREHENSIVE.value,
        "company_name": "Company Name",
        "currency": "EUR or USD etc",
        "extracted_data": [
            {
                "metric_name": "Revenue",
                "value": 15500000,
                "currency": "EUR",
                "period": "FY2024",
                "context": "Consolidated income statement, page 12",
                "category": "Revenue & Income",
            }
        ],
    }


def _require_figures(figures: Sequence[FigureDefinition]) -> None:
    if not figures:
        raise ConfigurationError("No analyzable figures configured")


def _single_period_prompt(figures: Sequence[FigureDefinition], lead: str) -> str:
    sections = [
        lead,
        "Extract the following financial data from company reports and return it as JSON:",
        format_figure_list(figures),
        f"{NORMALIZATION_RULES}\n{SINGLE_PERIOD_RULE}",
        (
            'Every figure listed above must appear as a key in "financial_data". '
            'If a figure cannot be found, keep the key and set its "value" to null instead of omitting it.'
        ),
        f"Return ONLY valid JSON in this exact format:\n{_render_example(single_period_example(figures))}",
        CLOSING_RULE,
    ]
    return "\n\n".join(sections)


def _timeseries_prompt(figures: Sequence[FigureDefinition], lead: str, current_year: int) -> str:
    years = timeseries_years(current_year)
    year_list = ", ".join(years)
    time_rules = "\n".join(
        [
            "TIME SERIES RULES:",
            f"- Report every figure for exactly these years: {year_list}.",
            "- Use null for any year whose value is not explicitly stated in the documents.",
            (
                "- Do NOT extrapolate, interpolate or compute projections from growth rates, CAGR or trends. "
                "Only report a future-year value when that projection is itself stated verbatim in a document."
            ),
            '- Use the "note" field to say whether a value is an actual, budget or forecast figure and where it was found.',
            "- Fiscal years that do not match calendar years belong to the calendar year in which they end.",
        ]
    )
    sections = [
        lead,
        "Extract the following financial data from company reports as a multi-year time series and return it as JSON:",
        format_figure_list(figures),
        NORMALIZATION_RULES,
        time_rules,
        (
            'Every figure listed above must appear as a key in "financial_data" with all of the years listed. '
            "Years without a stated value keep their key with a null value."
        ),
        f"Return ONLY valid JSON in this exact format:\n{_render_example(timeseries_example(figures, years))}",
        CLOSING_RULE,
    ]
    return "\n\n".join(sections)


def _comprehensive_prompt(lead: str) -> str:
    taxonomy = "\n".join(
        f"- {category}: {', '.join(metrics)}" for category, metrics in COMPREHENSIVE_TAXONOMY
    )
    sections = [
        lead,
        (
            "Extract every financial, business and startup metric you can find in the documents. "
            "Use the following categories as a checklist, and also include relevant metrics that do not fit them:"
        ),
        taxonomy,
        NORMALIZATION_RULES,
        "\n".join(
            [
                "EXTRACTION RULES:",
                "- Create one entry per metric and period; include every period the documents report.",
                '- "category" must be one of the category names above, or "Other".',
                '- "context" briefly states where the value was found and what it refers to.',
                "- Only include metrics that are actually stated in the documents.",
            ]
        ),
        f"Return ONLY valid JSON in this exact format:\n{_render_example(comprehensive_example())}",
        CLOSING_RULE,
    ]
    return "\n\n".join(sections)


def generate_prompt(
    figures: Sequence[FigureDefinition],
    mode: AnalysisMode | str,
    subject_name: str,
    *,
    for_direct_upload: bool = False,
    current_year: int | None = None,
) -> str:
    """Build the extraction prompt for ``mode``.

    Args:
        figures: Ordered figure definitions; ignored in comprehensive mode.
        mode: ``single-period``, ``timeseries`` or ``comprehensive``.
        subject_name: Company or workspace named in the lead sentence.
        for_direct_upload: Use the developer framing of the lead sentence.
        current_year: Anchor of the eight-year window, required for time series.

    Raises:
        ConfigurationError: No figures for a schema-driven mode, or no year for time series.
    """

    mode = AnalysisMode(mode)
    lead = _lead_sentence(subject_name, for_direct_upload)

    if mode is AnalysisMode.COMPREHENSIVE:
        return _comprehensive_prompt(lead)

    _require_figures(figures)

    if mode is AnalysisMode.TIMESERIES:
        if current_year is None:
            raise ConfigurationError("Time series prompts need the current year.")
        return _timeseries_prompt(figures, lead, current_year)

    return _single_period_prompt(figures, lead)
