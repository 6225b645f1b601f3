"""Unit tests for extraction prompt generation."""

from __future__ import annotations

import json

import pytest

from app.core.errors import ConfigurationError
from app.models.extraction import AnalysisMode
from app.models.figures import FigureDefinition
from app.services.prompts import (
    CLOSING_RULE,
    COMPREHENSIVE_TAXONOMY,
    DIRECT_UPLOAD_LEAD,
    NORMALIZATION_RULES,
    SINGLE_PERIOD_RULE,
    generate_prompt,
    timeseries_years,
)

FORMAT_MARKER = "Return ONLY valid JSON in this exact format:\n"


def _figures() -> list[FigureDefinition]:
    return [
        FigureDefinition(id="revenue", name="Revenue", description="Total revenue", order=1),
        FigureDefinition(id="net_loss", name="Net Loss", description="Bottom line result", order=2),
        FigureDefinition(id="cash_balance", name="Cash Balance", description="Cash at period end", order=3),
    ]


def _embedded_example(prompt: str) -> dict:
    start = prompt.index(FORMAT_MARKER) + len(FORMAT_MARKER)
    end = prompt.index(f"\n\n{CLOSING_RULE}", start)
    return json.loads(prompt[start:end])


@pytest.mark.parametrize("mode", [AnalysisMode.SINGLE_PERIOD, AnalysisMode.TIMESERIES])
def test_example_json_keys_match_figure_ids(mode: AnalysisMode) -> None:
    figures = _figures()

    prompt = generate_prompt(figures, mode, "Acme", current_year=2025)
    example = _embedded_example(prompt)

    assert list(example["financial_data"]) == [figure.id for figure in figures]
    for figure in figures:
        assert prompt.count(f'"{figure.id}":') == 1


def test_single_period_prompt_lists_figures_and_rules() -> None:
    prompt = generate_prompt(_figures(), "single-period", "Acme")

    assert prompt.startswith(
        "Please analyze all the uploaded PDF documents for Acme and extract the key financial data."
    )
    assert '- Revenue → "revenue" (Total revenue)' in prompt
    assert NORMALIZATION_RULES in prompt
    assert SINGLE_PERIOD_RULE in prompt
    assert "set its \"value\" to null instead of omitting it" in prompt

    example = _embedded_example(prompt)
    assert example["financial_data"]["revenue"] == {
        "value": 15500000,
        "currency": "currency code",
        "period": "time period",
    }
    assert prompt.rstrip().endswith(CLOSING_RULE)


def test_timeseries_window_is_eight_ascending_years() -> None:
    assert timeseries_years(2025) == ["2022", "2023", "2024", "2025", "2026", "2027", "2028", "2029"]

    prompt = generate_prompt(_figures(), AnalysisMode.TIMESERIES, "Acme", current_year=2025)
    example = _embedded_example(prompt)

    assert example["analysis_type"] == "timeseries"
    for entry in example["financial_data"].values():
        assert list(entry["years"]) == timeseries_years(2025)
        assert all(year["value"] is None for year in entry["years"].values())


def test_timeseries_prompt_forbids_extrapolation() -> None:
    prompt = generate_prompt(_figures(), AnalysisMode.TIMESERIES, "Acme", current_year=2030)

    assert "Do NOT extrapolate" in prompt
    assert "2027, 2028, 2029, 2030, 2031, 2032, 2033, 2034" in prompt
    assert SINGLE_PERIOD_RULE not in prompt
    assert NORMALIZATION_RULES in prompt


def test_timeseries_requires_current_year() -> None:
    with pytest.raises(ConfigurationError):
        generate_prompt(_figures(), AnalysisMode.TIMESERIES, "Acme")


@pytest.mark.parametrize("mode", ["single-period", "timeseries"])
def test_empty_figures_raise_configuration_error(mode: str) -> None:
    with pytest.raises(ConfigurationError, match="No analyzable figures configured"):
        generate_prompt([], mode, "Acme", current_year=2025)


def test_comprehensive_ignores_registry() -> None:
    prompt = generate_prompt([], AnalysisMode.COMPREHENSIVE, "Acme")

    for category, _ in COMPREHENSIVE_TAXONOMY:
        assert category in prompt
    assert NORMALIZATION_RULES in prompt

    example = _embedded_example(prompt)
    assert example["analysis_type"] == "comprehensive"
    assert set(example["extracted_data"][0]) == {"metric_name", "value", "currency", "period", "context", "category"}

    with_figures = generate_prompt(_figures(), AnalysisMode.COMPREHENSIVE, "Acme")
    assert with_figures == prompt


@pytest.mark.parametrize("mode", list(AnalysisMode))
def test_direct_upload_flag_only_swaps_lead_sentence(mode: AnalysisMode) -> None:
    workspace_prompt = generate_prompt(_figures(), mode, "Acme", current_year=2025)
    direct_prompt = generate_prompt(_figures(), mode, "Acme", for_direct_upload=True, current_year=2025)

    workspace_lead, workspace_body = workspace_prompt.split("\n\n", 1)
    direct_lead, direct_body = direct_prompt.split("\n\n", 1)

    assert direct_lead == DIRECT_UPLOAD_LEAD
    assert "Acme" in workspace_lead
    assert workspace_body == direct_body


def test_generation_is_deterministic() -> None:
    first = generate_prompt(_figures(), AnalysisMode.TIMESERIES, "Acme", current_year=2024)
    second = generate_prompt(_figures(), AnalysisMode.TIMESERIES, "Acme", current_year=2024)

    assert first == second


def test_blank_subject_falls_back_to_generic_name() -> None:
    prompt = generate_prompt(_figures(), AnalysisMode.SINGLE_PERIOD, "  ")

    assert prompt.startswith("Please analyze all the uploaded PDF documents for the company")
