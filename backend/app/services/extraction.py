"""Figure extraction orchestration shared by the API and the CLI."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.core.logging import get_logger
from app.models.extraction import AnalysisMode, ExtractionErrorRecord, InterpretedResult, SourceCitation
from app.models.figures import CustomFigure, FigureDefinition
from app.services.adapters import DirectUploadExtractor, RawExtraction, UploadedFile, WorkspaceChatAdapter
from app.services.figure_import import sanitize_custom_figures
from app.services.interpreter import interpret
from app.services.prompts import generate_prompt
from app.services.registry import FigureRegistry

logger = get_logger(__name__)


@dataclass(slots=True)
class ExtractionOutcome:
    mode: AnalysisMode
    result: InterpretedResult
    raw_text: str
    figures: list[FigureDefinition]
    sources: list[SourceCitation] = field(default_factory=list)
    files_processed: list[str] = field(default_factory=list)
    response_id: str | None = None


def current_year() -> int:
    return datetime.now(timezone.utc).year


async def resolve_figures(
    registry: FigureRegistry,
    custom_figures: Sequence[CustomFigure] | None,
) -> list[FigureDefinition]:
    """Use per-request overrides when given, else the enabled registry snapshot."""

    if custom_figures:
        return sanitize_custom_figures(custom_figures)
    return await registry.enabled_figures()


def _outcome(mode: AnalysisMode, raw: RawExtraction, figures: list[FigureDefinition], source: str) -> ExtractionOutcome:
    result = interpret(raw.text, mode, source=source)
    return ExtractionOutcome(
        mode=mode,
        result=result,
        raw_text=raw.text,
        figures=figures,
        sources=raw.sources,
        files_processed=raw.files_processed,
        response_id=raw.response_id,
    )


async def extract_from_workspace(
    adapter: WorkspaceChatAdapter,
    figures: list[FigureDefinition],
    *,
    workspace_slug: str,
    subject_name: str,
    mode: AnalysisMode,
    year: int | None = None,
) -> ExtractionOutcome:
    prompt = generate_prompt(figures, mode, subject_name, current_year=year or current_year())
    logger.debug("finance.prompt", mode=mode.value, prompt=prompt)

    raw = await adapter.extract(workspace_slug, prompt)
    outcome = _outcome(mode, raw, figures, "workspace")
    logger.info(
        "finance.extraction.completed",
        backend="workspace",
        workspace=workspace_slug,
        mode=mode.value,
        figures=len(figures),
        parsed=not isinstance(outcome.result, ExtractionErrorRecord),
    )
    return outcome


async def extract_from_files(
    extractor: DirectUploadExtractor,
    figures: list[FigureDefinition],
    files: Sequence[UploadedFile],
    *,
    subject_name: str,
    mode: AnalysisMode,
    year: int | None = None,
) -> ExtractionOutcome:
    prompt = generate_prompt(
        figures,
        mode,
        subject_name,
        for_direct_upload=True,
        current_year=year or current_year(),
    )
    logger.debug("finance.prompt", mode=mode.value, prompt=prompt)

    raw = await extractor.extract(prompt, files)
    outcome = _outcome(mode, raw, figures, "OpenAI")
    logger.info(
        "finance.extraction.completed",
        backend="direct_upload",
        mode=mode.value,
        figures=len(figures),
        files=len(raw.files_processed),
        parsed=not isinstance(outcome.result, ExtractionErrorRecord),
    )
    return outcome
