"""Financial figure extraction endpoints."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.api import deps
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.models.extraction import (
    AnalysisMode,
    ExportRequest,
    FinanceExtractionRequest,
    FinanceExtractionResponse,
    PromptPreviewRequest,
    PromptPreviewResponse,
)
from app.models.figures import CustomFigure
from app.services import export, extraction
from app.services.adapters import DirectUploadExtractor, UploadedFile, WorkspaceChatAdapter
from app.services.prompts import generate_prompt
from app.services.registry import FigureRegistry

logger = get_logger(__name__)

router = APIRouter()

_CUSTOM_FIGURES_ADAPTER = TypeAdapter(list[CustomFigure])


def _response(outcome: extraction.ExtractionOutcome) -> FinanceExtractionResponse:
    return FinanceExtractionResponse(
        analysis_type=outcome.mode,
        result=outcome.result,
        raw_response=outcome.raw_text,
        figures=outcome.figures,
        sources=outcome.sources,
        files_processed=outcome.files_processed,
        response_id=outcome.response_id,
    )


def _parse_custom_figures(raw: str | None) -> list[CustomFigure] | None:
    if not raw:
        return None
    try:
        return _CUSTOM_FIGURES_ADAPTER.validate_python(json.loads(raw))
    except (json.JSONDecodeError, PydanticValidationError) as exc:
        raise ValidationError("custom_figures must be a JSON list of {id, name, description} objects.") from exc


@router.post("/finance", response_model=FinanceExtractionResponse, summary="Extract figures through a workspace chat.")
async def extract_from_workspace(
    request: FinanceExtractionRequest,
    registry: FigureRegistry = Depends(deps.get_registry),
    adapter: WorkspaceChatAdapter = Depends(deps.get_workspace_adapter),
) -> FinanceExtractionResponse:
    figures = await extraction.resolve_figures(registry, request.custom_figures)
    outcome = await extraction.extract_from_workspace(
        adapter,
        figures,
        workspace_slug=request.workspace_slug,
        subject_name=request.company_name or request.workspace_slug,
        mode=request.analysis_type,
    )
    return _response(outcome)


@router.post(
    "/finance/direct",
    response_model=FinanceExtractionResponse,
    summary="Extract figures by sending PDFs straight to the model.",
)
async def extract_from_uploads(
    files: list[UploadFile] = File(...),
    analysis_type: AnalysisMode = Form(AnalysisMode.SINGLE_PERIOD),
    company_name: str = Form("the company"),
    custom_figures: str | None = Form(None),
    registry: FigureRegistry = Depends(deps.get_registry),
    extractor: DirectUploadExtractor = Depends(deps.get_direct_upload_extractor),
) -> FinanceExtractionResponse:
    uploads = [
        UploadedFile(
            filename=upload.filename or "document.pdf",
            content=await upload.read(),
            content_type=upload.content_type or "application/octet-stream",
        )
        for upload in files
    ]
    figures = await extraction.resolve_figures(registry, _parse_custom_figures(custom_figures))
    outcome = await extraction.extract_from_files(
        extractor,
        figures,
        uploads,
        subject_name=company_name,
        mode=analysis_type,
    )
    return _response(outcome)


@router.post("/finance/prompt", response_model=PromptPreviewResponse, summary="Preview the generated prompt.")
async def preview_prompt(
    request: PromptPreviewRequest,
    registry: FigureRegistry = Depends(deps.get_registry),
) -> PromptPreviewResponse:
    figures = await extraction.resolve_figures(registry, request.custom_figures)
    prompt = generate_prompt(
        figures,
        request.analysis_type,
        request.company_name,
        for_direct_upload=request.for_direct_upload,
        current_year=extraction.current_year(),
    )
    return PromptPreviewResponse(prompt=prompt, analysis_type=request.analysis_type, figures=figures)


def _export_mode(request: ExportRequest) -> AnalysisMode:
    return AnalysisMode(getattr(request.result, "analysis_type", AnalysisMode.SINGLE_PERIOD.value))


@router.post("/finance/export/json", summary="Download the result as JSON.")
async def export_json(request: ExportRequest) -> Response:
    content = export.export_json(request.result)
    filename = export.export_filename(request.name, "json", _export_mode(request))
    return Response(
        content=content.encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/finance/export/xlsx", summary="Download the result as a spreadsheet.")
async def export_xlsx(
    request: ExportRequest,
    registry: FigureRegistry = Depends(deps.get_registry),
) -> Response:
    figures = request.figures if request.figures is not None else await registry.enabled_figures()
    content = export.export_workbook(
        request.result, figures, current_year=request.current_year or extraction.current_year()
    )
    filename = export.export_filename(request.name, "xlsx", _export_mode(request))
    logger.info("finance.export.workbook", filename=filename, figures=len(figures))
    return Response(
        content=content,
        media_type=export.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
