"""Figure registry endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from app.api import deps
from app.core.errors import ValidationError
from app.models.figures import (
    FigureCreateRequest,
    FigureDefinition,
    FigureRegistrySnapshot,
    FigureReorderRequest,
    FigureReplaceRequest,
    FigureUpdateRequest,
)
from app.services import figure_import
from app.services.export import XLSX_MEDIA_TYPE
from app.services.registry import FigureRegistry

router = APIRouter()

_SPREADSHEET_SUFFIXES = (".xlsx", ".xls")


async def _read_spreadsheet(upload: UploadFile) -> list[FigureDefinition]:
    filename = (upload.filename or "").lower()
    if not filename.endswith(_SPREADSHEET_SUFFIXES):
        raise ValidationError("Please upload an Excel file (.xlsx or .xls).")
    return figure_import.read_figure_workbook(await upload.read())


@router.get("/figures", response_model=FigureRegistrySnapshot, summary="List analyzable figures.")
async def list_figures(registry: FigureRegistry = Depends(deps.get_registry)) -> FigureRegistrySnapshot:
    return await registry.snapshot()


@router.put("/figures", response_model=FigureRegistrySnapshot, summary="Replace the whole registry.")
async def replace_figures(
    request: FigureReplaceRequest,
    registry: FigureRegistry = Depends(deps.get_registry),
) -> FigureRegistrySnapshot:
    return await registry.replace_all(request.figures, expected_revision=request.expected_revision)


@router.post(
    "/figures",
    response_model=FigureDefinition,
    status_code=status.HTTP_201_CREATED,
    summary="Create a figure from a display name.",
)
async def create_figure(
    request: FigureCreateRequest,
    registry: FigureRegistry = Depends(deps.get_registry),
) -> FigureDefinition:
    return await registry.create(request.name, request.description, expected_revision=request.expected_revision)


@router.get("/figures/template", summary="Download the figure import template workbook.")
async def download_template() -> Response:
    return Response(
        content=figure_import.figure_template_workbook(),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="analyzable_figures_template.xlsx"'},
    )


@router.post("/figures/parse", response_model=list[FigureDefinition], summary="Parse a figure workbook without saving.")
async def parse_figures(file: UploadFile = File(...)) -> list[FigureDefinition]:
    """Used for ad hoc figure lists sent along with a single extraction."""

    return await _read_spreadsheet(file)


@router.post("/figures/import", response_model=FigureRegistrySnapshot, summary="Replace the registry from a workbook.")
async def import_figures(
    file: UploadFile = File(...),
    registry: FigureRegistry = Depends(deps.get_registry),
) -> FigureRegistrySnapshot:
    figures = await _read_spreadsheet(file)
    return await registry.replace_all(figures)


@router.patch("/figures/{figure_id}", response_model=FigureDefinition, summary="Rename, re-describe or toggle.")
async def update_figure(
    figure_id: str,
    request: FigureUpdateRequest,
    registry: FigureRegistry = Depends(deps.get_registry),
) -> FigureDefinition:
    return await registry.update(
        figure_id,
        name=request.name,
        description=request.description,
        enabled=request.enabled,
        expected_revision=request.expected_revision,
    )


@router.delete("/figures/{figure_id}", response_model=FigureRegistrySnapshot, summary="Delete a figure.")
async def delete_figure(
    figure_id: str,
    expected_revision: int | None = None,
    registry: FigureRegistry = Depends(deps.get_registry),
) -> FigureRegistrySnapshot:
    return await registry.remove(figure_id, expected_revision=expected_revision)


@router.post("/figures/{figure_id}/reorder", response_model=FigureRegistrySnapshot, summary="Move a figure.")
async def reorder_figure(
    figure_id: str,
    request: FigureReorderRequest,
    registry: FigureRegistry = Depends(deps.get_registry),
) -> FigureRegistrySnapshot:
    return await registry.reorder(figure_id, request.position, expected_revision=request.expected_revision)
