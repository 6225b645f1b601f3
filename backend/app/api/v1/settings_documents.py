"""Endpoints for the editable JSON configuration documents."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError as PydanticValidationError

from app.api import deps
from app.core.errors import ValidationError
from app.services.config_store import CONFIG_DOCUMENTS, ConfigStore

router = APIRouter()


@router.get("/config/{document}", summary="Read a configuration document.")
async def read_document(document: str, store: ConfigStore = Depends(deps.get_config_store)) -> dict[str, Any]:
    return store.load(document).model_dump(mode="json", by_alias=True)


@router.put("/config/{document}", summary="Replace a configuration document.")
async def write_document(
    document: str,
    payload: dict[str, Any] = Body(...),
    store: ConfigStore = Depends(deps.get_config_store),
) -> dict[str, Any]:
    path = store.path_for(document)
    _, model, _ = CONFIG_DOCUMENTS[document]
    try:
        parsed = model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {path.name}: {exc.error_count()} error(s).") from exc
    return store.save(document, parsed).model_dump(mode="json", by_alias=True)
