"""Decode raw model output into typed extraction results."""

from __future__ import annotations

import copy
import json
import re
from json import JSONDecodeError
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.core.logging import get_logger
from app.models.extraction import AnalysisMode, ExtractionErrorRecord, ExtractionResult, InterpretedResult

logger = get_logger(__name__)

RAW_RESPONSE_LIMIT = 1000
UNPARSED_KEY = "unparsed_entries"

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_RESULT_ADAPTER: TypeAdapter[Any] = TypeAdapter(ExtractionResult)


def _strict_parse(raw_text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(raw_text)
    except (JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def _lenient_parse(raw_text: str) -> dict[str, Any] | None:
    """Parse the greedy first-``{`` to last-``}`` span of ``raw_text``."""

    match = _OBJECT_RE.search(raw_text)
    if match is None:
        return None
    return _strict_parse(match.group(0))


def _set_aside_invalid(payload: dict[str, Any], errors: list[Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Move the entries pydantic rejected out of ``payload``, keyed by their dotted path.

    Offending top-level fields are moved whole; inside ``financial_data`` or
    ``extracted_data`` only the offending figure or item is moved.
    """

    kept = copy.deepcopy(payload)
    set_aside: dict[str, Any] = {}
    list_drops: dict[str, set[int]] = {}

    for error in errors:
        path = error["loc"][1:3]
        if not path or path[0] == "analysis_type" or path[0] not in kept:
            continue
        field = path[0]
        container = kept[field]
        if len(path) == 1 or not isinstance(container, (dict, list)):
            set_aside[str(field)] = kept.pop(field)
            continue
        entry = path[1]
        if isinstance(container, dict) and entry in container:
            set_aside[f"{field}.{entry}"] = container.pop(entry)
        elif isinstance(container, list) and isinstance(entry, int) and entry < len(container):
            list_drops.setdefault(field, set()).add(entry)

    for field, indexes in list_drops.items():
        items = kept[field]
        for index in sorted(indexes, reverse=True):
            set_aside[f"{field}.{index}"] = items.pop(index)

    return kept, set_aside


def error_record(message: str, raw_text: str) -> ExtractionErrorRecord:
    return ExtractionErrorRecord(extraction_error=message, raw_response=(raw_text or "")[:RAW_RESPONSE_LIMIT])


def interpret(raw_text: str, mode: AnalysisMode | str, *, source: str = "LLM") -> InterpretedResult:
    """Turn model text into a result tagged with ``mode`` or a displayable error record.

    Never raises for malformed output: strict JSON first, then the outermost
    brace span, then an :class:`ExtractionErrorRecord` holding the first
    1000 characters of the raw text.
    """

    mode = AnalysisMode(mode)
    raw_text = raw_text or ""

    payload = _strict_parse(raw_text)
    if payload is None:
        payload = _lenient_parse(raw_text)
        if payload is not None:
            logger.warning("interpreter.lenient_parse", mode=mode.value, source=source, length=len(raw_text))

    if payload is None:
        logger.warning("interpreter.parse_failed", mode=mode.value, source=source, length=len(raw_text))
        return error_record(f"Failed to parse {source} output", raw_text)

    tagged = {**payload, "analysis_type": mode.value}
    try:
        return _RESULT_ADAPTER.validate_python(tagged)
    except PydanticValidationError as exc:
        kept, set_aside = _set_aside_invalid(tagged, exc.errors())

    logger.warning(
        "interpreter.entries_set_aside",
        mode=mode.value,
        source=source,
        paths=sorted(set_aside),
    )
    if not set_aside:
        return error_record(f"{source} output did not match the {mode.value} result shape", raw_text)

    previous = kept.get(UNPARSED_KEY)
    kept[UNPARSED_KEY] = {**previous, **set_aside} if isinstance(previous, dict) else set_aside
    try:
        return _RESULT_ADAPTER.validate_python(kept)
    except PydanticValidationError:
        return error_record(f"{source} output did not match the {mode.value} result shape", raw_text)
