"""Backend adapters that turn a prompt into raw model text."""

from __future__ import annotations

import base64
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from langsmith import traceable

from app.core.config import AppSettings
from app.core.errors import ConfigurationError, TransportError, ValidationError
from app.core.logging import get_logger
from app.models.extraction import SourceCitation
from app.services.workspace_client import WorkspaceClient

logger = get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"
DIRECT_UPLOAD_USER_INSTRUCTION = (
    "Analyze the attached financial documents and extract the key figures described in the developer prompt. "
    "Return only valid JSON."
)


@dataclass(slots=True)
class UploadedFile:
    filename: str
    content: bytes
    content_type: str = PDF_MIME_TYPE


@dataclass(slots=True)
class RawExtraction:
    """Raw model text plus whatever provenance the backend reported."""

    text: str
    sources: list[SourceCitation] = field(default_factory=list)
    response_id: str | None = None
    files_processed: list[str] = field(default_factory=list)


class WorkspaceChatAdapter:
    """Send the prompt as one chat message to a pre-populated workspace."""

    def __init__(self, client: WorkspaceClient) -> None:
        self._client = client

    async def extract(self, workspace_slug: str, prompt: str) -> RawExtraction:
        reply = await self._client.send_message(workspace_slug, prompt)
        return RawExtraction(text=reply.text_response, sources=list(reply.sources))


def _message_content_to_text(message: AIMessage) -> str:
    """Coerce message content into a string for downstream parsing."""

    content = message.content
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts)
    return str(content)


def file_content_block(upload: UploadedFile) -> dict[str, Any]:
    encoded = base64.b64encode(upload.content).decode("ascii")
    return {
        "type": "file",
        "file": {
            "filename": upload.filename,
            "file_data": f"data:{upload.content_type};base64,{encoded}",
        },
    }


def build_direct_upload_messages(prompt: str, files: Sequence[UploadedFile]) -> list[BaseMessage]:
    """Developer instruction, then one user turn carrying the fixed instruction and every file inline."""

    content: list[str | dict[str, Any]] = [{"type": "text", "text": DIRECT_UPLOAD_USER_INSTRUCTION}]
    content.extend(file_content_block(upload) for upload in files)

    return [
        SystemMessage(content=prompt, additional_kwargs={"__openai_role__": "developer"}),
        HumanMessage(content=content),
    ]


def validate_pdf_uploads(files: Sequence[UploadedFile]) -> list[UploadedFile]:
    if not files:
        raise ValidationError("No files provided. Attach at least one PDF document.")

    rejected = [upload.filename for upload in files if upload.content_type != PDF_MIME_TYPE]
    if rejected:
        raise ValidationError(f"Only PDF documents are supported for direct upload: {', '.join(rejected)}")
    return list(files)


class DirectUploadExtractor:
    """Inline PDFs into a single JSON-mode chat completion."""

    def __init__(self, llm: Any) -> None:
        self._llm = llm

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "DirectUploadExtractor":
        if not settings.openai_api_key:
            raise ConfigurationError("OpenAI API key not configured")

        llm = ChatOpenAI(
            model=settings.direct_upload_model,
            openai_api_key=settings.openai_api_key,
            openai_api_base=settings.openai_api_base,
        )
        return cls(llm)

    @traceable(name="finance.direct_upload")
    async def extract(self, prompt: str, files: Sequence[UploadedFile]) -> RawExtraction:
        uploads = validate_pdf_uploads(files)
        messages = build_direct_upload_messages(prompt, uploads)
        runnable = self._llm.bind(response_format={"type": "json_object"})

        logger.info("direct_upload.request", files=len(uploads), total_bytes=sum(len(u.content) for u in uploads))
        try:
            message = await runnable.ainvoke(messages)
        except openai.OpenAIError as exc:
            logger.warning("direct_upload.request_failed", error=str(exc))
            raise TransportError(f"OpenAI request failed: {exc}") from exc

        text = _message_content_to_text(message)
        response_id = getattr(message, "id", None)
        logger.info("direct_upload.response", response_id=response_id, length=len(text))
        return RawExtraction(
            text=text,
            response_id=response_id,
            files_processed=[upload.filename for upload in uploads],
        )
