"""HTTP client for the AnythingLLM-style workspace service."""

from __future__ import annotations

import asyncio
import json
import re
import uuid
from typing import Any

import requests

from app.core.config import AppSettings
from app.core.errors import TransportError, ValidationError
from app.core.logging import get_logger
from app.models.extraction import SourceCitation
from app.models.workspace import ChatReply, UploadedDocument

logger = get_logger(__name__)

CUSTOM_DOCUMENTS_FOLDER = "custom-documents"

WORKSPACE_DEFAULTS: dict[str, Any] = {
    "similarityThreshold": 0.2,
    "openAiTemp": 0.2,
    "openAiHistory": 1,
    "openAiPrompt": (
        "You are acting as a venture capital analyst evaluating a startup. Always base your answers only on the "
        "information provided in the workspace documents. If information is missing, state this clearly and list "
        "assumptions you must make. Do not invent facts."
    ),
    "queryRefusalResponse": "There is no relevant information in documents to answer your question.",
    "chatMode": "query",
    "topN": 4,
}


def document_path_from_location(location: str) -> str:
    """Map an upload ``location`` (any OS path) to ``custom-documents/<file>``."""

    _, separator, tail = location.partition(CUSTOM_DOCUMENTS_FOLDER)
    if not separator:
        raise TransportError(f"Unable to extract document path from location {location!r}.")
    relative = tail.replace("\\", "/").lstrip("/")
    return f"{CUSTOM_DOCUMENTS_FOLDER}/{relative}"


def document_metadata_id(document: dict[str, Any]) -> str | None:
    metadata = document.get("metadata")
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except json.JSONDecodeError:
            return None
    if isinstance(metadata, dict) and metadata.get("id"):
        return str(metadata["id"])
    return None


def find_workspace_document(
    documents: list[dict[str, Any]],
    document_path: str,
    uploaded: dict[str, Any],
) -> dict[str, Any] | None:
    """Locate the workspace record created for ``uploaded`` by docpath, docId or metadata id."""

    uploaded_metadata_id = document_metadata_id(uploaded) or uploaded.get("id")
    for document in documents:
        docpath = document.get("docpath")
        if isinstance(docpath, str) and docpath.replace("\\", "/") == document_path:
            return document
        if document.get("docId") and document.get("docId") == uploaded.get("docId"):
            return document
        candidate_id = document_metadata_id(document)
        if candidate_id and uploaded_metadata_id and candidate_id == uploaded_metadata_id:
            return document
    return None


def parse_chat_reply(payload: dict[str, Any]) -> ChatReply:
    error = payload.get("error")
    if error:
        raise TransportError(f"Workspace chat failed: {error}")

    text = payload.get("textResponse") or payload.get("response") or ""
    sources = [
        SourceCitation(
            document=str(source.get("document") or source.get("title") or ""),
            text=str(source.get("text") or ""),
        )
        for source in payload.get("sources") or []
        if isinstance(source, dict)
    ]
    return ChatReply(text_response=str(text), sources=sources, raw=payload)


class WorkspaceClient:
    """Blocking ``requests`` client exposed through async wrappers.

    Every call is a single attempt: non-2xx responses and connection failures
    raise :class:`TransportError` immediately.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def _headers(self, *, json_body: bool) -> dict[str, str]:
        headers: dict[str, str] = {"Accept": "application/json"}
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _request_sync(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        files: dict[str, tuple[str, bytes, str]] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.debug("workspace.request", method=method, url=url)

        try:
            response = self._session.request(
                method,
                url,
                headers=self._headers(json_body=files is None),
                data=json.dumps(json_body) if json_body is not None else None,
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("workspace.request.connection_failed", method=method, url=url, error=str(exc))
            raise TransportError(
                f"Failed to connect to the workspace service at {url}. "
                "Please ensure the server is running and accessible."
            ) from exc

        if response.status_code >= 400:
            logger.warning("workspace.request.failed", method=method, url=url, status=response.status_code)
            raise TransportError(
                f"Workspace API error: {response.status_code} {response.reason} - {response.text}",
                upstream_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(f"Workspace API returned non-JSON content from {url}.") from exc

        return payload if isinstance(payload, dict) else {"data": payload}

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        return await asyncio.to_thread(self._request_sync, method, path, **kwargs)

    async def check_health(self) -> bool:
        try:
            await self._request("GET", "/api/v1/healthz")
        except TransportError:
            return False
        return True

    async def list_workspaces(self) -> list[dict[str, Any]]:
        payload = await self._request("GET", "/api/v1/workspaces")
        return list(payload.get("workspaces") or [])

    async def create_workspace(self, name: str) -> dict[str, Any]:
        payload = await self._request("POST", "/api/v1/workspace/new", json_body={"name": name, **WORKSPACE_DEFAULTS})
        logger.info("workspace.created", name=name)
        return payload.get("workspace") or payload

    async def get_workspace(self, slug: str) -> dict[str, Any] | None:
        """Return the workspace record (with ``documents``) or ``None`` when unknown."""

        payload = await self._request("GET", f"/api/v1/workspace/{slug}")
        workspace = payload.get("workspace")
        if isinstance(workspace, list):
            return workspace[0] if workspace else None
        return workspace or None

    async def list_workspace_documents(self, slug: str) -> list[dict[str, Any]]:
        workspace = await self.get_workspace(slug)
        if workspace is None:
            return []
        return list(workspace.get("documents") or [])

    async def update_embeddings(
        self,
        slug: str,
        *,
        adds: list[str] | None = None,
        deletes: list[str] | None = None,
    ) -> dict[str, Any]:
        payload = await self._request(
            "POST",
            f"/api/v1/workspace/{slug}/update-embeddings",
            json_body={"adds": adds or [], "deletes": deletes or []},
        )
        logger.info("workspace.embeddings.updated", slug=slug, adds=len(adds or []), deletes=len(deletes or []))
        return payload

    async def upload_document(self, slug: str, filename: str, content: bytes, content_type: str) -> UploadedDocument:
        """Upload a file, embed it into ``slug`` and return the created workspace document."""

        existing = await self.list_workspace_documents(slug)
        if any(doc.get("filename") == filename or doc.get("title") == filename for doc in existing):
            raise ValidationError(f'File with name "{filename}" already exists in workspace')

        result = await self._request(
            "POST",
            "/api/v1/document/upload",
            files={"file": (filename, content, content_type)},
        )
        documents = result.get("documents") or []
        if not result.get("success") or not documents:
            raise TransportError("Document upload failed")

        uploaded = documents[0]
        document_path = document_path_from_location(str(uploaded.get("location", "")))

        update = await self.update_embeddings(slug, adds=[document_path])
        workspace = update.get("workspace") or {}
        workspace_documents = workspace.get("documents") if isinstance(workspace, dict) else None
        workspace_document = find_workspace_document(list(workspace_documents or []), document_path, uploaded)

        logger.info("workspace.document.uploaded", slug=slug, filename=filename, document_path=document_path)
        return UploadedDocument(
            workspace_slug=slug,
            filename=filename,
            document_path=document_path,
            workspace_document=workspace_document,
        )

    async def remove_document(self, slug: str, document_path: str) -> None:
        await self.update_embeddings(slug, deletes=[document_path])

    async def send_message(self, slug: str, message: str) -> ChatReply:
        logger.debug("workspace.chat.request", slug=slug, message=message)
        payload = await self._request(
            "POST",
            f"/api/v1/workspace/{slug}/chat",
            json_body={"message": message, "mode": "query"},
        )
        reply = parse_chat_reply(payload)
        logger.debug("workspace.chat.response", slug=slug, length=len(reply.text_response))
        return reply

    def close(self) -> None:
        self._session.close()


MOCK_WORKSPACES: tuple[dict[str, Any], ...] = (
    {"id": 1, "name": "FinTech Startup", "slug": "fintech-startup", "chatMode": "chat", "topN": 4},
    {"id": 2, "name": "AI Healthcare", "slug": "ai-healthcare", "chatMode": "chat", "topN": 4},
    {"id": 3, "name": "SaaS Platform", "slug": "saas-platform", "chatMode": "chat", "topN": 4},
)

MOCK_DOCUMENTS: dict[str, tuple[tuple[str, str], ...]] = {
    "fintech-startup": (("1", "Pitch Deck.pdf"), ("2", "Financial Projections.xlsx"), ("3", "Market Analysis.docx")),
    "ai-healthcare": (("4", "Business Plan.pdf"), ("5", "Technology Overview.pdf")),
    "saas-platform": (("6", "Product Roadmap.pdf"), ("7", "Competitor Analysis.pptx"), ("8", "Team Bios.pdf")),
}

_MOCK_ANSWERS: tuple[tuple[str, str], ...] = (
    (
        "market",
        "The market size is estimated at $4.5 billion with a projected CAGR of 22% over the next 5 years.",
    ),
    (
        "team",
        "The founding team has extensive industry experience and the CEO previously led a successful exit.",
    ),
    (
        "financial",
        "Financial projections show breakeven in 18 months; the requested round extends runway by 24 months.",
    ),
    (
        "risk",
        "Key risks include regulatory changes in European markets and competition from incumbents.",
    ),
)

_MOCK_SOURCES = [
    {"document": "Pitch Deck.pdf", "text": "Section on market analysis, page 12"},
    {"document": "Financial Projections.xlsx", "text": "Revenue forecast, tab 3"},
]

_WORKSPACE_PATH_RE = re.compile(r"^/api/v1/workspace/(?P<slug>[^/]+)(?P<rest>/.*)?$")


class MockWorkspaceClient(WorkspaceClient):
    """Offline stand-in returning canned workspaces, documents and chat answers."""

    def __init__(self) -> None:
        super().__init__("mock://workspace")
        self.requests: list[tuple[str, str]] = []

    def _request_sync(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        files: dict[str, tuple[str, bytes, str]] | None = None,
    ) -> dict[str, Any]:
        self.requests.append((method, path))

        if path == "/api/v1/healthz":
            return {"online": True}
        if path == "/api/v1/workspaces":
            return {"workspaces": [dict(workspace) for workspace in MOCK_WORKSPACES]}
        if path == "/api/v1/workspace/new":
            name = (json_body or {}).get("name", "")
            slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
            return {"workspace": {"id": uuid.uuid4().hex[:6], "name": name, "slug": slug}}
        if path == "/api/v1/document/upload":
            filename = files["file"][0] if files else "document"
            stored = f"{filename}-{uuid.uuid4()}.json"
            return {
                "success": True,
                "error": None,
                "documents": [
                    {"id": uuid.uuid4().hex, "location": f"{CUSTOM_DOCUMENTS_FOLDER}/{stored}", "name": stored, "title": filename}
                ],
            }

        match = _WORKSPACE_PATH_RE.match(path)
        if match is None:
            return {"message": "Mock data not implemented for this endpoint"}

        slug = match.group("slug")
        rest = match.group("rest") or ""
        if rest == "/chat":
            return self._mock_chat((json_body or {}).get("message", ""))
        if rest == "/update-embeddings":
            adds = (json_body or {}).get("adds") or []
            documents = [
                {"docpath": docpath, "filename": docpath.rsplit("/", 1)[-1], "docId": f"mock-{uuid.uuid4().hex[:8]}"}
                for docpath in adds
            ]
            return {"workspace": {**self._mock_workspace(slug), "documents": documents}, "message": None}
        if rest in ("", "/documents"):
            return {"workspace": [self._mock_workspace(slug)]}
        return {"message": "Mock data not implemented for this endpoint"}

    @staticmethod
    def _mock_workspace(slug: str) -> dict[str, Any]:
        workspace = next((dict(item) for item in MOCK_WORKSPACES if item["slug"] == slug), None)
        if workspace is None:
            workspace = {"id": 0, "name": slug.replace("-", " ").title(), "slug": slug}
        workspace["documents"] = [
            {"id": doc_id, "filename": name, "docId": f"mock-{doc_id}", "docpath": f"{slug}/{name}.json"}
            for doc_id, name in MOCK_DOCUMENTS.get(slug, ())
        ]
        return workspace

    @staticmethod
    def _mock_chat(message: str) -> dict[str, Any]:
        answer = "Based on the documents provided, this appears to be a promising investment opportunity. "
        lowered = message.lower()
        detail = next((text for keyword, text in _MOCK_ANSWERS if keyword in lowered), None)
        answer += detail or "The company has proprietary technology with a scalable business model."
        return {"textResponse": answer, "sources": [dict(source) for source in _MOCK_SOURCES]}


def build_workspace_client(settings: AppSettings) -> WorkspaceClient:
    """Create the real or mock workspace client selected by settings."""

    if settings.use_mock_data:
        logger.info("workspace.client.mock_enabled")
        return MockWorkspaceClient()
    return WorkspaceClient(
        settings.workspace_endpoint,
        settings.workspace_api_key,
        timeout=settings.workspace_timeout_seconds,
    )
