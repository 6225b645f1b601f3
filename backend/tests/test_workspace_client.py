"""Tests for the workspace HTTP client and its offline stand-in."""

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from app.core.errors import TransportError, ValidationError
from app.services.workspace_client import (
    MockWorkspaceClient,
    WorkspaceClient,
    document_path_from_location,
    find_workspace_document,
    parse_chat_reply,
)


class StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "", reason: str = "OK") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text or json.dumps(payload)
        self.reason = reason

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class StubSession:
    """Replays queued responses and records every request."""

    def __init__(self, responses: list[StubResponse | Exception]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> StubResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        pass


def _client(responses: list[StubResponse | Exception], api_key: str | None = "secret") -> tuple[WorkspaceClient, StubSession]:
    session = StubSession(responses)
    return WorkspaceClient("http://workspace.test/", api_key, timeout=5, session=session), session


@pytest.mark.parametrize(
    ("location", "expected"),
    [
        ("/app/storage/documents/custom-documents/deck.pdf-abc.json", "custom-documents/deck.pdf-abc.json"),
        ("C:\\storage\\custom-documents\\deck.pdf-abc.json", "custom-documents/deck.pdf-abc.json"),
    ],
)
def test_document_path_from_location(location: str, expected: str) -> None:
    assert document_path_from_location(location) == expected


def test_document_path_without_folder_raises() -> None:
    with pytest.raises(TransportError):
        document_path_from_location("/tmp/elsewhere/deck.json")


def test_find_workspace_document_matches_metadata_id() -> None:
    documents = [
        {"docpath": "custom-documents/other.json", "docId": "d1", "metadata": "{}"},
        {"docpath": "custom-documents/x.json", "docId": "d2", "metadata": json.dumps({"id": "meta-7"})},
    ]

    found = find_workspace_document(documents, "custom-documents/missing.json", {"id": "meta-7"})

    assert found is documents[1]


def test_parse_chat_reply_maps_sources() -> None:
    reply = parse_chat_reply(
        {"textResponse": "Answer", "sources": [{"title": "deck.pdf", "text": "chunk"}, "ignored"]}
    )

    assert reply.text_response == "Answer"
    assert [(source.document, source.text) for source in reply.sources] == [("deck.pdf", "chunk")]


def test_parse_chat_reply_error_field_raises() -> None:
    with pytest.raises(TransportError, match="boom"):
        parse_chat_reply({"error": "boom"})


@pytest.mark.asyncio
async def test_send_message_posts_query_mode_with_bearer_token() -> None:
    client, session = _client([StubResponse(payload={"textResponse": "{}", "sources": []})])

    reply = await client.send_message("acme", "extract please")

    assert reply.text_response == "{}"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://workspace.test/api/v1/workspace/acme/chat"
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert json.loads(call["data"]) == {"message": "extract please", "mode": "query"}
    assert call["timeout"] == 5


@pytest.mark.asyncio
async def test_http_error_carries_status_and_body() -> None:
    client, _ = _client([StubResponse(status_code=403, payload={"error": "nope"}, text="forbidden", reason="Forbidden")])

    with pytest.raises(TransportError) as excinfo:
        await client.list_workspaces()

    assert excinfo.value.message == "Workspace API error: 403 Forbidden - forbidden"
    assert excinfo.value.upstream_status == 403


@pytest.mark.asyncio
async def test_connection_failure_becomes_transport_error() -> None:
    client, _ = _client([requests.ConnectionError("refused")], api_key=None)

    with pytest.raises(TransportError, match="Failed to connect to the workspace service"):
        await client.send_message("acme", "hello")


@pytest.mark.asyncio
async def test_check_health_swallows_transport_errors() -> None:
    client, _ = _client([requests.ConnectionError("refused")])

    assert await client.check_health() is False


@pytest.mark.asyncio
async def test_upload_document_embeds_and_finds_record() -> None:
    client, session = _client(
        [
            StubResponse(payload={"workspace": [{"slug": "acme", "documents": []}]}),
            StubResponse(
                payload={
                    "success": True,
                    "documents": [{"id": "meta-1", "location": "/srv/custom-documents/deck.pdf-1.json"}],
                }
            ),
            StubResponse(
                payload={
                    "workspace": {
                        "documents": [{"docpath": "custom-documents/deck.pdf-1.json", "docId": "doc-1"}]
                    }
                }
            ),
        ]
    )

    uploaded = await client.upload_document("acme", "deck.pdf", b"%PDF-1.4", "application/pdf")

    assert uploaded.document_path == "custom-documents/deck.pdf-1.json"
    assert uploaded.workspace_document == {"docpath": "custom-documents/deck.pdf-1.json", "docId": "doc-1"}
    assert session.calls[1]["files"] == {"file": ("deck.pdf", b"%PDF-1.4", "application/pdf")}
    assert "Content-Type" not in session.calls[1]["headers"]
    assert json.loads(session.calls[2]["data"]) == {"adds": ["custom-documents/deck.pdf-1.json"], "deletes": []}


@pytest.mark.asyncio
async def test_upload_document_rejects_duplicate_filename() -> None:
    client, session = _client(
        [StubResponse(payload={"workspace": [{"documents": [{"filename": "deck.pdf"}]}]})]
    )

    with pytest.raises(ValidationError, match="already exists"):
        await client.upload_document("acme", "deck.pdf", b"data", "application/pdf")

    assert len(session.calls) == 1


@pytest.mark.asyncio
async def test_mock_client_answers_by_keyword() -> None:
    client = MockWorkspaceClient()

    reply = await client.send_message("fintech-startup", "Tell me about the team")

    assert reply.text_response.startswith("Based on the documents provided")
    assert "founding team" in reply.text_response
    assert len(reply.sources) == 2
    assert client.requests == [("POST", "/api/v1/workspace/fintech-startup/chat")]


@pytest.mark.asyncio
async def test_mock_client_upload_round_trip() -> None:
    client = MockWorkspaceClient()

    workspaces = await client.list_workspaces()
    uploaded = await client.upload_document("saas-platform", "new.pdf", b"%PDF", "application/pdf")

    assert [workspace["slug"] for workspace in workspaces] == ["fintech-startup", "ai-healthcare", "saas-platform"]
    assert uploaded.document_path.startswith("custom-documents/new.pdf-")
    assert uploaded.workspace_document is not None
    assert uploaded.workspace_document["docpath"] == uploaded.document_path
