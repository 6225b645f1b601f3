"""Tests for configuration documents and question analysis."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.core.errors import ConfigurationError, NotFoundError, TransportError
from app.models.extraction import SourceCitation
from app.models.questions import AnalyzeRequest, FormattingPromptConfig, Question, QuestionsConfig
from app.models.workspace import ChatReply
from app.services.config_store import CONFIG_DOCUMENTS, DEFAULT_QUESTIONS, ConfigStore
from app.services.questions import (
    QuestionAnalyzer,
    build_coverage_prompt,
    parse_coverage_score,
    resolve_analysis_prompt,
)


class StubWorkspaceClient:
    """Answers each message from a queue and records what was sent."""

    def __init__(self, replies: list[str | Exception]) -> None:
        self._replies = list(replies)
        self.messages: list[tuple[str, str]] = []

    async def send_message(self, slug: str, message: str) -> ChatReply:
        self.messages.append((slug, message))
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ChatReply(text_response=reply, sources=[SourceCitation(document="deck.pdf", text="p. 3")])


@pytest.fixture
def store(tmp_path: Path) -> ConfigStore:
    return ConfigStore(tmp_path / "config")


def test_missing_documents_fall_back_to_defaults(store: ConfigStore) -> None:
    assert store.questions() == DEFAULT_QUESTIONS
    assert store.system().finance_enabled is True


def test_init_defaults_only_creates_missing_files(store: ConfigStore) -> None:
    created = store.init_defaults()

    assert sorted(created) == sorted(filename for filename, _, _ in CONFIG_DOCUMENTS.values())
    assert store.init_defaults() == []

    categories = json.loads((store.root / "categories.json").read_text(encoding="utf-8"))
    assert categories["categories"][0]["categoryName"] == "market"


def test_save_and_reload_round_trip(store: ConfigStore) -> None:
    store.save("questions", QuestionsConfig(questions=[Question(id="x1", question="What is ARR?", category="financials")]))

    assert [question.id for question in store.questions().questions] == ["x1"]


def test_malformed_document_raises_configuration_error(store: ConfigStore) -> None:
    store.root.mkdir(parents=True)
    (store.root / "questions.json").write_text('{"questions": [{"id": ""}]}', encoding="utf-8")

    with pytest.raises(ConfigurationError, match="questions.json"):
        store.questions()


def test_unknown_document_name(store: ConfigStore) -> None:
    with pytest.raises(NotFoundError):
        store.load("passwords")


@pytest.mark.parametrize(
    ("reply", "expected"),
    [("7", "7"), ("Score: 10/10", "10"), (" I would say 3. ", "3"), ("unclear", "unclear")],
)
def test_parse_coverage_score(reply: str, expected: str) -> None:
    assert parse_coverage_score(reply) == expected


def test_resolve_prompt_for_stored_question(store: ConfigStore) -> None:
    store.save("formatting-prompt", FormattingPromptConfig(prompt="Use bullets."))

    prompt = resolve_analysis_prompt(store, AnalyzeRequest(workspace_slug="acme", question_id="q3"))

    category = next(c for c in store.categories().categories if c.category_name == "team")
    assert prompt == (
        f"{category.prompt} \n Focus specifically on this question in your answer: "
        "What relevant experience do the founders bring? \n Use bullets."
    )


def test_resolve_prompt_precedence(store: ConfigStore) -> None:
    ad_hoc = resolve_analysis_prompt(
        store,
        AnalyzeRequest(workspace_slug="acme", ad_hoc_question="Who are the customers?", category_name="market"),
    )
    custom = resolve_analysis_prompt(store, AnalyzeRequest(workspace_slug="acme", custom_prompt="Say hi"))
    summary = resolve_analysis_prompt(store, AnalyzeRequest(workspace_slug="acme"))

    assert "Who are the customers?" in ad_hoc
    assert custom == "Say hi"
    assert summary == store.global_prompts().prompts.company_summary


def test_resolve_prompt_unknown_ids(store: ConfigStore) -> None:
    with pytest.raises(NotFoundError, match="Question not found"):
        resolve_analysis_prompt(store, AnalyzeRequest(workspace_slug="acme", question_id="nope"))
    with pytest.raises(NotFoundError, match="Category not found"):
        resolve_analysis_prompt(
            store, AnalyzeRequest(workspace_slug="acme", ad_hoc_question="?", category_name="nope")
        )


@pytest.mark.asyncio
async def test_coverage_sends_scoring_prompt(store: ConfigStore) -> None:
    client = StubWorkspaceClient(["8 - fairly detailed"])

    score = await QuestionAnalyzer(client, store).coverage("acme", "What is the burn rate?")

    assert score == "8"
    assert client.messages == [("acme", build_coverage_prompt("What is the burn rate?"))]


@pytest.mark.asyncio
async def test_run_all_is_sequential_and_records_failures(store: ConfigStore) -> None:
    client = StubWorkspaceClient(["9", "Large market.", TransportError("Workspace API error: 500")])

    results = await QuestionAnalyzer(client, store).run_all("acme", category_name="market")

    assert [item.question_id for item in results] == ["q1", "q2"]
    assert results[0].coverage_score == "9"
    assert results[0].result == "Large market."
    assert results[0].sources[0].document == "deck.pdf"
    assert results[1].error == "Workspace API error: 500"
    assert results[1].result is None
    assert len(client.messages) == 3
