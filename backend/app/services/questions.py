"""Question analysis against a workspace."""

from __future__ import annotations

import re

from app.core.errors import AppError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.questions import AnalysisAnswer, AnalyzeRequest, Category, QuestionRunResult
from app.services.config_store import ConfigStore
from app.services.workspace_client import WorkspaceClient

logger = get_logger(__name__)

COVERAGE_PROMPT = (
    "How well does the documents provide information for the question? Answer in scale 1 to 10. "
    "1=Not at all, 5=Some info found but not comprehensive, 10=Comprehensive. Answer just the number. "
    'Question: "{question}"'
)

_SCORE_RE = re.compile(r"\b(10|[1-9])\b")


def build_question_prompt(category: Category, question: str, formatting_prompt: str) -> str:
    return f"{category.prompt} \n Focus specifically on this question in your answer: {question} \n {formatting_prompt}"


def build_coverage_prompt(question: str) -> str:
    return COVERAGE_PROMPT.format(question=question)


def parse_coverage_score(text: str) -> str:
    """Return the 1-10 score from a coverage reply, or the trimmed reply if none is found."""

    match = _SCORE_RE.search(text)
    return match.group(1) if match else text.strip()


def _category_by_name(store: ConfigStore, category_name: str) -> Category:
    for category in store.categories().categories:
        if category.category_name == category_name:
            return category
    raise NotFoundError("Category not found")


def resolve_analysis_prompt(store: ConfigStore, request: AnalyzeRequest) -> str:
    """Pick the prompt for a request: stored question, ad-hoc question, custom prompt, else company summary."""

    formatting = store.formatting_prompt().prompt

    if request.question_id:
        question = next((q for q in store.questions().questions if q.id == request.question_id), None)
        if question is None:
            raise NotFoundError("Question not found")
        return build_question_prompt(_category_by_name(store, question.category), question.question, formatting)

    if request.ad_hoc_question and request.category_name:
        category = _category_by_name(store, request.category_name)
        return build_question_prompt(category, request.ad_hoc_question, formatting)

    if request.custom_prompt:
        return request.custom_prompt

    summary = store.global_prompts().prompts.company_summary.strip()
    if not summary:
        raise ValidationError("No company summary prompt configured.")
    return summary


class QuestionAnalyzer:
    """Runs analysis prompts against a workspace, one request at a time."""

    def __init__(self, client: WorkspaceClient, store: ConfigStore) -> None:
        self._client = client
        self._store = store

    async def analyze(self, request: AnalyzeRequest) -> AnalysisAnswer:
        prompt = resolve_analysis_prompt(self._store, request)
        logger.debug("analysis.prompt", workspace=request.workspace_slug, prompt=prompt)

        reply = await self._client.send_message(request.workspace_slug, prompt)
        return AnalysisAnswer(prompt=prompt, text_response=reply.text_response, sources=reply.sources)

    async def coverage(self, workspace_slug: str, question: str) -> str:
        reply = await self._client.send_message(workspace_slug, build_coverage_prompt(question))
        return parse_coverage_score(reply.text_response)

    async def run_all(self, workspace_slug: str, *, category_name: str | None = None) -> list[QuestionRunResult]:
        """Score coverage and answer every question strictly one after another."""

        questions = [
            question
            for question in self._store.questions().questions
            if category_name is None or question.category == category_name
        ]
        results: list[QuestionRunResult] = []

        for question in questions:
            item = QuestionRunResult(question_id=question.id, question=question.question)
            try:
                item.coverage_score = await self.coverage(workspace_slug, question.question)
                answer = await self.analyze(AnalyzeRequest(workspace_slug=workspace_slug, question_id=question.id))
            except AppError as exc:
                logger.warning("analysis.run_all.question_failed", question_id=question.id, error=exc.message)
                item.error = exc.message
            else:
                item.result = answer.text_response
                item.sources = answer.sources
            results.append(item)

        logger.info(
            "analysis.run_all.completed",
            workspace=workspace_slug,
            questions=len(results),
            failed=sum(1 for item in results if item.error),
        )
        return results
