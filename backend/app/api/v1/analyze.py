"""Question analysis endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api import deps
from app.models.questions import AnalysisAnswer, AnalyzeRequest, CoverageRequest, RunAllRequest, RunAllResponse
from app.services.questions import QuestionAnalyzer

router = APIRouter()


@router.post("/analyze", response_model=AnalysisAnswer, summary="Answer one question or prompt from a workspace.")
async def analyze(
    request: AnalyzeRequest,
    analyzer: QuestionAnalyzer = Depends(deps.get_question_analyzer),
) -> AnalysisAnswer:
    return await analyzer.analyze(request)


@router.post("/analyze/coverage", summary="Score how well the documents cover a question (1-10).")
async def coverage(
    request: CoverageRequest,
    analyzer: QuestionAnalyzer = Depends(deps.get_question_analyzer),
) -> dict[str, str]:
    score = await analyzer.coverage(request.workspace_slug, request.question)
    return {"question": request.question, "coverage_score": score}


@router.post("/analyze/run-all", response_model=RunAllResponse, summary="Run every configured question in order.")
async def run_all(
    request: RunAllRequest,
    analyzer: QuestionAnalyzer = Depends(deps.get_question_analyzer),
) -> RunAllResponse:
    results = await analyzer.run_all(request.workspace_slug, category_name=request.category_name)
    return RunAllResponse(workspace_slug=request.workspace_slug, results=results)
