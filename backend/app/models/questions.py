"""Pydantic schemas for analysis questions and prompt configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .extraction import SourceCitation


class Question(BaseModel):
    id: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, description="categoryName of the owning category.")


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str
    prompt: str
    category_name: str = Field(..., min_length=1, alias="categoryName")


class QuestionsConfig(BaseModel):
    questions: list[Question] = Field(default_factory=list)


class CategoriesConfig(BaseModel):
    categories: list[Category] = Field(default_factory=list)


class GlobalPromptsConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    company_summary: str = Field(default="", alias="companySummary")


class GlobalPromptsDocument(BaseModel):
    prompts: GlobalPromptsConfig = Field(default_factory=GlobalPromptsConfig)


class FormattingPromptConfig(BaseModel):
    prompt: str = ""


class SystemConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    finance_enabled: bool = Field(default=True, alias="financeEnabled")


class AnalyzeRequest(BaseModel):
    workspace_slug: str = Field(..., min_length=1)
    question_id: str | None = None
    ad_hoc_question: str | None = None
    category_name: str | None = None
    custom_prompt: str | None = None


class CoverageRequest(BaseModel):
    workspace_slug: str = Field(..., min_length=1)
    question: str = Field(..., min_length=1)


class RunAllRequest(BaseModel):
    workspace_slug: str = Field(..., min_length=1)
    category_name: str | None = None


class AnalysisAnswer(BaseModel):
    prompt: str
    text_response: str
    sources: list[SourceCitation] = Field(default_factory=list)


class QuestionRunResult(BaseModel):
    question_id: str
    question: str
    coverage_score: str | None = None
    result: str | None = None
    sources: list[SourceCitation] = Field(default_factory=list)
    error: str | None = None


class RunAllResponse(BaseModel):
    workspace_slug: str
    results: list[QuestionRunResult]
