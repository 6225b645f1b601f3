"""JSON-file backed configuration documents (questions, categories, prompts)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.core.errors import ConfigurationError, NotFoundError
from app.core.logging import get_logger
from app.models.questions import (
    CategoriesConfig,
    Category,
    FormattingPromptConfig,
    GlobalPromptsConfig,
    GlobalPromptsDocument,
    Question,
    QuestionsConfig,
    SystemConfig,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_CATEGORIES = CategoriesConfig(
    categories=[
        Category(
            id="market",
            title="Market",
            category_name="market",
            prompt=(
                "You are evaluating the market opportunity of the company. Describe market size, growth and "
                "competitive dynamics using only the workspace documents."
            ),
        ),
        Category(
            id="team",
            title="Team",
            category_name="team",
            prompt=(
                "You are evaluating the founding and management team. Describe relevant experience, "
                "completeness of the team and key hires using only the workspace documents."
            ),
        ),
        Category(
            id="financials",
            title="Financials",
            category_name="financials",
            prompt=(
                "You are evaluating the financial position of the company. Describe revenue, costs, cash position "
                "and funding needs using only the workspace documents."
            ),
        ),
        Category(
            id="risks",
            title="Risks",
            category_name="risks",
            prompt=(
                "You are evaluating the main risks of investing in the company. Describe market, execution, "
                "regulatory and financing risks using only the workspace documents."
            ),
        ),
    ]
)

DEFAULT_QUESTIONS = QuestionsConfig(
    questions=[
        Question(id="q1", question="How large is the addressable market and how fast is it growing?", category="market"),
        Question(id="q2", question="Who are the main competitors and how is the company differentiated?", category="market"),
        Question(id="q3", question="What relevant experience do the founders bring?", category="team"),
        Question(id="q4", question="What are the current revenue and burn rate?", category="financials"),
        Question(id="q5", question="How much runway does the company have and how much is it raising?", category="financials"),
        Question(id="q6", question="What are the key risks and how are they mitigated?", category="risks"),
    ]
)

DEFAULT_GLOBAL_PROMPTS = GlobalPromptsDocument(
    prompts=GlobalPromptsConfig(
        company_summary=(
            "Summarize the company described in the workspace documents: what it does, its business model, "
            "stage, traction and key financial figures. Keep it factual and mention missing information."
        )
    )
)

DEFAULT_FORMATTING_PROMPT = FormattingPromptConfig(
    prompt=(
        "Answer in concise bullet points. Quote figures with their currency and period, and state clearly "
        "when the documents do not contain the information."
    )
)

DEFAULT_SYSTEM = SystemConfig(finance_enabled=True)

CONFIG_DOCUMENTS: dict[str, tuple[str, type[BaseModel], BaseModel]] = {
    "questions": ("questions.json", QuestionsConfig, DEFAULT_QUESTIONS),
    "categories": ("categories.json", CategoriesConfig, DEFAULT_CATEGORIES),
    "global-prompts": ("global_prompts.json", GlobalPromptsDocument, DEFAULT_GLOBAL_PROMPTS),
    "formatting-prompt": ("formatting_prompt.json", FormattingPromptConfig, DEFAULT_FORMATTING_PROMPT),
    "system": ("system.json", SystemConfig, DEFAULT_SYSTEM),
}


class ConfigStore:
    """Read and write the JSON configuration documents under one directory.

    Missing files resolve to the shipped defaults; a present but malformed
    file is a :class:`ConfigurationError`.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def _entry(self, name: str) -> tuple[str, type[BaseModel], BaseModel]:
        try:
            return CONFIG_DOCUMENTS[name]
        except KeyError as exc:
            raise NotFoundError(f'Unknown configuration document "{name}".') from exc

    def path_for(self, name: str) -> Path:
        filename, _, _ = self._entry(name)
        return self.root / filename

    def load(self, name: str) -> BaseModel:
        filename, model, default = self._entry(name)
        path = self.root / filename
        if not path.is_file():
            return default.model_copy(deep=True)

        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except PydanticValidationError as exc:
            logger.warning("config.document.invalid", document=name, path=str(path), errors=exc.error_count())
            raise ConfigurationError(f"Configuration file {filename} is invalid: {exc.error_count()} error(s).") from exc

    def save(self, name: str, document: BaseModel) -> BaseModel:
        filename, model, _ = self._entry(name)
        validated = model.model_validate(document.model_dump(by_alias=True))

        self.root.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(validated.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)
        (self.root / filename).write_text(payload + "\n", encoding="utf-8")

        logger.info("config.document.saved", document=name)
        return validated

    def init_defaults(self, *, overwrite: bool = False) -> list[str]:
        """Write default documents that do not exist yet; returns the created filenames."""

        created: list[str] = []
        for name, (filename, _, default) in CONFIG_DOCUMENTS.items():
            if (self.root / filename).exists() and not overwrite:
                logger.info("config.document.exists", document=name)
                continue
            self.save(name, default)
            created.append(filename)
        return created

    def questions(self) -> QuestionsConfig:
        return _as(self.load("questions"), QuestionsConfig)

    def categories(self) -> CategoriesConfig:
        return _as(self.load("categories"), CategoriesConfig)

    def global_prompts(self) -> GlobalPromptsDocument:
        return _as(self.load("global-prompts"), GlobalPromptsDocument)

    def formatting_prompt(self) -> FormattingPromptConfig:
        return _as(self.load("formatting-prompt"), FormattingPromptConfig)

    def system(self) -> SystemConfig:
        return _as(self.load("system"), SystemConfig)


def _as(document: BaseModel, model: type[ModelT]) -> ModelT:
    if not isinstance(document, model):
        raise ConfigurationError(f"Expected {model.__name__}, got {type(document).__name__}.")
    return document
