"""Persistent, ordered registry of analyzable figures."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import Database
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.core.logging import get_logger
from app.models.figures import FigureDefinition, FigureRegistrySnapshot
from app.models.tables import AnalyzableFigure, RegistryState

logger = get_logger(__name__)

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_STATE_ROW_ID = 1

DEFAULT_FIGURES: tuple[FigureDefinition, ...] = (
    FigureDefinition(
        id="revenue",
        name="Revenue",
        description=(
            "Total revenue, net sales, turnover - the total income from all sources "
            "before any expenses are deducted"
        ),
        enabled=True,
        order=1,
    ),
    FigureDefinition(
        id="profit",
        name="Profit",
        description=(
            "Net profit, net income, profit after tax - the final profit figure after all "
            "expenses, taxes, and costs have been deducted"
        ),
        enabled=True,
        order=2,
    ),
    FigureDefinition(
        id="costs",
        name="Costs",
        description=(
            "Total costs, expenses, cost of goods sold, operating expenses - all expenses "
            "incurred in running the business"
        ),
        enabled=True,
        order=3,
    ),
)


def slugify_figure_name(name: str) -> str:
    """Lower-case, collapse non-alphanumeric runs to ``_`` and trim underscores."""

    return _NON_ALNUM_RE.sub("_", name.lower()).strip("_")


def renumber(figures: Iterable[FigureDefinition]) -> list[FigureDefinition]:
    """Assign contiguous 1-based ``order`` values following list order."""

    return [figure.model_copy(update={"order": index}) for index, figure in enumerate(figures, start=1)]


def reorder_figures(figures: Sequence[FigureDefinition], figure_id: str, position: int) -> list[FigureDefinition]:
    """Move ``figure_id`` to ``position`` (clamped to ``[1, n]``) and renumber."""

    items = list(figures)
    index = _index_of(items, figure_id)
    target = min(max(position, 1), len(items))

    moved = items.pop(index)
    items.insert(target - 1, moved)
    return renumber(items)


def validate_figures(figures: Sequence[FigureDefinition]) -> list[FigureDefinition]:
    """Reject blank fields and duplicate ids, then renumber."""

    seen: set[str] = set()
    cleaned: list[FigureDefinition] = []

    for figure in figures:
        name = figure.name.strip()
        description = figure.description.strip()
        if not name or not description:
            raise ValidationError(f'Figure "{figure.id}" needs a name and a description.')
        if figure.id in seen:
            raise ValidationError(f'Duplicate figure id "{figure.id}".')
        seen.add(figure.id)
        cleaned.append(figure.model_copy(update={"name": name, "description": description}))

    return renumber(cleaned)


def _index_of(figures: Sequence[FigureDefinition], figure_id: str) -> int:
    for index, figure in enumerate(figures):
        if figure.id == figure_id:
            return index
    raise NotFoundError(f'Figure "{figure_id}" not found.')


def _to_definition(row: AnalyzableFigure) -> FigureDefinition:
    return FigureDefinition(
        id=row.id,
        name=row.name,
        description=row.description,
        enabled=row.enabled,
        order=row.position,
    )


class FigureRegistry:
    """Figure registry persisted as a full snapshot plus a revision counter.

    Every mutation loads the whole list, changes it in memory and rewrites the
    whole list inside one transaction. Callers may pass ``expected_revision``;
    a stale value fails the write with :class:`ConflictError`, while omitting
    it keeps last-writer-wins semantics.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    async def snapshot(self) -> FigureRegistrySnapshot:
        async with self._database.session() as session:
            async with session.begin():
                figures, revision = await self._load(session)
        return FigureRegistrySnapshot(figures=figures, revision=revision)

    async def list_figures(self) -> list[FigureDefinition]:
        """Return the full registry ordered by position."""

        return (await self.snapshot()).figures

    async def enabled_figures(self) -> list[FigureDefinition]:
        """Return the enabled figures; this is what prompts are built from."""

        return [figure for figure in await self.list_figures() if figure.enabled]

    async def replace_all(
        self,
        figures: Sequence[FigureDefinition],
        *,
        expected_revision: int | None = None,
    ) -> FigureRegistrySnapshot:
        cleaned = validate_figures(figures)
        return await self._mutate(lambda _current: cleaned, expected_revision, event="registry.replace_all")

    async def create(
        self,
        name: str,
        description: str,
        *,
        expected_revision: int | None = None,
    ) -> FigureDefinition:
        name = name.strip()
        description = description.strip()
        if not name or not description:
            raise ValidationError("Figure name and description are required.")

        figure_id = slugify_figure_name(name)
        if not figure_id:
            raise ValidationError(f'Cannot derive an id from figure name "{name}".')

        def _append(current: list[FigureDefinition]) -> list[FigureDefinition]:
            if any(figure.id == figure_id for figure in current):
                raise ValidationError(f'A figure with id "{figure_id}" already exists.')
            created = FigureDefinition(id=figure_id, name=name, description=description, enabled=True)
            return renumber([*current, created])

        snapshot = await self._mutate(_append, expected_revision, event="registry.create")
        return snapshot.figures[_index_of(snapshot.figures, figure_id)]

    async def update(
        self,
        figure_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        enabled: bool | None = None,
        expected_revision: int | None = None,
    ) -> FigureDefinition:
        patch: dict[str, object] = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Figure name must not be empty.")
            patch["name"] = name.strip()
        if description is not None:
            if not description.strip():
                raise ValidationError("Figure description must not be empty.")
            patch["description"] = description.strip()
        if enabled is not None:
            patch["enabled"] = enabled

        def _patch(current: list[FigureDefinition]) -> list[FigureDefinition]:
            index = _index_of(current, figure_id)
            updated = list(current)
            updated[index] = current[index].model_copy(update=patch)
            return updated

        snapshot = await self._mutate(_patch, expected_revision, event="registry.update")
        return snapshot.figures[_index_of(snapshot.figures, figure_id)]

    async def remove(self, figure_id: str, *, expected_revision: int | None = None) -> FigureRegistrySnapshot:
        def _drop(current: list[FigureDefinition]) -> list[FigureDefinition]:
            index = _index_of(current, figure_id)
            return renumber(current[:index] + current[index + 1 :])

        return await self._mutate(_drop, expected_revision, event="registry.remove")

    async def reorder(
        self,
        figure_id: str,
        position: int,
        *,
        expected_revision: int | None = None,
    ) -> FigureRegistrySnapshot:
        return await self._mutate(
            lambda current: reorder_figures(current, figure_id, position),
            expected_revision,
            event="registry.reorder",
        )

    async def _mutate(self, change, expected_revision: int | None, *, event: str) -> FigureRegistrySnapshot:
        async with self._database.session() as session:
            async with session.begin():
                current, revision = await self._load(session)
                if expected_revision is not None and expected_revision != revision:
                    raise ConflictError(
                        f"Figure registry changed (revision {revision}, expected {expected_revision}). Reload and retry."
                    )
                updated = change(current)
                new_revision = revision + 1
                await self._write(session, updated, new_revision)

        logger.info(event, revision=new_revision, figure_count=len(updated))
        return FigureRegistrySnapshot(figures=updated, revision=new_revision)

    async def _load(self, session: AsyncSession) -> tuple[list[FigureDefinition], int]:
        state = await session.get(RegistryState, _STATE_ROW_ID)
        if state is None:
            defaults = list(DEFAULT_FIGURES)
            await self._write(session, defaults, 0)
            logger.info("registry.seeded", figure_count=len(defaults))
            return defaults, 0

        rows = await session.scalars(select(AnalyzableFigure).order_by(AnalyzableFigure.position))
        return [_to_definition(row) for row in rows], state.revision

    async def _write(self, session: AsyncSession, figures: Sequence[FigureDefinition], revision: int) -> None:
        existing = await session.scalars(select(AnalyzableFigure))
        for row in existing.all():
            await session.delete(row)
        await session.flush()

        session.add_all(
            AnalyzableFigure(
                id=figure.id,
                name=figure.name,
                description=figure.description,
                enabled=figure.enabled,
                position=figure.order,
            )
            for figure in figures
        )

        state = await session.get(RegistryState, _STATE_ROW_ID)
        if state is None:
            session.add(RegistryState(id=_STATE_ROW_ID, revision=revision))
        else:
            state.revision = revision
        await session.flush()
