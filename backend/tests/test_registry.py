"""Tests for the persistent figure registry."""

from __future__ import annotations

import pytest

from app.core.db import Database
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models.figures import FigureDefinition
from app.services.registry import (
    DEFAULT_FIGURES,
    FigureRegistry,
    reorder_figures,
    slugify_figure_name,
    validate_figures,
)


def _figure(figure_id: str, order: int = 0, **overrides) -> FigureDefinition:
    values = {"id": figure_id, "name": figure_id.title(), "description": f"{figure_id} guidance", "order": order}
    values.update(overrides)
    return FigureDefinition(**values)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Revenue", "revenue"),
        ("Gross Margin %", "gross_margin"),
        ("  EBITDA (adj.) ", "ebitda_adj"),
        ("Cash & Equivalents", "cash_equivalents"),
    ],
)
def test_slugify_figure_name(name: str, expected: str) -> None:
    assert slugify_figure_name(name) == expected


@pytest.mark.parametrize(
    ("position", "expected"),
    [
        (1, ["c", "a", "b", "d"]),
        (2, ["a", "c", "b", "d"]),
        (4, ["a", "b", "d", "c"]),
        (0, ["c", "a", "b", "d"]),
        (99, ["a", "b", "d", "c"]),
    ],
)
def test_reorder_moves_and_clamps(position: int, expected: list[str]) -> None:
    figures = [_figure(figure_id, order) for order, figure_id in enumerate("abcd", start=1)]

    reordered = reorder_figures(figures, "c", position)

    assert [figure.id for figure in reordered] == expected
    assert [figure.order for figure in reordered] == [1, 2, 3, 4]


def test_reorder_unknown_id_raises() -> None:
    with pytest.raises(NotFoundError):
        reorder_figures([_figure("a", 1)], "missing", 1)


def test_validate_figures_rejects_duplicates_and_blanks() -> None:
    with pytest.raises(ValidationError, match="Duplicate"):
        validate_figures([_figure("a"), _figure("a")])

    with pytest.raises(ValidationError):
        validate_figures([_figure("a", name="   ")])


@pytest.mark.asyncio
async def test_fresh_registry_is_seeded_with_defaults(registry: FigureRegistry) -> None:
    snapshot = await registry.snapshot()

    assert snapshot.revision == 0
    assert [figure.id for figure in snapshot.figures] == ["revenue", "profit", "costs"]
    assert snapshot.figures == list(DEFAULT_FIGURES)


@pytest.mark.asyncio
async def test_create_appends_with_slug_id(registry: FigureRegistry) -> None:
    created = await registry.create("Gross Margin", "Gross profit divided by revenue")

    assert created.id == "gross_margin"
    assert created.order == 4
    assert created.enabled is True

    snapshot = await registry.snapshot()
    assert snapshot.revision == 1
    assert snapshot.figures[-1] == created


@pytest.mark.asyncio
async def test_create_rejects_duplicate_slug(registry: FigureRegistry) -> None:
    with pytest.raises(ValidationError):
        await registry.create("REVENUE", "Top line")

    assert (await registry.snapshot()).revision == 0


@pytest.mark.asyncio
async def test_update_changes_fields_in_place(registry: FigureRegistry) -> None:
    updated = await registry.update("profit", name="Net Profit", enabled=False)

    assert updated.id == "profit"
    assert updated.name == "Net Profit"
    assert updated.enabled is False
    assert updated.order == 2

    enabled_ids = [figure.id for figure in await registry.enabled_figures()]
    assert enabled_ids == ["revenue", "costs"]


@pytest.mark.asyncio
async def test_update_unknown_figure_raises(registry: FigureRegistry) -> None:
    with pytest.raises(NotFoundError):
        await registry.update("missing", name="Whatever")


@pytest.mark.asyncio
async def test_remove_renumbers(registry: FigureRegistry) -> None:
    snapshot = await registry.remove("revenue")

    assert [(figure.id, figure.order) for figure in snapshot.figures] == [("profit", 1), ("costs", 2)]
    assert await registry.list_figures() == snapshot.figures


@pytest.mark.asyncio
async def test_reorder_persists(registry: FigureRegistry) -> None:
    await registry.reorder("costs", 1)

    figures = await registry.list_figures()
    assert [(figure.id, figure.order) for figure in figures] == [("costs", 1), ("revenue", 2), ("profit", 3)]


@pytest.mark.asyncio
async def test_replace_all_renumbers_in_list_order(registry: FigureRegistry) -> None:
    snapshot = await registry.replace_all([_figure("ebitda", 7), _figure("arr", 3)])

    assert [(figure.id, figure.order) for figure in snapshot.figures] == [("ebitda", 1), ("arr", 2)]
    assert (await registry.snapshot()).figures == snapshot.figures


@pytest.mark.asyncio
async def test_replace_all_with_empty_list_is_allowed(registry: FigureRegistry) -> None:
    snapshot = await registry.replace_all([])

    assert snapshot.figures == []
    assert await registry.enabled_figures() == []


@pytest.mark.asyncio
async def test_stale_revision_is_rejected(registry: FigureRegistry) -> None:
    await registry.create("Burn Rate", "Monthly net cash outflow", expected_revision=0)

    with pytest.raises(ConflictError):
        await registry.remove("revenue", expected_revision=0)

    snapshot = await registry.snapshot()
    assert snapshot.revision == 1
    assert "revenue" in [figure.id for figure in snapshot.figures]


@pytest.mark.asyncio
async def test_registry_survives_reopen(tmp_path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'reopen.db'}"

    database = Database(url)
    await database.create_all()
    await FigureRegistry(database).create("Runway", "Months of cash remaining")
    await database.dispose()

    reopened = Database(url)
    try:
        await reopened.create_all()
        snapshot = await FigureRegistry(reopened).snapshot()
    finally:
        await reopened.dispose()

    assert snapshot.revision == 1
    assert [figure.id for figure in snapshot.figures] == ["revenue", "profit", "costs", "runway"]
