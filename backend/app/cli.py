"""Typer-based CLI for configuration and offline extraction."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from app.core.config import AppSettings
from app.core.db import Database, resolve_repo_path
from app.core.errors import AppError
from app.core.logging import setup_logging
from app.models.extraction import AnalysisMode, ExtractionErrorRecord
from app.services import export, extraction, figure_import
from app.services.adapters import PDF_MIME_TYPE, DirectUploadExtractor, UploadedFile
from app.services.config_store import ConfigStore
from app.services.prompts import generate_prompt
from app.services.registry import FigureRegistry

app = typer.Typer(help="Figure desk utilities: configuration, figure registry and PDF extraction")


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


async def _with_registry(settings: AppSettings, action):
    database = Database(settings.registry_db_url)
    try:
        await database.create_all()
        return await action(FigureRegistry(database))
    finally:
        await database.dispose()


def _resolve_pdfs(paths: list[Path]) -> list[Path]:
    resolved: list[Path] = []
    for path in paths:
        if path.is_dir():
            resolved.extend(sorted(p for p in path.rglob("*.pdf") if p.is_file()))
        elif path.is_file():
            resolved.append(path)
    return list(dict.fromkeys(resolved))


@app.command("init-config")
def init_config(
    config_dir: Optional[Path] = typer.Option(None, "--config-dir", help="Directory for the JSON documents."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace documents that already exist."),
):
    """Write default configuration documents that do not exist yet."""

    settings = AppSettings()
    store = ConfigStore(config_dir or resolve_repo_path(settings.config_dir))
    created = store.init_defaults(overwrite=overwrite)

    if created:
        for filename in created:
            typer.secho(f"Created {store.root / filename}", fg=typer.colors.GREEN)
    else:
        typer.echo("All configuration documents already exist, nothing to do.")


@app.command()
def template(
    output: Path = typer.Argument(Path("analyzable_figures_template.xlsx"), help="Where to write the workbook."),
):
    """Write the figure import template workbook."""

    output.write_bytes(figure_import.figure_template_workbook())
    typer.secho(f"Template written to {output}", fg=typer.colors.GREEN)


@app.command("import-figures")
def import_figures(
    workbook: Path = typer.Argument(..., exists=True, dir_okay=False, help="Excel file with Name/Instructions columns."),
):
    """Replace the figure registry with the rows of a workbook."""

    settings = AppSettings()
    try:
        figures = figure_import.read_figure_workbook(workbook.read_bytes())
        snapshot = asyncio.run(_with_registry(settings, lambda registry: registry.replace_all(figures)))
    except AppError as exc:
        _fail(exc.message)

    typer.secho(f"Imported {len(snapshot.figures)} figures (revision {snapshot.revision})", fg=typer.colors.GREEN)
    for figure in snapshot.figures:
        typer.echo(f"{figure.order:>3}. {figure.id}: {figure.name}")


@app.command()
def prompt(
    mode: AnalysisMode = typer.Option(AnalysisMode.SINGLE_PERIOD, "--mode", "-m", help="Result shape to ask for."),
    company: str = typer.Option("the company", "--company", "-c", help="Subject named in the prompt."),
    direct_upload: bool = typer.Option(False, "--direct-upload", help="Use the developer framing."),
    year: Optional[int] = typer.Option(None, "--year", help="Anchor year for time series (default: this year)."),
):
    """Print the prompt generated from the enabled registry figures."""

    settings = AppSettings()
    try:
        figures = asyncio.run(_with_registry(settings, lambda registry: registry.enabled_figures()))
        text = generate_prompt(
            figures,
            mode,
            company,
            for_direct_upload=direct_upload,
            current_year=year or extraction.current_year(),
        )
    except AppError as exc:
        _fail(exc.message)

    typer.echo(text)


@app.command()
def extract(
    input_paths: list[Path] = typer.Argument(..., help="PDF files or directories containing PDFs."),
    mode: AnalysisMode = typer.Option(AnalysisMode.SINGLE_PERIOD, "--mode", "-m", help="Result shape to ask for."),
    company: str = typer.Option("the company", "--company", "-c", help="Company name used for output files."),
    figures_workbook: Optional[Path] = typer.Option(
        None, "--figures", help="Use the figures of this workbook instead of the registry."
    ),
    xlsx: Optional[Path] = typer.Option(None, "--xlsx", help="Also write the spreadsheet export to this path."),
):
    """Send local PDFs straight to the model and print the extracted JSON."""

    settings = AppSettings()
    setup_logging(settings.log_level, json_logs=settings.log_json)

    pdfs = _resolve_pdfs(input_paths)
    if not pdfs:
        _fail("No PDF files found.")

    uploads = [UploadedFile(filename=path.name, content=path.read_bytes(), content_type=PDF_MIME_TYPE) for path in pdfs]

    async def _run():
        if figures_workbook is not None:
            figures = figure_import.read_figure_workbook(figures_workbook.read_bytes())
        else:
            figures = await _with_registry(settings, lambda registry: registry.enabled_figures())
        extractor = DirectUploadExtractor.from_settings(settings)
        return await extraction.extract_from_files(extractor, figures, uploads, subject_name=company, mode=mode)

    try:
        outcome = asyncio.run(_run())
    except AppError as exc:
        _fail(exc.message)

    if isinstance(outcome.result, ExtractionErrorRecord):
        typer.secho(outcome.result.extraction_error, fg=typer.colors.RED)
        typer.echo(outcome.result.raw_response)
        raise typer.Exit(code=2)

    typer.echo(export.export_json(outcome.result))

    if xlsx is not None:
        workbook = export.export_workbook(outcome.result, outcome.figures, current_year=extraction.current_year())
        xlsx.write_bytes(workbook)
        typer.secho(f"Spreadsheet written to {xlsx}", fg=typer.colors.GREEN)


if __name__ == "__main__":  # pragma: no cover
    app()
