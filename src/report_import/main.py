from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from report_import.config import settings
from report_import.data.import_service import ImportOrchestrator
from report_import.data.introspect import SchemaIntrospector
from report_import.data.storage import Database
from report_import.domain.models import ReportPayload
from report_import.exceptions import ReportImportError
from report_import.logging_setup import setup_logging

cli = typer.Typer(help="Report Import CLI (exported test report normalization)")
logger = logging.getLogger("report_import")


def _use_db(db_path: Optional[Path]) -> None:
    from report_import.api import deps

    if db_path:
        settings.storage.backend = "sqlite"
        settings.storage.db_path = db_path
        deps.reset_instances()


def _orchestrator(cache: bool = False) -> ImportOrchestrator:
    from report_import.api import deps

    store = deps.get_store()
    return ImportOrchestrator(
        store=store,
        registry=deps.get_registry(),
        introspector=SchemaIntrospector(store, cache=cache),
    )


@cli.command()
def version() -> None:
    """Print runtime version."""
    typer.echo(f"{settings.app.name} {settings.app.version}")


@cli.command("import-file")
def import_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Exported report JSON"),
    job_id: str = typer.Option(..., "--job", "-j", help="Job the report belongs to"),
    user_id: str = typer.Option(..., "--user", "-u", help="Acting user id"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database (overrides settings)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Import a single exported report."""
    setup_logging(verbose)
    _use_db(db_path)
    result = _orchestrator().import_file(path, job_id, user_id)
    typer.echo(json.dumps(result.model_dump(), indent=2, ensure_ascii=False))
    if not result.success:
        raise typer.Exit(code=1)


@cli.command("import-dir")
def import_dir(
    directory: Path = typer.Argument(..., exists=True, file_okay=False, help="Folder of exported reports"),
    job_id: str = typer.Option(..., "--job", "-j", help="Job the reports belong to"),
    user_id: str = typer.Option(..., "--user", "-u", help="Acting user id"),
    pattern: str = typer.Option("*.json", help="Glob for report files"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database (overrides settings)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Import every matching report in a folder as one batch."""
    setup_logging(verbose)
    _use_db(db_path)
    files = sorted(p for p in directory.glob(pattern) if p.is_file())
    if not files:
        logger.warning(f"No files matching {pattern} in {directory}")
    report = _orchestrator(cache=settings.imports.cache_schemas).batch_import(
        ((p.name, p) for p in files), job_id, user_id
    )
    for item in report.successful:
        typer.echo(f"OK    {item.source} -> {item.result.table} ({item.result.report_id})")
    for item in report.failed:
        typer.echo(f"FAIL  {item.source}: [{item.result.error_code}] {item.result.error}")
    typer.echo(f"{len(report.successful)}/{report.total} imported")
    if report.failed:
        raise typer.Exit(code=1)


@cli.command()
def explain(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Exported report JSON"),
    show_record: bool = typer.Option(False, "--record", help="Print the extracted canonical record"),
) -> None:
    """Show which importers match a report and which one wins."""
    from report_import.api import deps

    raw = json.loads(path.read_text(encoding="utf-8"))
    payload = ReportPayload.from_raw(raw)
    registry = deps.get_registry()
    typer.echo(f"type: {payload.type_string or '<empty>'}")
    for importer in registry.candidates(payload):
        typer.echo(f"  candidate: {importer.slug} -> {importer.table}")
    try:
        chosen = registry.dispatch(payload)
    except ReportImportError as exc:
        typer.echo(f"no importer: {exc}")
        raise typer.Exit(code=1)
    typer.echo(f"selected: {chosen.slug} (route {chosen.route_slug(payload)}) -> {chosen.table}")
    if show_record:
        typer.echo(json.dumps(chosen.extract(payload), indent=2, ensure_ascii=False))


@cli.command("list-importers")
def list_importers() -> None:
    """List importers in dispatch order."""
    from report_import.api import deps

    for position, importer in enumerate(deps.get_registry().importers, start=1):
        typer.echo(f"{position:>2}. {importer.slug:<70} {importer.table}")


@cli.command("init-db")
def init_db(
    layout: str = typer.Option("blob", help="blob | partitioned"),
    db_path: Optional[Path] = typer.Option(None, "--db", help="SQLite database (overrides settings)"),
) -> None:
    """Create local report tables for every importer."""
    from report_import.api import deps

    if layout not in ("blob", "partitioned"):
        raise typer.BadParameter("layout must be 'blob' or 'partitioned'")
    db = Database(db_path or settings.storage.db_path)
    tables = db.provision_report_tables([importer.spec for importer in deps.get_registry().importers], layout=layout)
    typer.echo(f"Provisioned {len(tables)} tables in {db.db_path} ({layout})")


@cli.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind"),
    port: int = typer.Option(8000, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload for local development"),
) -> None:
    """Run the import API server."""
    uvicorn.run(
        "report_import.api.main:app",
        host=host,
        port=port,
        reload=reload,
        app_dir="src",
    )


if __name__ == "__main__":
    cli()
