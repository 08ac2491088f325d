"""Typer CLI entrypoint for applicant ingestion and directory sync."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from pydantic import ValidationError

from .config import ConfigManager
from .container import create_container
from .core import ConflictError, SyncMode
from .logging import configure_logging
from .pipeline import AuditLogger, IngestionSources, OutputWriter

app = typer.Typer(help="Multi-source applicant processing CLI.")


def _load_settings(config: Optional[Path]) -> dict[str, Any]:
    if not config:
        return {}
    try:
        loaded = ConfigManager.read(config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="config") from exc
    if not isinstance(loaded, dict):
        raise typer.BadParameter("Config file must be a YAML object", param_hint="config")
    return loaded


def _build(config: Optional[Path], log_level: str):
    settings = _load_settings(config)
    configure_logging(log_level)
    try:
        return create_container(settings=settings)
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid configuration: {exc}", param_hint="config") from exc


def _emit(payload: dict[str, Any], output: Optional[Path]) -> None:
    if output:
        OutputWriter().write(output, payload)
        typer.echo(f"Results saved to {output}.")
    else:
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


@app.command()
def ingest(
    cv: Path = typer.Option(..., exists=True, readable=True, dir_okay=False, help="Resume PDF path."),
    linkedin: Optional[str] = typer.Option(None, help="LinkedIn profile URL."),
    github: Optional[str] = typer.Option(None, help="GitHub profile URL."),
    name: Optional[str] = typer.Option(None, help="Applicant name, if known."),
    email: Optional[str] = typer.Option(None, help="Applicant email, if known."),
    role: Optional[str] = typer.Option(None, help="Role applied for."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    output: Optional[Path] = typer.Option(None, dir_okay=False, resolve_path=True, help="Output JSON path."),
    audit_log: Optional[Path] = typer.Option(None, dir_okay=False, help="Audit log output (JSONL)."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
) -> None:
    """Create an applicant and process every provided source."""
    container = _build(config, log_level)
    pipeline = container.pipeline()
    pipeline.with_audit_logger(AuditLogger(audit_log) if audit_log else None)

    async def _run():
        applicant = await pipeline.create_applicant(
            cv_path=str(cv), linkedin_url=linkedin, github_url=github,
            name=name, email=email, role=role,
        )
        async with container.ingestion_queue() as queue:
            future = queue.submit(applicant.id, IngestionSources(str(cv), linkedin, github))
            report = await future
        stored = await pipeline.store.get_applicant(applicant.id)
        return report, stored

    report, applicant = asyncio.run(_run())
    _emit({"report": report.to_dict(), "applicant": applicant.model_dump(mode="json")}, output)
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def sync(
    user: List[str] = typer.Option(..., "--user", help="Owner id; repeat for several users."),
    mode: SyncMode = typer.Option(SyncMode.INCREMENTAL, help="incremental or full."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, dir_okay=False, help="YAML config path."),
    output: Optional[Path] = typer.Option(None, dir_okay=False, resolve_path=True, help="Output JSON path."),
    log_level: str = typer.Option("INFO", help="Log level for structured logging."),
) -> None:
    """Mirror the candidate directory into the cache for one or more users."""
    container = _build(config, log_level)
    engine = container.sync_engine()
    store = container.store()

    async def _run() -> dict[str, Any]:
        if len(user) > 1:
            summary = await engine.sync_all(user)
            return summary.to_dict()
        report = await engine.sync(user[0], mode)
        entries = await store.list_cache_entries(user[0])
        return {
            "report": report.to_dict(),
            "entries": [entry.model_dump(mode="json") for entry in entries],
        }

    try:
        payload = asyncio.run(_run())
    except ConflictError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    _emit(payload, output)
    if payload.get("failed_syncs"):
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
