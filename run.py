import json
import os
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger
from pydantic import ValidationError

from labreport.commons.logger import setup_logging
from labreport.commons.report_engine import DEFAULT_SETTINGS, ReportEngine
from labreport.helpers.catalog import CatalogError
from labreport.services.report_service import ReportService

app = typer.Typer(add_completion=False, help="Lab report composition")

SettingsOpt = typer.Option(str(DEFAULT_SETTINGS), "--settings", help="path to settings.yaml")


def _engine(settings: str) -> ReportEngine:
    try:
        engine = ReportEngine(settings)
    except (OSError, CatalogError, ValidationError) as ex:
        setup_logging(None, os.getenv("LOG_LEVEL", "INFO"))
        logger.error(f"Invalid configuration {settings}: {ex}")
        raise typer.Exit(code=1)
    log = engine.settings.logging
    setup_logging(log.root, os.getenv("LOG_LEVEL", log.level))
    return engine


@app.command()
def compose(
    report: Path = typer.Argument(..., exists=True, dir_okay=False, help="report JSON"),
    settings: str = SettingsOpt,
    page_size: Optional[int] = typer.Option(None, min=1, help="rows per page"),
):
    """Compose a stored report into print-ready lines and print them as JSON."""
    engine = _engine(settings)
    svc = ReportService(engine)
    try:
        payload = json.loads(report.read_text(encoding="utf-8"))
        out = svc.render_payload(payload, page_size)
    except (json.JSONDecodeError, ValidationError) as ex:
        logger.error(f"Could not read report {report}: {ex}")
        raise typer.Exit(code=1)
    typer.echo(json.dumps(out, ensure_ascii=False, indent=2))


@app.command("next-sid")
def next_sid(
    values: List[str] = typer.Argument(None, help="existing SIDs"),
    settings: str = SettingsOpt,
):
    """Print the SID that follows the highest existing one."""
    typer.echo(_engine(settings).next_sid(values or []))


@app.command("next-patient-id")
def next_patient_id(
    ids: List[str] = typer.Argument(None, help="existing patient ids"),
    settings: str = SettingsOpt,
):
    """Print the patient id that follows the highest existing one."""
    typer.echo(_engine(settings).next_patient_id(ids or []))


if __name__ == "__main__":
    app()
