# scrape_api/cli.py
"""
Command-line client for the Browse.ai job scraper.

- run:   submit a scrape, poll until the jobs are ready, print them ranked
         (keyword matches first, newest first) and optionally export xlsx
- rank:  rank a saved task response offline
- serve: start the proxy API with uvicorn
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .clients.browse_ai import BrowseAIClient
from .config import settings
from .errors import MissingCredentialsError
from .export.xlsx import write_xlsx
from .logging_config import configure_logging
from .schemas import RankedJobList
from .services.extractor import captured_lists, extract
from .services.ranking import normalize
from .session import Failed, Ready, ScrapeSession, SessionState, TimedOut

app = typer.Typer(help="Browse.ai job scraper")

PLACEHOLDER = "-"


def _print_ranked(ranked: RankedJobList) -> None:
    typer.echo(
        f"{len(ranked.jobs)} jobs, {len(ranked.matched)} matching "
        f"[{', '.join(ranked.keywords) or 'no keywords'}]"
    )
    matched_ids = {id(j) for j in ranked.matched}
    for n, job in enumerate(ranked.jobs, start=1):
        star = "*" if id(job) in matched_ids else " "
        cols = (job.title, job.company, job.location, job.employment_type, job.posted)
        typer.echo(f"{n:>3}. {star} " + " | ".join(c or PLACEHOLDER for c in cols))


async def _run_session(url: str, limit: int, keywords: str, interval: float, max_attempts: int) -> ScrapeSession:
    client = BrowseAIClient.from_settings(settings)
    scheduler = AsyncIOScheduler()
    scheduler.start()
    session = ScrapeSession(
        client,
        scheduler,
        keywords=keywords,
        interval_seconds=interval,
        max_attempts=max_attempts,
    )
    try:
        state = await session.start(url, limit)
        if session.is_polling:
            typer.echo(f"Task {state.task_id} started; checking every {interval:g}s (max {max_attempts} checks)...")
            await session.wait()
        return session
    finally:
        session.close()
        scheduler.shutdown(wait=False)


def _report_failure(state: SessionState) -> None:
    if isinstance(state, TimedOut):
        typer.echo(f"{state.error.message}", err=True)
    elif isinstance(state, Failed):
        err = state.error
        typer.echo(f"Scrape failed (task {state.task_id or PLACEHOLDER}): {err}", err=True)
        details = getattr(err, "body", None)
        if details is not None:
            typer.echo(json.dumps(details, indent=2, ensure_ascii=False), err=True)


@app.command()
def run(
    url: str = typer.Option(settings.DEFAULT_ORIGIN_URL, "--url", help="Job board page the robot opens"),
    limit: int = typer.Option(settings.DEFAULT_RECORD_LIMIT, "--limit", help="Records to capture (1-100)"),
    keywords: str = typer.Option(settings.DEFAULT_KEYWORDS, "--keywords", help="Comma-separated title keywords"),
    export_dir: Optional[Path] = typer.Option(None, "--export", help="Write an xlsx file into this directory"),
    interval: float = typer.Option(settings.POLL_INTERVAL_SECONDS, "--interval", help="Seconds between checks"),
    max_attempts: int = typer.Option(settings.POLL_MAX_ATTEMPTS, "--max-attempts", help="Checks before giving up"),
):
    """
    Submit → poll → extract → rank. Exits non-zero on validation errors,
    provider failures and timeouts.
    """
    configure_logging()
    try:
        session = asyncio.run(_run_session(url, limit, keywords, interval, max_attempts))
    except MissingCredentialsError as e:
        raise SystemExit(f"{e.message} Set them in the environment or .env.")

    state = session.state
    if not isinstance(state, Ready):
        _report_failure(state)
        raise typer.Exit(code=1)

    _print_ranked(state.ranked)
    if export_dir is not None:
        path = write_xlsx(state.ranked.jobs, export_dir)
        typer.echo(f"Saved {path}")


@app.command()
def rank(
    payload_file: Path = typer.Argument(..., help="Saved task response (or capturedLists) JSON"),
    keywords: str = typer.Option(settings.DEFAULT_KEYWORDS, "--keywords"),
    export_dir: Optional[Path] = typer.Option(None, "--export"),
):
    """Rank a saved Browse.ai task response without calling the API."""
    payload = json.loads(payload_file.read_text(encoding="utf-8"))
    # accept the proxy's {"data": ...} wrapper, a raw task response, or bare capturedLists
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    captured = captured_lists(payload) or payload
    ranked = normalize(extract(captured), keywords)
    _print_ranked(ranked)
    if export_dir is not None:
        typer.echo(f"Saved {write_xlsx(ranked.jobs, export_dir)}")


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(8000, "--port"),
    reload: bool = typer.Option(False, "--reload"),
):
    """Run the proxy API."""
    import uvicorn

    uvicorn.run("scrape_api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
