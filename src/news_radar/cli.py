"""Command-line entry points for the news radar service."""

import json
import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import BaseModel
from rich import print as rprint

from .config import configure_logging, get_settings
from .db import build_engine, build_session_factory, drop_db, init_db
from .intent import IntentClassifier
from .llm import build_language_understanding
from .loader import load_file
from .repository import ArticleRepository
from .service import NewsService

app = typer.Typer(help="Serve and maintain the location-aware news API.")


def _to_plain(value: Any) -> Any:
    """Convert pydantic models and date-like objects into JSON-serializable primitives."""
    if isinstance(value, BaseModel):
        return _to_plain(value.model_dump(mode="json", exclude_none=True))
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_to_plain(item) for item in value]
    return value


def _repository() -> ArticleRepository:
    settings = get_settings()
    engine = build_engine(settings.database_url, echo=settings.database_echo)
    init_db(engine)
    return ArticleRepository(build_session_factory(engine))


@app.callback()
def main_callback() -> None:
    configure_logging(get_settings().log_level)


@app.command("serve")
def serve_command(
    host: str = typer.Option(
        os.getenv("NEWS_RADAR_HOST", "0.0.0.0"), help="Interface to bind."
    ),
    port: int = typer.Option(int(os.getenv("NEWS_RADAR_PORT", "8000")), help="Port."),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes."),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("news_radar.server:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_command(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables first."),
):
    """Create the articles and user_events tables."""
    settings = get_settings()
    engine = build_engine(settings.database_url, echo=settings.database_echo)
    if drop:
        drop_db(engine)
        rprint("[yellow]Dropped existing tables[/yellow]")
    init_db(engine)
    rprint(f"[green]Schema ready at {engine.url.render_as_string(hide_password=True)}[/green]")


@app.command("load")
def load_command(
    path: Path = typer.Argument(..., help="JSON file holding an array of articles."),
    events: bool = typer.Option(
        True, "--events/--no-events", help="Also generate sample user events."
    ),
):
    """Insert seed articles (existing ids are skipped) and optional sample events."""
    if not path.exists():
        raise typer.BadParameter(f"{path} does not exist.")
    report = load_file(_repository(), path, with_events=events)
    for idx, reason in report.invalid:
        rprint(f"[red]Skipped #{idx}: {reason}[/red]")
    rprint(
        f"[green]Inserted {report.inserted} of {len(report.articles)} valid articles; "
        f"{report.events} sample events.[/green]"
    )


@app.command("classify")
def classify_command(
    query: str = typer.Argument(..., help="Free-text news query."),
    location: str = typer.Option("", "--location", "-l", help="Location hint."),
):
    """Show how a query would be routed."""
    classifier = IntentClassifier(build_language_understanding(get_settings()))
    intent = classifier.classify(query, location)
    typer.echo(json.dumps(_to_plain(intent), ensure_ascii=False, indent=2))


@app.command("trending")
def trending_command(
    lat: float = typer.Option(..., help="Latitude of the centre point."),
    lon: float = typer.Option(..., help="Longitude of the centre point."),
    radius: float = typer.Option(50.0, help="Radius in kilometres."),
    limit: int = typer.Option(5, help="Maximum number of articles."),
    hours_back: int = typer.Option(24, "--hours-back", help="Event window in hours."),
    out: Optional[Path] = typer.Option(
        None, "--out", "-o", help="Optional path to write the JSON result."
    ),
):
    """Print the trending articles around a point."""
    if limit < 1:
        raise typer.BadParameter("limit must be >= 1.")
    service = NewsService.from_settings()
    articles = service.trending(
        lat, lon, radius=radius, limit=limit, hours_back=hours_back
    )
    payload = {"articles": _to_plain(articles)}
    if out:
        out.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        rprint(f"[cyan]Wrote output to {out}[/cyan]")
        return
    for item in articles:
        rprint(f"[green]{item.trending_score:8.2f}[/green] {item.title} ({item.source_name})")


def main():
    app()


if __name__ == "__main__":
    main()
