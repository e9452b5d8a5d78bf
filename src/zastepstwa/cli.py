"""Command-line entry points for the substitution mirror."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from zastepstwa.api import create_app, result_payload
from zastepstwa.config import ConfigError, dump_example_config, load_config
from zastepstwa.results import ExplicitDate, Ready, RelativeDate
from zastepstwa.services.orchestrator import CacheOrchestrator
from zastepstwa.util.logging import configure_logging

app = typer.Typer(add_completion=False, help="Substitution PDF mirror CLI")


def _load(config_path: Optional[Path]):
    try:
        return load_config(config_path)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc


@app.command()
def serve(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a YAML/TOML/JSON config"),
    host: Optional[str] = typer.Option(None, help="Bind address (default from config)"),
    port: Optional[int] = typer.Option(None, help="Bind port (default from config)"),
) -> None:
    """Run the HTTP API."""

    import uvicorn

    cfg = _load(config_path)
    logger = configure_logging(log_path=cfg.runtime.log_path)
    if cfg.runtime.maintenance:
        logger.warning("Maintenance mode is on; every request will be answered as unavailable")
    logger.info("Serving %s from %s", cfg.upstream.url_pattern, cfg.cache.directory)
    uvicorn.run(create_app(cfg), host=host or cfg.runtime.host, port=port or cfg.runtime.port)


@app.command()
def fetch(
    day: Optional[int] = typer.Option(None, help="Day of month"),
    month: Optional[int] = typer.Option(None, help="Month number"),
    year: Optional[int] = typer.Option(None, help="Four-digit year"),
    when: Optional[str] = typer.Option(None, help="Relative date: today or tomorrow"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to a YAML/TOML/JSON config"),
) -> None:
    """Resolve one request through the cache and print the JSON result."""

    explicit = (day, month, year)
    if when is not None and any(part is not None for part in explicit):
        raise typer.BadParameter("Use either --when or --day/--month/--year, not both.")
    if when is None and any(part is None for part in explicit):
        raise typer.BadParameter("Provide --day, --month and --year, or --when.")

    cfg = _load(config_path)
    configure_logging(log_path=cfg.runtime.log_path)
    orchestrator = CacheOrchestrator.from_config(cfg)

    if when is not None:
        request = RelativeDate(when=when)
    else:
        request = ExplicitDate(day=day, month=month, year=year)
    result = orchestrator.resolve_request(request)

    payload = result_payload(result, base_url=cfg.runtime.public_base_url)
    if isinstance(result, Ready):
        payload["path"] = str(result.path)
        payload["stale"] = result.stale
    typer.echo(json.dumps(payload))
    if not isinstance(result, Ready):
        raise typer.Exit(code=1)


@app.command("dump-config")
def dump_config(dest: Path = typer.Argument(..., help="Destination YAML or JSON file")) -> None:
    """Write the default configuration to DEST."""

    try:
        dump_example_config(dest)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(f"Wrote {dest}")


def main() -> None:
    app()


__all__ = ["main", "app"]
