from __future__ import annotations

import logging
from pathlib import Path

import typer
from dotenv import load_dotenv

from spotsave import pipeline
from spotsave.config import load_config, render_config, restore_config
from spotsave.errors import ConfigError, SpotSaveError
from spotsave.paths import config_path, log_path
from spotsave.reporter import RunReporter, build_summary

EXIT_OK = 0
EXIT_ERROR = 1

LOGGER = logging.getLogger("spotsave")
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"

app = typer.Typer(add_completion=False, help="Save Windows Spotlight wallpapers from the content delivery cache")

CONFIG_HELP = "Path to wspotsave.ini. Default: $SPOTSAVE_CONFIG or the per-user config folder"


def _resolve_config_path(value: str) -> Path:
    return Path(value).expanduser() if value else config_path()


def _attach_log_file(path: Path) -> logging.Handler | None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as exc:
        typer.echo(f"[SpotSave] Warning: failed to open log file {path}: {exc}", err=True)
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    LOGGER.addHandler(handler)
    LOGGER.setLevel(logging.INFO)
    return handler


def _detach_log_file(handler: logging.Handler | None) -> None:
    if handler is None:
        return
    LOGGER.removeHandler(handler)
    handler.close()


def run_sync(cfg_path: Path, *, dry_run: bool = False) -> int:
    handler = _attach_log_file(log_path(cfg_path))
    try:
        try:
            config, created = load_config(cfg_path)
        except ConfigError as exc:
            LOGGER.error("configuration error: %s", exc)
            typer.echo(f"[SpotSave] Configuration error: {exc}", err=True)
            return EXIT_ERROR
        if created:
            typer.echo(f"[SpotSave] restoring default config at {cfg_path}")

        try:
            report = pipeline.run(
                config.source_dir,
                config.output_dir,
                config.threshold,
                RunReporter(),
                dry_run=dry_run,
            )
        except SpotSaveError as exc:
            LOGGER.error("%s", exc)
            typer.echo(f"[SpotSave] Fatal error: {exc}", err=True)
            return EXIT_ERROR
    finally:
        _detach_log_file(handler)

    typer.echo("\n".join(build_summary(report)))
    return EXIT_OK


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: str = typer.Option("", "--config", "-c", help=CONFIG_HELP),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would be copied without writing anything"),
) -> None:
    """Without a command, behaves like `run`."""

    load_dotenv()
    if ctx.invoked_subcommand is None:
        raise typer.Exit(code=run_sync(_resolve_config_path(config), dry_run=dry_run))


@app.command()
def run(
    config: str = typer.Option("", "--config", "-c", help=CONFIG_HELP),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would be copied without writing anything"),
) -> None:
    raise typer.Exit(code=run_sync(_resolve_config_path(config), dry_run=dry_run))


@app.command()
def restore(config: str = typer.Option("", "--config", "-c", help=CONFIG_HELP)) -> None:
    """Overwrite the configuration file with the defaults."""

    cfg_path = _resolve_config_path(config)
    typer.echo("restoring default configuration")
    try:
        restore_config(cfg_path)
    except ConfigError as exc:
        typer.echo(f"[SpotSave] {exc}", err=True)
        raise typer.Exit(code=EXIT_ERROR)
    typer.echo(f"wrote {cfg_path}")


@app.command("show-config")
def show_config(config: str = typer.Option("", "--config", "-c", help=CONFIG_HELP)) -> None:
    cfg_path = _resolve_config_path(config)
    try:
        current, _created = load_config(cfg_path)
    except ConfigError as exc:
        typer.echo(f"[SpotSave] Configuration error: {exc}", err=True)
        raise typer.Exit(code=EXIT_ERROR)
    typer.echo(f"# {cfg_path}")
    typer.echo(render_config(current), nl=False)


if __name__ == "__main__":
    app()
