from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from vouch import __version__
from vouch.config import TomlTable, load_settings
from vouch.exceptions import ConfigError
from vouch.logging import configure_logging, parse_level
from vouch.report import parse_format, render
from vouch.runner import run_check

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Find tests that never assert anything.")


def _cli_overrides(
    custom_assertion_methods: Optional[str],
    no_pytest_collection: bool,
) -> TomlTable:
    overrides: TomlTable = {}
    if custom_assertion_methods is not None:
        overrides["custom_assertion_methods"] = custom_assertion_methods
    if no_pytest_collection:
        overrides["pytest_collection"] = False
    return overrides


@app.command()
def check(
    paths: List[Path] = typer.Argument(None, help="Test files or directories (default: root)."),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    custom_assertion_methods: Optional[str] = typer.Option(
        None,
        "--custom-assertion-methods",
        help="Comma separated 'package.Type#method' entries; a trailing '*' matches by prefix.",
    ),
    output_format: str = typer.Option("text", "--format", help="text or json"),
    jobs: int = typer.Option(1, "--jobs", min=1),
    no_pytest_collection: bool = typer.Option(
        False,
        "--no-pytest-collection",
        help="Only treat marked functions and TestCase methods as tests.",
    ),
    log_level: str = typer.Option("WARNING", "--log-level"),
    debug: bool = typer.Option(False, "--debug"),
) -> None:
    """Report test functions that contain no assertion."""
    try:
        level = parse_level(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc
    configure_logging(level=level, debug_mode=debug)

    try:
        fmt = parse_format(output_format)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc), param_hint="--format") from exc
    try:
        settings = load_settings(
            root=root,
            config_path=config,
            overrides=_cli_overrides(custom_assertion_methods, no_pytest_collection),
        )
    except ConfigError as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc

    targets = list(paths) if paths else [root]
    logger.debug("Checking %s with %s", [str(p) for p in targets], settings)
    result = run_check(targets, settings, project_root=root, jobs=jobs)
    output = render(result, fmt)
    if output:
        typer.echo(output)
    raise typer.Exit(code=result.exit_code)


@app.command()
def version() -> None:
    """Print the installed version."""
    typer.echo(__version__)
