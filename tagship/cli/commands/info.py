"""Print values the pipeline derives, for use in other CI steps."""

from __future__ import annotations

from pathlib import Path

import typer

from tagship.cli.context import build_context, exit_with
from tagship.core.errors import ErrorCode
from tagship.core.result import Err
from tagship.release.formula import download_url
from tagship.release.pipeline import PipelineSettings
from tagship.release.version import extract_version


def version(
    ref: str = typer.Argument(..., help="Tag ref, e.g. refs/tags/v1.2.3"),
) -> None:
    """Print the version for a tag ref."""
    result = extract_version(ref)
    if isinstance(result, Err):
        exit_with(result.error.pretty(), code=ErrorCode.USER_ERROR)
    typer.echo(result.value)


def url(
    release_version: str = typer.Argument(..., metavar="VERSION", help="Release version"),
    project_root: Path = typer.Option(Path("."), "--project-root", help="Project root"),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: <project-root>/tagship.toml)"
    ),
) -> None:
    """Print the asset download URL for a version."""
    ctx = build_context(project_root=project_root, config_path=config)
    settings = PipelineSettings.from_config(ctx.config)
    typer.echo(download_url(settings.repo, release_version, settings.asset_name))
