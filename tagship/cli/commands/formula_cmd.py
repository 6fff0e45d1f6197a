"""Bump the Homebrew formula for a release that is already published."""

from __future__ import annotations

from pathlib import Path

import typer

from tagship.cli.context import build_context, exit_with
from tagship.core.errors import ErrorCode
from tagship.core.result import Err
from tagship.output.errors import pipeline_exit_code
from tagship.platform.http import RealHttpClient
from tagship.release.formula import download_url, update_formula
from tagship.release.github import GitHubApi
from tagship.release.homebrew import HomebrewTap
from tagship.release.model import FormulaUpdateRequest
from tagship.release.pipeline import PipelineSettings
from tagship.release.version import extract_version


def formula(
    ref: str | None = typer.Argument(
        None,
        envvar="GITHUB_REF",
        help="Tag ref of the published release (e.g. refs/tags/v1.2.3)",
        show_default=False,
    ),
    project_root: Path = typer.Option(Path("."), "--project-root", help="Project root"),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: <project-root>/tagship.toml)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the formula requests without sending them"
    ),
) -> None:
    """Re-run only the formula stage against an existing release."""
    if not ref:
        exit_with("no tag ref given (pass REF or set GITHUB_REF)", code=ErrorCode.USER_ERROR)

    ctx = build_context(project_root=project_root, config_path=config)
    token = ctx.credentials.committer_token
    if not token and not dry_run:
        exit_with("missing credentials: COMMITTER_TOKEN", code=ErrorCode.ENV_ERROR)

    extracted = extract_version(ref)
    if isinstance(extracted, Err):
        ctx.console.error(extracted.error.pretty())
        raise typer.Exit(code=pipeline_exit_code(extracted.error))

    settings = PipelineSettings.from_config(ctx.config)
    request = FormulaUpdateRequest(
        formula_name=settings.formula_name,
        tap_repo=settings.tap_repo,
        download_url=download_url(settings.repo, extracted.value, settings.asset_name),
    )

    http = RealHttpClient()
    tap = HomebrewTap(
        api=GitHubApi(token=token or "", http=http),
        http=http,
        console=ctx.console,
        formula_path=ctx.config.formula.formula_path,
        dry_run=dry_run,
    )
    ctx.console.header(f"Updating formula {request.formula_name} in {request.tap_repo}")
    result = update_formula(tap, request)
    if isinstance(result, Err):
        ctx.console.error(result.error.pretty())
        raise typer.Exit(code=pipeline_exit_code(result.error))
    ctx.console.success(f"formula committed ({result.value})")
