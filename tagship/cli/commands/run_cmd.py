"""Run the release pipeline for a tag."""

from __future__ import annotations

import tempfile
from pathlib import Path

import typer

from tagship.cli.context import CLIContext, build_context, exit_with
from tagship.core.errors import ErrorCode
from tagship.core.result import Err
from tagship.output.errors import pipeline_exit_code
from tagship.platform.http import HttpClient, RealHttpClient
from tagship.release.builder import CargoBuilder
from tagship.release.github import GitHubApi, GitHubReleaseApi
from tagship.release.homebrew import HomebrewTap
from tagship.release.pipeline import PipelineSettings, ReleasePipeline


def make_pipeline(
    ctx: CLIContext,
    *,
    out_dir: Path,
    http: HttpClient,
    dry_run: bool,
) -> ReleasePipeline:
    creds = ctx.credentials
    release_api = GitHubReleaseApi(
        api=GitHubApi(token=creds.release_token or "", http=http),
        repo=ctx.config.repo.slug,
        console=ctx.console,
        dry_run=dry_run,
    )
    formula_api = HomebrewTap(
        api=GitHubApi(token=creds.committer_token or "", http=http),
        http=http,
        console=ctx.console,
        formula_path=ctx.config.formula.formula_path,
        dry_run=dry_run,
    )
    builder = CargoBuilder(
        project_root=ctx.project_root,
        out_dir=out_dir,
        config=ctx.config.build,
        console=ctx.console,
    )
    return ReleasePipeline(
        settings=PipelineSettings.from_config(ctx.config),
        builder=builder,
        release_api=release_api,
        formula_api=formula_api,
        console=ctx.console,
    )


def run(
    ref: str | None = typer.Option(
        None,
        "--ref",
        envvar="GITHUB_REF",
        help="Tag ref that triggered the release (e.g. refs/tags/v1.2.3)",
        show_default=False,
    ),
    project_root: Path = typer.Option(Path("."), "--project-root", help="Project to release"),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: <project-root>/tagship.toml)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Build for real, print API requests without sending them"
    ),
) -> None:
    """Build, publish, upload and bump the formula for one tag."""
    if not ref:
        exit_with("no tag ref given (use --ref or set GITHUB_REF)", code=ErrorCode.USER_ERROR)

    ctx = build_context(project_root=project_root, config_path=config)
    missing = ctx.credentials.missing()
    if missing and not dry_run:
        exit_with(f"missing credentials: {', '.join(missing)}", code=ErrorCode.ENV_ERROR)

    with tempfile.TemporaryDirectory(prefix="tagship-") as tmp:
        pipeline = make_pipeline(ctx, out_dir=Path(tmp), http=RealHttpClient(), dry_run=dry_run)
        result = pipeline.run(ref)

    if result.error is not None:
        raise typer.Exit(code=pipeline_exit_code(result.error))


def build(
    project_root: Path = typer.Option(Path("."), "--project-root", help="Project to build"),
    config: Path | None = typer.Option(
        None, "--config", help="Config file (default: <project-root>/tagship.toml)"
    ),
    out: Path = typer.Option(Path("dist"), "--out", help="Output directory for the archive"),
) -> None:
    """Build and package the binary without publishing anything."""
    ctx = build_context(project_root=project_root, config_path=config)
    builder = CargoBuilder(
        project_root=ctx.project_root,
        out_dir=ctx.project_root / out,
        config=ctx.config.build,
        console=ctx.console,
    )
    result = builder.build()
    if isinstance(result, Err):
        ctx.console.error(result.error.pretty())
        raise typer.Exit(code=pipeline_exit_code(result.error))
    ctx.console.success(str(result.value.path))
