from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer

from tagship.core.config import CONFIG_FILENAME, Config, Credentials, load_config
from tagship.core.errors import ErrorCode
from tagship.core.result import Err
from tagship.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    project_root: Path
    config: Config
    credentials: Credentials
    console: ConsoleProtocol


def exit_with(message: str, *, code: ErrorCode) -> NoReturn:
    typer.echo(f"error: {message}", err=True)
    raise typer.Exit(code=int(code))


def build_context(*, project_root: Path, config_path: Path | None = None) -> CLIContext:
    try:
        root = project_root.expanduser().resolve()
    except OSError as e:
        exit_with(f"invalid --project-root: {e}", code=ErrorCode.USER_ERROR)

    path = config_path if config_path is not None else root / CONFIG_FILENAME
    loaded = load_config(path, env=os.environ)
    if isinstance(loaded, Err):
        exit_with(loaded.error.message, code=ErrorCode.ENV_ERROR)

    return CLIContext(
        project_root=root,
        config=loaded.value,
        credentials=Credentials.from_env(os.environ),
        console=RichConsole(),
    )
