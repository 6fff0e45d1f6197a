"""Compile, strip and package the release binary.

The toolchain is opaque: the build command (``cargo build --release`` by
default) and the strip command come from config and are only expected to
exit 0 and leave the binary at ``<binary_dir>/<binary>``.
"""

from __future__ import annotations

import tarfile
from pathlib import Path
from typing import Protocol

from tagship.core.config import BuildConfig
from tagship.core.result import Err, Ok, Result
from tagship.output.console import ConsoleProtocol, Style
from tagship.platform.process import run as run_process
from tagship.release.errors import BuildError, PackagingError
from tagship.release.model import Artifact

STRIP_TIMEOUT_SECONDS = 60.0


class Builder(Protocol):
    def build(self) -> Result[Artifact, BuildError | PackagingError]: ...


class CargoBuilder:
    """Builds one binary and packages it as ``<binary>.tar.gz`` in ``out_dir``."""

    def __init__(
        self,
        *,
        project_root: Path,
        out_dir: Path,
        config: BuildConfig,
        console: ConsoleProtocol,
    ) -> None:
        self._root = project_root
        self._out_dir = out_dir
        self._config = config
        self._console = console

    @property
    def binary_path(self) -> Path:
        return self._root / self._config.binary_dir / self._config.binary

    @property
    def archive_path(self) -> Path:
        return self._out_dir / self._config.asset_name

    def build(self) -> Result[Artifact, BuildError | PackagingError]:
        compiled = self._compile()
        if isinstance(compiled, Err):
            return compiled

        stripped = self._strip()
        if isinstance(stripped, Err):
            return stripped

        return self._package()

    def _compile(self) -> Result[None, BuildError]:
        cmd = list(self._config.command)
        self._console.print(" ".join(cmd), Style.DIM)
        result = run_process(cmd, cwd=self._root, timeout=self._config.timeout)
        if isinstance(result, Err):
            e = result.error
            return Err(BuildError(message=str(e), hint=e.detail()))

        if not self.binary_path.is_file():
            return Err(
                BuildError(
                    message=f"build output not found: {self.binary_path}",
                    hint="Check build.binary and build.binary_dir in tagship.toml",
                )
            )
        return Ok(None)

    def _strip(self) -> Result[None, PackagingError]:
        cmd = [*self._config.strip, str(self.binary_path)]
        self._console.print(" ".join(cmd), Style.DIM)
        result = run_process(cmd, cwd=self._root, timeout=STRIP_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            return Err(PackagingError(message=f"strip failed: {e}", hint=e.detail()))
        return Ok(None)

    def _package(self) -> Result[Artifact, PackagingError]:
        archive = self.archive_path
        self._console.print(f"tar -czf {archive.name} {self._config.binary}", Style.DIM)
        try:
            archive.parent.mkdir(parents=True, exist_ok=True)
            with tarfile.open(archive, "w:gz") as tf:
                tf.add(self.binary_path, arcname=self._config.binary)
        except (OSError, tarfile.TarError) as e:
            return Err(PackagingError(message=f"failed to write {archive.name}: {e}"))

        return Ok(Artifact(name=archive.name, path=archive))
