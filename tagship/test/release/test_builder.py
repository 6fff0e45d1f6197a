from __future__ import annotations

import tarfile
from pathlib import Path

import pytest

from tagship.core.config import BuildConfig
from tagship.core.result import Err, Ok, Result
from tagship.output.console import MockConsole
from tagship.platform.process import ProcessError
from tagship.release import builder as builder_mod
from tagship.release.builder import CargoBuilder
from tagship.release.errors import BuildError, PackagingError


def _fail(cmd: list[str], stderr: str) -> Err[ProcessError]:
    return Err(ProcessError(command=tuple(cmd), returncode=101, stdout="", stderr=stderr))


def _builder(tmp_path: Path, console: MockConsole | None = None) -> CargoBuilder:
    return CargoBuilder(
        project_root=tmp_path / "project",
        out_dir=tmp_path / "out",
        config=BuildConfig(binary="t"),
        console=console or MockConsole(),
    )


def _fake_toolchain(
    calls: list[list[str]],
    *,
    produce_binary: bool = True,
    fail_on: str | None = None,
):
    def fake_run(
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        del env, timeout
        calls.append(cmd)
        if cmd[0] == fail_on:
            return _fail(cmd, f"{fail_on}: boom")
        if cmd[0] == "cargo" and produce_binary:
            out = cwd / "target" / "release" / "t"
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_bytes(b"\x7fELF stripped")
        return Ok("")

    return fake_run


def test_build_strips_and_packages_binary(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "project").mkdir()
    calls: list[list[str]] = []
    monkeypatch.setattr(builder_mod, "run_process", _fake_toolchain(calls))

    result = _builder(tmp_path).build()

    assert isinstance(result, Ok)
    artifact = result.value
    assert artifact.name == "t.tar.gz"
    assert artifact.path == tmp_path / "out" / "t.tar.gz"
    assert artifact.content_type == "application/gzip"

    binary = tmp_path / "project" / "target" / "release" / "t"
    assert calls == [["cargo", "build", "--release"], ["strip", str(binary)]]

    with tarfile.open(artifact.path, "r:gz") as tf:
        assert tf.getnames() == ["t"]
        member = tf.extractfile("t")
        assert member is not None
        assert member.read() == b"\x7fELF stripped"


def test_compile_failure_is_build_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "project").mkdir()
    calls: list[list[str]] = []
    monkeypatch.setattr(builder_mod, "run_process", _fake_toolchain(calls, fail_on="cargo"))

    result = _builder(tmp_path).build()

    assert isinstance(result, Err)
    assert isinstance(result.error, BuildError)
    assert result.error.hint == "cargo: boom"
    assert len(calls) == 1
    assert not (tmp_path / "out" / "t.tar.gz").exists()


def test_missing_binary_is_build_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "project").mkdir()
    calls: list[list[str]] = []
    monkeypatch.setattr(builder_mod, "run_process", _fake_toolchain(calls, produce_binary=False))

    result = _builder(tmp_path).build()

    assert isinstance(result, Err)
    assert isinstance(result.error, BuildError)
    assert "build output not found" in result.error.message


def test_strip_failure_is_packaging_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "project").mkdir()
    calls: list[list[str]] = []
    monkeypatch.setattr(builder_mod, "run_process", _fake_toolchain(calls, fail_on="strip"))

    result = _builder(tmp_path).build()

    assert isinstance(result, Err)
    assert isinstance(result.error, PackagingError)
    assert result.error.message.startswith("strip failed")


def test_unwritable_archive_is_packaging_error(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "project").mkdir()
    # A file where the output directory should be.
    (tmp_path / "out").write_text("not a dir", encoding="utf-8")
    calls: list[list[str]] = []
    monkeypatch.setattr(builder_mod, "run_process", _fake_toolchain(calls))

    result = _builder(tmp_path).build()

    assert isinstance(result, Err)
    assert isinstance(result.error, PackagingError)


def test_build_prints_commands(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "project").mkdir()
    console = MockConsole()
    monkeypatch.setattr(builder_mod, "run_process", _fake_toolchain([]))

    _builder(tmp_path, console).build()

    assert console.find("cargo build --release")
    assert console.find("tar -czf t.tar.gz t")


def test_non_utf8_toolchain_output_is_build_error(tmp_path: Path) -> None:
    (tmp_path / "project").mkdir()
    builder = CargoBuilder(
        project_root=tmp_path / "project",
        out_dir=tmp_path / "out",
        config=BuildConfig(binary="t", command=("sh", "-c", "printf '\\377\\376' >&2; exit 1")),
        console=MockConsole(),
    )

    result = builder.build()

    assert isinstance(result, Err)
    assert isinstance(result.error, BuildError)
