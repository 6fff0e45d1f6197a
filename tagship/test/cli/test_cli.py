from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from tagship import __version__
from tagship.cli.app import app
from tagship.cli.commands import formula_cmd, run_cmd
from tagship.platform.http import HttpError, MockHttpClient
from tagship.release.model import Artifact
from tagship.release.testing import FakeBuilder

runner = CliRunner()

CONFIG = """
[repo]
slug = "arzg/t"

[build]
binary = "t"

[formula]
name = "t"
tap = "arzg/homebrew-t-tap"
"""

RELEASES = "https://api.github.com/repos/arzg/t/releases"
UPLOADS = "https://uploads.github.com/repos/arzg/t/releases/9/assets"
DOWNLOAD = "https://github.com/arzg/t/releases/download/v1.2.3/t.tar.gz"
CONTENTS = "https://api.github.com/repos/arzg/homebrew-t-tap/contents/Formula/t.rb"


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (tmp_path / "tagship.toml").write_text(CONFIG, encoding="utf-8")
    for name in ("GITHUB_REF", "GITHUB_REPOSITORY", "GITHUB_TOKEN", "COMMITTER_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def _github(*, upload_fails: bool = False) -> MockHttpClient:
    http = MockHttpClient()
    release = {"id": 9, "tag_name": "v1.2.3", "upload_url": UPLOADS + "{?name,label}"}
    http.set_response("POST", RELEASES, json.dumps(release).encode())
    if upload_fails:
        http.set_response(
            "POST", f"{UPLOADS}?name=t.tar.gz", HttpError(url=UPLOADS, status=500, message="boom")
        )
    else:
        http.set_response(
            "POST",
            f"{UPLOADS}?name=t.tar.gz",
            json.dumps({"id": 3, "name": "t.tar.gz", "browser_download_url": DOWNLOAD}).encode(),
        )
    http.set_response("GET", DOWNLOAD, b"archive")
    formula = 'url "https://old"\nsha256 "0"\n'
    http.set_response(
        "GET",
        CONTENTS,
        json.dumps(
            {
                "sha": "blob",
                "encoding": "base64",
                "content": base64.b64encode(formula.encode()).decode(),
            }
        ).encode(),
    )
    http.set_response("PUT", CONTENTS, json.dumps({"commit": {"sha": "abc123"}}).encode())
    return http


def _patch_stack(
    monkeypatch: pytest.MonkeyPatch, project: Path, http: MockHttpClient, calls: list[str]
) -> None:
    archive = project / "t.tar.gz"
    archive.write_bytes(b"archive")

    def fake_builder(**kwargs: object) -> FakeBuilder:
        del kwargs
        return FakeBuilder(calls, Artifact(name="t.tar.gz", path=archive))

    monkeypatch.setattr(run_cmd, "CargoBuilder", fake_builder)
    monkeypatch.setattr(run_cmd, "RealHttpClient", lambda: http)


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_version_command() -> None:
    result = runner.invoke(app, ["version", "refs/tags/v1.2.3"])
    assert result.exit_code == 0
    assert result.output == "v1.2.3\n"


def test_version_command_rejects_branch_ref() -> None:
    result = runner.invoke(app, ["version", "refs/heads/main"])
    assert result.exit_code == 1


def test_url_command(project: Path) -> None:
    result = runner.invoke(app, ["url", "v1.2.3", "--project-root", str(project)])
    assert result.exit_code == 0
    assert result.output.strip() == DOWNLOAD


def test_url_command_without_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["url", "v1.2.3", "--project-root", str(tmp_path)])
    assert result.exit_code == 2


def test_run_requires_ref(project: Path) -> None:
    result = runner.invoke(app, ["run", "--project-root", str(project)])
    assert result.exit_code == 1


def test_run_requires_credentials(project: Path) -> None:
    result = runner.invoke(
        app, ["run", "--ref", "refs/tags/v1.2.3", "--project-root", str(project)]
    )
    assert result.exit_code == 2
    assert "GITHUB_TOKEN" in result.output


def test_run_publishes_release(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    http = _github()
    _patch_stack(monkeypatch, project, http, calls)
    monkeypatch.setenv("GITHUB_TOKEN", "release-token")
    monkeypatch.setenv("COMMITTER_TOKEN", "committer-token")
    monkeypatch.setenv("GITHUB_REF", "refs/tags/v1.2.3")

    result = runner.invoke(app, ["run", "--project-root", str(project)])

    assert result.exit_code == 0, result.output
    assert calls == ["build"]
    assert [(c.method, c.url) for c in http.calls] == [
        ("POST", RELEASES),
        ("POST", f"{UPLOADS}?name=t.tar.gz"),
        ("GET", DOWNLOAD),
        ("GET", CONTENTS),
        ("PUT", CONTENTS),
    ]
    assert http.calls[0].headers["Authorization"] == "Bearer release-token"
    assert http.calls[-1].headers["Authorization"] == "Bearer committer-token"


def test_run_upload_failure_exits_with_network_error(
    project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    http = _github(upload_fails=True)
    _patch_stack(monkeypatch, project, http, [])
    monkeypatch.setenv("GITHUB_TOKEN", "a")
    monkeypatch.setenv("COMMITTER_TOKEN", "b")

    result = runner.invoke(
        app, ["run", "--ref", "refs/tags/v1.2.3", "--project-root", str(project)]
    )

    assert result.exit_code == 4
    assert "uploading" in result.output
    assert all(c.url != CONTENTS for c in http.calls)


def test_run_dry_run_needs_no_credentials(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    http = MockHttpClient()
    _patch_stack(monkeypatch, project, http, [])

    result = runner.invoke(
        app,
        ["run", "--ref", "refs/tags/v1.2.3", "--project-root", str(project), "--dry-run"],
    )

    assert result.exit_code == 0, result.output
    assert http.calls == []


def test_formula_reruns_only_formula_stage(
    project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    http = _github()
    monkeypatch.setattr(formula_cmd, "RealHttpClient", lambda: http)
    monkeypatch.setenv("COMMITTER_TOKEN", "committer-token")

    result = runner.invoke(app, ["formula", "refs/tags/v1.2.3", "--project-root", str(project)])

    assert result.exit_code == 0, result.output
    assert [(c.method, c.url) for c in http.calls] == [
        ("GET", DOWNLOAD),
        ("GET", CONTENTS),
        ("PUT", CONTENTS),
    ]
    body = http.calls[-1].body
    assert body is not None
    payload = json.loads(body)
    assert payload["message"] == "t 1.2.3"
    assert DOWNLOAD in base64.b64decode(payload["content"]).decode()
    assert http.calls[-1].headers["Authorization"] == "Bearer committer-token"


def test_formula_requires_committer_token(project: Path) -> None:
    result = runner.invoke(app, ["formula", "refs/tags/v1.2.3", "--project-root", str(project)])
    assert result.exit_code == 2
    assert "COMMITTER_TOKEN" in result.output


def test_formula_rejects_branch_ref(project: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    http = MockHttpClient()
    monkeypatch.setattr(formula_cmd, "RealHttpClient", lambda: http)
    monkeypatch.setenv("COMMITTER_TOKEN", "b")

    result = runner.invoke(app, ["formula", "refs/heads/main", "--project-root", str(project)])

    assert result.exit_code == 1
    assert http.calls == []


def test_formula_commit_conflict_exits_with_network_error(
    project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    http = _github()
    http.set_response("PUT", CONTENTS, HttpError(url=CONTENTS, status=409, message="Conflict"))
    monkeypatch.setattr(formula_cmd, "RealHttpClient", lambda: http)
    monkeypatch.setenv("COMMITTER_TOKEN", "b")

    result = runner.invoke(app, ["formula", "refs/tags/v1.2.3", "--project-root", str(project)])

    assert result.exit_code == 4
    assert "re-run the formula stage" in " ".join(result.output.split())
