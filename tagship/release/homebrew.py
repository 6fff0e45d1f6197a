"""Homebrew tap adapter: rewrite a formula's ``url``/``sha256`` and commit it.

Works entirely through the GitHub contents API, so no local clone of the tap
is needed. The checksum is computed from the published download itself.
"""

from __future__ import annotations

import hashlib
import re

from tagship.core.result import Err, Ok, Result
from tagship.output.console import ConsoleProtocol, Style
from tagship.platform.http import HttpClient
from tagship.release.errors import FormulaUpdateError
from tagship.release.github import GitHubApi, github_error_detail

_URL_RE = re.compile(r'^(?P<lead>[ \t]*url[ \t]+)"[^"]*"', re.MULTILINE)
_SHA256_RE = re.compile(r'^(?P<lead>[ \t]*sha256[ \t]+)"[^"]*"', re.MULTILINE)
_VERSION_RE = re.compile(r'^(?P<lead>[ \t]*version[ \t]+)"[^"]*"', re.MULTILINE)
_DOWNLOAD_VERSION_RE = re.compile(r"/releases/download/(?P<version>[^/]+)/")


def version_from_url(url: str) -> str | None:
    """Homebrew-style version of a release download (leading ``v`` dropped)."""
    m = _DOWNLOAD_VERSION_RE.search(url)
    if m is None:
        return None
    tag = m.group("version")
    if len(tag) > 1 and tag[0] == "v" and tag[1].isdigit():
        return tag[1:]
    return tag


def rewrite_formula(text: str, *, url: str, sha256: str) -> Result[str, FormulaUpdateError]:
    """Replace the first ``url`` and ``sha256`` stanzas (and ``version``, if present)."""
    if _URL_RE.search(text) is None:
        return Err(FormulaUpdateError(message="formula has no url stanza"))
    if _SHA256_RE.search(text) is None:
        return Err(FormulaUpdateError(message="formula has no sha256 stanza"))

    out = _URL_RE.sub(lambda m: f'{m.group("lead")}"{url}"', text, count=1)
    out = _SHA256_RE.sub(lambda m: f'{m.group("lead")}"{sha256}"', out, count=1)

    version = version_from_url(url)
    if version is not None:
        out = _VERSION_RE.sub(lambda m: f'{m.group("lead")}"{version}"', out, count=1)
    return Ok(out)


def commit_message(formula_name: str, url: str) -> str:
    version = version_from_url(url)
    if version is None:
        return f"{formula_name}: update download"
    return f"{formula_name} {version}"


class HomebrewTap:
    """FormulaApi committing straight to the tap's default branch."""

    def __init__(
        self,
        *,
        api: GitHubApi,
        http: HttpClient,
        console: ConsoleProtocol,
        formula_path: str | None = None,
        dry_run: bool = False,
    ) -> None:
        self._api = api
        self._http = http
        self._console = console
        self._formula_path = formula_path
        self._dry_run = dry_run

    def _path(self, formula_name: str) -> str:
        return self._formula_path or f"Formula/{formula_name}.rb"

    def bump_formula(
        self,
        formula_name: str,
        tap_repo: str,
        download_url: str,
    ) -> Result[str, FormulaUpdateError]:
        path = self._path(formula_name)
        self._console.print(f"GET {download_url}", Style.DIM)
        self._console.print(f"PUT repos/{tap_repo}/contents/{path}", Style.DIM)
        if self._dry_run:
            return Ok("(dry-run)")

        fetched = self._http.request("GET", download_url)
        if isinstance(fetched, Err):
            return Err(
                FormulaUpdateError(
                    message=f"cannot fetch download for checksum: {fetched.error}",
                    hint="The release asset must be public before the formula is bumped.",
                )
            )
        sha256 = hashlib.sha256(fetched.value).hexdigest()
        self._console.print(f"sha256 {sha256}", Style.DIM)

        current = self._api.get_contents(tap_repo, path)
        if isinstance(current, Err):
            e = current.error
            return Err(
                FormulaUpdateError(
                    message=f"cannot read {tap_repo}/{path}: {e}",
                    hint=github_error_detail(e),
                )
            )

        rewritten = rewrite_formula(current.value.text, url=download_url, sha256=sha256)
        if isinstance(rewritten, Err):
            return rewritten
        if rewritten.value == current.value.text:
            return Err(
                FormulaUpdateError(
                    message=f"{path} already points at {download_url}",
                    hint="Nothing to commit; the formula was bumped by an earlier run.",
                )
            )

        committed = self._api.put_contents(
            tap_repo,
            path,
            text=rewritten.value,
            sha=current.value.sha,
            message=commit_message(formula_name, download_url),
        )
        if isinstance(committed, Err):
            e = committed.error
            hint = github_error_detail(e)
            if e.status == 409:
                hint = "The formula changed while updating; re-run the formula stage."
            return Err(FormulaUpdateError(message=f"failed to commit {path}: {e}", hint=hint))
        return committed
