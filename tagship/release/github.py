"""GitHub REST calls used by the pipeline.

``GitHubApi`` is bound to one token. The pipeline builds two of them: one
with the release token for the project repo, one with the committer token
for the tap repo.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from urllib.parse import quote

from tagship.core.result import Err, Ok, Result
from tagship.core.structured import as_str_dict, get_str, get_table
from tagship.output.console import ConsoleProtocol, Style
from tagship.platform.http import HttpClient, HttpError
from tagship.release.errors import PublishError, UploadError
from tagship.release.model import ReleaseRecord, UploadedAsset

GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"

_URI_TEMPLATE_RE = re.compile(r"\{[^}]*\}$")


@dataclass(frozen=True, slots=True)
class RepoFile:
    path: str
    sha: str  # blob sha, required to update the file
    text: str


def strip_uri_template(url: str) -> str:
    """``.../assets{?name,label}`` -> ``.../assets``."""
    return _URI_TEMPLATE_RE.sub("", url)


def github_error_detail(error: HttpError) -> str | None:
    """Extract GitHub's ``message`` (and first error code) from an error body."""
    try:
        obj: object = json.loads(error.body)
    except json.JSONDecodeError:
        return error.body.strip() or None

    data = as_str_dict(obj)
    if data is None:
        return None
    message = get_str(data, "message")
    codes = _error_codes(data)
    if message and codes:
        return f"{message}: {', '.join(codes)}"
    return message


def is_already_exists(error: HttpError) -> bool:
    if error.status != 422:
        return False
    try:
        obj: object = json.loads(error.body)
    except json.JSONDecodeError:
        return False
    data = as_str_dict(obj)
    return data is not None and "already_exists" in _error_codes(data)


def _error_codes(data: dict[str, object]) -> list[str]:
    errors = data.get("errors")
    if not isinstance(errors, list):
        return []
    out: list[str] = []
    for item in errors:
        d = as_str_dict(item)
        if d is None:
            continue
        code = get_str(d, "code")
        if code:
            out.append(code)
    return out


def _payload_error(url: str, what: str) -> HttpError:
    return HttpError(url=url, status=0, message=f"unexpected {what} payload")


class GitHubApi:
    def __init__(self, *, token: str, http: HttpClient, api_url: str = GITHUB_API_URL) -> None:
        self._token = token
        self._http = http
        self._api_url = api_url.rstrip("/")

    def _headers(self, content_type: str = "application/json") -> dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "Content-Type": content_type,
        }

    def _json(
        self,
        method: str,
        url: str,
        *,
        payload: dict[str, object] | None = None,
        data: bytes | None = None,
        content_type: str = "application/json",
    ) -> Result[dict[str, object], HttpError]:
        body = data if payload is None else json.dumps(payload).encode("utf-8")
        result = self._http.request(
            method, url, headers=self._headers(content_type), body=body
        )
        if isinstance(result, Err):
            return result

        try:
            obj: object = json.loads(result.value.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"invalid JSON response: {e}"))

        parsed = as_str_dict(obj)
        if parsed is None:
            return Err(HttpError(url=url, status=0, message="expected a JSON object"))
        return Ok(parsed)

    def create_release(
        self,
        repo: str,
        *,
        tag: str,
        name: str,
        draft: bool,
        prerelease: bool,
    ) -> Result[ReleaseRecord, HttpError]:
        url = f"{self._api_url}/repos/{repo}/releases"
        result = self._json(
            "POST",
            url,
            payload={"tag_name": tag, "name": name, "draft": draft, "prerelease": prerelease},
        )
        if isinstance(result, Err):
            return result

        data = result.value
        release_id = data.get("id")
        upload_url = get_str(data, "upload_url")
        if not isinstance(release_id, int) or upload_url is None:
            return Err(_payload_error(url, "release"))

        return Ok(
            ReleaseRecord(
                id=release_id,
                tag=get_str(data, "tag_name") or tag,
                upload_endpoint=strip_uri_template(upload_url),
                html_url=get_str(data, "html_url"),
            )
        )

    def upload_asset(
        self,
        upload_endpoint: str,
        data: bytes,
        *,
        name: str,
        content_type: str,
    ) -> Result[UploadedAsset, HttpError]:
        url = f"{upload_endpoint}?name={quote(name, safe='')}"
        result = self._json("POST", url, data=data, content_type=content_type)
        if isinstance(result, Err):
            return result

        payload = result.value
        asset_id = payload.get("id")
        if not isinstance(asset_id, int):
            return Err(_payload_error(url, "asset"))

        return Ok(
            UploadedAsset(
                id=asset_id,
                name=get_str(payload, "name") or name,
                download_url=get_str(payload, "browser_download_url"),
            )
        )

    def get_contents(self, repo: str, path: str) -> Result[RepoFile, HttpError]:
        url = f"{self._api_url}/repos/{repo}/contents/{quote(path)}"
        result = self._json("GET", url)
        if isinstance(result, Err):
            return result

        data = result.value
        sha = get_str(data, "sha")
        content = data.get("content")
        if sha is None or get_str(data, "encoding") != "base64" or not isinstance(content, str):
            return Err(_payload_error(url, "contents"))

        try:
            text = base64.b64decode(content, validate=False).decode("utf-8")
        except (binascii.Error, ValueError) as e:
            # UnicodeDecodeError is a ValueError.
            return Err(HttpError(url=url, status=0, message=f"failed to decode contents: {e}"))

        return Ok(RepoFile(path=path, sha=sha, text=text))

    def put_contents(
        self,
        repo: str,
        path: str,
        *,
        text: str,
        sha: str,
        message: str,
    ) -> Result[str, HttpError]:
        """Commit ``text`` as the new content of ``path``; returns the commit sha."""
        url = f"{self._api_url}/repos/{repo}/contents/{quote(path)}"
        result = self._json(
            "PUT",
            url,
            payload={
                "message": message,
                "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
                "sha": sha,
            },
        )
        if isinstance(result, Err):
            return result

        commit = get_table(result.value, "commit")
        commit_sha = get_str(commit, "sha") if commit is not None else None
        if commit_sha is None:
            return Err(_payload_error(url, "commit"))
        return Ok(commit_sha)


class GitHubReleaseApi:
    """ReleaseApi backed by the GitHub releases endpoints of one repo."""

    def __init__(
        self,
        *,
        api: GitHubApi,
        repo: str,
        console: ConsoleProtocol,
        dry_run: bool = False,
    ) -> None:
        self._api = api
        self._repo = repo
        self._console = console
        self._dry_run = dry_run

    def create_release(
        self,
        tag: str,
        name: str,
        *,
        draft: bool,
        prerelease: bool,
    ) -> Result[ReleaseRecord, PublishError]:
        self._console.print(
            f"POST repos/{self._repo}/releases tag={tag} draft={draft} prerelease={prerelease}",
            Style.DIM,
        )
        if self._dry_run:
            return Ok(ReleaseRecord(id=0, tag=tag, upload_endpoint="(dry-run)"))

        result = self._api.create_release(
            self._repo, tag=tag, name=name, draft=draft, prerelease=prerelease
        )
        if isinstance(result, Err):
            e = result.error
            if is_already_exists(e):
                return Err(
                    PublishError(
                        message=f"a release for {tag} already exists in {self._repo}",
                        hint="Delete the existing release, then re-run the pipeline.",
                        already_exists=True,
                    )
                )
            return Err(
                PublishError(
                    message=f"failed to create release {tag}: {e}",
                    hint=github_error_detail(e),
                )
            )
        return result

    def upload_asset(
        self,
        upload_endpoint: str,
        data: bytes,
        name: str,
        content_type: str,
    ) -> Result[UploadedAsset, UploadError]:
        self._console.print(
            f"POST {upload_endpoint}?name={name} ({content_type}, {len(data)} bytes)", Style.DIM
        )
        if self._dry_run:
            return Ok(UploadedAsset(id=0, name=name))

        return self._api.upload_asset(
            upload_endpoint, data, name=name, content_type=content_type
        ).map_err(
            lambda e: UploadError(
                message=f"failed to upload {name}: {e}",
                hint=github_error_detail(e),
            )
        )
