from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

TriggerRef = str
Version = str

GZIP_CONTENT_TYPE = "application/gzip"


@dataclass(frozen=True, slots=True)
class RepoIdentity:
    slug: str  # owner/name
    web_url: str  # e.g. https://github.com/owner/name


@dataclass(frozen=True, slots=True)
class Artifact:
    """Packaged archive produced by one run; deleted when the run ends."""

    name: str
    path: Path
    content_type: str = GZIP_CONTENT_TYPE


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    id: int
    tag: str
    # Asset upload URL without the `{?name,label}` URI template suffix.
    upload_endpoint: str
    html_url: str | None = None


@dataclass(frozen=True, slots=True)
class UploadedAsset:
    id: int
    name: str
    download_url: str | None = None


@dataclass(frozen=True, slots=True)
class FormulaUpdateRequest:
    formula_name: str
    tap_repo: str
    download_url: str
