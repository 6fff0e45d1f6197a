"""Release record creation and asset attachment.

Neither stage compensates for the other: if the upload fails after the
release was created, the release stays published without its asset and has
to be cleaned up by hand.
"""

from __future__ import annotations

from typing import Protocol

from tagship.core.result import Err, Result
from tagship.release.errors import PublishError, UploadError
from tagship.release.model import Artifact, ReleaseRecord, UploadedAsset


class ReleaseApi(Protocol):
    def create_release(
        self,
        tag: str,
        name: str,
        *,
        draft: bool,
        prerelease: bool,
    ) -> Result[ReleaseRecord, PublishError]: ...

    def upload_asset(
        self,
        upload_endpoint: str,
        data: bytes,
        name: str,
        content_type: str,
    ) -> Result[UploadedAsset, UploadError]: ...


def publish_release(
    api: ReleaseApi,
    tag: str,
    *,
    name: str | None = None,
) -> Result[ReleaseRecord, PublishError]:
    """Create a published (non-draft, non-prerelease) release for ``tag``."""
    return api.create_release(tag, name or tag, draft=False, prerelease=False)


def upload_asset(
    api: ReleaseApi,
    release: ReleaseRecord,
    artifact: Artifact,
) -> Result[UploadedAsset, UploadError]:
    try:
        data = artifact.path.read_bytes()
    except OSError as e:
        return Err(UploadError(message=f"cannot read {artifact.path}: {e}", unreadable=True))

    return api.upload_asset(release.upload_endpoint, data, artifact.name, artifact.content_type)
