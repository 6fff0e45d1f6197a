"""In-memory stand-ins for the pipeline's external boundaries.

All fakes append to a shared ``calls`` list so tests can assert the order in
which the pipeline touched each boundary.

Usage:
    calls: list[str] = []
    pipeline = ReleasePipeline(
        settings=settings,
        builder=FakeBuilder(calls, artifact),
        release_api=FakeReleaseApi(calls),
        formula_api=FakeFormulaApi(calls),
        console=MockConsole(),
    )
    pipeline.run("refs/tags/v1.2.3")
    assert calls == ["build", "create_release", "upload_asset", "bump_formula"]
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tagship.core.result import Err, Ok, Result
from tagship.release.errors import (
    BuildError,
    FormulaUpdateError,
    PackagingError,
    PublishError,
    UploadError,
)
from tagship.release.model import Artifact, FormulaUpdateRequest, ReleaseRecord, UploadedAsset


@dataclass
class FakeBuilder:
    calls: list[str]
    artifact: Artifact
    error: BuildError | PackagingError | None = None

    def build(self) -> Result[Artifact, BuildError | PackagingError]:
        self.calls.append("build")
        if self.error is not None:
            return Err(self.error)
        return Ok(self.artifact)


@dataclass(frozen=True, slots=True)
class UploadCall:
    upload_endpoint: str
    data: bytes
    name: str
    content_type: str


def _empty_uploads() -> list[UploadCall]:
    return []


def _empty_releases() -> list[ReleaseRecord]:
    return []


@dataclass
class FakeReleaseApi:
    calls: list[str]
    publish_error: PublishError | None = None
    upload_error: UploadError | None = None
    asset_base_url: str | None = None
    releases: list[ReleaseRecord] = field(default_factory=_empty_releases)
    uploads: list[UploadCall] = field(default_factory=_empty_uploads)

    def create_release(
        self,
        tag: str,
        name: str,
        *,
        draft: bool,
        prerelease: bool,
    ) -> Result[ReleaseRecord, PublishError]:
        self.calls.append("create_release")
        if self.publish_error is not None:
            return Err(self.publish_error)
        if any(r.tag == tag for r in self.releases):
            return Err(
                PublishError(message=f"release {tag} already exists", already_exists=True)
            )
        release = ReleaseRecord(
            id=len(self.releases) + 1,
            tag=tag,
            upload_endpoint=f"https://uploads.example.com/releases/{len(self.releases) + 1}/assets",
        )
        self.releases.append(release)
        return Ok(release)

    def upload_asset(
        self,
        upload_endpoint: str,
        data: bytes,
        name: str,
        content_type: str,
    ) -> Result[UploadedAsset, UploadError]:
        self.calls.append("upload_asset")
        if self.upload_error is not None:
            return Err(self.upload_error)
        self.uploads.append(UploadCall(upload_endpoint, data, name, content_type))
        url = f"{self.asset_base_url}/{name}" if self.asset_base_url else None
        return Ok(UploadedAsset(id=len(self.uploads), name=name, download_url=url))


def _empty_requests() -> list[FormulaUpdateRequest]:
    return []


@dataclass
class FakeFormulaApi:
    calls: list[str]
    error: FormulaUpdateError | None = None
    requests: list[FormulaUpdateRequest] = field(default_factory=_empty_requests)

    def bump_formula(
        self,
        formula_name: str,
        tap_repo: str,
        download_url: str,
    ) -> Result[str, FormulaUpdateError]:
        self.calls.append("bump_formula")
        if self.error is not None:
            return Err(self.error)
        self.requests.append(FormulaUpdateRequest(formula_name, tap_repo, download_url))
        return Ok(f"commit-{len(self.requests)}")
