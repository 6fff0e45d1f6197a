from __future__ import annotations

from tagship.core.result import Err, Ok, Result
from tagship.release.errors import MalformedRefError
from tagship.release.model import Version

TAG_REF_PREFIX = "refs/tags/"


def extract_version(ref: str) -> Result[Version, MalformedRefError]:
    """Return everything after the first ``refs/tags/`` in ``ref``.

    ``refs/tags/v1.2.3`` -> ``v1.2.3``. The tag name is used verbatim as both
    the release tag and the version in the download URL.
    """
    _, sep, version = ref.partition(TAG_REF_PREFIX)
    if not sep:
        return Err(
            MalformedRefError(
                ref=ref,
                message=f"not a tag ref: {ref!r}",
                hint=f"expected {TAG_REF_PREFIX}<version>",
            )
        )
    if not version.strip():
        return Err(MalformedRefError(ref=ref, message=f"tag ref has no tag name: {ref!r}"))
    if TAG_REF_PREFIX in version:
        return Err(MalformedRefError(ref=ref, message=f"tag ref is nested: {ref!r}"))
    return Ok(version)
