"""Error values for each pipeline stage.

Each stage fails with its own type so the terminal state of a run says which
external side effects already happened:

- MalformedRefError: bad trigger input, nothing done yet
- BuildError / PackagingError: toolchain failure, nothing published yet
- PublishError: no release created (or one already existed for the tag)
- UploadError: a release exists without its asset
- FormulaUpdateError: release and asset are published, formula not bumped
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class MalformedRefError:
    ref: str
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


@dataclass(frozen=True, slots=True)
class BuildError:
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


@dataclass(frozen=True, slots=True)
class PackagingError:
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


@dataclass(frozen=True, slots=True)
class PublishError:
    message: str
    hint: str | None = None
    # True when the platform rejected the tag because a release already exists.
    already_exists: bool = False

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


@dataclass(frozen=True, slots=True)
class UploadError:
    message: str
    hint: str | None = None
    # True when the local archive could not be read; nothing was sent.
    unreadable: bool = False

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


@dataclass(frozen=True, slots=True)
class FormulaUpdateError:
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        return _pretty(self.message, self.hint)


PipelineError = (
    MalformedRefError
    | BuildError
    | PackagingError
    | PublishError
    | UploadError
    | FormulaUpdateError
)


def _pretty(message: str, hint: str | None) -> str:
    if hint:
        return f"{message} (hint: {hint})"
    return message
