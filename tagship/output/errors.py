"""Error presentation utilities.

Maps pipeline errors onto process exit codes.
"""

from __future__ import annotations

from tagship.core.errors import ErrorCode
from tagship.release.errors import (
    BuildError,
    FormulaUpdateError,
    MalformedRefError,
    PackagingError,
    PipelineError,
    PublishError,
    UploadError,
)

__all__ = ["pipeline_exit_code"]


def pipeline_exit_code(error: PipelineError) -> int:
    """Get exit code for the error a failed run ended with."""
    match error:
        case MalformedRefError():
            return int(ErrorCode.USER_ERROR)
        case BuildError() | PackagingError():
            return int(ErrorCode.BUILD_ERROR)
        case UploadError(unreadable=True):
            return int(ErrorCode.IO_ERROR)
        case PublishError() | UploadError() | FormulaUpdateError():
            return int(ErrorCode.NETWORK_ERROR)
