"""Process exit codes.

A run that reaches its final state exits with ``OK``; every failed stage maps
onto one of the other codes so shell callers can tell failures apart without
parsing output.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    - 0: Success
    - 1: User error (malformed tag ref, bad arguments)
    - 2: Environment error (missing config, missing token)
    - 3: Build error (compile, strip or archive failed)
    - 4: Network error (release, upload or formula API failed)
    - 5: I/O error (file not readable)
    """

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
