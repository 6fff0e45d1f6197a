"""Adapters for subprocesses and HTTP."""

from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from .process import ProcessError, run

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "ProcessError",
    "run",
]
