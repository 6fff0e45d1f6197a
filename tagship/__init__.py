"""Tag-triggered release pipeline: build, publish, upload, bump formula."""

__version__ = "0.1.0"
