"""Download URL computation and formula update delegation."""

from __future__ import annotations

from typing import Protocol

from tagship.core.result import Result
from tagship.release.errors import FormulaUpdateError
from tagship.release.model import FormulaUpdateRequest, RepoIdentity, Version


class FormulaApi(Protocol):
    def bump_formula(
        self,
        formula_name: str,
        tap_repo: str,
        download_url: str,
    ) -> Result[str, FormulaUpdateError]:
        """Point the formula at ``download_url``; returns the commit reference.

        Fails when the download cannot be fetched for checksumming, so the
        asset must already be published.
        """
        ...


def download_url(repo: RepoIdentity, version: Version, asset_name: str) -> str:
    return f"{repo.web_url.rstrip('/')}/releases/download/{version}/{asset_name}"


def update_formula(
    api: FormulaApi,
    request: FormulaUpdateRequest,
) -> Result[str, FormulaUpdateError]:
    return api.bump_formula(request.formula_name, request.tap_repo, request.download_url)
