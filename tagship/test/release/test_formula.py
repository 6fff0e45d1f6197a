from __future__ import annotations

from tagship.core.result import Ok
from tagship.release.formula import download_url, update_formula
from tagship.release.model import FormulaUpdateRequest, RepoIdentity
from tagship.release.testing import FakeFormulaApi

REPO = RepoIdentity(slug="arzg/t", web_url="https://github.com/arzg/t")


def test_download_url_layout() -> None:
    assert (
        download_url(REPO, "v1.2.3", "t.tar.gz")
        == "https://github.com/arzg/t/releases/download/v1.2.3/t.tar.gz"
    )


def test_download_url_is_pure() -> None:
    first = download_url(REPO, "v0.4.0", "t.tar.gz")
    same_repo = RepoIdentity(slug="arzg/t", web_url="https://github.com/arzg/t")
    second = download_url(same_repo, "v0.4.0", "t.tar.gz")
    assert first == second


def test_download_url_ignores_trailing_slash() -> None:
    repo = RepoIdentity(slug="x/y", web_url="https://example.com/")
    url = download_url(repo, "v1", "t.tar.gz")
    assert url == "https://example.com/releases/download/v1/t.tar.gz"


def test_update_formula_delegates_request() -> None:
    api = FakeFormulaApi([])
    request = FormulaUpdateRequest(
        formula_name="t",
        tap_repo="arzg/homebrew-t-tap",
        download_url="https://github.com/arzg/t/releases/download/v1.2.3/t.tar.gz",
    )

    assert update_formula(api, request) == Ok("commit-1")
    assert api.requests == [request]
