"""Release pipeline state machine.

    IDLE -> EXTRACTING -> BUILDING -> PUBLISHING -> UPLOADING
         -> UPDATING_FORMULA -> DONE

Any stage error moves the run to FAILED, keeping the error and the state it
failed in. Transitions only go forward and nothing is rolled back, so the
states in ``PipelineRun.history`` tell exactly which external side effects
(release created, asset uploaded, formula committed) have happened.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from enum import StrEnum

from tagship.core.config import Config
from tagship.core.result import Err, Ok, Result
from tagship.output.console import ConsoleProtocol, Style
from tagship.release.builder import Builder
from tagship.release.errors import PipelineError
from tagship.release.formula import FormulaApi, download_url, update_formula
from tagship.release.model import (
    Artifact,
    FormulaUpdateRequest,
    ReleaseRecord,
    RepoIdentity,
    TriggerRef,
    UploadedAsset,
    Version,
)
from tagship.release.publish import ReleaseApi, publish_release, upload_asset
from tagship.release.version import extract_version


class PipelineState(StrEnum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    BUILDING = "building"
    PUBLISHING = "publishing"
    UPLOADING = "uploading"
    UPDATING_FORMULA = "updating_formula"
    DONE = "done"
    FAILED = "failed"


_ORDER: tuple[PipelineState, ...] = (
    PipelineState.IDLE,
    PipelineState.EXTRACTING,
    PipelineState.BUILDING,
    PipelineState.PUBLISHING,
    PipelineState.UPLOADING,
    PipelineState.UPDATING_FORMULA,
    PipelineState.DONE,
)

TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.FAILED})

_STAGE_LABELS: Mapping[PipelineState, str] = {
    PipelineState.EXTRACTING: "Extract version",
    PipelineState.BUILDING: "Build and package",
    PipelineState.PUBLISHING: "Create release",
    PipelineState.UPLOADING: "Upload asset",
    PipelineState.UPDATING_FORMULA: "Update formula",
}


def next_state(state: PipelineState) -> PipelineState:
    if state in TERMINAL_STATES:
        raise AssertionError(f"no transition out of terminal state: {state}")
    return _ORDER[_ORDER.index(state) + 1]


@dataclass(frozen=True, slots=True)
class PipelineSettings:
    repo: RepoIdentity
    asset_name: str
    formula_name: str
    tap_repo: str

    @classmethod
    def from_config(cls, config: Config) -> PipelineSettings:
        return cls(
            repo=RepoIdentity(slug=config.repo.slug, web_url=config.repo.url),
            asset_name=config.asset_name,
            formula_name=config.formula.name,
            tap_repo=config.formula.tap,
        )


@dataclass(frozen=True, slots=True)
class PipelineRun:
    """Everything one run produced, up to the state it reached."""

    ref: TriggerRef
    state: PipelineState = PipelineState.IDLE
    history: tuple[PipelineState, ...] = (PipelineState.IDLE,)
    version: Version | None = None
    artifact: Artifact | None = None
    release: ReleaseRecord | None = None
    asset: UploadedAsset | None = None
    download_url: str | None = None
    formula_commit: str | None = None
    failed_at: PipelineState | None = None
    error: PipelineError | None = None

    @property
    def is_done(self) -> bool:
        return self.state == PipelineState.DONE

    @property
    def is_failed(self) -> bool:
        return self.state == PipelineState.FAILED

    def side_effects(self) -> tuple[str, ...]:
        """External changes this run left behind (never undone)."""
        out: list[str] = []
        if self.release is not None:
            out.append(f"release {self.release.tag} created")
        if self.asset is not None:
            out.append(f"asset {self.asset.name} uploaded")
        if self.formula_commit is not None:
            out.append(f"formula committed ({self.formula_commit})")
        return tuple(out)


def transition(run: PipelineRun, state: PipelineState) -> PipelineRun:
    """Move ``run`` to ``state``; only the next state or FAILED is allowed."""
    if run.state in TERMINAL_STATES:
        raise AssertionError(f"run already finished in state {run.state}")
    if state != PipelineState.FAILED and state != next_state(run.state):
        raise AssertionError(f"illegal transition {run.state} -> {state}")
    return replace(run, state=state, history=(*run.history, state))


def fail(run: PipelineRun, error: PipelineError) -> PipelineRun:
    failed = transition(run, PipelineState.FAILED)
    return replace(failed, failed_at=run.state, error=error)


StepHandler = Callable[[PipelineRun], Result[PipelineRun, PipelineError]]


class ReleasePipeline:
    """Runs one release, stage by stage, stopping at the first failure."""

    def __init__(
        self,
        *,
        settings: PipelineSettings,
        builder: Builder,
        release_api: ReleaseApi,
        formula_api: FormulaApi,
        console: ConsoleProtocol,
    ) -> None:
        self._settings = settings
        self._builder = builder
        self._release_api = release_api
        self._formula_api = formula_api
        self._console = console
        self._handlers: Mapping[PipelineState, StepHandler] = {
            PipelineState.EXTRACTING: self._extract,
            PipelineState.BUILDING: self._build,
            PipelineState.PUBLISHING: self._publish,
            PipelineState.UPLOADING: self._upload,
            PipelineState.UPDATING_FORMULA: self._update_formula,
        }

    def run(self, ref: TriggerRef) -> PipelineRun:
        current = transition(PipelineRun(ref=ref), PipelineState.EXTRACTING)

        while current.state not in TERMINAL_STATES:
            self._console.header(_STAGE_LABELS[current.state])
            outcome = self._handlers[current.state](current)
            if isinstance(outcome, Err):
                current = fail(current, outcome.error)
                break
            current = transition(outcome.value, next_state(current.state))

        self._report(current)
        return current

    def _extract(self, run: PipelineRun) -> Result[PipelineRun, PipelineError]:
        version = extract_version(run.ref)
        if isinstance(version, Err):
            return version
        self._console.print(f"version: {version.value}", Style.DIM)
        return Ok(replace(run, version=version.value))

    def _build(self, run: PipelineRun) -> Result[PipelineRun, PipelineError]:
        artifact = self._builder.build()
        if isinstance(artifact, Err):
            return artifact
        self._console.success(f"packaged {artifact.value.name}")
        return Ok(replace(run, artifact=artifact.value))

    def _publish(self, run: PipelineRun) -> Result[PipelineRun, PipelineError]:
        assert run.version is not None
        release = publish_release(self._release_api, run.version)
        if isinstance(release, Err):
            return release
        self._console.success(f"release {release.value.tag} created")
        return Ok(replace(run, release=release.value))

    def _upload(self, run: PipelineRun) -> Result[PipelineRun, PipelineError]:
        assert run.release is not None and run.artifact is not None
        asset = upload_asset(self._release_api, run.release, run.artifact)
        if isinstance(asset, Err):
            return asset
        self._console.success(f"uploaded {asset.value.name}")
        return Ok(replace(run, asset=asset.value))

    def _update_formula(self, run: PipelineRun) -> Result[PipelineRun, PipelineError]:
        assert run.version is not None and run.asset is not None
        s = self._settings
        url = download_url(s.repo, run.version, s.asset_name)
        self._console.print(f"download url: {url}", Style.DIM)
        reported = run.asset.download_url
        if reported is not None and reported != url:
            self._console.warning(f"platform reports asset at {reported}")

        request = FormulaUpdateRequest(
            formula_name=s.formula_name, tap_repo=s.tap_repo, download_url=url
        )
        commit = update_formula(self._formula_api, request)
        if isinstance(commit, Err):
            return Err(commit.error)
        self._console.success(f"{s.formula_name} bumped in {s.tap_repo}")
        return Ok(replace(run, download_url=url, formula_commit=commit.value))

    def _report(self, run: PipelineRun) -> None:
        if run.is_done:
            self._console.success(f"{run.version} released")
            return

        assert run.error is not None and run.failed_at is not None
        label = _STAGE_LABELS.get(run.failed_at, str(run.failed_at))
        self._console.error(f"{label} failed ({run.failed_at}): {run.error.pretty()}")
        effects = run.side_effects()
        if effects:
            self._console.warning("left in place, clean up manually: " + "; ".join(effects))
