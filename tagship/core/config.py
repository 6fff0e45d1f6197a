"""Typed configuration loading and access.

The pipeline reads ``tagship.toml`` from the project root. Secrets never live
in that file: they come from the environment through :class:`Credentials`.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_str_list, get_table

__all__ = [
    "Config",
    "ConfigError",
    "Credentials",
    "RepoConfig",
    "BuildConfig",
    "FormulaConfig",
    "CONFIG_FILENAME",
    "load_config",
]

CONFIG_FILENAME = "tagship.toml"

DEFAULT_BUILD_COMMAND = ("cargo", "build", "--release")
DEFAULT_BINARY_DIR = "target/release"
DEFAULT_STRIP_COMMAND = ("strip",)
GITHUB_WEB_URL = "https://github.com"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or is incomplete."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class RepoConfig:
    """Identity of the repository releases are published to."""

    slug: str  # owner/name
    url: str

    @classmethod
    def from_slug(cls, slug: str, url: str | None = None) -> RepoConfig:
        return cls(slug=slug, url=(url or f"{GITHUB_WEB_URL}/{slug}").rstrip("/"))


@dataclass(frozen=True, slots=True)
class BuildConfig:
    binary: str
    command: tuple[str, ...] = DEFAULT_BUILD_COMMAND
    binary_dir: str = DEFAULT_BINARY_DIR
    strip: tuple[str, ...] = DEFAULT_STRIP_COMMAND
    # None means the build may run as long as the CI job allows.
    timeout: float | None = None

    @property
    def asset_name(self) -> str:
        return f"{self.binary}.tar.gz"


@dataclass(frozen=True, slots=True)
class FormulaConfig:
    name: str
    tap: str  # owner/homebrew-name
    path: str | None = None

    @property
    def formula_path(self) -> str:
        return self.path or f"Formula/{self.name}.rb"


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    repo: RepoConfig
    build: BuildConfig
    formula: FormulaConfig

    @property
    def asset_name(self) -> str:
        return self.build.asset_name


@dataclass(frozen=True, slots=True)
class Credentials:
    """Tokens for the two external systems the pipeline writes to."""

    release_token: str | None
    committer_token: str | None

    @classmethod
    def from_env(cls, env: Mapping[str, str]) -> Credentials:
        return cls(
            release_token=env.get("GITHUB_TOKEN") or None,
            committer_token=env.get("COMMITTER_TOKEN") or None,
        )

    def missing(self) -> list[str]:
        out: list[str] = []
        if self.release_token is None:
            out.append("GITHUB_TOKEN")
        if self.committer_token is None:
            out.append("COMMITTER_TOKEN")
        return out


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def config_from_dict(
    data: Mapping[str, object],
    *,
    env: Mapping[str, str],
    path: Path | None = None,
) -> Result[Config, ConfigError]:
    """Build a Config from parsed TOML, falling back to CI env for the repo slug."""
    repo: StrDict = get_table(data, "repo") or {}
    build: StrDict = get_table(data, "build") or {}
    formula: StrDict = get_table(data, "formula") or {}

    slug = get_str(repo, "slug") or (env.get("GITHUB_REPOSITORY") or "").strip() or None
    if slug is None or slug.count("/") != 1:
        return Err(
            ConfigError("repo.slug missing (expected owner/name, or set GITHUB_REPOSITORY)", path)
        )

    binary = get_str(build, "binary")
    if binary is None:
        return Err(ConfigError("build.binary missing", path=path))

    formula_name = get_str(formula, "name")
    tap = get_str(formula, "tap")
    if formula_name is None or tap is None:
        return Err(ConfigError("formula.name and formula.tap are required", path=path))

    timeout = get_int(build, "timeout")
    return Ok(
        Config(
            repo=RepoConfig.from_slug(slug, get_str(repo, "url")),
            build=BuildConfig(
                binary=binary,
                command=get_str_list(build, "command") or DEFAULT_BUILD_COMMAND,
                binary_dir=get_str(build, "binary_dir") or DEFAULT_BINARY_DIR,
                strip=get_str_list(build, "strip") or DEFAULT_STRIP_COMMAND,
                timeout=float(timeout) if timeout else None,
            ),
            formula=FormulaConfig(name=formula_name, tap=tap, path=get_str(formula, "path")),
        )
    )


def load_config(path: Path, *, env: Mapping[str, str] | None = None) -> Result[Config, ConfigError]:
    """Load and validate configuration from a TOML file.

    Args:
        path: Path to tagship.toml
        env: Environment used for CI fallbacks (``GITHUB_REPOSITORY``).

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result
    return config_from_dict(result.value, env=env or {}, path=path)
