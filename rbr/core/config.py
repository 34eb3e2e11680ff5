"""Typed configuration loading.

The pipeline reads an optional ``release.toml`` from the source root. Every
key has a default that matches the upstream replibyte release workflow, so a
missing file is a valid configuration.

Secrets are never stored here: the ``[secrets]`` table only names the
environment variables the tokens are read from.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "ProjectConfig",
    "FormulaConfig",
    "SecretsConfig",
    "ToolchainConfig",
    "PathsConfig",
    "SidecarPolicy",
    "CONFIG_FILE_NAME",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILE_NAME = "release.toml"

DEFAULT_BINARY_NAME = "replibyte"
DEFAULT_REPO = "Qovery/replibyte"
DEFAULT_TAP = "Qovery/homebrew-replibyte"
DEFAULT_FORMULA = "replibyte"
DEFAULT_PUBLISH_TOKEN_ENV = "GITHUB_TOKEN"
DEFAULT_FORMULA_TOKEN_ENV = "PERSONAL_TOKEN"
DEFAULT_BUILDER_IMAGE = "joseluisq/rust-linux-darwin-builder:1.60.0"
DEFAULT_WORK_DIR = ".rbr"

# "per-target" keeps the upstream asymmetry (macOS sidecar names the archive).
SidecarPolicy = Literal["per-target", "bare", "named"]
_SIDECAR_POLICIES: tuple[SidecarPolicy, ...] = ("per-target", "bare", "named")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    binary_name: str = DEFAULT_BINARY_NAME
    repo: str = DEFAULT_REPO  # owner/name of the repo holding the release


@dataclass(frozen=True, slots=True)
class FormulaConfig:
    tap: str = DEFAULT_TAP  # owner/homebrew-name
    name: str = DEFAULT_FORMULA
    force: bool = False


@dataclass(frozen=True, slots=True)
class SecretsConfig:
    """Names of the environment variables holding the tokens."""

    publish_token_env: str = DEFAULT_PUBLISH_TOKEN_ENV
    formula_token_env: str = DEFAULT_FORMULA_TOKEN_ENV


@dataclass(frozen=True, slots=True)
class ToolchainConfig:
    builder_image: str = DEFAULT_BUILDER_IMAGE


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """Paths relative to the source root."""

    work_dir: str = DEFAULT_WORK_DIR


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    formula: FormulaConfig = field(default_factory=FormulaConfig)
    secrets: SecretsConfig = field(default_factory=SecretsConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    sidecar_format: SidecarPolicy = "per-target"

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: If ``checksums.sidecar_format`` is not a known policy.
        """
        project: StrDict = get_table(data, "project") or {}
        formula: StrDict = get_table(data, "formula") or {}
        secrets: StrDict = get_table(data, "secrets") or {}
        toolchain: StrDict = get_table(data, "toolchain") or {}
        paths: StrDict = get_table(data, "paths") or {}
        checksums: StrDict = get_table(data, "checksums") or {}

        return cls(
            project=ProjectConfig(
                binary_name=get_str(project, "binary_name") or DEFAULT_BINARY_NAME,
                repo=get_str(project, "repo") or DEFAULT_REPO,
            ),
            formula=FormulaConfig(
                tap=get_str(formula, "tap") or DEFAULT_TAP,
                name=get_str(formula, "name") or DEFAULT_FORMULA,
                force=bool(get_bool(formula, "force")),
            ),
            secrets=SecretsConfig(
                publish_token_env=get_str(secrets, "publish_token_env")
                or DEFAULT_PUBLISH_TOKEN_ENV,
                formula_token_env=get_str(secrets, "formula_token_env")
                or DEFAULT_FORMULA_TOKEN_ENV,
            ),
            toolchain=ToolchainConfig(
                builder_image=get_str(toolchain, "builder_image") or DEFAULT_BUILDER_IMAGE,
            ),
            paths=PathsConfig(
                work_dir=get_str(paths, "work_dir") or DEFAULT_WORK_DIR,
            ),
            sidecar_format=_parse_sidecar_policy(get_str(checksums, "sidecar_format")),
        )


def _parse_sidecar_policy(value: str | None) -> SidecarPolicy:
    if value is None:
        return "per-target"
    for policy in _SIDECAR_POLICIES:
        if value == policy:
            return policy
    raise ValueError(
        f"checksums.sidecar_format must be one of {', '.join(_SIDECAR_POLICIES)} (got {value!r})"
    )


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
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


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to release.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config if the file exists, else return the defaults.

    Unlike a missing file, a present-but-broken file is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
