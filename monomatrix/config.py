"""Configuration loading for monomatrix runs.

Inputs are resolved once at the process boundary, in precedence order:
explicit overrides (CLI flags), the CI environment (GitHub Actions ``INPUT_*``
variables), an optional ``.monomatrix.yml`` file, and finally defaults.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .classifier import DEFAULT_ROOT
from .git.compare import DEFAULT_API_URL
from .models import GlobRuleSet

CONFIG_FILENAME = ".monomatrix.yml"
PROVIDERS = ("github", "git")

# Environment variable names per option; the first one that is set wins.
_ENV_KEYS: Dict[str, tuple[str, ...]] = {
    "root": ("INPUT_PATH",),
    "token": ("INPUT_TOKEN", "GITHUB_TOKEN"),
    "max_changed": ("INPUT_MAX-CHANGED", "INPUT_MAX_CHANGED"),
    "include": ("INPUT_INCLUDE",),
    "exclude": ("INPUT_EXCLUDE",),
    "provider": ("INPUT_PROVIDER",),
    "repository": ("GITHUB_REPOSITORY",),
    "api_url": ("GITHUB_API_URL",),
    "event_name": ("GITHUB_EVENT_NAME",),
    "event_path": ("GITHUB_EVENT_PATH",),
    "output_path": ("GITHUB_OUTPUT",),
    "repo_path": ("GITHUB_WORKSPACE",),
}

# Keys accepted from the YAML file. Credentials are never read from disk.
_FILE_KEYS = {
    "path": "root",
    "root": "root",
    "include": "include",
    "exclude": "exclude",
    "max_changed": "max_changed",
    "max-changed": "max_changed",
    "provider": "provider",
    "repository": "repository",
    "api_url": "api_url",
    "request_timeout": "request_timeout",
}


class ConfigError(RuntimeError):
    """Raised when run inputs are missing or invalid."""


@dataclass(frozen=True)
class ActionConfig:
    """Validated inputs for a single run, passed by value into the pipeline."""

    include: str
    exclude: str = ""
    root: str = DEFAULT_ROOT
    token: Optional[str] = None
    max_changed: Optional[int] = None
    provider: str = "github"
    repository: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    event_name: str = ""
    event_path: Optional[Path] = None
    output_path: Optional[Path] = None
    repo_path: Path = Path(".")
    request_timeout: Optional[float] = 30.0
    verbose: bool = False

    @property
    def rules(self) -> GlobRuleSet:
        return GlobRuleSet(include=self.include, exclude=self.exclude)

    def __repr__(self) -> str:
        # Keep the credential out of logs and tracebacks.
        token = "***" if self.token else None
        return (
            f"ActionConfig(include={self.include!r}, exclude={self.exclude!r}, "
            f"root={self.root!r}, token={token!r}, max_changed={self.max_changed!r}, "
            f"provider={self.provider!r}, repository={self.repository!r})"
        )


def load_config(
    environ: Mapping[str, str],
    overrides: Optional[Mapping[str, Any]] = None,
    config_file: Optional[Path] = None,
) -> ActionConfig:
    """Merge all configuration sources and validate the result."""
    values: Dict[str, Any] = {}
    values.update(_read_file_values(config_file))
    values.update(_read_env_values(environ))
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    include = _as_str(values.get("include"))
    if include is None or not include.strip():
        raise ConfigError("Input required and not supplied: include")

    provider = (_as_str(values.get("provider")) or "github").strip().lower()
    if provider not in PROVIDERS:
        raise ConfigError(
            f"Unknown provider {provider!r}; expected one of {', '.join(PROVIDERS)}"
        )

    token = _as_str(values.get("token")) or None
    repository = _as_str(values.get("repository")) or None
    if provider == "github":
        if not token:
            raise ConfigError("Input required and not supplied: token")
        if not repository or repository.count("/") != 1 or repository.startswith("/"):
            raise ConfigError(
                f"Repository must be given as 'owner/repo' for the GitHub provider, got {repository!r}"
            )

    root = _as_str(values.get("root"))
    verbose = _as_bool(values.get("verbose"))
    if verbose is None:
        verbose = _as_bool(environ.get("RUNNER_DEBUG")) or False

    return ActionConfig(
        include=include,
        exclude=_as_str(values.get("exclude")) or "",
        root=root if root and root.strip() else DEFAULT_ROOT,
        token=token,
        max_changed=_parse_max_changed(values.get("max_changed")),
        provider=provider,
        repository=repository,
        api_url=_as_str(values.get("api_url")) or DEFAULT_API_URL,
        event_name=_as_str(values.get("event_name")) or "",
        event_path=_as_path(values.get("event_path")),
        output_path=_as_path(values.get("output_path")),
        repo_path=_as_path(values.get("repo_path")) or Path("."),
        request_timeout=_parse_timeout(values.get("request_timeout")),
        verbose=verbose,
    )


def find_config_file(start: Path) -> Optional[Path]:
    """Return the default config file below ``start`` if one exists."""
    candidate = start.expanduser() / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _read_env_values(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, names in _ENV_KEYS.items():
        for name in names:
            value = environ.get(name)
            # GitHub Actions sets unset optional inputs to an empty string.
            if value is not None and value != "":
                values[key] = value
                break
    return values


def _read_file_values(config_file: Optional[Path]) -> Dict[str, Any]:
    if config_file is None:
        return {}
    try:
        text = config_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read {config_file}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {config_file.name}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")
    if "token" in data:
        raise ConfigError(
            f"{config_file.name} must not contain credentials; pass the token via the environment"
        )

    values: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = _FILE_KEYS.get(str(raw_key))
        if key is None:
            raise ConfigError(f"Unknown option {raw_key!r} in {config_file.name}")
        if isinstance(value, list) and key in ("include", "exclude"):
            value = "\n".join(str(item) for item in value)
        values[key] = value
    return values


def _parse_max_changed(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ConfigError(f"max-changed must be an integer, got {value!r}")
    parsed = _as_int(value)
    if parsed is None:
        raise ConfigError(f"max-changed must be an integer, got {value!r}")
    if parsed < 0:
        raise ConfigError(f"max-changed must not be negative, got {parsed}")
    return parsed


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None or value == "":
        return 30.0
    parsed = _as_float(value)
    if parsed is None or parsed <= 0:
        raise ConfigError(f"request_timeout must be a positive number, got {value!r}")
    return parsed


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_path(value: Any) -> Optional[Path]:
    if isinstance(value, Path):
        return value
    if isinstance(value, str) and value.strip():
        return Path(value)
    return None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = ["ActionConfig", "CONFIG_FILENAME", "ConfigError", "find_config_file", "load_config"]
