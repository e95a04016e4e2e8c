"""Read probekit.yaml and layer PROBEKIT_* environment overrides on top."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from probekit.config.models import ProbekitConfig
from probekit.exceptions import ConfigLoadError, ConfigurationError

CONFIG_ENV_VAR = "PROBEKIT_CONFIG"
DEFAULT_CONFIG_FILE = "probekit.yaml"

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


def _parse_flag(value: str) -> bool:
    word = value.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean: {value}")


# env var -> (location in the config tree, parser)
_ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "PROBEKIT_DEFAULT_ENVIRONMENT": (("default_environment",), str),
    "PROBEKIT_LOG_LEVEL": (("log_level",), str),
    "PROBEKIT_DEFAULT_THREADS": (("execution", "default_threads"), int),
    "PROBEKIT_TIMEOUT_SECONDS": (("execution", "default_timeout_seconds"), float),
    "PROBEKIT_REPORT_DIR": (("execution", "report_dir"), str),
    "PROBEKIT_CATALOG_MANIFEST": (("catalog", "manifest"), str),
    "PROBEKIT_INCLUDE_BUILTIN": (("catalog", "include_builtin"), _parse_flag),
    "PROBEKIT_HOST": (("server", "host"), str),
    "PROBEKIT_PORT": (("server", "port"), int),
}


def find_config_file(cli_path: str | None = None, environ: Mapping[str, str] | None = None) -> Path:
    """Pick the config file: $PROBEKIT_CONFIG, then --config, then ./probekit.yaml."""
    env = os.environ if environ is None else environ
    for candidate in (env.get(CONFIG_ENV_VAR), cli_path):
        if candidate and candidate.strip():
            return Path(candidate.strip())
    return Path.cwd() / DEFAULT_CONFIG_FILE


def read_config_file(path: Path) -> dict[str, Any]:
    """Parse one config file. A missing or blank file is an empty mapping."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"{path}: cannot read config file ({exc})") from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(_describe_yaml_error(path, exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigLoadError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return dict(data)


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Turn PROBEKIT_* variables into a nested partial config."""
    tree: dict[str, Any] = {}
    for name, (location, parse) in _ENV_OVERRIDES.items():
        raw = environ.get(name)
        if not raw:
            continue
        try:
            value = parse(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from exc
        *parents, leaf = location
        node = tree
        for key in parents:
            node = node.setdefault(key, {})
        node[leaf] = value
    return tree


def load_config(
    *,
    config_path: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ProbekitConfig:
    """Build the effective configuration; environment variables beat the file."""
    env = dict(os.environ if environ is None else environ)
    layered = _overlay(read_config_file(find_config_file(config_path, env)), env_overrides(env))
    try:
        return ProbekitConfig.model_validate(layered)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise ConfigurationError(f"Invalid probekit configuration: {problems}") from exc


def _describe_yaml_error(path: Path, exc: yaml.YAMLError) -> str:
    problem = getattr(exc, "problem", None) or "invalid YAML"
    mark = getattr(exc, "problem_mark", None)
    if mark is None:
        return f"{path}: {problem}"
    return f"{path}:{mark.line + 1}:{mark.column + 1}: {problem}"


def _overlay(base: Mapping[str, Any], top: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in top.items():
        below = result.get(key)
        result[key] = _overlay(below, value) if isinstance(below, Mapping) and isinstance(value, Mapping) else value
    return result
