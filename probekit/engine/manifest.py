"""Scenario manifest loading.

A manifest is a YAML document listing scenarios and the Python callables that
implement them::

    scenarios:
      - path: features/orders/OrderLifecycle.feature
        name: Order lifecycle
        tags: ["@smoke", "@orders"]
        target: acme_checks.orders:order_lifecycle
"""

from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, Field, ValidationError, field_validator

from probekit.config.models import CatalogConfig
from probekit.engine.catalog import CatalogBuilder, ScenarioCatalog
from probekit.engine.models import Scenario, ScenarioBody
from probekit.exceptions import ManifestError


class ManifestEntry(BaseModel):
    """One scenario declaration in a manifest."""

    path: str = Field(..., min_length=1)
    name: str = ""
    tags: list[str] = Field(default_factory=list)
    target: str = Field(..., min_length=3)

    @field_validator("path", "target")
    @classmethod
    def _strip(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("must be non-empty")
        return normalized

    @field_validator("target")
    @classmethod
    def _target_style(cls, value: str) -> str:
        module_name, sep, attribute = value.partition(":")
        if not sep or not module_name or not attribute:
            raise ValueError("target must look like 'package.module:callable'")
        return value


def resolve_target(target: str) -> ScenarioBody:
    """Import 'package.module:callable' and return the callable."""
    module_name, _, attribute_path = target.partition(":")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ManifestError(f"cannot import module '{module_name}' for target '{target}': {exc}") from exc
    obj: Any = module
    for part in attribute_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ManifestError(f"target '{target}' has no attribute '{part}'") from exc
    if not callable(obj):
        raise ManifestError(f"target '{target}' is not callable")
    return obj


def parse_manifest(data: Any, *, source: str = "<manifest>") -> list[Scenario]:
    """Turn a parsed manifest document into scenarios."""
    if data is None:
        return []
    if not isinstance(data, dict):
        raise ManifestError(f"manifest root must be a mapping: {source}")
    raw_entries = data.get("scenarios") or []
    if not isinstance(raw_entries, list):
        raise ManifestError(f"'scenarios' must be a list: {source}")

    scenarios: list[Scenario] = []
    for index, raw in enumerate(raw_entries):
        try:
            entry = ManifestEntry.model_validate(raw)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
            )
            raise ManifestError(f"invalid scenario entry #{index} in {source}: {details}") from exc
        scenarios.append(
            Scenario(
                path=entry.path,
                tags=tuple(entry.tags),
                name=entry.name,
                body=resolve_target(entry.target),
            )
        )
    return scenarios


def load_manifest(path: str | Path) -> list[Scenario]:
    """Load scenarios from a YAML manifest file."""
    target = Path(path)
    if not target.exists():
        raise ManifestError(f"manifest not found: {target}")
    try:
        data = yaml.safe_load(target.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ManifestError(f"invalid YAML in manifest {target}") from exc
    return parse_manifest(data, source=str(target))


def load_catalog(config: CatalogConfig) -> ScenarioCatalog:
    """Assemble the catalog: built-in scenarios first, then manifest entries."""
    builder = CatalogBuilder()
    if config.include_builtin:
        from probekit.scenarios import builtin_scenarios

        builder.extend(builtin_scenarios())
    if config.manifest:
        try:
            builder.extend(load_manifest(config.manifest))
        except ValueError as exc:
            raise ManifestError(str(exc)) from exc
    return builder.build()
