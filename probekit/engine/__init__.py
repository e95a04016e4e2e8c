"""Scenario execution engine exports."""

from probekit.engine.aggregator import ResultAggregator
from probekit.engine.catalog import CatalogBuilder, ScenarioCatalog
from probekit.engine.manifest import load_catalog, load_manifest, parse_manifest, resolve_target
from probekit.engine.models import (
    Classification,
    ExecutionReport,
    ExecutionRequest,
    ExecutionSummary,
    Scenario,
    ScenarioContext,
    ScenarioOutcome,
    ScenarioStatus,
    ServiceState,
    normalize_tag,
    normalize_tags,
)
from probekit.engine.scheduler import ExecutionScheduler, OutcomeCollector
from probekit.engine.selection import SelectionResolver
from probekit.engine.service import ExecutionService, RunHistory

__all__ = [
    "CatalogBuilder",
    "Classification",
    "ExecutionReport",
    "ExecutionRequest",
    "ExecutionScheduler",
    "ExecutionService",
    "ExecutionSummary",
    "OutcomeCollector",
    "ResultAggregator",
    "RunHistory",
    "Scenario",
    "ScenarioCatalog",
    "ScenarioContext",
    "ScenarioOutcome",
    "ScenarioStatus",
    "SelectionResolver",
    "ServiceState",
    "load_catalog",
    "load_manifest",
    "normalize_tag",
    "normalize_tags",
    "parse_manifest",
    "resolve_target",
]
