"""Core data models for scenario selection, execution and aggregation."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from probekit.capabilities.protocols import CapabilitySet
from probekit.config.models import EnvironmentProfile, ProbekitConfig

ScenarioBody = Callable[["ScenarioContext"], Any]

CLASSPATH_PREFIX = "classpath:"


def normalize_tag(tag: str) -> str:
    """Canonical form used for tag comparison: trimmed, one leading '@' removed."""
    normalized = tag.strip()
    if normalized.startswith("@"):
        normalized = normalized[1:].strip()
    return normalized


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Normalize, drop blanks and de-duplicate while keeping first occurrence."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized and normalized not in seen:
            seen.add(normalized)
            result.append(normalized)
    return result


@dataclass(frozen=True)
class Scenario:
    """One runnable, tagged scenario identified by its path."""

    path: str
    tags: tuple[str, ...] = ()
    name: str = ""
    body: ScenarioBody | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.path.strip():
            raise ValueError("scenario path must be non-empty")
        object.__setattr__(self, "tags", tuple(self.tags))
        if not self.name:
            object.__setattr__(self, "name", self.path)

    @property
    def normalized_tags(self) -> frozenset[str]:
        return frozenset(normalize_tags(self.tags))


@dataclass(frozen=True)
class ScenarioContext:
    """Everything a scenario body may use, injected per run."""

    run_id: str
    environment: EnvironmentProfile
    capabilities: CapabilitySet
    scenario: Scenario | None = None
    logger: logging.Logger | logging.LoggerAdapter[logging.Logger] = field(
        default_factory=lambda: logging.getLogger("probekit.scenario")
    )

    def for_scenario(self, scenario: Scenario) -> ScenarioContext:
        """Return a copy bound to one scenario, with a scenario-scoped logger."""
        base = logging.getLogger("probekit.scenario")
        adapter = logging.LoggerAdapter(base, {"run_id": self.run_id, "scenario": scenario.path})
        return dataclasses.replace(self, scenario=scenario, logger=adapter)


class ScenarioStatus(str, Enum):
    """Per-scenario outcome."""

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


class ExecutionRequest(BaseModel):
    """Selection and execution options for one trigger call."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    environment: str = "dev"
    tags: list[str] | None = None
    feature: str | None = None
    threads: int | None = None
    timeout_seconds: float | None = Field(default=None, gt=0, alias="timeoutSeconds")

    @field_validator("environment", mode="before")
    @classmethod
    def _default_environment(cls, value: Any) -> Any:
        if value is None:
            return "dev"
        if isinstance(value, str):
            return value.strip() or "dev"
        return value

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        normalized = normalize_tags(value)
        if value and not normalized:
            raise ValueError("tags must contain at least one non-blank tag")
        return normalized

    @field_validator("feature")
    @classmethod
    def _normalize_feature(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if normalized.startswith(CLASSPATH_PREFIX):
            normalized = normalized[len(CLASSPATH_PREFIX):].strip()
        return normalized or None

    @field_validator("threads")
    @classmethod
    def _clamp_threads(cls, value: int | None) -> int | None:
        if value is None:
            return None
        return ProbekitConfig.clamp_threads(value)


class ScenarioOutcome(BaseModel):
    """Result of executing one scenario once."""

    scenario_id: str = Field(..., min_length=1)
    status: ScenarioStatus
    error_detail: str | None = None
    duration_ms: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        return self.status == ScenarioStatus.PASSED


class ExecutionSummary(BaseModel):
    """Reduction of every outcome of one run."""

    total_scenarios: int = Field(default=0, ge=0)
    passed_scenarios: int = Field(default=0, ge=0)
    failed_scenarios: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    report_path: str = ""
    timestamp: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _counts_add_up(self) -> ExecutionSummary:
        if self.passed_scenarios + self.failed_scenarios != self.total_scenarios:
            raise ValueError("passed_scenarios + failed_scenarios must equal total_scenarios")
        return self


class ServiceState(str, Enum):
    """Lifecycle states of one execution."""

    IDLE = "idle"
    RESOLVING = "resolving"
    RUNNING = "running"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"
    FAULTED = "faulted"


class Classification(str, Enum):
    """Terminal classification of one execution."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial_failure"
    EXECUTION_FAULT = "execution_fault"


_STATUS_CODES = {
    Classification.SUCCESS: 200,
    Classification.PARTIAL_FAILURE: 206,
    Classification.EXECUTION_FAULT: 500,
}


class ExecutionReport(BaseModel):
    """What the execution service hands back for one request."""

    run_id: str = Field(..., min_length=1)
    environment: str
    state: ServiceState
    classification: Classification
    message: str
    summary: ExecutionSummary
    fault: str | None = None
    transitions: list[ServiceState] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.classification == Classification.SUCCESS

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.classification]
