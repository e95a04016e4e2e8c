"""Request/response schemas for the probekit HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from probekit.engine.models import ExecutionReport


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExecutionResponse(_CamelModel):
    """Body returned by POST /api/execute."""

    success: bool
    message: str
    total_scenarios: int = 0
    passed_scenarios: int = 0
    failed_scenarios: int = 0
    duration_ms: int = 0
    report_path: str = ""
    timestamp: int = 0
    errors: list[str] | None = None
    run_id: str
    environment: str

    @classmethod
    def from_report(cls, report: ExecutionReport) -> ExecutionResponse:
        summary = report.summary
        return cls(
            success=report.success,
            message=report.message,
            total_scenarios=summary.total_scenarios,
            passed_scenarios=summary.passed_scenarios,
            failed_scenarios=summary.failed_scenarios,
            duration_ms=summary.duration_ms,
            report_path=summary.report_path,
            timestamp=summary.timestamp,
            errors=list(summary.errors) or None,
            run_id=report.run_id,
            environment=report.environment,
        )

    def to_body(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RunSummary(_CamelModel):
    """One entry of the recent-runs listing."""

    run_id: str
    environment: str
    state: str
    classification: str
    status_code: int
    message: str
    total_scenarios: int
    passed_scenarios: int
    failed_scenarios: int
    timestamp: int

    @classmethod
    def from_report(cls, report: ExecutionReport) -> RunSummary:
        return cls(
            run_id=report.run_id,
            environment=report.environment,
            state=report.state.value,
            classification=report.classification.value,
            status_code=report.status_code,
            message=report.message,
            total_scenarios=report.summary.total_scenarios,
            passed_scenarios=report.summary.passed_scenarios,
            failed_scenarios=report.summary.failed_scenarios,
            timestamp=report.summary.timestamp,
        )


class ServiceInfo(BaseModel):
    """Static service description."""

    service: str
    version: str
    description: str
    endpoints: list[str] = Field(default_factory=list)
