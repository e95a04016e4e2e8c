"""Execution service: request in, classified report out."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Any
from uuid import uuid4

from pydantic import ValidationError

from probekit.capabilities import CapabilityFactory, CapabilitySet, default_capability_factory
from probekit.config.models import EnvironmentProfile, ProbekitConfig
from probekit.engine.aggregator import ResultAggregator
from probekit.engine.catalog import ScenarioCatalog
from probekit.engine.models import (
    Classification,
    ExecutionReport,
    ExecutionRequest,
    ExecutionSummary,
    ScenarioContext,
    ScenarioOutcome,
    ServiceState,
)
from probekit.engine.scheduler import ExecutionScheduler
from probekit.engine.selection import SelectionResolver
from probekit.exceptions import SelectionError, SelectionFailure

logger = logging.getLogger(__name__)

MESSAGE_SUCCESS = "All tests passed successfully"
MESSAGE_EMPTY = "No scenarios matched the selection"
MESSAGE_PARTIAL = "Test execution completed with failures"
MESSAGE_FAULT_PREFIX = "Test execution failed: "

_TRANSITIONS: dict[ServiceState, frozenset[ServiceState]] = {
    ServiceState.IDLE: frozenset({ServiceState.RESOLVING, ServiceState.FAULTED}),
    ServiceState.RESOLVING: frozenset({ServiceState.RUNNING, ServiceState.FAULTED}),
    ServiceState.RUNNING: frozenset({ServiceState.AGGREGATING, ServiceState.FAULTED}),
    ServiceState.AGGREGATING: frozenset({ServiceState.COMPLETED, ServiceState.FAULTED}),
    ServiceState.COMPLETED: frozenset(),
    ServiceState.FAULTED: frozenset(),
}


class _RunTracker:
    """State machine for one execution."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self.state = ServiceState.IDLE
        self.transitions: list[ServiceState] = [ServiceState.IDLE]

    def advance(self, target: ServiceState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid transition {self.state.value} -> {target.value}")
        self.state = target
        self.transitions.append(target)


class RunHistory:
    """Bounded, thread-safe record of recent execution reports."""

    def __init__(self, max_entries: int = 50) -> None:
        self._lock = threading.Lock()
        self._reports: deque[ExecutionReport] = deque(maxlen=max_entries)

    def record(self, report: ExecutionReport) -> None:
        with self._lock:
            self._reports.append(report)

    def recent(self) -> list[ExecutionReport]:
        """Return reports newest first."""
        with self._lock:
            return list(reversed(self._reports))

    def get(self, run_id: str) -> ExecutionReport | None:
        with self._lock:
            for report in self._reports:
                if report.run_id == run_id:
                    return report
        return None


class ExecutionService:
    """Drive resolve -> run -> aggregate for one request at a time.

    Concurrent calls are independent: each gets its own worker pool, outcome
    collector and capability set. Only the catalog is shared.
    """

    def __init__(
        self,
        catalog: ScenarioCatalog,
        *,
        config: ProbekitConfig | None = None,
        capability_factory: CapabilityFactory | None = None,
        aggregator: ResultAggregator | None = None,
        history: RunHistory | None = None,
    ) -> None:
        self._config = config or ProbekitConfig()
        self._resolver = SelectionResolver(catalog)
        self._capability_factory = capability_factory or default_capability_factory
        self._aggregator = aggregator or ResultAggregator()
        self._history = history or RunHistory(self._config.execution.history_size)

    @property
    def catalog(self) -> ScenarioCatalog:
        return self._resolver.catalog

    @property
    def config(self) -> ProbekitConfig:
        return self._config

    def execute_payload(self, payload: Any) -> ExecutionReport:
        """Validate a raw JSON body and execute it; bad input faults the run."""
        tracker = _RunTracker(_new_run_id())
        tracker.advance(ServiceState.RESOLVING)
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            return self._faulted(
                tracker,
                self._config.resolve_environment(None),
                datetime.now(timezone.utc),
                "request body must be a JSON object",
            )
        try:
            request = ExecutionRequest.model_validate(payload)
        except ValidationError as exc:
            error = SelectionError(SelectionFailure.MALFORMED_REQUEST, _describe_validation_error(exc))
            logger.warning("Malformed execution request: %s", error)
            environment = payload.get("environment") if isinstance(payload.get("environment"), str) else None
            return self._faulted(
                tracker,
                self._config.resolve_environment(environment),
                datetime.now(timezone.utc),
                str(error),
            )
        return self._run(tracker, request)

    def execute(self, request: ExecutionRequest) -> ExecutionReport:
        """Execute an already validated request."""
        tracker = _RunTracker(_new_run_id())
        tracker.advance(ServiceState.RESOLVING)
        return self._run(tracker, request)

    def recent_runs(self) -> list[ExecutionReport]:
        return self._history.recent()

    def get_run(self, run_id: str) -> ExecutionReport | None:
        return self._history.get(run_id)

    def _run(self, tracker: _RunTracker, request: ExecutionRequest) -> ExecutionReport:
        started_at = datetime.now(timezone.utc)
        profile = self._config.resolve_environment(request.environment)
        logger.info(
            "Execution %s requested: environment=%s tags=%s feature=%s threads=%s",
            tracker.run_id,
            profile.name,
            request.tags,
            request.feature,
            request.threads,
        )

        try:
            scenarios = self._resolver.resolve(request)
        except SelectionError as exc:
            logger.warning("Execution %s selection failed: %s", tracker.run_id, exc)
            return self._faulted(tracker, profile, started_at, str(exc))
        except Exception as exc:
            logger.exception("Execution %s failed while resolving scenarios", tracker.run_id)
            return self._faulted(tracker, profile, started_at, str(exc) or type(exc).__name__)

        threads = request.threads if request.threads is not None else self._config.execution.default_threads
        timeout_seconds = request.timeout_seconds or self._config.execution.default_timeout_seconds
        outcomes: list[ScenarioOutcome] = []
        try:
            if scenarios:
                capabilities = self._capability_factory(profile)
                context = ScenarioContext(run_id=tracker.run_id, environment=profile, capabilities=capabilities)
                tracker.advance(ServiceState.RUNNING)
                try:
                    outcomes = ExecutionScheduler(context).run(scenarios, threads, timeout_seconds=timeout_seconds)
                finally:
                    _release(tracker.run_id, capabilities)
            else:
                tracker.advance(ServiceState.RUNNING)

            tracker.advance(ServiceState.AGGREGATING)
            summary = self._aggregator.aggregate(
                outcomes,
                started_at,
                datetime.now(timezone.utc),
                self._report_path(tracker.run_id),
            )
            tracker.advance(ServiceState.COMPLETED)
        except Exception as exc:
            logger.exception("Execution %s faulted in state %s", tracker.run_id, tracker.state.value)
            return self._faulted(tracker, profile, started_at, str(exc) or type(exc).__name__)

        if summary.failed_scenarios == 0:
            classification = Classification.SUCCESS
            message = MESSAGE_SUCCESS if summary.total_scenarios else MESSAGE_EMPTY
        else:
            classification = Classification.PARTIAL_FAILURE
            message = MESSAGE_PARTIAL

        logger.info(
            "Execution %s completed in %dms: %d scenarios, %d passed, %d failed",
            tracker.run_id,
            summary.duration_ms,
            summary.total_scenarios,
            summary.passed_scenarios,
            summary.failed_scenarios,
        )
        report = ExecutionReport(
            run_id=tracker.run_id,
            environment=profile.name,
            state=tracker.state,
            classification=classification,
            message=message,
            summary=summary,
            transitions=list(tracker.transitions),
        )
        self._history.record(report)
        return report

    def _faulted(
        self,
        tracker: _RunTracker,
        profile: EnvironmentProfile,
        started_at: datetime,
        reason: str,
    ) -> ExecutionReport:
        tracker.advance(ServiceState.FAULTED)
        completed_at = datetime.now(timezone.utc)
        summary = ExecutionSummary(
            duration_ms=max(0, int((completed_at - started_at).total_seconds() * 1000)),
            timestamp=int(completed_at.timestamp() * 1000),
            errors=[reason],
        )
        report = ExecutionReport(
            run_id=tracker.run_id,
            environment=profile.name,
            state=tracker.state,
            classification=Classification.EXECUTION_FAULT,
            message=f"{MESSAGE_FAULT_PREFIX}{reason}",
            summary=summary,
            fault=reason,
            transitions=list(tracker.transitions),
        )
        self._history.record(report)
        return report

    def _report_path(self, run_id: str) -> str:
        return str(PurePosixPath(self._config.execution.report_dir) / run_id)


def _new_run_id() -> str:
    return f"run-{uuid4().hex}"


def _describe_validation_error(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors())


def _release(run_id: str, capabilities: CapabilitySet) -> None:
    # Cleanup failures never change the report.
    try:
        capabilities.close()
    except Exception:
        logger.warning("Execution %s could not release its capabilities", run_id, exc_info=True)
