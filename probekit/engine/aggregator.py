"""Pure reduction of scenario outcomes into an execution summary."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from probekit.engine.models import ExecutionSummary, ScenarioOutcome


class ResultAggregator:
    """Fold outcomes into totals; deterministic and side-effect free."""

    def aggregate(
        self,
        outcomes: Iterable[ScenarioOutcome],
        started_at: datetime,
        completed_at: datetime,
        report_path: str,
    ) -> ExecutionSummary:
        ordered = list(outcomes)
        passed = sum(1 for outcome in ordered if outcome.passed)
        errors = [
            f"{outcome.scenario_id}: {outcome.error_detail or outcome.status.value}"
            for outcome in ordered
            if not outcome.passed
        ]
        started = _as_utc(started_at)
        completed = _as_utc(completed_at)
        duration_ms = max(0, int((completed - started).total_seconds() * 1000))
        return ExecutionSummary(
            total_scenarios=len(ordered),
            passed_scenarios=passed,
            failed_scenarios=len(ordered) - passed,
            duration_ms=duration_ms,
            report_path=report_path,
            timestamp=max(0, int(completed.timestamp() * 1000)),
            errors=errors,
        )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
