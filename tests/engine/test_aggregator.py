"""Unit tests for ResultAggregator."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from hypothesis import given, settings
from hypothesis import strategies as st

from probekit.engine.aggregator import ResultAggregator
from probekit.engine.models import ScenarioOutcome, ScenarioStatus

_START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_empty_outcomes_reduce_to_zero_counts() -> None:
    summary = ResultAggregator().aggregate([], _START, _START, "build/reports/run-1")
    assert (summary.total_scenarios, summary.passed_scenarios, summary.failed_scenarios) == (0, 0, 0)
    assert summary.errors == []
    assert summary.duration_ms == 0
    assert summary.report_path == "build/reports/run-1"


def test_counts_errors_and_timing() -> None:
    outcomes = [
        ScenarioOutcome(scenario_id="a", status=ScenarioStatus.PASSED, duration_ms=5),
        ScenarioOutcome(scenario_id="b", status=ScenarioStatus.FAILED, error_detail="expected 1 got 2"),
        ScenarioOutcome(scenario_id="c", status=ScenarioStatus.ERROR),
    ]
    completed = _START + timedelta(milliseconds=1250)
    summary = ResultAggregator().aggregate(outcomes, _START, completed, "r")

    assert summary.total_scenarios == 3
    assert summary.passed_scenarios == 1
    assert summary.failed_scenarios == 2
    assert summary.errors == ["b: expected 1 got 2", "c: error"]
    assert summary.duration_ms == 1250
    assert summary.timestamp == int(completed.timestamp() * 1000)


def test_naive_datetimes_are_treated_as_utc() -> None:
    naive = datetime(2026, 1, 1, 12, 0, 0)
    summary = ResultAggregator().aggregate([], naive, naive + timedelta(seconds=2), "r")
    assert summary.duration_ms == 2000
    assert summary.timestamp == int(_START.timestamp() * 1000) + 2000


def test_clock_going_backwards_never_yields_negative_duration() -> None:
    summary = ResultAggregator().aggregate([], _START, _START - timedelta(seconds=1), "r")
    assert summary.duration_ms == 0


_outcomes = st.lists(
    st.builds(
        ScenarioOutcome,
        scenario_id=st.text(min_size=1, max_size=10),
        status=st.sampled_from(list(ScenarioStatus)),
        error_detail=st.one_of(st.none(), st.text(max_size=20)),
        duration_ms=st.integers(min_value=0, max_value=10_000),
    ),
    max_size=20,
)


@settings(max_examples=100, deadline=None)
@given(outcomes=_outcomes)
def test_aggregation_is_idempotent_and_consistent(outcomes: list[ScenarioOutcome]) -> None:
    aggregator = ResultAggregator()
    completed = _START + timedelta(seconds=3)
    first = aggregator.aggregate(outcomes, _START, completed, "r")
    second = aggregator.aggregate(outcomes, _START, completed, "r")

    assert first == second
    assert first.passed_scenarios + first.failed_scenarios == first.total_scenarios == len(outcomes)
    assert len(first.errors) == first.failed_scenarios
