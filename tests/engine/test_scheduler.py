"""Unit tests for ExecutionScheduler and OutcomeCollector."""

from __future__ import annotations

import sys
import threading
import time
from collections.abc import Callable

import pytest

from probekit.engine.catalog import ScenarioCatalog
from probekit.engine.models import Scenario, ScenarioContext, ScenarioOutcome, ScenarioStatus
from probekit.engine.scheduler import ExecutionScheduler, OutcomeCollector


def _ok(_: ScenarioContext) -> None:
    return None


def _by_id(outcomes: list[ScenarioOutcome]) -> dict[str, ScenarioOutcome]:
    return {outcome.scenario_id: outcome for outcome in outcomes}


class _ConcurrencyGauge:
    def __init__(self, hold_seconds: float = 0.05) -> None:
        self._lock = threading.Lock()
        self._hold_seconds = hold_seconds
        self.current = 0
        self.peak = 0

    def __call__(self, _: ScenarioContext) -> None:
        with self._lock:
            self.current += 1
            self.peak = max(self.peak, self.current)
        time.sleep(self._hold_seconds)
        with self._lock:
            self.current -= 1


def test_empty_selection_returns_no_outcomes(context: ScenarioContext) -> None:
    assert ExecutionScheduler(context).run([], 5) == []


def test_every_scenario_gets_exactly_one_outcome(context: ScenarioContext) -> None:
    scenarios = [Scenario(path=f"features/{index}.feature", body=_ok) for index in range(12)]
    outcomes = ExecutionScheduler(context).run(scenarios, 4)
    assert sorted(outcome.scenario_id for outcome in outcomes) == sorted(s.path for s in scenarios)
    assert all(outcome.status == ScenarioStatus.PASSED for outcome in outcomes)


def test_failures_are_isolated(
    context: ScenarioContext, make_catalog: Callable[..., ScenarioCatalog]
) -> None:
    def broken(_: ScenarioContext) -> None:
        raise RuntimeError("connection refused")

    def asserting(_: ScenarioContext) -> None:
        raise AssertionError("math is broken")

    def exiting(_: ScenarioContext) -> None:
        sys.exit(3)

    catalog = make_catalog(first=_ok, broken=broken, asserting=asserting, exiting=exiting, last=_ok)
    outcomes = _by_id(ExecutionScheduler(context).run(catalog.all_scenarios(), 2))

    assert outcomes["features/first.feature"].status == ScenarioStatus.PASSED
    assert outcomes["features/last.feature"].status == ScenarioStatus.PASSED
    assert outcomes["features/broken.feature"].status == ScenarioStatus.ERROR
    assert outcomes["features/broken.feature"].error_detail == "RuntimeError: connection refused"
    assert outcomes["features/asserting.feature"].status == ScenarioStatus.FAILED
    assert outcomes["features/asserting.feature"].error_detail == "math is broken"
    assert outcomes["features/exiting.feature"].status == ScenarioStatus.ERROR
    assert outcomes["features/exiting.feature"].error_detail == "scenario exited with code 3"


def test_missing_body_is_an_error(context: ScenarioContext) -> None:
    outcome = ExecutionScheduler(context).execute_one(Scenario(path="features/empty.feature"))
    assert outcome.status == ScenarioStatus.ERROR
    assert outcome.error_detail is not None
    assert "no implementation" in outcome.error_detail


@pytest.mark.parametrize(
    ("result", "status", "detail"),
    [
        (None, ScenarioStatus.PASSED, None),
        ({"status": "passed"}, ScenarioStatus.PASSED, None),
        ({"status": "FAILED", "error": "wrong balance"}, ScenarioStatus.FAILED, "wrong balance"),
        ({"status": "error"}, ScenarioStatus.ERROR, "error"),
        ({"status": "skipped"}, ScenarioStatus.ERROR, "unknown scenario status: skipped"),
        ({"value": 1}, ScenarioStatus.PASSED, None),
    ],
)
def test_returned_status_mapping_is_honoured(
    context: ScenarioContext, result: object, status: ScenarioStatus, detail: str | None
) -> None:
    outcome = ExecutionScheduler(context).execute_one(Scenario(path="features/r.feature", body=lambda _: result))
    assert outcome.status == status
    assert outcome.error_detail == detail


def test_bodies_receive_scenario_bound_context(context: ScenarioContext) -> None:
    seen: list[tuple[str, str]] = []
    lock = threading.Lock()

    def record(ctx: ScenarioContext) -> None:
        assert ctx.scenario is not None
        with lock:
            seen.append((ctx.run_id, ctx.scenario.path))

    scenarios = [Scenario(path=f"features/{index}.feature", body=record) for index in range(3)]
    ExecutionScheduler(context).run(scenarios, 3)
    assert sorted(seen) == [("run-test", f"features/{index}.feature") for index in range(3)]


def test_concurrency_never_exceeds_thread_count(context: ScenarioContext) -> None:
    gauge = _ConcurrencyGauge()
    scenarios = [Scenario(path=f"features/{index}.feature", body=gauge) for index in range(10)]
    outcomes = ExecutionScheduler(context).run(scenarios, 3)
    assert len(outcomes) == 10
    assert 1 <= gauge.peak <= 3


def test_workers_run_in_parallel(context: ScenarioContext) -> None:
    barrier = threading.Barrier(3, timeout=5)

    def rendezvous(_: ScenarioContext) -> None:
        barrier.wait()

    scenarios = [Scenario(path=f"features/{index}.feature", body=rendezvous) for index in range(3)]
    outcomes = ExecutionScheduler(context).run(scenarios, 3)
    assert all(outcome.passed for outcome in outcomes)


@pytest.mark.parametrize(("threads", "expected_peak"), [(0, 1), (-5, 1)])
def test_non_positive_threads_run_serially(context: ScenarioContext, threads: int, expected_peak: int) -> None:
    gauge = _ConcurrencyGauge(hold_seconds=0.01)
    scenarios = [Scenario(path=f"features/{index}.feature", body=gauge) for index in range(4)]
    outcomes = ExecutionScheduler(context).run(scenarios, threads)
    assert len(outcomes) == 4
    assert gauge.peak == expected_peak


def test_huge_thread_count_is_capped(context: ScenarioContext) -> None:
    gauge = _ConcurrencyGauge(hold_seconds=0.05)
    scenarios = [Scenario(path=f"features/{index}.feature", body=gauge) for index in range(25)]
    outcomes = ExecutionScheduler(context).run(scenarios, 999)
    assert len(outcomes) == 25
    assert gauge.peak <= 20


def test_deadline_marks_unfinished_scenarios(context: ScenarioContext) -> None:
    release = threading.Event()

    def hang(_: ScenarioContext) -> None:
        release.wait(5)

    scenarios = [
        Scenario(path="features/fast.feature", body=_ok),
        Scenario(path="features/hang.feature", body=hang),
    ]
    try:
        started = time.monotonic()
        outcomes = _by_id(ExecutionScheduler(context).run(scenarios, 2, timeout_seconds=0.2))
        elapsed = time.monotonic() - started
    finally:
        release.set()

    assert elapsed < 3
    assert outcomes["features/fast.feature"].status == ScenarioStatus.PASSED
    assert outcomes["features/hang.feature"].status == ScenarioStatus.ERROR
    assert outcomes["features/hang.feature"].error_detail == "timed out after 0.2s"


class TestOutcomeCollector:
    def test_duplicates_and_late_outcomes_are_discarded(self) -> None:
        collector = OutcomeCollector(2)
        first = ScenarioOutcome(scenario_id="a", status=ScenarioStatus.PASSED)
        assert collector.add(first) is True
        assert collector.add(first) is False

        sealed = collector.seal([Scenario(path="a"), Scenario(path="b")], "timed out after 1s")
        assert [(outcome.scenario_id, outcome.status) for outcome in sealed] == [
            ("a", ScenarioStatus.PASSED),
            ("b", ScenarioStatus.ERROR),
        ]
        assert collector.add(ScenarioOutcome(scenario_id="b", status=ScenarioStatus.PASSED)) is False
        assert len(collector.snapshot()) == 2

    def test_seal_reports_time_since_claim(self) -> None:
        now = [100.0]
        collector = OutcomeCollector(1, clock=lambda: now[0])
        collector.mark_claimed("a")
        now[0] = 101.5
        (outcome,) = collector.seal([Scenario(path="a")], "timed out after 1.5s")
        assert outcome.duration_ms == 1500

    def test_wait_times_out_when_outcomes_are_missing(self) -> None:
        assert OutcomeCollector(1).wait(0.01) is False
        assert OutcomeCollector(0).wait(0.01) is True


class ScenarioAbort(BaseException):
    pass


def test_base_exception_in_body_is_an_error_outcome(context: ScenarioContext) -> None:
    def aborting(_: ScenarioContext) -> None:
        raise ScenarioAbort("boom")

    scenarios = [
        Scenario(path="features/abort.feature", body=aborting),
        Scenario(path="features/ok.feature", body=_ok),
    ]
    outcomes = _by_id(ExecutionScheduler(context).run(scenarios, 1))

    assert outcomes["features/abort.feature"].status == ScenarioStatus.ERROR
    assert outcomes["features/abort.feature"].error_detail == "ScenarioAbort: boom"
    assert outcomes["features/ok.feature"].status == ScenarioStatus.PASSED


@pytest.mark.filterwarnings("ignore::pytest.PytestUnhandledThreadExceptionWarning")
def test_keyboard_interrupt_is_recorded_before_worker_unwinds(context: ScenarioContext) -> None:
    def interrupted(_: ScenarioContext) -> None:
        raise KeyboardInterrupt

    scenarios = [
        Scenario(path="features/interrupted.feature", body=interrupted),
        Scenario(path="features/ok.feature", body=_ok),
    ]
    outcomes = _by_id(ExecutionScheduler(context).run(scenarios, 2, timeout_seconds=5))

    assert outcomes["features/interrupted.feature"].status == ScenarioStatus.ERROR
    assert outcomes["features/interrupted.feature"].error_detail == "KeyboardInterrupt: "
    assert outcomes["features/ok.feature"].status == ScenarioStatus.PASSED
