"""Bounded-concurrency execution of a resolved scenario list."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from probekit.config.models import ProbekitConfig
from probekit.engine.models import Scenario, ScenarioContext, ScenarioOutcome, ScenarioStatus
from probekit.exceptions import ScenarioFault

logger = logging.getLogger(__name__)

_STATUS_BY_NAME = {
    "passed": ScenarioStatus.PASSED,
    "failed": ScenarioStatus.FAILED,
    "error": ScenarioStatus.ERROR,
}


class OutcomeCollector:
    """Append-only, thread-safe sink for the outcomes of one run.

    Once sealed, further outcomes are discarded; this is how results of
    scenarios still running past the deadline are dropped.
    """

    def __init__(self, expected: int, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._expected = expected
        self._clock = clock
        self._condition = threading.Condition()
        self._outcomes: list[ScenarioOutcome] = []
        self._recorded: set[str] = set()
        self._claimed: dict[str, float] = {}
        self._sealed = False

    def mark_claimed(self, scenario_id: str) -> None:
        with self._condition:
            self._claimed[scenario_id] = self._clock()

    def add(self, outcome: ScenarioOutcome) -> bool:
        """Record one outcome; return False when it was discarded."""
        with self._condition:
            if self._sealed or outcome.scenario_id in self._recorded:
                return False
            self._outcomes.append(outcome)
            self._recorded.add(outcome.scenario_id)
            self._condition.notify_all()
            return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every expected outcome arrived or the timeout expired."""
        with self._condition:
            return self._condition.wait_for(lambda: len(self._outcomes) >= self._expected, timeout=timeout)

    def seal(self, scenarios: Sequence[Scenario], detail: str) -> list[ScenarioOutcome]:
        """Stop accepting outcomes and fill in every missing one as an error."""
        with self._condition:
            self._sealed = True
            now = self._clock()
            for scenario in scenarios:
                if scenario.path in self._recorded:
                    continue
                claimed_at = self._claimed.get(scenario.path)
                duration_ms = int((now - claimed_at) * 1000) if claimed_at is not None else 0
                self._outcomes.append(
                    ScenarioOutcome(
                        scenario_id=scenario.path,
                        status=ScenarioStatus.ERROR,
                        error_detail=detail,
                        duration_ms=max(0, duration_ms),
                    )
                )
                self._recorded.add(scenario.path)
            return list(self._outcomes)

    def snapshot(self) -> list[ScenarioOutcome]:
        with self._condition:
            return list(self._outcomes)


class ExecutionScheduler:
    """Run scenarios on a short-lived pool of worker threads.

    Workers pull the next unclaimed scenario from a shared queue and run it to
    completion before claiming another. Every failure inside a scenario is
    turned into a failed outcome; ``run`` itself does not raise for them.
    ``KeyboardInterrupt`` still unwinds its worker, after the scenario has
    been recorded as an error.
    """

    def __init__(
        self,
        context: ScenarioContext,
        *,
        clock: Callable[[], float] = time.monotonic,
        thread_name_prefix: str = "probekit-worker",
    ) -> None:
        self._context = context
        self._clock = clock
        self._thread_name_prefix = thread_name_prefix

    def run(
        self,
        scenarios: Sequence[Scenario],
        threads: int,
        *,
        timeout_seconds: float | None = None,
    ) -> list[ScenarioOutcome]:
        """Execute scenarios and return one outcome per scenario, in arrival order."""
        if not scenarios:
            return []

        worker_count = min(ProbekitConfig.clamp_threads(threads), len(scenarios))
        pending: queue.Queue[Scenario] = queue.Queue()
        for scenario in scenarios:
            pending.put_nowait(scenario)
        collector = OutcomeCollector(len(scenarios), clock=self._clock)
        stop = threading.Event()

        workers = [
            threading.Thread(
                target=self._work,
                args=(pending, collector, stop),
                name=f"{self._thread_name_prefix}-{index}",
                daemon=True,
            )
            for index in range(worker_count)
        ]
        logger.info(
            "Running %d scenarios on %d workers (run_id=%s)",
            len(scenarios),
            worker_count,
            self._context.run_id,
        )
        for worker in workers:
            worker.start()

        if collector.wait(timeout_seconds):
            for worker in workers:
                worker.join()
            return collector.snapshot()

        stop.set()
        outcomes = collector.seal(scenarios, f"timed out after {timeout_seconds:g}s")
        logger.warning(
            "Run %s hit its %ss deadline; %d scenarios marked as timed out",
            self._context.run_id,
            timeout_seconds,
            sum(1 for outcome in outcomes if outcome.error_detail and outcome.error_detail.startswith("timed out")),
        )
        return outcomes

    def _work(
        self,
        pending: queue.Queue[Scenario],
        collector: OutcomeCollector,
        stop: threading.Event,
    ) -> None:
        while not stop.is_set():
            try:
                scenario = pending.get_nowait()
            except queue.Empty:
                return
            collector.mark_claimed(scenario.path)
            try:
                outcome = self.execute_one(scenario)
            except BaseException as exc:
                collector.add(
                    ScenarioOutcome(
                        scenario_id=scenario.path,
                        status=ScenarioStatus.ERROR,
                        error_detail=f"{type(exc).__name__}: {exc}",
                    )
                )
                raise
            collector.add(outcome)

    def execute_one(self, scenario: Scenario) -> ScenarioOutcome:
        """Run one scenario inside its isolation boundary."""
        started = self._clock()
        status = ScenarioStatus.PASSED
        detail: str | None = None
        try:
            if scenario.body is None:
                raise ScenarioFault("no implementation bound to scenario")
            result = scenario.body(self._context.for_scenario(scenario))
            status, detail = _interpret_result(result)
        except AssertionError as exc:
            status = ScenarioStatus.FAILED
            detail = str(exc) or "assertion failed"
        except SystemExit as exc:
            # A body calling sys.exit() must not take its worker down.
            status = ScenarioStatus.ERROR
            detail = f"scenario exited with code {exc.code}"
        except KeyboardInterrupt:
            raise
        except BaseException as exc:
            status = ScenarioStatus.ERROR
            detail = f"{type(exc).__name__}: {exc}"

        duration_ms = max(0, int((self._clock() - started) * 1000))
        if status == ScenarioStatus.PASSED:
            logger.debug("Scenario %s passed in %dms", scenario.path, duration_ms)
        else:
            logger.info("Scenario %s %s in %dms: %s", scenario.path, status.value, duration_ms, detail)
        return ScenarioOutcome(
            scenario_id=scenario.path,
            status=status,
            error_detail=detail,
            duration_ms=duration_ms,
        )


def _interpret_result(result: Any) -> tuple[ScenarioStatus, str | None]:
    if not isinstance(result, Mapping) or "status" not in result:
        return ScenarioStatus.PASSED, None
    raw_status = str(result["status"]).strip().lower()
    status = _STATUS_BY_NAME.get(raw_status)
    if status is None:
        return ScenarioStatus.ERROR, f"unknown scenario status: {raw_status}"
    if status == ScenarioStatus.PASSED:
        return status, None
    detail = result.get("error") or result.get("reason") or status.value
    return status, str(detail)
