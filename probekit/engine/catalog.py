"""Scenario catalog: the read-only set of known scenarios."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence

from probekit.engine.models import Scenario, ScenarioBody, normalize_tags
from probekit.exceptions import ScenarioNotFoundError


class ScenarioCatalog:
    """Immutable, ordered collection of scenarios keyed by path.

    Order is discovery order and never changes for the lifetime of the
    instance, so the catalog can be shared freely between concurrent runs.
    """

    def __init__(self, scenarios: Iterable[Scenario] = ()) -> None:
        ordered: list[Scenario] = []
        by_path: dict[str, Scenario] = {}
        for scenario in scenarios:
            if scenario.path in by_path:
                raise ValueError(f"Scenario '{scenario.path}' already exists")
            by_path[scenario.path] = scenario
            ordered.append(scenario)
        self._scenarios: tuple[Scenario, ...] = tuple(ordered)
        self._by_path = by_path

    def all_scenarios(self) -> list[Scenario]:
        """Return every scenario in discovery order."""
        return list(self._scenarios)

    def scenarios_matching_tags(self, tags: Sequence[str]) -> list[Scenario]:
        """Return scenarios carrying at least one of the given tags.

        An empty tag list matches nothing.
        """
        wanted = set(normalize_tags(tags))
        if not wanted:
            return []
        return [scenario for scenario in self._scenarios if scenario.normalized_tags & wanted]

    def scenario_by_path(self, path: str) -> Scenario:
        """Return one scenario by exact path or raise ScenarioNotFoundError."""
        scenario = self._by_path.get(path)
        if scenario is None:
            raise ScenarioNotFoundError(path)
        return scenario

    def get(self, path: str) -> Scenario | None:
        return self._by_path.get(path)

    def paths(self) -> list[str]:
        return [scenario.path for scenario in self._scenarios]

    def __len__(self) -> int:
        return len(self._scenarios)

    def __iter__(self) -> Iterator[Scenario]:
        return iter(self._scenarios)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path


class CatalogBuilder:
    """Collect scenarios, then freeze them into a ScenarioCatalog."""

    def __init__(self) -> None:
        self._scenarios: list[Scenario] = []
        self._paths: set[str] = set()

    def add(self, scenario: Scenario) -> Scenario:
        if scenario.path in self._paths:
            raise ValueError(f"Scenario '{scenario.path}' already exists")
        self._paths.add(scenario.path)
        self._scenarios.append(scenario)
        return scenario

    def extend(self, scenarios: Iterable[Scenario]) -> CatalogBuilder:
        for scenario in scenarios:
            self.add(scenario)
        return self

    def scenario(
        self,
        path: str,
        *,
        tags: Iterable[str] = (),
        name: str | None = None,
    ) -> Callable[[ScenarioBody], ScenarioBody]:
        """Register the decorated function as the body of a scenario."""

        def decorator(body: ScenarioBody) -> ScenarioBody:
            self.add(Scenario(path=path, tags=tuple(tags), name=name or "", body=body))
            return body

        return decorator

    def build(self) -> ScenarioCatalog:
        return ScenarioCatalog(self._scenarios)
