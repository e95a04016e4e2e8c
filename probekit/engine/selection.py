"""Turn an execution request into a concrete scenario selection."""

from __future__ import annotations

import logging

from probekit.engine.catalog import ScenarioCatalog
from probekit.engine.models import ExecutionRequest, Scenario

logger = logging.getLogger(__name__)


class SelectionResolver:
    """Resolve requests against a catalog.

    Priority: explicit feature path, then tags (logical OR), then everything.
    A feature path always wins over tags given in the same request.
    """

    def __init__(self, catalog: ScenarioCatalog) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> ScenarioCatalog:
        return self._catalog

    def resolve(self, request: ExecutionRequest) -> list[Scenario]:
        if request.feature:
            if request.tags:
                logger.info("Feature %s given; ignoring tags %s", request.feature, request.tags)
            return [self._catalog.scenario_by_path(request.feature)]
        if request.tags:
            return self._catalog.scenarios_matching_tags(request.tags)
        return self._catalog.all_scenarios()
