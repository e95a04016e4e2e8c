"""Shared fixtures for probekit tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from probekit.capabilities import CapabilitySet, default_capability_factory
from probekit.config import EnvironmentProfile, ProbekitConfig
from probekit.engine.catalog import ScenarioCatalog
from probekit.engine.models import Scenario, ScenarioContext


def passing(_: ScenarioContext) -> None:
    return None


@pytest.fixture
def config() -> ProbekitConfig:
    return ProbekitConfig()


@pytest.fixture
def profile(config: ProbekitConfig) -> EnvironmentProfile:
    return config.resolve_environment("dev")


@pytest.fixture
def capabilities(profile: EnvironmentProfile) -> CapabilitySet:
    return default_capability_factory(profile)


@pytest.fixture
def context(profile: EnvironmentProfile, capabilities: CapabilitySet) -> ScenarioContext:
    return ScenarioContext(run_id="run-test", environment=profile, capabilities=capabilities)


@pytest.fixture
def abc_catalog() -> ScenarioCatalog:
    """A tagged [smoke], B tagged [s3], C tagged [smoke, s3]."""
    return ScenarioCatalog(
        [
            Scenario(path="features/a.feature", tags=("@smoke",), body=passing),
            Scenario(path="features/b.feature", tags=("@s3",), body=passing),
            Scenario(path="features/c.feature", tags=("@smoke", "@s3"), body=passing),
        ]
    )


@pytest.fixture
def make_catalog() -> Callable[..., ScenarioCatalog]:
    def _make(**bodies: Callable[[ScenarioContext], object]) -> ScenarioCatalog:
        return ScenarioCatalog(
            Scenario(path=f"features/{name}.feature", tags=(f"@{name}",), body=body) for name, body in bodies.items()
        )

    return _make
