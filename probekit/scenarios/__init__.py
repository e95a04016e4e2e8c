"""Scenario bundles shipped with probekit."""

from probekit.scenarios.builtin import builtin_scenarios

__all__ = ["builtin_scenarios"]
