"""Exception hierarchy for probekit.

Selection and configuration errors escalate to an execution fault; scenario
faults stay contained at scenario granularity; codec errors propagate to the
caller of the codec.
"""

from __future__ import annotations

from enum import Enum


class ProbekitError(Exception):
    """Base exception for probekit."""

    pass


class SelectionFailure(str, Enum):
    """Reasons a selection could not be resolved."""

    SCENARIO_NOT_FOUND = "ScenarioNotFound"
    MALFORMED_REQUEST = "MalformedRequest"


class SelectionError(ProbekitError):
    """Raised when a request cannot be turned into a scenario selection."""

    def __init__(self, reason: SelectionFailure, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class ScenarioNotFoundError(SelectionError):
    """Raised when an explicit scenario path is absent from the catalog."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(SelectionFailure.SCENARIO_NOT_FOUND, f"Scenario '{path}' not found")


class ScenarioFault(ProbekitError):
    """Failure inside one scenario; never escalated past the scheduler."""

    pass


class CodecFailure(str, Enum):
    """Reasons a value could not be encoded or decoded."""

    UNSUPPORTED_TYPE = "UnsupportedType"
    MALFORMED_WIRE = "MalformedWire"


class CodecError(ProbekitError):
    """Raised by the attribute codec."""

    def __init__(self, reason: CodecFailure, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class ConfigurationError(ProbekitError):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


class ConfigLoadError(ConfigurationError):
    """Raised when configuration YAML cannot be parsed."""


class ManifestError(ConfigurationError):
    """Raised when a scenario manifest entry is invalid."""
