"""HTTP API for triggering scenario executions."""

from probekit.api.app import create_app
from probekit.api.schemas import ExecutionResponse, RunSummary, ServiceInfo

__all__ = ["ExecutionResponse", "RunSummary", "ServiceInfo", "create_app"]
