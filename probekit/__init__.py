"""probekit: on-demand execution of tagged test scenarios."""

__version__ = "0.1.0"
