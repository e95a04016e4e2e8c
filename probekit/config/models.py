"""Configuration models for probekit."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

MIN_THREADS = 1
MAX_THREADS = 20


class EnvironmentProfile(BaseModel):
    """Settings for one target test environment (dev, qa, staging, prod)."""

    name: str = Field(..., min_length=1)
    base_url: str = ""
    table_prefix: str = Field(default="probekit")
    bucket: str = Field(default="probekit-test-bucket")
    queue_prefix: str = Field(default="probekit")
    topic_prefix: str = Field(default="probekit")
    function_prefix: str = Field(default="probekit")
    database_url: str = Field(default="sqlite://")
    settings: dict[str, Any] = Field(default_factory=dict)


def _default_environments() -> dict[str, EnvironmentProfile]:
    return {
        name: EnvironmentProfile(
            name=name,
            table_prefix=f"probekit-{name}",
            bucket=f"probekit-{name}-bucket",
            queue_prefix=f"probekit-{name}",
            topic_prefix=f"probekit-{name}",
            function_prefix=f"probekit-{name}",
        )
        for name in ("dev", "qa", "staging", "prod")
    }


class ExecutionConfig(BaseModel):
    """Scenario execution defaults."""

    default_threads: int = Field(default=5, ge=MIN_THREADS, le=MAX_THREADS)
    default_timeout_seconds: float | None = Field(default=None, gt=0)
    report_dir: str = Field(default="build/probekit-reports")
    history_size: int = Field(default=50, ge=1, le=10000)


class CatalogConfig(BaseModel):
    """Where scenarios are discovered from."""

    manifest: str | None = None
    include_builtin: bool = True


class ServerConfig(BaseModel):
    """HTTP server binding."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    root_path: str = Field(default="")


class ProbekitConfig(BaseModel):
    """Root configuration model for probekit."""

    default_environment: str = Field(default="dev")
    environments: dict[str, EnvironmentProfile] = Field(default_factory=_default_environments)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = Field(default="INFO")

    @field_validator("environments", mode="before")
    @classmethod
    def _inject_names(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        named: dict[str, Any] = {}
        for key, profile in value.items():
            if isinstance(profile, dict):
                named[key] = {"name": key, **profile}
            elif profile is None:
                named[key] = {"name": key}
            else:
                named[key] = profile
        return named

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(f"unsupported log level: {value}")
        return normalized

    @model_validator(mode="after")
    def _default_environment_exists(self) -> ProbekitConfig:
        if self.default_environment not in self.environments:
            raise ValueError(
                f"default_environment '{self.default_environment}' is not one of: "
                f"{', '.join(sorted(self.environments)) or '<none>'}"
            )
        return self

    def resolve_environment(self, name: str | None) -> EnvironmentProfile:
        """Return the named environment, falling back to the default one."""
        candidate = (name or "").strip()
        if candidate and candidate in self.environments:
            return self.environments[candidate]
        if candidate:
            logger.warning(
                "Unknown environment %r, falling back to %r",
                candidate,
                self.default_environment,
            )
        return self.environments[self.default_environment]

    @staticmethod
    def clamp_threads(threads: int) -> int:
        """Clamp a requested worker count into the supported range."""
        return min(max(int(threads), MIN_THREADS), MAX_THREADS)
