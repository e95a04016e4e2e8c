"""SQLAlchemy-backed relational capability."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def create_relational_engine(database_url: str = "sqlite://") -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url in {"sqlite://", "sqlite:///:memory:"}:
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


class SqlAlchemyRelationalStore:
    """Run parameterized statements through a SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, database_url: str = "sqlite://") -> SqlAlchemyRelationalStore:
        return cls(create_relational_engine(database_url))

    @property
    def engine(self) -> Engine:
        return self._engine

    def query(self, statement: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        with self._engine.connect() as connection:
            result = connection.execute(text(statement), dict(params or {}))
            rows = [dict(row) for row in result.mappings()]
        logger.debug("Query returned %d rows", len(rows))
        return rows

    def update(self, statement: str, params: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None) -> int:
        if params is None:
            bound: dict[str, Any] | list[dict[str, Any]] = {}
        elif isinstance(params, Mapping):
            bound = dict(params)
        else:
            bound = [dict(entry) for entry in params]
        with self._engine.begin() as connection:
            result = connection.execute(text(statement), bound)
        return max(int(result.rowcount or 0), 0)

    def dispose(self) -> None:
        self._engine.dispose()
