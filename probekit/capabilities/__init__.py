"""Collaborator capabilities available to scenarios."""

from __future__ import annotations

from collections.abc import Callable

from probekit.capabilities.memory import (
    InMemoryKeyValueTable,
    InMemoryMessageQueue,
    InMemoryNotifier,
    InMemoryObjectStore,
    LocalFunctionInvoker,
)
from probekit.capabilities.protocols import (
    CapabilitySet,
    FunctionInvoker,
    KeyValueTable,
    MessageQueue,
    Notifier,
    ObjectStore,
    ReceivedMessage,
    RelationalStore,
)
from probekit.capabilities.relational import SqlAlchemyRelationalStore, create_relational_engine
from probekit.config.models import EnvironmentProfile

CapabilityFactory = Callable[[EnvironmentProfile], CapabilitySet]


def _echo(payload: dict[str, object]) -> dict[str, object]:
    return {"statusCode": 200, "body": payload}


def default_capability_factory(profile: EnvironmentProfile) -> CapabilitySet:
    """Build a fresh in-process capability set for one run."""
    functions = LocalFunctionInvoker(function_prefix=profile.function_prefix)
    functions.register("echo", _echo)
    return CapabilitySet(
        object_store=InMemoryObjectStore(),
        key_value=InMemoryKeyValueTable(table_prefix=profile.table_prefix),
        functions=functions,
        queue=InMemoryMessageQueue(),
        notifier=InMemoryNotifier(),
        relational=SqlAlchemyRelationalStore.from_url(profile.database_url),
    )


__all__ = [
    "CapabilityFactory",
    "CapabilitySet",
    "FunctionInvoker",
    "InMemoryKeyValueTable",
    "InMemoryMessageQueue",
    "InMemoryNotifier",
    "InMemoryObjectStore",
    "KeyValueTable",
    "LocalFunctionInvoker",
    "MessageQueue",
    "Notifier",
    "ObjectStore",
    "ReceivedMessage",
    "RelationalStore",
    "SqlAlchemyRelationalStore",
    "create_relational_engine",
    "default_capability_factory",
]
