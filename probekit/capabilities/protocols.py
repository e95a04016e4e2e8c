"""Narrow collaborator interfaces consumed by scenarios."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol


class ObjectStore(Protocol):
    """Object storage addressed by bucket and key."""

    def read(self, bucket: str, key: str) -> str:
        """Return object content; raise KeyError when absent."""

    def write(self, bucket: str, key: str, content: str, metadata: Mapping[str, str] | None = None) -> None:
        """Create or replace one object."""

    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        """List keys under a prefix in lexical order."""

    def delete(self, bucket: str, key: str) -> None:
        """Delete one object; deleting a missing object is not an error."""

    def exists(self, bucket: str, key: str) -> bool:
        """Return whether one object exists."""

    def copy(self, source_bucket: str, source_key: str, target_bucket: str, target_key: str) -> None:
        """Copy one object; raise KeyError when the source is absent."""


class KeyValueTable(Protocol):
    """Typed key-value table addressed by table name and key attribute."""

    def get_item(self, table: str, key_name: str, key_value: str) -> dict[str, Any] | None:
        """Return one decoded item or None."""

    def put_item(self, table: str, item: Mapping[str, Any]) -> None:
        """Create or replace one item."""

    def delete_item(self, table: str, key_name: str, key_value: str) -> None:
        """Delete one item by key."""

    def query(self, table: str, key_name: str, key_value: str) -> list[dict[str, Any]]:
        """Return decoded items whose key attribute equals key_value."""

    def scan(self, table: str) -> list[dict[str, Any]]:
        """Return every decoded item in the table."""


class FunctionInvoker(Protocol):
    """Remote function invocation by name."""

    def invoke(self, name: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Invoke one function and return its response payload."""


class MessageQueue(Protocol):
    """Point-to-point message queue."""

    def send(self, queue: str, body: str) -> str:
        """Send one message and return its id."""

    def receive(self, queue: str, max_messages: int = 1) -> list[ReceivedMessage]:
        """Receive up to max_messages messages."""

    def delete(self, queue: str, receipt: str) -> None:
        """Delete one received message by receipt handle."""


class Notifier(Protocol):
    """Publish/subscribe notification topic."""

    def publish(self, topic: str, message: str) -> str:
        """Publish one message and return its id."""


class RelationalStore(Protocol):
    """Parameterized relational statement execution."""

    def query(self, statement: str, params: Mapping[str, Any] | None = None) -> list[dict[str, Any]]:
        """Run a read statement and return rows as dictionaries."""

    def update(self, statement: str, params: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None = None) -> int:
        """Run a write statement and return the affected row count."""

    def dispose(self) -> None:
        """Release pooled connections."""


@dataclass(frozen=True)
class ReceivedMessage:
    """One message handed out by a queue receive."""

    message_id: str
    receipt: str
    body: str


@dataclass(frozen=True)
class CapabilitySet:
    """Collaborators available to a scenario, injected at construction time."""

    object_store: ObjectStore
    key_value: KeyValueTable
    functions: FunctionInvoker
    queue: MessageQueue
    notifier: Notifier
    relational: RelationalStore

    def close(self) -> None:
        """Release resources held for the run. Only the relational store holds any."""
        self.relational.dispose()
