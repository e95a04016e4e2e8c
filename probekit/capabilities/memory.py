"""In-memory capability implementations for local runs and CI.

Every store guards its state with a lock because the scenarios of one run
execute on several worker threads and share the same capability set.
State lives only as long as the instance.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections import defaultdict, deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from probekit.capabilities.protocols import ReceivedMessage
from probekit.codec import AttributeCodec, AttributeWire

logger = logging.getLogger(__name__)


@dataclass
class StoredObject:
    """Object content with user metadata."""

    content: str
    metadata: dict[str, str] = field(default_factory=dict)


class InMemoryObjectStore:
    """Bucket/key object store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[str, dict[str, StoredObject]] = defaultdict(dict)

    def read(self, bucket: str, key: str) -> str:
        with self._lock:
            stored = self._buckets[bucket].get(key)
        if stored is None:
            raise KeyError(f"object not found: {bucket}/{key}")
        return stored.content

    def write(self, bucket: str, key: str, content: str, metadata: Mapping[str, str] | None = None) -> None:
        if not key.strip():
            raise ValueError("key must be non-empty")
        with self._lock:
            self._buckets[bucket][key] = StoredObject(content=content, metadata=dict(metadata or {}))
        logger.debug("Wrote object %s/%s (%d chars)", bucket, key, len(content))

    def list_keys(self, bucket: str, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(key for key in self._buckets[bucket] if key.startswith(prefix))

    def delete(self, bucket: str, key: str) -> None:
        with self._lock:
            self._buckets[bucket].pop(key, None)

    def exists(self, bucket: str, key: str) -> bool:
        with self._lock:
            return key in self._buckets[bucket]

    def copy(self, source_bucket: str, source_key: str, target_bucket: str, target_key: str) -> None:
        with self._lock:
            stored = self._buckets[source_bucket].get(source_key)
            if stored is None:
                raise KeyError(f"object not found: {source_bucket}/{source_key}")
            self._buckets[target_bucket][target_key] = StoredObject(
                content=stored.content,
                metadata=dict(stored.metadata),
            )

    def metadata(self, bucket: str, key: str) -> dict[str, str]:
        with self._lock:
            stored = self._buckets[bucket].get(key)
        if stored is None:
            raise KeyError(f"object not found: {bucket}/{key}")
        return dict(stored.metadata)


class InMemoryKeyValueTable:
    """Typed key-value table that keeps items in attribute wire form.

    Items are encoded on write and decoded on read, so values stored here go
    through the same marshalling a real typed store would apply.
    """

    def __init__(self, *, table_prefix: str = "", codec: AttributeCodec | None = None) -> None:
        self._table_prefix = table_prefix
        self._codec = codec or AttributeCodec()
        self._lock = threading.Lock()
        self._tables: dict[str, list[dict[str, AttributeWire]]] = defaultdict(list)

    def table_name(self, table: str) -> str:
        if not self._table_prefix:
            return table
        return f"{self._table_prefix}-{table}"

    def get_item(self, table: str, key_name: str, key_value: str) -> dict[str, Any] | None:
        full_name = self.table_name(table)
        wanted = self._codec.encode(key_value)
        with self._lock:
            for item in self._tables[full_name]:
                if item.get(key_name) == wanted:
                    return self._codec.decode_item(copy.deepcopy(item))
        logger.debug("Item not found: table=%s key=%s:%s", full_name, key_name, key_value)
        return None

    def put_item(self, table: str, item: Mapping[str, Any], *, key_name: str | None = None) -> None:
        """Store an item, replacing any existing item with the same key value.

        ``key_name`` defaults to the first attribute of the item.
        """
        if not item:
            raise ValueError("item must contain at least one attribute")
        encoded = self._codec.encode_item(item)
        key = key_name or next(iter(item))
        if key not in encoded:
            raise ValueError(f"item is missing key attribute: {key}")
        full_name = self.table_name(table)
        with self._lock:
            rows = self._tables[full_name]
            rows[:] = [row for row in rows if row.get(key) != encoded[key]]
            rows.append(encoded)
        logger.debug("Put item: table=%s key=%s", full_name, key)

    def delete_item(self, table: str, key_name: str, key_value: str) -> None:
        full_name = self.table_name(table)
        wanted = self._codec.encode(key_value)
        with self._lock:
            rows = self._tables[full_name]
            rows[:] = [row for row in rows if row.get(key_name) != wanted]

    def query(self, table: str, key_name: str, key_value: str) -> list[dict[str, Any]]:
        full_name = self.table_name(table)
        wanted = self._codec.encode(key_value)
        with self._lock:
            matches = [copy.deepcopy(row) for row in self._tables[full_name] if row.get(key_name) == wanted]
        return [self._codec.decode_item(row) for row in matches]

    def scan(self, table: str) -> list[dict[str, Any]]:
        full_name = self.table_name(table)
        with self._lock:
            rows = [copy.deepcopy(row) for row in self._tables[full_name]]
        return [self._codec.decode_item(row) for row in rows]

    def raw_items(self, table: str) -> list[dict[str, AttributeWire]]:
        """Return stored items in wire form."""
        with self._lock:
            return copy.deepcopy(self._tables[self.table_name(table)])


FunctionHandler = Callable[[dict[str, Any]], dict[str, Any]]


class LocalFunctionInvoker:
    """Invoke registered in-process handlers by name."""

    def __init__(self, *, function_prefix: str = "", handlers: Mapping[str, FunctionHandler] | None = None) -> None:
        self._function_prefix = function_prefix
        self._handlers: dict[str, FunctionHandler] = dict(handlers or {})
        self._lock = threading.Lock()
        self._invocations: list[tuple[str, dict[str, Any]]] = []

    def register(self, name: str, handler: FunctionHandler) -> None:
        with self._lock:
            self._handlers[name] = handler

    def invoke(self, name: str, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
        with self._lock:
            handler = self._handlers.get(name)
            request = dict(payload or {})
            self._invocations.append((self._qualified(name), request))
        if handler is None:
            raise LookupError(f"function not registered: {self._qualified(name)}")
        response = handler(request)
        if not isinstance(response, dict):
            raise TypeError(f"function {name} must return a dict")
        return response

    def invocations(self) -> list[tuple[str, dict[str, Any]]]:
        with self._lock:
            return list(self._invocations)

    def _qualified(self, name: str) -> str:
        return f"{self._function_prefix}-{name}" if self._function_prefix else name


class InMemoryMessageQueue:
    """FIFO queues with receipt-based deletion.

    Received messages stay in flight until deleted; they are not redelivered.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._queues: dict[str, deque[tuple[str, str]]] = defaultdict(deque)
        self._in_flight: dict[str, dict[str, ReceivedMessage]] = defaultdict(dict)

    def send(self, queue: str, body: str) -> str:
        message_id = uuid.uuid4().hex
        with self._lock:
            self._queues[queue].append((message_id, body))
        return message_id

    def receive(self, queue: str, max_messages: int = 1) -> list[ReceivedMessage]:
        if max_messages < 1:
            raise ValueError("max_messages must be >= 1")
        received: list[ReceivedMessage] = []
        with self._lock:
            pending = self._queues[queue]
            while pending and len(received) < max_messages:
                message_id, body = pending.popleft()
                message = ReceivedMessage(message_id=message_id, receipt=uuid.uuid4().hex, body=body)
                self._in_flight[queue][message.receipt] = message
                received.append(message)
        return received

    def delete(self, queue: str, receipt: str) -> None:
        with self._lock:
            if self._in_flight[queue].pop(receipt, None) is None:
                raise KeyError(f"unknown receipt for queue {queue}: {receipt}")

    def pending_count(self, queue: str) -> int:
        with self._lock:
            return len(self._queues[queue])

    def in_flight_count(self, queue: str) -> int:
        with self._lock:
            return len(self._in_flight[queue])


class InMemoryNotifier:
    """Topic fan-out to in-process subscribers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Callable[[str], None]]] = defaultdict(list)
        self._published: dict[str, list[str]] = defaultdict(list)

    def subscribe(self, topic: str, callback: Callable[[str], None]) -> None:
        with self._lock:
            self._subscribers[topic].append(callback)

    def publish(self, topic: str, message: str) -> str:
        message_id = uuid.uuid4().hex
        with self._lock:
            self._published[topic].append(message)
            subscribers = list(self._subscribers[topic])
        for callback in subscribers:
            callback(message)
        return message_id

    def published(self, topic: str) -> list[str]:
        with self._lock:
            return list(self._published[topic])
