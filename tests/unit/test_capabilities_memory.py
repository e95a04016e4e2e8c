"""Unit tests for in-memory capability implementations."""

from __future__ import annotations

import threading

import pytest

from probekit.capabilities import (
    CapabilitySet,
    InMemoryKeyValueTable,
    InMemoryMessageQueue,
    InMemoryNotifier,
    InMemoryObjectStore,
    LocalFunctionInvoker,
    default_capability_factory,
)
from probekit.config import ProbekitConfig


class TestObjectStore:
    def test_write_read_copy_delete(self) -> None:
        store = InMemoryObjectStore()
        store.write("bucket", "a/one.txt", "hello", {"owner": "qa"})
        store.copy("bucket", "a/one.txt", "other", "b/two.txt")

        assert store.read("bucket", "a/one.txt") == "hello"
        assert store.read("other", "b/two.txt") == "hello"
        assert store.metadata("other", "b/two.txt") == {"owner": "qa"}
        assert store.list_keys("bucket", "a/") == ["a/one.txt"]

        store.delete("bucket", "a/one.txt")
        assert not store.exists("bucket", "a/one.txt")
        assert store.exists("other", "b/two.txt")

    def test_missing_object_raises_key_error(self) -> None:
        store = InMemoryObjectStore()
        with pytest.raises(KeyError):
            store.read("bucket", "absent")
        with pytest.raises(KeyError):
            store.copy("bucket", "absent", "bucket", "target")

    def test_blank_key_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            InMemoryObjectStore().write("bucket", "  ", "x")


class TestKeyValueTable:
    def test_items_are_stored_in_wire_form(self) -> None:
        table = InMemoryKeyValueTable(table_prefix="probekit-dev")
        table.put_item("orders", {"id": "o-1", "total": 12.5, "lines": [1, 2]})

        assert table.table_name("orders") == "probekit-dev-orders"
        assert table.raw_items("orders") == [
            {"id": {"S": "o-1"}, "total": {"N": "12.5"}, "lines": {"L": [{"N": "1"}, {"N": "2"}]}}
        ]
        assert table.get_item("orders", "id", "o-1") == {"id": "o-1", "total": 12.5, "lines": [1, 2]}

    def test_put_replaces_item_with_same_key(self) -> None:
        table = InMemoryKeyValueTable()
        table.put_item("t", {"id": "k", "v": 1})
        table.put_item("t", {"id": "k", "v": 2})
        table.put_item("t", {"id": "other", "v": 3})
        assert table.query("t", "id", "k") == [{"id": "k", "v": 2}]
        assert len(table.scan("t")) == 2

    def test_explicit_key_name(self) -> None:
        table = InMemoryKeyValueTable()
        table.put_item("t", {"v": 1, "pk": "a"}, key_name="pk")
        table.put_item("t", {"v": 2, "pk": "a"}, key_name="pk")
        assert table.scan("t") == [{"v": 2, "pk": "a"}]
        with pytest.raises(ValueError, match="missing key"):
            table.put_item("t", {"v": 3}, key_name="pk")

    def test_delete_and_missing_item(self) -> None:
        table = InMemoryKeyValueTable()
        table.put_item("t", {"id": "k"})
        table.delete_item("t", "id", "k")
        assert table.get_item("t", "id", "k") is None
        assert table.scan("t") == []

    def test_returned_items_are_copies(self) -> None:
        table = InMemoryKeyValueTable()
        table.put_item("t", {"id": "k", "tags": ["a"]})
        fetched = table.get_item("t", "id", "k")
        assert fetched is not None
        fetched["tags"].append("mutated")
        assert table.get_item("t", "id", "k") == {"id": "k", "tags": ["a"]}

    def test_empty_item_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            InMemoryKeyValueTable().put_item("t", {})


class TestFunctionInvoker:
    def test_invoke_registered_handler(self) -> None:
        invoker = LocalFunctionInvoker(function_prefix="probekit-dev")
        invoker.register("double", lambda payload: {"value": payload["value"] * 2})
        assert invoker.invoke("double", {"value": 4}) == {"value": 8}
        assert invoker.invocations() == [("probekit-dev-double", {"value": 4})]

    def test_unknown_function_raises_lookup_error(self) -> None:
        with pytest.raises(LookupError, match="probekit-dev-missing"):
            LocalFunctionInvoker(function_prefix="probekit-dev").invoke("missing")

    def test_handler_must_return_dict(self) -> None:
        invoker = LocalFunctionInvoker(handlers={"bad": lambda _: "nope"})  # type: ignore[dict-item]
        with pytest.raises(TypeError):
            invoker.invoke("bad", {})


class TestMessageQueue:
    def test_fifo_receive_and_delete(self) -> None:
        queue = InMemoryMessageQueue()
        queue.send("q", "first")
        queue.send("q", "second")

        received = queue.receive("q", max_messages=1)
        assert [message.body for message in received] == ["first"]
        assert queue.pending_count("q") == 1
        assert queue.in_flight_count("q") == 1

        queue.delete("q", received[0].receipt)
        assert queue.in_flight_count("q") == 0
        assert [message.body for message in queue.receive("q", max_messages=10)] == ["second"]

    def test_unknown_receipt_raises(self) -> None:
        with pytest.raises(KeyError):
            InMemoryMessageQueue().delete("q", "nope")

    def test_receive_requires_positive_batch(self) -> None:
        with pytest.raises(ValueError):
            InMemoryMessageQueue().receive("q", max_messages=0)

    def test_concurrent_senders_lose_nothing(self) -> None:
        queue = InMemoryMessageQueue()

        def send_batch(prefix: str) -> None:
            for index in range(50):
                queue.send("q", f"{prefix}-{index}")

        threads = [threading.Thread(target=send_batch, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert queue.pending_count("q") == 200


class TestNotifier:
    def test_publish_fans_out_to_subscribers(self) -> None:
        notifier = InMemoryNotifier()
        seen: list[str] = []
        notifier.subscribe("topic", seen.append)

        message_id = notifier.publish("topic", "hello")
        notifier.publish("elsewhere", "ignored")

        assert message_id
        assert seen == ["hello"]
        assert notifier.published("topic") == ["hello"]


def test_default_factory_builds_fresh_sets_per_call() -> None:
    profile = ProbekitConfig().resolve_environment("qa")
    first = default_capability_factory(profile)
    second = default_capability_factory(profile)

    assert isinstance(first, CapabilitySet)
    first.object_store.write("b", "k", "v")
    assert not second.object_store.exists("b", "k")
    assert first.functions.invoke("echo", {"x": 1}) == {"statusCode": 200, "body": {"x": 1}}
