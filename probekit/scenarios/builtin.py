"""Built-in smoke scenarios exercising each collaborator capability."""

from __future__ import annotations

import json
import uuid

from probekit.engine.catalog import CatalogBuilder
from probekit.engine.models import Scenario, ScenarioContext

_builder = CatalogBuilder()


@_builder.scenario("features/s3/S3Operations.feature", tags=("@s3", "@smoke"), name="Object store operations")
def object_store_operations(context: ScenarioContext) -> None:
    store = context.capabilities.object_store
    bucket = context.environment.bucket
    key = f"probekit/{context.run_id}/sample.txt"
    copy_key = f"{key}.copy"

    store.write(bucket, key, "hello from probekit", {"source": "smoke"})
    assert store.exists(bucket, key), "written object is missing"
    assert store.read(bucket, key) == "hello from probekit"

    store.copy(bucket, key, bucket, copy_key)
    assert store.list_keys(bucket, f"probekit/{context.run_id}/") == [key, copy_key]

    store.delete(bucket, key)
    store.delete(bucket, copy_key)
    assert not store.exists(bucket, key), "deleted object still exists"


@_builder.scenario(
    "features/dynamodb/DynamoDbOperations.feature",
    tags=("@dynamodb", "@smoke"),
    name="Key-value table operations",
)
def key_value_operations(context: ScenarioContext) -> None:
    table = context.capabilities.key_value
    item_id = f"item-{uuid.uuid4().hex[:8]}"
    item = {
        "id": item_id,
        "quantity": 3,
        "price": 19.99,
        "active": True,
        "notes": None,
        "labels": ["smoke", "kv"],
        "owner": {"name": "probekit", "roles": ["tester"]},
    }

    table.put_item("items", item)
    stored = table.get_item("items", "id", item_id)
    assert stored == item, f"round-tripped item differs: {stored!r}"
    assert table.query("items", "id", item_id) == [item]

    table.delete_item("items", "id", item_id)
    assert table.get_item("items", "id", item_id) is None


@_builder.scenario("features/lambda/LambdaOperations.feature", tags=("@lambda",), name="Function invocation")
def function_invocation(context: ScenarioContext) -> None:
    response = context.capabilities.functions.invoke("echo", {"ping": context.run_id})
    assert response.get("statusCode") == 200, f"unexpected response: {response!r}"
    assert response.get("body") == {"ping": context.run_id}


@_builder.scenario("features/sqs/SqsOperations.feature", tags=("@sqs", "@smoke"), name="Message queue operations")
def queue_operations(context: ScenarioContext) -> None:
    queue = context.capabilities.queue
    queue_name = f"{context.environment.queue_prefix}-smoke"
    body = json.dumps({"run_id": context.run_id})

    queue.send(queue_name, body)
    messages = queue.receive(queue_name, max_messages=10)
    assert [message.body for message in messages] == [body]
    for message in messages:
        queue.delete(queue_name, message.receipt)


@_builder.scenario("features/sns/SnsOperations.feature", tags=("@sns",), name="Notification publish")
def notification_publish(context: ScenarioContext) -> None:
    topic = f"{context.environment.topic_prefix}-smoke"
    message_id = context.capabilities.notifier.publish(topic, f"run {context.run_id}")
    assert message_id, "publish returned no message id"


@_builder.scenario(
    "features/database/DatabaseOperations.feature",
    tags=("@database",),
    name="Relational query and update",
)
def relational_operations(context: ScenarioContext) -> None:
    db = context.capabilities.relational
    table = f"smoke_{uuid.uuid4().hex[:8]}"
    db.update(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
    for row_id, name in ((1, "alpha"), (2, "beta")):
        inserted = db.update(f"INSERT INTO {table} (id, name) VALUES (:id, :name)", {"id": row_id, "name": name})
        assert inserted == 1, f"expected 1 inserted row, got {inserted}"
    rows = db.query(f"SELECT id, name FROM {table} WHERE name = :name", {"name": "beta"})
    assert rows == [{"id": 2, "name": "beta"}]
    db.update(f"DROP TABLE {table}")


def builtin_scenarios() -> list[Scenario]:
    """Return the built-in scenarios in declaration order."""
    return _builder.build().all_scenarios()
