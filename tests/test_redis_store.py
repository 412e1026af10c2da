"""Tests for RedisStore and RemoteMap over Redis.

Note: These tests require a running Redis instance.
They will be skipped if Redis is not available.
"""

import pytest
from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError

from remotehash import (
    ConnectionClosedError,
    RemoteMap,
    RetryLimitExceededError,
    RetryPolicy,
    SerializationError,
)
from remotehash.stores import RedisStore


@pytest.fixture
def redis_client():
    """Create a Redis client for testing."""
    try:
        client = Redis(host="localhost", port=6379, db=15, decode_responses=False)
        # Test connection
        client.ping()
    except RedisConnectionError:
        pytest.skip("Redis server not running")

    yield client
    # Cleanup
    client.flushdb()
    client.close()


@pytest.fixture
def redis_store(redis_client):
    """Create a RedisStore instance for testing."""
    return RedisStore(redis_client, prefix="test:remotehash:")


@pytest.fixture
def inventory(redis_store):
    """Create a map over the 'inventory' hash."""
    remote_map = RemoteMap(redis_store, "inventory")
    yield remote_map
    remote_map.destroy()


def test_redis_connection_commands(redis_store):
    """Test the plain hash commands through a RedisConnection."""
    conn = redis_store.connect()

    conn.hset("inventory", "widget", 5)
    assert conn.hexists("inventory", "widget") is True
    assert conn.hget("inventory", "widget") == 5
    assert conn.hget("inventory", "gadget") is None

    conn.hmset("inventory", {"gadget": {"color": "red"}, "gizmo": [1, 2]})
    assert conn.hlen("inventory") == 3
    assert conn.hgetall("inventory") == {
        "widget": 5,
        "gadget": {"color": "red"},
        "gizmo": [1, 2],
    }

    assert conn.hsetnx("inventory", "widget", 6) is False
    assert conn.hsetnx("inventory", "doohickey", 1) is True
    assert conn.hdel("inventory", "doohickey") == 1

    conn.delete("inventory")
    assert conn.hlen("inventory") == 0
    conn.close()


def test_redis_transaction_aborts_on_foreign_write(redis_store):
    """Test that WATCH makes EXEC fail after another client's write."""
    conn = redis_store.connect()
    other = redis_store.connect()
    conn.hset("inventory", "widget", 5)

    conn.watch("inventory")
    assert conn.hget("inventory", "widget") == 5
    other.hset("inventory", "widget", 6)

    conn.multi()
    assert conn.hset("inventory", "widget", 3) is None
    assert conn.execute() == []
    assert conn.hget("inventory", "widget") == 6

    conn.close()
    other.close()


def test_redis_transaction_commits(redis_store):
    """Test that EXEC applies queued commands when nothing changed."""
    conn = redis_store.connect()
    conn.hset("inventory", "widget", 5)

    conn.watch("inventory")
    conn.multi()
    conn.hdel("inventory", "widget")
    assert len(conn.execute()) == 1
    assert conn.hexists("inventory", "widget") is False
    conn.close()


def test_redis_map_inventory_scenario(redis_store):
    """Test that a stale compare-and-set from another client fails."""
    client_a = RemoteMap(redis_store, "inventory")
    client_b = RemoteMap(redis_store, "inventory")
    client_a["widget"] = 5

    assert client_a.replace_if_same("widget", 5, 3) is True
    assert client_b.replace_if_same("widget", 5, 10) is False
    assert client_b["widget"] == 3

    client_a.destroy()
    client_b.destroy()


def test_redis_map_conditional_operations(inventory):
    """Test every conditional operation against Redis."""
    assert inventory.put_if_absent("widget", 5) is None
    assert inventory.put_if_absent("widget", 6) == 5

    assert inventory.replace("widget", 7) == 5
    assert inventory.replace("gadget", 1) is None

    assert inventory.remove_if_same("widget", 5) is False
    assert inventory.remove_if_same("widget", 7) is True
    assert "widget" not in inventory


def test_redis_map_retries_after_conflict(redis_client, redis_store):
    """Test that a conflicting write between WATCH and EXEC is retried."""
    from remotehash.stores.redis import RedisConnection

    writes = []

    class Interfering(RedisConnection):
        def multi(self):
            if not writes:
                writes.append(1)
                redis_client.hset("test:remotehash:inventory", '"noise"', "1")
            super().multi()

    class InterferingStore(RedisStore):
        def connect(self):
            return Interfering(self.client, self.prefix)

    store = InterferingStore(redis_client, prefix="test:remotehash:")
    with RemoteMap(store, "inventory") as inventory:
        inventory["widget"] = 5
        assert inventory.replace_if_same("widget", 5, 6) is True
        assert inventory["widget"] == 6
        assert inventory["noise"] == 1
    assert writes == [1]


def test_redis_map_retry_limit(redis_client):
    """Test that endless conflicts end in RetryLimitExceededError."""
    from remotehash.stores.redis import RedisConnection

    class AlwaysInterfering(RedisConnection):
        def multi(self):
            redis_client.hincrby("test:remotehash:inventory", '"noise"', 1)
            super().multi()

    class InterferingStore(RedisStore):
        def connect(self):
            return AlwaysInterfering(self.client, self.prefix)

    store = InterferingStore(redis_client, prefix="test:remotehash:")
    with RemoteMap(store, "inventory") as inventory:
        inventory["widget"] = 5
        with pytest.raises(RetryLimitExceededError):
            inventory.replace_if_same(
                "widget", 5, 6, retry=RetryPolicy(max_attempts=3)
            )
        assert inventory["widget"] == 5
        assert inventory["noise"] == 3


def test_redis_store_prefix_isolation(redis_client):
    """Test that different prefixes isolate data."""
    map1 = RemoteMap(RedisStore(redis_client, prefix="app1:"), "inventory")
    map2 = RemoteMap(RedisStore(redis_client, prefix="app2:"), "inventory")

    map1["widget"] = 5

    assert map1["widget"] == 5
    assert "widget" not in map2

    map1.clear()
    map1.destroy()
    map2.destroy()


@pytest.fixture
def offline_store():
    """Create a RedisStore whose client has not connected to anything yet.

    Commands that fail before reaching the server can be tested with it
    whether or not Redis is running.
    """
    client = Redis(host="localhost", port=6379, db=15)
    yield RedisStore(client, prefix="test:remotehash:")
    client.close()


@pytest.mark.parametrize(
    "value",
    [(1, 2), {"sizes": (1, 2)}, {1: "one"}, {"a", "b"}, float("nan"), object()],
)
def test_redis_store_rejects_values_json_would_change(offline_store, value):
    """Test that values which would not read back equal are refused."""
    with RemoteMap(offline_store, "inventory") as inventory:
        with pytest.raises(SerializationError) as excinfo:
            inventory["widget"] = value
        assert excinfo.value.value is value

        with pytest.raises(SerializationError):
            inventory.put_if_absent("widget", value)
        with pytest.raises(SerializationError):
            inventory.put_all({"widget": value})


@pytest.mark.parametrize("key", [(1, 2), ["widget"], 1.5 + 2j])
def test_redis_store_rejects_keys_json_would_change(offline_store, key):
    """Test that tuple, list and other unstorable keys are refused."""
    with RemoteMap(offline_store, "inventory") as inventory:
        with pytest.raises(SerializationError):
            inventory[key] = 1
        with pytest.raises(SerializationError):
            inventory.get(key)
        with pytest.raises(SerializationError):
            inventory.contains_key(key)
        with pytest.raises(SerializationError):
            del inventory[key]


def test_redis_connection_refuses_commands_after_close(offline_store):
    """Test that a released connection fails loudly instead of reconnecting."""
    conn = offline_store.connect()
    conn.close()
    conn.close()  # idempotent

    with pytest.raises(ConnectionClosedError):
        conn.hget("inventory", "widget")
    with pytest.raises(ConnectionClosedError):
        conn.hset("inventory", "widget", 5)
    with pytest.raises(ConnectionClosedError):
        conn.watch("inventory")
    with pytest.raises(ConnectionClosedError):
        conn.multi()
    with pytest.raises(ConnectionClosedError):
        conn.execute()


def test_redis_map_round_trips_json_values(inventory):
    """Test that lists and nested dicts work with the conditional operations."""
    inventory["widget"] = [1, 2]
    inventory["gadget"] = {"color": "red", "sizes": [1, 2]}

    assert inventory["widget"] == [1, 2]
    assert inventory.replace_if_same("widget", [1, 2], [3, 4]) is True
    assert inventory.remove_if_same(
        "gadget", {"sizes": [1, 2], "color": "red"}
    ) is True
    assert inventory.keys() == {"widget"}
