"""Unit tests for the expiring key-value stores."""

from __future__ import annotations

import asyncio
import json

import pytest

from doc_vault.tokens import ExpiringStore, InMemoryExpiringStore, RedisExpiringStore


@pytest.mark.tokens
@pytest.mark.asyncio
class TestInMemoryExpiringStore:
    async def test_set_get(self, token_store):
        await token_store.set("k", {"a": 1}, ttl=10)
        assert await token_store.get("k") == {"a": 1}
        assert len(token_store) == 1

    async def test_expires_after_ttl(self, token_store, clock):
        await token_store.set("k", {"a": 1}, ttl=10)
        clock.advance(9.9)
        assert await token_store.get("k") == {"a": 1}
        clock.advance(0.1)
        assert await token_store.get("k") is None
        assert len(token_store) == 0

    async def test_pop_removes(self, token_store):
        await token_store.set("k", {"a": 1}, ttl=10)
        assert await token_store.pop("k") == {"a": 1}
        assert await token_store.pop("k") is None
        assert await token_store.get("k") is None

    async def test_pop_expired(self, token_store, clock):
        await token_store.set("k", {"a": 1}, ttl=1)
        clock.advance(5)
        assert await token_store.pop("k") is None

    async def test_concurrent_pop_yields_single_winner(self, token_store):
        await token_store.set("k", {"a": 1}, ttl=10)
        results = await asyncio.gather(*(token_store.pop("k") for _ in range(20)))
        assert [r for r in results if r is not None] == [{"a": 1}]

    async def test_delete(self, token_store):
        await token_store.set("k", {"a": 1}, ttl=10)
        await token_store.delete("k")
        await token_store.delete("missing")
        assert await token_store.get("k") is None

    async def test_get_returns_copy(self, token_store):
        await token_store.set("k", {"a": 1}, ttl=10)
        (await token_store.get("k"))["a"] = 2
        assert await token_store.get("k") == {"a": 1}

    async def test_unredeemed_keys_are_evicted_on_set(self, token_store, clock):
        for i in range(1000):
            await token_store.set(f"k{i}", {"i": i}, ttl=300)
        clock.advance(10_000)

        await token_store.set("fresh", {"a": 1}, ttl=300)

        assert list(token_store._data) == ["fresh"]
        assert len(token_store._expiries) == 1

    async def test_reset_key_keeps_newer_expiry(self, token_store, clock):
        await token_store.set("k", {"v": 1}, ttl=10)
        clock.advance(5)
        await token_store.set("k", {"v": 2}, ttl=10)
        clock.advance(6)

        await token_store.set("other", {}, ttl=10)

        assert await token_store.get("k") == {"v": 2}

    async def test_satisfies_protocol(self):
        assert isinstance(InMemoryExpiringStore(), ExpiringStore)


@pytest.mark.tokens
@pytest.mark.asyncio
class TestRedisExpiringStore:
    async def test_set_uses_namespace_and_ttl(self, mock_redis_client):
        store = RedisExpiringStore(mock_redis_client, namespace="vault")
        await store.set("download_token:d:t", {"owner_id": "1"}, ttl=300)
        mock_redis_client.set.assert_awaited_once_with(
            "vault:download_token:d:t", json.dumps({"owner_id": "1"}), ex=300
        )

    async def test_pop_uses_getdel(self, mock_redis_client):
        mock_redis_client.getdel.return_value = json.dumps({"owner_id": "1"})
        store = RedisExpiringStore(mock_redis_client)
        assert await store.pop("k") == {"owner_id": "1"}
        mock_redis_client.getdel.assert_awaited_once_with("k")

    async def test_pop_missing(self, mock_redis_client):
        mock_redis_client.getdel.return_value = None
        store = RedisExpiringStore(mock_redis_client, namespace="vault")
        assert await store.pop("k") is None

    async def test_get_and_delete(self, mock_redis_client):
        mock_redis_client.get.return_value = None
        store = RedisExpiringStore(mock_redis_client, namespace="vault")
        assert await store.get("k") is None
        await store.delete("k")
        mock_redis_client.delete.assert_awaited_once_with("vault:k")
