"""Unit tests for MemoryBackend."""

import pytest

from doc_vault.storage import (
    InvalidKeyError,
    ObjectNotFoundError,
    StorageBackend,
    TransientStorageError,
)
from doc_vault.storage.backends.memory import MemoryBackend


@pytest.mark.storage
@pytest.mark.asyncio
class TestMemoryBackend:
    """Test suite for MemoryBackend."""

    async def test_put_and_get(self):
        backend = MemoryBackend()

        result = await backend.put("owner/2025/07/a.pdf", b"Hello, World!", "application/pdf")

        assert result.etag
        assert await backend.get("owner/2025/07/a.pdf") == b"Hello, World!"

    async def test_put_with_metadata(self):
        backend = MemoryBackend()

        await backend.put(
            "test/file.txt",
            b"test data",
            "text/plain",
            metadata={"owner_id": "42", "document_id": "d1"},
        )

        obj = await backend.head("test/file.txt")
        assert obj.metadata == {"owner_id": "42", "document_id": "d1"}
        assert obj.content_type == "text/plain"
        assert obj.last_modified is not None
        assert obj.size == 9

    async def test_head_nonexistent_file(self):
        backend = MemoryBackend()

        with pytest.raises(ObjectNotFoundError):
            await backend.head("missing.txt")
        assert backend.calls["head"] == 1

    async def test_get_nonexistent_file(self):
        backend = MemoryBackend()

        with pytest.raises(ObjectNotFoundError) as exc_info:
            await backend.get("nonexistent.txt")

        assert exc_info.value.path == "nonexistent.txt"
        assert exc_info.value.provider_code == "NoSuchKey"

    async def test_delete(self):
        backend = MemoryBackend()
        await backend.put("test/file.txt", b"data", "text/plain")
        assert await backend.exists("test/file.txt")

        assert await backend.delete("test/file.txt") is True
        assert not await backend.exists("test/file.txt")

    async def test_delete_nonexistent(self):
        backend = MemoryBackend()
        assert await backend.delete("nonexistent.txt") is False

    async def test_list_with_prefix(self):
        backend = MemoryBackend()
        await backend.put("a/1.pdf", b"1", "application/pdf")
        await backend.put("a/2.pdf", b"22", "application/pdf")
        await backend.put("b/3.pdf", b"333", "application/pdf")

        listed = await backend.list("a/")
        assert [o.path for o in listed] == ["a/1.pdf", "a/2.pdf"]
        assert [o.size for o in listed] == [1, 2]
        assert len(await backend.list("", max_keys=2)) == 2

    async def test_presigned_url(self):
        backend = MemoryBackend()
        await backend.put("a/1.pdf", b"1", "application/pdf")
        assert await backend.presigned_url("a/1.pdf", 60) == "memory://a/1.pdf?expires_in=60"
        with pytest.raises(ObjectNotFoundError):
            await backend.presigned_url("missing.pdf")

    @pytest.mark.parametrize("key", ["", "/abs/path", "a/../b", "x" * 1025])
    async def test_invalid_keys(self, key):
        backend = MemoryBackend()
        with pytest.raises(InvalidKeyError):
            await backend.put(key, b"data", "text/plain")

    async def test_fail_next_injects_errors(self):
        backend = MemoryBackend()
        backend.fail_next("put", TransientStorageError("boom", provider_code="SlowDown"), times=2)

        for _ in range(2):
            with pytest.raises(TransientStorageError):
                await backend.put("a.txt", b"x", "text/plain")
        await backend.put("a.txt", b"x", "text/plain")

        assert backend.calls["put"] == 3

    async def test_overwrite(self):
        backend = MemoryBackend()
        await backend.put("a.txt", b"one", "text/plain")
        await backend.put("a.txt", b"two", "text/plain")
        assert await backend.get("a.txt") == b"two"

    async def test_satisfies_protocol(self):
        assert isinstance(MemoryBackend(), StorageBackend)
