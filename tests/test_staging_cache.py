"""Tests for the write-back staging cache in isolation."""

import asyncio

import pytest

from filesystem.staging_cache import StagingCache
from namespace.errors import BackendUnavailable, InvalidArgument


class FakeBackend:
    """Per-path contents with counters for fetches and flushes."""

    def __init__(self, contents=None):
        self.contents = dict(contents or {})
        self.fetches = 0
        self.flushes = []
        self.fail_flushes = 0

    async def fetch(self, path):
        self.fetches += 1
        await asyncio.sleep(0)
        return self.contents.get(path)

    async def flush(self, path, data):
        if self.fail_flushes:
            self.fail_flushes -= 1
            raise BackendUnavailable("flush failed")
        self.flushes.append((path, data))
        self.contents[path] = data


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend({"/f": b"hello"})


@pytest.fixture()
def cache(backend: FakeBackend) -> StagingCache:
    return StagingCache(backend.fetch, backend.flush)


class TestWriteBack:
    @pytest.mark.asyncio
    async def test_write_truncate_release(self, backend: FakeBackend, cache: StagingCache):
        await cache.open("f")
        await cache.write("f", b"XY", 1)
        assert await cache.snapshot("f") == b"hXYlo"
        await cache.truncate("f", 2)
        assert await cache.snapshot("f") == b"hX"
        await cache.release("f")
        assert backend.contents["/f"] == b"hX"
        assert not cache.is_open("f")

    @pytest.mark.asyncio
    async def test_write_with_gap(self, cache: StagingCache):
        await cache.open("g")
        await cache.write("g", b"Z", 3)
        assert await cache.snapshot("g") == b"\0\0\0Z"

    @pytest.mark.asyncio
    async def test_write_past_end_grows(self, cache: StagingCache):
        await cache.write("/f", b", world", 5)
        assert await cache.snapshot("/f") == b"hello, world"

    @pytest.mark.asyncio
    async def test_write_opens_implicitly(self, backend: FakeBackend, cache: StagingCache):
        await cache.write("/f", b"J", 0)
        assert await cache.snapshot("/f") == b"Jello"
        assert backend.fetches == 1

    @pytest.mark.asyncio
    async def test_truncate_grows_with_zeros(self, cache: StagingCache):
        await cache.open("/f")
        await cache.truncate("/f", 7)
        assert await cache.snapshot("/f") == b"hello\0\0"

    @pytest.mark.asyncio
    async def test_truncate_without_buffer_is_noop(self, backend: FakeBackend, cache: StagingCache):
        assert await cache.truncate("/f", 1) is False
        assert backend.fetches == 0
        assert backend.contents["/f"] == b"hello"

    @pytest.mark.asyncio
    async def test_negative_arguments(self, cache: StagingCache):
        with pytest.raises(InvalidArgument):
            await cache.write("/f", b"x", -1)
        with pytest.raises(InvalidArgument):
            await cache.truncate("/f", -1)


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_reopen_keeps_pending_buffer(self, backend: FakeBackend, cache: StagingCache):
        await cache.open("/f")
        await cache.write("/f", b"H", 0)
        backend.contents["/f"] = b"changed"
        await cache.open("/f")
        assert await cache.snapshot("/f") == b"Hello"
        assert backend.fetches == 1

    @pytest.mark.asyncio
    async def test_release_without_buffer_is_noop(self, backend: FakeBackend, cache: StagingCache):
        await cache.release("/nothing")
        assert backend.flushes == []

    @pytest.mark.asyncio
    async def test_failed_release_keeps_buffer(self, backend: FakeBackend, cache: StagingCache):
        backend.fail_flushes = 1
        await cache.write("/f", b"Y", 0)
        with pytest.raises(BackendUnavailable):
            await cache.release("/f")
        assert await cache.snapshot("/f") == b"Yello"
        await cache.release("/f")
        assert backend.contents["/f"] == b"Yello"

    @pytest.mark.asyncio
    async def test_paths_are_normalized(self, cache: StagingCache):
        await cache.write("a//b/", b"1", 0)
        assert cache.is_open("/a/b")

    @pytest.mark.asyncio
    async def test_move_and_discard(self, cache: StagingCache):
        await cache.write("/d/x", b"1", 0)
        await cache.write("/d/y", b"2", 0)
        await cache.write("/dz", b"3", 0)
        await cache.move("/d", "/e")
        assert sorted(cache.buffers) == ["/dz", "/e/x", "/e/y"]
        await cache.discard("/e")
        assert sorted(cache.buffers) == ["/dz"]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_writes_to_one_path(self, cache: StagingCache):
        await asyncio.gather(*(cache.write("/c", bytes([65 + i]), i) for i in range(26)))
        assert await cache.snapshot("/c") == bytes(range(65, 91))

    @pytest.mark.asyncio
    async def test_concurrent_opens_install_one_buffer(self, cache: StagingCache):
        await asyncio.gather(cache.open("/f"), cache.open("/f"))
        await cache.write("/f", b"!", 5)
        assert await cache.snapshot("/f") == b"hello!"


class TestLockLifetime:
    @pytest.mark.asyncio
    async def test_lookups_of_unstaged_paths_create_no_locks(self, cache: StagingCache):
        for i in range(100):
            assert await cache.snapshot(f"/missing{i}") is None
            assert await cache.truncate(f"/missing{i}", 0) is False
            await cache.release(f"/missing{i}")
        assert cache.locks == {}

    @pytest.mark.asyncio
    async def test_locks_are_dropped_with_their_buffers(self, cache: StagingCache):
        await cache.write("/a", b"1", 0)
        await cache.write("/d/x", b"2", 0)
        await cache.write("/d/y", b"3", 0)
        assert sorted(cache.locks) == ["/a", "/d/x", "/d/y"]
        await cache.release("/a")
        await cache.move("/d", "/e")
        assert sorted(cache.locks) == ["/e/x", "/e/y"]
        await cache.discard("/e")
        assert cache.locks == {}
        assert cache.users == {}

    @pytest.mark.asyncio
    async def test_failed_release_keeps_lock_for_reinstalled_buffer(self, backend: FakeBackend,
                                                                    cache: StagingCache):
        backend.fail_flushes = 1
        await cache.write("/f", b"Y", 0)
        with pytest.raises(BackendUnavailable):
            await cache.release("/f")
        assert list(cache.locks) == ["/f"]

    @pytest.mark.asyncio
    async def test_contended_lock_survives_until_last_user(self, cache: StagingCache):
        await asyncio.gather(*(cache.write("/c", bytes([65 + i]), i) for i in range(10)),
                             cache.release("/c"))
        await cache.release("/c")
        assert cache.locks == {}
        assert cache.users == {}
