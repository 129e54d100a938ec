"""Asset cache tests: keyed reuse, atomic writes, scratch files."""

import asyncio

import pytest

from arcbot.assets import AssetCache
from arcbot.errors import ProductionFailedError, StorageUnavailableError


@pytest.fixture
def cache(tmp_path):
    return AssetCache(tmp_path / "cache", tmp_path / "temp")


class CountingRender:
    def __init__(self, data=b"\x89PNG-B"):
        self.data = data
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.data


def boom():
    raise RuntimeError("render exploded")


@pytest.mark.asyncio
async def test_cache_hit_skips_producer(cache):
    render = CountingRender()
    first = await cache.get_or_create("best30", "hash123", render)
    assert first.read_bytes() == b"\x89PNG-B"

    # Producer now fails, but the key is cached
    second = await cache.get_or_create("best30", "hash123", boom)
    assert second == first
    assert second.read_bytes() == b"\x89PNG-B"
    assert render.calls == 1


@pytest.mark.asyncio
async def test_producer_called_once_per_key(cache):
    render = CountingRender()
    for key in ["a", "b", "a", "b", "a"]:
        await cache.get_or_create("best30", key, render)
    assert render.calls == 2


@pytest.mark.asyncio
async def test_namespaces_are_separate(cache):
    a = await cache.get_or_create("best30", "k", lambda: b"one")
    b = await cache.get_or_create("recent", "k", lambda: b"two")
    assert a != b
    assert a.read_bytes() == b"one"
    assert b.read_bytes() == b"two"


@pytest.mark.asyncio
async def test_failed_producer_leaves_nothing(cache):
    with pytest.raises(ProductionFailedError) as exc:
        await cache.get_or_create("best30", "bad", boom)
    assert isinstance(exc.value.cause, RuntimeError)
    assert isinstance(exc.value.__cause__, RuntimeError)
    assert cache.get_cached("best30", "bad") is None
    assert list(cache.cache_dir.iterdir()) == []

    # A later successful render fills the slot
    path = await cache.get_or_create("best30", "bad", lambda: b"ok")
    assert path.read_bytes() == b"ok"


@pytest.mark.asyncio
async def test_non_bytes_result_is_a_production_failure(cache):
    with pytest.raises(ProductionFailedError):
        await cache.get_or_create("best30", "str", lambda: "not bytes")
    assert cache.get_cached("best30", "str") is None


@pytest.mark.asyncio
async def test_async_producer(cache):
    async def render():
        await asyncio.sleep(0)
        return b"async"

    path = await cache.get_or_create("best30", "async", render)
    assert path.read_bytes() == b"async"
    assert await cache.read("best30", "async", boom) == b"async"


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_render(cache):
    calls = 0

    async def slow_render():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return b"slow"

    paths = await asyncio.gather(*[cache.get_or_create("best30", "same", slow_render) for _ in range(5)])
    assert len(set(paths)) == 1
    assert paths[0].read_bytes() == b"slow"
    assert calls == 1


@pytest.mark.asyncio
async def test_different_keys_do_not_wait_on_each_other(cache):
    gate = asyncio.Event()

    async def blocked():
        await gate.wait()
        return b"blocked"

    task = asyncio.create_task(cache.get_or_create("best30", "slow", blocked))
    await asyncio.sleep(0)
    fast = await asyncio.wait_for(cache.get_or_create("best30", "fast", lambda: b"fast"), timeout=1)
    assert fast.read_bytes() == b"fast"
    gate.set()
    assert (await task).read_bytes() == b"blocked"


def test_unsafe_keys_map_to_safe_names(cache):
    path = cache.cache_path("best30", "../../etc/passwd")
    assert path.parent == cache.cache_dir
    assert "/" not in path.name[len("best30-"):]
    assert cache.cache_path("best30", "../../etc/passwd") == path


def test_cache_path_is_deterministic(cache):
    assert cache.cache_path("best30", "abc.png").name == "best30-abc.png"


def test_scratch_paths_are_unique(cache):
    paths = {cache.create_scratch("recent", "png") for _ in range(50)}
    assert len(paths) == 50
    for p in paths:
        assert p.parent == cache.temp_dir
        assert p.name.startswith("recent-")
        assert p.suffix == ".png"


def test_write_scratch(cache):
    path = cache.write_scratch("recent", ".png", b"data")
    assert path.read_bytes() == b"data"
    assert path.suffix == ".png"
    assert cache.get_cached("recent", path.name) is None


@pytest.mark.asyncio
async def test_lock_table_is_empty_after_use(cache):
    async def render():
        await asyncio.sleep(0.01)
        return b"done"

    await asyncio.gather(*[cache.get_or_create("best30", "k", render) for _ in range(3)])
    assert cache._locks == {}
    assert cache._waiters == {}


@pytest.mark.asyncio
async def test_late_caller_queues_behind_woken_waiter(cache):
    """A caller arriving after a failed render waits instead of rendering again"""
    calls = 0
    late = []

    async def render():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        if calls == 1:
            late.append(asyncio.create_task(cache.get_or_create("best30", "k", render)))
            raise RuntimeError("first render failed")
        return b"second"

    first = asyncio.create_task(cache.get_or_create("best30", "k", render))
    await asyncio.sleep(0)
    second = asyncio.create_task(cache.get_or_create("best30", "k", render))

    with pytest.raises(ProductionFailedError):
        await first
    assert (await second).read_bytes() == b"second"
    assert (await late[0]).read_bytes() == b"second"
    assert calls == 2
    assert cache._locks == {}


@pytest.mark.asyncio
async def test_failed_rename_raises_storage_error_and_cleans_up(cache, monkeypatch):
    import arcbot.assets as assets

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(assets.os, "replace", broken_replace)
    with pytest.raises(StorageUnavailableError):
        await cache.get_or_create("best30", "k", lambda: b"data")
    assert list(cache.cache_dir.iterdir()) == []
    assert cache._locks == {}


def test_write_scratch_without_temp_dir(cache):
    cache.temp_dir.rmdir()
    with pytest.raises(StorageUnavailableError):
        cache.write_scratch("recent", "png", b"data")
