"""Tests for the search refs cache and its sweeps."""

import asyncio

import pytest

from termsearch.retrievers.cache_manager import ResultCache, create_result_cache

from .fakes import FakeClock, scored

REFS = [scored("neu.edu/202110/CS/2500", 3.0)]


def test_get_miss_then_hit(cache, clock):
    assert cache.get("202110", "cs") is None

    cache.put("202110", "cs", REFS, was_subject_match=True, subject_name="Computer Science", subject_count=1)
    clock.advance(10)
    entry = cache.get("202110", "cs")

    assert entry.refs == tuple(REFS)
    assert entry.was_subject_match
    assert entry.subject_name == "Computer Science"
    assert entry.subject_count == 1
    assert entry.last_touched == clock.now


def test_key_parts_are_not_concatenated(cache):
    cache.put("2021", "10 cs", REFS)
    assert cache.get("202110", " cs") is None
    assert cache.get("2021", "10 cs") is not None


def test_keys_are_per_term(cache):
    cache.put("202110", "cs", REFS)
    assert cache.get("202130", "cs") is None


def test_hit_and_miss_metrics(cache, metrics):
    cache.get("202110", "cs")
    cache.put("202110", "cs", REFS)
    cache.get("202110", "cs")
    text = metrics.get_metrics()
    assert "termsearch_cache_hits_total 1.0" in text
    assert "termsearch_cache_misses_total 1.0" in text
    assert "termsearch_cache_entries 1.0" in text


def test_sweep_keeps_entries_younger_than_mean(cache, clock):
    cache.put("t", "old", REFS)
    clock.advance(100)
    cache.put("t", "middle", REFS)
    clock.advance(100)
    cache.put("t", "new", REFS)

    # Ages 200, 100, 0: only "new" is strictly below the mean of 100.
    removed = cache.sweep(clock.now)

    assert removed == 2
    assert cache.size == 1
    assert cache.get("t", "new") is not None


def test_sweep_respects_horizon(clock):
    cache = ResultCache(horizon_seconds=50, clock=clock)
    cache.put("t", "a", REFS)
    clock.advance(60)
    cache.put("t", "b", REFS)
    clock.advance(60)
    cache.put("t", "c", REFS)
    clock.advance(55)

    # Ages 175, 115, 55; mean is 115 but "c" is past the horizon.
    assert cache.sweep(clock.now) == 3
    assert cache.size == 0


def test_sweep_drops_single_entry(cache, clock):
    cache.put("t", "only", REFS)
    clock.advance(1)
    assert cache.sweep(clock.now) == 1
    assert cache.size == 0


def test_sweep_drops_entries_of_equal_age(cache, clock):
    cache.put("t", "a", REFS)
    cache.put("t", "b", REFS)
    assert cache.sweep(clock.now) == 2


def test_sweep_empty_cache(cache, clock):
    assert cache.sweep(clock.now) == 0


def test_hit_refresh_protects_entry(cache, clock):
    cache.put("t", "popular", REFS)
    cache.put("t", "stale", REFS)
    clock.advance(100)
    cache.get("t", "popular")

    cache.sweep_now()

    assert cache.get("t", "popular") is not None
    assert cache.get("t", "stale") is None


def test_sweep_swaps_in_new_map(cache, clock):
    cache.put("t", "a", REFS)
    clock.advance(10)
    cache.put("t", "b", REFS)
    before = cache._entries

    cache.sweep_now()

    assert cache._entries is not before
    assert len(before) == 2


def test_sweep_records_evictions(cache, clock, metrics):
    cache.put("t", "a", REFS)
    cache.sweep_now(trigger="manual")
    assert 'termsearch_cache_evictions_total{trigger="manual"} 1.0' in metrics.get_metrics()


def test_above_high_water_mark(clock):
    cache = create_result_cache(high_water_mark=2, clock=clock)
    cache.put("t", "a", REFS)
    cache.put("t", "b", REFS)
    assert not cache.above_high_water_mark
    cache.put("t", "c", REFS)
    assert cache.above_high_water_mark


@pytest.mark.asyncio
async def test_schedule_sweep_runs_later():
    clock = FakeClock()
    cache = ResultCache(high_water_mark=1, clock=clock)
    cache.put("t", "a", REFS)
    cache.put("t", "b", REFS)

    task = cache.schedule_sweep()

    # Nothing happens until the caller yields to the loop.
    assert cache.size == 2
    assert cache.schedule_sweep() is task

    assert await task == 2
    assert cache.size == 0
    assert cache.pending_sweep is None


@pytest.mark.asyncio
async def test_interval_sweeper_lifecycle():
    clock = FakeClock()
    cache = ResultCache(sweep_interval_seconds=0.01, clock=clock)
    cache.put("t", "a", REFS)

    await cache.start()
    assert cache.running
    await cache.start()

    for _ in range(50):
        if cache.size == 0:
            break
        await asyncio.sleep(0.01)
    assert cache.size == 0

    await cache.stop()
    assert not cache.running


@pytest.mark.asyncio
async def test_stop_cancels_pending_sweep():
    cache = ResultCache(high_water_mark=0, clock=FakeClock())
    cache.put("t", "a", REFS)
    task = cache.schedule_sweep()

    await cache.stop()

    assert task.cancelled()
    assert cache.size == 1
    assert cache.pending_sweep is None


def test_cache_stats(cache, clock):
    cache.put("t", "a", REFS)
    clock.advance(30)
    cache.put("t", "b", REFS)

    stats = cache.get_cache_stats()

    assert stats["entries"] == 2
    assert stats["mean_age_seconds"] == 15.0
    assert stats["oldest_age_seconds"] == 30.0
    assert stats["high_water_mark"] == 10000
    assert stats["sweeper_running"] is False


@pytest.mark.asyncio
async def test_get_or_load_shares_one_load(cache, metrics):
    calls = []

    async def load():
        calls.append(1)
        await asyncio.sleep(0.05)
        return cache.put("202110", "cs", REFS)

    outcomes = await asyncio.gather(*(cache.get_or_load("202110", "cs", load) for _ in range(4)))

    assert len(calls) == 1
    assert [hit for _, hit in outcomes] == [False, True, True, True]
    assert all(entry is outcomes[0][0] for entry, _ in outcomes)
    assert cache.in_flight == 0
    text = metrics.get_metrics()
    assert "termsearch_cache_hits_total 3.0" in text
    assert "termsearch_cache_misses_total 1.0" in text


@pytest.mark.asyncio
async def test_get_or_load_serves_stored_entries(cache):
    cache.put("202110", "cs", REFS)

    async def load():
        raise AssertionError("loader must not run on a hit")

    entry, hit = await cache.get_or_load("202110", "cs", load)

    assert hit
    assert entry.refs == tuple(REFS)


@pytest.mark.asyncio
async def test_get_or_load_failure_reaches_every_waiter(cache):
    calls = []

    async def fail():
        calls.append(1)
        await asyncio.sleep(0.05)
        raise asyncio.TimeoutError()

    outcomes = await asyncio.gather(
        *(cache.get_or_load("202110", "cs", fail) for _ in range(3)),
        return_exceptions=True,
    )

    assert len(calls) == 1
    assert all(isinstance(outcome, asyncio.TimeoutError) for outcome in outcomes)
    assert cache.in_flight == 0
    assert cache.size == 0

    async def load():
        calls.append(1)
        return cache.put("202110", "cs", REFS)

    _, hit = await cache.get_or_load("202110", "cs", load)
    assert not hit
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_get_or_load_retries_after_cancelled_load(cache):
    started = asyncio.Event()

    async def hang():
        started.set()
        await asyncio.sleep(10)

    async def load():
        return cache.put("202110", "cs", REFS)

    first = asyncio.create_task(cache.get_or_load("202110", "cs", hang))
    await started.wait()
    second = asyncio.create_task(cache.get_or_load("202110", "cs", load))
    await asyncio.sleep(0)
    first.cancel()

    entry, hit = await second

    assert not hit
    assert entry.refs == tuple(REFS)
    assert first.cancelled()
    assert cache.in_flight == 0
