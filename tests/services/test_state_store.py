"""Tests for the in-memory regional state store."""

import threading

import pytest

from scroll_summit.services.state_store import RegionalStateStore, normalize_region

THREADS = 8
INCREMENTS_PER_THREAD = 1000


def test_first_increment_creates_region(store: RegionalStateStore, clock) -> None:
    assert store.all_heights() == {}
    assert store.increment("TH", 26) == 26
    assert store.all_heights() == {"TH": 26}
    assert store.last_activity("TH") == clock.now


def test_increment_normalises_region_case(store: RegionalStateStore) -> None:
    store.increment("jp", 5)
    assert store.height("JP") == 5


def test_decrement_clamps_at_zero(store: RegionalStateStore) -> None:
    store.increment("TH", 10)
    assert store.decrement("TH", 26) == 0
    assert store.height("TH") == 0
    assert store.decrement("TH", 26) == 0


def test_decrement_unknown_region_returns_zero(store: RegionalStateStore) -> None:
    assert store.decrement("US", 26) == 0
    assert store.all_heights() == {}


def test_decrement_does_not_touch_last_activity(store: RegionalStateStore, clock) -> None:
    store.increment("TH", 100)
    seen = clock.now
    clock.advance(10_000)
    store.decrement("TH", 26)
    assert store.last_activity("TH") == seen


def test_negative_amounts_are_rejected(store: RegionalStateStore) -> None:
    with pytest.raises(ValueError):
        store.increment("TH", -1)
    with pytest.raises(ValueError):
        store.decrement("TH", -1)


@pytest.mark.parametrize("region", ["", "T", "THAI", "T1", "../"])
def test_invalid_region_codes(store: RegionalStateStore, region: str) -> None:
    with pytest.raises(ValueError):
        store.increment(region, 1)


def test_normalize_region() -> None:
    assert normalize_region(" th ") == "TH"
    assert normalize_region("xx") == "XX"
    assert normalize_region("usa") == "USA"


def test_published_total_round_trip(store: RegionalStateStore) -> None:
    assert store.published_total() == 0
    store.publish_total(350)
    assert store.published_total() == 350


def test_all_last_activity_skips_regions_never_incremented(store: RegionalStateStore) -> None:
    store.increment("TH", 1)
    assert set(store.all_last_activity()) == {"TH"}


def test_concurrent_increments_are_not_lost(store: RegionalStateStore) -> None:
    barrier = threading.Barrier(THREADS)

    def worker() -> None:
        barrier.wait()
        for _ in range(INCREMENTS_PER_THREAD):
            store.increment("TH", 1)

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.height("TH") == THREADS * INCREMENTS_PER_THREAD


def test_concurrent_increment_and_decrement_stay_consistent(store: RegionalStateStore) -> None:
    store.increment("JP", 5000)

    def adder() -> None:
        for _ in range(INCREMENTS_PER_THREAD):
            store.increment("JP", 2)

    def remover() -> None:
        for _ in range(INCREMENTS_PER_THREAD):
            store.decrement("JP", 1)

    threads = [threading.Thread(target=adder), threading.Thread(target=remover)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.height("JP") == 5000 + INCREMENTS_PER_THREAD
