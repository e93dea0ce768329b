"""Tests for the global height rollup."""

import pytest

from scroll_summit.services.rollup import GlobalSnapshot, RollupWorker


def test_total_is_sum_of_regions(store) -> None:
    rollup = RollupWorker(store)
    store.increment("TH", 100)
    store.increment("JP", 250)

    snapshot = rollup.tick()

    assert snapshot == GlobalSnapshot(total_height=350, velocity=350.0)
    assert store.published_total() == 350


def test_velocity_is_change_per_second(store) -> None:
    rollup = RollupWorker(store, interval_seconds=0.5)
    store.increment("TH", 100)
    rollup.tick()
    store.increment("TH", 50)

    snapshot = rollup.tick()

    assert snapshot.total_height == 150
    assert snapshot.velocity == 100.0
    assert rollup.current_velocity() == 100


def test_decay_produces_negative_velocity(store) -> None:
    rollup = RollupWorker(store)
    store.increment("TH", 100)
    rollup.tick()
    store.decrement("TH", 26)
    assert rollup.tick().velocity == -26.0


def test_no_regions_yields_zero(store) -> None:
    rollup = RollupWorker(store)
    assert rollup.tick() == GlobalSnapshot()
    assert store.published_total() == 0


def test_zero_height_regions_count_as_zero(store) -> None:
    rollup = RollupWorker(store)
    store.increment("TH", 0)
    store.increment("JP", 5)
    assert rollup.tick().total_height == 5


def test_smoothing_blends_with_previous_velocity(store) -> None:
    rollup = RollupWorker(store, smoothing=0.5)
    store.increment("TH", 100)
    assert rollup.tick().velocity == 50.0
    assert rollup.tick().velocity == 25.0


def test_latest_starts_empty(store) -> None:
    assert RollupWorker(store).latest == GlobalSnapshot(total_height=0, velocity=0.0)


def test_smoothing_out_of_range(store) -> None:
    with pytest.raises(ValueError):
        RollupWorker(store, smoothing=1.5)


def test_rollup_logs_human_readable_height(store, caplog) -> None:
    rollup = RollupWorker(store)
    store.increment("TH", 1_234)

    with caplog.at_level("DEBUG", logger="scroll_summit.services.rollup"):
        rollup.tick()

    assert "1.23 m" in caplog.text
    assert "1.23 m/s" in caplog.text
