"""Tests for the Redis-backed regional store against a mocked client."""

from unittest.mock import MagicMock

import pytest
import redis

from scroll_summit.core.errors import TransientStoreError
from scroll_summit.services.state_store import RedisRegionalStateStore


@pytest.fixture
def client(mocker):
    return mocker.MagicMock()


@pytest.fixture
def redis_store(client, clock) -> RedisRegionalStateStore:
    return RedisRegionalStateStore(client, clock=clock)


def test_increment_pipelines_height_activity_and_membership(redis_store, client, clock) -> None:
    pipe = client.pipeline.return_value
    pipe.execute.return_value = [126, True, 1]

    assert redis_store.increment("th", 26) == 126

    client.pipeline.assert_called_once_with(transaction=True)
    pipe.incrby.assert_called_once_with("summit:height:TH", 26)
    pipe.set.assert_called_once_with("summit:activity:TH", clock.now)
    pipe.sadd.assert_called_once_with("summit:regions", "TH")


def test_decrement_clamps_inside_transaction(redis_store, client) -> None:
    pipe = MagicMock()
    pipe.get.return_value = "10"

    def run_transaction(func, *keys, value_from_callable=False):
        assert keys == ("summit:height:TH",)
        assert value_from_callable
        return func(pipe)

    client.transaction.side_effect = run_transaction

    assert redis_store.decrement("TH", 26) == 0
    pipe.multi.assert_called_once()
    pipe.decrby.assert_called_once_with("summit:height:TH", 10)


def test_decrement_of_empty_region_writes_nothing(redis_store, client) -> None:
    pipe = MagicMock()
    pipe.get.return_value = None
    client.transaction.side_effect = lambda func, *keys, **kwargs: func(pipe)

    assert redis_store.decrement("JP", 26) == 0
    pipe.decrby.assert_not_called()


def test_all_heights_reads_every_known_region(redis_store, client) -> None:
    client.smembers.return_value = {"TH", "JP"}
    client.mget.return_value = ["250", "100"]

    assert redis_store.all_heights() == {"JP": 250, "TH": 100}
    client.mget.assert_called_once_with(["summit:height:JP", "summit:height:TH"])


def test_all_heights_without_regions_skips_mget(redis_store, client) -> None:
    client.smembers.return_value = set()
    assert redis_store.all_heights() == {}
    client.mget.assert_not_called()


def test_all_last_activity_omits_missing_values(redis_store, client) -> None:
    client.smembers.return_value = {"TH", "JP"}
    client.mget.return_value = [None, "1700000000000"]
    assert redis_store.all_last_activity() == {"TH": 1_700_000_000_000}


def test_published_total_defaults_to_zero(redis_store, client) -> None:
    client.get.return_value = None
    assert redis_store.published_total() == 0
    redis_store.publish_total(42)
    client.set.assert_called_once_with("summit:total", 42)


def test_connection_errors_become_transient_store_errors(redis_store, client) -> None:
    client.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")
    with pytest.raises(TransientStoreError):
        redis_store.increment("TH", 1)

    client.transaction.side_effect = redis.TimeoutError("slow")
    with pytest.raises(TransientStoreError):
        redis_store.decrement("TH", 1)

    client.smembers.side_effect = redis.ConnectionError("down")
    with pytest.raises(TransientStoreError):
        redis_store.all_heights()


def test_invalid_region_is_rejected_before_touching_redis(redis_store, client) -> None:
    with pytest.raises(ValueError):
        redis_store.increment("nope1", 1)
    client.pipeline.assert_not_called()
