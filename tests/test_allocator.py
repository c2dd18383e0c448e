"""Slot allocator unit tests."""

from unittest.mock import MagicMock

import pytest
import redis

from concurrencylimit import (
    ConfigurationError,
    InMemorySlotAllocator,
    RedisSlotAllocator,
    StoreError,
    StoreUnavailableError,
)
from concurrencylimit.allocator import CLAIM_SCRIPT, RELEASE_SCRIPT

TOKEN = b"\x01" * 16


def make_redis():
    client = MagicMock(spec=redis.Redis)
    scripts = {CLAIM_SCRIPT: MagicMock(name="claim"), RELEASE_SCRIPT: MagicMock(name="release")}
    client.register_script.side_effect = lambda source: scripts[source]
    return client, scripts[CLAIM_SCRIPT], scripts[RELEASE_SCRIPT]


class TestInMemorySlotAllocator:
    def test_claim_scans_ascending(self) -> None:
        allocator = InMemorySlotAllocator()
        assert allocator.claim("p", 3, b"a") == 1
        assert allocator.claim("p", 3, b"b") == 2
        allocator.release("p", 1)
        assert allocator.claim("p", 3, b"c") == 1
        assert allocator.claim("p", 3, b"d") == 3
        assert allocator.claim("p", 3, b"e") == 0

    def test_pools_are_independent(self) -> None:
        allocator = InMemorySlotAllocator()
        assert allocator.claim("p", 1, b"a") == 1
        assert allocator.claim("q", 1, b"b") == 1
        assert allocator.claim("p", 1, b"c") == 0

    def test_release_free_slot_is_noop(self) -> None:
        allocator = InMemorySlotAllocator()
        allocator.release("p", 5)
        allocator.claim("p", 2, b"a")
        allocator.release("p", 2)
        assert allocator.read("p", 1) == b"a"
        assert allocator.read("p", 2) is None

    def test_capacity_shrink_keeps_existing_holders(self) -> None:
        allocator = InMemorySlotAllocator()
        for record in (b"a", b"b", b"c"):
            allocator.claim("p", 3, record)
        assert allocator.claim("p", 2, b"d") == 0
        assert allocator.read("p", 3) == b"c"

    def test_occupants_sorted_and_decoded(self) -> None:
        allocator = InMemorySlotAllocator()
        allocator.overwrite("p", 10, TOKEN + b"-ten")
        allocator.overwrite("p", 2, b"garbage")
        infos = allocator.occupants("p")
        assert [info.slot for info in infos] == [2, 10]
        assert infos[0].record is None
        assert infos[0].raw == b"garbage"
        assert infos[1].record.info == "ten"

    @pytest.mark.parametrize("capacity", [0, -1, True, None, "3"])
    def test_claim_rejects_invalid_capacity(self, capacity) -> None:
        allocator = InMemorySlotAllocator()
        with pytest.raises(ConfigurationError, match="Capacity"):
            allocator.claim("p", capacity, b"a")
        assert not allocator.exists("p")

    def test_occupants_skip_non_numeric_fields(self) -> None:
        allocator = InMemorySlotAllocator()
        allocator.overwrite("p", 1, TOKEN + b"-a")
        allocator._pools["p"][b"owner"] = b"ops"
        allocator._pools["p"][b"\xff"] = b"junk"
        assert [info.slot for info in allocator.occupants("p")] == [1]


class TestRedisSlotAllocator:
    def test_registers_both_scripts(self) -> None:
        client, _, _ = make_redis()
        RedisSlotAllocator(client)
        sources = [call.args[0] for call in client.register_script.call_args_list]
        assert sources == [CLAIM_SCRIPT, RELEASE_SCRIPT]

    def test_claim_runs_script(self) -> None:
        client, claim, _ = make_redis()
        claim.return_value = 2
        allocator = RedisSlotAllocator(client)
        assert allocator.claim("p", 3, TOKEN + b"-x") == 2
        claim.assert_called_once_with(keys=["p"], args=[3, TOKEN + b"-x"])

    def test_claim_full_returns_zero(self) -> None:
        client, claim, _ = make_redis()
        claim.return_value = 0
        assert RedisSlotAllocator(client).claim("p", 3, TOKEN + b"-") == 0

    def test_claim_connection_error(self) -> None:
        client, claim, _ = make_redis()
        claim.side_effect = redis.ConnectionError("Connection refused")
        with pytest.raises(StoreUnavailableError, match="claiming"):
            RedisSlotAllocator(client).claim("p", 3, TOKEN + b"-")

    def test_claim_timeout(self) -> None:
        client, claim, _ = make_redis()
        claim.side_effect = redis.TimeoutError("Timeout reading from socket")
        with pytest.raises(StoreUnavailableError):
            RedisSlotAllocator(client).claim("p", 3, TOKEN + b"-")

    def test_claim_server_error(self) -> None:
        client, claim, _ = make_redis()
        claim.side_effect = redis.ResponseError("NOSCRIPT scripting disabled")
        with pytest.raises(StoreError) as excinfo:
            RedisSlotAllocator(client).claim("p", 3, TOKEN + b"-")
        assert not isinstance(excinfo.value, StoreUnavailableError)

    def test_release_runs_script(self) -> None:
        client, _, release = make_redis()
        release.return_value = 1
        RedisSlotAllocator(client).release("p", 2)
        release.assert_called_once_with(keys=["p"], args=[2])

    def test_release_connection_error(self) -> None:
        client, _, release = make_redis()
        release.side_effect = redis.ConnectionError("gone")
        with pytest.raises(StoreUnavailableError):
            RedisSlotAllocator(client).release("p", 2)

    def test_read_uses_decimal_field(self) -> None:
        client, _, _ = make_redis()
        client.hget.return_value = TOKEN + b"-x"
        assert RedisSlotAllocator(client).read("p", 7) == TOKEN + b"-x"
        client.hget.assert_called_once_with("p", "7")

    def test_read_missing(self) -> None:
        client, _, _ = make_redis()
        client.hget.return_value = None
        assert RedisSlotAllocator(client).read("p", 1) is None

    def test_read_connection_error(self) -> None:
        client, _, _ = make_redis()
        client.hget.side_effect = redis.ConnectionError("gone")
        with pytest.raises(StoreUnavailableError):
            RedisSlotAllocator(client).read("p", 1)

    def test_occupants(self) -> None:
        client, _, _ = make_redis()
        client.hgetall.return_value = {b"3": TOKEN + b"-c", b"1": TOKEN + b"-a"}
        infos = RedisSlotAllocator(client).occupants("p")
        assert [(info.slot, info.record.info) for info in infos] == [(1, "a"), (3, "c")]

    def test_occupants_of_missing_pool(self) -> None:
        client, _, _ = make_redis()
        client.hgetall.return_value = {}
        assert RedisSlotAllocator(client).occupants("p") == []

    def test_rejects_decoding_client(self) -> None:
        client, _, _ = make_redis()
        client.connection_pool = MagicMock(connection_kwargs={"decode_responses": True})
        with pytest.raises(ConfigurationError, match="decode_responses"):
            RedisSlotAllocator(client)
        client.register_script.assert_not_called()

    def test_claim_rejects_invalid_capacity(self) -> None:
        client, claim, _ = make_redis()
        with pytest.raises(ConfigurationError):
            RedisSlotAllocator(client).claim("p", 0, TOKEN + b"-")
        claim.assert_not_called()

    def test_occupants_skip_non_numeric_fields(self) -> None:
        client, _, _ = make_redis()
        client.hgetall.return_value = {b"2": TOKEN + b"-b", b"note": b"x"}
        assert [info.slot for info in RedisSlotAllocator(client).occupants("p")] == [2]
