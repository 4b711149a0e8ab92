import asyncio
import os

import pytest

from utils.store import CompareResult, MemoryStore, RedisStore


def test_compare_and_delete_consumes_once(store):
    asyncio.run(store.put("otp:9876543210", "123456", 300))

    assert asyncio.run(store.compare_and_delete("otp:9876543210", "123456")) == CompareResult.consumed
    assert asyncio.run(store.compare_and_delete("otp:9876543210", "123456")) == CompareResult.missing


def test_mismatch_keeps_entry(store):
    asyncio.run(store.put("otp:9876543210", "123456", 300))

    assert asyncio.run(store.compare_and_delete("otp:9876543210", "000000")) == CompareResult.mismatch
    assert asyncio.run(store.exists("otp:9876543210"))


def test_put_overwrites_previous_value(store):
    asyncio.run(store.put("otp:9876543210", "111111", 300))
    asyncio.run(store.put("otp:9876543210", "222222", 300))

    assert asyncio.run(store.compare_and_delete("otp:9876543210", "111111")) == CompareResult.mismatch
    assert asyncio.run(store.compare_and_delete("otp:9876543210", "222222")) == CompareResult.consumed


def test_expired_entry_is_unreachable(store, clock):
    asyncio.run(store.put("otp:9876543210", "123456", 300))
    clock.advance(301)

    assert not asyncio.run(store.exists("otp:9876543210"))
    assert asyncio.run(store.compare_and_delete("otp:9876543210", "123456")) == CompareResult.missing
    assert len(store) == 0


def test_entry_still_live_at_expiry_instant(store, clock):
    asyncio.run(store.put("otp:9876543210", "123456", 300))
    clock.advance(300)

    assert asyncio.run(store.exists("otp:9876543210"))
    assert asyncio.run(store.compare_and_delete("otp:9876543210", "123456")) == CompareResult.consumed


def test_writes_sweep_expired_entries(store, clock):
    for i in range(10):
        asyncio.run(store.put(f"otp:90000000{i:02d}", "123456", 60))
    clock.advance(61)

    asyncio.run(store.put("otp:9876543210", "654321", 300))

    assert len(store) == 1


def test_hit_counts_within_fixed_window(store, clock):
    assert asyncio.run(store.hit("otp_req:9876543210", 900)) == (1, 900)
    clock.advance(100)
    assert asyncio.run(store.hit("otp_req:9876543210", 900)) == (2, 800)

    clock.advance(801)
    count, _ = asyncio.run(store.hit("otp_req:9876543210", 900))
    assert count == 1


# -----------------------------------------
# Redis backend (needs a real server)
# -----------------------------------------
REDIS_TEST_URL = os.getenv("REDIS_TEST_URL")


@pytest.mark.skipif(not REDIS_TEST_URL, reason="REDIS_TEST_URL not set")
def test_redis_store_compare_and_delete():
    async def scenario():
        redis_store = RedisStore.from_url(REDIS_TEST_URL)
        try:
            await redis_store.put("test:otp:9876543210", "123456", 30)
            mismatch = await redis_store.compare_and_delete("test:otp:9876543210", "000000")
            consumed = await redis_store.compare_and_delete("test:otp:9876543210", "123456")
            missing = await redis_store.compare_and_delete("test:otp:9876543210", "123456")
            await redis_store.redis.delete("test:otp_req:9876543210")
            first = await redis_store.hit("test:otp_req:9876543210", 60)
            second = await redis_store.hit("test:otp_req:9876543210", 60)
            await redis_store.redis.delete("test:otp_req:9876543210")
            return mismatch, consumed, missing, first, second
        finally:
            await redis_store.close()

    mismatch, consumed, missing, first, second = asyncio.run(scenario())

    assert mismatch == CompareResult.mismatch
    assert consumed == CompareResult.consumed
    assert missing == CompareResult.missing
    assert first[0] == 1 and second[0] == 2
    assert 0 < second[1] <= 60
