import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
import redis.asyncio as redis

from mengaji.backend.db.redis_client import RedisClient
from mengaji.backend.models.db_models import Role
from mengaji.backend.models.redis_models import SessionUser, UserSessionRedis

TEST_REDIS_URL = os.environ.get("TEST_REDIS_URL")

pytestmark = pytest.mark.skipif(not TEST_REDIS_URL, reason="TEST_REDIS_URL is not set")


@pytest_asyncio.fixture(scope="function")
async def redis_pool():
    pool = redis.ConnectionPool.from_url(TEST_REDIS_URL, decode_responses=True)
    client = redis.Redis(connection_pool=pool)
    await client.flushdb()
    yield pool
    await client.flushdb()
    await client.aclose()


def sample_session(user_id: int = 7) -> UserSessionRedis:
    now = datetime.now(timezone.utc)
    return UserSessionRedis(
        user_data=SessionUser(id=user_id, email="ustaz@mengaji.my", full_name="Ustaz Ahmad", role=Role.CENTER_TEACHER),
        session_id=uuid.uuid4(),
        session_start_time=now,
        session_end_time=now + timedelta(minutes=30),
    )


@pytest.mark.asyncio
async def test_session_round_trip(redis_pool):
    client = RedisClient(pool=redis_pool)
    session = sample_session()

    await client.save_user_session(session, ttl=1800)
    fetched = await client.get_user_session(7)

    assert fetched == session
    assert 0 < await redis.Redis(connection_pool=redis_pool).ttl("users:7") <= 1800


@pytest.mark.asyncio
async def test_missing_and_deleted_sessions(redis_pool):
    client = RedisClient(pool=redis_pool)
    assert await client.get_user_session(8) is None

    await client.save_user_session(sample_session(8), ttl=60)
    assert await client.delete_user_session(8) == 1
    assert await client.get_user_session(8) is None
