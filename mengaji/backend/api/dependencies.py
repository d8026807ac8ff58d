# mengaji/backend/api/dependencies.py
from fastapi import Request, Depends
import redis.asyncio as redis
import asyncpg

from ..db.redis_client import RedisClient
from ..db.db_client import AsyncPostgresClient
from ..services.user_service import UserService
from ..services.center_service import CenterService
from ..services.class_service import ClassService
from ..services.finance_service import FinanceService
from ..services.media_service import MediaService


def get_redis_pool(request: Request) -> redis.ConnectionPool:
    """Provides the Redis connection pool created at startup."""
    return request.app.state.redis_pool

def get_postgres_pool(request: Request) -> asyncpg.Pool:
    """Provides the PostgreSQL connection pool created at startup."""
    return request.app.state.postgres_pool


def get_redis_client(redis_pool: redis.ConnectionPool = Depends(get_redis_pool)) -> RedisClient:
    return RedisClient(pool=redis_pool)

def get_db_client(postgres_pool: asyncpg.Pool = Depends(get_postgres_pool)) -> AsyncPostgresClient:
    return AsyncPostgresClient(pool=postgres_pool)


# Each request gets fresh service objects built on the shared pools.

def get_user_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> UserService:
    return UserService(db_client=db_client)

def get_center_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> CenterService:
    return CenterService(db_client=db_client)

def get_class_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> ClassService:
    return ClassService(db_client=db_client)

def get_finance_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> FinanceService:
    return FinanceService(db_client=db_client)

def get_media_service(db_client: AsyncPostgresClient = Depends(get_db_client)) -> MediaService:
    return MediaService(db_client=db_client)
