# mengaji/backend/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import redis.asyncio as redis
import asyncpg
import logging

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .config.config import settings
from .logging.logging_config import setup_logging
from .api import auth, users, centers, classes, finance, videos
from .api.utilities.limiter import limiter
from .db.db_client import AsyncPostgresClient
from .services.errors import ServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the PostgreSQL and Redis pools on startup and closes them on shutdown.
    """
    setup_logging()
    logger.info("Application starting...")

    postgres_pool = await asyncpg.create_pool(
        dsn=settings.DATABASE_URL, min_size=settings.DB_POOL_MIN_SIZE, max_size=settings.DB_POOL_MAX_SIZE
    )
    redis_pool = redis.ConnectionPool.from_url(
        settings.APPLICATION_REDIS_URL, decode_responses=True
    )
    app.state.postgres_pool = postgres_pool
    app.state.redis_pool = redis_pool
    logger.info("PostgreSQL and Redis connection pools created.")

    if settings.DB_AUTO_CREATE_SCHEMA:
        await AsyncPostgresClient(pool=postgres_pool).create_schema()

    yield

    logger.info("Application shutting down...")
    await postgres_pool.close()
    logger.info("PostgreSQL connection pool closed.")
    await redis_pool.disconnect()
    logger.info("Redis connection pool closed.")


app = FastAPI(
    title="Rumah Mengaji API",
    description="Administration backend for Quran study centers: classes, attendance, payments and donations.",
    version="1.0.0",
    lifespan=lifespan
)
app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Every business rule violation leaves the API as {"error": {"kind", "message"}}."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})

async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": {"kind": "InternalError", "message": "An unexpected server error occurred."}})


app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(Exception, unexpected_error_handler)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(users.router, prefix="/api/v1")
app.include_router(centers.router, prefix="/api/v1")
app.include_router(classes.router, prefix="/api/v1")
app.include_router(finance.router, prefix="/api/v1")
app.include_router(videos.router, prefix="/api/v1")


@app.get("/health", tags=["System"])
def health_check():
    """Liveness probe."""
    return {"status": "ok", "message": "Rumah Mengaji API is running."}
