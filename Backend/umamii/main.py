import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
import sentry_sdk
from fastapi import FastAPI
from sqlalchemy import text

from umamii.config import settings
from umamii.database import engine

logger = logging.getLogger(__name__)

# Initialize Sentry
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=0.2 if settings.ENVIRONMENT == "production" else 1.0,
        profiles_sample_rate=0.1,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: verify DB connection and connect Redis
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))

    app.state.redis = redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    await app.state.redis.ping()
    logger.info("umamii API started (%s)", settings.ENVIRONMENT)

    yield

    # Shutdown
    await app.state.redis.close()
    await engine.dispose()


app = FastAPI(
    title="umamii API",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.redis = None

# Middleware
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from umamii.middleware.error_handler import register_error_handlers  # noqa: E402

register_error_handlers(app)

# Routers
from umamii.routers.auth import router as auth_router  # noqa: E402
from umamii.routers.friends import router as friends_router  # noqa: E402
from umamii.routers.recommendations import router as recommendations_router  # noqa: E402
from umamii.routers.users import router as users_router  # noqa: E402

app.include_router(auth_router)
app.include_router(friends_router)
app.include_router(recommendations_router)
app.include_router(users_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
