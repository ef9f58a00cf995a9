import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from study_overlay.database import engine, Base
from study_overlay.middlewares import LoggingMiddleware, RateLimitMiddleware, register_exception_handlers
from study_overlay.routes import auth, study_rooms, users
from study_overlay.config import settings
from study_overlay.redis_client import redis_health_check, close_redis

# Make sure every table is registered on Base.metadata
from study_overlay.models import room_participant, study_room, user  # noqa: F401


def setup_logging():
    """Configure root logging from settings."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database connected and tables ready")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise

    if await redis_health_check():
        logger.info("Redis connected")
    else:
        logger.error("Redis ping failed")
        raise ConnectionError("Redis ping failed")

    yield

    await close_redis()
    await engine.dispose()
    logger.info("Redis and database connections closed")

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    version=settings.version,
    description="Study room presence API for stream overlays",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RateLimitMiddleware)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(study_rooms.router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.version,
        "status": "running"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.version
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "study_overlay.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
