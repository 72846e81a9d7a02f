import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import text

from src.cache.connection import NAMESPACE, close_redis, get_redis
from src.core.config import get_settings
from src.core.logging_config import setup_logging
from src.db.session import db_session, dispose_engine, init_db
from src.routers import persona as persona_router

setup_logging(get_settings().log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(f"Persona derivation engine starting (backend={settings.derivation_backend})")
    if settings.derivation_backend != "memory":
        # Questionnaire rows live in SQL for both the sql and redis backends
        await init_db()
    yield
    await close_redis()
    await dispose_engine()
    logger.info("Persona derivation engine stopped")


app = FastAPI(title="Persona Derivation Engine - Main API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---
app.include_router(persona_router.router, prefix="/api/v1", tags=["persona"])


@app.get("/health", tags=["Health Check"])
async def health():
    """
    Liveness check; does not touch any backing store.
    """
    return {"status": "ok", "message": "Persona Derivation Engine is running."}


@app.get("/health/db", tags=["Health Check"])
async def health_check_db(db: AsyncSession = Depends(db_session)):
    """
    Performs a database connection health check.
    """
    try:
        result = (await db.execute(text("SELECT 1"))).scalar_one()
        return {"status": "ok", "db_check": result}
    except Exception as e:
        logger.error(f"DB health check failed: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail=f"Database connection error: {e}")


@app.get("/health/cache", tags=["Health Check"])
async def health_check_cache():
    """
    Performs a cache connection health check by setting and getting a key.
    """
    client = await get_redis()
    if client is None:
        raise HTTPException(status_code=503, detail="Cache error: Redis unavailable")

    key = f"{NAMESPACE}health:ping"
    try:
        await client.set(key, "pong", ex=60)
        retrieved_value = await client.get(key)
    except Exception as e:
        logger.error(f"Cache health check failed with exception: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail=f"Cache connection error: {e}")

    if retrieved_value != "pong":
        logger.error(f"Cache health check failed: retrieved '{retrieved_value}'")
        raise HTTPException(status_code=503, detail="Cache error: Value mismatch")
    return {"status": "ok", "cache_check": "set_get_successful", "value": retrieved_value}
