import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricedrop.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "pricedrop.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from pricedrop.routers import analysis, health, search, tracking

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    from pricedrop.services.llm_client import llm_client

    # Startup: secrets check
    if not llm_client.is_configured:
        logger.error("No LLM API key set (GEMINI_API_KEY / OPENAI_API_KEY / ANTHROPIC_API_KEY), searches will use fallback offers")
    elif not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set, using fallback LLM providers")
    if not settings.cj_affiliate_key:
        logger.warning("CJ_AFFILIATE_KEY not set, affiliate features may not work")

    # Create tracking tables if missing (dev/MVP convenience)
    if settings.create_tables_on_startup:
        try:
            from pricedrop.database import Base, engine
            from pricedrop import models  # noqa: F401  (registers tables)

            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            logger.warning(f"Table creation skipped (tracking will fail): {e}")

    logger.info("40% fairness rule active; partners: Hotels.com, Address Hotels, MyTrip")

    yield

    # Shutdown
    await llm_client.aclose()


app = FastAPI(
    title="PriceDrop",
    description="Hotel booking price-drop finder with a fair affiliate policy",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(health.router, tags=["health"])
app.include_router(analysis.router, prefix="/api", tags=["analysis"])
app.include_router(search.router, prefix="/api", tags=["search"])
app.include_router(tracking.router, prefix="/api", tags=["tracking"])
