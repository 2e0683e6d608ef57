import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings

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
            _LOG_DIR / "tripcircle.log",
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

from app.routers import group_trips, social
from app.services.recommendation.service import recommendation_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: launch background scheduler
    scheduler = None
    if settings.scheduler_enabled:
        try:
            from apscheduler.schedulers.asyncio import AsyncIOScheduler
            from apscheduler.triggers.cron import CronTrigger

            scheduler = AsyncIOScheduler()

            async def _run_travel_scores():
                from app.database import async_session_factory
                from app.services.social_graph_service import social_graph_service
                async with async_session_factory() as db:
                    count = await social_graph_service.recalculate_all_scores(db)
                    logger.info(f"Travel scores recomputed for {count} profiles")

            scheduler.add_job(
                _run_travel_scores,
                CronTrigger(hour=3, minute=0),
                id="travel_scores",
                name="Nightly travel score recomputation",
            )

            scheduler.start()
            logger.info("Background scheduler started (travel scores nightly at 03:00)")
        except Exception as e:
            logger.warning(f"Failed to start scheduler: {e}")
            scheduler = None

    yield

    # Shutdown
    await recommendation_service.close()
    logger.info("Redis cache connections closed")
    if scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")


app = FastAPI(
    title="TripCircle",
    description="Social travel recommendations and group trip coordination",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(group_trips.router, prefix="/api/social/group-trips", tags=["group-trips"])
app.include_router(social.router, prefix="/api/social", tags=["social"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "tripcircle"}
