import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crewup.core import config
from crewup.core.logging_config import setup_logging
from crewup.api.routes import billing, billing_webhook, cron, notifications, proximity_alerts, system

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL)
    if config.RUN_MIGRATIONS:
        from crewup.db.migrate import run_migrations
        run_migrations()
    logger.info("CrewUp API started")
    yield


# ============================================
# ✅ FASTAPI APP INIT
# ============================================

app = FastAPI(title="CrewUp API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Authorization", "Content-Type"],
)


# ============================================
# ✅ REGISTER ALL ROUTERS
# ============================================

app.include_router(cron.router)
app.include_router(billing_webhook.router)
app.include_router(billing.router)
app.include_router(proximity_alerts.router)
app.include_router(notifications.router)
app.include_router(system.router)


@app.get("/")
def root():
    return {"status": "CrewUp API running"}
