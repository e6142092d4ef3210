# dailypath/main.py
import logging
import psutil # For system metrics in health check
import time   # For uptime calculation
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict, Any
from datetime import datetime, timedelta, timezone
from fastapi import status

from dailypath.core.config import settings, PROJECT_NAME, API_PREFIX, VERSION
from dailypath.db.database import connect_to_mongo, close_mongo_connection, check_database_health
from dailypath.db.crud import ensure_indexes
from dailypath.api.exception_handlers import register_exception_handlers

from dailypath.api.v1.endpoints.auth import router as auth_router
from dailypath.api.v1.endpoints.users import router as users_router
from dailypath.api.v1.endpoints.admin_users import router as admin_users_router
from dailypath.api.v1.endpoints.admin_departments import router as admin_departments_router
from dailypath.api.v1.endpoints.departments import router as departments_router
from dailypath.api.v1.endpoints.tasks import router as tasks_router
from dailypath.api.v1.endpoints.plan_slots import router as plan_slots_router
from dailypath.api.v1.endpoints.time_logs import router as time_logs_router
from dailypath.api.v1.endpoints.reports import router as reports_router

logger = logging.getLogger(__name__)

# Track application start time for uptime calculation
APP_START_TIME = time.time()

app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    description="Time tracking and shift planning API: tasks, plan slots, time logs, users and departments",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# --- Event Handlers for DB Connection ---
@app.on_event("startup")
async def startup_event():
    """Connect to MongoDB and ensure indexes on application startup."""
    logger.info("Executing startup event: Connecting to database...")
    connected = await connect_to_mongo()
    if not connected:
        logger.critical("FATAL: Database connection failed on startup. Application might not function correctly.")
        return
    logger.info("Startup event: Database connection successful.")
    await ensure_indexes()

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Executing shutdown event: Disconnecting from database...")
    await close_mongo_connection()

# --- Health Endpoints ---
@app.get("/health", status_code=200, tags=["Health Check"])
async def health_check() -> Dict[str, Any]:
    """
    Health check that reports application metrics (uptime, memory) and
    database connectivity and collections.
    """
    db_health = await check_database_health()

    process = psutil.Process()
    memory_info = process.memory_info()
    uptime = str(timedelta(seconds=int(time.time() - APP_START_TIME)))

    health_info = {
        "status": "OK",
        "application": {
            "name": PROJECT_NAME,
            "version": VERSION,
            "status": "OK",
            "uptime": uptime,
            "memory_usage": {
                "rss_bytes": memory_info.rss,
                "vms_bytes": memory_info.vms,
                "percent": f"{process.memory_percent():.2f}%"
            }
        },
        "database": db_health,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

    if db_health.get("status") in ("ERROR", "WARNING"):
        health_info["status"] = db_health["status"]

    return health_info

# --- Liveness and Readiness Probes ---
@app.get("/healthz", tags=["Probes"], status_code=status.HTTP_200_OK)
async def liveness_probe():
    """Liveness probe: the process is running and responsive."""
    return {"status": "live"}

@app.get("/readyz", tags=["Probes"])
async def readiness_probe(response: Response):
    """Readiness probe: the database answers. Missing collections (WARNING) still count as ready."""
    db_health = await check_database_health()
    if db_health.get("status") != "ERROR":
        response.status_code = status.HTTP_200_OK
        return {"status": "ready", "database": db_health}
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "not_ready", "database": db_health}

# --- Include API Routers ---
app.include_router(auth_router, prefix=API_PREFIX)
app.include_router(users_router, prefix=API_PREFIX)
app.include_router(admin_users_router, prefix=API_PREFIX)
app.include_router(admin_departments_router, prefix=API_PREFIX)
app.include_router(departments_router, prefix=API_PREFIX)
app.include_router(tasks_router, prefix=API_PREFIX)
app.include_router(plan_slots_router, prefix=API_PREFIX)
app.include_router(time_logs_router, prefix=API_PREFIX)
app.include_router(reports_router, prefix=API_PREFIX)
