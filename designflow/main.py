"""
DesignFlow - Main Application Entry Point

FastAPI application with the portfolio API and the background sync scheduler.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings, ConfigurationError
from . import __version__
from .database import init_database, close_database, get_database
from .sync.runtime import get_sync_runtime
from .utils.background_tasks import drain_background_tasks
from .web.routes import router as api_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    logger.info(f"Starting {settings.app_name}...")

    if await init_database():
        logger.info("Database initialized")
    else:
        logger.warning("Database failed to initialize")

    runtime = get_sync_runtime()
    app.state.sync_runtime = runtime
    try:
        await runtime.get_engine()
    except ConfigurationError as e:
        logger.warning(f"Sync scheduler waiting for a GitHub token: {e}")
    except Exception as e:
        logger.warning(f"Scheduler failed: {e}")

    logger.info(f"{settings.app_name} started successfully!")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")

    await runtime.shutdown()

    await drain_background_tasks()

    try:
        await close_database()
        logger.info("Database connection closed")
    except Exception as e:
        logger.warning(f"Error closing database: {e}")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Portfolio tracking for design-first projects synced from GitHub",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a client error (400)."""
    return JSONResponse(status_code=400, content={"error": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    db_health = {"status": "not_configured"}
    try:
        db_health = await get_database().health_check()
    except Exception as e:
        db_health = {"status": "error", "error": str(e)}

    runtime = get_sync_runtime()

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "services": {
            "database": db_health.get("status", "unknown"),
            "github": runtime.github is not None,
            "notifications": bool(settings.notification_webhook_url),
        },
        "scheduler": runtime.scheduler.get_job_status() if runtime.scheduler else {"running": False},
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "designflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
