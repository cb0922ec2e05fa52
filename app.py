import logging
import os
import uuid

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.distance import router as distance_router
from config import (
    get_hold_cleanup_token,
    require_cors_origins,
    require_hold_cleanup_interval,
    require_log_level,
)
from core.exceptions import DispatchConsoleError
from core.http.session import cleanup_session
from distance.client import DispatchApiClient
from distance.scheduler import HoldCleanupScheduler

# Basic logging configuration
logging.basicConfig(
    level=require_log_level(),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

hold_cleanup_scheduler: HoldCleanupScheduler | None = None

# Initialize FastAPI App
app = FastAPI(title="Dispatch Distance Service")

# CORS Middleware Configuration
origins = require_cors_origins()
if origins:
    logger.info("CORS configured with specific origins: %s", origins)
else:
    # Development fallback - allow localhost and common dev ports
    origins = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8080",
    ]
    logger.warning(
        "CORS_ALLOWED_ORIGINS not set. Using development defaults: %s",
        origins,
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(distance_router)


@app.get("/health")
async def health() -> dict[str, object]:
    return {
        "status": "ok",
        "hold_cleanup_scheduler": bool(
            hold_cleanup_scheduler and hold_cleanup_scheduler.running,
        ),
    }


# --- Application Lifecycle Events ---
@app.on_event("startup")
async def startup_event():
    """Start the hold cleanup scheduler when an interval is configured."""
    global hold_cleanup_scheduler

    interval = require_hold_cleanup_interval()
    if interval > 0:
        client = DispatchApiClient(get_hold_cleanup_token())
        hold_cleanup_scheduler = HoldCleanupScheduler(client, interval)
        hold_cleanup_scheduler.start()
    else:
        logger.info("Hold cleanup scheduler disabled")
    logger.info("Application startup completed successfully.")


@app.on_event("shutdown")
async def shutdown_event():
    """Clean up resources when shutting down."""
    global hold_cleanup_scheduler

    if hold_cleanup_scheduler is not None:
        await hold_cleanup_scheduler.stop()
        hold_cleanup_scheduler = None
    await cleanup_session()
    logger.info("Application shutdown completed successfully")


# --- Global Exception Handlers ---
@app.exception_handler(DispatchConsoleError)
async def dispatch_error_handler(request: Request, exc: DispatchConsoleError):
    logger.warning("Request %s %s failed: %s", request.method, request.url, exc.message)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": exc.message},
    )


@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    """Handle 404 Not Found errors."""
    logger.warning("404 Not Found: %s. Detail: %s", request.url, exc.detail)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "Endpoint not found", "detail": exc.detail},
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    """Handle 500 Internal Server Error errors."""
    error_id = str(uuid.uuid4())
    logger.error(
        "Internal Server Error (ID: %s): Request %s %s failed. Exception: %s",
        error_id,
        request.method,
        request.url,
        str(exc),
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "error_id": error_id,
            "detail": str(exc),
        },
    )


# --- Main Execution Block ---
if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=port,
        log_level="info",
    )
