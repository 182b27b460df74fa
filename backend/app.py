"""
IceAlert Backend Application

FastAPI application serving device data to the dashboard.
"""

import os
import sys
from contextlib import asynccontextmanager

import log_config  # noqa: F401
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Import API router
import api
from api import router as api_router

from core.icealert.exceptions import IceAlertError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan manager for startup/shutdown."""
    # Startup
    logger.info("IceAlert starting")

    # Log registered routes
    routes = [
        f"{getattr(route, 'path', '?')} - {getattr(route, 'methods', ['MOUNT'])}"
        for route in app.routes
    ]
    logger.info(f"Registered routes: {routes}")

    if api.cloud_client is None:
        logger.warning("⚠️ No Arduino IoT Cloud credentials configured")

    yield

    # Shutdown
    logger.info("IceAlert shutting down")
    if api.cloud_client is not None:
        api.cloud_client.session.close()


# Create FastAPI application
app = FastAPI(
    title="IceAlert API",
    description="Freezer and cold-room monitoring for Arduino IoT Cloud sensors",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(IceAlertError)
async def icealert_exception_handler(request: Request, exc: IceAlertError):
    """Turn IceAlert errors into {"error": ...} responses with their status."""
    logger.error(f"{request.method} {request.url.path} failed ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Handle all unhandled exceptions gracefully."""
    import traceback

    tb_str = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    logger.error(f"Unhandled exception: {exc}")
    logger.error(f"Request path: {request.url.path}")
    logger.error(f"Stack trace:\n{tb_str}")

    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) or "Internal server error",
            "type": type(exc).__name__,
        },
    )


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Include API router
app.include_router(api_router)


# For development
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
