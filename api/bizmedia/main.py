"""Main FastAPI application."""

from pathlib import Path

import redis
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session

from bizmedia.api.v1 import api_router
from bizmedia.config import settings
from bizmedia.database import get_db

app = FastAPI(
    title="Business Media Service",
    description="Logo and gallery image management for business listings",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router, prefix="/v1")

# Serve locally stored images under their public URLs
if settings.media_mount_path:
    app.mount(
        settings.media_mount_path,
        StaticFiles(directory=Path(settings.storage_base_path), check_dir=False),
        name="media",
    )


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Health check endpoint."""
    # Check database
    db_status = "disconnected"
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)}"

    # Check Redis
    redis_status = "disconnected"
    try:
        r = redis.from_url(settings.redis_url, socket_connect_timeout=1)
        r.ping()
        redis_status = "connected"
    except Exception as e:
        redis_status = f"error: {str(e)}"

    overall_status = "ok" if db_status == "connected" and redis_status == "connected" else "degraded"

    return {
        "status": overall_status,
        "db": db_status,
        "redis": redis_status,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bizmedia.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
