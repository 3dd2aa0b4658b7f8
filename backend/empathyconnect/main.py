"""
Main application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from sqlalchemy import text

from empathyconnect.dependencies import close_gateway_client, db_dependency
from empathyconnect.api.routes import alerts, chat
from empathyconnect.core.config import CORS_ORIGINS
from empathyconnect.core.redis import close_redis_connection, health_check_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release shared upstream and Redis connections on shutdown."""
    logger.info("EmpathyConnect API starting")
    yield
    await close_gateway_client()
    await close_redis_connection()
    logger.info("EmpathyConnect API stopped")


# Initialize FastAPI application
app = FastAPI(title="EmpathyConnect API", lifespan=lifespan)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat.router)
app.include_router(alerts.router)


@app.get("/")
def read_root():
    """Return a welcome message at the root endpoint."""
    return {"message": "Welcome to EmpathyConnect API"}


@app.get("/api")
@app.get("/api/")
def read_api_root():
    """Return a message with available API endpoints."""
    return {
        "message": "EmpathyConnect API - Available endpoints: /api/chat (event stream), /api/crisis-alerts"
    }


def check_database(db: Session) -> dict:
    try:
        db.execute(text("SELECT 1"))
        return {"status": "connected", "error": None}
    except Exception as e:
        return {"status": "disconnected", "error": str(e)}


@app.get("/api/health")
async def health_check(db: Session = Depends(db_dependency)):
    """Health check endpoint to verify the API and its backing services."""
    redis_status = await health_check_redis()

    return {
        "status": "healthy",
        "services": {
            "api": "online",
            "database": check_database(db),
            "redis": redis_status,
        },
    }
