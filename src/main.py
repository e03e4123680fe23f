"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api import auth, couples, notifications
from src.config import get_settings
from src.database import init_db
from src.services.vapid import VapidIdentity

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    init_db()

    # Malformed VAPID keys abort startup
    if settings.push_configured:
        app.state.vapid_identity = VapidIdentity.from_settings(settings)
        logger.info("Web push notifications initialized")
    else:
        app.state.vapid_identity = None
        logger.info("VAPID credentials not configured, push disabled")
    yield


app = FastAPI(
    title="Our Journey API",
    description="Couple journal backend with Web Push notifications between partners",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:8080",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Register routers
app.include_router(auth.router)
app.include_router(couples.router)
app.include_router(notifications.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": settings.environment,
        "push_enabled": settings.push_configured,
    }
