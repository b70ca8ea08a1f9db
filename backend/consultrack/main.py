"""
FastAPI application entry point.
Assembles the app with routers, middleware, lifespan handlers, and exception handlers.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from consultrack.api.v1.router import api_router
from consultrack.core.config import settings
from consultrack.core.exceptions import setup_exception_handlers
from consultrack.core.logging import setup_logging
from consultrack.core.rate_limit import limiter
from consultrack.db.init_db import create_tables
from consultrack.db.session import init_db, close_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    # Startup
    setup_logging()
    await init_db()
    if settings.ENVIRONMENT == "development":
        # Local bootstrap; deployed schemas are migrated
        await create_tables()
    
    yield
    
    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Consulting time tracking: eligible catalogs and manager engagements",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    # Rate limiting middleware
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    
    # Include API router
    app.include_router(api_router, prefix=settings.API_V1_PREFIX)
    
    # Global exception handlers
    setup_exception_handlers(app)
    
    return app


app = create_app()
