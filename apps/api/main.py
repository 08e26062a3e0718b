"""
SocialSync - FastAPI Backend
Main application entry point for social account connections.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings, validate_security_settings
from database import engine, Base
import models  # noqa: F401
from routers import auth, connections, health
from services.connectors import get_provider_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting SocialSync API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    registry = get_provider_registry()
    configured = [platform for platform in registry.platforms if registry.has_credentials(platform)]
    missing = [platform for platform in registry.platforms if platform not in configured]
    print(f"🔑 OAuth providers configured: {', '.join(configured) or 'none'}")
    if missing:
        print(f"⚠️ OAuth providers missing credentials: {', '.join(missing)}")
    yield
    # Shutdown
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="SocialSync API",
    description="Connect social accounts and cross-post to them",
    version="0.1.0",
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

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(connections.router, prefix="/connections", tags=["Connections"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "SocialSync API",
        "version": "0.1.0",
        "status": "running"
    }
