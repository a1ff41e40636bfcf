"""
Housekeeping OS - Main Application Entry Point
Multi-tenant building cleaning management
"""

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
import structlog

from housekeeping.core.config import get_settings
from housekeeping.core.database import init_db
from housekeeping.core.errors import register_exception_handlers
from housekeeping.api import auth, buildings, companies, rooms, tasks, users

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger(__name__)
settings = get_settings()

# StaticFiles refuses to mount a missing directory
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Initializing Housekeeping OS backend", environment=settings.ENVIRONMENT)
    if settings.ENVIRONMENT == "development":
        await init_db()
    else:
        logger.info("Database managed by Alembic migrations")

    yield

    # Shutdown
    logger.info("Shutting down Housekeeping OS backend")


# Create FastAPI application
app = FastAPI(
    title="Housekeeping OS API",
    description="Multi-tenant cleaning management for hotels, apartments and offices",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure middleware stack
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

register_exception_handlers(app)

# Include routers
prefix = settings.API_V1_PREFIX
app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
app.include_router(companies.router, prefix=f"{prefix}/companies", tags=["companies"])
app.include_router(buildings.router, prefix=f"{prefix}/buildings", tags=["buildings"])
app.include_router(rooms.router, prefix=f"{prefix}/rooms", tags=["rooms"])
app.include_router(tasks.router, prefix=f"{prefix}/tasks", tags=["tasks"])
app.include_router(users.router, prefix=f"{prefix}/users", tags=["users"])

app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "housekeeping-os-api"}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Housekeeping OS API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "housekeeping.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
