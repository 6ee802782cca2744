"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, cron, voice, amplify, posts, carousels, linkedin, workspaces
from core.config import settings
from core.logging import setup_logging
import logging
from api.errors import register_exception_handlers
from api.middleware import RequestContextMiddleware
from publishing.scheduler import PublishScheduler

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Suflate API",
    description="Voice-first LinkedIn content creation: transcription, amplification, scheduling and publishing",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)
register_exception_handlers(app)

# Initialize Scheduler
scheduler = PublishScheduler() if settings.SCHEDULER_ENABLED else None


# Include routers
app.include_router(health.router)
app.include_router(cron.router)
app.include_router(voice.router)
app.include_router(amplify.router)
app.include_router(posts.router)
app.include_router(carousels.router)
app.include_router(linkedin.router)
app.include_router(workspaces.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Suflate API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if scheduler is not None:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Suflate API")
    if scheduler is not None:
        scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Suflate API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "voice": "/voice",
            "amplify": "/amplify",
            "posts": "/posts",
            "drafts": "/drafts",
            "scheduled_posts": "/scheduled-posts",
            "carousels": "/carousels",
            "linkedin": "/linkedin",
            "workspaces": "/workspaces",
            "cron": "/cron/scheduled-posts"
        }
    }
