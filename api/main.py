"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, stations, admin
from core.config import settings
from core.logging import setup_logging
import logging
from api.middleware import RequestContextMiddleware
from ingestion.scheduler import TidalScheduler

# Configure logging
setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Tidal Ingestion API",
    description="UK tidal stations and predicted tidal events",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Initialize Scheduler
scheduler = TidalScheduler()


# Include routers
app.include_router(health.router)
app.include_router(stations.router)
app.include_router(admin.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Tidal Ingestion API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SCHEDULER_ENABLED:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Tidal Ingestion API")
    scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Tidal Ingestion API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "stations": "/stations",
            "geojson": "/stations/geojson",
            "admin": "/admin"
        }
    }
