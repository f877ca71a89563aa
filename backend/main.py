import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.api import api_router

# Import all models to register them with SQLModel metadata
import app.models  # noqa: F401

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# --- App Initialization ---
app = FastAPI(
    title="Group Roster API",
    description="Group sets, groups and memberships for course units",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router)


# --- Event Handlers ---
@app.on_event("startup")
async def startup_event():
    logger.info("Starting up Group Roster API...")

    from app.core.database import get_engine

    # Create database tables if database is available
    if settings.AUTO_CREATE_TABLES:
        engine = get_engine()
        if engine:
            try:
                logger.info("Auto-creating database tables...")
                SQLModel.metadata.create_all(engine)
                logger.info("Database tables created successfully!")
            except Exception as e:
                logger.error(f"Failed to create database tables: {e}")
                logger.error("Database functionality may not work properly.")
        else:
            logger.warning("Database engine not available. Skipping table creation.")
            logger.warning("Please check database connection and restart the service.")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Group Roster API...")


# --- API Endpoints ---
@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "Group Roster API", "version": "1.0.0"}


@app.get("/health")
async def health_check():
    """Health check endpoint with database status."""
    from app.core.database import get_engine
    from sqlalchemy import text

    status = {"status": "healthy", "database": "unknown"}

    engine = get_engine()
    if engine:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            status["database"] = "connected"
        except Exception as e:
            status["database"] = f"error: {str(e)}"
            status["status"] = "degraded"
    else:
        status["database"] = "not_available"
        status["status"] = "degraded"

    return status
