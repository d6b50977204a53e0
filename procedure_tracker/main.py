import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from procedure_tracker.core.config import settings
from procedure_tracker.core.database import engine, test_connection, init_db

# Import all models to ensure SQLAlchemy relationships are properly configured
import procedure_tracker.models  # noqa: F401

from procedure_tracker.api.v1 import health, auth, procedures, profiles
from procedure_tracker.api.v1.auth import require_api_key

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting Procedure Tracker API...")

    try:
        if await test_connection():
            logger.info("Database connection successful")
            await init_db()
        else:
            logger.warning("Database connection failed, skipping table initialization")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    logger.info("Procedure Tracker API started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Procedure Tracker API...")
    try:
        await engine.dispose()
    except Exception as e:
        logger.error(f"Engine disposal failed: {e}")
    logger.info("Procedure Tracker API shutdown complete")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    configure_logging()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Track organizational procedures and who has acknowledged them",
        version=settings.APP_VERSION,
        docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
        redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    api_key = [Depends(require_api_key)]
    app.include_router(health.router, tags=["health"])
    app.include_router(auth.router, prefix=f"{settings.API_V1_STR}/auth", tags=["auth"], dependencies=api_key)
    app.include_router(procedures.router, prefix=f"{settings.API_V1_STR}/procedures", tags=["procedures"], dependencies=api_key)
    app.include_router(profiles.router, prefix=f"{settings.API_V1_STR}/profiles", tags=["profiles"], dependencies=api_key)

    return app


# Create the FastAPI application instance
app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "procedure_tracker.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.ENVIRONMENT == "development"
    )
