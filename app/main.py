"""
Travel Back Office
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.database import create_mongo_client
from app.core.errors import PersistenceError, register_error_handlers
from app.services.inquiry_store import InquiryStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    settings = get_settings()

    # Startup
    logger.info("Starting Travel Back Office...")
    app.state.mongo_client = create_mongo_client(settings)

    # Verify MongoDB connection
    try:
        await app.state.mongo_client.admin.command('ping')
        logger.info("MongoDB connected successfully")
    except Exception as e:
        logger.error(f"MongoDB connection failed: {e}")
        raise

    try:
        await InquiryStore(app.state.mongo_client[settings.mongo_db_name]).ensure_indexes()
        logger.info("Inquiry indexes ready")
    except PersistenceError as e:
        # existing duplicate externalIds block the unique index until cleaned up
        logger.error(f"Inquiry index setup failed: {e.message}")

    logger.info(f"Travel Back Office {settings.app_version} is ready ({settings.environment})")

    yield

    # Shutdown
    logger.info("Shutting down Travel Back Office...")
    app.state.mongo_client.close()
    logger.info("Shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title="Travel Back Office",
    description=(
        "Bookings, inquiries and agents for the travel agency back office. "
        "Merges the website's inquiry feed with locally assigned inquiries."
    ),
    version=get_settings().app_version,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
from app.routers import agents, bookings, inquiries
app.include_router(inquiries.router)
app.include_router(bookings.router)
app.include_router(agents.router)


@app.get("/")
async def root():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
    }


@app.get("/health")
async def health_check(request: Request):
    """Detailed health check with dependencies."""
    settings = get_settings()

    # Check MongoDB
    mongo_status = "unknown"
    try:
        await request.app.state.mongo_client.admin.command('ping')
        mongo_status = "connected"
    except Exception as e:
        mongo_status = f"error: {str(e)}"

    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "healthy" if mongo_status == "connected" else "degraded",
        "dependencies": {
            "mongodb": mongo_status,
            "external_inquiries": "configured" if settings.external_inquiries_api_url else "missing",
            "inquiry_webhook": "configured" if settings.inquiry_webhook_url and settings.inquiry_webhook_secret else "disabled",
        }
    }


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=7000,
        reload=settings.debug,
        log_level="info"
    )
