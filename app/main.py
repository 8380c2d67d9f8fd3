"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes and error handlers
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from app.db.indexes import create_indexes
from app.api import (
    admin,
    auth,
    blog,
    bookings,
    geocode,
    mess_subscriptions,
    messes,
    newsletter,
    notifications,
    otp,
    payments,
    properties,
    stats,
    uploads,
    users,
)
from app.services.ai_service import ai_service
from app.services.email_service import email_service
from app.services.razorpay_service import razorpay_service
from app.services.sms_service import sms_service
from app.services.storage_service import storage_service

APP_VERSION = "1.0.0"

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("🚀 Starting SecondHome API...")

    try:
        logger.info("Validating configuration...")
        validate_settings()
        logger.info("✅ Configuration validated")

        logger.info("Connecting to MongoDB...")
        await connect_to_mongo()
        logger.info("✅ MongoDB connected")

        logger.info("Creating database indexes...")
        await create_indexes()
        logger.info("✅ Database indexes created")

        is_healthy = await check_database_health()
        if not is_healthy:
            logger.warning("⚠️ Database health check failed during startup")
        else:
            logger.info("✅ Database health check passed")

        logger.info("🎉 SecondHome API started successfully!")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Debug Mode: {settings.DEBUG}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    # Shutdown
    logger.info("🛑 Shutting down SecondHome API...")
    await close_mongo_connection()
    logger.info("👋 SecondHome API shut down successfully")


app = FastAPI(
    title="SecondHome API",
    description="Student housing marketplace: PG, hostel, flat and mess listings with bookings and payments",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    if process_time > settings.SLOW_REQUEST_SECONDS:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


add_exception_handlers(app)


# Register API routes
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["Auth"])
app.include_router(otp.router, prefix=settings.API_PREFIX, tags=["OTP"])
app.include_router(users.router, prefix=settings.API_PREFIX, tags=["Users"])
app.include_router(properties.router, prefix=settings.API_PREFIX, tags=["Properties"])
app.include_router(messes.router, prefix=settings.API_PREFIX, tags=["Messes"])
app.include_router(admin.router, prefix=settings.API_PREFIX, tags=["Admin"])
app.include_router(bookings.router, prefix=settings.API_PREFIX, tags=["Bookings"])
app.include_router(payments.router, prefix=settings.API_PREFIX, tags=["Payments"])
app.include_router(notifications.router, prefix=settings.API_PREFIX, tags=["Notifications"])
app.include_router(mess_subscriptions.router, prefix=settings.API_PREFIX, tags=["Mess Subscriptions"])
app.include_router(geocode.router, prefix=settings.API_PREFIX, tags=["Geocoding"])
app.include_router(uploads.router, prefix=settings.API_PREFIX, tags=["Uploads"])
app.include_router(blog.router, prefix=settings.API_PREFIX, tags=["Blog"])
app.include_router(newsletter.router, prefix=settings.API_PREFIX, tags=["Newsletter"])
app.include_router(stats.router, prefix=settings.API_PREFIX, tags=["Stats"])


# Root endpoint
@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "SecondHome API",
        "version": APP_VERSION,
        "description": "Student housing marketplace backend",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """
    Checks database connectivity and reports which integrations are configured.
    """
    health_status = {
        "status": "healthy",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION,
        "checks": {}
    }

    db_healthy = await check_database_health()
    health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"
    if not db_healthy:
        health_status["status"] = "unhealthy"

    integrations = {
        "email": email_service.is_configured(),
        "sms": sms_service.is_configured(),
        "payments": razorpay_service.enabled,
        "ai": ai_service.is_configured(),
        "uploads": storage_service.is_configured(),
    }
    for name, configured in integrations.items():
        health_status["checks"][name] = "configured" if configured else "not_configured"

    status_code = 200 if health_status["status"] == "healthy" else 503
    return JSONResponse(content=health_status, status_code=status_code)


# Readiness probe (for Kubernetes/orchestration)
@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    if await check_database_health():
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "reason": "database_unavailable"}
    )


# Liveness probe (for Kubernetes/orchestration)
@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
