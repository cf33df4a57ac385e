import logging
import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Import all models to ensure they're registered with SQLAlchemy Base
from . import models  # noqa: F401
from .database import Base, engine
from .domain.appointments.router import doctor_router as doctor_appointments_router
from .domain.appointments.router import patient_router as patient_appointments_router
from .domain.checkins.router import doctor_router as doctor_checkins_router
from .domain.checkins.router import patient_router as patient_checkins_router
from .domain.clinics.router import router as clinics_router
from .domain.courses.router import doctor_router as doctor_courses_router
from .domain.courses.router import patient_router as patient_courses_router
from .domain.habits.router import router as habits_router
from .domain.patients.router import doctor_router as doctor_patients_router
from .domain.patients.router import patient_router as patient_profile_router
from .domain.prescriptions.router import doctor_router as doctor_prescriptions_router
from .domain.prescriptions.router import patient_router as patient_prescriptions_router
from .domain.protocols.router import router as protocols_router
from .domain.referrals.router import doctor_router as doctor_referrals_router
from .domain.referrals.router import patient_router as patient_referrals_router
from .domain.referrals.router import public_router as public_referrals_router
from .domain.symptom_reports.router import doctor_router as doctor_symptom_reports_router
from .domain.symptom_reports.router import patient_router as patient_symptom_reports_router
from .routes.admin import router as admin_router
from .routes.ai import router as ai_router
from .routes.auth import router as auth_router
from .routes.google_calendar import router as google_calendar_router
from .routes.subscription import router as subscription_router
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    try:
        from .rate_limiter import get_redis_client

        get_redis_client()
        logger.info("Redis connection established")
    except Exception as e:
        logger.warning(f"Redis connection failed - rate limited endpoints will answer 503 until it recovers: {e}")

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="CareHub API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(f"Authentication failed for {request.url.path}: Missing or invalid Authorization header")
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."},
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise
    duration_ms = (time.time() - start_time) * 1000
    logger.info(f"{request.method} {request.url.path} - {response.status_code} ({duration_ms:.0f}ms)")
    return response


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")


# CORS Configuration
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Routes
app.include_router(auth_router)
app.include_router(clinics_router)
app.include_router(subscription_router)
app.include_router(admin_router)
app.include_router(protocols_router)
app.include_router(doctor_checkins_router)
app.include_router(doctor_prescriptions_router)
app.include_router(patient_prescriptions_router)
app.include_router(doctor_patients_router)
app.include_router(patient_profile_router)
app.include_router(patient_checkins_router)
app.include_router(habits_router)
app.include_router(doctor_courses_router)
app.include_router(patient_courses_router)
app.include_router(patient_referrals_router)
app.include_router(public_referrals_router)
app.include_router(doctor_referrals_router)
app.include_router(doctor_symptom_reports_router)
app.include_router(patient_symptom_reports_router)
app.include_router(doctor_appointments_router)
app.include_router(patient_appointments_router)
app.include_router(google_calendar_router)
app.include_router(ai_router)


@app.get("/")
def root():
    return {"message": "CareHub API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}


@app.get("/health/redis")
async def redis_health_check():
    """Check Redis connectivity for monitoring"""
    try:
        from .rate_limiter import get_redis_client

        redis_client = get_redis_client()

        start_time = time.time()
        redis_client.ping()
        response_time = (time.time() - start_time) * 1000

        return {"status": "healthy", "redis": {"connected": True, "response_time_ms": round(response_time, 2)}}
    except Exception as e:
        return {"status": "unhealthy", "redis": {"connected": False, "error": str(e)}}
