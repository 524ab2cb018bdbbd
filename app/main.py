# app/main.py - EdunexIA enrollment API
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
import logging
import traceback
import time

from app.core.config import settings
from app.core.db import get_engine, health_check as database_health_check
from app.models.base import Base
from app.api.routers import auth, courses, students, enrollments, simplified_enrollments, webhooks


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Starting EdunexIA Enrollment API...")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"Database URL: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'local'}")

    # Alembic owns the schema outside development
    if settings.is_development:
        logger.info("Creating database tables...")
        try:
            Base.metadata.create_all(bind=get_engine())
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Error creating tables: {e}")

    yield

    logger.info("Shutting down EdunexIA Enrollment API...")


app = FastAPI(
    title=settings.API_TITLE,
    description="Simplified enrollment checkout, payment webhooks and conversion into student accounts",
    version=settings.API_VERSION,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan
)


# Request logging middleware - BEFORE CORS
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Error processing {request.method} {request.url.path}: {e}")
        raise

    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")
    return response


app.add_middleware(CORSMiddleware, **settings.get_cors_config())


def envelope(message: str, error: str = None) -> dict:
    content = {"success": False, "message": message}
    if error:
        content["error"] = error
    return content


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """HTTP errors in the uniform {success, message, error?} envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in errors
    )
    logger.info(f"Invalid request on {request.method} {request.url.path}: {details}")
    return JSONResponse(
        status_code=400,
        content=envelope("Dados inválidos", details),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions"""
    logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
    logger.error(traceback.format_exc())

    content = envelope("Erro interno do servidor", str(exc))
    if settings.is_development:
        content["traceback"] = traceback.format_exc()
    return JSONResponse(status_code=500, content=content)


@app.get("/health")
async def health():
    database = database_health_check()
    return {
        "status": "healthy" if database.get("status") == "healthy" else "degraded",
        "environment": settings.ENV,
        "version": settings.API_VERSION,
        "database": database,
    }


# Include routers
logger.info("Registering API routers...")
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(courses.router, prefix="/api/courses", tags=["Courses"])
app.include_router(students.router, prefix="/api/students", tags=["Students"])
app.include_router(enrollments.router, prefix="/api/enrollments", tags=["Enrollments"])
app.include_router(simplified_enrollments.router, prefix="/api/simplified-enrollments", tags=["Simplified Enrollments"])
app.include_router(webhooks.router, prefix="/webhook", tags=["Webhooks"])
logger.info("All routers registered successfully")


@app.get("/")
async def root():
    return {
        "message": settings.API_TITLE,
        "version": settings.API_VERSION,
        "docs_url": "/docs" if settings.is_development else "Documentation disabled in production",
    }
