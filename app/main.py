"""
Main FastAPI application.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import api_router
from app.core.config import settings
from app.core.exceptions import AccessDeniedError, LearnStackError
from app.db.base import engine
from app.models import Base

# Configure logging BEFORE creating the app
logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s:\t%(name)s\t%(message)s',
    handlers=[
        logging.StreamHandler()  # Output to console
    ]
)
logging.getLogger("uvicorn").setLevel(logging.INFO)
logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Topic progress, unlocks, daily problems and leaderboards for LearnStack",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS - Always apply middleware
cors_origins = settings.BACKEND_CORS_ORIGINS if settings.BACKEND_CORS_ORIGINS != "*" else ["*"]
logger.info(f"CORS enabled for origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Global exception handlers
@app.exception_handler(LearnStackError)
async def learnstack_exception_handler(request: Request, exc: LearnStackError):
    """
    Turn domain errors into ``{"detail", "code"}`` responses.

    Args:
        request: Request object
        exc: Domain exception

    Returns:
        JSON response with the error's status code
    """
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.detail}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.code}: {exc.detail}")
    content = {"detail": exc.detail, "code": exc.code}
    if isinstance(exc, AccessDeniedError) and exc.blocker:
        content["blocker"] = exc.blocker
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handle validation errors.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON response with error details
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors()), "code": "validation_error"},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Handle all unhandled exceptions.

    Args:
        request: Request object
        exc: Exception

    Returns:
        JSON response with error message
    """
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "internal_error"},
    )


# Health check endpoint
@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint - Health check.

    Returns:
        Status message
    """
    return {
        "message": "LearnStack Progress Service API",
        "status": "healthy",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {"status": "healthy"}


# Include API routers
app.include_router(api_router, prefix=settings.API_V1_PREFIX)
