from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError
from sqlalchemy.exc import DisconnectionError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import logging
import os

from .api.v1 import admin, appointments, auth, doctors, notifications, patients
from .core.config import settings
from .core.database import engine, init_db
from .core.exceptions import PortalError, StoreUnavailable

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Healthcare appointment portal for patients, doctors and admins",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Middleware setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Only add TrustedHostMiddleware in production, not in testing
if not os.getenv("TESTING"):
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost", "testserver"]
    )

# Custom middleware for request logging and timing
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.4f}s"
    )

    return response

def _error_body(kind: str, message: str, **extra) -> dict:
    return {"error": kind, "message": message, **extra}

# Exception handlers
@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.kind, exc.detail),
        headers=exc.headers,
    )

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=_error_body(
            "ValidationError",
            "Invalid request payload",
            details=jsonable_encoder(exc.errors()),
        ),
    )

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kinds = {404: "NotFound", 405: "MethodNotAllowed"}
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(kinds.get(exc.status_code, "HTTPError"), str(exc.detail), path=str(request.url.path)),
        headers=getattr(exc, "headers", None),
    )

@app.exception_handler(OperationalError)
@app.exception_handler(DisconnectionError)
@app.exception_handler(RedisConnectionError)
@app.exception_handler(RedisTimeoutError)
async def store_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Store unavailable during {request.method} {request.url.path}: {exc.__class__.__name__}")
    error = StoreUnavailable()
    return JSONResponse(
        status_code=error.status_code,
        content=_error_body(error.kind, error.detail),
        headers={"Retry-After": "5"},
    )

@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    logger.error(f"Internal server error: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content=_error_body("InternalServerError", "An unexpected error occurred"),
    )

API_PREFIX = "/api/v1"
ROUTERS = (auth, admin, doctors, patients, appointments, notifications)

for module in ROUTERS:
    app.include_router(module.router, prefix=API_PREFIX)

# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Initialize application on startup."""
    logger.info(f"Starting {settings.APP_NAME} on {engine.dialect.name}")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info("Application startup complete")

@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on application shutdown."""
    logger.info("Shutting down Care Portal...")

# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.VERSION
    }

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Welcome to the Care Portal API",
        "version": settings.VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health"
    }

# API Info endpoint
@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {
            module.router.prefix.strip("/"): f"{API_PREFIX}{module.router.prefix}"
            for module in ROUTERS
        },
        "docs": "/docs",
        "openapi": app.openapi_url,
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "care_portal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info"
    )
