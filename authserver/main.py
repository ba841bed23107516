"""
Auth Server - FastAPI Application
Main entry point with all routes configured.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from authserver.config import settings
from authserver.core.exceptions import AppError
from authserver.database import init_db, async_session_maker
from authserver.schemas.common import ErrorResponse, HealthResponse
from authserver.seeders import seed_all

# Import all API routers
from authserver.api import auth, account, admin, organizations, quota, plans, upgrade_requests

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    settings.validate_signing_key()
    await init_db()
    async with async_session_maker() as session:
        await seed_all(session)
    logger.info("Auth server started")
    yield
    # Shutdown


app = FastAPI(
    title="Auth Server API",
    description="Multi-tenant identity, organization, plan and quota service",
    version=VERSION,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, **exc.extra})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Error envelope documented on every API route
ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404)}

# Include all routers
for router in (
    auth.router,
    auth.me_router,
    account.router,
    admin.router,
    organizations.router,
    quota.router,
    plans.router,
    upgrade_requests.router,
):
    app.include_router(router, responses=ERROR_RESPONSES)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "message": "Auth Server API is running",
        "version": VERSION,
        "docs": "/docs"
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Detailed health check."""
    return HealthResponse(version=VERSION)
