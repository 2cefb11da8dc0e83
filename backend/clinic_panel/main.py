"""
Clinic Panel - Main FastAPI Application
"""
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

import httpx
import logging

from clinic_panel.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

from clinic_panel.api.v1 import analytics, permissions, resources, visits

# Rate limiter instance (shared with route-level decorators)
limiter = Limiter(key_func=get_remote_address, default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting up Clinic Panel against %s", settings.BACKEND_API_URL)
    yield
    # Shutdown
    logger.info("Shutting down...")


app = FastAPI(
    title=settings.APP_NAME,
    description="Analytics and visit drafting in front of the clinic backend",
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan
)

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(httpx.HTTPStatusError)
async def backend_status_error_handler(request: Request, exc: httpx.HTTPStatusError):
    logger.warning(
        "Backend answered %s for %s %s",
        exc.response.status_code, exc.request.method, exc.request.url,
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": f"Backend error: {exc.response.status_code}"},
    )


@app.exception_handler(httpx.HTTPError)
async def backend_unreachable_handler(request: Request, exc: httpx.HTTPError):
    logger.error("Backend request failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": "Backend unavailable"},
    )


# Trusted Host Middleware — reject requests with spoofed Host headers
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# Include routers
app.include_router(permissions.router, prefix="/api/v1/permissions", tags=["Permissions"])
app.include_router(resources.clients_router, prefix="/api/v1/clients", tags=["Clients"])
app.include_router(resources.personnel_router, prefix="/api/v1/personnel", tags=["Personnel"])
app.include_router(resources.services_router, prefix="/api/v1/services", tags=["Services"])
app.include_router(resources.items_router, prefix="/api/v1/items", tags=["Items"])
app.include_router(resources.payments_router, prefix="/api/v1/payments", tags=["Payments"])
app.include_router(visits.router, prefix="/api/v1/visits", tags=["Visits"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}
