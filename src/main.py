import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.responses import Response

from src.config.cors_config import CORSConfigurationError
from src.config.logging_config import configure_logging
from src.config.settings import settings
from src.database.client import close_db, init_db
from src.features.auth.router import router as auth_router
from src.features.automation.router import router as automation_router
from src.features.content.router import router as content_router
from src.shared.audit.audit_middleware import RequestContextMiddleware
from src.shared.middlewares.error_handlers import register_exception_handlers
from src.shared.middlewares.security_headers import security_headers_middleware
from src.shared.rate_limit.limiter import limiter, rate_limit_exceeded_handler

configure_logging(settings.log_level, settings.log_format)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    await init_db()
    logger.info(f"{settings.app_name} started (environment={settings.environment})")
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

# Rate limiting: API_RATE_LIMIT by default, tighter limits on the auth endpoints
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

register_exception_handlers(app)

# Configure CORS middleware with environment-aware settings
try:
    cors_config = settings.get_cors_configuration()
    cors_config.log_configuration()

    middleware_config = cors_config.get_middleware_config()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=middleware_config["allow_origins"],
        allow_credentials=middleware_config["allow_credentials"],
        allow_methods=middleware_config["allow_methods"],
        allow_headers=middleware_config["allow_headers"],
        max_age=middleware_config["max_age"],
    )
except CORSConfigurationError as exc:
    logger.error(f"CORS configuration error: {exc}")
    raise

# Outermost: every response (errors and 429s included) carries the security headers and request id
app.middleware("http")(security_headers_middleware)
app.add_middleware(RequestContextMiddleware)

# Router Registration

api_routers: list[APIRouter] = [
    auth_router,
    content_router,
    automation_router,
]

for router in api_routers:
    app.include_router(router, prefix=settings.api_prefix)


@app.get("/")
@limiter.exempt
async def root():
    return {"message": settings.app_name, "status": "running"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/metrics", include_in_schema=False)
@limiter.exempt
async def metrics():
    """Prometheus exposition of the event counters."""
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
