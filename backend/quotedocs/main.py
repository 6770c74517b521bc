import logging
import warnings
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quotedocs.config import settings
from quotedocs.core.errors import register_error_handlers
from quotedocs.core.middleware import AccessLogMiddleware, RequestIDMiddleware
from quotedocs.routers import documents, files, photos, quotes, short_links

# Validate URL signing secret in production
if settings.is_production and settings.url_signing_secret == "change-me-in-production":
    raise RuntimeError(
        "URL_SIGNING_SECRET must be set to a secure random value in production. "
        "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
    )

if not settings.is_production and settings.url_signing_secret == "change-me-in-production":
    warnings.warn("URL_SIGNING_SECRET is using default value. Set it for production.", stacklevel=1)

logger = logging.getLogger("quotedocs")


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create database tables on startup if they don't exist."""
    from quotedocs.dependencies import get_engine
    from quotedocs.models.base import Base
    # Import all models so Base.metadata is populated
    from quotedocs.models import quote, short_link  # noqa: F401

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified/created storage_backend=%s", settings.storage_backend)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Middleware order matters: last added is outermost and runs first
cors_kwargs = {
    "allow_origins": settings.cors_origins_list,
    "allow_credentials": True,
    "allow_methods": ["*"],
    "allow_headers": ["*"],
    "expose_headers": ["x-request-id"],
}
if settings.cors_allow_origin_regex:
    cors_kwargs["allow_origin_regex"] = settings.cors_allow_origin_regex
app.add_middleware(RequestIDMiddleware)
app.add_middleware(AccessLogMiddleware)
app.add_middleware(CORSMiddleware, **cors_kwargs)

# Error handlers
register_error_handlers(app)

# Routers
app.include_router(quotes.router)
app.include_router(documents.router)
app.include_router(photos.router)
app.include_router(short_links.router)
app.include_router(files.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "app": settings.app_name, "version": "0.1.0"}
