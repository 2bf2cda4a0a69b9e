"""
SaaS starter API: billing webhooks, AI chat proxy and account endpoints.
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .core.config import settings
from .api.v1 import ai, auth, billing, webhooks

API_VERSION = "1.0.0"
RATE_LIMIT_HEADERS = ["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"]

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)

# Quiet chatty third-party loggers
for noisy in ("uvicorn.access", "httpx", "hpack"):
    logging.getLogger(noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def cors_origin_regex() -> Optional[str]:
    """Combine the configured origin patterns (e.g. Vercel previews) into one regex."""
    if not settings.cors_origin_patterns:
        return None
    return "|".join(f"(?:{pattern})" for pattern in settings.cors_origin_patterns)


def integration_status() -> dict:
    return {
        "webhooks": bool(settings.dodo_payments_webhook_key),
        "dodo_payments_api": bool(settings.dodo_payments_api_key),
        "openrouter": bool(settings.openrouter_api_key),
        "local_token_verification": bool(settings.supabase_jwt_secret),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log which integrations are configured; nothing to open or close."""
    logger.info(f"🚀 Starting {settings.project_name} ({settings.environment})")

    for name, enabled in integration_status().items():
        if not enabled:
            logger.warning(f"⚠️  {name} is not configured")

    logger.info(f"🤖 Model tier: {' → '.join(settings.ai_model_priority)}")
    yield
    logger.info("🔴 Shutdown complete")


def create_application() -> FastAPI:
    """Build the app: middleware, the webhook rate limiter and v1 routers."""
    app = FastAPI(
        title=settings.project_name,
        description="Billing webhook ingestion and AI chat proxy for the SaaS starter",
        version=API_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.effective_cors_origins,
        allow_origin_regex=cors_origin_regex(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        expose_headers=RATE_LIMIT_HEADERS,
        max_age=600,
    )
    # Added last so it runs first: scheme and client come from trusted proxies only
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips)

    app.state.limiter = webhooks.limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.include_router(auth.router, prefix=settings.api_v1_str)
    app.include_router(webhooks.router, prefix=settings.api_v1_str)
    app.include_router(ai.router, prefix=settings.api_v1_str)
    app.include_router(billing.router, prefix=f"{settings.api_v1_str}/billing", tags=["billing"])

    logger.info(
        f"🔒 CORS: {len(settings.effective_cors_origins)} origins, "
        f"{len(settings.cors_origin_patterns)} patterns"
    )
    return app


app = create_application()


@app.get("/")
async def root():
    return {
        "message": "SaaS Starter API",
        "version": API_VERSION,
        "status": "running",
        "docs": "/docs" if settings.debug else "disabled",
        "features": ["billing_webhooks", "ai_chat_fallback", "daily_rate_limits"],
    }


@app.get("/health")
async def health_check():
    """Liveness plus which integrations have credentials."""
    return {
        "status": "healthy",
        "service": "saas-starter-api",
        "environment": settings.environment,
        "debug": settings.debug,
        "integrations": integration_status(),
    }
