"""
FastAPI application for social login.

This module wires dependencies and configures the application.
The login flow is in social_login/core, provider adapters in
social_login/providers, storage in social_login/infrastructure.
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

# Configure logging FIRST, before other local imports
from social_login.logging_config import setup_global_logging

setup_global_logging()

# Now import other modules (they will use the configured logging)
from fastapi import FastAPI, Request  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402

from social_login.core.exceptions import LoginError  # noqa: E402
from social_login.infrastructure.firestore import close_firestore_client  # noqa: E402
from social_login.oauth import router as oauth_router  # noqa: E402
from social_login.oauth.config import get_oauth_config  # noqa: E402
from social_login.providers.registry import create_provider_registry  # noqa: E402

logger = logging.getLogger(__name__)


# ============================================================================
# Application Lifecycle
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Loads and validates the configuration, logs which providers pass
    the capability check at startup and releases the Firestore client
    on shutdown. Invalid configuration aborts startup.
    """
    try:
        config = get_oauth_config()
    except ValueError as e:
        logger.critical(f"Invalid OAuth configuration: {e}")
        raise
    registry = create_provider_registry(config)
    logger.info(
        "Application starting up...",
        extra={
            "providers": sorted(registry),
            "state_strategy": config.state_strategy,
            "allowed_redirect_hosts": config.allowed_redirect_hosts,
        },
    )
    if not config.base_url:
        logger.warning("BASE_URL is not set; callback URLs will be relative")
    yield
    logger.info("Shutting down application...")
    try:
        close_firestore_client()
    except Exception as e:
        logger.warning(f"Error closing Firestore client during shutdown: {e}")


app = FastAPI(
    title="Social Login",
    description="OAuth2/PKCE social login for Huawei, QQ and Twitter",
    version="1.0.0",
    lifespan=lifespan,
)


# ============================================================================
# Centralized Exception Handlers
# ============================================================================


@app.exception_handler(LoginError)
async def login_error_handler(request: Request, exc: LoginError):
    """
    Handle login flow errors.

    Returns {"error": ...} with the error's status code. Provider codes
    are included so clients can tell e.g. an expired code from a
    revoked app.
    """
    logger.warning(
        f"Login failed: {exc.message}",
        extra={
            "kind": exc.kind.value,
            "status_code": exc.status_code,
            "provider_code": exc.provider_code,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "social-login",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run."""
    return {"status": "healthy"}


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(oauth_router.router)


# ============================================================================
# Main Entry Point
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port)
