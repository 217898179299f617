#!/usr/bin/env python3
"""
Authflow - Backend Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Initializes modules
3. Serves the user sync API behind the access guard

All business logic is in the modules, following black box principles.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import redis.asyncio as redis
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from authflow import __version__
from authflow.config.provider import ConfigProvider, EnvConfigProvider
from authflow.logging_config import configure_logging, get_logging_config

# Import modules through their black box interfaces
from authflow.modules.api import Identity, MessageResponse, SyncUserResponse, UserRecord
from authflow.modules.auth import AuthContext, SessionTokenVerifier, TokenValidator
from authflow.modules.config import get_config
from authflow.modules.middleware import install_access_guard, require_auth
from authflow.modules.users import UserModule

# Get configuration
config = get_config()

configure_logging(config.get("log_level"))
logger = logging.getLogger(__name__)


async def get_redis_client() -> redis.Redis:
    """Create Redis client from configuration."""
    return await redis.from_url(
        config.redis_url,
        password=config.get("redis_password"),
        encoding="utf-8",
        decode_responses=True,
    )


def identity_from_auth(auth: AuthContext) -> Identity:
    """
    Build the identity projection from verified session claims.

    Raises:
        ValueError: If the claims carry no email address
    """
    email = auth.claims.get("email") or auth.claims.get("email_address")
    if not email:
        raise ValueError("Session token does not carry an email address")

    return Identity(
        user_id=auth.user_id,
        email_address=email,
        first_name=auth.claims.get("first_name"),
        last_name=auth.claims.get("last_name"),
    )


def get_user_module(request: Request) -> UserModule:
    """Dependency returning the initialized user module."""
    user_module = getattr(request.app.state, "user_module", None)
    if not user_module:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return user_module


def create_app(
    config_provider: Optional[ConfigProvider] = None,
    redis_client: Optional[redis.Redis] = None,
    token_validator: Optional[TokenValidator] = None,
) -> FastAPI:
    """
    Build the backend application.

    Args:
        config_provider: Configuration source (environment by default)
        redis_client: Pre-built Redis client; created at startup when omitted
        token_validator: Session token validator; built from config when omitted
    """
    config_provider = config_provider or EnvConfigProvider()
    api_config = config_provider.get_api_config()

    verification_enabled = True
    if token_validator is None:
        verification_config = config_provider.get_token_verification_config()
        verification_enabled = verification_config.is_configured
        token_validator = SessionTokenVerifier(verification_config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - initialize and cleanup resources.
        """
        logger.info("Starting Authflow API...")

        owns_client = redis_client is None
        client = redis_client or await get_redis_client()
        app.state.redis_client = client
        app.state.user_module = UserModule(client)

        logger.info("Authflow API started successfully")

        yield

        logger.info("Shutting down Authflow API...")
        app.state.user_module = None
        if owns_client:
            await client.close()
        logger.info("Authflow API shutdown complete")

    app = FastAPI(
        title="Authflow API",
        description="Authflow - user sync backend",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.redis_client = None
    app.state.user_module = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_access_guard(app, token_validator)

    # User Endpoints

    @app.post(
        "/api/users/sync",
        response_model=SyncUserResponse,
        responses={401: {"model": MessageResponse}},
    )
    async def sync_user(
        auth: AuthContext = Depends(require_auth),
        user_module: UserModule = Depends(get_user_module),
    ):
        """
        Create or refresh the caller's backend user record.

        Idempotent: repeated calls for the same identity return the same record.

        Returns:
            200: {"user": {...}, "created": bool}
            401: No verified session
        """
        identity = identity_from_auth(auth)
        record, created = await user_module.upsert_user(identity)

        if created:
            logger.info(f"Created user record for {identity.user_id}")
        else:
            logger.debug(f"User record for {identity.user_id} already in sync")

        return SyncUserResponse(user=record, created=created)

    @app.get(
        "/api/users/me",
        response_model=UserRecord,
        responses={401: {"model": MessageResponse}},
    )
    async def get_current_user(
        auth: AuthContext = Depends(require_auth),
        user_module: UserModule = Depends(get_user_module),
    ):
        """
        Get the caller's backend user record.

        Returns:
            200: User record
            401: No verified session
            404: User has not been synced yet
        """
        record = await user_module.get_user(auth.user_id)
        if not record:
            raise HTTPException(status_code=404, detail="User not found")
        return record

    # Health/Monitoring Endpoints

    @app.get("/healthz")
    async def healthz():
        """
        Minimal health check endpoint for readiness/liveness probes.

        Returns:
            200: Service is running
        """
        return {"status": "ok"}

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint with dependency status.

        Returns:
            200: Service healthy
            503: Service unhealthy
        """
        checks = {
            "user_store": "ready" if app.state.user_module else "not initialized",
            "token_verification": "configured" if verification_enabled else "disabled",
        }

        if app.state.redis_client is None:
            checks["redis"] = "disconnected"
        else:
            try:
                await app.state.redis_client.ping()
                checks["redis"] = "connected"
            except (redis.RedisError, OSError) as e:
                logger.error(f"Health check Redis ping failed: {e}")
                checks["redis"] = "disconnected"

        # Disabled verification is reported but does not fail the probe
        healthy = checks["redis"] == "connected" and app.state.user_module is not None
        body = {"status": "healthy" if healthy else "unhealthy", "version": __version__, **checks}
        return JSONResponse(status_code=200 if healthy else 503, content=body)

    # Error handlers

    @app.exception_handler(redis.ConnectionError)
    async def redis_error_handler(request, exc):
        """Handle Redis connection errors."""
        logger.error(f"Redis connection error: {exc}")
        return JSONResponse(status_code=503, content={"error": "Database connection failed"})

    @app.exception_handler(ValueError)
    async def validation_error_handler(request, exc):
        """Handle validation errors."""
        logger.error(f"Validation error: {exc}")
        return JSONResponse(status_code=400, content={"error": str(exc)})

    return app


app = create_app()


def main():
    uvicorn.run(
        "authflow.main:app",
        host=config.get("host"),
        port=config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=config.get("debug"),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    main()
