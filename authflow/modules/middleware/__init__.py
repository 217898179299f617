"""
Authentication Middleware Module - Black Box Interface

Purpose: Attach a verified auth context to requests and guard protected routes
Interface: SessionTokenMiddleware, require_auth dependency, install_access_guard()
Hidden: Header extraction, token verification, error formatting

The middleware annotates; it never rejects. Rejection happens only in the
guard, which fails closed.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..auth import AuthContext, TokenValidator

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized - you must be logged in"
GUARD_ERROR_MESSAGE = "Unauthorized"


class UnauthorizedError(Exception):
    """Raised by the access guard to terminate a request with 401."""

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE):
        super().__init__(message)
        self.message = message


class SessionTokenMiddleware:
    """
    Upstream credential verification for FastAPI applications.

    Reads the bearer session token, validates it and stores an AuthContext
    on request.state.auth. Requests without a valid token carry an empty
    context and are left for the guard to decide.
    """

    def __init__(
        self,
        token_validator: TokenValidator,
        header_names: Optional[list] = None,
        log_attempts: bool = True
    ):
        """
        Initialize session token middleware.

        Args:
            token_validator: Validator returning (is_valid, claims)
            header_names: Header names to check for the bearer token
            log_attempts: Whether to log verification failures
        """
        self.token_validator = token_validator
        self.header_names = header_names or ["authorization", "Authorization"]
        self.log_attempts = log_attempts

    def extract_token(self, request: Request) -> Optional[str]:
        """Extract bearer token from request headers."""
        for header_name in self.header_names:
            value = request.headers.get(header_name)
            if value and value.startswith("Bearer "):
                return value[7:].strip() or None
        return None

    async def resolve(self, request: Request) -> AuthContext:
        token = self.extract_token(request)
        if not token:
            return AuthContext()

        try:
            is_valid, claims = await self.token_validator.validate_jwt_async(token)
        except Exception as e:
            logger.error(f"Error during session token verification: {e}")
            return AuthContext()

        if not is_valid or not claims:
            if self.log_attempts:
                logger.warning(f"Invalid session token on {request.url.path}")
            return AuthContext()

        return AuthContext.from_claims(claims)

    async def __call__(self, request: Request, call_next):
        """Process the request through session token verification."""
        request.state.auth = await self.resolve(request)
        return await call_next(request)


async def require_auth(request: Request) -> AuthContext:
    """
    Access guard dependency for protected routes.

    Raises:
        UnauthorizedError: No resolved user id, or the context could not be read
    """
    try:
        auth = getattr(request.state, "auth", None)
        user_id = auth.user_id if auth is not None else None
    except Exception as e:
        logger.error(f"Error inspecting auth context: {e}")
        raise UnauthorizedError(GUARD_ERROR_MESSAGE)

    if not user_id:
        raise UnauthorizedError(UNAUTHORIZED_MESSAGE)

    return auth


async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    """Render guard rejections as 401 with a JSON message body."""
    logger.info(f"Rejected unauthenticated {request.method} {request.url.path}")
    return JSONResponse(status_code=401, content={"message": exc.message})


def install_access_guard(app: FastAPI, token_validator: TokenValidator) -> SessionTokenMiddleware:
    """
    Wire session token verification and guard error handling into an app.

    Args:
        app: FastAPI application
        token_validator: Validator used by the middleware

    Returns:
        The installed middleware instance
    """
    middleware = SessionTokenMiddleware(token_validator)

    @app.middleware("http")
    async def session_token_middleware(request: Request, call_next):
        return await middleware(request, call_next)

    app.add_exception_handler(UnauthorizedError, unauthorized_handler)
    return middleware


__all__ = [
    "UNAUTHORIZED_MESSAGE",
    "GUARD_ERROR_MESSAGE",
    "UnauthorizedError",
    "SessionTokenMiddleware",
    "require_auth",
    "unauthorized_handler",
    "install_access_guard",
]
