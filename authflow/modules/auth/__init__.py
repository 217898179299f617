"""
Authentication Module - Black Box Interface

Purpose: Verify session tokens presented to the backend
Interface: SessionTokenVerifier.validate_jwt_async(), AuthContext
Hidden: JWKS fetching, signature checks, result caching

This module can be replaced with any token validator implementing
TokenValidator without affecting other modules.
"""

from .interfaces import AuthContext, TokenValidator
from .verifier import SessionTokenVerifier

__all__ = ["AuthContext", "TokenValidator", "SessionTokenVerifier"]
