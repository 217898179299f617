"""
Users Module - Black Box Interface

Purpose: Keep backend user records in step with the identity provider
Interface: upsert_user(), get_user()
Hidden: Redis key layout, change detection

Replaceable with any user store (database, document store, in-memory).
"""

from .users import UserModule

__all__ = ["UserModule"]
