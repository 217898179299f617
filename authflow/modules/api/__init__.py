"""
API Module - Black Box Interface

Purpose: Data contracts of the backend API
Interface: Pydantic models shared by the backend and the client-side sync
Hidden: Validation rules
"""

from .models import Identity, MessageResponse, SyncUserResponse, UserRecord

__all__ = ["Identity", "UserRecord", "SyncUserResponse", "MessageResponse"]
