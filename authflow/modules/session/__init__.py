"""
Session Module - Black Box Interface

Purpose: Manage the device's active session lifecycle
Interface: activate(), end(), expire(), restore(), is_signed_in, subscribe()
Hidden: Token persistence, provider switching, event fan-out

Replaceable with any session manager exposing the same signed-in state.
"""

from .session import Confirmation, Decision, SessionEvent, SessionManager, SessionStatus

__all__ = ["SessionManager", "SessionStatus", "SessionEvent", "Decision", "Confirmation"]
