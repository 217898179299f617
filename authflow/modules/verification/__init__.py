"""
Verification Module - Black Box Interface

Purpose: Drive email verification and password reset code sequences
Interface: request_code(), resend_code(), verify_code(),
           complete_with_new_credential(), cancel()
Hidden: Stage bookkeeping, provider call mapping, masking of code requests
"""

from .verification import (
    CODE_SENT_MESSAGE,
    MIN_PASSWORD_LENGTH,
    FlowStage,
    Purpose,
    VerificationAttempt,
    VerificationFlow,
    validate_new_password,
)

__all__ = [
    "VerificationFlow",
    "VerificationAttempt",
    "FlowStage",
    "Purpose",
    "validate_new_password",
    "CODE_SENT_MESSAGE",
    "MIN_PASSWORD_LENGTH",
]
