"""
Credentials Module - Black Box Interface

Purpose: Submit sign-in, sign-up and OAuth attempts
Interface: sign_in(), sign_up(), verify_sign_up(), resend_sign_up_code(),
           cancel_sign_up(), sign_in_with_oauth(), start_password_reset()
Hidden: Provider result mapping, error message policy, sign-up stage tracking
"""

from .credentials import CredentialController, SignUpFlow, SignUpStage, strategy_label

__all__ = ["CredentialController", "SignUpFlow", "SignUpStage", "strategy_label"]
