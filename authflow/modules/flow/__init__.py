"""
Flow Module - Black Box Interface

Purpose: Common execution rules for authentication flows
Interface: FlowController, FlowResult, ErrorKind, exclusive
Hidden: Busy flag bookkeeping, call timeouts, late-response suppression
"""

from .base import BUSY_MESSAGE, ErrorKind, FlowController, FlowResult, exclusive

__all__ = ["FlowController", "FlowResult", "ErrorKind", "exclusive", "BUSY_MESSAGE"]
