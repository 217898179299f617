"""
Sync Module - Black Box Interface

Purpose: Reconcile the backend user record once per session activation
Interface: BackendSyncReconciler.start()/stop(), BackendClient.sync_user()
Hidden: Event filtering, at-most-once bookkeeping, failure classification

Sync failures are logged and absorbed; the app stays usable offline.
"""

from .backend_client import (
    BackendClient,
    BackendNotConfiguredError,
    BackendUnavailableError,
    SyncError,
)
from .reconciler import BackendSyncReconciler, SyncState

__all__ = [
    "BackendSyncReconciler",
    "SyncState",
    "BackendClient",
    "SyncError",
    "BackendUnavailableError",
    "BackendNotConfiguredError",
]
