"""
Authflow - Authentication Flow and Session Synchronization

Client-side orchestration of sign-up, sign-in, password reset and OAuth
single sign-on around an external identity provider, plus the backend
that keeps user records in sync with the provider's sessions.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- identity: Identity provider capability interface and result variants
- storage: Secure token persistence
- flow: Shared busy/cancellation/timeout machinery for flows
- verification: Email verification and password reset state machine
- credentials: Sign-in, sign-up and OAuth submission
- session: Session activation and sign-out
- sync: Backend user reconciliation after sign-in
- auth: Server-side session token verification
- middleware: Auth context middleware and access guard
- users: Backend user record storage
- api: Backend data models
"""

__version__ = "1.0.0"
