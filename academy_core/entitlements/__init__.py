"""Video entitlements: who may watch which video."""

from .resolver import AccessContext, AccessDecision, LockReason, resolve
from .service import EntitlementService


__all__ = [
    "AccessContext",
    "AccessDecision",
    "EntitlementService",
    "LockReason",
    "resolve",
]
