"""Error recovery: bounded automatic recovery, remediation and bypass auditing."""

from hookwarden.recovery.actions import RecoveryAction, RecoveryContext
from hookwarden.recovery.audit import BypassAuditLog
from hookwarden.recovery.handler import ErrorHandler, HookErrorOutcome
from hookwarden.recovery.registry import RecoveryRegistry, create_default_registry

__all__ = [
    "BypassAuditLog",
    "ErrorHandler",
    "HookErrorOutcome",
    "RecoveryAction",
    "RecoveryContext",
    "RecoveryRegistry",
    "create_default_registry",
]
