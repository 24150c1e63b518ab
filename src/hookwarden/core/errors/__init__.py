"""Error classification and exception types.

Re-exports all public symbols.
"""

from hookwarden.core.errors.codes import (
    RECOVERABLE_CATEGORIES,
    BlockingType,
    ErrorCategory,
    HookPhase,
    Severity,
)
from hookwarden.core.errors.exceptions import (
    CommandError,
    CommandNotFoundError,
    CommandTimeoutError,
    ConfigurationError,
    HookwardenError,
    LockTimeoutError,
    StateStoreError,
)
from hookwarden.core.errors.models import (
    BypassMethod,
    BypassOptions,
    BypassRecord,
    ErrorClassification,
    RecoveryResult,
)
from hookwarden.core.errors.classifier import ErrorClassifier, describe_error

__all__ = [
    "RECOVERABLE_CATEGORIES",
    "BlockingType",
    "ErrorCategory",
    "HookPhase",
    "Severity",
    "CommandError",
    "CommandNotFoundError",
    "CommandTimeoutError",
    "ConfigurationError",
    "HookwardenError",
    "LockTimeoutError",
    "StateStoreError",
    "BypassMethod",
    "BypassOptions",
    "BypassRecord",
    "ErrorClassification",
    "RecoveryResult",
    "ErrorClassifier",
    "describe_error",
]
