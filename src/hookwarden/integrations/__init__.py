"""Collaborators the orchestrator delegates to: message grammar, policy gate, notifier."""

from hookwarden.integrations.base import (
    GateResult,
    GateVerdict,
    MessageValidation,
    MessageValidator,
    PolicyGate,
    WorkflowNotifier,
)
from hookwarden.integrations.gatekeeper import WAIVER_ENV_VAR, RuleBasedGate
from hookwarden.integrations.message_validator import RegexMessageValidator, subject_line
from hookwarden.integrations.notifier import (
    LoggingNotifier,
    NullNotifier,
    WebhookNotifier,
    create_notifier,
)

__all__ = [
    "GateResult",
    "GateVerdict",
    "LoggingNotifier",
    "MessageValidation",
    "MessageValidator",
    "NullNotifier",
    "PolicyGate",
    "RegexMessageValidator",
    "RuleBasedGate",
    "WAIVER_ENV_VAR",
    "WebhookNotifier",
    "WorkflowNotifier",
    "create_notifier",
    "subject_line",
]
