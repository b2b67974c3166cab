"""Structlog processors for trace correlation and secret redaction."""

from collections.abc import Mapping
from typing import Any

from src.infrastructure.observability.tracing import (
    get_current_span_id,
    get_current_trace_id,
)

REDACTED = "[redacted]"

# Event keys whose values must never reach a log sink
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "confirm_password",
        "new_password",
        "confirm_new_password",
        "confirmpassword",
        "newpassword",
        "confirmnewpassword",
        "hashed_password",
        "otp",
        "code",
        "token",
        "access_token",
        "jwt_secret_key",
        "smtp_password",
    }
)


def add_trace_context(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Add trace_id and span_id of the active span to a log event."""
    trace_id = get_current_trace_id()
    if trace_id is not None:
        event_dict["trace_id"] = trace_id
        event_dict["span_id"] = get_current_span_id()
    return event_dict


def redact_sensitive_fields(
    logger: Any,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Replace credential values in a log event, including one level of nesting.

    Args:
        logger: The logger instance (unused, required by structlog API).
        method_name: The log method name (unused, required by structlog API).
        event_dict: The log event dictionary to scrub.

    Returns:
        The event dictionary with sensitive values replaced.
    """
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, Mapping):
            event_dict[key] = {
                k: REDACTED if str(k).lower() in SENSITIVE_KEYS else v
                for k, v in value.items()
            }
    return event_dict
