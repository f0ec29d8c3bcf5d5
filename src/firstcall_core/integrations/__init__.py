"""Adapters for upstream integrations that signal workflow progress."""

from firstcall_core.integrations.signature_webhook import (
    ACKNOWLEDGEMENT,
    SignatureWebhookHandler,
    SignatureWebhookPayload,
    WebhookResult,
    compute_event_hash,
)

__all__ = [
    "ACKNOWLEDGEMENT",
    "SignatureWebhookHandler",
    "SignatureWebhookPayload",
    "WebhookResult",
    "compute_event_hash",
]
