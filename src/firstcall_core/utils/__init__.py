"""Utility Functions"""

from firstcall_core.utils.resilience import (
    delivery_retry,
    create_delivery_retry,
    is_transient_http_error,
)

__all__ = [
    "delivery_retry",
    "create_delivery_retry",
    "is_transient_http_error",
]
