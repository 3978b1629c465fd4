"""
Utility helpers for checkoutbridge.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

from .helpers import (
    format_duration_ms,
    generate_call_id,
    get_current_timestamp_ms,
    is_valid_call_id,
    mask_identifier,
    redact,
    sanitize_for_logging,
)

__all__ = [
    "format_duration_ms",
    "generate_call_id",
    "get_current_timestamp_ms",
    "is_valid_call_id",
    "mask_identifier",
    "redact",
    "sanitize_for_logging",
]
