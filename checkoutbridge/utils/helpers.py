#!/usr/bin/env python3
"""
Helper utilities for common functionality.

Provides call id generation, identifier masking and log sanitizing.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at:

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import json
import re
import time
import uuid
from typing import Any, Mapping

# Keys whose values never reach a log line
SENSITIVE_KEYS = {
    "paymentsessionsecret",
    "secret",
    "password",
    "token",
    "sessiondata",
    "cvv",
    "cvc",
    "number",
    "cardnumber",
}

IDENTIFIER_KEYS = {"paymentsessionid", "publickey"}


def generate_call_id() -> str:
    """Generate a unique id for one channel call."""
    timestamp = int(time.time() * 1000)  # Milliseconds
    unique_id = str(uuid.uuid4()).replace("-", "")[:12]
    return f"{timestamp}-{unique_id}"


def is_valid_call_id(call_id: str) -> bool:
    """
    Validate call id format.

    Args:
        call_id: Call id to validate

    Returns:
        True if valid format
    """
    if not call_id or not isinstance(call_id, str):
        return False

    parts = call_id.split("-")
    if len(parts) != 2:
        return False

    try:
        int(parts[0])
        return parts[1].isalnum() and len(parts[1]) == 12
    except ValueError:
        return False


def get_current_timestamp_ms() -> int:
    """Get current timestamp in milliseconds."""
    return int(time.time() * 1000)


def mask_identifier(value: str, visible: int = 4) -> str:
    """Keep the prefix (``ps_``, ``pk_sbox_``) and the last few characters of an identifier."""
    if not value:
        return ""
    if len(value) <= visible * 2:
        return "*" * len(value)
    match = re.match(r"^([a-z]+(?:_[a-z]+)*_)", value)
    prefix = match.group(1) if match else ""
    return f"{prefix}...{value[-visible:]}"


def redact(data: Any) -> Any:
    """
    Return a copy of ``data`` with sensitive values replaced by ``[REDACTED]``.

    Session identifiers are masked with :func:`mask_identifier` rather than removed.
    """
    if isinstance(data, Mapping):
        return {key: _redact_entry(key, value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [redact(item) for item in data]
    return data


def _redact_entry(key: Any, value: Any) -> Any:
    if not isinstance(key, str):
        return redact(value)
    if key.lower() in SENSITIVE_KEYS:
        return "[REDACTED]"
    if key.lower() in IDENTIFIER_KEYS and isinstance(value, str):
        return mask_identifier(value)
    return redact(value)


def sanitize_for_logging(data: Any, max_length: int = 500) -> str:
    """
    Sanitize data for safe logging.

    Args:
        data: Data to sanitize
        max_length: Maximum length of output string

    Returns:
        Sanitized string safe for logging
    """
    if isinstance(data, str):
        result = data
    else:
        try:
            result = json.dumps(redact(data), default=str, separators=(",", ":"))
        except (TypeError, ValueError):
            result = repr(type(data))

    # Truncate if too long
    if len(result) > max_length:
        result = result[: max_length - 3] + "..."

    return result


def format_duration_ms(duration_ms: int) -> str:
    """
    Format duration in milliseconds to human-readable string.

    Args:
        duration_ms: Duration in milliseconds

    Returns:
        Formatted duration string
    """
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    elif duration_ms < 60000:
        return f"{duration_ms / 1000:.1f}s"
    else:
        minutes = duration_ms // 60000
        seconds = (duration_ms % 60000) // 1000
        return f"{minutes}m {seconds}s"
