"""
JSON logging formatter for checkoutbridge with proper prefixes.

Provides consistent JSON-formatted logging across the bridge with
distinct prefixes for front-end/bridge records and native-side records.
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
import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional

from ..utils.helpers import redact

BRIDGE_PREFIX = "checkoutbridge::bridge::log"
NATIVE_PREFIX = "checkoutbridge::native::log"


class BridgeJSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for the checkout bridge.

    Formats all log entries as JSON with appropriate prefixes:
    - checkoutbridge::bridge::log for front-end and channel components
    - checkoutbridge::native::log for native controllers and capabilities

    Extra fields are passed through :func:`redact`, so a payload attached with
    ``extra=`` never leaks secrets or tokens.
    """

    def __init__(self, prefix: Optional[str] = None, include_extra: bool = True):
        """
        Initialize the JSON formatter.

        Args:
            prefix: Log prefix to use. If None, defaults to checkoutbridge::bridge::log
            include_extra: Whether to include extra fields from log records
        """
        super().__init__()
        self.prefix = prefix or BRIDGE_PREFIX
        self.include_extra = include_extra

        # Standard LogRecord attributes, never treated as extra data
        self.excluded_fields = set(
            logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
        ) | {"message", "asctime", "taskName"}

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON with proper prefix.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted log entry as string
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "prefix": self.prefix,
        }

        if record.threadName:
            log_data["thread"] = record.threadName

        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName

        if self.include_extra:
            extra_data = self._extract_extra_fields(record)
            if extra_data:
                log_data.update(redact(extra_data))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, separators=(",", ":"), default=str)

    def _extract_extra_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Extract extra fields from log record."""
        extra = {}

        for key, value in record.__dict__.items():
            if key not in self.excluded_fields and not key.startswith("_"):
                if value is not None and value != "":
                    extra[key] = value

        return extra


class NativeLogFormatter(BridgeJSONFormatter):
    """JSON formatter for records emitted by the native side (controllers, capabilities)."""

    def __init__(self, include_extra: bool = True):
        super().__init__(prefix=NATIVE_PREFIX, include_extra=include_extra)


def create_json_handler(
    level: int = logging.INFO, formatter_type: str = "bridge", stream=None
) -> logging.Handler:
    """
    Create a logging handler with JSON formatting.

    Args:
        level: Logging level
        formatter_type: Type of formatter ("bridge" or "native")
        stream: Output stream (defaults to sys.stdout)

    Returns:
        Configured logging handler
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)

    if formatter_type == "native":
        handler.setFormatter(NativeLogFormatter())
    else:
        handler.setFormatter(BridgeJSONFormatter())

    return handler
