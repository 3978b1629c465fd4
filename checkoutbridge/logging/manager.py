"""
Centralized logging manager for checkoutbridge.

Provides unified logging setup with JSON formatting and separate handling
for bridge-side and native-side records.
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

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

from .json_formatter import BridgeJSONFormatter, NativeLogFormatter

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

BRIDGE_LOGGERS = [
    "checkoutbridge.client",
    "checkoutbridge.session",
    "checkoutbridge.integration",
    "checkoutbridge.notifications",
    "checkoutbridge.logging",
]

NATIVE_LOGGER = "checkoutbridge.native"


class BridgeLoggingManager:
    """
    Central manager for the bridge logging system.

    Bridge records go through the root logger. Native records get their own
    handlers under ``checkoutbridge.native`` with the native prefix, and do
    not propagate, so they are never printed twice.
    """

    def __init__(self, config=None):
        """
        Initialize the logging manager.

        Args:
            config: Bridge configuration containing logging settings
        """
        self.config = config
        self.configured = False
        self._handlers: List[logging.Handler] = []
        self._previous_root_level: Optional[int] = None

        self.log_level = logging.INFO
        self.native_log_level = logging.INFO
        self.format_type = "json"
        self.output_file = None
        self.max_file_size_mb = 100
        self.backup_count = 5

        if config and hasattr(config, "logging"):
            logging_config = config.logging
            self.log_level = getattr(logging, logging_config.level)
            self.native_log_level = getattr(logging, logging_config.native_log_level)
            self.format_type = logging_config.format
            self.output_file = logging_config.output_file
            self.max_file_size_mb = logging_config.max_file_size_mb
            self.backup_count = logging_config.backup_count

    def setup_logging(self, stream=None) -> None:
        """Setup the bridge logging system."""
        if self.configured:
            return

        stream = stream or sys.stdout
        self._setup_bridge_logging(stream)
        self._setup_native_logging(stream)

        for logger_name in BRIDGE_LOGGERS:
            logger = logging.getLogger(logger_name)
            logger.setLevel(self.log_level)
            logger.propagate = True

        self.configured = True

        logging.getLogger("checkoutbridge.logging").info(
            "checkoutbridge logging system initialized",
            extra={
                "log_level": logging.getLevelName(self.log_level),
                "native_log_level": logging.getLevelName(self.native_log_level),
                "format_type": self.format_type,
                "output_file": self.output_file,
            },
        )

    def _make_formatter(self, native: bool) -> logging.Formatter:
        if self.format_type == "json":
            return NativeLogFormatter() if native else BridgeJSONFormatter()
        return logging.Formatter(TEXT_FORMAT)

    def _make_file_handler(self, path: Path, native: bool) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            filename=str(path),
            maxBytes=self.max_file_size_mb * 1024 * 1024,
            backupCount=self.backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(self._make_formatter(native))
        return handler

    def _setup_bridge_logging(self, stream) -> None:
        root_logger = logging.getLogger()
        self._previous_root_level = root_logger.level
        root_logger.setLevel(min(self.log_level, root_logger.level or logging.WARNING))

        console_handler = logging.StreamHandler(stream)
        console_handler.setFormatter(self._make_formatter(native=False))
        console_handler.setLevel(self.log_level)
        root_logger.addHandler(console_handler)
        self._handlers.append(console_handler)

        if self.output_file:
            file_handler = self._make_file_handler(Path(self.output_file), native=False)
            file_handler.setLevel(self.log_level)
            root_logger.addHandler(file_handler)
            self._handlers.append(file_handler)

    def _setup_native_logging(self, stream) -> None:
        native_logger = logging.getLogger(NATIVE_LOGGER)
        native_logger.setLevel(self.native_log_level)
        native_logger.handlers.clear()

        console_handler = logging.StreamHandler(stream)
        console_handler.setFormatter(self._make_formatter(native=True))
        console_handler.setLevel(self.native_log_level)
        native_logger.addHandler(console_handler)

        if self.output_file:
            file_handler = self._make_file_handler(
                Path(self.output_file).with_suffix(".native.log"), native=True
            )
            file_handler.setLevel(self.native_log_level)
            native_logger.addHandler(file_handler)

        native_logger.propagate = False

    def get_logger(self, name: str) -> logging.Logger:
        """Get a configured logger for the given name."""
        if not self.configured:
            self.setup_logging()

        return logging.getLogger(name)

    def shutdown(self) -> None:
        """Detach and close every handler this manager installed."""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()
        if self._previous_root_level is not None:
            root_logger.setLevel(self._previous_root_level)
            self._previous_root_level = None

        native_logger = logging.getLogger(NATIVE_LOGGER)
        for handler in list(native_logger.handlers):
            native_logger.removeHandler(handler)
            handler.close()
        native_logger.propagate = True

        self.configured = False


# Global logging manager instance
_logging_manager: Optional[BridgeLoggingManager] = None


def get_logging_manager(config=None) -> BridgeLoggingManager:
    """Get or create the global logging manager."""
    global _logging_manager

    if _logging_manager is None:
        _logging_manager = BridgeLoggingManager(config)

    return _logging_manager


def setup_bridge_logging(config=None, stream=None) -> None:
    """Setup the checkoutbridge logging system."""
    manager = get_logging_manager(config)
    manager.setup_logging(stream)


def get_bridge_logger(name: str) -> logging.Logger:
    """Get a checkoutbridge logger with proper configuration."""
    return get_logging_manager().get_logger(f"checkoutbridge.{name}")


def shutdown_bridge_logging() -> None:
    """Shutdown the checkoutbridge logging system."""
    global _logging_manager

    if _logging_manager:
        _logging_manager.shutdown()
        _logging_manager = None
