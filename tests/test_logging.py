#!/usr/bin/env python3
"""
Unit tests for the logging system.
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

import io
import json
import logging
import sys

from checkoutbridge.config.bridge_config import BridgeConfig, LoggingConfig
from checkoutbridge.logging import (
    BRIDGE_PREFIX,
    NATIVE_PREFIX,
    BridgeJSONFormatter,
    BridgeLoggingManager,
    NativeLogFormatter,
    create_json_handler,
)


def make_record(msg="hello", **extra):
    record = logging.LogRecord(
        name="checkoutbridge.client",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def parse_lines(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestFormatters:
    """Test the JSON formatters."""

    def test_bridge_formatter(self):
        data = json.loads(BridgeJSONFormatter().format(make_record("call sent")))

        assert data["message"] == "call sent"
        assert data["level"] == "INFO"
        assert data["logger"] == "checkoutbridge.client"
        assert data["prefix"] == BRIDGE_PREFIX

    def test_native_formatter_prefix(self):
        data = json.loads(NativeLogFormatter().format(make_record()))

        assert data["prefix"] == NATIVE_PREFIX

    def test_extra_fields_are_redacted(self):
        record = make_record(
            session={"paymentSessionSecret": "pss_secret", "environment": "sandbox"},
            token="tok_123",
            method="tokenizeCard",
        )
        data = json.loads(BridgeJSONFormatter().format(record))

        assert data["token"] == "[REDACTED]"
        assert data["session"]["paymentSessionSecret"] == "[REDACTED]"
        assert data["session"]["environment"] == "sandbox"
        assert data["method"] == "tokenizeCard"

    def test_extra_fields_can_be_excluded(self):
        data = json.loads(BridgeJSONFormatter(include_extra=False).format(make_record(method="x")))

        assert "method" not in data

    def test_exception_included(self):
        try:
            raise ValueError("broken")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        data = json.loads(BridgeJSONFormatter().format(record))

        assert "ValueError: broken" in data["exception"]

    def test_create_json_handler(self):
        stream = io.StringIO()
        handler = create_json_handler(logging.DEBUG, "native", stream)

        assert handler.level == logging.DEBUG
        assert isinstance(handler.formatter, NativeLogFormatter)


class TestBridgeLoggingManager:
    """Test BridgeLoggingManager."""

    def test_native_records_get_their_own_prefix(self):
        stream = io.StringIO()
        manager = BridgeLoggingManager(BridgeConfig())
        manager.setup_logging(stream=stream)
        try:
            logging.getLogger("checkoutbridge.native.controller").info("native hello")
            logging.getLogger("checkoutbridge.client").info("bridge hello")
        finally:
            manager.shutdown()

        lines = parse_lines(stream)
        native = [line for line in lines if line["message"] == "native hello"]
        bridge = [line for line in lines if line["message"] == "bridge hello"]

        assert len(native) == 1
        assert native[0]["prefix"] == NATIVE_PREFIX
        assert len(bridge) == 1
        assert bridge[0]["prefix"] == BRIDGE_PREFIX

    def test_levels_from_config(self):
        config = BridgeConfig(logging=LoggingConfig(level="warning", native_log_level="DEBUG"))
        manager = BridgeLoggingManager(config)

        assert manager.log_level == logging.WARNING
        assert manager.native_log_level == logging.DEBUG

    def test_shutdown_removes_installed_handlers(self):
        root_logger = logging.getLogger()
        before = list(root_logger.handlers)
        level_before = root_logger.level

        manager = BridgeLoggingManager(BridgeConfig())
        manager.setup_logging(stream=io.StringIO())
        assert len(root_logger.handlers) == len(before) + 1

        manager.shutdown()

        assert root_logger.handlers == before
        assert root_logger.level == level_before
        assert logging.getLogger("checkoutbridge.native").handlers == []
        assert not manager.configured

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "bridge.log"
        config = BridgeConfig(logging=LoggingConfig(output_file=str(log_file)))
        manager = BridgeLoggingManager(config)
        manager.setup_logging(stream=io.StringIO())
        try:
            logging.getLogger("checkoutbridge.native.simulated").info("to the native file")
        finally:
            manager.shutdown()

        native_file = tmp_path / "bridge.native.log"
        assert log_file.exists()
        assert "to the native file" in native_file.read_text(encoding="utf-8")
