#!/usr/bin/env python3
"""
Unit tests for utility functions.
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

import pytest

from checkoutbridge.utils.helpers import (
    format_duration_ms,
    generate_call_id,
    get_current_timestamp_ms,
    is_valid_call_id,
    mask_identifier,
    redact,
    sanitize_for_logging,
)


class TestUtilityFunctions:
    """Test utility functions."""

    def test_generate_call_id(self):
        """Test call id generation."""
        id1 = generate_call_id()
        id2 = generate_call_id()

        assert id1 != id2
        assert is_valid_call_id(id1)
        assert is_valid_call_id(id2)

    @pytest.mark.parametrize(
        "call_id",
        ["", None, "no-dashes-here", "abc-123456789012", "123-short", 42],
    )
    def test_invalid_call_ids(self, call_id):
        assert not is_valid_call_id(call_id)

    def test_current_timestamp(self):
        before = get_current_timestamp_ms()
        after = get_current_timestamp_ms()

        assert after >= before > 0

    def test_mask_identifier(self):
        assert mask_identifier("ps_2Xk9aBcDeFgHiJkL") == "ps_...iJkL"
        assert mask_identifier("pk_sbox_abcdefghijkl") == "pk_sbox_...ijkl"
        assert mask_identifier("short") == "*****"
        assert mask_identifier("") == ""

    def test_redact_nested(self):
        data = {
            "config": {"paymentSessionSecret": "pss_x", "publicKey": "pk_sbox_abcdefghijkl"},
            "events": [{"token": "tok_1", "last4": "4242"}],
            "CVV": "123",
        }

        assert redact(data) == {
            "config": {"paymentSessionSecret": "[REDACTED]", "publicKey": "pk_sbox_...ijkl"},
            "events": [{"token": "[REDACTED]", "last4": "4242"}],
            "CVV": "[REDACTED]",
        }
        assert data["events"][0]["token"] == "tok_1"

    def test_sanitize_for_logging(self):
        assert sanitize_for_logging({"sessionData": "abc", "method": "x"}) == (
            '{"sessionData":"[REDACTED]","method":"x"}'
        )
        assert sanitize_for_logging("plain text") == "plain text"

        long_text = sanitize_for_logging("x" * 1000, max_length=20)
        assert len(long_text) == 20
        assert long_text.endswith("...")

    def test_format_duration(self):
        """Test duration formatting."""
        assert format_duration_ms(500) == "500ms"
        assert format_duration_ms(1500) == "1.5s"
        assert format_duration_ms(65000) == "1m 5s"
