#!/usr/bin/env python3
"""
Unit tests for channel values, errors, results and the envelope codec.
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

import pytest

from checkoutbridge.config.session_config import SessionConfig
from checkoutbridge.core.errors import (
    DecodeError,
    InFlightError,
    InitError,
    MethodNotImplementedError,
    NotReadyError,
    TransportError,
    ValidationFailedError,
    error_from_outcome,
)
from checkoutbridge.core.outcome import CallOutcome
from checkoutbridge.core.results import (
    CardTokenResult,
    EventKind,
    PaymentErrorResult,
    SessionDataResult,
)
from checkoutbridge.core.state import ComponentState, can_transition
from checkoutbridge.core.values import BridgeValue, ValueKind, check_payload
from checkoutbridge.integration.codec import (
    CallEnvelope,
    EnvelopeCodec,
    EventEnvelope,
    ResultEnvelope,
)


class TestBridgeValue:
    """Test BridgeValue checking."""

    def test_scalar_kinds(self):
        assert BridgeValue.of("a").kind is ValueKind.STRING
        assert BridgeValue.of(3).kind is ValueKind.NUMBER
        assert BridgeValue.of(2.5).kind is ValueKind.NUMBER
        assert BridgeValue.of(True).kind is ValueKind.BOOLEAN
        assert BridgeValue.of(None).kind is ValueKind.NULL

    def test_nested_structures(self):
        value = BridgeValue.of({"items": [1, "two", {"three": None}], "flag": False})

        assert value.kind is ValueKind.MAP
        assert value.as_map()["items"].kind is ValueKind.LIST
        assert value.to_python() == {"items": [1, "two", {"three": None}], "flag": False}

    def test_unsupported_values_rejected(self):
        with pytest.raises(DecodeError):
            BridgeValue.of({1, 2})
        with pytest.raises(DecodeError, match="Non-finite"):
            BridgeValue.of({"amount": float("nan")})
        with pytest.raises(DecodeError, match="Non-string key"):
            BridgeValue.of({1: "one"})

    def test_accessor_kind_mismatch(self):
        with pytest.raises(DecodeError):
            BridgeValue.of(1).as_string()

    def test_check_payload(self):
        assert check_payload(None) == {}
        assert check_payload({"a": [1]}) == {"a": [1]}
        with pytest.raises(DecodeError):
            check_payload([1, 2])


class TestErrors:
    """Test the error taxonomy."""

    def test_codes_map_to_classes(self):
        assert isinstance(error_from_outcome("CARD_NOT_READY", "x"), NotReadyError)
        assert isinstance(error_from_outcome("INIT_ERROR", "x"), InitError)
        assert isinstance(error_from_outcome("NOT_IMPLEMENTED", "x"), MethodNotImplementedError)
        assert isinstance(error_from_outcome("VALIDATION_FAILED", "x"), ValidationFailedError)

    def test_in_flight_is_not_ready(self):
        error = error_from_outcome("OPERATION_IN_FLIGHT", "busy")
        assert isinstance(error, InFlightError)
        assert isinstance(error, NotReadyError)
        assert error.code == "OPERATION_IN_FLIGHT"

    def test_unknown_code_kept(self):
        error = error_from_outcome("TOKEN_ERROR", "declined")
        assert type(error) is TransportError
        assert error.code == "TOKEN_ERROR"
        assert error.to_dict() == {"code": "TOKEN_ERROR", "message": "declined"}

    def test_outcome_unwrap(self):
        assert CallOutcome.ok(True).unwrap() is True
        with pytest.raises(NotReadyError):
            CallOutcome.failed("GOOGLEPAY_NOT_READY", "no").unwrap()

    def test_accepted_acknowledgement(self):
        assert CallOutcome.ok({"status": "processing"}).is_accepted
        assert CallOutcome.ok({"status": "launched"}).is_accepted
        assert not CallOutcome.ok(True).is_accepted
        assert not CallOutcome.failed("X", "y").is_accepted


class TestStateTable:
    def test_legal_transitions(self):
        assert can_transition(ComponentState.UNINITIALIZED, ComponentState.INITIALIZING)
        assert can_transition(ComponentState.READY, ComponentState.SUBMITTING)
        assert can_transition(ComponentState.SUBMITTING, ComponentState.READY)

    def test_illegal_transitions(self):
        assert not can_transition(ComponentState.UNINITIALIZED, ComponentState.READY)
        assert not can_transition(ComponentState.VALIDATING, ComponentState.SUBMITTING)
        assert not can_transition(ComponentState.READY, ComponentState.INITIALIZING)

    def test_disposed_is_terminal(self):
        for state in ComponentState:
            assert state.is_terminal is (state is ComponentState.DISPOSED)
            assert not can_transition(ComponentState.DISPOSED, state)
            if state is not ComponentState.DISPOSED:
                assert can_transition(state, ComponentState.DISPOSED)


class TestResults:
    """Test event payload decoding."""

    def test_card_token_result(self):
        result = CardTokenResult.from_payload(
            {
                "token": "tok_123",
                "last4": "4242",
                "brand": "VISA",
                "expiryMonth": 12,
                "expiryYear": "2030",
                "source": "card",
                "bin": "424242",
            }
        )

        assert result.token == "tok_123"
        assert result.expiry_month == "12"
        assert result.source == "card"
        assert result.extra == {"bin": "424242"}

    def test_missing_required_field(self):
        with pytest.raises(DecodeError, match="token"):
            CardTokenResult.from_payload({"last4": "4242"})
        with pytest.raises(DecodeError):
            SessionDataResult.from_payload({"sessionData": 12})

    def test_error_message_may_be_empty(self):
        result = PaymentErrorResult.from_payload({"code": "X", "message": ""})
        assert result.error_message == ""

    def test_event_kind_lookup(self):
        assert EventKind.from_name("sessionDataReady") is EventKind.SESSION_DATA_READY
        assert EventKind.from_name("mystery") is None


class TestEnvelopeCodec:
    """Test frame encoding and decoding."""

    def setup_method(self):
        self.codec = EnvelopeCodec()

    def test_call_preserves_payload(self):
        payload = {
            "text": "hello",
            "count": 3,
            "ratio": 0.25,
            "enabled": True,
            "missing": None,
            "items": [1, "a", {"b": False}],
            "nested": {"inner": {"x": -1}},
        }
        frame = self.codec.encode(CallEnvelope("1-abc", "initCardView", payload))
        decoded = self.codec.decode(frame)

        assert isinstance(decoded, CallEnvelope)
        assert decoded.call_id == "1-abc"
        assert decoded.method == "initCardView"
        assert decoded.payload == payload

    def test_models_encoded_by_alias(self):
        config = SessionConfig(
            paymentSessionID="ps_1", paymentSessionSecret="pss_secret", publicKey="pk_sbox_1"
        )
        frame = self.codec.encode(CallEnvelope("1-abc", "initCardView", {"config": config}))
        data = json.loads(frame)

        assert data["payload"]["config"]["paymentSessionID"] == "ps_1"
        assert data["payload"]["config"]["paymentSessionSecret"] == "pss_secret"
        assert data["payload"]["config"]["environment"] == "sandbox"

    def test_result_frames(self):
        ok = self.codec.decode(self.codec.encode(ResultEnvelope("7-x", True, {"status": "processing"})))
        assert ok.to_outcome() == CallOutcome.ok({"status": "processing"})

        failed = self.codec.decode(
            self.codec.encode(ResultEnvelope.from_outcome("8-x", CallOutcome.failed("INIT_ERROR", "bad")))
        )
        assert failed.to_outcome() == CallOutcome.failed("INIT_ERROR", "bad")

        data = json.loads(self.codec.encode(ResultEnvelope("9-x", True, None)))
        assert data == {"id": "9-x", "ok": True, "result": None, "error": None}

    def test_event_frame(self):
        frame = self.codec.encode(EventEnvelope("paymentSuccess", {"paymentId": "p1", "source": "wallet"}))
        decoded = self.codec.decode(frame)

        assert isinstance(decoded, EventEnvelope)
        assert decoded.payload == {"paymentId": "p1", "source": "wallet"}

    def test_encode_rejects_unsupported_values(self):
        with pytest.raises(DecodeError):
            self.codec.encode(CallEnvelope("1-a", "x", {"amount": float("inf")}))
        with pytest.raises(DecodeError):
            self.codec.encode(CallEnvelope("1-a", "x", {"when": object()}))

    @pytest.mark.parametrize(
        "frame",
        [
            "not json",
            "[1, 2]",
            '{"method": "validateCard"}',
            '{"id": "1-a", "ok": "yes"}',
            '{"id": "1-a", "ok": false}',
            '{"id": "1-a", "method": "x", "payload": [1]}',
            '{"something": "else"}',
        ],
    )
    def test_decode_rejects_malformed_frames(self, frame):
        with pytest.raises(DecodeError):
            self.codec.decode(frame)

    def test_bare_payloads(self):
        text = self.codec.encode_payload({"a": [1, 2]})
        assert self.codec.decode_payload(text) == {"a": [1, 2]}
        assert self.codec.decode_payload(self.codec.encode_payload(None)) == {}
        with pytest.raises(DecodeError):
            self.codec.decode_payload("[1]")
