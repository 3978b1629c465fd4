#!/usr/bin/env python3
"""
Unit tests for the native component controllers.
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

import asyncio
import time

import pytest

from checkoutbridge.config.session_config import CardConfig, GooglePayConfig, SessionConfig
from checkoutbridge.core.errors import (
    CapabilityError,
    IllegalStateTransition,
    InFlightError,
    InitError,
    NotReadyError,
    UnavailableError,
)
from checkoutbridge.core.outcome import ControllerOutcome, SubmitDecision
from checkoutbridge.core.state import ComponentState
from checkoutbridge.native.capability import CardCapability, CardComponent
from checkoutbridge.native.controller import Accepted, CardController, GooglePayController
from checkoutbridge.native.simulated import (
    TEST_CARD,
    CardInput,
    SimulatedCardCapability,
    SimulatedWalletCapability,
)

SESSION = SessionConfig(
    paymentSessionID="ps_test_0001",
    paymentSessionSecret="pss_test_secret",
    publicKey="pk_sbox_test_key",
)


async def wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class StubbornCardComponent(CardComponent):
    """Ignores cancellation and always tokenizes after ``delay`` seconds."""

    def __init__(self, hooks, delay):
        self.hooks = hooks
        self.delay = delay

    def is_available(self):
        return True

    def is_valid(self):
        return True

    def tokenize(self, cancelled):
        time.sleep(self.delay)
        self.hooks.on_tokenized({"token": "tok_late"})

    def submit(self, cancelled):
        time.sleep(self.delay)
        self.hooks.on_success("pay_late")

    def close(self):
        pass


class StubbornCardCapability(CardCapability):
    def __init__(self, delay=0.2):
        self.delay = delay

    def create_component(self, session, options, hooks):
        return StubbornCardComponent(hooks, self.delay)


async def ready_card(capability=None, **kwargs):
    emitted = []
    capability = capability or SimulatedCardCapability(card=TEST_CARD)
    controller = CardController(capability, lambda event, payload: emitted.append((event, payload)), **kwargs)
    await controller.initialize(SESSION, CardConfig())
    return controller, capability, emitted


class TestCardControllerLifecycle:
    """Test controller state transitions."""

    @pytest.mark.asyncio
    async def test_uninitialized_controller_refuses_work(self):
        capability = SimulatedCardCapability(card=TEST_CARD)
        controller = CardController(capability, lambda event, payload: None)

        assert controller.state is ComponentState.UNINITIALIZED
        with pytest.raises(NotReadyError) as exc_info:
            await controller.validate()
        assert exc_info.value.code == "CARD_NOT_READY"
        with pytest.raises(NotReadyError):
            controller.tokenize()
        assert capability.total_invocations == 0
        controller.dispose()

    @pytest.mark.asyncio
    async def test_initialize_reaches_ready(self):
        controller, capability, _ = await ready_card()
        try:
            assert controller.state is ComponentState.READY
            assert capability.invocations["create"] == 1
            assert await controller.validate() is True
            assert controller.state is ComponentState.READY
        finally:
            controller.dispose()

    @pytest.mark.asyncio
    async def test_illegal_transition_raises(self):
        controller = CardController(SimulatedCardCapability(), lambda event, payload: None)
        try:
            with pytest.raises(IllegalStateTransition):
                controller._transition(ComponentState.SUBMITTING)
        finally:
            controller.dispose()

    @pytest.mark.asyncio
    async def test_initialize_failure_disposes(self):
        capability = SimulatedCardCapability(raise_on_create=CapabilityError("SDK_DOWN", "no SDK"))
        controller = CardController(capability, lambda event, payload: None)

        with pytest.raises(InitError, match="SDK_DOWN"):
            await controller.initialize(SESSION, CardConfig())
        assert controller.state is ComponentState.DISPOSED

    @pytest.mark.asyncio
    async def test_rejected_public_key(self):
        session = SESSION.model_copy(update={"public_key": "sk_wrong"})
        controller = CardController(SimulatedCardCapability(), lambda event, payload: None)

        with pytest.raises(InitError, match="INVALID_PUBLIC_KEY"):
            await controller.initialize(session, CardConfig())

    @pytest.mark.asyncio
    async def test_unavailable_card_component(self):
        controller = CardController(SimulatedCardCapability(available=False), lambda event, payload: None)

        with pytest.raises(InitError):
            await controller.initialize(SESSION, CardConfig())
        assert controller.is_disposed

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self):
        controller, capability, _ = await ready_card()

        assert controller.dispose() is True
        assert controller.dispose() is False
        assert controller.state is ComponentState.DISPOSED
        assert capability.last_component.closed

        calls_before = capability.total_invocations
        with pytest.raises(NotReadyError):
            await controller.validate()
        with pytest.raises(NotReadyError):
            controller.submit_session_data()
        assert capability.total_invocations == calls_before


class TestCardOperations:
    """Test tokenize and session-data operations."""

    @pytest.mark.asyncio
    async def test_tokenize_acknowledges_then_emits(self):
        capability = SimulatedCardCapability(card=TEST_CARD, token_factory=lambda: "tok_123")
        controller, _, emitted = await ready_card(capability)
        try:
            accepted = controller.tokenize()

            assert isinstance(accepted, Accepted)
            assert accepted.value == {"status": "processing"}
            assert controller.state is ComponentState.SUBMITTING
            assert capability.invocations["tokenize"] == 0

            accepted.launch()
            await wait_until(lambda: emitted)
        finally:
            controller.dispose()

        event, payload = emitted[0]
        assert event == "cardTokenized"
        assert payload["token"] == "tok_123"
        assert payload["last4"] == "4242"
        assert payload["source"] == "card"
        assert controller.last_outcome is ControllerOutcome.COMPLETED

    @pytest.mark.asyncio
    async def test_incomplete_card_reports_token_error(self):
        capability = SimulatedCardCapability(card=CardInput(number="4242"))
        controller, _, emitted = await ready_card(capability)
        try:
            assert await controller.validate() is False
            controller.tokenize().launch()
            await wait_until(lambda: emitted)
            assert controller.state is ComponentState.READY
        finally:
            controller.dispose()

        assert emitted[0][0] == "paymentError"
        assert emitted[0][1]["code"] == "TOKEN_ERROR"
        assert controller.last_outcome is ControllerOutcome.FAILED

    @pytest.mark.asyncio
    async def test_second_operation_while_busy(self):
        capability = SimulatedCardCapability(card=TEST_CARD, latency=0.3)
        controller, _, emitted = await ready_card(capability)
        try:
            controller.tokenize().launch()

            with pytest.raises(InFlightError):
                controller.tokenize()
            with pytest.raises(InFlightError):
                controller.submit_session_data()
            with pytest.raises(InFlightError):
                await controller.validate()

            await wait_until(lambda: emitted)
        finally:
            controller.dispose()

        assert [event for event, _ in emitted] == ["cardTokenized"]

    @pytest.mark.asyncio
    async def test_session_data_halts_the_payment(self):
        capability = SimulatedCardCapability(card=TEST_CARD, session_data_factory=lambda: "sess_opaque")
        controller, _, emitted = await ready_card(capability)
        try:
            accepted = controller.submit_session_data()
            assert accepted.value == {"status": "processing"}
            accepted.launch()

            await wait_until(lambda: emitted)
            # Give the halted SDK time to report whatever it reports afterwards
            await asyncio.sleep(0.1)
        finally:
            controller.dispose()

        assert emitted == [("sessionDataReady", {"sessionData": "sess_opaque", "source": "card"})]
        assert controller.last_outcome is ControllerOutcome.INTENTIONALLY_HALTED

    @pytest.mark.asyncio
    async def test_submit_hook_outside_session_data_proceeds(self):
        controller, _, _ = await ready_card()
        try:
            assert controller.hooks.on_submit("data") is SubmitDecision.PROCEED
        finally:
            controller.dispose()

    @pytest.mark.asyncio
    async def test_result_timeout(self):
        controller, _, emitted = await ready_card(StubbornCardCapability(delay=0.3), result_timeout=0.1)
        try:
            controller.tokenize().launch()
            await wait_until(lambda: emitted)
            assert controller.state is ComponentState.READY

            # The late tokenization belongs to the timed-out operation
            await asyncio.sleep(0.4)
        finally:
            controller.dispose()

        assert len(emitted) == 1
        assert emitted[0][0] == "paymentError"
        assert emitted[0][1]["code"] == "RESULT_TIMEOUT"

    @pytest.mark.asyncio
    async def test_dispose_drops_late_results(self):
        controller, _, emitted = await ready_card(StubbornCardCapability(delay=0.2))

        controller.tokenize().launch()
        await asyncio.sleep(0.05)
        controller.dispose()
        await asyncio.sleep(0.3)

        assert emitted == []

    @pytest.mark.asyncio
    async def test_spontaneous_error_is_forwarded(self):
        controller, _, emitted = await ready_card()
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, controller.hooks.on_error, "NETWORK_ERROR", "lost")
            await wait_until(lambda: emitted)
        finally:
            controller.dispose()

        assert emitted == [
            ("paymentError", {"code": "NETWORK_ERROR", "message": "lost", "source": "card"})
        ]


class TestGooglePayController:
    """Test the wallet controller."""

    @pytest.mark.asyncio
    async def test_sheet_success(self):
        emitted = []
        capability = SimulatedWalletCapability()
        controller = GooglePayController(capability, lambda event, payload: emitted.append((event, payload)))
        try:
            await controller.initialize(SESSION, GooglePayConfig(merchantName="Test Store"))
            assert await controller.check_availability() is True

            accepted = controller.launch_sheet({"amount": 1000, "currency": "EUR"})
            assert accepted.value == {"status": "launched"}
            accepted.launch()
            await wait_until(lambda: emitted)
        finally:
            controller.dispose()

        event, payload = emitted[0]
        assert event == "paymentSuccess"
        assert payload["paymentId"].startswith("pay_gpay_")
        assert payload["source"] == "wallet"
        assert capability.last_component.requests == [{"amount": 1000, "currency": "EUR"}]

    @pytest.mark.asyncio
    async def test_sheet_cancelled(self):
        emitted = []
        controller = GooglePayController(
            SimulatedWalletCapability(outcome="cancel"), lambda event, payload: emitted.append((event, payload))
        )
        try:
            await controller.initialize(SESSION, GooglePayConfig())
            controller.launch_sheet({}).launch()
            await wait_until(lambda: emitted)
        finally:
            controller.dispose()

        assert emitted[0][0] == "paymentError"
        assert emitted[0][1]["code"] == "GOOGLEPAY_CANCELLED"

    @pytest.mark.asyncio
    async def test_unavailable_wallet(self):
        controller = GooglePayController(SimulatedWalletCapability(available=False), lambda event, payload: None)

        with pytest.raises(UnavailableError) as exc_info:
            await controller.initialize(SESSION, GooglePayConfig())
        assert exc_info.value.code == "GOOGLEPAY_NOT_AVAILABLE"
        assert controller.is_disposed

        with pytest.raises(NotReadyError) as exc_info:
            await controller.check_availability()
        assert exc_info.value.code == "GOOGLEPAY_NOT_READY"
