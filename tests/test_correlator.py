#!/usr/bin/env python3
"""
Unit tests for call/result correlation.
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

import pytest

from checkoutbridge.core.errors import NotReadyError
from checkoutbridge.core.outcome import CallOutcome
from checkoutbridge.integration.correlator import SOURCE_CARD, SOURCE_WALLET, ResultCorrelator
from checkoutbridge.utils.helpers import is_valid_call_id


class RecordingTransport:
    """Stands in for the channel; records every call sent."""

    def __init__(self, fail_with=None):
        self.sent = []
        self.fail_with = fail_with

    def send_call(self, call):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(call)


async def issue(correlator, transport, method, payload=None):
    """Start ``invoke`` and return the task and the call that was sent."""
    task = asyncio.ensure_future(correlator.invoke(method, payload))
    await asyncio.sleep(0)
    return task, transport.sent[-1]


class TestResultCorrelator:
    """Test ResultCorrelator."""

    @pytest.mark.asyncio
    async def test_resolve_by_id(self):
        transport = RecordingTransport()
        correlator = ResultCorrelator(transport)

        task, call = await issue(correlator, transport, "validateCard")

        assert is_valid_call_id(call.call_id)
        assert correlator.pending_count == 1
        assert correlator.resolve(call.call_id, CallOutcome.ok(True)) is True
        assert await task == CallOutcome.ok(True)
        assert correlator.pending_count == 0

    @pytest.mark.asyncio
    async def test_each_call_gets_its_own_result(self):
        transport = RecordingTransport()
        correlator = ResultCorrelator(transport)

        first, first_call = await issue(correlator, transport, "validateCard")
        second, second_call = await issue(correlator, transport, "checkGooglePayAvailability")

        assert first_call.call_id != second_call.call_id
        correlator.resolve(second_call.call_id, CallOutcome.ok(False))
        correlator.resolve(first_call.call_id, CallOutcome.ok(True))

        assert (await first).value is True
        assert (await second).value is False

    @pytest.mark.asyncio
    async def test_duplicate_and_unknown_results_ignored(self):
        transport = RecordingTransport()
        correlator = ResultCorrelator(transport)

        task, call = await issue(correlator, transport, "validateCard")
        correlator.resolve(call.call_id, CallOutcome.ok(True))

        assert correlator.resolve(call.call_id, CallOutcome.ok(False)) is False
        assert correlator.resolve("0-unknown00000", CallOutcome.ok(True)) is False
        assert (await task).value is True

    @pytest.mark.asyncio
    async def test_send_failure_becomes_outcome(self):
        transport = RecordingTransport(fail_with=NotReadyError("closed"))
        correlator = ResultCorrelator(transport)

        outcome = await correlator.invoke("validateCard")

        assert outcome == CallOutcome.failed("BRIDGE_NOT_READY", "closed")
        assert correlator.pending_count == 0

    @pytest.mark.asyncio
    async def test_accepted_call_settled_by_event(self):
        transport = RecordingTransport()
        correlator = ResultCorrelator(transport)

        task, call = await issue(correlator, transport, "tokenizeCard")
        correlator.resolve(call.call_id, CallOutcome.ok({"status": "processing"}))
        await task

        future = correlator.authoritative(SOURCE_CARD)
        assert future is not None and not future.done()

        # Wrong source and non-settling kinds are ignored
        assert correlator.settle_event("cardTokenized", {"token": "t", "source": "wallet"}) is None
        assert correlator.settle_event("sessionDataReady", {"sessionData": "s", "source": "card"}) is None

        settled = correlator.settle_event("cardTokenized", {"token": "tok_1", "source": "card"})
        assert settled is not None and settled.method == "tokenizeCard"
        assert future.result() == CallOutcome.ok({"token": "tok_1", "source": "card"})

        # Settles exactly once
        assert correlator.settle_event("paymentError", {"code": "X", "message": "", "source": "card"}) is None

    @pytest.mark.asyncio
    async def test_payment_error_settles_as_failure(self):
        transport = RecordingTransport()
        correlator = ResultCorrelator(transport)

        task, call = await issue(correlator, transport, "launchGooglePaySheet")
        correlator.resolve(call.call_id, CallOutcome.ok({"status": "launched"}))
        await task

        correlator.settle_event(
            "paymentError", {"code": "GOOGLEPAY_CANCELLED", "message": "closed", "source": "wallet"}
        )

        assert correlator.authoritative(SOURCE_WALLET).result() == CallOutcome.failed(
            "GOOGLEPAY_CANCELLED", "closed"
        )

    @pytest.mark.asyncio
    async def test_failed_async_call_is_not_tracked(self):
        transport = RecordingTransport()
        correlator = ResultCorrelator(transport)

        task, call = await issue(correlator, transport, "tokenizeCard")
        correlator.resolve(call.call_id, CallOutcome.failed("CARD_NOT_READY", "no"))
        await task

        assert correlator.authoritative(SOURCE_CARD) is None

    @pytest.mark.asyncio
    async def test_fail_all_resolves_everything(self):
        transport = RecordingTransport()
        correlator = ResultCorrelator(transport)

        accepted, call = await issue(correlator, transport, "getSessionData")
        correlator.resolve(call.call_id, CallOutcome.ok({"status": "processing"}))
        await accepted
        pending, _ = await issue(correlator, transport, "validateCard")

        assert correlator.fail_all() == 2
        assert (await pending).code == "BRIDGE_NOT_READY"
        assert correlator.authoritative(SOURCE_CARD).result().code == "BRIDGE_NOT_READY"

        sent_before = len(transport.sent)
        outcome = await correlator.invoke("validateCard")
        assert outcome.code == "BRIDGE_NOT_READY"
        assert len(transport.sent) == sent_before
        assert correlator.closed
