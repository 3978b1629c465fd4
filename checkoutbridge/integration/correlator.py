"""
Result correlator.

Matches each outbound call to exactly one terminal outcome. Immediate
outcomes are matched by call id. For tokenize, session-data and wallet-sheet
calls the immediate outcome is only an acknowledgement; their authoritative
result arrives later as an event and is matched by event kind and source
controller, which is unambiguous because each controller runs at most one
such operation at a time.
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
import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional

from ..core.errors import BRIDGE_NOT_READY, BridgeError
from ..core.outcome import CallOutcome
from ..core.results import EventKind
from ..core.values import Payload
from ..utils.helpers import format_duration_ms, generate_call_id, get_current_timestamp_ms
from .channel import ChannelTransport
from .codec import CallEnvelope

logger = logging.getLogger(__name__)

SOURCE_CARD = "card"
SOURCE_WALLET = "wallet"

# Calls acknowledged immediately whose real result is an event:
# method -> (source controller, event kinds that settle it)
ASYNC_CALLS: Dict[str, tuple] = {
    "tokenizeCard": (
        SOURCE_CARD,
        frozenset({EventKind.CARD_TOKENIZED, EventKind.PAYMENT_ERROR}),
    ),
    "getSessionData": (
        SOURCE_CARD,
        frozenset({EventKind.SESSION_DATA_READY, EventKind.PAYMENT_ERROR}),
    ),
    "launchGooglePaySheet": (
        SOURCE_WALLET,
        frozenset({EventKind.PAYMENT_SUCCESS, EventKind.PAYMENT_ERROR}),
    ),
}

DISPOSED_MESSAGE = "Bridge has been disposed; call initialize() before issuing calls"


@dataclass
class PendingCall:
    """A call waiting for its immediate outcome."""

    call_id: str
    method: str
    issued_at_ms: int
    future: asyncio.Future


@dataclass
class AwaitingResult:
    """An accepted call waiting for the event carrying its real result."""

    call_id: str
    method: str
    source: str
    settles_on: FrozenSet[EventKind]
    accepted_at_ms: int
    future: asyncio.Future = field(repr=False)

    @property
    def settled(self) -> bool:
        return self.future.done()


class ResultCorrelator:
    """Resolves every call exactly once, by id or by (event kind, source)."""

    def __init__(self, transport: ChannelTransport):
        self._transport = transport
        self._pending: Dict[str, PendingCall] = {}
        self._awaiting: Dict[str, AwaitingResult] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def open_call(self, method: str) -> PendingCall:
        """Register a new pending call; the caller sends it and awaits ``future``."""
        loop = asyncio.get_running_loop()
        pending = PendingCall(
            call_id=generate_call_id(),
            method=method,
            issued_at_ms=get_current_timestamp_ms(),
            future=loop.create_future(),
        )
        self._pending[pending.call_id] = pending
        return pending

    async def invoke(self, method: str, payload: Optional[Payload] = None) -> CallOutcome:
        """
        Issue a call and wait for its immediate outcome.

        Never raises for bridge failures: they come back as a failed
        :class:`CallOutcome`.
        """
        if self._closed:
            return CallOutcome.failed(BRIDGE_NOT_READY, DISPOSED_MESSAGE)

        pending = self.open_call(method)
        try:
            self._transport.send_call(
                CallEnvelope(call_id=pending.call_id, method=method, payload=payload or {})
            )
        except BridgeError as e:
            self._pending.pop(pending.call_id, None)
            return CallOutcome.from_error(e)

        try:
            return await pending.future
        finally:
            self._pending.pop(pending.call_id, None)

    def resolve(self, call_id: str, outcome: CallOutcome) -> bool:
        """
        Resolve a pending call with its immediate outcome.

        Returns:
            False if the call is unknown or already resolved (late or
            duplicate result), which is logged and otherwise ignored
        """
        pending = self._pending.pop(call_id, None)
        if pending is None or pending.future.done():
            logger.warning(f"Ignoring late or duplicate result for call {call_id}")
            return False

        elapsed = get_current_timestamp_ms() - pending.issued_at_ms
        if outcome.success:
            logger.debug(f"Call {pending.method} resolved in {format_duration_ms(elapsed)}")
        else:
            logger.info(
                f"Call {pending.method} failed in {format_duration_ms(elapsed)}: "
                f"{outcome.code} {outcome.message}"
            )

        if outcome.is_accepted and pending.method in ASYNC_CALLS:
            self._track_accepted(pending)

        pending.future.set_result(outcome)
        return True

    def _track_accepted(self, pending: PendingCall) -> None:
        source, settles_on = ASYNC_CALLS[pending.method]
        previous = self._awaiting.get(source)
        if previous is not None and not previous.settled:
            logger.warning(
                f"{previous.method} on {source} superseded before its result arrived"
            )
            previous.future.set_result(
                CallOutcome.failed(BRIDGE_NOT_READY, f"{previous.method} was superseded")
            )
        self._awaiting[source] = AwaitingResult(
            call_id=pending.call_id,
            method=pending.method,
            source=source,
            settles_on=settles_on,
            accepted_at_ms=get_current_timestamp_ms(),
            future=asyncio.get_running_loop().create_future(),
        )

    def settle_event(self, event: str, payload: Payload) -> Optional[AwaitingResult]:
        """
        Settle the accepted call an inbound event answers, if any.

        Returns:
            The settled record, or None when the event answers no accepted call
            (for example a spontaneous error)
        """
        kind = EventKind.from_name(event)
        source = payload.get("source") if isinstance(payload, dict) else None
        if kind is None or not isinstance(source, str):
            return None

        awaiting = self._awaiting.get(source)
        if awaiting is None or awaiting.settled or kind not in awaiting.settles_on:
            return None

        if kind is EventKind.PAYMENT_ERROR:
            outcome = CallOutcome.failed(
                str(payload.get("code") or ""), str(payload.get("message") or "")
            )
        else:
            outcome = CallOutcome.ok(payload)
        awaiting.future.set_result(outcome)

        elapsed = get_current_timestamp_ms() - awaiting.accepted_at_ms
        logger.debug(f"{awaiting.method} settled by {event} after {format_duration_ms(elapsed)}")
        return awaiting

    def authoritative(self, source: str) -> Optional[asyncio.Future]:
        """
        Future carrying the real result of the latest accepted call on ``source``.

        The future stays available after it settles, until the next accepted
        call on the same source replaces it.
        """
        awaiting = self._awaiting.get(source)
        return awaiting.future if awaiting is not None else None

    def fail_all(self, message: str = DISPOSED_MESSAGE) -> int:
        """
        Force-resolve every pending and awaiting call with NotReady and close.

        Returns:
            Number of calls that were force-resolved
        """
        self._closed = True
        failure = CallOutcome.failed(BRIDGE_NOT_READY, message)
        count = 0

        for pending in list(self._pending.values()):
            if not pending.future.done():
                pending.future.set_result(failure)
                count += 1
        self._pending.clear()

        for awaiting in self._awaiting.values():
            if not awaiting.settled:
                awaiting.future.set_result(failure)
                count += 1

        if count:
            logger.info(f"Force-resolved {count} outstanding call(s) on dispose")
        return count
