"""
Channel transport: the single named conduit between front end and native side.

One transport carries every call (front end to native) and every result and
event (native to front end) for one session. Frames cross it encoded, one
queue per direction, each drained by a single pump task, so delivery order
is emission order.
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
import threading
from typing import Any, Awaitable, Callable, List, Optional

from ..core.errors import (
    NOT_IMPLEMENTED,
    TRANSPORT_ERROR,
    BridgeError,
    DecodeError,
    NotReadyError,
    TransportError,
)
from ..core.outcome import CallOutcome
from ..core.values import Payload
from ..utils.helpers import sanitize_for_logging
from .codec import (
    CallEnvelope,
    Envelope,
    EnvelopeCodec,
    EventEnvelope,
    ResultEnvelope,
    get_codec,
)

logger = logging.getLogger(__name__)

CallHandler = Callable[[CallEnvelope, "CallResponder"], Awaitable[None]]
InboundListener = Callable[[Envelope], Awaitable[None]]

_STOP = object()


class CallResponder:
    """
    Reply handle given to the native call handler.

    Exactly one of :meth:`success`, :meth:`error` or :meth:`not_implemented`
    takes effect; later replies are ignored with a warning.
    """

    def __init__(self, transport: "ChannelTransport", call: CallEnvelope):
        self._transport = transport
        self.call = call
        self._replied = False

    @property
    def replied(self) -> bool:
        return self._replied

    def success(self, value: Any = None) -> None:
        self._reply(CallOutcome.ok(value))

    def error(self, code: str, message: str) -> None:
        self._reply(CallOutcome.failed(code, message))

    def not_implemented(self) -> None:
        self._reply(
            CallOutcome.failed(NOT_IMPLEMENTED, f"Method '{self.call.method}' is not implemented")
        )

    def _reply(self, outcome: CallOutcome) -> None:
        if self._replied:
            logger.warning(
                f"Ignoring second reply to call {self.call.call_id} ({self.call.method})"
            )
            return
        self._replied = True
        self._transport.post_result(self.call.call_id, outcome)


class ChannelTransport:
    """
    Bidirectional named channel for one bridge session.

    The event loop thread that opened the transport is the delivery thread:
    results and events may only be emitted from it. Writers are serialized
    with a lock; reads (the pumps) run concurrently with writes.
    """

    def __init__(self, name: str = "checkout_bridge", codec: Optional[EnvelopeCodec] = None):
        self.name = name
        self.codec = codec or get_codec()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._delivery_thread_id: Optional[int] = None
        self._write_lock = threading.Lock()

        self._to_native: Optional[asyncio.Queue] = None
        self._to_front: Optional[asyncio.Queue] = None
        self._pumps: List[asyncio.Task] = []

        self._call_handler: Optional[CallHandler] = None
        self._inbound_listener: Optional[InboundListener] = None

        self._opened = False
        self._closed = False

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop

    @property
    def is_open(self) -> bool:
        return self._opened and not self._closed

    def set_call_handler(self, handler: Optional[CallHandler]) -> None:
        """Attach the native side's call handler."""
        self._call_handler = handler

    def set_inbound_listener(self, listener: Optional[InboundListener]) -> None:
        """Attach the front end's listener for results and events."""
        self._inbound_listener = listener

    async def open(self) -> None:
        """Bind the transport to the running loop and start both pumps."""
        if self._opened:
            return
        if self._closed:
            raise NotReadyError(f"Channel '{self.name}' is closed")

        self._loop = asyncio.get_running_loop()
        self._delivery_thread_id = threading.get_ident()
        self._to_native = asyncio.Queue()
        self._to_front = asyncio.Queue()
        self._pumps = [
            self._loop.create_task(self._native_pump(), name=f"{self.name}-native-pump"),
            self._loop.create_task(self._front_pump(), name=f"{self.name}-front-pump"),
        ]
        self._opened = True
        logger.debug(f"Channel '{self.name}' opened")

    async def close(self) -> None:
        """Stop both pumps; anything still queued is dropped."""
        if self._closed:
            return
        self._closed = True
        if not self._opened:
            return

        with self._write_lock:
            self._to_native.put_nowait(_STOP)
            self._to_front.put_nowait(_STOP)

        current = asyncio.current_task()
        for pump in self._pumps:
            if pump is current:
                continue
            try:
                await asyncio.wait_for(pump, timeout=1.0)
            except asyncio.TimeoutError:
                pump.cancel()
        self._pumps = []
        logger.debug(f"Channel '{self.name}' closed")

    # Front end -> native

    def send_call(self, call: CallEnvelope) -> None:
        """
        Emit a call towards the native side.

        Raises:
            NotReadyError: If the channel is not open
            DecodeError: If the payload contains unsupported values
        """
        if not self.is_open:
            raise NotReadyError(
                f"Channel '{self.name}' is not open; call initialize() first"
            )
        self._emit(self._to_native, self.codec.encode(call))
        logger.debug(
            f"Call {call.call_id} sent: {call.method} "
            f"{sanitize_for_logging(self.codec.prepare_value(call.payload))}"
        )

    # Native -> front end

    def post_result(self, call_id: str, outcome: CallOutcome) -> None:
        """Emit the immediate outcome of a call."""
        self._post(ResultEnvelope.from_outcome(call_id, outcome))

    def post_event(self, event: str, payload: Optional[Payload] = None) -> None:
        """Emit a native-originated event."""
        self._post(EventEnvelope(event=event, payload=payload or {}))

    def _post(self, envelope: Envelope) -> None:
        if not self.is_open:
            logger.debug(f"Channel '{self.name}' closed; dropping {type(envelope).__name__}")
            return
        try:
            frame = self.codec.encode(envelope)
        except DecodeError as e:
            if not isinstance(envelope, ResultEnvelope):
                raise
            # The caller is still waiting; it gets the encoding failure instead
            logger.error(f"Result for call {envelope.call_id} is not encodable: {e.message}")
            frame = self.codec.encode(
                ResultEnvelope.from_outcome(envelope.call_id, CallOutcome.from_error(e))
            )
        self._emit(self._to_front, frame)

    def _emit(self, queue: asyncio.Queue, frame: str) -> None:
        if threading.get_ident() != self._delivery_thread_id:
            raise TransportError(
                f"Channel '{self.name}' emission must happen on the delivery thread"
            )
        with self._write_lock:
            queue.put_nowait(frame)

    # Pumps

    async def _native_pump(self) -> None:
        while True:
            frame = await self._to_native.get()
            if frame is _STOP:
                break
            try:
                call = self.codec.decode(frame)
            except DecodeError as e:
                logger.error(f"Dropping undecodable call frame: {e.message}")
                continue
            if not isinstance(call, CallEnvelope):
                logger.error(f"Unexpected {type(call).__name__} on the native side")
                continue
            await self._handle_call(call)

    async def _handle_call(self, call: CallEnvelope) -> None:
        responder = CallResponder(self, call)
        handler = self._call_handler
        try:
            if handler is None:
                responder.not_implemented()
                return
            await handler(call, responder)
        except BridgeError as e:
            if not responder.replied:
                responder.error(e.code, e.message)
            else:
                logger.error(f"Call {call.method} failed after replying: {e.message}")
        except Exception as e:
            logger.exception(f"Native handler crashed on {call.method}")
            if not responder.replied:
                responder.error(TRANSPORT_ERROR, str(e) or type(e).__name__)
        finally:
            if not responder.replied and self.is_open:
                logger.error(f"Call {call.call_id} ({call.method}) finished without a reply")
                responder.error(TRANSPORT_ERROR, f"No reply to '{call.method}'")

    async def _front_pump(self) -> None:
        while True:
            frame = await self._to_front.get()
            if frame is _STOP:
                break
            try:
                envelope = self.codec.decode(frame)
            except DecodeError as e:
                logger.error(f"Dropping undecodable frame: {e.message}")
                continue

            listener = self._inbound_listener
            if listener is None:
                logger.debug(f"No inbound listener; dropping {type(envelope).__name__}")
                continue
            try:
                await listener(envelope)
            except Exception:
                logger.exception("Inbound listener failed")

            if isinstance(envelope, ResultEnvelope):
                # Let the resumed caller run before the next frame is delivered
                await asyncio.sleep(0)
