"""
Bridge client: the front end's single entry point.

Typed operations over the channel, plus the subscription API for the
events that carry the real results of tokenize, session-data and wallet
operations.
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
from typing import Any, Callable, Dict, Optional, Union

from .config.bridge_config import BridgeConfig
from .config.session_config import CardConfig, GooglePayConfig, SessionConfig
from .core.errors import BRIDGE_NOT_READY, DecodeError, NotReadyError
from .core.outcome import CallOutcome
from .core.results import (
    CardTokenResult,
    EventKind,
    PaymentErrorResult,
    PaymentSuccessResult,
    SessionDataResult,
)
from .core.values import Payload
from .integration.channel import ChannelTransport
from .integration.codec import Envelope, EventEnvelope, ResultEnvelope
from .integration.correlator import SOURCE_CARD, ResultCorrelator
from .integration.dispatcher import EventDispatcher, SubscriptionHandle

logger = logging.getLogger(__name__)

NOT_INITIALIZED_MESSAGE = "Bridge not initialized; call initialize() first"
DISPOSED_MESSAGE = "Bridge has been disposed; create a new session and call initialize()"

ConfigLike = Union[SessionConfig, Dict[str, Any]]


class BridgeClient:
    """
    Front-end API of one bridge session.

    Each operation suspends the caller until the call's immediate outcome and
    raises a :class:`~checkoutbridge.core.errors.BridgeError` subclass on
    failure. For ``tokenize_card``, ``submit`` and ``launch_google_pay_sheet``
    the immediate outcome is only an acknowledgement; register a handler (or
    use :meth:`wait_for_result`) for the real one.

    Example:
        >>> client = BridgeClient(transport)
        >>> await client.initialize()
        >>> client.on_card_tokenized(lambda result: print(result.token))
        >>> await client.init_card_view(session_config)
        >>> await client.tokenize_card()
        {'status': 'processing'}
    """

    def __init__(
        self,
        transport: ChannelTransport,
        config: Optional[BridgeConfig] = None,
        correlator: Optional[ResultCorrelator] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self.config = config or BridgeConfig()
        self._transport = transport
        self._correlator = correlator or ResultCorrelator(transport)
        self._dispatcher = dispatcher or EventDispatcher()
        self._initialized = False
        self._disposed = False
        self._dispatch_depth = 0
        self._dispose_task: Optional[asyncio.Future] = None

    @property
    def is_initialized(self) -> bool:
        return self._initialized and not self._disposed

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def dispatcher(self) -> EventDispatcher:
        return self._dispatcher

    @property
    def correlator(self) -> ResultCorrelator:
        return self._correlator

    async def initialize(self) -> None:
        """Open the channel and attach the inbound listener. Idempotent."""
        if self._disposed:
            logger.warning("initialize() called on a disposed bridge client; ignoring")
            return
        if self._initialized:
            return
        await self._transport.open()
        self._transport.set_inbound_listener(self._on_inbound)
        self._initialized = True
        logger.info(f"Bridge client initialized on channel '{self._transport.name}'")

    async def _on_inbound(self, envelope: Envelope) -> None:
        if isinstance(envelope, ResultEnvelope):
            self._correlator.resolve(envelope.call_id, envelope.to_outcome())
        elif isinstance(envelope, EventEnvelope):
            self._correlator.settle_event(envelope.event, envelope.payload)
            self._dispatch_depth += 1
            try:
                await self._dispatcher.dispatch(envelope.event, envelope.payload)
            finally:
                self._dispatch_depth -= 1

    # Calls

    def _ensure_usable(self) -> None:
        if self._disposed:
            raise NotReadyError(DISPOSED_MESSAGE, code=BRIDGE_NOT_READY)
        if not self._initialized:
            raise NotReadyError(NOT_INITIALIZED_MESSAGE, code=BRIDGE_NOT_READY)

    async def call(self, method: str, payload: Optional[Payload] = None) -> CallOutcome:
        """Issue a raw call and return its outcome without raising."""
        try:
            self._ensure_usable()
        except NotReadyError as e:
            return CallOutcome.from_error(e)
        return await self._correlator.invoke(method, payload)

    async def _request(self, method: str, payload: Optional[Payload] = None) -> Any:
        self._ensure_usable()
        outcome = await self._correlator.invoke(method, payload)
        return outcome.unwrap()

    async def _request_bool(self, method: str, payload: Optional[Payload] = None) -> bool:
        value = await self._request(method, payload)
        if not isinstance(value, bool):
            raise DecodeError(f"{method} returned {type(value).__name__}, expected a boolean")
        return value

    async def _request_status(self, method: str, payload: Optional[Payload] = None) -> Dict[str, Any]:
        value = await self._request(method, payload)
        if not isinstance(value, dict) or not isinstance(value.get("status"), str):
            raise DecodeError(f"{method} returned an unexpected acknowledgement: {value!r}")
        return value

    async def init_card_view(
        self, config: ConfigLike, card_config: Optional[Union[CardConfig, Dict[str, Any]]] = None
    ) -> bool:
        """
        Create the card component for a payment session.

        Raises:
            InitError: Malformed session config or the capability failed to start
            InFlightError: The current card component is busy
        """
        return await self._request_bool(
            "initCardView", {"config": config, "cardConfig": card_config or {}}
        )

    async def validate_card(self) -> bool:
        return await self._request_bool("validateCard")

    async def tokenize_card(self) -> Dict[str, Any]:
        """Start tokenization; the result arrives as ``cardTokenized`` or ``paymentError``."""
        return await self._request_status("tokenizeCard")

    async def submit(self) -> Dict[str, Any]:
        """
        Retrieve session data without completing the payment.

        The result arrives as ``sessionDataReady``; the payment itself is
        halted and never produces ``paymentSuccess``.
        """
        return await self._request_status("getSessionData")

    get_session_data = submit

    async def init_google_pay(
        self,
        config: ConfigLike,
        google_pay_config: Optional[Union[GooglePayConfig, Dict[str, Any]]] = None,
    ) -> bool:
        """
        Create the wallet component.

        Raises:
            UnavailableError: Google Pay is not supported on this device
        """
        return await self._request_bool(
            "initGooglePay", {"config": config, "googlePayConfig": google_pay_config or {}}
        )

    async def check_google_pay_availability(self) -> bool:
        return await self._request_bool("checkGooglePayAvailability")

    async def launch_google_pay_sheet(self, request: Optional[Payload] = None) -> Dict[str, Any]:
        """Show the wallet sheet; the result arrives as ``paymentSuccess`` or ``paymentError``."""
        return await self._request_status("launchGooglePaySheet", request or {})

    async def wait_for_result(
        self, source: str = SOURCE_CARD, timeout: Optional[float] = None
    ) -> CallOutcome:
        """
        Wait for the real result of the latest accepted operation on ``source``.

        Returns:
            ``success(payload)`` for cardTokenized/paymentSuccess/sessionDataReady,
            ``failure(code, message)`` for paymentError or disposal

        Raises:
            NotReadyError: No operation was accepted on ``source``
            asyncio.TimeoutError: ``timeout`` elapsed first
        """
        future = self._correlator.authoritative(source)
        if future is None:
            raise NotReadyError(f"No accepted operation on '{source}'")
        return await asyncio.wait_for(asyncio.shield(future), timeout)

    async def dispose(self) -> None:
        """
        Dispose every controller and make the client inert. Idempotent.

        Callback slots stop firing immediately. Outstanding calls are
        force-resolved with a not-ready failure.
        """
        if self._disposed:
            return
        self._disposed = True
        self._dispatcher.close()

        if self._initialized and not self._correlator.closed:
            if self._dispatch_depth:
                # Inside an event handler the front pump is busy with us; don't wait on it
                self._dispose_task = asyncio.ensure_future(self._correlator.invoke("dispose"))
                await asyncio.sleep(0)
            else:
                try:
                    outcome = await asyncio.wait_for(
                        self._correlator.invoke("dispose"),
                        timeout=self.config.dispose_timeout_ms / 1000,
                    )
                    if not outcome.success:
                        logger.warning(f"Native dispose failed: {outcome.code} {outcome.message}")
                except asyncio.TimeoutError:
                    logger.warning("Native side did not acknowledge dispose in time")

        self._correlator.fail_all()
        self._transport.set_inbound_listener(None)
        logger.info("Bridge client disposed")

    # Subscriptions

    def on_card_tokenized(self, handler: Callable[[CardTokenResult], Any]) -> SubscriptionHandle:
        return self._dispatcher.register(EventKind.CARD_TOKENIZED, handler)

    def on_payment_success(
        self, handler: Callable[[PaymentSuccessResult], Any]
    ) -> SubscriptionHandle:
        return self._dispatcher.register(EventKind.PAYMENT_SUCCESS, handler)

    def on_payment_error(self, handler: Callable[[PaymentErrorResult], Any]) -> SubscriptionHandle:
        return self._dispatcher.register(EventKind.PAYMENT_ERROR, handler)

    def on_session_data(self, handler: Callable[[SessionDataResult], Any]) -> SubscriptionHandle:
        return self._dispatcher.register(EventKind.SESSION_DATA_READY, handler)

    def unregister(self, handle: SubscriptionHandle) -> bool:
        return self._dispatcher.unregister(handle)
