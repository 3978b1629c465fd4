"""
Native host: routes channel calls to the card and wallet controllers.

Every call gets exactly one reply. Failures are converted to ``(code,
message)`` pairs here, so no exception crosses the channel.
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
from typing import Any, Awaitable, Callable, Dict, Optional

from ..config.bridge_config import BridgeConfig
from ..config.session_config import CardConfig, GooglePayConfig, SessionConfig
from ..core.errors import (
    CARD_NOT_READY,
    GOOGLEPAY_NOT_READY,
    TRANSPORT_ERROR,
    BridgeError,
    InFlightError,
    NotReadyError,
)
from ..core.values import Payload
from ..integration.channel import CallResponder, ChannelTransport
from ..integration.codec import CallEnvelope
from .capability import PaymentPlatform
from .controller import Accepted, CardController, ComponentController, GooglePayController

logger = logging.getLogger(__name__)

Route = Callable[[Payload], Awaitable[Any]]


class NativeHost:
    """
    The native side of one bridge session.

    Owns at most one live card controller and one live wallet controller.
    Initializing again replaces an idle controller with a fresh one; a busy
    controller is never replaced.
    """

    def __init__(self, transport: ChannelTransport, platform: PaymentPlatform,
                 config: Optional[BridgeConfig] = None):
        self.transport = transport
        self.platform = platform
        self.config = config or BridgeConfig()
        self.card: Optional[CardController] = None
        self.wallet: Optional[GooglePayController] = None
        self._routes: Dict[str, Route] = {
            "initCardView": self._init_card_view,
            "validateCard": self._validate_card,
            "tokenizeCard": self._tokenize_card,
            "getSessionData": self._get_session_data,
            "initGooglePay": self._init_google_pay,
            "checkGooglePayAvailability": self._check_google_pay_availability,
            "launchGooglePaySheet": self._launch_google_pay_sheet,
            "dispose": self._dispose,
        }

    def attach(self) -> None:
        """Start receiving calls from the transport."""
        self.transport.set_call_handler(self.handle_call)

    def detach(self) -> None:
        self.transport.set_call_handler(None)

    async def handle_call(self, call: CallEnvelope, responder: CallResponder) -> None:
        logger.debug(f"Method call: {call.method}")

        route = self._routes.get(call.method)
        if route is None:
            logger.warning(f"Unknown method '{call.method}'")
            responder.not_implemented()
            return

        try:
            result = await route(call.payload)
        except BridgeError as e:
            logger.info(f"{call.method} failed: {e.code} {e.message}")
            responder.error(e.code, e.message)
            return
        except Exception as e:
            logger.exception(f"{call.method} failed unexpectedly")
            responder.error(TRANSPORT_ERROR, str(e) or type(e).__name__)
            return

        if isinstance(result, Accepted):
            # Acknowledge first so the caller sees it before any event the work produces
            responder.success(result.value)
            result.launch()
        else:
            responder.success(result)

    # Controller management

    def _controller_options(self) -> Dict[str, Any]:
        return {
            "executor_workers": self.config.executor_workers,
            "result_timeout": self.config.result_timeout_seconds,
        }

    @staticmethod
    def _retire(controller: Optional[ComponentController]) -> None:
        if controller is None or controller.is_disposed:
            return
        if controller.state.is_busy:
            raise InFlightError(f"{controller.label} is busy; cannot re-initialize")
        logger.info(f"{controller.label}: re-initializing, disposing previous instance")
        controller.dispose()

    def _card_controller(self) -> CardController:
        if self.card is None:
            raise NotReadyError("Card view not initialized", code=CARD_NOT_READY)
        return self.card

    def _wallet_controller(self) -> GooglePayController:
        if self.wallet is None:
            raise NotReadyError("Google Pay view not initialized", code=GOOGLEPAY_NOT_READY)
        return self.wallet

    def dispose_all(self) -> int:
        """Dispose every live controller; returns how many were disposed."""
        disposed = 0
        for controller in (self.card, self.wallet):
            if controller is not None and controller.dispose():
                disposed += 1
        return disposed

    # Routes

    async def _init_card_view(self, payload: Payload) -> bool:
        session = SessionConfig.from_payload(payload.get("config"))
        options = CardConfig.from_payload(payload.get("cardConfig"))
        self._retire(self.card)
        self.card = CardController(
            self.platform.card, self.transport.post_event, **self._controller_options()
        )
        return await self.card.initialize(session, options)

    async def _validate_card(self, payload: Payload) -> bool:
        return await self._card_controller().validate()

    async def _tokenize_card(self, payload: Payload) -> Accepted:
        return self._card_controller().tokenize()

    async def _get_session_data(self, payload: Payload) -> Accepted:
        return self._card_controller().submit_session_data()

    async def _init_google_pay(self, payload: Payload) -> bool:
        session = SessionConfig.from_payload(payload.get("config"))
        options = GooglePayConfig.from_payload(payload.get("googlePayConfig"))
        self._retire(self.wallet)
        self.wallet = GooglePayController(
            self.platform.wallet, self.transport.post_event, **self._controller_options()
        )
        return await self.wallet.initialize(session, options)

    async def _check_google_pay_availability(self, payload: Payload) -> bool:
        return await self._wallet_controller().check_availability()

    async def _launch_google_pay_sheet(self, payload: Payload) -> Accepted:
        return self._wallet_controller().launch_sheet(payload)

    async def _dispose(self, payload: Payload) -> bool:
        self.dispose_all()
        return True
