"""
User-facing result notifications.

Turns every terminal outcome of the bridge into one notification handed to
a single sink (a dialog in an app, stdout in the CLI demo).
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
from dataclasses import dataclass
from typing import Any, Callable, List

from .client import BridgeClient
from .core.errors import BridgeError, InFlightError, NotReadyError, ValidationFailedError
from .core.results import CardTokenResult, PaymentErrorResult, PaymentSuccessResult, SessionDataResult
from .integration.dispatcher import SubscriptionHandle

logger = logging.getLogger(__name__)

TITLE_CARD_TOKENIZED = "Card Tokenized"
TITLE_SESSION_DATA = "Session Data"
TITLE_PAYMENT_SUCCESS = "Payment Successful"
TITLE_PAYMENT_ERROR = "Payment Error"
TITLE_VALIDATION_ERROR = "Validation Error"


@dataclass(frozen=True)
class PaymentNotification:
    title: str
    message: str
    is_success: bool


NotificationSink = Callable[[PaymentNotification], Any]


def _or_na(value: Any) -> str:
    return str(value) if value else "N/A"


class NotificationPresenter:
    """Subscribes to a client's events and reports each outcome to ``sink``."""

    def __init__(self, client: BridgeClient, sink: NotificationSink):
        self.client = client
        self.sink = sink
        self._handles: List[SubscriptionHandle] = []

    def attach(self) -> "NotificationPresenter":
        self.detach()
        self._handles = [
            self.client.on_card_tokenized(self._on_card_tokenized),
            self.client.on_session_data(self._on_session_data),
            self.client.on_payment_success(self._on_payment_success),
            self.client.on_payment_error(self._on_payment_error),
        ]
        return self

    def detach(self) -> None:
        for handle in self._handles:
            self.client.unregister(handle)
        self._handles = []

    def notify(self, title: str, message: str, is_success: bool) -> None:
        notification = PaymentNotification(title, message, is_success)
        logger.debug(f"Notification: {title}")
        self.sink(notification)

    def report_failure(self, error: BridgeError) -> None:
        """Report a call that failed immediately."""
        message = f"{error.code}: {error.message}"
        if isinstance(error, NotReadyError) and not isinstance(error, InFlightError):
            message += " (initialize the bridge and the payment view first)"
        self.notify(TITLE_PAYMENT_ERROR, message, False)

    async def tokenize_with_validation(self) -> bool:
        """
        Validate the card and tokenize it only if valid.

        Returns:
            True if tokenization was accepted; every other ending was
            already reported to the sink
        """
        try:
            if not await self.client.validate_card():
                raise ValidationFailedError("Please check your card details")
            await self.client.tokenize_card()
        except ValidationFailedError as e:
            self.notify(TITLE_VALIDATION_ERROR, e.message, False)
            return False
        except BridgeError as e:
            self.report_failure(e)
            return False
        return True

    async def request_session_data(self) -> bool:
        try:
            await self.client.submit()
        except BridgeError as e:
            self.report_failure(e)
            return False
        return True

    def _on_card_tokenized(self, result: CardTokenResult) -> None:
        self.notify(
            TITLE_CARD_TOKENIZED,
            f"Token: {result.token}\n"
            f"Last 4: {_or_na(result.last4)}\n"
            f"Brand: {_or_na(result.brand)}\n"
            f"Expiry: {_or_na(result.expiry_month)}/{_or_na(result.expiry_year)}",
            True,
        )

    def _on_session_data(self, result: SessionDataResult) -> None:
        self.notify(TITLE_SESSION_DATA, f"Session Data: {result.session_data}", True)

    def _on_payment_success(self, result: PaymentSuccessResult) -> None:
        self.notify(TITLE_PAYMENT_SUCCESS, f"Payment ID: {result.payment_id}", True)

    def _on_payment_error(self, result: PaymentErrorResult) -> None:
        self.notify(TITLE_PAYMENT_ERROR, f"{result.error_code}: {result.error_message}", False)
