"""
Sandbox payment capability.

Simulates the card and wallet SDK without any network: Luhn/expiry/CVV
validation, test-card declines, tokenization and session-data submission.
It is the ``sandbox`` platform of the default registry and the capability
used by the tests and the CLI demo.

Test card behaviors follow the common processor test numbers:

* ``4242424242424242`` / ``5555555555554444`` / ``378282246310005`` tokenize
* ``4000000000000002`` is declined
* ``4000000000009995`` is declined for insufficient funds
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

import base64
import json
import logging
import threading
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from typing_extensions import Literal

from ..config.session_config import CardConfig, GooglePayConfig, SessionConfig
from ..core.errors import CapabilityError
from ..core.outcome import SubmitDecision
from .capability import (
    CardCapability,
    CardComponent,
    ComponentHooks,
    PaymentPlatform,
    WalletCapability,
    WalletComponent,
)

logger = logging.getLogger("checkoutbridge.native.simulated")

DECLINED_CARDS = {
    "4000000000000002": "Your card was declined",
    "4000000000009995": "Your card has insufficient funds",
}

TOKEN_ERROR = "TOKEN_ERROR"
SUBMIT_ERROR = "SUBMIT_ERROR"
# What the SDK reports after the merchant halts a submission
PAYMENT_HALTED = "PAYMENT_HALTED"
GOOGLEPAY_CANCELLED = "GOOGLEPAY_CANCELLED"
GOOGLEPAY_ERROR = "GOOGLEPAY_ERROR"

WalletOutcome = Literal["success", "cancel", "error"]


@dataclass
class CardInput:
    """What the user typed into the card component."""

    number: str = ""
    expiry_month: int = 0
    expiry_year: int = 0
    cvv: str = ""
    cardholder_name: Optional[str] = None

    @property
    def digits(self) -> str:
        return "".join(ch for ch in self.number if ch.isdigit())


TEST_CARD = CardInput(number="4242424242424242", expiry_month=12, expiry_year=2030, cvv="100")


def luhn_valid(number: str) -> bool:
    """Luhn checksum over a string of digits."""
    if not number.isdigit():
        return False
    total = 0
    for i, ch in enumerate(reversed(number)):
        digit = int(ch)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def detect_brand(number: str) -> str:
    if number.startswith("4"):
        return "VISA"
    if number[:2] in {"51", "52", "53", "54", "55"} or "2221" <= number[:4] <= "2720":
        return "MASTERCARD"
    if number[:2] in {"34", "37"}:
        return "AMEX"
    return "UNKNOWN"


def _default_token() -> str:
    return f"tok_sbox_{uuid.uuid4().hex[:24]}"


def _default_session_data() -> str:
    blob = json.dumps({"id": f"sd_{uuid.uuid4().hex[:16]}", "type": "card"})
    return base64.b64encode(blob.encode("utf-8")).decode("ascii")


class SimulatedCardComponent(CardComponent):
    def __init__(self, capability: "SimulatedCardCapability", session: SessionConfig,
                 options: CardConfig, hooks: ComponentHooks):
        self._capability = capability
        self.session = session
        self.options = options
        self.hooks = hooks
        self._lock = threading.Lock()
        self._card = CardInput()
        self.closed = False

    def enter_card(self, number: str, expiry_month: int, expiry_year: int, cvv: str,
                   cardholder_name: Optional[str] = None) -> None:
        """Simulate the user typing card details."""
        with self._lock:
            self._card = CardInput(number, expiry_month, expiry_year, cvv, cardholder_name)

    def clear(self) -> None:
        with self._lock:
            self._card = CardInput()

    def _snapshot(self) -> CardInput:
        with self._lock:
            return self._card

    def is_available(self) -> bool:
        return self._capability.available

    def is_valid(self) -> bool:
        self._capability.invocations["validate"] += 1
        return self._validate(self._snapshot())

    def _validate(self, card: CardInput) -> bool:
        digits = card.digits
        if not (13 <= len(digits) <= 19) or not luhn_valid(digits):
            return False
        if not 1 <= card.expiry_month <= 12:
            return False
        now = datetime.now()
        if (card.expiry_year, card.expiry_month) < (now.year, now.month):
            return False
        cvv_length = 4 if detect_brand(digits) == "AMEX" else 3
        if len(card.cvv) != cvv_length or not card.cvv.isdigit():
            return False
        if self.options.show_cardholder_name and not card.cardholder_name:
            return False
        return True

    def tokenize(self, cancelled: threading.Event) -> None:
        self._capability.invocations["tokenize"] += 1
        if self._capability.raise_on_tokenize is not None:
            raise self._capability.raise_on_tokenize
        if cancelled.wait(self._capability.latency):
            logger.debug("Tokenization cancelled")
            return

        card = self._snapshot()
        if not self._validate(card):
            self.hooks.on_error(TOKEN_ERROR, "Card details are incomplete or invalid")
            return
        declined = DECLINED_CARDS.get(card.digits)
        if declined:
            self.hooks.on_error(TOKEN_ERROR, declined)
            return

        digits = card.digits
        details: Dict[str, Any] = {
            "token": self._capability.token_factory(),
            "last4": digits[-4:],
            "bin": digits[:6],
            "brand": detect_brand(digits),
            "expiryMonth": f"{card.expiry_month:02d}",
            "expiryYear": str(card.expiry_year),
            "type": "card",
        }
        if card.cardholder_name:
            details["name"] = card.cardholder_name
        self.hooks.on_tokenized(details)

    def submit(self, cancelled: threading.Event) -> None:
        self._capability.invocations["submit"] += 1
        if cancelled.wait(self._capability.latency):
            logger.debug("Submission cancelled")
            return

        card = self._snapshot()
        if not self._validate(card):
            self.hooks.on_error(SUBMIT_ERROR, "Card details are incomplete or invalid")
            return

        decision = self.hooks.on_submit(self._capability.session_data_factory())
        if cancelled.is_set():
            return
        if decision is SubmitDecision.HALT:
            # The SDK cannot tell a merchant halt from any other failure
            self.hooks.on_error(PAYMENT_HALTED, "Payment submission was rejected")
            return

        declined = DECLINED_CARDS.get(card.digits)
        if declined:
            self.hooks.on_error(SUBMIT_ERROR, declined)
            return
        self.hooks.on_success(f"pay_sbox_{uuid.uuid4().hex[:20]}")

    def close(self) -> None:
        self.closed = True


class SimulatedCardCapability(CardCapability):
    """
    Card capability backed by :class:`SimulatedCardComponent`.

    Args:
        card: Card details pre-entered into every new component
        available: What ``is_available`` reports
        latency: Seconds each tokenize/submit takes (cancellable)
        token_factory: Produces the token for a successful tokenization
        session_data_factory: Produces the opaque session data on submit
        raise_on_create: Raised from ``create_component``
        raise_on_tokenize: Raised from ``tokenize``
    """

    def __init__(
        self,
        card: Optional[CardInput] = None,
        available: bool = True,
        latency: float = 0.0,
        token_factory: Callable[[], str] = _default_token,
        session_data_factory: Callable[[], str] = _default_session_data,
        raise_on_create: Optional[Exception] = None,
        raise_on_tokenize: Optional[Exception] = None,
    ):
        self.card = card
        self.available = available
        self.latency = latency
        self.token_factory = token_factory
        self.session_data_factory = session_data_factory
        self.raise_on_create = raise_on_create
        self.raise_on_tokenize = raise_on_tokenize
        self.invocations: Counter = Counter()
        self.components: List[SimulatedCardComponent] = []

    @property
    def last_component(self) -> Optional[SimulatedCardComponent]:
        return self.components[-1] if self.components else None

    @property
    def total_invocations(self) -> int:
        return sum(self.invocations.values())

    def create_component(self, session: SessionConfig, options: CardConfig,
                         hooks: ComponentHooks) -> SimulatedCardComponent:
        self.invocations["create"] += 1
        if self.raise_on_create is not None:
            raise self.raise_on_create
        if not session.public_key.startswith("pk_"):
            raise CapabilityError("INVALID_PUBLIC_KEY", "Public key must start with 'pk_'")

        component = SimulatedCardComponent(self, session, options, hooks)
        if self.card is not None:
            component.enter_card(
                self.card.number,
                self.card.expiry_month,
                self.card.expiry_year,
                self.card.cvv,
                self.card.cardholder_name,
            )
        self.components.append(component)
        return component


class SimulatedWalletComponent(WalletComponent):
    def __init__(self, capability: "SimulatedWalletCapability", session: SessionConfig,
                 options: GooglePayConfig, hooks: ComponentHooks):
        self._capability = capability
        self.session = session
        self.options = options
        self.hooks = hooks
        self.requests: List[Dict[str, Any]] = []
        self.closed = False

    def is_available(self) -> bool:
        self._capability.invocations["availability"] += 1
        return self._capability.available

    def launch(self, request: Dict[str, Any], cancelled: threading.Event) -> None:
        self._capability.invocations["launch"] += 1
        self.requests.append(dict(request))
        if cancelled.wait(self._capability.latency):
            logger.debug("Payment sheet cancelled")
            return

        outcome = self._capability.outcome
        if outcome == "success":
            self.hooks.on_success(f"pay_gpay_{uuid.uuid4().hex[:20]}")
        elif outcome == "cancel":
            self.hooks.on_error(GOOGLEPAY_CANCELLED, "User closed the payment sheet")
        else:
            self.hooks.on_error(GOOGLEPAY_ERROR, "Google Pay payment failed")

    def close(self) -> None:
        self.closed = True


class SimulatedWalletCapability(WalletCapability):
    """
    Wallet capability backed by :class:`SimulatedWalletComponent`.

    ``outcome`` selects what the sheet does: ``success``, ``cancel`` or ``error``.
    """

    def __init__(self, available: bool = True, outcome: WalletOutcome = "success", latency: float = 0.0,
                 raise_on_create: Optional[Exception] = None):
        self.available = available
        self.outcome = outcome
        self.latency = latency
        self.raise_on_create = raise_on_create
        self.invocations: Counter = Counter()
        self.components: List[SimulatedWalletComponent] = []

    @property
    def last_component(self) -> Optional[SimulatedWalletComponent]:
        return self.components[-1] if self.components else None

    @property
    def total_invocations(self) -> int:
        return sum(self.invocations.values())

    def create_component(self, session: SessionConfig, options: GooglePayConfig,
                         hooks: ComponentHooks) -> SimulatedWalletComponent:
        self.invocations["create"] += 1
        if self.raise_on_create is not None:
            raise self.raise_on_create
        component = SimulatedWalletComponent(self, session, options, hooks)
        self.components.append(component)
        return component


def create_sandbox_platform() -> PaymentPlatform:
    """The ``sandbox`` platform: simulated card and wallet, test card pre-entered."""
    return PaymentPlatform(
        name="sandbox",
        card=SimulatedCardCapability(card=TEST_CARD),
        wallet=SimulatedWalletCapability(),
    )
