"""Event kinds and the typed results decoded from their payloads."""

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

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .values import Payload, optional_string, require_string


class EventKind(str, Enum):
    """Native-originated events, by wire name."""

    CARD_TOKENIZED = "cardTokenized"
    PAYMENT_SUCCESS = "paymentSuccess"
    PAYMENT_ERROR = "paymentError"
    SESSION_DATA_READY = "sessionDataReady"

    @classmethod
    def from_name(cls, name: str) -> Optional["EventKind"]:
        """Look up a kind by wire name; ``None`` for unknown names."""
        try:
            return cls(name)
        except ValueError:
            return None


@dataclass(frozen=True)
class CardTokenResult:
    """Authoritative result of ``tokenizeCard``."""

    token: str
    last4: Optional[str] = None
    brand: Optional[str] = None
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None
    source: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Payload) -> "CardTokenResult":
        known = {"token", "last4", "brand", "expiryMonth", "expiryYear", "source"}
        return cls(
            token=require_string(payload, "token"),
            last4=optional_string(payload, "last4"),
            brand=optional_string(payload, "brand"),
            expiry_month=optional_string(payload, "expiryMonth"),
            expiry_year=optional_string(payload, "expiryYear"),
            source=optional_string(payload, "source"),
            extra={k: v for k, v in payload.items() if k not in known},
        )


@dataclass(frozen=True)
class PaymentSuccessResult:
    payment_id: str
    source: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Payload) -> "PaymentSuccessResult":
        return cls(
            payment_id=require_string(payload, "paymentId"),
            source=optional_string(payload, "source"),
        )


@dataclass(frozen=True)
class PaymentErrorResult:
    error_code: str
    error_message: str
    source: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Payload) -> "PaymentErrorResult":
        return cls(
            error_code=require_string(payload, "code"),
            error_message=require_string(payload, "message", allow_empty=True),
            source=optional_string(payload, "source"),
        )


@dataclass(frozen=True)
class SessionDataResult:
    """
    Authoritative result of ``getSessionData``.

    ``session_data`` is opaque; it is handed to the merchant backend, which
    completes the payment out-of-band.
    """

    session_data: str
    source: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Payload) -> "SessionDataResult":
        return cls(
            session_data=require_string(payload, "sessionData"),
            source=optional_string(payload, "source"),
        )


EVENT_DECODERS: Dict[EventKind, Callable[[Payload], Any]] = {
    EventKind.CARD_TOKENIZED: CardTokenResult.from_payload,
    EventKind.PAYMENT_SUCCESS: PaymentSuccessResult.from_payload,
    EventKind.PAYMENT_ERROR: PaymentErrorResult.from_payload,
    EventKind.SESSION_DATA_READY: SessionDataResult.from_payload,
}
