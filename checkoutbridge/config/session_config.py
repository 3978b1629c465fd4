"""
Session and component configuration value objects.

These are the opaque, externally owned payloads passed to ``initCardView`` and
``initGooglePay``. They are validated once, frozen, and never mutated
afterwards. Field aliases match the names used on the channel.
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

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from ..core.errors import InitError
from ..utils.helpers import mask_identifier

VALID_ENVIRONMENTS = {"sandbox", "production"}


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "")


class ColorTokens(BaseModel):
    """ARGB color tokens forwarded to the card component's theme."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    color_action: Optional[int] = Field(default=None, alias="colorAction")
    color_primary: Optional[int] = Field(default=None, alias="colorPrimary")
    color_border: Optional[int] = Field(default=None, alias="colorBorder")
    color_form_border: Optional[int] = Field(default=None, alias="colorFormBorder")


class AppearanceConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    border_radius: Optional[float] = Field(default=None, ge=0, alias="borderRadius")
    color_tokens: Optional[ColorTokens] = Field(default=None, alias="colorTokens")


class SessionConfig(BaseModel):
    """
    Payment session credentials.

    The secret is held as a :class:`~pydantic.SecretStr`; use :meth:`redacted`
    for anything that may be logged.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    payment_session_id: str = Field(alias="paymentSessionID", min_length=1)
    payment_session_secret: SecretStr = Field(alias="paymentSessionSecret")
    public_key: str = Field(alias="publicKey", min_length=1)
    environment: str = Field(default="sandbox")
    appearance: Optional[AppearanceConfig] = None

    @field_validator("payment_session_secret")
    @classmethod
    def secret_must_not_be_empty(cls, v):
        if not v.get_secret_value():
            raise ValueError("paymentSessionSecret must not be empty")
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, v):
        if v is None or v == "":
            return "sandbox"
        # Unknown names are rejected, never mapped to sandbox
        if not isinstance(v, str) or v.lower() not in VALID_ENVIRONMENTS:
            raise ValueError(f"environment must be one of: {sorted(VALID_ENVIRONMENTS)}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def to_payload(self) -> Dict[str, Any]:
        """Serialize for the channel, secret included."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["paymentSessionSecret"] = self.payment_session_secret.get_secret_value()
        return data

    def redacted(self) -> Dict[str, Any]:
        """Log-safe view: identifiers masked, secret never shown."""
        return {
            "paymentSessionID": mask_identifier(self.payment_session_id),
            "paymentSessionSecret": "[REDACTED]",
            "publicKey": mask_identifier(self.public_key),
            "environment": self.environment,
        }

    @classmethod
    def from_payload(cls, payload: Any) -> "SessionConfig":
        """
        Decode from a channel payload.

        Raises:
            InitError: If required session parameters are missing or malformed
        """
        if not isinstance(payload, dict):
            raise InitError("Missing required payment session parameters")
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InitError(f"Invalid payment session parameters ({_first_error(e)})") from e


class CardConfig(BaseModel):
    """Card input options."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    show_cardholder_name: bool = Field(default=False, alias="showCardholderName")
    enable_billing_address: bool = Field(default=False, alias="enableBillingAddress")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_payload(cls, payload: Any) -> "CardConfig":
        if payload is None:
            return cls()
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InitError(f"Invalid card options ({_first_error(e)})") from e


class GooglePayConfig(BaseModel):
    """Wallet (Google Pay) options."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    merchant_name: Optional[str] = Field(default=None, alias="merchantName")
    allowed_card_networks: Tuple[str, ...] = Field(
        default=("VISA", "MASTERCARD"), alias="allowedCardNetworks"
    )
    billing_address_required: bool = Field(default=False, alias="billingAddressRequired")

    @field_validator("allowed_card_networks")
    @classmethod
    def networks_must_not_be_empty(cls, v):
        if not v:
            raise ValueError("allowedCardNetworks must list at least one network")
        return tuple(network.upper() for network in v)

    def to_payload(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["allowedCardNetworks"] = list(self.allowed_card_networks)
        return data

    @classmethod
    def from_payload(cls, payload: Any) -> "GooglePayConfig":
        if payload is None:
            return cls()
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise InitError(f"Invalid Google Pay options ({_first_error(e)})") from e
