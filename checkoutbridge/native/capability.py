"""
Payment capability interfaces.

A capability is the payment SDK seen from the controller: it creates a
component, validates card input, tokenizes, submits and reports back
through :class:`ComponentHooks`. One implementation exists per target
platform and is picked at startup from :class:`CapabilityRegistry` by the
configured platform name.
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

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from ..config.session_config import CardConfig, GooglePayConfig, SessionConfig
from ..core.errors import InitError
from ..core.outcome import SubmitDecision


class ComponentHooks(ABC):
    """
    Completion hooks a component calls while an operation runs.

    Hooks may be called from any thread. ``on_submit`` must answer
    synchronously: ``PROCEED`` lets the payment settle, ``HALT`` stops it.
    """

    @abstractmethod
    def on_tokenized(self, details: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def on_success(self, payment_id: str) -> None:
        pass

    @abstractmethod
    def on_error(self, code: str, message: str) -> None:
        pass

    @abstractmethod
    def on_submit(self, session_data: str) -> SubmitDecision:
        pass


class CardComponent(ABC):
    """A card-input component created by a :class:`CardCapability`."""

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def is_valid(self) -> bool:
        """Whether the current card input is complete and valid."""

    @abstractmethod
    def tokenize(self, cancelled: threading.Event) -> None:
        """Tokenize the card; report through ``on_tokenized`` or ``on_error``."""

    @abstractmethod
    def submit(self, cancelled: threading.Event) -> None:
        """
        Submit the payment.

        Calls ``on_submit`` with the session data first. On ``PROCEED`` the
        component settles and calls ``on_success``; on ``HALT`` it reports a
        generic ``on_error``.
        """

    def close(self) -> None:
        pass


class WalletComponent(ABC):
    """A wallet (Google Pay) component created by a :class:`WalletCapability`."""

    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def launch(self, request: Dict[str, Any], cancelled: threading.Event) -> None:
        """Show the payment sheet; report through ``on_success`` or ``on_error``."""

    def close(self) -> None:
        pass


class CardCapability(ABC):
    @abstractmethod
    def create_component(
        self, session: SessionConfig, options: CardConfig, hooks: ComponentHooks
    ) -> CardComponent:
        """
        Create the card component.

        Raises:
            CapabilityError: If the SDK refuses the session
        """


class WalletCapability(ABC):
    @abstractmethod
    def create_component(
        self, session: SessionConfig, options: GooglePayConfig, hooks: ComponentHooks
    ) -> WalletComponent:
        pass


@dataclass
class PaymentPlatform:
    """The capabilities one target platform provides."""

    name: str
    card: CardCapability
    wallet: WalletCapability


PlatformFactory = Callable[[], PaymentPlatform]


class CapabilityRegistry:
    """Maps platform names (``BridgeConfig.platform``) to capability factories."""

    def __init__(self):
        self._factories: Dict[str, PlatformFactory] = {}

    def register(self, name: str, factory: PlatformFactory) -> None:
        self._factories[name.lower()] = factory

    def names(self) -> List[str]:
        return sorted(self._factories)

    def create(self, name: str) -> PaymentPlatform:
        """
        Build the platform registered under ``name``.

        Raises:
            InitError: If no platform is registered under that name
        """
        factory = self._factories.get(name.lower())
        if factory is None:
            raise InitError(
                f"No payment capability registered for platform '{name}' "
                f"(available: {', '.join(self.names()) or 'none'})"
            )
        return factory()

    @classmethod
    def with_defaults(cls) -> "CapabilityRegistry":
        """Registry with the built-in ``sandbox`` platform."""
        from .simulated import create_sandbox_platform

        registry = cls()
        registry.register("sandbox", create_sandbox_platform)
        return registry
