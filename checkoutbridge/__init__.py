#!/usr/bin/env python3
"""
checkoutbridge - Payment bridge between a UI front end and a native payment component

Lets an asyncio front end delegate card input, tokenization and payment-session
operations to an isolated native component and receive the results as events.

Key Features:
- Single named channel carrying calls, results and events for one session
- Call/result correlation with acknowledgement-before-consequence ordering
- One callback slot per event kind with an explicit subscription API
- Card and Google Pay controllers with an explicit lifecycle state machine
- Session-data retrieval that intentionally halts the payment
- Pluggable payment capabilities, with a built-in sandbox platform

Usage:
    from checkoutbridge import BridgeSession, SessionConfig

    async with await BridgeSession.create() as session:
        session.client.on_card_tokenized(lambda result: print(result.token))
        await session.client.init_card_view(SessionConfig(...))
        await session.client.tokenize_card()

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

__version__ = "1.0.0"
__author__ = "Firefly Software Solutions Inc"
__license__ = "Apache 2.0"

# Client and session
from .client import BridgeClient
from .session import BridgeSession
from .notifications import NotificationPresenter, PaymentNotification

# Configuration
from .config.bridge_config import BridgeConfig, ConfigurationManager, LoggingConfig
from .config.session_config import (
    AppearanceConfig,
    CardConfig,
    ColorTokens,
    GooglePayConfig,
    SessionConfig,
)

# Core types
from .core.errors import (
    BridgeError,
    CapabilityError,
    DecodeError,
    InFlightError,
    InitError,
    MethodNotImplementedError,
    NotReadyError,
    ResultTimeoutError,
    TransportError,
    UnavailableError,
    ValidationFailedError,
)
from .core.outcome import CallOutcome, ControllerOutcome, SubmitDecision
from .core.results import (
    CardTokenResult,
    EventKind,
    PaymentErrorResult,
    PaymentSuccessResult,
    SessionDataResult,
)
from .core.state import ComponentState

# Native side
from .native.capability import CapabilityRegistry, PaymentPlatform

# Logging
from .logging import get_bridge_logger, setup_bridge_logging, shutdown_bridge_logging

__all__ = [
    # Client and session
    "BridgeClient",
    "BridgeSession",
    "NotificationPresenter",
    "PaymentNotification",
    # Configuration
    "BridgeConfig",
    "ConfigurationManager",
    "LoggingConfig",
    "SessionConfig",
    "AppearanceConfig",
    "ColorTokens",
    "CardConfig",
    "GooglePayConfig",
    # Errors
    "BridgeError",
    "CapabilityError",
    "DecodeError",
    "InFlightError",
    "InitError",
    "MethodNotImplementedError",
    "NotReadyError",
    "ResultTimeoutError",
    "TransportError",
    "UnavailableError",
    "ValidationFailedError",
    # Outcomes, state and results
    "CallOutcome",
    "ControllerOutcome",
    "SubmitDecision",
    "ComponentState",
    "EventKind",
    "CardTokenResult",
    "PaymentSuccessResult",
    "PaymentErrorResult",
    "SessionDataResult",
    # Native side
    "CapabilityRegistry",
    "PaymentPlatform",
    # Logging
    "setup_bridge_logging",
    "get_bridge_logger",
    "shutdown_bridge_logging",
]
