"""
Native side of the bridge: capabilities, controllers and the call-routing host.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

from .capability import (
    CapabilityRegistry,
    CardCapability,
    CardComponent,
    ComponentHooks,
    PaymentPlatform,
    WalletCapability,
    WalletComponent,
)
from .controller import Accepted, CardController, ComponentController, GooglePayController
from .host import NativeHost
from .simulated import (
    TEST_CARD,
    CardInput,
    SimulatedCardCapability,
    SimulatedWalletCapability,
    create_sandbox_platform,
)

__all__ = [
    "Accepted",
    "CapabilityRegistry",
    "CardCapability",
    "CardComponent",
    "CardController",
    "CardInput",
    "ComponentController",
    "ComponentHooks",
    "GooglePayController",
    "NativeHost",
    "PaymentPlatform",
    "SimulatedCardCapability",
    "SimulatedWalletCapability",
    "TEST_CARD",
    "WalletCapability",
    "WalletComponent",
    "create_sandbox_platform",
]
