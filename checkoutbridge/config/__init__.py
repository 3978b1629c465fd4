"""
Configuration module for checkoutbridge.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0 (the "License");
"""

from .bridge_config import BridgeConfig, ConfigurationManager, LoggingConfig
from .session_config import (
    AppearanceConfig,
    CardConfig,
    ColorTokens,
    GooglePayConfig,
    SessionConfig,
)

__all__ = [
    # Bridge configuration
    "BridgeConfig",
    "LoggingConfig",
    "ConfigurationManager",
    # Session value objects
    "SessionConfig",
    "AppearanceConfig",
    "ColorTokens",
    "CardConfig",
    "GooglePayConfig",
]
