"""
Core types shared by both sides of the bridge.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

from .errors import (
    BridgeError,
    CapabilityError,
    DecodeError,
    IllegalStateTransition,
    InFlightError,
    InitError,
    MethodNotImplementedError,
    NotReadyError,
    ResultTimeoutError,
    TransportError,
    UnavailableError,
    ValidationFailedError,
    error_from_outcome,
)
from .outcome import CallOutcome, ControllerOutcome, SubmitDecision
from .results import (
    CardTokenResult,
    EventKind,
    PaymentErrorResult,
    PaymentSuccessResult,
    SessionDataResult,
)
from .state import ComponentState
from .values import BridgeValue, ValueKind

__all__ = [
    # Errors
    "BridgeError",
    "CapabilityError",
    "DecodeError",
    "IllegalStateTransition",
    "InFlightError",
    "InitError",
    "MethodNotImplementedError",
    "NotReadyError",
    "ResultTimeoutError",
    "TransportError",
    "UnavailableError",
    "ValidationFailedError",
    "error_from_outcome",
    # Outcomes and state
    "CallOutcome",
    "ControllerOutcome",
    "SubmitDecision",
    "ComponentState",
    # Results
    "EventKind",
    "CardTokenResult",
    "PaymentSuccessResult",
    "PaymentErrorResult",
    "SessionDataResult",
    # Values
    "BridgeValue",
    "ValueKind",
]
