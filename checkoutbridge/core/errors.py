"""
Error taxonomy for the checkout bridge.

Every failure that can cross the channel is one of these kinds. The native
host converts them to ``(code, message)`` pairs; the client rebuilds the
matching exception from the pair with :func:`error_from_outcome`.
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

from typing import Dict, Optional, Type

# Stable wire codes
CARD_NOT_READY = "CARD_NOT_READY"
GOOGLEPAY_NOT_READY = "GOOGLEPAY_NOT_READY"
BRIDGE_NOT_READY = "BRIDGE_NOT_READY"
OPERATION_IN_FLIGHT = "OPERATION_IN_FLIGHT"
VALIDATION_FAILED = "VALIDATION_FAILED"
INIT_ERROR = "INIT_ERROR"
TRANSPORT_ERROR = "TRANSPORT_ERROR"
GOOGLEPAY_NOT_AVAILABLE = "GOOGLEPAY_NOT_AVAILABLE"
NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
DECODE_ERROR = "DECODE_ERROR"
RESULT_TIMEOUT = "RESULT_TIMEOUT"


class BridgeError(Exception):
    """Base class for all bridge failures. Carries a stable code and a message."""

    default_code = TRANSPORT_ERROR

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code or self.default_code
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        """Convert to the ``{code, message}`` pair used on the wire."""
        return {"code": self.code, "message": self.message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class NotReadyError(BridgeError):
    """Controller absent, not yet initialized, or disposed."""

    default_code = BRIDGE_NOT_READY


class InFlightError(NotReadyError):
    """Another operation is already running on the controller."""

    default_code = OPERATION_IN_FLIGHT


class ValidationFailedError(BridgeError):
    """Card details were rejected before tokenizing."""

    default_code = VALIDATION_FAILED


class InitError(BridgeError):
    """Bad session configuration or the payment capability failed to start."""

    default_code = INIT_ERROR


class TransportError(BridgeError):
    """The underlying payment capability (or the channel itself) raised an error."""

    default_code = TRANSPORT_ERROR


class UnavailableError(BridgeError):
    """Wallet payment method is not supported on this device."""

    default_code = GOOGLEPAY_NOT_AVAILABLE


class MethodNotImplementedError(BridgeError):
    default_code = NOT_IMPLEMENTED


class DecodeError(BridgeError):
    """A payload did not match the shape its call or event requires."""

    default_code = DECODE_ERROR


class ResultTimeoutError(BridgeError):
    default_code = RESULT_TIMEOUT


class IllegalStateTransition(RuntimeError):
    """Raised when a controller attempts a transition its state table forbids."""


class CapabilityError(Exception):
    """
    Raised by payment capability implementations.

    The controller boundary maps it to a ``(code, message)`` pair; it never
    crosses the channel itself.
    """

    def __init__(self, code: str, message: str):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


_ERRORS_BY_CODE: Dict[str, Type[BridgeError]] = {
    CARD_NOT_READY: NotReadyError,
    GOOGLEPAY_NOT_READY: NotReadyError,
    BRIDGE_NOT_READY: NotReadyError,
    OPERATION_IN_FLIGHT: InFlightError,
    VALIDATION_FAILED: ValidationFailedError,
    INIT_ERROR: InitError,
    TRANSPORT_ERROR: TransportError,
    GOOGLEPAY_NOT_AVAILABLE: UnavailableError,
    NOT_IMPLEMENTED: MethodNotImplementedError,
    DECODE_ERROR: DecodeError,
    RESULT_TIMEOUT: ResultTimeoutError,
}


def error_from_outcome(code: str, message: str) -> BridgeError:
    """
    Rebuild a taxonomy exception from a wire ``(code, message)`` pair.

    Codes the taxonomy does not know (capability-supplied ones such as
    ``TOKEN_ERROR``) become :class:`TransportError` with the original code kept.
    """
    error_cls = _ERRORS_BY_CODE.get(code, TransportError)
    return error_cls(message, code=code)
