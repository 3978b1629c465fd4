"""Call outcomes and controller completion outcomes."""

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

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .errors import BridgeError, error_from_outcome

STATUS_PROCESSING = "processing"
STATUS_LAUNCHED = "launched"


@dataclass(frozen=True)
class CallOutcome:
    """
    Terminal immediate outcome of one call: ``success(value)`` or ``failure(code, message)``.

    For tokenize/submit/sheet calls a success only means the work was accepted;
    the authoritative result arrives later as an event.
    """

    success: bool
    value: Any = None
    code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, value: Any = None) -> "CallOutcome":
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, code: str, message: str) -> "CallOutcome":
        return cls(success=False, code=code, message=message)

    @classmethod
    def from_error(cls, error: BridgeError) -> "CallOutcome":
        return cls.failed(error.code, error.message)

    @property
    def is_accepted(self) -> bool:
        """True for the provisional ``{status: processing|launched}`` acknowledgement."""
        return (
            self.success
            and isinstance(self.value, dict)
            and self.value.get("status") in (STATUS_PROCESSING, STATUS_LAUNCHED)
        )

    def unwrap(self) -> Any:
        """Return the value, or raise the taxonomy error matching the failure code."""
        if self.success:
            return self.value
        raise error_from_outcome(self.code or "", self.message or "")

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"ok": True, "result": self.value, "error": None}
        return {"ok": False, "result": None, "error": {"code": self.code, "message": self.message}}


class ControllerOutcome(Enum):
    """
    How an asynchronous controller operation ended.

    ``INTENTIONALLY_HALTED`` is the session-data path: the payment was stopped
    on purpose after the session data was handed to the front end. It is not
    a failure and never produces a ``paymentError`` event.
    """

    COMPLETED = "completed"
    INTENTIONALLY_HALTED = "intentionally_halted"
    FAILED = "failed"


class SubmitDecision(Enum):
    """Answer given to the capability's submit hook."""

    PROCEED = "proceed"
    HALT = "halt"
