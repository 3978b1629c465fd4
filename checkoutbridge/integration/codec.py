"""
Envelope codec for the checkout bridge channel.

Serializes calls, results and events to JSON frames and back. Every payload
is checked against the supported value kinds on the way out *and* on the way
in, so a malformed frame fails with a decode error at the channel boundary
instead of surfacing later as a type error in a controller.
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

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel

from ..core.errors import DecodeError
from ..core.outcome import CallOutcome
from ..core.values import BridgeValue, Payload, check_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallEnvelope:
    """A front-end call: ``{id, method, payload}``."""

    call_id: str
    method: str
    payload: Payload = field(default_factory=dict)


@dataclass(frozen=True)
class ResultEnvelope:
    """The immediate outcome of one call: ``{id, ok, result, error}``."""

    call_id: str
    ok: bool
    result: Any = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @classmethod
    def from_outcome(cls, call_id: str, outcome: CallOutcome) -> "ResultEnvelope":
        if outcome.success:
            return cls(call_id=call_id, ok=True, result=outcome.value)
        return cls(
            call_id=call_id,
            ok=False,
            error_code=outcome.code,
            error_message=outcome.message,
        )

    def to_outcome(self) -> CallOutcome:
        if self.ok:
            return CallOutcome.ok(self.result)
        return CallOutcome.failed(self.error_code or "", self.error_message or "")


@dataclass(frozen=True)
class EventEnvelope:
    """A native-originated event: ``{event, payload}``."""

    event: str
    payload: Payload = field(default_factory=dict)


Envelope = Union[CallEnvelope, ResultEnvelope, EventEnvelope]


class EnvelopeCodec:
    """
    JSON codec for channel frames.

    Frames are compact JSON objects. NaN and infinities are refused, mapping
    keys must be strings, and only string/number/boolean/null/list/mapping
    values are accepted.
    """

    def prepare_value(self, value: Any) -> Any:
        """
        Convert a Python object into a plain channel value.

        Pydantic models are dumped by alias (the wire names); anything else
        must already be one of the supported kinds.
        """
        if isinstance(value, BaseModel):
            if hasattr(value, "to_payload"):
                value = value.to_payload()
            else:
                value = value.model_dump(by_alias=True, exclude_none=True)
        elif isinstance(value, dict):
            value = {k: self.prepare_value(v) for k, v in value.items()}
        elif isinstance(value, (list, tuple)):
            value = [self.prepare_value(item) for item in value]
        return BridgeValue.of(value).to_python()

    def encode(self, envelope: Envelope) -> str:
        """Encode an envelope into a frame."""
        if isinstance(envelope, CallEnvelope):
            frame: Dict[str, Any] = {
                "id": envelope.call_id,
                "method": envelope.method,
                "payload": self.prepare_value(envelope.payload or {}),
            }
        elif isinstance(envelope, ResultEnvelope):
            frame = {
                "id": envelope.call_id,
                "ok": envelope.ok,
                "result": self.prepare_value(envelope.result),
                "error": None
                if envelope.ok
                else {"code": envelope.error_code, "message": envelope.error_message},
            }
        elif isinstance(envelope, EventEnvelope):
            frame = {
                "event": envelope.event,
                "payload": self.prepare_value(envelope.payload or {}),
            }
        else:
            raise DecodeError(f"Cannot encode {type(envelope).__name__}")

        try:
            return json.dumps(frame, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Frame is not serializable: {e}") from e

    def decode(self, frame: Union[str, bytes]) -> Envelope:
        """
        Decode a frame into an envelope.

        Raises:
            DecodeError: If the frame is not valid JSON or does not have the
                shape of a call, result or event
        """
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8")

        try:
            data = json.loads(frame)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Frame is not valid JSON: {e.msg}") from e

        if not isinstance(data, dict):
            raise DecodeError("Frame must be a JSON object")

        if "method" in data:
            return CallEnvelope(
                call_id=self._require_str(data, "id"),
                method=self._require_str(data, "method"),
                payload=check_payload(data.get("payload")),
            )

        if "event" in data:
            return EventEnvelope(
                event=self._require_str(data, "event"),
                payload=check_payload(data.get("payload")),
            )

        if "ok" in data:
            ok = data["ok"]
            if not isinstance(ok, bool):
                raise DecodeError("Result field 'ok' must be a boolean")
            call_id = self._require_str(data, "id")
            if ok:
                return ResultEnvelope(
                    call_id=call_id, ok=True, result=BridgeValue.of(data.get("result")).to_python()
                )
            error = data.get("error")
            if not isinstance(error, dict):
                raise DecodeError("Failed result must carry an error object")
            return ResultEnvelope(
                call_id=call_id,
                ok=False,
                error_code=self._require_str(error, "code"),
                error_message=str(error.get("message") or ""),
            )

        raise DecodeError("Frame is neither a call, a result nor an event")

    def encode_payload(self, payload: Any) -> str:
        """Encode a bare payload mapping."""
        prepared = self.prepare_value(payload if payload is not None else {})
        if not isinstance(prepared, dict):
            raise DecodeError("Payload must be a mapping")
        return json.dumps(prepared, separators=(",", ":"), allow_nan=False)

    def decode_payload(self, text: Union[str, bytes]) -> Payload:
        """Decode a bare payload mapping."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Payload is not valid JSON: {e.msg}") from e
        return check_payload(data)

    @staticmethod
    def _require_str(data: Dict[str, Any], key: str) -> str:
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise DecodeError(f"Frame field '{key}' must be a non-empty string")
        return value


# Global codec instance
_codec = EnvelopeCodec()


def get_codec() -> EnvelopeCodec:
    """Get the shared codec instance."""
    return _codec
