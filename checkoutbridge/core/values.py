"""
Tagged value type for everything that crosses the channel.

A payload is a mapping of string keys to values, where a value is
recursively one of: string, number, boolean, null, list of values, or
mapping of string to values. :class:`BridgeValue` is the checked form of
such a value; the ``require_*`` / ``optional_*`` helpers are the typed decode
functions used per call and per event.
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

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .errors import DecodeError

Payload = Dict[str, Any]


class ValueKind(Enum):
    """Kinds of values a payload may contain."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class BridgeValue:
    """
    A checked channel value.

    ``data`` holds the native Python form for scalars, a tuple of
    :class:`BridgeValue` for lists and a tuple of ``(key, BridgeValue)`` pairs
    (insertion ordered) for maps, which keeps instances hashable and immutable.
    """

    kind: ValueKind
    data: Any = None

    @classmethod
    def of(cls, obj: Any, path: str = "$") -> "BridgeValue":
        """
        Check a plain Python object and wrap it.

        Args:
            obj: Object to check
            path: Location of ``obj`` inside the enclosing payload, for errors

        Raises:
            DecodeError: If ``obj`` (or anything nested in it) is not a
                supported value kind
        """
        if isinstance(obj, BridgeValue):
            return obj
        if obj is None:
            return cls(ValueKind.NULL)
        # bool is an int subclass, so it must be checked first
        if isinstance(obj, bool):
            return cls(ValueKind.BOOLEAN, obj)
        if isinstance(obj, (int, float)):
            if isinstance(obj, float) and not math.isfinite(obj):
                raise DecodeError(f"Non-finite number at {path}")
            return cls(ValueKind.NUMBER, obj)
        if isinstance(obj, str):
            return cls(ValueKind.STRING, obj)
        if isinstance(obj, (list, tuple)):
            return cls(
                ValueKind.LIST,
                tuple(cls.of(item, f"{path}[{i}]") for i, item in enumerate(obj)),
            )
        if isinstance(obj, Mapping):
            entries: List[Tuple[str, BridgeValue]] = []
            for key, value in obj.items():
                if not isinstance(key, str):
                    raise DecodeError(f"Non-string key {key!r} at {path}")
                entries.append((key, cls.of(value, f"{path}.{key}")))
            return cls(ValueKind.MAP, tuple(entries))
        raise DecodeError(f"Unsupported value of type {type(obj).__name__} at {path}")

    def to_python(self) -> Any:
        """Unwrap into plain Python objects (dict, list, str, int/float, bool, None)."""
        if self.kind is ValueKind.LIST:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.MAP:
            return {key: value.to_python() for key, value in self.data}
        return self.data

    def as_string(self) -> str:
        return self._expect(ValueKind.STRING)

    def as_number(self) -> Union[int, float]:
        return self._expect(ValueKind.NUMBER)

    def as_bool(self) -> bool:
        return self._expect(ValueKind.BOOLEAN)

    def as_list(self) -> List["BridgeValue"]:
        return list(self._expect(ValueKind.LIST))

    def as_map(self) -> Dict[str, "BridgeValue"]:
        return dict(self._expect(ValueKind.MAP))

    def _expect(self, kind: ValueKind) -> Any:
        if self.kind is not kind:
            raise DecodeError(f"Expected {kind.value}, got {self.kind.value}")
        return self.data


def check_payload(obj: Any) -> Payload:
    """
    Validate that ``obj`` is a payload mapping and return a plain-dict copy.

    ``None`` is accepted as the empty payload.
    """
    if obj is None:
        return {}
    value = BridgeValue.of(obj)
    if value.kind is not ValueKind.MAP:
        raise DecodeError(f"Payload must be a mapping, got {value.kind.value}")
    return value.to_python()


def _lookup(payload: Mapping[str, Any], key: str) -> Any:
    if not isinstance(payload, Mapping):
        raise DecodeError(f"Expected a mapping while reading '{key}'")
    if key not in payload:
        raise DecodeError(f"Missing required field '{key}'")
    return payload[key]


def require_string(payload: Mapping[str, Any], key: str, allow_empty: bool = False) -> str:
    value = _lookup(payload, key)
    if not isinstance(value, str):
        raise DecodeError(f"Field '{key}' must be a string")
    if not allow_empty and not value:
        raise DecodeError(f"Field '{key}' must not be empty")
    return value


def optional_string(payload: Mapping[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = payload.get(key) if isinstance(payload, Mapping) else None
    if value is None:
        return default
    if isinstance(value, bool):
        raise DecodeError(f"Field '{key}' must be a string")
    # Card metadata such as expiry months may arrive as numbers
    if isinstance(value, (int, float)):
        return str(value)
    if not isinstance(value, str):
        raise DecodeError(f"Field '{key}' must be a string")
    return value

