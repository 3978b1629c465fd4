"""
Event dispatcher: routes native events to at most one handler per event kind.
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

import inspect
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from ..core.errors import DecodeError
from ..core.results import EVENT_DECODERS, EventKind
from ..core.values import Payload

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Identifies one registration of a handler in a callback slot."""

    kind: EventKind
    token: int


class EventDispatcher:
    """
    Delivers decoded events to registered callback slots.

    Each slot holds one handler. Registering replaces the previous handler
    atomically; a dispatch takes its snapshot of the slot under the same lock,
    so it invokes either the old or the new handler, never both. Handlers may
    be plain callables or coroutine functions.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._slots: Dict[EventKind, Tuple[int, EventHandler]] = {}
        self._tokens = itertools.count(1)
        self._closed = False
        self.delivered_count = 0
        self.dropped_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, kind: Union[EventKind, str], handler: EventHandler) -> SubscriptionHandle:
        """
        Put ``handler`` in the slot for ``kind``, replacing any previous one.

        Raises:
            ValueError: If ``kind`` is not a known event kind
            TypeError: If ``handler`` is not callable
        """
        event_kind = kind if isinstance(kind, EventKind) else EventKind.from_name(kind)
        if event_kind is None:
            raise ValueError(f"Unknown event kind: {kind}")
        if not callable(handler):
            raise TypeError("Event handler must be callable")

        with self._lock:
            token = next(self._tokens)
            replaced = event_kind in self._slots
            self._slots[event_kind] = (token, handler)

        if replaced:
            logger.debug(f"Replaced handler for {event_kind.value}")
        return SubscriptionHandle(kind=event_kind, token=token)

    def unregister(self, handle: SubscriptionHandle) -> bool:
        """
        Clear the slot if ``handle`` is still its current registration.

        A stale handle (its slot was since re-registered) removes nothing.
        """
        with self._lock:
            current = self._slots.get(handle.kind)
            if current is None or current[0] != handle.token:
                return False
            del self._slots[handle.kind]
            return True

    def handler_for(self, kind: EventKind) -> Optional[EventHandler]:
        with self._lock:
            entry = self._slots.get(kind)
        return entry[1] if entry else None

    async def dispatch(self, event: str, payload: Optional[Payload]) -> bool:
        """
        Deliver one event.

        Returns:
            True if a handler was invoked. Events for empty slots, unknown
            event names, malformed payloads, and anything arriving after
            :meth:`close` are dropped.
        """
        if self._closed:
            self.dropped_count += 1
            logger.debug(f"Dispatcher closed; dropping {event}")
            return False

        kind = EventKind.from_name(event)
        if kind is None:
            logger.debug(f"Ignoring unknown event '{event}'")
            return False

        with self._lock:
            entry = self._slots.get(kind)
        if entry is None:
            return False
        _, handler = entry

        try:
            result = EVENT_DECODERS[kind](payload or {})
        except DecodeError as e:
            logger.error(f"Dropping malformed {event} event: {e.message}")
            self.dropped_count += 1
            return False

        try:
            returned = handler(result)
            if inspect.isawaitable(returned):
                await returned
        except Exception:
            logger.exception(f"Handler for {event} raised")
        self.delivered_count += 1
        return True

    def clear(self) -> None:
        with self._lock:
            self._slots.clear()

    def close(self) -> None:
        """Make every slot inert; subsequent events are dropped."""
        with self._lock:
            self._closed = True
            self._slots.clear()
