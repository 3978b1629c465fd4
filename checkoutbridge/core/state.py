"""Component lifecycle states and the transitions allowed between them."""

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

from enum import Enum
from typing import Dict, FrozenSet


class ComponentState(Enum):
    """Lifecycle of one native payment component."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    DISPOSED = "disposed"

    @property
    def is_busy(self) -> bool:
        return self in (ComponentState.VALIDATING, ComponentState.SUBMITTING)

    @property
    def is_terminal(self) -> bool:
        return self is ComponentState.DISPOSED


TRANSITIONS: Dict[ComponentState, FrozenSet[ComponentState]] = {
    ComponentState.UNINITIALIZED: frozenset({ComponentState.INITIALIZING, ComponentState.DISPOSED}),
    ComponentState.INITIALIZING: frozenset({ComponentState.READY, ComponentState.DISPOSED}),
    ComponentState.READY: frozenset(
        {ComponentState.VALIDATING, ComponentState.SUBMITTING, ComponentState.DISPOSED}
    ),
    ComponentState.VALIDATING: frozenset({ComponentState.READY, ComponentState.DISPOSED}),
    ComponentState.SUBMITTING: frozenset({ComponentState.READY, ComponentState.DISPOSED}),
    ComponentState.DISPOSED: frozenset(),
}


def can_transition(current: ComponentState, target: ComponentState) -> bool:
    """Check whether ``current -> target`` is a legal transition."""
    return target in TRANSITIONS[current]
