"""
Native component controllers.

A controller owns one payment component (card input or wallet sheet), its
lifecycle state machine and a dedicated thread pool. Blocking capability work
runs on the pool; everything the capability reports back is marshaled onto
the event loop (the delivery thread) before it reaches the channel.

Tokenize, session-data and wallet-sheet operations are acknowledged first
and launched second: the caller gets ``{"status": ...}`` as the call result
and the real outcome later as exactly one event.
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

import asyncio
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Type

from ..config.session_config import CardConfig, GooglePayConfig, SessionConfig
from ..core.errors import (
    CARD_NOT_READY,
    GOOGLEPAY_NOT_READY,
    RESULT_TIMEOUT,
    TRANSPORT_ERROR,
    BridgeError,
    CapabilityError,
    IllegalStateTransition,
    InFlightError,
    InitError,
    NotReadyError,
    TransportError,
    UnavailableError,
)
from ..core.outcome import (
    STATUS_LAUNCHED,
    STATUS_PROCESSING,
    ControllerOutcome,
    SubmitDecision,
)
from ..core.results import EventKind
from ..core.state import ComponentState, can_transition
from ..core.values import Payload
from ..utils.helpers import format_duration_ms
from .capability import (
    CardCapability,
    CardComponent,
    ComponentHooks,
    WalletCapability,
    WalletComponent,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[str, Payload], None]

MODE_TOKENIZE = "tokenize"
MODE_SESSION_DATA = "session_data"
MODE_PAYMENT = "payment"


class Accepted:
    """
    Acknowledgement of an asynchronous operation.

    ``value`` is the call result. ``launch`` starts the background work and
    must be called only after ``value`` has been posted to the channel.
    """

    def __init__(self, value: Dict[str, Any], launch: Callable[[], None]):
        self.value = value
        self._launch = launch
        self._launched = False

    def launch(self) -> None:
        if self._launched:
            return
        self._launched = True
        self._launch()


class _Operation:
    """One accepted tokenize/submit/sheet operation."""

    def __init__(self, op_id: int, kind: str, mode: str):
        self.op_id = op_id
        self.kind = kind
        self.mode = mode
        self.cancelled = threading.Event()
        self.finished = False
        self.started_at = time.monotonic()
        self.timeout_handle: Optional[asyncio.TimerHandle] = None

    def __repr__(self) -> str:
        return f"_Operation({self.op_id}, {self.kind})"


class _HookRelay(ComponentHooks):
    """
    The hooks given to the capability.

    Runs on whatever thread the capability calls from. Decides the submit
    answer on the spot, swallows the error the SDK echoes after a halt, and
    hands everything else to the controller on the event loop.
    """

    def __init__(self, controller: "ComponentController"):
        self._controller = controller
        self._lock = threading.Lock()
        self._expect_halt_echo = False
        self._local = threading.local()

    def bind(self, op: _Operation) -> None:
        self._local.op = op

    def unbind(self) -> None:
        self._local.op = None

    def reset(self) -> None:
        with self._lock:
            self._expect_halt_echo = False

    def current_op(self) -> Optional[_Operation]:
        bound = getattr(self._local, "op", None)
        if bound is not None:
            return bound
        return self._controller._active_op()

    def on_tokenized(self, details: Dict[str, Any]) -> None:
        self._controller._marshal(self._controller._hook_tokenized, self.current_op(), dict(details))

    def on_success(self, payment_id: str) -> None:
        self._controller._marshal(self._controller._hook_success, self.current_op(), str(payment_id))

    def on_error(self, code: str, message: str) -> None:
        with self._lock:
            suppressed = self._expect_halt_echo
            self._expect_halt_echo = False
        if suppressed:
            logger.debug(f"Capability acknowledged the halt ({code}); not an error")
            return
        self._controller._marshal(
            self._controller._hook_error, self.current_op(), str(code), str(message or "")
        )

    def on_submit(self, session_data: str) -> SubmitDecision:
        op = self.current_op()
        if op is None or op.mode != MODE_SESSION_DATA:
            return SubmitDecision.PROCEED
        with self._lock:
            self._expect_halt_echo = True
        self._controller._marshal(self._controller._hook_session_data, op, str(session_data))
        return SubmitDecision.HALT


class ComponentController(ABC):
    """
    Base state machine for one native payment component.

    All public methods run on the event loop thread. Capability calls run on
    the controller's own executor and are wrapped so that nothing but a
    :class:`~checkoutbridge.core.errors.BridgeError` leaves the controller.
    """

    source = "component"
    label = "Component"
    not_ready_code = "BRIDGE_NOT_READY"
    unavailable_error: Type[BridgeError] = InitError

    def __init__(
        self,
        emit: EventSink,
        executor_workers: int = 2,
        result_timeout: Optional[float] = None,
    ):
        self._emit = emit
        self._loop = asyncio.get_running_loop()
        self._executor = ThreadPoolExecutor(
            max_workers=executor_workers, thread_name_prefix=f"checkoutbridge-{self.source}"
        )
        self._result_timeout = result_timeout
        self._state = ComponentState.UNINITIALIZED
        self._lock = threading.Lock()
        self._op: Optional[_Operation] = None
        self._op_ids = itertools.count(1)
        self._relay = _HookRelay(self)
        self._component: Any = None
        self.last_outcome: Optional[ControllerOutcome] = None

    @property
    def state(self) -> ComponentState:
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._state.is_terminal

    @property
    def hooks(self) -> ComponentHooks:
        return self._relay

    def _transition(self, target: ComponentState) -> None:
        if not can_transition(self._state, target):
            raise IllegalStateTransition(
                f"{self.label}: illegal transition {self._state.value} -> {target.value}"
            )
        logger.debug(f"{self.label}: {self._state.value} -> {target.value}")
        self._state = target

    def _active_op(self) -> Optional[_Operation]:
        with self._lock:
            return self._op

    def _not_ready(self) -> NotReadyError:
        return NotReadyError(
            f"{self.label} not initialized; call init first", code=self.not_ready_code
        )

    def _require_ready(self) -> None:
        if self._state.is_busy:
            op = self._active_op()
            busy_with = op.kind if op else "validation"
            raise InFlightError(f"{self.label} is busy with {busy_with}")
        if self._state is not ComponentState.READY:
            raise self._not_ready()

    # Lifecycle

    @abstractmethod
    def _create_component(self, session: SessionConfig, options: Any) -> Any:
        """Create the capability component (runs on the executor)."""

    async def initialize(self, session: SessionConfig, options: Any) -> bool:
        """
        Create the component and wait until the capability reports it available.

        On any failure the controller is disposed and the error raised.

        Raises:
            InitError: The capability refused the session or failed to start
            UnavailableError: The wallet method is unsupported on this device
        """
        self._transition(ComponentState.INITIALIZING)
        logger.info(f"{self.label}: initializing", extra={"session": session.redacted()})

        component = None
        try:
            component = await self._run_blocking(
                self._create_component, session, options, error_cls=InitError
            )
            available = await self._run_blocking(component.is_available, error_cls=InitError)
        except BridgeError:
            self._close_component(component)
            self.dispose()
            raise

        if self.is_disposed:
            self._close_component(component)
            raise self._not_ready()

        if not available:
            self._close_component(component)
            self.dispose()
            raise self.unavailable_error(f"{self.label}: payment method is not available")

        self._component = component
        self._transition(ComponentState.READY)
        logger.info(f"{self.label}: ready")
        return True

    def dispose(self) -> bool:
        """
        Move to ``Disposed`` from any state; idempotent.

        Cancels the running operation, shuts the executor down with queued
        work cancelled and closes the component. Hooks arriving afterwards
        are dropped.
        """
        if self.is_disposed:
            return False

        with self._lock:
            op, self._op = self._op, None
        if op is not None:
            op.finished = True
            op.cancelled.set()
            if op.timeout_handle is not None:
                op.timeout_handle.cancel()
            logger.info(f"{self.label}: cancelled {op.kind} on dispose")

        self._transition(ComponentState.DISPOSED)
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._close_component(self._component)
        self._component = None
        logger.info(f"{self.label}: disposed")
        return True

    def _close_component(self, component: Any) -> None:
        if component is None:
            return
        try:
            component.close()
        except Exception as e:
            logger.warning(f"{self.label}: component close failed: {e}")

    # Executor plumbing

    async def _run_blocking(
        self, fn: Callable, *args: Any, error_cls: Type[BridgeError] = TransportError
    ) -> Any:
        """Run ``fn`` on the executor, mapping every failure to ``error_cls``."""
        if self.is_disposed:
            raise self._not_ready()
        try:
            return await self._loop.run_in_executor(self._executor, fn, *args)
        except asyncio.CancelledError:
            if self.is_disposed:
                raise self._not_ready() from None
            raise
        except BridgeError:
            raise
        except CapabilityError as e:
            if error_cls is TransportError:
                raise TransportError(e.message, code=e.code) from e
            raise error_cls(f"{e.code}: {e.message}") from e
        except Exception as e:
            if self.is_disposed:
                raise self._not_ready() from e
            logger.exception(f"{self.label}: capability call failed")
            raise error_cls(str(e) or type(e).__name__) from e

    async def _inline_check(self, fn: Callable[[], bool]) -> bool:
        """``Ready -> Validating -> Ready`` around one boolean capability query."""
        self._require_ready()
        self._transition(ComponentState.VALIDATING)
        try:
            return bool(await self._run_blocking(fn))
        finally:
            if self._state is ComponentState.VALIDATING:
                self._transition(ComponentState.READY)

    def _begin(
        self, kind: str, mode: str, status: str, work: Callable[[threading.Event], None]
    ) -> Accepted:
        """Enter ``Submitting`` and return the acknowledgement for ``kind``."""
        self._require_ready()
        op = _Operation(next(self._op_ids), kind, mode)
        self._transition(ComponentState.SUBMITTING)
        with self._lock:
            self._op = op
        self._relay.reset()
        logger.info(f"{self.label}: {kind} accepted")

        def launch() -> None:
            if not self._is_current(op):
                return
            op.started_at = time.monotonic()
            if self._result_timeout is not None:
                op.timeout_handle = self._loop.call_later(
                    self._result_timeout, self._on_timeout, op
                )
            try:
                self._executor.submit(self._run_operation, op, work)
            except RuntimeError:
                # Executor already shut down by dispose
                logger.debug(f"{self.label}: {kind} not launched, controller disposed")

        return Accepted({"status": status}, launch)

    def _run_operation(self, op: _Operation, work: Callable[[threading.Event], None]) -> None:
        # Worker thread
        if op.cancelled.is_set():
            return
        self._relay.bind(op)
        try:
            work(op.cancelled)
        except CapabilityError as e:
            self._marshal(self._hook_error, op, e.code, e.message)
        except Exception as e:
            logger.exception(f"{self.label}: {op.kind} raised")
            self._marshal(self._hook_error, op, TRANSPORT_ERROR, str(e) or type(e).__name__)
        finally:
            self._relay.unbind()

    def _marshal(self, fn: Callable, *args: Any) -> None:
        """Hand a hook over to the event loop thread."""
        if self.is_disposed:
            logger.debug(f"{self.label}: disposed, dropping {fn.__name__}")
            return
        try:
            self._loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            logger.debug(f"{self.label}: event loop closed, dropping {fn.__name__}")

    # Completion (event loop thread)

    def _is_current(self, op: Optional[_Operation]) -> bool:
        return (
            op is not None
            and not op.finished
            and self._state is ComponentState.SUBMITTING
            and self._active_op() is op
        )

    def _finish(self, op: _Operation, outcome: ControllerOutcome, event: EventKind,
                payload: Payload) -> None:
        op.finished = True
        if op.timeout_handle is not None:
            op.timeout_handle.cancel()
        with self._lock:
            if self._op is op:
                self._op = None
        self._transition(ComponentState.READY)
        self.last_outcome = outcome

        elapsed_ms = int((time.monotonic() - op.started_at) * 1000)
        logger.info(
            f"{self.label}: {op.kind} {outcome.value} after {format_duration_ms(elapsed_ms)}"
        )
        self._emit(event.value, dict(payload, source=self.source))

    def _hook_tokenized(self, op: Optional[_Operation], details: Dict[str, Any]) -> None:
        if not self._is_current(op) or op.mode != MODE_TOKENIZE:
            logger.info(f"{self.label}: dropping tokenization result with no matching operation")
            return
        self._finish(op, ControllerOutcome.COMPLETED, EventKind.CARD_TOKENIZED, details)

    def _hook_success(self, op: Optional[_Operation], payment_id: str) -> None:
        if not self._is_current(op):
            logger.info(f"{self.label}: dropping late payment success")
            return
        if op.mode == MODE_SESSION_DATA:
            # The session-data path halts the payment; a success here is never forwarded
            logger.warning(f"{self.label}: capability settled a halted payment; ignoring")
            return
        self._finish(op, ControllerOutcome.COMPLETED, EventKind.PAYMENT_SUCCESS,
                     {"paymentId": payment_id})

    def _hook_session_data(self, op: Optional[_Operation], session_data: str) -> None:
        if not self._is_current(op):
            logger.info(f"{self.label}: dropping late session data")
            return
        self._finish(op, ControllerOutcome.INTENTIONALLY_HALTED, EventKind.SESSION_DATA_READY,
                     {"sessionData": session_data})

    def _hook_error(self, op: Optional[_Operation], code: str, message: str) -> None:
        if self.is_disposed:
            return
        if op is None:
            logger.warning(f"{self.label}: capability error outside any operation: {code}")
            self._emit(
                EventKind.PAYMENT_ERROR.value,
                {"code": code, "message": message, "source": self.source},
            )
            return
        if not self._is_current(op):
            logger.info(f"{self.label}: dropping late error {code} for {op.kind}")
            return
        logger.warning(f"{self.label}: {op.kind} failed: {code} {message}")
        self._finish(op, ControllerOutcome.FAILED, EventKind.PAYMENT_ERROR,
                     {"code": code, "message": message})

    def _on_timeout(self, op: _Operation) -> None:
        if not self._is_current(op):
            return
        op.cancelled.set()
        op.timeout_handle = None
        self._finish(
            op,
            ControllerOutcome.FAILED,
            EventKind.PAYMENT_ERROR,
            {
                "code": RESULT_TIMEOUT,
                "message": f"No result for {op.kind} within {self._result_timeout:g}s",
            },
        )


class CardController(ComponentController):
    """Controller for the card input component."""

    source = "card"
    label = "Card view"
    not_ready_code = CARD_NOT_READY
    unavailable_error = InitError

    def __init__(self, capability: CardCapability, emit: EventSink, **kwargs: Any):
        super().__init__(emit, **kwargs)
        self._capability = capability

    def _create_component(self, session: SessionConfig, options: CardConfig) -> CardComponent:
        return self._capability.create_component(session, options, self._relay)

    async def validate(self) -> bool:
        """Whether the current card input is complete and valid."""
        return await self._inline_check(lambda: self._component.is_valid())

    def tokenize(self) -> Accepted:
        component = self._component
        self._require_ready()
        return self._begin("tokenizeCard", MODE_TOKENIZE, STATUS_PROCESSING, component.tokenize)

    def submit_session_data(self) -> Accepted:
        """
        Submit in session-data mode.

        The submit hook receives the session data, forwards it as
        ``sessionDataReady`` and halts the payment.
        """
        component = self._component
        self._require_ready()
        return self._begin("getSessionData", MODE_SESSION_DATA, STATUS_PROCESSING, component.submit)


class GooglePayController(ComponentController):
    """Controller for the wallet (Google Pay) component."""

    source = "wallet"
    label = "Google Pay view"
    not_ready_code = GOOGLEPAY_NOT_READY
    unavailable_error = UnavailableError

    def __init__(self, capability: WalletCapability, emit: EventSink, **kwargs: Any):
        super().__init__(emit, **kwargs)
        self._capability = capability

    def _create_component(self, session: SessionConfig, options: GooglePayConfig) -> WalletComponent:
        return self._capability.create_component(session, options, self._relay)

    async def check_availability(self) -> bool:
        return await self._inline_check(lambda: self._component.is_available())

    def launch_sheet(self, request: Payload) -> Accepted:
        component = self._component
        self._require_ready()
        request = dict(request or {})
        return self._begin(
            "launchGooglePaySheet",
            MODE_PAYMENT,
            STATUS_LAUNCHED,
            lambda cancelled: component.launch(request, cancelled),
        )
