"""Send interception.

One ``SendInterceptor`` exists per (surface, send control) pair and walks a
single path through::

    IDLE -> INTERCEPTING -> AWAITING_MARKER -> SPLICING -> RESENDING -> DONE

The capturing listener suspends the host's send, a pixel is issued and spliced
into the body, then the listener is disarmed and removed *before* the native
send is re-fired so the re-fired click cannot be intercepted again. Every
failure on the way degrades to sending the message unmodified.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Protocol

import structlog

from email_open_tracker.agent.dom import ActivationEvent, Element
from email_open_tracker.agent.lookups import MessageSnapshot, capture_snapshot
from email_open_tracker.agent.toggle import SurfaceState

logger = structlog.get_logger()


class InterceptorState(str, Enum):
    IDLE = "idle"
    INTERCEPTING = "intercepting"
    AWAITING_MARKER = "awaiting_marker"
    SPLICING = "splicing"
    RESENDING = "resending"
    DONE = "done"


class InterceptionOutcome(str, Enum):
    """How an intercepted send ended."""

    TRACKED = "tracked"
    SENT_UNTRACKED = "sent_untracked"
    NO_BODY = "no_body"


class PixelIssuer(Protocol):
    async def issue(self, snapshot: MessageSnapshot) -> str: ...


class SendInterceptor:
    """Capturing-phase send interceptor for one compose surface."""

    def __init__(
        self,
        surface_state: SurfaceState,
        send_control: Element,
        issuer: PixelIssuer,
        *,
        resend_delay: float = 0.1,
    ) -> None:
        self.surface_state = surface_state
        self.send_control = send_control
        self.issuer = issuer
        self.resend_delay = resend_delay

        self.state = InterceptorState.IDLE
        self.armed = False
        self.outcome: InterceptionOutcome | None = None
        self.snapshot: MessageSnapshot | None = None
        self.task: asyncio.Task | None = None

    @property
    def finished(self) -> bool:
        return self.state is InterceptorState.DONE

    @property
    def in_flight(self) -> bool:
        return self.state not in (InterceptorState.IDLE, InterceptorState.DONE)

    def arm(self) -> None:
        """Register the capturing listener on the send control (idempotent)."""

        if self.armed or self.state is not InterceptorState.IDLE:
            return
        self.send_control.add_event_listener("click", self.on_activate, capture=True)
        self.armed = True

    def disarm(self) -> None:
        if not self.armed:
            return
        self.armed = False
        self.send_control.remove_event_listener("click", self.on_activate, capture=True)

    def on_activate(self, event: ActivationEvent) -> None:
        """Capturing listener for the send control."""

        if not self.armed:
            return

        if not self.surface_state.toggle_enabled:
            logger.info("tracking_disabled_sending_normally")
            return

        if self.state is not InterceptorState.IDLE:
            # At most one send per interception.
            event.prevent_default()
            event.stop_immediate_propagation()
            logger.debug("send_activation_suppressed", state=self.state.value)
            return

        self._transition(InterceptorState.INTERCEPTING)
        event.prevent_default()
        event.stop_immediate_propagation()

        snapshot, body = capture_snapshot(self.surface_state.surface)
        self.snapshot = snapshot

        if body is None:
            logger.warning("message_body_not_found_sending_untracked", recipient=snapshot.recipient)
            self.outcome = InterceptionOutcome.NO_BODY
            self._resend()
            return

        self._transition(InterceptorState.AWAITING_MARKER)
        coro = self._track_and_resend(snapshot, body)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(coro)
        else:
            self.task = loop.create_task(coro)

    async def wait(self) -> InterceptionOutcome | None:
        """Wait for an in-flight interception to finish."""

        if self.task is not None:
            await self.task
        return self.outcome

    async def _track_and_resend(self, snapshot: MessageSnapshot, body: Element) -> None:
        try:
            try:
                pixel_html = await self.issuer.issue(snapshot)
            except Exception as e:
                logger.warning(
                    "issuance_failed_sending_untracked",
                    error=str(e),
                    error_type=type(e).__name__,
                    recipient=snapshot.recipient,
                )
                self.outcome = InterceptionOutcome.SENT_UNTRACKED
                return

            self._transition(InterceptorState.SPLICING)
            try:
                body.inner_html = body.inner_html + pixel_html
            except Exception as e:
                logger.warning("pixel_splice_failed", error=str(e), error_type=type(e).__name__)
                self.outcome = InterceptionOutcome.SENT_UNTRACKED
                return

            logger.info("pixel_injected", recipient=snapshot.recipient, subject=snapshot.subject)
            self.outcome = InterceptionOutcome.TRACKED
            # Best effort: gives the host a moment to pick up the spliced body before send.
            await asyncio.sleep(self.resend_delay)
        finally:
            self._resend()

    def _resend(self) -> None:
        self._transition(InterceptorState.RESENDING)
        self.disarm()
        try:
            self.send_control.click()
            logger.info("send_refired", outcome=self.outcome.value if self.outcome else None)
        finally:
            self._transition(InterceptorState.DONE)

    def _transition(self, new_state: InterceptorState) -> None:
        logger.debug("interceptor_transition", old=self.state.value, new=new_state.value)
        self.state = new_state
