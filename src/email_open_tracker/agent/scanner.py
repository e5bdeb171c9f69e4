"""Compose surface discovery."""

from __future__ import annotations

import structlog

from email_open_tracker.agent.dom import Document
from email_open_tracker.agent.interceptor import InterceptorState, PixelIssuer, SendInterceptor
from email_open_tracker.agent.lookups import SEND_CONTROL
from email_open_tracker.agent.toggle import SurfaceRegistry, ToggleSynthesizer

logger = structlog.get_logger()

SURFACE_SELECTOR = 'div[role="dialog"]'


class SurfaceScanner:
    """Finds compose surfaces and wires a toggle and an interceptor into each.

    Scanning is idempotent: a surface that already has a toggle keeps it, and a
    surface whose interceptor is armed or mid-send is left alone. Once an
    interceptor has re-fired send it is finished, and the next scan arms a
    fresh one if the host still shows the surface. State for a surface that has
    left the document is dropped, unless its interceptor is still mid-send.
    """

    def __init__(
        self,
        document: Document,
        issuer: PixelIssuer,
        *,
        registry: SurfaceRegistry | None = None,
        resend_delay: float = 0.1,
    ) -> None:
        self.document = document
        self.issuer = issuer
        self.registry = registry if registry is not None else SurfaceRegistry()
        self.synthesizer = ToggleSynthesizer(document, self.registry)
        self.resend_delay = resend_delay

    def scan_once(self) -> int:
        """Run one discovery pass.

        Returns:
            Number of interceptors armed during this pass.
        """

        armed = 0
        surfaces = self.document.query_selector_all(SURFACE_SELECTOR)
        for surface in surfaces:
            send_control, source = SEND_CONTROL.resolve_with_source(surface)
            if send_control is None:
                continue

            state = self.synthesizer.attach(surface, send_control)

            current = state.interceptor
            if current is not None and not current.finished:
                if current.send_control is send_control or current.state is not InterceptorState.IDLE:
                    continue
                # The host re-rendered its send control; move the listener to the new one.
                current.disarm()
                logger.info("send_control_replaced", send_control_source=source)

            interceptor = SendInterceptor(state, send_control, self.issuer, resend_delay=self.resend_delay)
            interceptor.arm()
            state.interceptor = interceptor
            armed += 1
            logger.info("send_interceptor_armed", send_control_source=source)

        dropped = self.registry.retain(surfaces)
        if dropped:
            logger.info("surface_states_dropped", count=dropped)

        return armed
