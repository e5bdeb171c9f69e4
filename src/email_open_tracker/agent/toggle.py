"""Per-surface state and the synthesized tracking toggle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

import structlog

from email_open_tracker.agent.dom import ActivationEvent, Document, Element

if TYPE_CHECKING:
    from email_open_tracker.agent.interceptor import SendInterceptor

logger = structlog.get_logger()

TOGGLE_CLASS = "tracking-btn"

_ENABLED_LABEL = "Track 📧"
_DISABLED_LABEL = "Track ❌"
_ENABLED_COLOR = "#4285F4"
_DISABLED_COLOR = "#777"
_BASE_STYLE = (
    "cursor: pointer; color: white; padding: 0 12px; margin-right: 8px; "
    "border-radius: 4px; display: flex; align-items: center;"
)


@dataclass
class SurfaceState:
    """Everything the agent knows about one compose surface."""

    surface: Element
    toggle: Element
    toggle_enabled: bool = True
    interceptor: SendInterceptor | None = None

    def flip(self) -> bool:
        self.toggle_enabled = not self.toggle_enabled
        render_toggle(self.toggle, self.toggle_enabled)
        return self.toggle_enabled


class SurfaceRegistry:
    """Mapping from surface identity to its state.

    Keyed by object identity; the state holds a strong reference to the surface
    so an identity cannot be recycled while it is registered.
    """

    def __init__(self) -> None:
        self._states: dict[int, SurfaceState] = {}

    def get(self, surface: Element) -> SurfaceState | None:
        return self._states.get(id(surface))

    def register(self, state: SurfaceState) -> None:
        self._states[id(state.surface)] = state

    def retain(self, surfaces: Iterable[Element]) -> int:
        """Drop states for surfaces not in ``surfaces``.

        A state whose interceptor is still mid-send is kept until it finishes.

        Returns:
            Number of states dropped.
        """

        live = {id(s) for s in surfaces}
        stale = [
            key
            for key, state in self._states.items()
            if key not in live and not (state.interceptor is not None and state.interceptor.in_flight)
        ]
        for key in stale:
            state = self._states.pop(key)
            if state.interceptor is not None:
                state.interceptor.disarm()
        return len(stale)

    def clear(self) -> None:
        self._states.clear()

    def __contains__(self, surface: object) -> bool:
        return id(surface) in self._states

    def __len__(self) -> int:
        return len(self._states)


def render_toggle(toggle: Element, enabled: bool) -> None:
    toggle.set_attribute("data-tracking-enabled", "true" if enabled else "false")
    toggle.set_text(_ENABLED_LABEL if enabled else _DISABLED_LABEL)
    toggle.set_style(f"{_BASE_STYLE} background: {_ENABLED_COLOR if enabled else _DISABLED_COLOR};")


class ToggleSynthesizer:
    """Creates the tracking toggle for a compose surface, once."""

    def __init__(self, document: Document, registry: SurfaceRegistry) -> None:
        self.document = document
        self.registry = registry

    def attach(self, surface: Element, send_control: Element) -> SurfaceState:
        """Attach a toggle before ``send_control`` unless the surface already has one.

        Returns:
            The surface's state, new or existing.
        """

        existing = self.registry.get(surface)
        if existing is not None:
            return existing

        toggle = self.document.create_element("div")
        toggle.set_attribute("class", TOGGLE_CLASS)
        state = SurfaceState(surface=surface, toggle=toggle)
        render_toggle(toggle, state.toggle_enabled)

        def _on_click(event: ActivationEvent) -> None:
            enabled = state.flip()
            logger.info("tracking_toggled", enabled=enabled)

        toggle.add_event_listener("click", _on_click)
        send_control.insert_before(toggle)
        self.registry.register(state)

        logger.info("tracking_toggle_attached")
        return state
