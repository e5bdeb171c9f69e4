"""Host page contract.

The compose agent never owns the page it runs in. Everything it needs from the
host is expressed here as structural protocols, so any binding that can answer
CSS selector lookups, read attributes and dispatch listeners can drive it.
Every lookup is best effort: the host may re-render at any moment and any
element may be gone by the time it is used.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol

EventHandler = Callable[["ActivationEvent"], Any]


class ActivationEvent(Protocol):
    """A click (or equivalent) dispatched on a host element."""

    type: str

    def prevent_default(self) -> None: ...

    def stop_immediate_propagation(self) -> None: ...


class Element(Protocol):
    """A host element as seen by the agent."""

    @property
    def value(self) -> str | None: ...

    @property
    def text(self) -> str: ...

    inner_html: str

    def query_selector(self, selector: str) -> Element | None: ...

    def query_selector_all(self, selector: str) -> list[Element]: ...

    def get_attribute(self, name: str) -> str | None: ...

    def set_attribute(self, name: str, value: str) -> None: ...

    def set_text(self, text: str) -> None: ...

    def set_style(self, css: str) -> None: ...

    def add_event_listener(self, event_type: str, handler: EventHandler, *, capture: bool = False) -> None: ...

    def remove_event_listener(self, event_type: str, handler: EventHandler, *, capture: bool = False) -> None: ...

    def insert_before(self, new_element: Element) -> None:
        """Insert ``new_element`` as this element's preceding sibling."""
        ...

    def click(self) -> None:
        """Dispatch a native activation on this element."""
        ...


class Document(Protocol):
    """The host document the agent scans."""

    def query_selector_all(self, selector: str) -> list[Element]: ...

    def create_element(self, tag: str) -> Element: ...
