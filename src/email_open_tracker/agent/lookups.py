"""Ordered fallback lookups against a compose surface.

The host's markup is not ours and drifts without notice. Each field the agent
needs is therefore found through a chain of lookups, most semantically
specific first: the first non-empty result wins and an exhausted chain yields
the chain's default (usually None) instead of raising.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

from email_open_tracker.agent.dom import Element

logger = structlog.get_logger()

T = TypeVar("T")

UNKNOWN_RECIPIENT = "unknown-recipient"


@dataclass(frozen=True)
class Lookup(Generic[T]):
    """A single named lookup strategy."""

    name: str
    find: Callable[[Element], T | None]

    def __call__(self, surface: Element) -> T | None:
        result = self.find(surface)
        if isinstance(result, str):
            result = result.strip() or None
        return result


class LookupChain(Generic[T]):
    """Ordered lookups tried until one produces a non-empty result."""

    def __init__(self, name: str, lookups: Sequence[Lookup[T]], *, default: T | None = None) -> None:
        self.name = name
        self.lookups = tuple(lookups)
        self.default = default

    def resolve_with_source(self, surface: Element) -> tuple[T | None, str | None]:
        """Run the chain.

        Returns:
            The first non-empty result and the name of the lookup that produced it,
            or ``(default, None)`` when every lookup missed.
        """

        for lookup in self.lookups:
            result = lookup(surface)
            if result is not None:
                return result, lookup.name
        return self.default, None

    def resolve(self, surface: Element) -> T | None:
        result, _source = self.resolve_with_source(surface)
        return result


def element(selector: str) -> Lookup[Element]:
    return Lookup(f"element:{selector}", lambda surface: surface.query_selector(selector))


def field_value(selector: str) -> Lookup[str]:
    def _find(surface: Element) -> str | None:
        el = surface.query_selector(selector)
        return None if el is None else el.value

    return Lookup(f"value:{selector}", _find)


def visible_text(selector: str) -> Lookup[str]:
    def _find(surface: Element) -> str | None:
        el = surface.query_selector(selector)
        return None if el is None else el.text

    return Lookup(f"text:{selector}", _find)


def attribute_values(selector: str, attribute: str) -> Lookup[str]:
    """Join one attribute across every match (e.g. all recipient chips)."""

    def _find(surface: Element) -> str | None:
        values: list[str] = []
        for el in surface.query_selector_all(selector):
            v = (el.get_attribute(attribute) or "").strip()
            if v and v not in values:
                values.append(v)
        return ", ".join(values) or None

    return Lookup(f"attr:{selector}@{attribute}", _find)


SEND_CONTROL = LookupChain(
    "send_control",
    [
        element('div[role="button"][data-tooltip*="Send"]'),
        element('[role="button"][aria-label*="Send"]'),
        element(".T-I.aoO"),
    ],
)

RECIPIENT = LookupChain(
    "recipient",
    [
        field_value('input[name="to"]'),
        attribute_values("[email]", "email"),
        attribute_values("[data-hovercard-id]", "data-hovercard-id"),
        field_value('textarea[name="to"]'),
        visible_text('[aria-label*="To"]'),
    ],
    default=UNKNOWN_RECIPIENT,
)

SUBJECT = LookupChain("subject", [field_value('input[name="subjectbox"]')], default="")

BODY = LookupChain(
    "body",
    [
        element('div[aria-label="Message Body"]'),
        element('div[contenteditable="true"][role="textbox"]'),
        element('div[contenteditable="true"]'),
    ],
)


@dataclass(frozen=True)
class MessageSnapshot:
    """What the outgoing message looked like at the moment send was intercepted."""

    recipient: str
    subject: str
    body_present: bool


def capture_snapshot(surface: Element) -> tuple[MessageSnapshot, Element | None]:
    """Capture recipient, subject and the body region of a compose surface.

    Returns:
        The immutable snapshot and the body element (None when it could not be found).
    """

    recipient, recipient_source = RECIPIENT.resolve_with_source(surface)
    subject = SUBJECT.resolve(surface)
    body, body_source = BODY.resolve_with_source(surface)

    logger.debug(
        "message_snapshot_captured",
        recipient_source=recipient_source,
        body_source=body_source,
    )
    snapshot = MessageSnapshot(
        recipient=recipient or UNKNOWN_RECIPIENT,
        subject=subject or "",
        body_present=body is not None,
    )
    return snapshot, body
