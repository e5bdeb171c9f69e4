"""Tracking pixel payload and markup helpers."""

from __future__ import annotations

import base64
import random
import string
import time

# 1x1 transparent GIF (43 bytes).
PIXEL_GIF = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

PIXEL_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate, private, max-age=0",
    "Pragma": "no-cache",
    "Expires": "-1",
    "Access-Control-Allow-Origin": "*",
}

_NONCE_ALPHABET = string.ascii_lowercase + string.digits


def _nonce(length: int = 9) -> str:
    return "".join(random.choices(_NONCE_ALPHABET, k=length))


def build_pixel_url(base_url: str, tracking_id: str, *, now_ms: int | None = None) -> str:
    """Build the recording URL for a tracking id.

    The query string only defeats intermediate caches and image proxies; the
    recording endpoint ignores it.
    """

    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{base_url.rstrip('/')}/track/{tracking_id}.png?t={stamp}&r={_nonce()}"


def build_pixel_html(pixel_url: str) -> str:
    return (
        f'<img src="{pixel_url}" width="1" height="1" border="0" alt="" '
        'style="display:none !important; opacity:0 !important; '
        'width:0 !important; height:0 !important;">'
    )


def resolve_source_address(headers, peer: str | None) -> str:
    """Best-effort client address: proxy headers first, then the socket peer."""

    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    return peer or "unknown"


def resolve_referer(headers) -> str:
    return headers.get("referer") or headers.get("referrer") or "direct"
