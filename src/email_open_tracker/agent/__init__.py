"""Compose-side agent.

Discovers compose surfaces in a host document, adds a tracking toggle to each
and intercepts send to splice a tracking pixel into the outgoing body.
"""

from .compose_agent import ComposeAgent
from .interceptor import InterceptionOutcome, InterceptorState, SendInterceptor
from .issuer import IssuanceClient
from .lookups import MessageSnapshot
from .scanner import SurfaceScanner
from .scheduler import ScanScheduler
from .toggle import SurfaceRegistry, SurfaceState, ToggleSynthesizer

__all__ = [
    "ComposeAgent",
    "InterceptionOutcome",
    "InterceptorState",
    "IssuanceClient",
    "MessageSnapshot",
    "ScanScheduler",
    "SendInterceptor",
    "SurfaceRegistry",
    "SurfaceScanner",
    "SurfaceState",
    "ToggleSynthesizer",
]
