"""Compose agent implementation.

This module provides the page-resident agent that ties discovery, the
tracking toggle and send interception together.
"""

import structlog

from email_open_tracker.agent.dom import Document
from email_open_tracker.agent.interceptor import PixelIssuer
from email_open_tracker.agent.issuer import IssuanceClient
from email_open_tracker.agent.scanner import SurfaceScanner
from email_open_tracker.agent.scheduler import ScanScheduler
from email_open_tracker.agent.toggle import SurfaceRegistry
from email_open_tracker.config import Settings

logger = structlog.get_logger()


class ComposeAgent:
    """Main compose agent.

    Owns the surface registry, the scanner and the discovery timer for one
    host document. Stopping the agent drops all per-surface state, the same as
    navigating away from the page.
    """

    def __init__(
        self,
        document: Document,
        issuer: PixelIssuer | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the compose agent.

        Args:
            document: Host document to scan for compose surfaces.
            issuer: Pixel issuer. If None, creates an IssuanceClient.
            settings: Application settings. If None, uses default settings.
        """
        from email_open_tracker.config import get_settings

        self.settings = settings or get_settings()
        self.issuer = issuer or IssuanceClient(self.settings)
        self.registry = SurfaceRegistry()
        self.scanner = SurfaceScanner(
            document,
            self.issuer,
            registry=self.registry,
            resend_delay=self.settings.resend_delay_seconds,
        )
        self.scheduler = ScanScheduler(self.scanner.scan_once, interval=self.settings.scan_interval_seconds)
        logger.info(
            "compose_agent_initialized",
            service_base_url=self.settings.service_base_url,
            owner_id=self.settings.owner_id,
        )

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """Start periodic discovery on the running event loop."""
        self.scheduler.start()

    async def stop(self) -> None:
        """Stop discovery and forget every surface."""
        await self.scheduler.stop()
        self.registry.clear()
