"""Unit tests for compose surface discovery."""

from __future__ import annotations

import pytest

from email_open_tracker.agent.interceptor import InterceptorState
from email_open_tracker.agent.scanner import SurfaceScanner
from tests.fakes import ComposeWindow, FakeDocument, FakeElement, FakeIssuer


class TestSurfaceScanner:
    """Test suite for SurfaceScanner."""

    def test_scan_wires_toggle_and_interceptor(self, document: FakeDocument, compose: ComposeWindow, issuer: FakeIssuer) -> None:
        scanner = SurfaceScanner(document, issuer)

        armed = scanner.scan_once()

        assert armed == 1
        assert compose.toggle is not None
        assert compose.send.capture_listener_count() == 1
        state = scanner.registry.get(compose.surface)
        assert state is not None
        assert state.interceptor.armed is True

    def test_repeated_scans_are_idempotent(self, document: FakeDocument, compose: ComposeWindow, issuer: FakeIssuer) -> None:
        scanner = SurfaceScanner(document, issuer)

        results = [scanner.scan_once() for _ in range(5)]

        assert results == [1, 0, 0, 0, 0]
        assert len(compose.surface.query_selector_all(".tracking-btn")) == 1
        assert compose.send.capture_listener_count() == 1
        assert len(scanner.registry) == 1

    def test_each_surface_is_handled(self, document: FakeDocument, issuer: FakeIssuer) -> None:
        windows = [
            ComposeWindow(document, send_style="tooltip"),
            ComposeWindow(document, send_style="aria"),
            ComposeWindow(document, send_style="class"),
        ]
        scanner = SurfaceScanner(document, issuer)

        assert scanner.scan_once() == 3
        for w in windows:
            assert w.toggle is not None
            assert w.send.capture_listener_count() == 1

    def test_surface_without_send_control_is_skipped_until_it_renders(
        self, document: FakeDocument, issuer: FakeIssuer
    ) -> None:
        window = ComposeWindow(document, send_style=None)
        scanner = SurfaceScanner(document, issuer)

        assert scanner.scan_once() == 0
        assert window.toggle is None
        assert window.surface not in scanner.registry

        send = FakeElement("div", {"role": "button", "data-tooltip": "Send"})
        window.surface.children[0].append(send)

        assert scanner.scan_once() == 1
        assert window.toggle is not None
        assert send.capture_listener_count() == 1

    def test_non_dialog_elements_are_ignored(self, document: FakeDocument, issuer: FakeIssuer) -> None:
        stray = FakeElement("div", {"role": "button", "data-tooltip": "Send"})
        document.root.append(FakeElement("div", {"role": "main"}).append(stray))

        assert SurfaceScanner(document, issuer).scan_once() == 0
        assert stray.capture_listener_count() == 0

    @pytest.mark.asyncio
    async def test_finished_interceptor_is_replaced_on_next_scan(
        self, document: FakeDocument, compose: ComposeWindow, issuer: FakeIssuer
    ) -> None:
        scanner = SurfaceScanner(document, issuer, resend_delay=0.0)
        scanner.scan_once()
        first = scanner.registry.get(compose.surface).interceptor

        compose.send.click()
        await first.wait()
        assert first.state is InterceptorState.DONE
        assert compose.send.capture_listener_count() == 0

        assert scanner.scan_once() == 1
        second = scanner.registry.get(compose.surface).interceptor
        assert second is not first
        assert compose.send.capture_listener_count() == 1
        assert len(compose.surface.query_selector_all(".tracking-btn")) == 1

    @pytest.mark.asyncio
    async def test_in_flight_interceptor_is_left_alone(
        self, document: FakeDocument, compose: ComposeWindow, issuer: FakeIssuer
    ) -> None:
        issuer.hold()
        scanner = SurfaceScanner(document, issuer, resend_delay=0.0)
        scanner.scan_once()
        interceptor = scanner.registry.get(compose.surface).interceptor

        compose.send.click()

        assert scanner.scan_once() == 0
        assert scanner.registry.get(compose.surface).interceptor is interceptor

        issuer.release.set()
        await interceptor.wait()
        assert compose.send_count == 1

    def test_rerendered_send_control_moves_listener(
        self, document: FakeDocument, compose: ComposeWindow, issuer: FakeIssuer
    ) -> None:
        scanner = SurfaceScanner(document, issuer)
        scanner.scan_once()
        old_send = compose.send
        toolbar = old_send.parent

        old_send.remove()
        new_send = FakeElement("div", {"role": "button", "data-tooltip": "Send"})
        toolbar.append(new_send)

        assert scanner.scan_once() == 1
        assert old_send.capture_listener_count() == 0
        assert new_send.capture_listener_count() == 1
        assert len(compose.surface.query_selector_all(".tracking-btn")) == 1

    def test_closed_surfaces_are_forgotten(self, document: FakeDocument, issuer: FakeIssuer) -> None:
        scanner = SurfaceScanner(document, issuer)

        for _ in range(20):
            window = ComposeWindow(document)
            assert scanner.scan_once() == 1
            window.surface.remove()
        scanner.scan_once()

        assert len(scanner.registry) == 0

    def test_closed_surface_releases_its_listener(
        self, document: FakeDocument, compose: ComposeWindow, issuer: FakeIssuer
    ) -> None:
        scanner = SurfaceScanner(document, issuer)
        scanner.scan_once()

        compose.surface.remove()
        scanner.scan_once()

        assert compose.surface not in scanner.registry
        assert compose.send.capture_listener_count() == 0

    @pytest.mark.asyncio
    async def test_closed_surface_mid_send_is_kept_until_done(
        self, document: FakeDocument, compose: ComposeWindow, issuer: FakeIssuer
    ) -> None:
        issuer.hold()
        scanner = SurfaceScanner(document, issuer, resend_delay=0.0)
        scanner.scan_once()
        interceptor = scanner.registry.get(compose.surface).interceptor

        compose.send.click()
        compose.surface.remove()
        scanner.scan_once()

        assert len(scanner.registry) == 1

        issuer.release.set()
        await interceptor.wait()
        assert compose.send_count == 1

        scanner.scan_once()
        assert len(scanner.registry) == 0
