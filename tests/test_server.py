"""
Tests for the LivedocServer class.

This module tests the startup sequence, port leasing, lifecycle and error
handling of the server.
"""

import socket
import threading
import urllib.request
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from conftest import find_unused_port
from livedoc.config import ServerConfig
from livedoc.errors import NoPortAvailableError
from livedoc.port_negotiator import PortLease, PortNegotiator
from livedoc.server import LivedocServer, StartupState


class FakeLiveReload:
    """Stands in for LiveReloadChannel without starting tornado."""

    instances = []
    start_error = None

    def __init__(self, watch_dir, port, host="localhost"):
        self.watch_dir = watch_dir
        self.port = port
        self.host = host
        self.started = False
        self.stopped = False
        FakeLiveReload.instances.append(self)

    def start(self):
        if FakeLiveReload.start_error is not None:
            raise FakeLiveReload.start_error
        self.started = True

    def stop(self):
        self.stopped = True


@pytest.fixture(autouse=True)
def reset_fake_live_reload():
    FakeLiveReload.instances = []
    FakeLiveReload.start_error = None


def make_server(config: ServerConfig, negotiator=None, opener=None) -> LivedocServer:
    return LivedocServer(
        config,
        port_negotiator=negotiator,
        live_reload_factory=FakeLiveReload,
        browser_opener=opener or MagicMock(),
    )


def mock_negotiator(*leases) -> MagicMock:
    negotiator = MagicMock(spec=PortNegotiator)
    negotiator.lease.side_effect = list(leases)
    return negotiator


class TestStartup:
    """Startup sequence."""

    def test_start_reaches_ready(self, serve_root: Path):
        http_port = find_unused_port()
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(http_port, "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator
        )

        try:
            startup = server.start()

            assert server.state is StartupState.READY
            assert server.is_ready()
            assert startup.http == PortLease(http_port, "http")
            assert startup.live_reload == PortLease(35729, "livereload")
            assert startup.url == f"http://127.0.0.1:{http_port}"
            assert server.http_server.server_address[1] == http_port
            assert FakeLiveReload.instances[0].started
            assert FakeLiveReload.instances[0].port == 35729
        finally:
            server.cleanup()

    def test_ports_are_resolved_in_order_without_collision(self, serve_root: Path):
        http_port = find_unused_port()
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(http_port, "http")
        )
        config = ServerConfig(serve_dir=serve_root, address="127.0.0.1")
        server = make_server(config, negotiator)

        try:
            server.start()
        finally:
            server.cleanup()

        first, second = negotiator.lease.call_args_list
        assert first.args == ("livereload", config.live_reload_port_range)
        assert second.args == ("http", config.http_port_range)
        assert second.kwargs == {"exclude": {35729}}

    def test_pinned_http_port_skips_port_search(self, serve_root: Path):
        http_port = find_unused_port()
        negotiator = mock_negotiator(PortLease(35729, "livereload"))
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1", http_port=http_port),
            negotiator,
        )

        try:
            startup = server.start()
        finally:
            server.cleanup()

        negotiator.lease.assert_called_once()
        assert startup.http.port == http_port

    def test_port_exhaustion_halts_startup(self, serve_root: Path):
        negotiator = MagicMock(spec=PortNegotiator)
        negotiator.lease.side_effect = NoPortAvailableError(35729, 35829)
        server = make_server(ServerConfig(serve_dir=serve_root), negotiator)

        with pytest.raises(NoPortAvailableError):
            server.start()

        assert server.state is StartupState.IDLE
        assert server.http_server is None
        assert FakeLiveReload.instances == []

    def test_bind_failure_releases_resources(self, serve_root: Path):
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(8000, "http")
        )
        server = make_server(ServerConfig(serve_dir=serve_root), negotiator)

        with patch(
            "livedoc.server.DocumentHTTPServer", side_effect=OSError("in use")
        ):
            with pytest.raises(OSError):
                server.start()

        assert server.state is StartupState.HTTP_PORT_RESOLVED
        assert server.worker_pool is None
        assert FakeLiveReload.instances == []

    def test_live_reload_failure_halts_startup(self, serve_root: Path):
        FakeLiveReload.start_error = OSError("Address already in use")
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator
        )

        with pytest.raises(OSError):
            server.start()

        assert server.state is StartupState.HTTP_LISTENING
        assert not server.is_ready()
        assert server.http_server is None
        assert FakeLiveReload.instances[0].stopped

    def test_occupied_live_reload_port_halts_startup(self, serve_root: Path):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen(1)
            live_port = sock.getsockname()[1]

            negotiator = mock_negotiator(
                PortLease(live_port, "livereload"),
                PortLease(find_unused_port(), "http"),
            )
            server = LivedocServer(
                ServerConfig(serve_dir=serve_root, address="127.0.0.1"),
                port_negotiator=negotiator,
                browser_opener=MagicMock(),
            )

            with pytest.raises(OSError):
                server.start()

        assert server.state is not StartupState.READY
        assert server.startup is None
        assert server.live_reload is None

    def test_wildcard_address_uses_localhost_url(self, serve_root: Path):
        http_port = find_unused_port()
        negotiator = mock_negotiator(PortLease(35729, "livereload"))
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="0.0.0.0", http_port=http_port),
            negotiator,
        )

        try:
            startup = server.start()
        finally:
            server.cleanup()

        assert startup.browser_host == "localhost"
        assert startup.url == f"http://localhost:{http_port}"

    def test_start_twice_is_rejected(self, serve_root: Path):
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator
        )
        try:
            server.start()
            with pytest.raises(RuntimeError):
                server.start()
        finally:
            server.cleanup()

    def test_states_only_advance_one_step(self, serve_root: Path):
        server = make_server(ServerConfig(serve_dir=serve_root))

        with pytest.raises(RuntimeError):
            server._advance(StartupState.APP_ASSEMBLED)

        server._advance(StartupState.LIVE_RELOAD_PORT_RESOLVED)
        with pytest.raises(RuntimeError):
            server._advance(StartupState.IDLE)

    def test_serve_forever_requires_ready(self, serve_root: Path):
        with pytest.raises(RuntimeError):
            make_server(ServerConfig(serve_dir=serve_root)).serve_forever()


class TestLifecycle:
    """Serving, browser opening and shutdown."""

    def test_serves_requests_after_ready(self, serve_root: Path):
        http_port = find_unused_port()
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(http_port, "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator
        )
        server.start()
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()

        try:
            with urllib.request.urlopen(
                f"http://127.0.0.1:{http_port}/index.md", timeout=10
            ) as response:
                body = response.read().decode("utf-8")
        finally:
            server.stop()
            thread.join(timeout=5)
            server.cleanup()

        assert "<h1>Hi</h1>" in body
        assert "127.0.0.1:35729/livereload.js" in body
        assert not thread.is_alive()

    def test_open_browser_opens_root(self, serve_root: Path):
        opener = MagicMock()
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator, opener
        )
        try:
            startup = server.start()
            server.open_browser()
        finally:
            server.cleanup()

        opener.assert_called_once_with(startup.url)

    def test_open_browser_with_file(self, serve_root: Path):
        opener = MagicMock()
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        server = make_server(
            ServerConfig(
                serve_dir=serve_root,
                address="127.0.0.1",
                open_browser=False,
                open_file="docs/guide.md",
            ),
            negotiator,
            opener,
        )
        try:
            startup = server.start()
            server.open_browser()
        finally:
            server.cleanup()

        opener.assert_called_once_with(startup.url + "/docs/guide.md")

    def test_no_browser_flag(self, serve_root: Path):
        opener = MagicMock()
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1", open_browser=False),
            negotiator,
            opener,
        )
        try:
            server.start()
            server.open_browser()
        finally:
            server.cleanup()

        opener.assert_not_called()

    def test_cleanup_stops_live_reload(self, serve_root: Path):
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator
        )
        server.start()

        server.cleanup()

        assert FakeLiveReload.instances[0].stopped
        assert server.live_reload is None
        assert server.http_server is None

    @pytest.mark.parametrize(
        "address, browser_host",
        [
            ("0.0.0.0", "localhost"),
            ("::", "localhost"),
            ("", "localhost"),
            ("::1", "[::1]"),
            ("127.0.0.1", "127.0.0.1"),
        ],
    )
    def test_browser_host(self, serve_root: Path, address: str, browser_host: str):
        assert ServerConfig(serve_dir=serve_root, address=address).browser_host == (
            browser_host
        )

    @patch("signal.signal")
    def test_setup_signal_handlers(self, mock_signal, serve_root: Path):
        make_server(ServerConfig(serve_dir=serve_root)).setup_signal_handlers()

        assert mock_signal.call_count == 2


class TestRun:
    """Exit codes of run()."""

    def test_run_directory_error(self, temp_dir: Path):
        config = ServerConfig(serve_dir=temp_dir)
        config.serve_dir = temp_dir / "does_not_exist"

        assert make_server(config).run() == 1

    def test_run_port_error(self, serve_root: Path):
        negotiator = MagicMock(spec=PortNegotiator)
        negotiator.lease.side_effect = NoPortAvailableError(35729, 35829)

        assert make_server(ServerConfig(serve_dir=serve_root), negotiator).run() == 1

    @patch.object(LivedocServer, "setup_signal_handlers")
    @patch.object(LivedocServer, "serve_forever")
    def test_run_success(self, mock_serve, mock_signals, serve_root: Path):
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        opener = MagicMock()
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator, opener
        )

        assert server.run() == 0
        mock_serve.assert_called_once()
        mock_signals.assert_called_once()
        opener.assert_called_once()
        assert server.http_server is None

    @patch.object(LivedocServer, "setup_signal_handlers")
    @patch.object(LivedocServer, "serve_forever", side_effect=KeyboardInterrupt)
    def test_run_keyboard_interrupt(self, mock_serve, mock_signals, serve_root: Path):
        negotiator = mock_negotiator(
            PortLease(35729, "livereload"), PortLease(find_unused_port(), "http")
        )
        server = make_server(
            ServerConfig(serve_dir=serve_root, address="127.0.0.1"), negotiator
        )

        assert server.run() == 0
        assert server.http_server is None
