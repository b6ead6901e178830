"""
Main server module: startup sequence and process lifecycle.

Startup runs strictly in order, each step at most once:

    IDLE -> LIVE_RELOAD_PORT_RESOLVED -> APP_ASSEMBLED -> HTTP_PORT_RESOLVED
         -> HTTP_LISTENING -> LIVE_RELOAD_WATCHING -> READY

A failure at any step releases whatever was already bound and aborts. The
HTTP accept loop only starts once READY has been reached.
"""

import os
import signal
import threading
import webbrowser
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from livedoc.app import RenderApplication
from livedoc.app_logger import LogContext, get_default_logger
from livedoc.config import ServerConfig
from livedoc.errors import NoPortAvailableError
from livedoc.file_finder import MarkdownFileFinder
from livedoc.live_reload import LiveReloadChannel
from livedoc.port_negotiator import PortLease, PortNegotiator
from livedoc.request_handler import DocumentHTTPServer
from livedoc.worker_pool import WorkerPool


class StartupState(Enum):
    IDLE = 0
    LIVE_RELOAD_PORT_RESOLVED = 1
    APP_ASSEMBLED = 2
    HTTP_PORT_RESOLVED = 3
    HTTP_LISTENING = 4
    LIVE_RELOAD_WATCHING = 5
    READY = 6


@dataclass(frozen=True)
class StartupResult:
    """Process wide values fixed at startup and read-only afterwards."""

    live_reload: PortLease
    http: PortLease
    address: str
    browser_host: str
    app: RenderApplication

    @property
    def url(self) -> str:
        return f"http://{self.browser_host}:{self.http.port}"


class LivedocServer:
    """
    Orchestrates port negotiation, the HTTP listener and the live-reload
    channel for one serve directory.
    """

    def __init__(
        self,
        config: ServerConfig,
        port_negotiator: Optional[PortNegotiator] = None,
        live_reload_factory: Callable[..., LiveReloadChannel] = LiveReloadChannel,
        browser_opener: Callable[[str], object] = webbrowser.open,
    ):
        self.config = config
        self.port_negotiator = port_negotiator or PortNegotiator(config.address)
        self._live_reload_factory = live_reload_factory
        self._browser_opener = browser_opener

        self.state = StartupState.IDLE
        self.startup: Optional[StartupResult] = None
        self.worker_pool: Optional[WorkerPool] = None
        self.app: Optional[RenderApplication] = None
        self.http_server: Optional[DocumentHTTPServer] = None
        self.live_reload: Optional[LiveReloadChannel] = None

        self._logger = get_default_logger()
        self._log_context = LogContext(component="LivedocServer")

    def _advance(self, new_state: StartupState) -> None:
        if new_state.value != self.state.value + 1:
            raise RuntimeError(
                f"Invalid startup transition {self.state.name} -> {new_state.name}"
            )
        self.state = new_state
        self._logger.debug(
            "Startup state changed", context=self._log_context, state=new_state.name
        )

    def validate_setup(self) -> None:
        """
        Raises:
            FileNotFoundError: If the serve directory doesn't exist
            NotADirectoryError: If the serve path is not a directory
            PermissionError: If the serve directory is not accessible
        """
        MarkdownFileFinder(self.config.serve_dir).validate_directory()

    def start(self) -> StartupResult:
        """
        Run the startup sequence up to READY.

        Raises:
            NoPortAvailableError: If a port range is exhausted
            OSError: If the HTTP listener cannot bind
            RuntimeError: If startup was already attempted
        """
        if self.state is not StartupState.IDLE:
            raise RuntimeError("Server has already been started")

        try:
            self.validate_setup()

            live_reload_lease = self.port_negotiator.lease(
                "livereload", self.config.live_reload_port_range
            )
            self._advance(StartupState.LIVE_RELOAD_PORT_RESOLVED)

            self.worker_pool = WorkerPool()
            self.app = RenderApplication.from_config(
                self.config, live_reload_lease.port, worker_pool=self.worker_pool
            )
            self._advance(StartupState.APP_ASSEMBLED)

            if self.config.http_port is None:
                http_lease = self.port_negotiator.lease(
                    "http",
                    self.config.http_port_range,
                    exclude={live_reload_lease.port},
                )
            else:
                # Pinned by the operator: used as-is
                http_lease = PortLease(self.config.http_port, "http")
            self._advance(StartupState.HTTP_PORT_RESOLVED)

            self.http_server = DocumentHTTPServer(
                (self.config.address, http_lease.port), self.app
            )
            self._advance(StartupState.HTTP_LISTENING)

            self.live_reload = self._live_reload_factory(
                self.config.serve_dir, live_reload_lease.port, host=self.config.address
            )
            self.live_reload.start()
            self._advance(StartupState.LIVE_RELOAD_WATCHING)

            self.startup = StartupResult(
                live_reload=live_reload_lease,
                http=http_lease,
                address=self.config.address,
                browser_host=self.config.browser_host,
                app=self.app,
            )
            self._advance(StartupState.READY)
        except BaseException:
            self.cleanup()
            raise

        self.log_banner()
        return self.startup

    def log_banner(self) -> None:
        startup = self.startup
        self._logger.info(
            "start",
            context=self._log_context,
            serving=str(self.config.serve_dir),
            port=startup.http.port,
        )
        self._logger.info("address", context=self._log_context, url=startup.url)
        self._logger.info(
            "less", context=self._log_context, stylesheet=str(self.config.stylesheet_path)
        )
        self._logger.info(
            "livereload", context=self._log_context, port=startup.live_reload.port
        )
        self._logger.info(
            "process",
            context=self._log_context,
            pid=os.getpid(),
            stop=f"press [Ctrl + C] or run 'kill {os.getpid()}'",
        )

    def open_browser(self) -> None:
        """Open the served site (or the requested file) in a browser."""
        if self.startup is None:
            return
        if self.config.open_file:
            self._browser_opener(
                self.startup.url + "/" + self.config.open_file.lstrip("/")
            )
        elif self.config.open_browser:
            self._browser_opener(self.startup.url)

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            self._logger.info(
                "Received signal, shutting down", context=self._log_context, signal=signum
            )
            self.stop()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def serve_forever(self) -> None:
        if self.state is not StartupState.READY:
            raise RuntimeError("Server is not ready")
        self.http_server.serve_forever()

    def stop(self) -> None:
        """Stop the accept loop; safe to call from a signal handler."""
        if self.http_server is not None:
            # shutdown() blocks until serve_forever() returns
            threading.Thread(target=self.http_server.shutdown, daemon=True).start()

    def run(self) -> int:
        """
        Main server execution method.

        Returns:
            Exit code (0 for success, 1 for error)
        """
        try:
            self.start()
            self.setup_signal_handlers()
            self.open_browser()
            self.serve_forever()
            return 0
        except KeyboardInterrupt:
            return 0
        except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
            self._logger.error("Directory error", context=self._log_context, error=str(e))
            return 1
        except NoPortAvailableError as e:
            self._logger.error("Port error", context=self._log_context, error=str(e))
            return 1
        except OSError as e:
            self._logger.error("Listener error", context=self._log_context, error=str(e))
            return 1
        except Exception as e:
            self._logger.error(
                "Server error", context=self._log_context, error=str(e), exc_info=True
            )
            return 1
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        """Release both ports and the worker threads."""
        if self.live_reload is not None:
            self.live_reload.stop()
            self.live_reload = None
        if self.http_server is not None:
            self.http_server.server_close()
            self.http_server = None
        if self.worker_pool is not None:
            self.worker_pool.shutdown(wait=False)
            self.worker_pool = None

    def is_ready(self) -> bool:
        return self.state is StartupState.READY
