"""
Live-reload channel.

Wraps ``livereload.Server``: it watches the serve root and pushes reload
notifications to browsers over a websocket on its own port. Rendered pages
load the client script from that port.
"""

import asyncio
import threading
from pathlib import Path
from typing import Callable, Optional

from livereload import Server
from tornado.ioloop import IOLoop

from livedoc.app_logger import LogContext, get_default_logger
from livedoc.file_finder import MarkdownFileFinder

DEFAULT_START_TIMEOUT = 10.0


def ignore_unwatched(filename: str) -> bool:
    """livereload ignore hook: skip files whose changes should not reload."""
    return not MarkdownFileFinder.is_watched(filename)


class LiveReloadChannel:
    """Runs the live-reload server on a background thread."""

    def __init__(
        self,
        watch_dir,
        port: int,
        host: str = "localhost",
        server_factory: Callable[[], Server] = Server,
        start_timeout: float = DEFAULT_START_TIMEOUT,
    ):
        self.watch_dir = Path(watch_dir)
        self.port = port
        self.host = host
        self.start_timeout = start_timeout
        self._server_factory = server_factory
        self._server: Optional[Server] = None
        self._thread: Optional[threading.Thread] = None
        self._ioloop: Optional[IOLoop] = None
        self._started = threading.Event()
        self._error: Optional[BaseException] = None
        self._logger = get_default_logger()
        self._log_context = LogContext(component="LiveReloadChannel")

    def start(self) -> None:
        """
        Register the watch and start serving reload notifications.

        Returns once the port is bound.

        Raises:
            OSError: If the port cannot be bound
            TimeoutError: If the server did not come up within ``start_timeout``
            RuntimeError: If the channel was already started
        """
        if self._thread is not None:
            raise RuntimeError("Live-reload channel already started")

        self._server = self._server_factory()
        self._server.watch(str(self.watch_dir), ignore=ignore_unwatched)
        self._thread = threading.Thread(
            target=self._serve, name="livereload", daemon=True
        )
        self._thread.start()

        if not self._started.wait(self.start_timeout):
            self.stop()
            raise TimeoutError(
                f"Live-reload server did not start on port {self.port}"
            )
        if self._error is not None:
            self._thread.join(self.start_timeout)
            raise self._error

        self._logger.info(
            "livereload",
            context=self._log_context,
            port=self.port,
            watching=str(self.watch_dir),
        )

    def _serve(self) -> None:
        # tornado needs an event loop of its own off the main thread
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._ioloop = IOLoop.current()
        # Runs on the first loop iteration, i.e. after serve() has bound the port
        self._ioloop.add_callback(self._started.set)
        try:
            self._server.serve(
                port=self.port,
                host=self.host,
                root=str(self.watch_dir),
                debug=False,
                open_url_delay=None,
            )
        except Exception as e:
            self._error = e
            self._logger.error(
                "Live-reload server failed", context=self._log_context, error=str(e)
            )
        finally:
            self._started.set()
            loop.close()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the IOLoop, which closes the listening socket, and join the thread."""
        if self._ioloop is not None and self.is_running():
            self._ioloop.add_callback(self._ioloop.stop)
        if self._thread is not None:
            self._thread.join(timeout)

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
