"""
HTTP listener.

``DocumentHTTPServer`` handles every request on its own thread so one slow
render never holds up another. Markdown and directory requests are answered
by the ``RenderApplication``; everything else falls through to the
standard library's static file handling rooted at the serve directory.
"""

from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from typing import Tuple

from livedoc.app import RenderApplication
from livedoc.app_logger import LogContext, get_default_logger
from livedoc.port_negotiator import address_family


class DocumentRequestHandler(SimpleHTTPRequestHandler):
    server: "DocumentHTTPServer"

    def __init__(self, request, client_address, server: "DocumentHTTPServer"):
        super().__init__(
            request, client_address, server, directory=str(server.app.serve_dir)
        )

    def do_GET(self):
        self._respond(head_only=False)

    def do_HEAD(self):
        self._respond(head_only=True)

    def _respond(self, head_only: bool) -> None:
        try:
            response = self.server.app.handle(self.path)
        except Exception as e:
            get_default_logger().error(
                "Unhandled error while serving request",
                context=LogContext(
                    component="DocumentRequestHandler", request_path=self.path
                ),
                error=str(e),
                exc_info=True,
            )
            self.send_error(HTTPStatus.INTERNAL_SERVER_ERROR, str(e))
            return

        if response is None:
            if head_only:
                super().do_HEAD()
            else:
                super().do_GET()
            return

        body = response.encode()
        self.send_response(response.status)
        self.send_header("Content-Type", response.content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if not head_only:
            self.wfile.write(body)

    def log_message(self, format, *args):
        get_default_logger().debug(
            format % args,
            context=LogContext(component="DocumentRequestHandler"),
            client=self.address_string(),
        )


class DocumentHTTPServer(ThreadingHTTPServer):
    """Threaded HTTP server bound to one ``RenderApplication``."""

    daemon_threads = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        app: RenderApplication,
        bind_and_activate: bool = True,
    ):
        self.app = app
        # Instance attribute; the socket is created in TCPServer.__init__
        self.address_family = address_family(*server_address[:2])
        super().__init__(server_address, DocumentRequestHandler, bind_and_activate)
