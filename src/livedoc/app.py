"""
Request dispatch.

Each request path is classified once and routed to the document composer,
the directory indexer, or back to the static file sender. Rendering errors
become diagnostic responses here and never reach the listener.
"""

from dataclasses import dataclass
from typing import Optional

from livedoc import templates
from livedoc.app_logger import LogContext, get_default_logger
from livedoc.config import ServerConfig
from livedoc.directory_indexer import DirectoryIndexer
from livedoc.document_composer import DocumentComposer
from livedoc.errors import LivedocError, NotFoundError
from livedoc.file_finder import MarkdownFileFinder
from livedoc.stylesheet import StyleSheetBuilder
from livedoc.worker_pool import WorkerPool

# Missing paths answer 200 so the browser keeps its live-reload connection
NOT_FOUND_BODY = "404 :'("

HTML = "text/html; charset=utf-8"
TEXT = "text/plain; charset=utf-8"


@dataclass(frozen=True)
class Response:
    status: int
    body: str
    content_type: str = HTML

    def encode(self) -> bytes:
        return self.body.encode("utf-8")


class RenderApplication:
    """Routes classified requests to the renderers."""

    def __init__(
        self,
        finder: MarkdownFileFinder,
        composer: DocumentComposer,
        indexer: DirectoryIndexer,
    ):
        self.finder = finder
        self.composer = composer
        self.indexer = indexer
        self._logger = get_default_logger()

    @classmethod
    def from_config(
        cls,
        config: ServerConfig,
        live_reload_port: int,
        worker_pool: Optional[WorkerPool] = None,
    ) -> "RenderApplication":
        """Wire up the renderers for one server."""
        composer_config = config.composer_config(live_reload_port)
        stylesheet_builder = StyleSheetBuilder()
        composer = DocumentComposer(
            config.serve_dir,
            composer_config,
            worker_pool=worker_pool,
            stylesheet_builder=stylesheet_builder,
        )
        indexer = DirectoryIndexer(
            config.stylesheet_path,
            reload_script=composer.reload_script,
            stylesheet_builder=stylesheet_builder,
        )
        return cls(MarkdownFileFinder(config.serve_dir), composer, indexer)

    @property
    def serve_dir(self):
        return self.finder.base_directory

    def handle(self, url: str) -> Optional[Response]:
        """
        Produce the response for one request URL.

        Returns:
            The response, or None when the path is a plain file that should be
            sent as-is by the static file sender
        """
        context = LogContext(component="RenderApplication", request_path=url)
        try:
            request = self.finder.classify(url)
        except NotFoundError as e:
            self._logger.warning("404", context=context, error=str(e))
            return Response(200, NOT_FOUND_BODY, TEXT)

        if request.is_markdown:
            self._logger.info("markdown", context=context)
            try:
                return Response(200, self.composer.compose(request.path))
            except LivedocError as e:
                self._logger.error(
                    "Can't build HTML", context=context, error=str(e), exc_info=True
                )
                return Response(
                    500,
                    templates.error_page(
                        request.url_path, str(e), self.composer.reload_script
                    ),
                )

        if request.is_directory:
            self._logger.info("dir", context=context)
            try:
                return Response(200, self.indexer.index(request.path, request.url_path))
            except NotFoundError as e:
                self._logger.warning("404", context=context, error=str(e))
                return Response(200, NOT_FOUND_BODY, TEXT)
            except LivedocError as e:
                self._logger.error("Can't build index", context=context, error=str(e))
                return Response(500, f"Cannot list {request.url_path}: {e}", TEXT)

        self._logger.info("file", context=context)
        return None

    def close(self) -> None:
        self.composer.close()
