"""
Document composition: turns one Markdown request into a full HTML page.

The stylesheet and every configured fragment (article, header, footer,
navigation) are produced concurrently on the worker pool. The page is only
assembled once all of them have settled, so a failure in any one of them
yields an error instead of a partially rendered page.
"""

from concurrent.futures import Future, wait
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from livedoc import templates
from livedoc.app_logger import LogContext, get_default_logger
from livedoc.config import ComposerConfig
from livedoc.errors import NotFoundError, ParseError, RenderTimeoutError
from livedoc.link_rewriter import LinkContext, LinkRewriter
from livedoc.markdown_converter import MarkdownConverter
from livedoc.stylesheet import StyleSheetBuilder
from livedoc.worker_pool import WorkerPool


class FragmentSlot(Enum):
    ARTICLE = "article"
    HEADER = "header"
    FOOTER = "footer"
    NAVIGATION = "navigation"


@dataclass
class Fragment:
    """One Markdown source and its rendered HTML."""

    slot: FragmentSlot
    source_path: Optional[Path] = None
    markdown: Optional[str] = None
    html: Optional[str] = None

    @property
    def is_absent(self) -> bool:
        return self.source_path is None


@dataclass
class ComposedDocument:
    title: str
    css: str
    article: str
    reload_script: str
    default_theme: bool
    header: Optional[str] = None
    footer: Optional[str] = None
    navigation: Optional[str] = None

    def render(self) -> str:
        if self.default_theme:
            return templates.default_document(
                self.title, self.css, self.article, self.reload_script
            )
        return templates.themed_document(
            self.title,
            self.css,
            self.article,
            self.reload_script,
            header=self.header,
            navigation=self.navigation,
            footer=self.footer,
        )


def document_title(markdown_path) -> str:
    """Title of a document: its file name without the extension."""
    return Path(markdown_path).stem


class DocumentComposer:
    """
    Assembles themed HTML documents from Markdown sources.

    With the bundled default theme only the article is rendered; header,
    footer and navigation sources are ignored and never read.
    """

    def __init__(
        self,
        source_root,
        config: ComposerConfig,
        worker_pool: Optional[WorkerPool] = None,
        converter: Optional[MarkdownConverter] = None,
        rewriter: Optional[LinkRewriter] = None,
        stylesheet_builder: Optional[StyleSheetBuilder] = None,
    ):
        """
        Args:
            source_root: Serve root; links are never rewritten to leave it
            config: Stylesheet, fragment paths and live-reload settings
            worker_pool: Pool to run steps on; one is created if omitted
        """
        self.source_root = Path(source_root).expanduser().resolve()
        self.config = config
        self._owns_pool = worker_pool is None
        self.worker_pool = worker_pool or WorkerPool()
        self.converter = converter or MarkdownConverter()
        self.rewriter = rewriter or LinkRewriter()
        self.stylesheet_builder = stylesheet_builder or StyleSheetBuilder()
        self._logger = get_default_logger()

    @property
    def reload_script(self) -> str:
        return templates.live_reload_script(
            self.config.live_reload_host, self.config.live_reload_port
        )

    def fragment_slots(self, markdown_path: Path) -> List[Fragment]:
        """The fragments a document is made of, in assembly order."""
        fragments = [Fragment(FragmentSlot.ARTICLE, Path(markdown_path))]
        if self.config.uses_default_theme:
            return fragments
        fragments.extend(
            [
                Fragment(FragmentSlot.HEADER, self.config.header_path),
                Fragment(FragmentSlot.FOOTER, self.config.footer_path),
                Fragment(FragmentSlot.NAVIGATION, self.config.navigation_path),
            ]
        )
        return fragments

    @staticmethod
    def read_source(path: Path) -> str:
        """
        Read a Markdown source file.

        Raises:
            NotFoundError: If the file is missing or unreadable
            ParseError: If the file is not valid UTF-8
        """
        try:
            return Path(path).read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"{path} is not UTF-8 text: {e}") from e
        except OSError as e:
            raise NotFoundError(f"Cannot read {path}: {e}") from e

    def render_fragment(self, fragment: Fragment, context: LinkContext) -> Fragment:
        """Read, convert and link-rewrite one fragment."""
        fragment.markdown = self.read_source(fragment.source_path)
        converted = self.converter.convert(fragment.markdown)
        fragment.html = self.rewriter.rewrite(converted, context)
        return fragment

    def _join(self, futures: Dict[str, Future]) -> Dict[str, object]:
        _, pending = wait(futures.values(), timeout=self.config.render_timeout)
        if pending:
            for future in pending:
                future.cancel()
            raise RenderTimeoutError(
                f"Rendering did not finish within {self.config.render_timeout}s"
            )
        # Raises the first failure in submission order
        return {key: future.result() for key, future in futures.items()}

    def build_document(self, markdown_path) -> ComposedDocument:
        """
        Produce the composed document for one Markdown file.

        Raises:
            NotFoundError: If the article or a configured fragment is missing
            ParseError: If a fragment cannot be converted
            StyleError: If the stylesheet cannot be built
            RenderTimeoutError: If rendering exceeds the render timeout
        """
        markdown_path = Path(markdown_path)
        context = LinkContext(
            source_root=self.source_root, request_base_dir=markdown_path.parent
        )

        futures: Dict[str, Future] = {
            "css": self.worker_pool.submit_task(
                self.stylesheet_builder.build, self.config.stylesheet_path
            )
        }
        for fragment in self.fragment_slots(markdown_path):
            if fragment.is_absent:
                continue
            futures[fragment.slot.value] = self.worker_pool.submit_task(
                self.render_fragment, fragment, context
            )

        results = self._join(futures)

        def html_for(slot: FragmentSlot) -> Optional[str]:
            fragment = results.get(slot.value)
            return fragment.html if fragment is not None else None

        return ComposedDocument(
            title=document_title(markdown_path),
            css=results["css"],
            article=html_for(FragmentSlot.ARTICLE),
            reload_script=self.reload_script,
            default_theme=self.config.uses_default_theme,
            header=html_for(FragmentSlot.HEADER),
            footer=html_for(FragmentSlot.FOOTER),
            navigation=html_for(FragmentSlot.NAVIGATION),
        )

    def compose(self, markdown_path) -> str:
        """Render the HTML page for one Markdown file."""
        self._logger.debug(
            "Composing document",
            context=LogContext(
                component="DocumentComposer",
                operation="compose",
                request_path=str(markdown_path),
            ),
        )
        return self.build_document(markdown_path).render()

    def close(self) -> None:
        if self._owns_pool:
            self.worker_pool.shutdown()
