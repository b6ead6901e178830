"""
Rewrites wiki style links between documents.

Authors can link to another document by its logical name, e.g.
``[See Other](other)`` or ``[Guide](<docs/User Guide>)``. When
``other.md`` exists on disk the link is rewritten to ``other.md`` so the
browser requests the Markdown source and the server renders it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from livedoc.app_logger import LogContext, get_default_logger
from livedoc.errors import ParseError

MARKDOWN_SUFFIX = ".md"


@dataclass(frozen=True)
class LinkContext:
    """Where links in one fragment are resolved from."""

    source_root: Path
    request_base_dir: Path


class LinkRewriter:
    """Post-processes anchors of an HTML fragment."""

    def __init__(self):
        self._logger = get_default_logger()
        self._log_context = LogContext(component="LinkRewriter")

    @staticmethod
    def _is_local(href: str) -> bool:
        if not href or href.startswith("#"):
            return False
        parts = urlsplit(href)
        return not parts.scheme and not parts.netloc and bool(parts.path)

    def resolve_markdown_target(self, href: str, context: LinkContext) -> Optional[str]:
        """
        Return the rewritten href for ``href``, or None to leave it alone.

        The target must exist as ``<path>.md`` inside the source root.
        """
        if not self._is_local(href):
            return None

        parts = urlsplit(href)
        decoded = unquote(parts.path)
        if decoded.startswith("/"):
            base = context.source_root
            decoded = decoded.lstrip("/")
        else:
            base = context.request_base_dir

        root = Path(context.source_root).resolve()
        candidate = (Path(base) / (decoded + MARKDOWN_SUFFIX)).resolve()
        if not candidate.is_relative_to(root) or not candidate.is_file():
            return None

        return urlunsplit(
            ("", "", parts.path + MARKDOWN_SUFFIX, parts.query, parts.fragment)
        )

    def rewrite(self, html_fragment: str, context: LinkContext) -> str:
        """
        Rewrite local document links in an HTML fragment.

        Args:
            html_fragment: HTML produced by the Markdown converter
            context: Directories used to resolve relative links

        Returns:
            The fragment's body content with rewritten anchors

        Raises:
            ParseError: If the fragment cannot be parsed
        """
        try:
            soup = BeautifulSoup(html_fragment, "html.parser")
        except Exception as e:
            raise ParseError(f"Cannot parse HTML fragment: {e}") from e

        for anchor in soup.find_all("a", href=True):
            rewritten = self.resolve_markdown_target(anchor["href"], context)
            if rewritten is not None:
                self._logger.debug(
                    "Rewrote document link",
                    context=self._log_context,
                    href=anchor["href"],
                    target=rewritten,
                )
                anchor["href"] = rewritten

        body = soup.body
        return body.decode_contents() if body is not None else soup.decode()
