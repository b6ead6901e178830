"""
Directory index pages.
"""

import html
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from livedoc import templates
from livedoc.app_logger import LogContext, get_default_logger
from livedoc.errors import NotFoundError
from livedoc.file_finder import MarkdownFileFinder, PathKind
from livedoc.stylesheet import StyleSheetBuilder


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    href: str
    kind: PathKind

    @property
    def label(self) -> str:
        return self.name + "/" if self.kind is PathKind.DIRECTORY else self.name


@dataclass
class DirectoryListing:
    title: str
    entries: List[DirectoryEntry]

    def to_html(self) -> str:
        lines = ["<ul>"]
        for entry in self.entries:
            lines.append(
                f'\t<li class="{entry.kind.value}">'
                f'<a href="{html.escape(entry.href)}">{html.escape(entry.label)}</a></li>'
            )
        lines.append("</ul>")
        return "\n".join(lines)


class DirectoryIndexer:
    """
    Lists the immediate children of a directory as an HTML page styled with
    the same stylesheet as rendered documents.
    """

    def __init__(
        self,
        stylesheet_path,
        reload_script: str = "",
        stylesheet_builder: Optional[StyleSheetBuilder] = None,
    ):
        self.stylesheet_path = Path(stylesheet_path)
        self.reload_script = reload_script
        self.stylesheet_builder = stylesheet_builder or StyleSheetBuilder()
        self._logger = get_default_logger()
        self._log_context = LogContext(component="DirectoryIndexer")

    @staticmethod
    def classify_entry(entry: os.DirEntry) -> PathKind:
        if entry.is_dir():
            return PathKind.DIRECTORY
        if MarkdownFileFinder.is_markdown(entry.name):
            return PathKind.MARKDOWN
        return PathKind.OTHER

    def list_directory(self, directory_path, url_path: str = "/") -> DirectoryListing:
        """
        Enumerate the children of a directory in filesystem order.

        Raises:
            NotFoundError: If the path is missing or not a directory
        """
        directory_path = Path(directory_path)
        if not directory_path.is_dir():
            raise NotFoundError(f"{directory_path} is not a directory")

        prefix = url_path.rstrip("/") + "/"
        entries = []
        try:
            with os.scandir(directory_path) as children:
                for child in children:
                    kind = self.classify_entry(child)
                    href = prefix + quote(child.name)
                    if kind is PathKind.DIRECTORY:
                        href += "/"
                    entries.append(DirectoryEntry(child.name, href, kind))
        except OSError as e:
            raise NotFoundError(f"Cannot list {directory_path}: {e}") from e

        return DirectoryListing(title=prefix, entries=entries)

    def index(self, directory_path, url_path: str = "/") -> str:
        """
        Render the index page for a directory.

        Raises:
            NotFoundError: If the path is missing or not a directory
            StyleError: If the stylesheet cannot be built
        """
        listing = self.list_directory(directory_path, url_path)
        css = self.stylesheet_builder.build(self.stylesheet_path)
        self._logger.debug(
            "Indexed directory",
            context=self._log_context,
            path=str(directory_path),
            entries=len(listing.entries),
        )
        return templates.directory_index(
            listing.title, css, listing.to_html(), os.getpid(), self.reload_script
        )
