"""
File finder module for locating and classifying requested paths.

Every request path is mapped onto the serve root exactly once and tagged as
a directory, a Markdown document or some other file.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar, FrozenSet
from urllib.parse import unquote, urlsplit

from livedoc.errors import NotFoundError


class PathKind(Enum):
    """Classification of a filesystem path."""

    DIRECTORY = "dir"
    MARKDOWN = "md"
    OTHER = "file"


@dataclass(frozen=True)
class RenderRequest:
    """A request path resolved against the serve root and classified."""

    path: Path
    url_path: str
    kind: PathKind

    @property
    def is_directory(self) -> bool:
        return self.kind is PathKind.DIRECTORY

    @property
    def is_markdown(self) -> bool:
        return self.kind is PathKind.MARKDOWN


class MarkdownFileFinder:
    """
    Responsible for finding and classifying files below the serve root.
    """

    MARKDOWN_EXTENSIONS: ClassVar[FrozenSet[str]] = frozenset(
        {
            ".markdown",
            ".mdown",
            ".mkdn",
            ".md",
            ".mkd",
            ".mdwn",
            ".mdtxt",
            ".mdtext",
            ".text",
        }
    )

    WATCH_EXTENSIONS: ClassVar[FrozenSet[str]] = MARKDOWN_EXTENSIONS | frozenset(
        {
            ".less",
            ".js",
            ".css",
            ".html",
            ".htm",
            ".json",
            ".gif",
            ".png",
            ".jpg",
            ".jpeg",
        }
    )

    def __init__(self, base_directory):
        """
        Initialise the file finder with the serve root.

        Args:
            base_directory: The directory requests are served from
        """
        self.base_directory = Path(base_directory).expanduser().resolve()

    @classmethod
    def is_markdown(cls, path) -> bool:
        """Check whether a file name carries a Markdown extension."""
        return os.path.splitext(str(path))[1].lower() in cls.MARKDOWN_EXTENSIONS

    @classmethod
    def is_watched(cls, path) -> bool:
        """Check whether changes to this file should trigger a browser reload."""
        return os.path.splitext(str(path))[1].lower() in cls.WATCH_EXTENSIONS

    def classify_path(self, path: Path) -> PathKind:
        """
        Classify an existing filesystem path.

        Raises:
            NotFoundError: If the path does not exist
        """
        if path.is_dir():
            return PathKind.DIRECTORY
        if not path.exists():
            raise NotFoundError(f"{path} does not exist")
        return PathKind.MARKDOWN if self.is_markdown(path) else PathKind.OTHER

    def resolve(self, url: str) -> Path:
        """
        Map a request URL onto a path below the serve root.

        Query strings and fragments are dropped and the path is
        percent-decoded.

        Raises:
            NotFoundError: If the path escapes the serve root
        """
        url_path = unquote(urlsplit(url).path)
        candidate = (self.base_directory / url_path.lstrip("/")).resolve()
        if not candidate.is_relative_to(self.base_directory):
            raise NotFoundError(f"{url_path} is outside of {self.base_directory}")
        return candidate

    def classify(self, url: str) -> RenderRequest:
        """
        Resolve and classify a request URL.

        Raises:
            NotFoundError: If nothing exists at the requested path
        """
        path = self.resolve(url)
        return RenderRequest(
            path=path,
            url_path=unquote(urlsplit(url).path) or "/",
            kind=self.classify_path(path),
        )

    def validate_directory(self) -> None:
        """
        Validate that the serve root exists and can be listed.

        Raises:
            FileNotFoundError: If the directory doesn't exist
            NotADirectoryError: If the path is not a directory
            PermissionError: If the directory is not accessible
        """
        if not self.base_directory.exists():
            raise FileNotFoundError(f"Directory {self.base_directory} does not exist")

        if not self.base_directory.is_dir():
            raise NotADirectoryError(f"{self.base_directory} is not a directory")

        try:
            next(self.base_directory.iterdir(), None)
        except PermissionError as e:
            raise PermissionError(f"Cannot access directory {self.base_directory}: {e}")
