"""
Livedoc - a local development server for directories of Markdown files.

Markdown documents are rendered to styled HTML on request, optionally
framed by shared header, navigation and footer documents, and browsers are
reloaded whenever a watched file changes.
"""

__version__ = "1.0.0"

from .directory_indexer import DirectoryIndexer
from .document_composer import DocumentComposer
from .link_rewriter import LinkRewriter
from .markdown_converter import MarkdownConverter
from .port_negotiator import PortNegotiator
from .server import LivedocServer
from .stylesheet import StyleSheetBuilder

__all__ = [
    "__version__",
    "DirectoryIndexer",
    "DocumentComposer",
    "LinkRewriter",
    "LivedocServer",
    "MarkdownConverter",
    "PortNegotiator",
    "StyleSheetBuilder",
]
