"""
Exception hierarchy for livedoc.

Request-time errors (parsing, styles, missing files, timeouts) are caught at
the request boundary and turned into diagnostic responses. Startup errors
(port negotiation) propagate and stop the process.
"""


class LivedocError(Exception):
    """Base class for all livedoc errors."""


class ParseError(LivedocError):
    """Markdown conversion or HTML link-rewrite parsing failed."""


class StyleError(LivedocError):
    """The stylesheet is missing or the LESS compiler rejected it."""


class NotFoundError(LivedocError):
    """A requested filesystem path does not exist (or is the wrong kind)."""


class NoPortAvailableError(LivedocError):
    """Every port in a probed range is already in use."""

    def __init__(self, low: int, high: int):
        super().__init__(f"No free port available in range {low}-{high}")
        self.low = low
        self.high = high


class RenderTimeoutError(LivedocError):
    """Composing a document took longer than the configured render timeout."""
