"""
Markdown to HTML conversion.
"""

import commonmark

from livedoc.errors import ParseError


class MarkdownConverter:
    """
    Converts Markdown text to an HTML fragment with the CommonMark reference
    parser.

    A new parser and renderer are created for every call, so one converter
    can be shared between threads.
    """

    def convert(self, markdown_text: str) -> str:
        """
        Convert one Markdown document to HTML.

        Raises:
            ParseError: If the parser fails on the input
        """
        try:
            document = commonmark.Parser().parse(markdown_text)
            return commonmark.HtmlRenderer().render(document)
        except Exception as e:
            raise ParseError(f"Cannot convert markdown: {e}") from e
