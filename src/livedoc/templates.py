"""
HTML page templates.

Fragments passed in are already HTML; titles and messages are escaped here.
"""

import html
from typing import Optional

_HEAD_SCRIPTS = """\
    <script src="https://cdnjs.cloudflare.com/ajax/libs/highlight.js/11.9.0/highlight.min.js"></script>
    <link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/highlight.js/11.9.0/styles/github.min.css">
    <script>MathJax = {tex: {inlineMath: [['$', '$']]}};</script>
    <script async src="https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"></script>"""


def live_reload_script(host: str, port: int) -> str:
    """Script tag loading the live-reload client from the reload channel."""
    return f'<script src="http://{host}:{port}/livereload.js?snipver=1"></script>'


def default_document(title: str, css: str, article: str, reload_script: str) -> str:
    """Compact single-article page used with the bundled theme."""
    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>{html.escape(title)}</title>
    <meta charset="utf-8">
    <style>{css}</style>
{_HEAD_SCRIPTS}
  </head>
  <body>
    <article class="markdown-body">{article}</article>
    {reload_script}
    <script>hljs.highlightAll();</script>
  </body>
</html>
"""


def themed_document(
    title: str,
    css: str,
    article: str,
    reload_script: str,
    header: Optional[str] = None,
    navigation: Optional[str] = None,
    footer: Optional[str] = None,
) -> str:
    """Full page with optional header, navigation and footer regions."""
    regions = []
    if header:
        regions.append(f"<header>{header}</header>")
    if navigation:
        regions.append(f"<nav>{navigation}</nav>")
    regions.append(f"<article>{article}</article>")
    if footer:
        regions.append(f"<footer>{footer}</footer>")
    body = "\n      ".join(regions)

    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>{html.escape(title)}</title>
    <meta charset="utf-8">
    <style>{css}</style>
{_HEAD_SCRIPTS}
  </head>
  <body>
    <div class="container">
      {body}
    </div>
    {reload_script}
    <script>hljs.highlightAll();</script>
  </body>
</html>
"""


def directory_index(
    title: str, css: str, listing: str, pid: int, reload_script: str
) -> str:
    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>{html.escape(title)}</title>
    <meta charset="utf-8">
    <style>{css}</style>
  </head>
  <body>
    <article class="markdown-body">
      <h1>Index of {html.escape(title)}</h1>
{listing}
      <sup><hr> Served by livedoc | PID: {pid}</sup>
    </article>
    {reload_script}
  </body>
</html>
"""


def error_page(title: str, message: str, reload_script: str) -> str:
    """Diagnostic page; keeps the reload client so a fix refreshes the browser."""
    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>{html.escape(title)}</title>
    <meta charset="utf-8">
  </head>
  <body>
    <h1>Cannot render {html.escape(title)}</h1>
    <pre>{html.escape(message)}</pre>
    {reload_script}
  </body>
</html>
"""
