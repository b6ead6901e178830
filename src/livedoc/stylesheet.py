"""
LESS stylesheet compilation.
"""

import io
import threading
from pathlib import Path
from typing import Dict, Tuple

import lesscpy

from livedoc.app_logger import LogContext, get_default_logger
from livedoc.errors import StyleError


class StyleSheetBuilder:
    """
    Compiles a LESS file into plain CSS.

    Compiled output is memoised per resolved path and modification time, so
    editing the stylesheet is picked up on the next request.
    """

    def __init__(self, use_cache: bool = True):
        self._use_cache = use_cache
        self._cache: Dict[Path, Tuple[int, str]] = {}
        self._cache_lock = threading.Lock()
        self._logger = get_default_logger()
        self._log_context = LogContext(component="StyleSheetBuilder")

    def build(self, css_source_path) -> str:
        """
        Read and compile a LESS stylesheet.

        Args:
            css_source_path: Path to the ``.less`` (or plain ``.css``) file

        Returns:
            The compiled CSS text

        Raises:
            StyleError: If the file is missing or does not compile
        """
        path = Path(css_source_path).expanduser().resolve()
        try:
            mtime = path.stat().st_mtime_ns
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StyleError(f"Cannot read stylesheet {path}: {e}") from e

        if self._use_cache:
            with self._cache_lock:
                cached = self._cache.get(path)
            if cached is not None and cached[0] == mtime:
                return cached[1]

        self._logger.debug(
            "Compiling stylesheet", context=self._log_context, path=str(path)
        )
        try:
            css = lesscpy.compile(io.StringIO(source), minify=False)
        except Exception as e:
            raise StyleError(f"Cannot compile stylesheet {path}: {e}") from e

        if self._use_cache:
            with self._cache_lock:
                self._cache[path] = (mtime, css)
        return css
