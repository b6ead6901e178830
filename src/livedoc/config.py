"""
Server configuration and shared constants.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

DEFAULT_THEME = Path(__file__).resolve().parent / "themes" / "github.less"

HTTP_PORT_RANGE: Tuple[int, int] = (8000, 8100)
LIVE_RELOAD_PORT_RANGE: Tuple[int, int] = (35729, 35829)

DEFAULT_RENDER_TIMEOUT = 30.0


def is_default_theme(stylesheet_path) -> bool:
    """True if ``stylesheet_path`` points at the bundled default theme."""
    return Path(stylesheet_path).expanduser().resolve() == DEFAULT_THEME


@dataclass(frozen=True)
class ComposerConfig:
    """Everything the DocumentComposer needs to know about one server."""

    stylesheet_path: Path = DEFAULT_THEME
    header_path: Optional[Path] = None
    footer_path: Optional[Path] = None
    navigation_path: Optional[Path] = None
    live_reload_port: int = LIVE_RELOAD_PORT_RANGE[0]
    live_reload_host: str = "localhost"
    render_timeout: Optional[float] = DEFAULT_RENDER_TIMEOUT

    @property
    def uses_default_theme(self) -> bool:
        return is_default_theme(self.stylesheet_path)


@dataclass
class ServerConfig:
    """
    Operator supplied settings for one livedoc process.

    Relative header/footer/navigation/stylesheet paths are taken relative to
    the working directory; request paths are resolved against ``serve_dir``.
    """

    serve_dir: Path = Path(".")
    http_port: Optional[int] = None  # pinned port, skips probing
    address: str = "localhost"
    header_path: Optional[Path] = None
    footer_path: Optional[Path] = None
    navigation_path: Optional[Path] = None
    stylesheet_path: Path = DEFAULT_THEME
    open_browser: bool = True
    open_file: Optional[str] = None
    render_timeout: Optional[float] = DEFAULT_RENDER_TIMEOUT
    http_port_range: Tuple[int, int] = HTTP_PORT_RANGE
    live_reload_port_range: Tuple[int, int] = LIVE_RELOAD_PORT_RANGE

    def __post_init__(self):
        self.serve_dir = Path(self.serve_dir).expanduser().resolve()
        self.stylesheet_path = Path(self.stylesheet_path).expanduser().resolve()
        for name in ("header_path", "footer_path", "navigation_path"):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, Path(value).expanduser().resolve())

    @property
    def uses_default_theme(self) -> bool:
        return is_default_theme(self.stylesheet_path)

    @property
    def browser_host(self) -> str:
        """Host part of URLs a browser on this machine should use to reach us."""
        if self.address in ("", "0.0.0.0", "::"):
            return "localhost"
        if ":" in self.address:
            return f"[{self.address}]"
        return self.address

    def composer_config(self, live_reload_port: int) -> ComposerConfig:
        return ComposerConfig(
            stylesheet_path=self.stylesheet_path,
            header_path=self.header_path,
            footer_path=self.footer_path,
            navigation_path=self.navigation_path,
            live_reload_port=live_reload_port,
            live_reload_host=self.browser_host,
            render_timeout=self.render_timeout,
        )
