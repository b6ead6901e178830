"""
Shared test fixtures and configuration for livedoc tests.
"""

import os
import socket
import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from livedoc.app_logger import NullAppLogger, set_default_logger


def pytest_addoption(parser):
    """Add command line options to enable specific test categories."""
    parser.addoption(
        "--enable-slow",
        action="store_true",
        default=False,
        help="Enable tests marked with @pytest.mark.slow (skipped by default)",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow - skipped by default, use --enable-slow",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless asked for."""
    enable_slow = config.getoption("--enable-slow") or os.getenv(
        "ENABLE_SLOW_TESTS", ""
    ).lower() in ("true", "1", "yes")

    if not enable_slow:
        skip_slow = pytest.mark.skip(
            reason="Use --enable-slow or set ENABLE_SLOW_TESTS=true to run slow tests"
        )
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


@pytest.fixture(autouse=True)
def quiet_logger() -> Generator[None, None, None]:
    """Keep component logging out of test output."""
    set_default_logger(NullAppLogger())
    yield
    set_default_logger(NullAppLogger())


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for testing.

    Yields:
        Resolved path to the temporary directory
    """
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir).resolve()


@pytest.fixture
def serve_root(temp_dir: Path) -> Path:
    """
    A small documentation tree::

        index.md        "# Hi" and a wiki link to "other"
        other.md
        notes.txt
        docs/guide.md
    """
    (temp_dir / "index.md").write_text("# Hi\n[See Other](other)\n")
    (temp_dir / "other.md").write_text("# Other\n\nBack to [index](index).\n")
    (temp_dir / "notes.txt").write_text("plain notes")
    docs = temp_dir / "docs"
    docs.mkdir()
    (docs / "guide.md").write_text("# Guide\n\nSee [home](/index).\n")
    return temp_dir


@pytest.fixture
def fragment_files(temp_dir: Path) -> List[Path]:
    """Header, footer and navigation sources kept outside the serve root."""
    fragments = temp_dir / "fragments"
    fragments.mkdir()
    header = fragments / "header.md"
    header.write_text("# Site Header\n")
    footer = fragments / "footer.md"
    footer.write_text("Footer text\n")
    navigation = fragments / "nav.md"
    navigation.write_text("- [Home](/index)\n")
    return [header, footer, navigation]


@pytest.fixture
def custom_theme(temp_dir: Path) -> Path:
    theme = temp_dir / "theme.less"
    theme.write_text("@accent: #336698;\nbody { color: @accent; }\n")
    return theme


class StubStyleSheetBuilder:
    """Returns fixed CSS and records which paths were built."""

    def __init__(self, css: str = "body { color: black; }", error: Exception = None):
        self.css = css
        self.error = error
        self.calls: List[Path] = []

    def build(self, css_source_path) -> str:
        self.calls.append(Path(css_source_path))
        if self.error is not None:
            raise self.error
        return self.css


@pytest.fixture
def stub_stylesheet_builder() -> StubStyleSheetBuilder:
    return StubStyleSheetBuilder()


def find_unused_port() -> int:
    """Ask the OS for a currently unused localhost port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def unused_port() -> int:
    return find_unused_port()


def ipv6_available() -> bool:
    """True if this host can bind an IPv6 loopback socket."""
    if not socket.has_ipv6:
        return False
    try:
        with socket.socket(socket.AF_INET6, socket.SOCK_STREAM) as sock:
            sock.bind(("::1", 0))
    except OSError:
        return False
    return True


requires_ipv6 = pytest.mark.skipif(
    not ipv6_available(), reason="IPv6 loopback is not available"
)
