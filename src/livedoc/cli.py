"""
Command-line interface for livedoc using Click.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from .app_logger import set_default_logger
from .config import DEFAULT_RENDER_TIMEOUT, DEFAULT_THEME, ServerConfig
from .logging_config import (
    ConfigurableAppLogger,
    HandlerConfig,
    LogHandler,
    LoggingConfig,
    VerbosityLevel,
    parse_log_format,
)
from .server import LivedocServer


def _configure_logging(
    verbose: int,
    quiet: bool,
    log_level: Optional[str],
    log_format: str,
    log_file: Optional[str],
) -> None:
    """Configure logging based on CLI options."""
    config = LoggingConfig()

    if quiet:
        config.verbosity = VerbosityLevel.QUIET
    elif verbose:
        config.verbosity = VerbosityLevel.VERBOSE

    if log_level:
        config.global_level = log_level.upper()

    config.global_format = parse_log_format(log_format)

    if log_file:
        config.handlers = [
            HandlerConfig(type=LogHandler.CONSOLE),
            HandlerConfig(type=LogHandler.ROTATING_FILE, filename=log_file),
        ]

    set_default_logger(ConfigurableAppLogger(config))


def version_callback(ctx, _, value):
    """Print the version and exit."""
    if not value or ctx.resilient_parsing:
        return
    from . import __version__

    click.echo(f"livedoc version {__version__}")
    ctx.exit()


_FILE = click.Path(exists=True, dir_okay=False, readable=True, path_type=Path)


@click.command(context_settings={"help_option_names": ["--help"]})
@click.option(
    "--dir",
    "-d",
    "serve_dir",
    type=click.Path(exists=True, file_okay=False, readable=True, path_type=Path),
    default=Path("./"),
    show_default=True,
    help="Serve from directory",
)
@click.option(
    "--port", "-p", type=click.IntRange(1, 65535), help="Serve on this exact port"
)
@click.option(
    "--address", "-a", default="localhost", show_default=True, help="Serve on ip/address"
)
@click.option("--header", "-h", "header", type=_FILE, help="Header template .md file")
@click.option("--footer", "-r", "footer", type=_FILE, help="Footer template .md file")
@click.option("--navigation", "-n", type=_FILE, help="Navigation .md file")
@click.option(
    "--less",
    "-s",
    "stylesheet",
    type=_FILE,
    default=DEFAULT_THEME,
    help="Path to LESS styles (defaults to the bundled GitHub theme)",
)
@click.option("--file", "-f", "open_file", help="Open specific file in browser")
@click.option("--no-browser", "-x", is_flag=True, help="Don't open browser on run")
@click.option(
    "--render-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_RENDER_TIMEOUT,
    show_default=True,
    help="Seconds allowed for rendering one page",
)
@click.option("--verbose", "-v", count=True, help="Verbose output (log every request)")
@click.option(
    "--quiet", "-q", is_flag=True, help="Reduce output to warnings and errors only"
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set explicit log level (overrides verbose/quiet)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "simple", "detailed"], case_sensitive=False),
    default="simple",
    help="Log output format",
)
@click.option(
    "--log-file", type=click.Path(), help="Write logs to file (in addition to console)"
)
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=version_callback,
    help="Show version and exit",
)
def main(
    serve_dir: Path,
    port: Optional[int],
    address: str,
    header: Optional[Path],
    footer: Optional[Path],
    navigation: Optional[Path],
    stylesheet: Path,
    open_file: Optional[str],
    no_browser: bool,
    render_timeout: float,
    verbose: int,
    quiet: bool,
    log_level: Optional[str],
    log_format: str,
    log_file: Optional[str],
) -> None:
    """
    Serve a directory of Markdown files as styled HTML with live reload.

    Examples:

        livedoc

        livedoc -d ~/notes -p 8080 -x

        livedoc -d docs -h docs/_header.md -n docs/_nav.md -s theme.less
    """
    _configure_logging(verbose, quiet, log_level, log_format, log_file)

    config = ServerConfig(
        serve_dir=serve_dir,
        http_port=port,
        address=address,
        header_path=header,
        footer_path=footer,
        navigation_path=navigation,
        stylesheet_path=stylesheet,
        open_browser=not no_browser,
        open_file=open_file,
        render_timeout=render_timeout,
    )

    try:
        sys.exit(LivedocServer(config).run())
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        if verbose:
            import traceback

            click.echo(traceback.format_exc(), err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
