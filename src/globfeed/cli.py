"""
Command-line interface for globfeed using Click.
"""

import sys
from typing import Optional

import click

from .app_logger import set_default_logger
from .content_source import DEFAULT_CHUNK_SIZE
from .errors import PatternError
from .file_finder import GlobFileFinder
from .logging_config import (
    FORMAT_NAMES,
    ConfigurableAppLogger,
    HandlerConfig,
    LogFormat,
    LogHandler,
    LoggingConfig,
    VerbosityLevel,
    parse_handler_names,
    split_components,
)
from .server import GlobFeedServer


def _configure_logging(
    verbose: int,
    quiet: bool,
    log_level: Optional[str],
    log_format: str,
    log_file: Optional[str],
    log_handlers: Optional[str],
    log_exclude: Optional[str],
    log_include_only: Optional[str],
) -> ConfigurableAppLogger:
    """Configure the default logger from CLI options."""
    config = LoggingConfig()

    if quiet:
        config.verbosity = VerbosityLevel.QUIET
    elif verbose == 1:
        config.verbosity = VerbosityLevel.VERBOSE
    elif verbose >= 2:
        config.verbosity = VerbosityLevel.VERY_VERBOSE

    # Explicit level wins over -v/-q
    if log_level:
        config.global_level = log_level.upper()

    config.global_format = FORMAT_NAMES.get(log_format.lower(), LogFormat.SIMPLE)

    if log_handlers:
        handler_configs = parse_handler_names(log_handlers, log_file)
        if handler_configs:
            config.handlers = handler_configs
    elif log_file:
        config.handlers = [
            HandlerConfig(type=LogHandler.CONSOLE),
            HandlerConfig(type=LogHandler.ROTATING_FILE, filename=log_file),
        ]

    config.exclude_components = split_components(log_exclude)
    config.include_only_components = split_components(log_include_only) or None

    logger = ConfigurableAppLogger(config)
    set_default_logger(logger)
    return logger


def version_callback(ctx, _, value):
    """Print the version and exit."""
    if not value or ctx.resilient_parsing:
        return
    from . import __version__

    click.echo(f"globfeed version {__version__}")
    ctx.exit()


def _require(ctx: click.Context, value: Optional[str], message: str) -> str:
    if not value:
        click.echo(message)
        click.echo(ctx.get_usage())
        ctx.exit(1)
    return value


@click.command()
@click.option(
    "--name",
    "-n",
    "socket_name",
    envvar="GLOBFEED_NAME",
    help="Name of socket file to create",
)
@click.option(
    "--pattern",
    "-p",
    envvar="GLOBFEED_PATTERN",
    help="Pattern to glob with",
)
@click.option(
    "--recursive",
    "-r",
    is_flag=True,
    help="Let ** in the pattern match any number of directories",
)
@click.option(
    "--mask-copy-errors",
    is_flag=True,
    help="Treat a failed file read as end of file instead of an error",
)
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=DEFAULT_CHUNK_SIZE,
    show_default=True,
    help="Copy buffer size in bytes",
)
@click.option(
    "--list",
    "list_files",
    is_flag=True,
    help="Print the files the pattern currently matches and exit",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (use -v, -vv for more verbose)",
)
@click.option(
    "--quiet", "-q", is_flag=True, help="Reduce output to warnings and errors only"
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    help="Set explicit log level (overrides verbose/quiet)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "simple", "detailed"], case_sensitive=False),
    default="simple",
    help="Log output format",
)
@click.option(
    "--json",
    "json_format",
    is_flag=True,
    help="Use JSON log format (alias for --log-format json)",
)
@click.option(
    "--log-file", type=click.Path(), help="Write logs to file (in addition to console)"
)
@click.option(
    "--log-handlers",
    help="Comma-separated list of log handlers (console,file,syslog,rotating)",
)
@click.option(
    "--log-exclude", help="Comma-separated list of components to exclude from logging"
)
@click.option(
    "--log-include-only",
    help="Comma-separated list of components to include in logging (excludes all others)",
)
@click.option(
    "--version",
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=version_callback,
    help="Show version and exit",
)
@click.help_option("--help", "-h")
@click.pass_context
def main(
    ctx: click.Context,
    socket_name: Optional[str],
    pattern: Optional[str],
    recursive: bool,
    mask_copy_errors: bool,
    chunk_size: int,
    list_files: bool,
    verbose: int,
    quiet: bool,
    log_level: Optional[str],
    log_format: str,
    json_format: bool,
    log_file: Optional[str],
    log_handlers: Optional[str],
    log_exclude: Optional[str],
    log_include_only: Optional[str],
) -> None:
    """
    Serve the concatenated contents of every file matching a glob pattern
    to each client connecting on a unix socket.

    Files are sent in sorted order as raw bytes with no separators. The
    pattern is evaluated again for every connection.

    Examples:

        globfeed --name /tmp/feed.sock --pattern '/var/log/app/*.log'

        globfeed -n /tmp/feed.sock -p '/srv/docs/**/*.md' --recursive -v

        globfeed -n /tmp/feed.sock -p '/etc/motd.d/*' --list
    """
    if json_format:
        log_format = "json"

    _configure_logging(
        verbose,
        quiet,
        log_level,
        log_format,
        log_file,
        log_handlers,
        log_exclude,
        log_include_only,
    )

    if list_files:
        pattern = _require(ctx, pattern, "You must provide a pattern")
        try:
            files = GlobFileFinder(recursive=recursive).enumerate(pattern)
        except PatternError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        for path in files:
            click.echo(path)
        return

    socket_name = _require(ctx, socket_name, "You must provide a name")
    pattern = _require(ctx, pattern, "You must provide a pattern")

    server = GlobFeedServer(
        socket_name,
        pattern,
        recursive=recursive,
        propagate_copy_errors=not mask_copy_errors,
        chunk_size=chunk_size,
    )
    sys.exit(server.run())


if __name__ == "__main__":
    main()
