"""CLI command for serving a directory or configuration over HTTP.

Implements the 'servekit serve' command.
"""

from __future__ import annotations

import sys
from typing import Any

import click

from servekit.config.loader import ConfigLoader, build_server_config
from servekit.lib.errors import ConfigurationError, ServekitError
from servekit.lib.logging_config import get_logger, setup_logging
from servekit.serve.server import Server

logger = get_logger(__name__)


@click.command()
@click.argument(
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    required=False,
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to listen on (default: $PORT or 8123)",
)
@click.option(
    "--host",
    "-h",
    type=str,
    default=None,
    help="Host to bind to (default: 0.0.0.0)",
)
@click.option(
    "--static",
    "static_dirs",
    type=click.Path(exists=True, file_okay=False),
    multiple=True,
    help="Directory to serve static files from (repeatable)",
)
@click.option(
    "--cors/--no-cors",
    default=None,
    help="Enable CORS middleware",
)
@click.option("--helmet", is_flag=True, default=False, help="Add security headers")
@click.option(
    "--body-parser",
    is_flag=True,
    default=False,
    help="Decode JSON and urlencoded request bodies",
)
@click.option(
    "--cookie-parser",
    is_flag=True,
    default=False,
    help="Parse request cookies",
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug logging",
)
def serve(
    config_file: str | None,
    port: int | None,
    host: str | None,
    static_dirs: tuple[str, ...],
    cors: bool | None,
    helmet: bool,
    body_parser: bool,
    cookie_parser: bool,
    debug: bool,
) -> None:
    """Start an HTTP server.

    CONFIG_FILE is an optional YAML file with server options. Command line
    flags take precedence over the file.

    Example:

        servekit serve --static ./public --port 3000

        servekit serve server.yaml --helmet --cors
    """
    setup_logging(verbose=debug, quiet=not debug)

    overrides: dict[str, Any] = {}
    if port is not None:
        overrides["port"] = port
    if host is not None:
        overrides["host"] = host
    if cors is not None:
        overrides["cors"] = cors
    for name, enabled in (
        ("helmet", helmet),
        ("body_parser", body_parser),
        ("cookie_parser", cookie_parser),
        ("debug", debug),
    ):
        if enabled:
            overrides[name] = True

    logger.info(f"Serve command invoked: config={config_file}, overrides={overrides}")

    try:
        if config_file:
            config = ConfigLoader().load_server_yaml(config_file, overrides)
        else:
            config = build_server_config(None, overrides)

        server = Server(config)
        for directory in static_dirs:
            server.static(directory)

        _display_startup_info(server, static_dirs)
        server.start()

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", exc_info=True)
        click.secho("Error: Invalid server configuration", fg="red", err=True)
        click.echo(f"  {str(e)}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Server interrupted by user (Ctrl+C)")
        click.echo()
        click.secho("Server stopped.", fg="yellow")
        sys.exit(130)
    except ServekitError as e:
        logger.error(f"Server error: {e}", exc_info=True)
        click.secho(f"Error: {str(e)}", fg="red", err=True)
        sys.exit(1)


def _display_startup_info(server: Server, static_dirs: tuple[str, ...]) -> None:
    """Display server startup information.

    Args:
        server: Configured server (not yet started).
        static_dirs: Directories served as static files.
    """
    config = server.config
    enabled = [
        name
        for name, flag in (
            ("cors", config.cors),
            ("helmet", config.helmet),
            ("body-parser", config.body_parser),
            ("cookie-parser", config.cookie_parser),
        )
        if flag is not False
    ]

    click.echo()
    click.secho("=" * 60, fg="cyan")
    click.secho("  servekit", fg="cyan", bold=True)
    click.secho("=" * 60, fg="cyan")
    click.echo()
    click.echo(f"  URL:        {server.url}")
    click.echo(f"  TLS:        {'yes' if config.tls else 'no'}")
    click.echo(f"  Middleware: {', '.join(enabled) or 'none'}")
    for directory in static_dirs:
        click.echo(f"  Static:     {directory}")
    click.echo()
    click.secho("  Press Ctrl+C to stop", fg="yellow")
    click.secho("=" * 60, fg="cyan")
    click.echo()
