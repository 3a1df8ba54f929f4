"""Command-line interface for proxy-connect.

This module provides the ``proxy-connect`` command, handling:
- Command-line argument parsing
- Proxy type selection
- Error reporting
- Exit status

The CLI is built using Typer. Standard output carries only the tunneled
bytes; diagnostics go to standard error as a single ``ERROR:`` line.

Example:
    # Use as an SSH ProxyCommand through an HTTP proxy:
    $ ssh -o ProxyCommand="proxy-connect proxy.example.com 3128 %h %p" host

    # Through a SOCKS5 proxy:
    $ proxy-connect -t socks5 127.0.0.1 1080 example.org 80
"""

from typing import BinaryIO, NoReturn

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape

from proxy_connect import __version__
from proxy_connect.core.config import config_from_arguments
from proxy_connect.core.endpoint import ProxyType
from proxy_connect.core.exceptions import ProxyConnectError
from proxy_connect.core.tunnel import dial, relay
from proxy_connect.core.utils.log_config import configure_logging

EXIT_FAILURE = -1
EXIT_INTERRUPTED = 130

err_console = Console(stderr=True, highlight=False)
app = typer.Typer(
    help="Pipe standard input/output to a host through an HTTP CONNECT or SOCKS5 proxy",
    add_completion=False,
)


def fatal(message: object) -> NoReturn:
    """Print a single ``ERROR:`` line to stderr and exit with failure."""
    err_console.print(f"[red]ERROR:[/red] {escape(str(message))}", soft_wrap=True)
    raise typer.Exit(EXIT_FAILURE)


def open_local_streams() -> tuple[BinaryIO, BinaryIO]:
    """Open unbuffered binary views of the process's stdin and stdout."""
    local_in = open(0, "rb", buffering=0, closefd=False)  # noqa: SIM115
    local_out = open(1, "wb", buffering=0, closefd=False)  # noqa: SIM115
    return local_in, local_out


def version_callback(value: bool) -> None:
    """Show version information."""
    if value:
        typer.echo(f"proxy-connect {__version__}")
        raise typer.Exit


@app.command()
def main(
    arguments: list[str] | None = typer.Argument(
        None,
        metavar="PROXYHOST PROXYPORT DESTHOST DESTPORT [AUTHFILE]",
        help="Proxy address, destination address and an optional credentials file (not supported yet)",
        show_default=False,
    ),
    proxy_type: str = typer.Option(
        ProxyType.HTTP.value,
        "--type",
        "-t",
        envvar="PROXY_CONNECT_TYPE",
        help="Proxy type: http or socks5",
    ),
    half_close: bool = typer.Option(
        default=False,
        help="When stdin ends, only shut down the tunnel's write side and keep reading",
    ),
    debug: bool = typer.Option(
        default=False,
        help="Enable debug logging",
    ),
    version: bool = typer.Option(  # noqa: ARG001
        default=False,
        is_eager=True,
        callback=version_callback,
        help="Show the version and exit",
    ),
):
    """Connect to DESTHOST:DESTPORT through the proxy and relay stdin/stdout."""
    configure_logging(debug)

    try:
        config = config_from_arguments(arguments or [], proxy_type=proxy_type, half_close=half_close)
        tunnel = dial(config.proxy_type, config.proxy, config.destination)
    except ProxyConnectError as e:
        logger.debug(f"Giving up before relaying: {e!r}")
        fatal(e)
    except KeyboardInterrupt:
        raise typer.Exit(EXIT_INTERRUPTED) from None

    local_in, local_out = open_local_streams()
    try:
        outcome = relay(tunnel, local_in, local_out, half_close=config.half_close)
    except KeyboardInterrupt:
        logger.info("Interrupted, closing tunnel")
        tunnel.close()
        raise typer.Exit(EXIT_INTERRUPTED) from None

    if not outcome.ok:
        fatal(outcome.error)
    logger.debug(f"Relay ended cleanly on {outcome.direction.label}")


if __name__ == "__main__":
    app()
