"""Run configuration.

Turns the raw command-line values into a validated ``TunnelConfig``. The
command-line layer only hands over strings; every check that can fail lives
here so it can be tested without going through the CLI.
"""

from dataclasses import dataclass

from proxy_connect.core.endpoint import EndpointAddress, ProxyType
from proxy_connect.core.exceptions import ConfigurationError

REQUIRED_ARGUMENTS = 4
USAGE = "proxy-connect [OPTIONS] PROXYHOST PROXYPORT DESTHOST DESTPORT [AUTHFILE]"


@dataclass(frozen=True)
class TunnelConfig:
    """Everything one run needs.

    Attributes:
        proxy_type: Handshake used to open the tunnel
        proxy: Address of the proxy
        destination: Address the tunnel should reach
        half_close: Keep reading the tunnel after local input ends
    """

    proxy_type: ProxyType
    proxy: EndpointAddress
    destination: EndpointAddress
    half_close: bool = False


def build_config(  # noqa: PLR0913
    proxy_host: str,
    proxy_port: str,
    dest_host: str,
    dest_port: str,
    auth_file: str | None = None,
    proxy_type: str = ProxyType.HTTP.value,
    half_close: bool = False,
) -> TunnelConfig:
    """Validate command-line values and build the run configuration.

    Args:
        proxy_host: Proxy host name or IP literal
        proxy_port: Proxy port number or service name
        dest_host: Destination host name or IP literal
        dest_port: Destination port number or service name
        auth_file: Credentials file; authentication is not supported
        proxy_type: ``http`` or ``socks5``
        half_close: Only shut down the tunnel's write side on local EOF

    Returns:
        TunnelConfig: The immutable configuration for this run

    Raises:
        ConfigurationError: If credentials were supplied, the proxy type is
            unknown or a host/port value is empty
    """
    if auth_file is not None:
        msg = "proxy authorization not supported yet"
        raise ConfigurationError(msg)

    kind = ProxyType.parse(proxy_type)

    fields = {
        "proxy host": proxy_host,
        "proxy port": proxy_port,
        "destination host": dest_host,
        "destination port": dest_port,
    }
    for name, value in fields.items():
        if not value.strip():
            msg = f"{name} must not be empty"
            raise ConfigurationError(msg)

    return TunnelConfig(
        proxy_type=kind,
        proxy=EndpointAddress(proxy_host, proxy_port),
        destination=EndpointAddress(dest_host, dest_port),
        half_close=half_close,
    )


def config_from_arguments(
    arguments: list[str],
    proxy_type: str = ProxyType.HTTP.value,
    half_close: bool = False,
) -> TunnelConfig:
    """Build the run configuration from the positional command-line arguments.

    Raises:
        ConfigurationError: If there are not four or five arguments, or
            ``build_config`` rejects them
    """
    if len(arguments) not in (REQUIRED_ARGUMENTS, REQUIRED_ARGUMENTS + 1):
        msg = f"expected 4 or 5 arguments, got {len(arguments)} (usage: {USAGE})"
        raise ConfigurationError(msg)

    return build_config(*arguments, proxy_type=proxy_type, half_close=half_close)
