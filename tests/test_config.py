import pytest

from proxy_connect.core.config import USAGE, TunnelConfig, build_config, config_from_arguments
from proxy_connect.core.endpoint import EndpointAddress, ProxyType
from proxy_connect.core.exceptions import ConfigurationError


def test_build_config_defaults_to_http():
    config = build_config("proxy", "3128", "example.org", "22")

    assert config == TunnelConfig(
        proxy_type=ProxyType.HTTP,
        proxy=EndpointAddress("proxy", "3128"),
        destination=EndpointAddress("example.org", "22"),
        half_close=False,
    )


def test_build_config_socks5_with_half_close():
    config = build_config("127.0.0.1", "1080", "example.org", "80", proxy_type="socks5", half_close=True)

    assert config.proxy_type is ProxyType.SOCKS5
    assert config.half_close is True


def test_auth_file_is_rejected():
    with pytest.raises(ConfigurationError, match="proxy authorization not supported yet"):
        build_config("proxy", "3128", "example.org", "22", auth_file="creds.txt")


def test_auth_file_is_rejected_before_other_checks():
    with pytest.raises(ConfigurationError, match="authorization"):
        build_config("", "not-a-port", "", "", auth_file="creds.txt", proxy_type="gopher")


def test_unknown_proxy_type_is_named():
    with pytest.raises(ConfigurationError, match='"gopher"'):
        build_config("proxy", "3128", "example.org", "22", proxy_type="gopher")


@pytest.mark.parametrize(
    ("args", "field"),
    [
        (("", "3128", "example.org", "22"), "proxy host"),
        (("proxy", " ", "example.org", "22"), "proxy port"),
        (("proxy", "3128", "", "22"), "destination host"),
        (("proxy", "3128", "example.org", ""), "destination port"),
    ],
)
def test_empty_values_are_rejected(args, field):
    with pytest.raises(ConfigurationError, match=f"{field} must not be empty"):
        build_config(*args)


def test_config_is_immutable():
    config = build_config("proxy", "3128", "example.org", "22")
    with pytest.raises(AttributeError):
        config.half_close = True


def test_config_from_four_arguments():
    config = config_from_arguments(["127.0.0.1", "1080", "example.org", "80"], proxy_type="socks5")

    assert config.proxy_type is ProxyType.SOCKS5
    assert config.destination == EndpointAddress("example.org", "80")


def test_config_from_five_arguments_rejects_auth_file():
    with pytest.raises(ConfigurationError, match="authorization"):
        config_from_arguments(["proxy", "3128", "example.org", "22", "creds.txt"])


@pytest.mark.parametrize("count", [0, 1, 3, 6, 7])
def test_config_from_wrong_argument_count(count):
    arguments = [f"arg{i}" for i in range(count)]

    with pytest.raises(ConfigurationError, match=f"expected 4 or 5 arguments, got {count}") as excinfo:
        config_from_arguments(arguments, proxy_type="gopher")

    assert USAGE in str(excinfo.value)
