"""Proxy-aware stdin/stdout pipe through HTTP CONNECT and SOCKS5 proxies."""

import pathlib
import sys
from importlib import metadata

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DISTRIBUTION = "proxy-connect"


def get_version(start: pathlib.Path | None = None) -> str:
    """Return the installed version, or the one in pyproject.toml for a source checkout."""
    try:
        return metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        pass

    current_dir = start or pathlib.Path(__file__).parent
    for parent in [current_dir, *current_dir.parents]:
        pyproject_path = parent / "pyproject.toml"
        if not pyproject_path.exists():
            continue
        with pyproject_path.open("rb") as f:
            project = tomllib.load(f).get("project", {})
        if project.get("name") == DISTRIBUTION:
            return project["version"]

    return "0.0.0"


__version__ = get_version()
