"""Allow ``python -m proxy_connect``."""

from proxy_connect.cmd.cli import app

if __name__ == "__main__":
    app(prog_name="proxy-connect")
