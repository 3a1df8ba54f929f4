"""Core tunnel implementation.

This package contains the components that do the actual work:
- Endpoint and proxy type models
- Run configuration and validation
- Proxy handshakes (HTTP CONNECT and SOCKS5)
- The full-duplex relay between the tunnel and local streams
- Exception handling

Nothing in here exits the process; errors are raised or returned to the
command-line layer, which decides how to report them.
"""
