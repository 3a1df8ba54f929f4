"""Command line interface modules.

This package provides the ``proxy-connect`` command, which:
- Parses the proxy and destination addresses
- Selects the proxy protocol
- Reports fatal errors as a single ``ERROR:`` line
- Maps the relay outcome to the process exit status

The command is thin glue around the core dialer and relay.
"""
