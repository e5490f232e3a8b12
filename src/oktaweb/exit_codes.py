"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oktaweb.exceptions.OktaWebError` subclass.
Shell wrappers can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ oktaweb web
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- Okta rejected the grant
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Required settings are missing or invalid."""

EXIT_AUTH_FAILURE = 3
"""Okta or AWS rejected the authentication."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CANCELLED = 130
"""The user interrupted the command (Ctrl-C)."""
