"""Exception hierarchy for oktaweb.

All exceptions inherit from :class:`OktaWebError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`oktaweb.exit_codes`.
The top-level error handler in :func:`oktaweb.app.main` catches
``OktaWebError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    OktaWebError (exit 1)
    +-- ConfigurationError  (exit 2)
    +-- AuthError           (exit 3)
    |   +-- ProviderError   (exit 3)
    +-- TransportError      (exit 6)

:class:`ProviderError` is the only error the orchestrator interprets. Its
:attr:`~ProviderError.kind` is decided once, where the provider response is
parsed, and is never re-derived from the message text.
"""

from __future__ import annotations

import enum
from typing import Optional

from oktaweb.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class OktaWebError(Exception):
    """Base exception for all oktaweb errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`oktaweb.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigurationError(OktaWebError):
    """Raised when required settings are missing or malformed."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(OktaWebError):
    """Raised when authentication fails for a reason local to the flow (bad response shape, no roles)."""

    exit_code = EXIT_AUTH_FAILURE


class ProviderErrorKind(str, enum.Enum):
    """Classification of a provider rejection.

    Only ``INVALID_GRANT`` is recoverable, and only once, by clearing the
    cached access token.
    """

    INVALID_GRANT = "invalid_grant"
    OTHER = "other"


class ProviderError(AuthError):
    """An error response returned by Okta or AWS STS.

    Args:
        kind: Classification used by the orchestrator's retry decision.
        message: The provider's human-readable description.
        error_code: The raw provider code (``invalid_grant``,
            ``access_denied``, ``E0000011``, ``AccessDenied`` ...).
        status_code: HTTP status of the response, when there was one.
        hint: Optional remediation text appended to ``str(exc)``.
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.error_code = error_code
        self.status_code = status_code
        self.hint = hint

    @property
    def is_invalid_grant(self) -> bool:
        return self.kind is ProviderErrorKind.INVALID_GRANT

    @property
    def summary(self) -> str:
        """The provider code and message, without the remediation hint."""
        if self.error_code and self.error_code not in self.message:
            return f"{self.error_code}: {self.message}"
        return self.message

    def __str__(self) -> str:
        text = self.summary
        if self.hint:
            text = f"{text}\n{self.hint}"
        return text


class TransportError(OktaWebError):
    """Raised on network-level failures talking to Okta or AWS (timeout, DNS, refused)."""

    exit_code = EXIT_CONNECTION_ERROR
