"""Authentication orchestrator: one run, at most two attempts.

The orchestrator calls the IdP client, and when Okta rejects the grant with
``invalid_grant`` while a cached access token exists, it removes that token
and tries exactly once more. The flow is a small state machine::

    ATTEMPT_1 --success--------------------------------> SUCCEEDED
    ATTEMPT_1 --invalid_grant + cache removed----------> RETRYING
    ATTEMPT_1 --anything else--------------------------> FAILED_TERMINAL
    RETRYING  --success--------------------------------> SUCCEEDED
    RETRYING  --any failure----------------------------> FAILED_TERMINAL

No transition leaves ``RETRYING`` towards another attempt, so the IdP client
is called at most :data:`MAX_ATTEMPTS` times and the cache is invalidated at
most once per run.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from oktaweb.auth.token_cache import TokenCache
from oktaweb.exceptions import ConfigurationError, ProviderError
from oktaweb.idp.base import IdPClient
from oktaweb.models import AWSCredential, Settings
from oktaweb.output import get_output

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

RETRY_NOTICE = (
    "Cached access token appears to be stale, removing token and retrying "
    "device authorization ..."
)
GUIDANCE = (
    "Authentication failed after multiple attempts. Please log out of Okta "
    "in your browser and log back in to resolve the issue."
)


class OutputSink(Protocol):
    def warning(self, message: str) -> None: ...

    def debug(self, message: str) -> None: ...


class AuthState(str, enum.Enum):
    ATTEMPT_1 = "attempt_1"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"


@dataclass
class AuthAttempt:
    """Outcome of a single pass through the IdP client."""

    number: int
    state: AuthState
    credentials: Optional[list[AWSCredential]] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.credentials is not None


class AuthOrchestrator:
    """Drive the IdP client with bounded, cache-aware recovery.

    Args:
        idp_client: Performs one full authentication pass per call.
        token_cache: The access-token cache the IdP client reads from.
        output: Sink for the retry notice and the terminal guidance.
            Defaults to the global :class:`~oktaweb.output.OutputManager`.

    Example::

        orchestrator = AuthOrchestrator(OktaWebClient(cache), cache)
        credentials = orchestrator.run(settings)
    """

    def __init__(
        self,
        idp_client: IdPClient,
        token_cache: TokenCache,
        output: Optional[OutputSink] = None,
    ) -> None:
        self._idp = idp_client
        self._cache = token_cache
        self._output = output
        self.attempts: list[AuthAttempt] = []

    @property
    def output(self) -> OutputSink:
        return self._output if self._output is not None else get_output()

    def run(self, settings: Settings) -> list[AWSCredential]:
        """Authenticate and return AWS credentials.

        Args:
            settings: Validated settings. Empty required fields are rejected
                before any network call.

        Returns:
            Credentials from the first successful attempt.

        Raises:
            ConfigurationError: If ``org_domain`` or ``oidc_client_id`` is
                empty.
            ProviderError: The last provider error. A terminal
                ``invalid_grant`` carries the log-out/log-in guidance as
                ``hint``.
            TransportError: Network failures, never retried.
        """
        missing = settings.missing_required()
        if missing:
            flags = ", ".join(f"--{name}" for name in missing)
            raise ConfigurationError(f"Missing required flag(s): {flags}")

        self.attempts = []
        state = AuthState.ATTEMPT_1

        while state in (AuthState.ATTEMPT_1, AuthState.RETRYING):
            number = len(self.attempts) + 1
            self.output.debug(f"Authentication attempt {number} of {MAX_ATTEMPTS}")
            try:
                credentials = self._idp.authenticate(settings)
            except ProviderError as exc:
                next_state = self._after_failure(state, exc)
                self.attempts.append(AuthAttempt(number, next_state, error=exc))
                if next_state is AuthState.FAILED_TERMINAL:
                    self._fail(exc)
                logger.debug("Attempt %d failed with invalid_grant, retrying", number)
                state = next_state
                continue
            except Exception as exc:
                self.attempts.append(AuthAttempt(number, AuthState.FAILED_TERMINAL, error=exc))
                raise

            self.attempts.append(AuthAttempt(number, AuthState.SUCCEEDED, credentials=credentials))
            logger.debug("Attempt %d succeeded", number)
            return credentials

        # Unreachable: every transition above either returns or raises.
        raise AssertionError(f"orchestrator stopped in state {state}")

    def _after_failure(self, state: AuthState, exc: ProviderError) -> AuthState:
        """Pick the state that follows a failed attempt made in *state*."""
        if state is AuthState.RETRYING:
            return AuthState.FAILED_TERMINAL
        if not exc.is_invalid_grant:
            return AuthState.FAILED_TERMINAL
        if not self._cache.invalidate():
            logger.debug("invalid_grant with no cached token to remove")
            return AuthState.FAILED_TERMINAL
        self.output.warning(RETRY_NOTICE)
        return AuthState.RETRYING

    def _fail(self, exc: ProviderError) -> None:
        if exc.is_invalid_grant:
            exc.hint = GUIDANCE
            self.output.warning(GUIDANCE)
        raise exc
