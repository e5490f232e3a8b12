"""Abstract base class for identity-provider clients.

An :class:`IdPClient` performs one complete authentication pass: obtain an
access token (from the cache or through the device authorization flow),
exchange it for a SAML assertion, and assume the selected AWS role(s).

The orchestrator depends on this interface only, so tests substitute fakes
without touching the network or the process-wide output state.

See Also:
    :class:`~oktaweb.idp.okta.OktaWebClient` -- the Okta implementation.
    :class:`~oktaweb.auth.orchestrator.AuthOrchestrator` -- the consumer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from oktaweb.models import AWSCredential, Settings


class IdPClient(ABC):
    """One synchronous authentication pass against an identity provider."""

    @abstractmethod
    def authenticate(self, settings: Settings) -> list[AWSCredential]:
        """Run the full flow and return credentials for the selected role(s).

        May block while the user approves the device code in a browser.

        Args:
            settings: Validated, read-only settings for this run.

        Returns:
            One :class:`~oktaweb.models.AWSCredential` per assumed role.

        Raises:
            ProviderError: When Okta or STS rejects a request. ``kind`` is
                ``INVALID_GRANT`` exactly when the grant itself was rejected
                as stale, expired or revoked.
            TransportError: On network-level failures.
            AuthError: When the provider response is unusable (no roles,
                malformed assertion).
        """
        ...
