"""Access-token caching and the authentication orchestrator.

- :class:`TokenCache` -- persisted Okta access token, per org.
- :class:`AuthOrchestrator` -- runs the IdP client with one cache-clearing
  retry on ``invalid_grant``.

Typical usage::

    from oktaweb.auth import AuthOrchestrator, TokenCache
    from oktaweb.idp import OktaWebClient

    cache = TokenCache(settings.org_domain)
    credentials = AuthOrchestrator(OktaWebClient(cache), cache).run(settings)
"""

from oktaweb.auth.token_cache import TokenCache
from oktaweb.auth.orchestrator import (
    GUIDANCE,
    MAX_ATTEMPTS,
    RETRY_NOTICE,
    AuthAttempt,
    AuthOrchestrator,
    AuthState,
)

__all__ = [
    "AuthAttempt",
    "AuthOrchestrator",
    "AuthState",
    "GUIDANCE",
    "MAX_ATTEMPTS",
    "RETRY_NOTICE",
    "TokenCache",
]
