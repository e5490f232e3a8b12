"""Identity-provider clients.

- :class:`IdPClient` -- the interface the orchestrator depends on.
- :class:`OktaWebClient` -- Okta device authorization, web SSO token
  exchange, SAML assertion and STS role assumption.
"""

from oktaweb.idp.base import IdPClient
from oktaweb.idp.okta import OktaWebClient, classify_error_response

__all__ = ["IdPClient", "OktaWebClient", "classify_error_response"]
