"""Okta implementation of :class:`~oktaweb.idp.base.IdPClient`.

Flow:
    1. Reuse a cached access token when ``--cache-access-token`` is on and
       the cache holds an unexpired one; otherwise run the OAuth 2.0 Device
       Authorization Grant (:rfc:`8628`): request a device code, show the
       user code, poll ``/oauth2/v1/token`` until approval.
    2. Resolve the AWS Account Federation app(s): the preset app ID, or the
       active ``amazon_aws`` apps listed through ``/api/v1/apps``.
    3. Exchange the access and ID tokens for a web SSO token scoped to the
       app (token exchange grant).
    4. Trade the web SSO token for the app's SAML assertion.
    5. Pick the IAM role(s) and call STS ``AssumeRoleWithSAML``.

Every Okta error response is classified once, in
:func:`classify_error_response`. ``invalid_grant`` is the only
classification the orchestrator acts upon; a stale cached access token
surfaces at step 3.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
import sys
import time
import webbrowser
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import httpx
import typer

from oktaweb import __version__
from oktaweb.auth.token_cache import TokenCache
from oktaweb.exceptions import AuthError, ProviderError, ProviderErrorKind, TransportError
from oktaweb.idp import saml, sts
from oktaweb.idp.base import IdPClient
from oktaweb.models import (
    AccessToken,
    AWSCredential,
    DeviceAuthorization,
    FederationApp,
    IAMRole,
    Settings,
)
from oktaweb.output import get_output

logger = logging.getLogger(__name__)

SCOPES = ("openid", "okta.apps.sso", "okta.apps.read")

DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"
TOKEN_EXCHANGE_GRANT = "urn:ietf:params:oauth:grant-type:token-exchange"
ACCESS_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:access_token"
ID_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:id_token"
WEB_SSO_TOKEN_TYPE = "urn:okta:oauth:token-type:web_sso_token"

_TIMEOUT = 30.0
_SLOW_DOWN_STEP = 5

Chooser = Callable[[str, list[str]], int]


def classify_error_response(response: httpx.Response, context: str) -> ProviderError:
    """Turn an Okta error response into a classified :class:`ProviderError`.

    OAuth endpoints answer ``{"error": ..., "error_description": ...}``;
    management endpoints answer ``{"errorCode": ..., "errorSummary": ...}``.
    Only an OAuth ``error`` of exactly ``invalid_grant`` is classified
    ``INVALID_GRANT``.

    Args:
        response: The non-successful response.
        context: Short description of the request, used when the body
            carries no description.
    """
    try:
        body: Any = response.json()
    except ValueError:
        body = None

    code: Optional[str] = None
    description: Optional[str] = None
    if isinstance(body, dict):
        if body.get("error"):
            code = str(body["error"])
            description = body.get("error_description")
        elif body.get("errorCode"):
            code = str(body["errorCode"])
            description = body.get("errorSummary")

    kind = (
        ProviderErrorKind.INVALID_GRANT
        if code == ProviderErrorKind.INVALID_GRANT.value
        else ProviderErrorKind.OTHER
    )
    message = description or f"{context} failed with status {response.status_code}"
    return ProviderError(kind, message, error_code=code, status_code=response.status_code)


def _json_body(response: httpx.Response, context: str) -> Any:
    """Decode a successful response, rejecting bodies that are not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise AuthError(f"{context} returned a non-JSON response") from exc


def prompt_choice(title: str, options: list[str]) -> int:
    """Ask the user to pick one of *options* on stderr; return its index."""
    output = get_output()
    output.info(title)
    for i, option in enumerate(options, 1):
        output.info(f"  {i}. {option}")
    while True:
        choice = typer.prompt("Select number", default="1", err=True)
        try:
            idx = int(choice) - 1
        except ValueError:
            output.error("Invalid selection.")
            continue
        if 0 <= idx < len(options):
            return idx
        output.error(f"Selection must be between 1 and {len(options)}.")


class OktaWebClient(IdPClient):
    """Authenticate against an Okta org and assume AWS roles.

    Args:
        token_cache: Access-token cache for the org. Read when caching is
            enabled; written after a successful device flow.
        chooser: Callback used when the user must pick an app or a role.
            Defaults to an interactive prompt on stderr.
        sts_client: Optional pre-built STS client (tests pass a stubbed one).
    """

    def __init__(
        self,
        token_cache: TokenCache,
        chooser: Optional[Chooser] = None,
        sts_client: Any = None,
    ) -> None:
        self._cache = token_cache
        self._choose = chooser or prompt_choice
        self._sts_client = sts_client

    def authenticate(self, settings: Settings) -> list[AWSCredential]:
        token = self._access_token(settings)

        credentials: list[AWSCredential] = []
        for app in self._federation_apps(settings, token):
            sso_token = self._web_sso_token(settings, token, app.id)
            assertion = self._saml_assertion(settings, sso_token)
            roles = self._select_roles(settings, app, saml.parse_roles(assertion))
            for role in roles:
                credentials.append(
                    sts.assume_role_with_saml(
                        role,
                        assertion,
                        profile=_profile_name(app, role, settings.all_profiles),
                        duration_seconds=settings.aws_session_duration,
                        region=settings.aws_region,
                        client=self._sts_client,
                    )
                )
        return credentials

    # ------------------------------------------------------------------ #
    # Access token
    # ------------------------------------------------------------------ #

    def _access_token(self, settings: Settings) -> AccessToken:
        if settings.cache_access_token and self._cache.is_valid():
            cached = self._cache.load()
            if cached is not None:
                get_output().debug(f"Using cached access token from {self._cache.path}")
                return cached

        device = self._request_device_authorization(settings)
        self._display_user_code(device)
        if settings.open_browser or settings.open_browser_command:
            self._launch_browser(settings, device.verification_uri_complete or device.verification_uri)

        token_data = self._poll_for_token(settings, device)
        expires_in = token_data.get("expires_in")
        token = AccessToken(
            access_token=token_data["access_token"],
            id_token=token_data.get("id_token"),
            token_type=token_data.get("token_type", "Bearer"),
            scope=token_data.get("scope"),
            expires_at=(
                datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
                if expires_in is not None
                else None
            ),
        )
        if settings.cache_access_token:
            self._cache.save(token)
        return token

    def _request_device_authorization(self, settings: Settings) -> DeviceAuthorization:
        """POST to ``/oauth2/v1/device/authorize``.

        Raises:
            ProviderError: On an error response.
            AuthError: If ``device_code``/``user_code`` are missing.
        """
        response = self._post(
            f"{settings.base_url}/oauth2/v1/device/authorize",
            {"client_id": settings.oidc_client_id, "scope": " ".join(SCOPES)},
        )
        if response.status_code != 200:
            raise classify_error_response(response, "Device authorization request")

        data = _json_body(response, "Device authorization request")
        if not isinstance(data, dict):
            raise AuthError("Device authorization response is not a JSON object")
        for field in ("device_code", "user_code"):
            if field not in data:
                raise AuthError(f"Device authorization response missing '{field}'")
        return DeviceAuthorization.model_validate(data)

    def _display_user_code(self, device: DeviceAuthorization) -> None:
        """Print the activation URL and user code to the terminal."""
        url = device.verification_uri_complete or device.verification_uri
        sys.stderr.write("\n")
        sys.stderr.write(f"Open the following URL to begin Okta device authorization for the AWS CLI\n\n{url}\n\n")
        sys.stderr.write(f"Code: {device.user_code}\n")
        sys.stderr.write("\nWaiting for authorization...\n")
        sys.stderr.flush()

    def _launch_browser(self, settings: Settings, url: str) -> None:
        if settings.open_browser_command:
            args = shlex.split(settings.open_browser_command) + [url]
            try:
                subprocess.Popen(args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            except OSError as exc:
                get_output().warning(f"Could not run browser command {args[0]!r}: {exc}")
            return
        if not webbrowser.open(url):
            get_output().warning("Could not open a web browser; open the URL above manually.")

    def _poll_for_token(self, settings: Settings, device: DeviceAuthorization) -> dict[str, Any]:
        """Poll the token endpoint until the user authorizes or the code expires.

        ``authorization_pending`` keeps polling and ``slow_down`` widens the
        interval by five seconds (:rfc:`8628` section 3.5). Any other error
        is classified and raised.
        """
        deadline = time.monotonic() + device.expires_in
        poll_interval = max(device.interval, 1)
        data = {
            "client_id": settings.oidc_client_id,
            "device_code": device.device_code,
            "grant_type": DEVICE_CODE_GRANT,
        }

        while time.monotonic() < deadline:
            time.sleep(poll_interval)
            response = self._post(f"{settings.base_url}/oauth2/v1/token", data)
            if response.status_code == 200:
                token_data = _json_body(response, "Token polling")
                if not isinstance(token_data, dict) or "access_token" not in token_data:
                    raise AuthError("Token response missing 'access_token'")
                return token_data

            error = classify_error_response(response, "Token polling")
            if error.error_code == "authorization_pending":
                continue
            if error.error_code == "slow_down":
                poll_interval += _SLOW_DOWN_STEP
                logger.debug("slow_down received, polling every %ss", poll_interval)
                continue
            raise error

        raise ProviderError(
            ProviderErrorKind.OTHER,
            "Device authorization timed out -- please try again",
            error_code="expired_token",
        )

    # ------------------------------------------------------------------ #
    # Federation apps
    # ------------------------------------------------------------------ #

    def _federation_apps(self, settings: Settings, token: AccessToken) -> list[FederationApp]:
        if settings.aws_acct_fed_app_id:
            return [FederationApp(id=settings.aws_acct_fed_app_id, idp_arn=settings.aws_iam_idp)]

        apps = self._list_federation_apps(settings, token)
        if not apps:
            raise AuthError("No active AWS Account Federation apps are assigned to this user")
        if settings.all_profiles or len(apps) == 1:
            return apps
        idx = self._choose(
            "Choose an AWS Account Federation app:",
            [f"{app.label} ({app.id})" for app in apps],
        )
        return [apps[idx]]

    def _list_federation_apps(self, settings: Settings, token: AccessToken) -> list[FederationApp]:
        try:
            response = httpx.get(
                f"{settings.base_url}/api/v1/apps",
                params={"q": "amazon_aws", "filter": 'status eq "ACTIVE"'},
                headers={**self._headers(), "Authorization": f"Bearer {token.access_token}"},
                timeout=_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Listing federation apps failed: {exc}") from exc
        if response.status_code != 200:
            raise classify_error_response(response, "Listing federation apps")

        body = _json_body(response, "Listing federation apps")
        if not isinstance(body, list):
            raise AuthError("Listing federation apps did not return a list")

        apps: list[FederationApp] = []
        for item in body:
            if not isinstance(item, dict) or item.get("name") != "amazon_aws":
                continue
            if not item.get("id"):
                raise AuthError("Federation app entry missing 'id'")
            app_settings = (item.get("settings") or {}).get("app") or {}
            apps.append(
                FederationApp(
                    id=item["id"],
                    label=item.get("label", ""),
                    idp_arn=app_settings.get("identityProviderArn"),
                )
            )
        return apps

    # ------------------------------------------------------------------ #
    # Web SSO token and SAML assertion
    # ------------------------------------------------------------------ #

    def _web_sso_token(self, settings: Settings, token: AccessToken, app_id: str) -> str:
        """Exchange the access/ID tokens for a web SSO token for *app_id*.

        A cached access token Okta no longer honours is rejected here with
        ``invalid_grant``.
        """
        if not token.id_token:
            raise ProviderError(
                ProviderErrorKind.INVALID_GRANT,
                "Cached access token has no ID token to exchange",
                error_code="invalid_grant",
            )
        response = self._post(
            f"{settings.base_url}/oauth2/v1/token",
            {
                "client_id": settings.oidc_client_id,
                "actor_token": token.access_token,
                "actor_token_type": ACCESS_TOKEN_TYPE,
                "subject_token": token.id_token,
                "subject_token_type": ID_TOKEN_TYPE,
                "grant_type": TOKEN_EXCHANGE_GRANT,
                "requested_token_type": WEB_SSO_TOKEN_TYPE,
                "audience": f"urn:okta:apps:{app_id}",
            },
        )
        if response.status_code != 200:
            raise classify_error_response(response, "Web SSO token exchange")
        data = _json_body(response, "Web SSO token exchange")
        if not isinstance(data, dict) or "access_token" not in data:
            raise AuthError("Web SSO token response missing 'access_token'")
        return data["access_token"]

    def _saml_assertion(self, settings: Settings, sso_token: str) -> str:
        try:
            response = httpx.get(
                f"{settings.base_url}/login/token/sso",
                params={"token": sso_token},
                headers={"Accept": "text/html", "User-Agent": _user_agent()},
                timeout=_TIMEOUT,
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"Fetching SAML assertion failed: {exc}") from exc
        if response.status_code != 200:
            raise classify_error_response(response, "Fetching SAML assertion")
        return saml.extract_saml_response(response.text)

    # ------------------------------------------------------------------ #
    # Role selection
    # ------------------------------------------------------------------ #

    def _select_roles(
        self, settings: Settings, app: FederationApp, roles: list[IAMRole]
    ) -> list[IAMRole]:
        idp_arn = settings.aws_iam_idp or app.idp_arn
        if idp_arn:
            matching = [r for r in roles if r.idp_arn == idp_arn]
            if not matching:
                raise AuthError(f"SAML assertion has no roles for IdP {idp_arn}")
            roles = matching

        if settings.aws_iam_role:
            for role in roles:
                if role.role_arn == settings.aws_iam_role:
                    return [role]
            raise AuthError(f"IAM role {settings.aws_iam_role} is not available to this user")

        if settings.all_profiles or len(roles) == 1:
            return roles

        idx = self._choose("Choose an IAM role:", [r.role_arn for r in roles])
        return [roles[idx]]

    # ------------------------------------------------------------------ #
    # HTTP helpers
    # ------------------------------------------------------------------ #

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": _user_agent()}

    def _post(self, url: str, data: dict[str, str]) -> httpx.Response:
        try:
            return httpx.post(url, data=data, headers=self._headers(), timeout=_TIMEOUT)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc


def _user_agent() -> str:
    return f"oktaweb/{__version__}"


def _profile_name(app: FederationApp, role: IAMRole, qualify: bool) -> str:
    if not qualify:
        return "default"
    prefix = re.sub(r"[^A-Za-z0-9]+", "-", app.label).strip("-").lower() or role.account_id
    return f"{prefix}-{role.role_name}"
