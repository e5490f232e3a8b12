"""Canonical Pydantic models shared across all oktaweb modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration** -- :class:`Settings`, the validated, immutable result of
merging CLI flags, environment variables and ``okta.yaml``.

**Okta artifacts** -- :class:`DeviceAuthorization`, :class:`AccessToken`
(also the on-disk shape of the access-token cache), :class:`FederationApp`
and :class:`IAMRole`.

**AWS output** -- :class:`AWSCredential`, handed to the credential writers.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CredentialFormat(str, enum.Enum):
    """How credentials are written to stdout."""

    ENV_VAR = "env-var"
    JSON = "json"


# --- Settings ---


class Settings(BaseModel):
    """Validated configuration for one ``oktaweb web`` run.

    Instances are frozen: the orchestrator and the IdP client borrow them
    read-only. ``org_domain`` and ``oidc_client_id`` are required by the
    command front before a run starts; :meth:`missing_required` reports
    which of them are empty.
    """

    model_config = ConfigDict(frozen=True)

    org_domain: str = Field(default="", description="Okta org domain, e.g. example.okta.com")
    oidc_client_id: str = Field(default="", description="OIDC native app client ID")
    aws_acct_fed_app_id: Optional[str] = Field(
        default=None, description="AWS Account Federation app ID"
    )
    aws_iam_idp: Optional[str] = Field(
        default=None, description="Preset IAM Identity Provider ARN"
    )
    aws_iam_role: Optional[str] = Field(default=None, description="Preset IAM role ARN")
    aws_session_duration: int = Field(default=3600, ge=900, le=43200)
    aws_region: str = "us-east-1"
    open_browser: bool = False
    open_browser_command: Optional[str] = None
    all_profiles: bool = False
    cache_access_token: bool = False
    format: CredentialFormat = CredentialFormat.ENV_VAR
    debug: bool = False

    @field_validator("org_domain")
    @classmethod
    def _strip_scheme(cls, value: str) -> str:
        value = value.strip()
        for prefix in ("https://", "http://"):
            if value.startswith(prefix):
                value = value[len(prefix):]
        return value.rstrip("/")

    @field_validator("oidc_client_id")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    @property
    def base_url(self) -> str:
        return f"https://{self.org_domain}"

    def missing_required(self) -> list[str]:
        """Return the flag names of required settings that are empty."""
        missing: list[str] = []
        if not self.org_domain:
            missing.append("org-domain")
        if not self.oidc_client_id:
            missing.append("oidc-client-id")
        return missing


# --- Okta artifacts ---


class DeviceAuthorization(BaseModel):
    """Response of the device authorization endpoint (:rfc:`8628` section 3.2)."""

    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: Optional[str] = None
    expires_in: int = 600
    interval: int = 5


class AccessToken(BaseModel):
    """An Okta access token together with the ID token it was issued with.

    This is also the persisted shape of
    :class:`~oktaweb.auth.token_cache.TokenCache`.
    """

    access_token: str
    id_token: Optional[str] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires = self.expires_at
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return now >= expires


class FederationApp(BaseModel):
    """An active AWS Account Federation app assigned to the user."""

    id: str
    label: str = ""
    idp_arn: Optional[str] = None


class IAMRole(BaseModel):
    """One ``role_arn,idp_arn`` pair taken from a SAML assertion."""

    model_config = ConfigDict(frozen=True)

    role_arn: str
    idp_arn: str

    @property
    def account_id(self) -> str:
        parts = self.role_arn.split(":")
        return parts[4] if len(parts) > 4 else ""

    @property
    def role_name(self) -> str:
        return self.role_arn.rsplit("/", 1)[-1]


# --- AWS output ---


class AWSCredential(BaseModel):
    """Temporary AWS credentials for one assumed role."""

    profile: str
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[datetime] = None
    role_arn: Optional[str] = None
