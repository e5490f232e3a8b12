"""AWS STS role assumption with a SAML assertion.

``AssumeRoleWithSAML`` is authorised by the assertion itself, so the STS
client is created with ``signature_version=UNSIGNED`` and never looks for
local AWS credentials.
"""

from __future__ import annotations

import logging

import boto3
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from oktaweb.exceptions import ProviderError, ProviderErrorKind, TransportError
from oktaweb.models import AWSCredential, IAMRole

logger = logging.getLogger(__name__)


def sts_client(region: str):
    return boto3.client(
        "sts",
        region_name=region,
        config=Config(signature_version=UNSIGNED, retries={"max_attempts": 2}),
    )


def assume_role_with_saml(
    role: IAMRole,
    saml_response: str,
    profile: str,
    duration_seconds: int = 3600,
    region: str = "us-east-1",
    client=None,
) -> AWSCredential:
    """Exchange *saml_response* for temporary credentials of *role*.

    Args:
        role: The role/IdP pair to assume.
        saml_response: The base64 ``SAMLResponse`` value.
        profile: Name given to the resulting credentials.
        duration_seconds: Requested session length.
        region: STS region.
        client: Pre-built STS client (tests pass a stubbed one).

    Raises:
        ProviderError: If STS rejects the request (``kind`` is always
            ``OTHER``; STS errors are never grant staleness).
        TransportError: If STS cannot be reached.
    """
    client = client or sts_client(region)
    logger.debug("Assuming %s via %s", role.role_arn, role.idp_arn)
    try:
        response = client.assume_role_with_saml(
            RoleArn=role.role_arn,
            PrincipalArn=role.idp_arn,
            SAMLAssertion=saml_response,
            DurationSeconds=duration_seconds,
        )
    except ClientError as exc:
        err = exc.response.get("Error", {})
        raise ProviderError(
            ProviderErrorKind.OTHER,
            err.get("Message") or str(exc),
            error_code=err.get("Code"),
            status_code=exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
        ) from exc
    except EndpointConnectionError as exc:
        raise TransportError(f"Cannot reach AWS STS: {exc}") from exc
    except BotoCoreError as exc:
        raise TransportError(f"AWS STS request failed: {exc}") from exc

    creds = response["Credentials"]
    return AWSCredential(
        profile=profile,
        access_key_id=creds["AccessKeyId"],
        secret_access_key=creds["SecretAccessKey"],
        session_token=creds["SessionToken"],
        expiration=creds.get("Expiration"),
        role_arn=role.role_arn,
    )
