"""Tests for STS AssumeRoleWithSAML."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError
from botocore.stub import Stubber

from oktaweb.exceptions import ProviderError, ProviderErrorKind, TransportError
from oktaweb.idp.sts import assume_role_with_saml, sts_client
from oktaweb.models import IAMRole


ROLE_A = "arn:aws:iam::123456789012:role/Admin"
IDP_ARN = "arn:aws:iam::123456789012:saml-provider/Okta"

ROLE = IAMRole(role_arn=ROLE_A, idp_arn=IDP_ARN)
ASSERTION = "UEhOaGJXdz0gYXNzZXJ0aW9u"


@pytest.fixture()
def stubbed():
    client = sts_client("us-east-1")
    with Stubber(client) as stubber:
        yield client, stubber


class TestAssumeRoleWithSAML:
    def test_success(self, stubbed) -> None:
        client, stubber = stubbed
        expiration = datetime(2030, 1, 1, tzinfo=timezone.utc)
        stubber.add_response(
            "assume_role_with_saml",
            {
                "Credentials": {
                    "AccessKeyId": "ASIAEXAMPLEKEY123456",
                    "SecretAccessKey": "secret",
                    "SessionToken": "session",
                    "Expiration": expiration,
                }
            },
            {
                "RoleArn": ROLE_A,
                "PrincipalArn": IDP_ARN,
                "SAMLAssertion": ASSERTION,
                "DurationSeconds": 3600,
            },
        )

        cred = assume_role_with_saml(ROLE, ASSERTION, profile="default", client=client)

        assert cred.profile == "default"
        assert cred.access_key_id == "ASIAEXAMPLEKEY123456"
        assert cred.session_token == "session"
        assert cred.expiration == expiration
        assert cred.role_arn == ROLE_A

    def test_duration_passed(self, stubbed) -> None:
        client, stubber = stubbed
        stubber.add_response(
            "assume_role_with_saml",
            {
                "Credentials": {
                    "AccessKeyId": "ASIAEXAMPLEKEY123456",
                    "SecretAccessKey": "secret",
                    "SessionToken": "session",
                    "Expiration": datetime(2030, 1, 1, tzinfo=timezone.utc),
                }
            },
            {
                "RoleArn": ROLE_A,
                "PrincipalArn": IDP_ARN,
                "SAMLAssertion": ASSERTION,
                "DurationSeconds": 7200,
            },
        )
        assume_role_with_saml(ROLE, ASSERTION, "p", duration_seconds=7200, client=client)
        stubber.assert_no_pending_responses()

    def test_client_error_is_provider_error(self, stubbed) -> None:
        client, stubber = stubbed
        stubber.add_client_error(
            "assume_role_with_saml",
            service_error_code="ValidationError",
            service_message="DurationSeconds exceeds the MaxSessionDuration",
            http_status_code=400,
        )

        with pytest.raises(ProviderError) as exc_info:
            assume_role_with_saml(ROLE, ASSERTION, "default", client=client)

        assert exc_info.value.kind is ProviderErrorKind.OTHER
        assert exc_info.value.error_code == "ValidationError"
        assert exc_info.value.status_code == 400
        assert "MaxSessionDuration" in str(exc_info.value)

    def test_expired_assertion_is_not_invalid_grant(self, stubbed) -> None:
        client, stubber = stubbed
        stubber.add_client_error(
            "assume_role_with_saml",
            service_error_code="ExpiredTokenException",
            service_message="Token must be redeemed within 5 minutes",
        )
        with pytest.raises(ProviderError) as exc_info:
            assume_role_with_saml(ROLE, ASSERTION, "default", client=client)
        assert not exc_info.value.is_invalid_grant

    def test_connection_error_is_transport_error(self) -> None:
        client = MagicMock()
        client.assume_role_with_saml.side_effect = EndpointConnectionError(
            endpoint_url="https://sts.amazonaws.com"
        )
        with pytest.raises(TransportError, match="Cannot reach AWS STS"):
            assume_role_with_saml(ROLE, ASSERTION, "default", client=client)

    def test_client_error_without_message(self) -> None:
        client = MagicMock()
        client.assume_role_with_saml.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied"}}, "AssumeRoleWithSAML"
        )
        with pytest.raises(ProviderError) as exc_info:
            assume_role_with_saml(ROLE, ASSERTION, "default", client=client)
        assert exc_info.value.error_code == "AccessDenied"
