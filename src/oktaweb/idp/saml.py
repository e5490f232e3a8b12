"""SAML assertion handling for the AWS Account Federation app.

Okta answers ``/login/token/sso`` with an auto-submitting HTML form whose
``SAMLResponse`` field carries the base64-encoded assertion destined for
``signin.aws.amazon.com``. This module scrapes that field and lists the
``role_arn,idp_arn`` pairs of the
``https://aws.amazon.com/SAML/Attributes/Role`` attribute.
"""

from __future__ import annotations

import base64
import binascii
import html
import re
import xml.etree.ElementTree as ET

from oktaweb.exceptions import AuthError
from oktaweb.models import IAMRole

ROLE_ATTRIBUTE = "https://aws.amazon.com/SAML/Attributes/Role"

_SAML_NS = {"saml2": "urn:oasis:names:tc:SAML:2.0:assertion"}

_INPUT_TAG = re.compile(r"<input\b[^>]*>", re.IGNORECASE)
_ATTR = re.compile(r"""([a-zA-Z_:-]+)\s*=\s*("([^"]*)"|'([^']*)')""")


def extract_saml_response(page: str) -> str:
    """Return the raw (still base64-encoded) ``SAMLResponse`` form value.

    Raises:
        AuthError: If the page has no ``SAMLResponse`` input, which usually
            means Okta rendered an error or sign-in page instead.
    """
    for tag in _INPUT_TAG.findall(page):
        attrs = {
            m.group(1).lower(): m.group(3) if m.group(3) is not None else m.group(4)
            for m in _ATTR.finditer(tag)
        }
        if attrs.get("name") == "SAMLResponse" and attrs.get("value"):
            return html.unescape(attrs["value"])
    raise AuthError("Okta did not return a SAML assertion for the federation app")


def decode_assertion(saml_response: str) -> ET.Element:
    """Base64-decode and parse a ``SAMLResponse`` value into an XML element."""
    try:
        document = base64.b64decode(saml_response, validate=False)
        return ET.fromstring(document)
    except (binascii.Error, ValueError, ET.ParseError) as exc:
        raise AuthError(f"Malformed SAML assertion: {exc}") from exc


def parse_roles(saml_response: str) -> list[IAMRole]:
    """List the IAM roles granted by the assertion, in document order.

    Each attribute value is ``<role_arn>,<idp_arn>``; AWS accepts both
    orders, so the pair is sorted by which side names a ``saml-provider``.

    Raises:
        AuthError: If the assertion grants no roles.
    """
    root = decode_assertion(saml_response)
    roles: list[IAMRole] = []
    for attribute in root.iter(f"{{{_SAML_NS['saml2']}}}Attribute"):
        if attribute.get("Name") != ROLE_ATTRIBUTE:
            continue
        for value in attribute.findall("saml2:AttributeValue", _SAML_NS):
            pair = [part.strip() for part in (value.text or "").split(",")]
            if len(pair) != 2:
                continue
            first, second = pair
            if ":saml-provider/" in first:
                first, second = second, first
            role = IAMRole(role_arn=first, idp_arn=second)
            if role not in roles:
                roles.append(role)

    if not roles:
        raise AuthError("SAML assertion does not grant any AWS IAM roles")
    return roles
