"""Shared test fixtures for oktaweb.

Provides reusable fixtures for isolated config environments, settings,
SAML assertion pages, output state, and running CLI commands. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import base64
import html
import logging
import os
from pathlib import Path
from typing import Callable

import pytest

from oktaweb.models import Settings
from oktaweb.output import OutputFormat, OutputManager, reset_output, set_output


ROLE_ATTRIBUTE = "https://aws.amazon.com/SAML/Attributes/Role"

ROLE_A = "arn:aws:iam::123456789012:role/Admin"
ROLE_B = "arn:aws:iam::123456789012:role/ReadOnly"
IDP_ARN = "arn:aws:iam::123456789012:saml-provider/Okta"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager and the oktaweb logger after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams, the
    cached references go stale once the test finishes.
    """
    yield
    reset_output()
    logger = logging.getLogger("oktaweb")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    forces the XDG layout, and clears every OKTA_AWSCLI_* environment
    variable so that tests never touch real user config.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("oktaweb.config._is_xdg_platform", lambda: True)

    for var in list(os.environ):
        if var.startswith("OKTA_AWSCLI_"):
            monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    """Minimal valid settings with a preset federation app."""
    return Settings(
        org_domain="example.okta.com",
        oidc_client_id="0oa-client",
        aws_acct_fed_app_id="0oa-fed-app",
    )


# ---------------------------------------------------------------------------
# SAML fixtures
# ---------------------------------------------------------------------------


def _assertion(pairs: list[str]) -> str:
    values = "".join(
        f"<saml2:AttributeValue>{p}</saml2:AttributeValue>" for p in pairs
    )
    return (
        '<saml2p:Response xmlns:saml2p="urn:oasis:names:tc:SAML:2.0:protocol">'
        '<saml2:Assertion xmlns:saml2="urn:oasis:names:tc:SAML:2.0:assertion">'
        "<saml2:AttributeStatement>"
        '<saml2:Attribute Name="https://aws.amazon.com/SAML/Attributes/RoleSessionName">'
        "<saml2:AttributeValue>user@example.com</saml2:AttributeValue>"
        "</saml2:Attribute>"
        f'<saml2:Attribute Name="{ROLE_ATTRIBUTE}">{values}</saml2:Attribute>'
        "</saml2:AttributeStatement>"
        "</saml2:Assertion>"
        "</saml2p:Response>"
    )


@pytest.fixture
def saml_response() -> Callable[..., str]:
    """Factory for base64 ``SAMLResponse`` values granting ``role,idp`` pairs."""

    def _make(*pairs: str) -> str:
        if not pairs:
            pairs = (f"{ROLE_A},{IDP_ARN}",)
        return base64.b64encode(_assertion(list(pairs)).encode()).decode()

    return _make


@pytest.fixture
def saml_page(saml_response: Callable[..., str]) -> Callable[..., str]:
    """Factory for the auto-submitting HTML form Okta returns from /login/token/sso."""

    def _make(*pairs: str) -> str:
        value = html.escape(saml_response(*pairs), quote=True)
        return (
            "<html><body onload=\"document.forms[0].submit()\">"
            '<form method="POST" action="https://signin.aws.amazon.com/saml">'
            f'<input name="SAMLResponse" type="hidden" value="{value}"/>'
            '<input name="RelayState" type="hidden" value=""/>'
            "</form></body></html>"
        )

    return _make


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def plain_output() -> OutputManager:
    """Install a PLAIN, colourless OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
