"""oktaweb -- Okta device authorization to short-lived AWS credentials.

This package drives the OAuth 2.0 Device Authorization Grant (:rfc:`8628`)
against an Okta org, exchanges the resulting access token for a SAML
assertion of an AWS Account Federation app, and assumes the selected IAM
role(s) to obtain temporary AWS credentials.

Typical workflow::

    oktaweb web --org-domain example.okta.com --oidc-client-id 0oa...
    eval "$(oktaweb web --cache-access-token)"

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and settings evaluation.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    auth: Access-token cache and the authentication orchestrator.
    idp: Okta device flow, SAML handling and STS role assumption.
"""

__version__ = "0.1.0"
