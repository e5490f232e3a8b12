"""Web command -- human oriented authentication and device authorization.

Provides ``oktaweb web``: evaluate settings from flags, ``OKTA_AWSCLI_*``
environment variables and ``okta.yaml``, run the
:class:`~oktaweb.auth.orchestrator.AuthOrchestrator` against Okta, and
write the resulting AWS credentials to stdout.

Typical usage::

    eval "$(oktaweb web --org-domain example.okta.com --oidc-client-id 0oa...)"
    oktaweb web -a 0oa...fed -k --format json
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from oktaweb.config import ENV_PREFIX, OKTA_YAML, evaluate_settings, load_okta_yaml
from oktaweb.exceptions import ConfigurationError, OktaWebError, ProviderError
from oktaweb.models import CredentialFormat
from oktaweb.output import (
    OutputManager,
    configure_logging,
    error,
    get_output,
    set_output,
    suggest,
    warning,
)


def _env(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


def web_command(
    org_domain: Optional[str] = typer.Option(
        None, "--org-domain", "-o", envvar=_env("ORG_DOMAIN"),
        help="Okta org domain, e.g. example.okta.com.",
    ),
    oidc_client_id: Optional[str] = typer.Option(
        None, "--oidc-client-id", "-c", envvar=_env("OIDC_CLIENT_ID"),
        help="OIDC native application client ID.",
    ),
    aws_acct_fed_app_id: Optional[str] = typer.Option(
        None, "--aws-acct-fed-app-id", "-a", envvar=_env("AWS_ACCOUNT_FEDERATION_APP_ID"),
        help="AWS Account Federation app ID.",
    ),
    aws_iam_idp: Optional[str] = typer.Option(
        None, "--aws-iam-idp", "-i", envvar=_env("IAM_IDP"),
        help="Preset IAM Identity Provider ARN.",
    ),
    aws_iam_role: Optional[str] = typer.Option(
        None, "--aws-iam-role", "-r", envvar=_env("IAM_ROLE"),
        help="Preset IAM role ARN.",
    ),
    session_duration: Optional[int] = typer.Option(
        None, "--session-duration", "-s", envvar=_env("SESSION_DURATION"),
        help="Session duration for role credentials in seconds (900-43200).",
    ),
    aws_region: Optional[str] = typer.Option(
        None, "--aws-region", envvar=_env("AWS_REGION"),
        help="AWS region used for the STS call.",
    ),
    open_browser: bool = typer.Option(
        False, "--open-browser", "-b", envvar=_env("OPEN_BROWSER"),
        help="Automatically open the activation URL with the system web browser.",
    ),
    open_browser_command: Optional[str] = typer.Option(
        None, "--open-browser-command", "-m", envvar=_env("OPEN_BROWSER_COMMAND"),
        help="Automatically open the activation URL with the given web browser command.",
    ),
    all_profiles: bool = typer.Option(
        False, "--all-profiles", "-k", envvar=_env("ALL_PROFILES"),
        help="Collect all profiles for a given IdP.",
    ),
    cache_access_token: bool = typer.Option(
        False, "--cache-access-token", "-e", envvar=_env("CACHE_ACCESS_TOKEN"),
        help="Cache the Okta access token to reduce device authorizations.",
    ),
    fmt: Optional[CredentialFormat] = typer.Option(
        None, "--format", "-f", envvar=_env("FORMAT"),
        help="Credentials output format.",
    ),
    debug: bool = typer.Option(
        False, "--debug", envvar=_env("DEBUG"),
        help="Print operational information to stderr.",
    ),
) -> None:
    """Human oriented authentication and device authorization.

    Runs the Okta device authorization flow, exchanges the token for the
    federation app's SAML assertion, assumes the selected IAM role(s) and
    prints the temporary credentials.

    Raises:
        typer.Exit: With the error's exit code when settings are invalid or
            authentication fails.
    """
    from oktaweb.auth import AuthOrchestrator, TokenCache
    from oktaweb.idp import OktaWebClient
    from oktaweb.writers import write_credentials

    overrides: dict[str, Any] = {
        "org_domain": org_domain,
        "oidc_client_id": oidc_client_id,
        "aws_acct_fed_app_id": aws_acct_fed_app_id,
        "aws_iam_idp": aws_iam_idp,
        "aws_iam_role": aws_iam_role,
        "aws_session_duration": session_duration,
        "aws_region": aws_region,
        # Unset boolean flags must not mask okta.yaml values.
        "open_browser": open_browser or None,
        "open_browser_command": open_browser_command,
        "all_profiles": all_profiles or None,
        "cache_access_token": cache_access_token or None,
        "format": fmt,
        "debug": debug or None,
    }

    file_values = read_okta_yaml()

    try:
        settings = evaluate_settings(overrides, file_values)
    except ConfigurationError as exc:
        error(str(exc))
        suggest("Set the flags, their OKTA_AWSCLI_* environment variables, or okta.yaml.")
        raise typer.Exit(code=exc.exit_code) from None

    if settings.debug:
        current = get_output()
        set_output(
            OutputManager(
                format=current.format,
                no_color=current.no_color,
                quiet=current.is_quiet,
                verbose=True,
            )
        )
        configure_logging(verbose=True)

    cache = TokenCache(settings.org_domain)
    orchestrator = AuthOrchestrator(OktaWebClient(cache), cache)
    try:
        credentials = orchestrator.run(settings)
    except ProviderError as exc:
        # A terminal invalid_grant already printed its guidance.
        error(exc.summary)
        raise typer.Exit(code=exc.exit_code) from None
    except OktaWebError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    write_credentials(credentials, settings.format, get_output())


def read_okta_yaml() -> dict[str, Any]:
    """Return ``okta.yaml`` values, warning (not failing) when the file is unusable.

    A missing file is silent. A malformed one only produces a warning so it
    never changes how authentication proceeds.
    """
    try:
        return load_okta_yaml()
    except FileNotFoundError:
        return {}
    except (ConfigurationError, OSError) as exc:
        warning(f"issue with {OKTA_YAML} file.\nError: {exc}")
        return {}
