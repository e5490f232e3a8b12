"""Cache commands -- inspect and clear the cached Okta access token.

Typical workflow::

    oktaweb cache show --org-domain example.okta.com
    oktaweb cache clear --org-domain example.okta.com --force
"""

from __future__ import annotations

from typing import Optional

import typer

from oktaweb.config import ENV_PREFIX
from oktaweb.exit_codes import EXIT_INVALID_USAGE
from oktaweb.output import error, get_output, info, success, suggest


cache_app = typer.Typer(no_args_is_help=True)


def _resolve_org_domain(org_domain: Optional[str]) -> str:
    """Fall back to ``okta.yaml`` when no flag or env var names the org."""
    from oktaweb.commands.web import read_okta_yaml
    from oktaweb.models import Settings

    if not org_domain:
        org_domain = read_okta_yaml().get("org_domain")
    if not org_domain:
        error("Missing required flag: --org-domain")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    # Normalise scheme/trailing slash the same way a web run does.
    return Settings(org_domain=org_domain).org_domain


@cache_app.command("show")
def cache_show(
    org_domain: Optional[str] = typer.Option(
        None, "--org-domain", "-o", envvar=f"{ENV_PREFIX}ORG_DOMAIN", help="Okta org domain."
    ),
) -> None:
    """Show the cached access token for an org.

    Prints a table with the cache file, a truncated token preview, the
    scopes, the expiry and whether the token is still usable.
    """
    from oktaweb.auth.token_cache import TokenCache

    cache = TokenCache(_resolve_org_domain(org_domain))
    token = cache.load()
    if token is None:
        info(f"No cached access token for {cache.org_domain}.")
        return

    preview = token.access_token[:8] + "..." if len(token.access_token) > 8 else token.access_token
    rows = [
        ["Org", cache.org_domain],
        ["File", str(cache.path)],
        ["Access Token", preview],
        ["ID Token", "present" if token.id_token else "-"],
        ["Scope", token.scope or "-"],
        ["Expires At", str(token.expires_at) if token.expires_at else "never"],
        ["Valid", str(cache.is_valid())],
    ]
    get_output().print_table(["Field", "Value"], rows, title="Cached Access Token")


@cache_app.command("clear")
def cache_clear(
    org_domain: Optional[str] = typer.Option(
        None, "--org-domain", "-o", envvar=f"{ENV_PREFIX}ORG_DOMAIN", help="Okta org domain."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Remove the cached access token for an org.

    The next ``oktaweb web --cache-access-token`` run starts a fresh device
    authorization.
    """
    from oktaweb.auth.token_cache import TokenCache

    cache = TokenCache(_resolve_org_domain(org_domain))
    if not cache.path.exists():
        info(f"No cached access token for {cache.org_domain}.")
        return

    if not force:
        confirmed = typer.confirm(f"Remove cached access token for {cache.org_domain}?", err=True)
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    if cache.invalidate():
        success(f"Cached access token removed for {cache.org_domain}.")
        suggest("Authenticate again: oktaweb web --cache-access-token")
    else:
        info(f"No cached access token for {cache.org_domain}.")
