"""Credential writers.

Credentials are the only thing oktaweb writes to stdout, so that
``eval "$(oktaweb web)"`` works. Two formats are supported:

* ``env-var`` -- ``export AWS_...=`` lines. With several profiles each
  block is preceded by a ``# profile: <name>`` comment. Evaluating the
  output keeps only the last block, so a warning goes to stderr.
* ``json`` -- a JSON list, one object per profile.
"""

from __future__ import annotations

import shlex

from oktaweb.models import AWSCredential, CredentialFormat
from oktaweb.output import OutputManager, get_output


def env_var_lines(credential: AWSCredential) -> list[str]:
    return [
        f"export AWS_ACCESS_KEY_ID={shlex.quote(credential.access_key_id)}",
        f"export AWS_SECRET_ACCESS_KEY={shlex.quote(credential.secret_access_key)}",
        f"export AWS_SESSION_TOKEN={shlex.quote(credential.session_token)}",
    ]


def write_credentials(
    credentials: list[AWSCredential],
    fmt: CredentialFormat,
    output: OutputManager | None = None,
) -> None:
    """Write *credentials* to stdout in *fmt*."""
    output = output or get_output()

    if fmt == CredentialFormat.JSON:
        output.print_json(
            [c.model_dump(mode="json", exclude_none=True) for c in credentials]
        )
        return

    if len(credentials) > 1:
        output.warning(
            f"{len(credentials)} profiles written as environment variables; "
            "evaluating them keeps only the last one. Use --format json to keep all."
        )
    for i, credential in enumerate(credentials):
        if len(credentials) > 1:
            if i:
                output.print_data("")
            output.print_data(f"# profile: {credential.profile}")
        for line in env_var_lines(credential):
            output.print_data(line)
