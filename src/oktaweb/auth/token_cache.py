"""Persistent Okta access-token cache scoped per org.

Stores the token in ``~/.local/share/oktaweb/access-token-<org>.json`` (XDG)
or the platform-equivalent directory. Files are written atomically with
``0o600`` permissions so the token is never world-readable, even momentarily.

The cache is read by the IdP client (to skip the device flow) and written
after a successful device flow. Only the orchestrator calls
:meth:`TokenCache.invalidate`, and only when Okta rejects the cached token
with ``invalid_grant``.

See Also:
    :class:`~oktaweb.auth.orchestrator.AuthOrchestrator` -- decides when the
    cached token is stale.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from oktaweb.config import _atomic_write, get_data_dir
from oktaweb.models import AccessToken

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class TokenCache:
    """Read, write and invalidate the cached access token for one Okta org.

    Args:
        org_domain: The Okta org the token was issued by. Used to derive the
            file name so tokens of different orgs never mix.
        directory: Override for the cache directory (defaults to
            :func:`~oktaweb.config.get_data_dir`).

    Example::

        cache = TokenCache("example.okta.com")
        cache.save(AccessToken(access_token="eyJ...", id_token="eyJ..."))
        assert cache.load().access_token == "eyJ..."
        assert cache.invalidate() is True
        assert cache.invalidate() is False
    """

    def __init__(self, org_domain: str, directory: Optional[Path] = None) -> None:
        self._org_domain = org_domain
        base = directory if directory is not None else get_data_dir()
        slug = _UNSAFE_CHARS.sub("_", org_domain) or "default"
        self._path = base / f"access-token-{slug}.json"

    @property
    def path(self) -> Path:
        """The filesystem path to the cached token file."""
        return self._path

    @property
    def org_domain(self) -> str:
        return self._org_domain

    def save(self, token: AccessToken) -> None:
        """Persist *token* atomically with ``0o600`` permissions.

        Raises:
            OSError: If the file cannot be written.
        """
        text = json.dumps(token.model_dump(mode="json"), indent=2) + "\n"
        _atomic_write(self._path, text)
        logger.debug("Cached access token at %s", self._path)

    def load(self) -> Optional[AccessToken]:
        """Load the cached token.

        Returns:
            The :class:`~oktaweb.models.AccessToken`, or ``None`` if the file
            does not exist or cannot be parsed.
        """
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return AccessToken.model_validate(data)
        except (json.JSONDecodeError, ValueError, OSError) as exc:
            logger.debug("Ignoring unreadable token cache %s: %s", self._path, exc)
            return None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Return ``True`` if a cached token exists and has not expired."""
        token = self.load()
        if token is None:
            return False
        return not token.is_expired(now or datetime.now(timezone.utc))

    def invalidate(self) -> bool:
        """Remove the cached token.

        Returns:
            ``True`` only if a token file existed and was removed. Removing a
            nonexistent token returns ``False`` so that callers never retry
            on the strength of a no-op.
        """
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Removed cached access token %s", self._path)
        return True
