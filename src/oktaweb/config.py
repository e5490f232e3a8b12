"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for oktaweb:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oktaweb/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **okta.yaml** -- an optional YAML file in the config directory supplying
  ``org_domain``/``oidc_client_id`` defaults. Both the Okta SDK layout
  (``okta.client.orgUrl``) and flat snake-case keys are understood.
* **Precedence resolution** -- :func:`evaluate_settings` merges CLI flags and
  environment variables (already merged by Typer's ``envvar`` support) over
  ``okta.yaml`` over defaults into a validated
  :class:`~oktaweb.models.Settings`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so that a crash never leaves a half-written cache.
"""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from oktaweb.exceptions import ConfigurationError
from oktaweb.models import Settings

_APP_NAME = "oktaweb"
OKTA_YAML = "okta.yaml"

ENV_PREFIX = "OKTA_AWSCLI_"

# okta.yaml keys (Okta SDK layout) -> Settings field names.
_SDK_KEYS = {
    "orgUrl": "org_domain",
    "clientId": "oidc_client_id",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/oktaweb/`` (default ``~/.config/oktaweb/``).
    On macOS/Windows: ``~/.oktaweb/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (token cache, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oktaweb/`` (default ``~/.local/share/oktaweb/``).
    On macOS/Windows: ``~/.oktaweb/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str, mode: int = 0o600) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. Permissions are set
    before any content is written. On any failure the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- okta.yaml ---


def okta_yaml_path() -> Path:
    """Path to the optional ``okta.yaml`` in the config directory."""
    return get_config_dir() / OKTA_YAML


def load_okta_yaml(path: Optional[Path] = None) -> dict[str, Any]:
    """Load settings defaults from ``okta.yaml``.

    Args:
        path: Explicit file location. Defaults to :func:`okta_yaml_path`.

    Returns:
        A dict of :class:`~oktaweb.models.Settings` field names to values.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file exists but is not valid YAML or not
            a mapping.
    """
    path = path or okta_yaml_path()
    text = path.read_text(encoding="utf-8")
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")

    values: dict[str, Any] = {}

    client = raw.get("okta", {})
    if isinstance(client, dict):
        client = client.get("client", {})
    if isinstance(client, dict):
        for sdk_key, field in _SDK_KEYS.items():
            if client.get(sdk_key):
                values[field] = str(client[sdk_key])

    for field in Settings.model_fields:
        if field in raw and raw[field] is not None:
            values[field] = raw[field]

    return values


# --- Precedence resolution ---


def evaluate_settings(
    overrides: Optional[dict[str, Any]] = None,
    file_values: Optional[dict[str, Any]] = None,
) -> Settings:
    """Merge configuration layers into a validated :class:`Settings`.

    Precedence (high to low):
        1. CLI flags and ``OKTA_AWSCLI_*`` environment variables (*overrides*;
           Typer resolves flag-over-env before this is called)
        2. ``okta.yaml`` (*file_values*)
        3. Defaults

    ``None`` values in *overrides* mean "not given" and do not mask lower
    layers.

    Raises:
        ConfigurationError: If required settings are missing or a value is
            out of range.
    """
    merged: dict[str, Any] = dict(file_values or {})
    for key, value in (overrides or {}).items():
        if value is not None:
            merged[key] = value

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid settings: {problems}") from exc

    missing = settings.missing_required()
    if missing:
        flags = ", ".join(f"--{name}" for name in missing)
        raise ConfigurationError(f"Missing required flag(s): {flags}")
    return settings
