"""Settings resolution with XDG paths, atomic writes, and precedence handling.

This module handles all persistent configuration for oasync:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oasync/`` on macOS and Windows. See :func:`get_config_dir`.
* **Settings file** -- A single JSON document deserialised into
  :class:`~oasync.models.Settings`.
* **Precedence resolution** -- :func:`load_settings` layers defaults, the
  settings file, ``OASYNC_*`` environment variables and explicit overrides.

:func:`atomic_write` provides the temp-file-then-rename write used for the
project cache record.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from oasync.exceptions import (
    ConfigNotFoundError,
    InvalidConfigError,
    MissingFieldError,
)
from oasync.models import Settings

logger = logging.getLogger(__name__)

_APP_NAME = "oasync"
_CONFIG_FILENAME = "config.json"

ENV_OVERRIDES: dict[str, str] = {
    "OASYNC_TTL_SECONDS": "ttl_seconds",
    "OASYNC_FETCH_TIMEOUT": "fetch_timeout",
    "OASYNC_PROBE_TIMEOUT": "probe_timeout",
    "OASYNC_PAGE_LIMIT": "page_limit",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory without creating it.

    On Linux/BSD: ``$XDG_CONFIG_HOME/oasync/`` (default ``~/.config/oasync/``).
    On macOS/Windows: ``~/.oasync/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def default_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed and the original exception propagates.
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
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings ---


def _read_settings_file(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidConfigError(f"{path}: {exc}") from exc
    except OSError as exc:
        raise InvalidConfigError(f"cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidConfigError(f"{path}: expected a JSON object")
    return data


def _env_overrides() -> dict[str, str]:
    values: dict[str, str] = {}
    for env_var, field in ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw:
            logger.debug("Settings override from %s", env_var)
            values[field] = raw
    return values


def load_settings(
    path: Optional[Path] = None,
    **overrides: Any,
) -> Settings:
    """Resolve the effective :class:`~oasync.models.Settings`.

    Precedence (high to low):
        1. Keyword *overrides* whose value is not ``None``
        2. Environment variables (``OASYNC_TTL_SECONDS`` and friends)
        3. The settings file (*path*, or ``<config_dir>/config.json``)
        4. Model defaults

    Args:
        path: Explicit settings file. Unlike the default location, an
            explicit path must exist.
        **overrides: Field values supplied by the caller, e.g. from CLI
            flags.

    Raises:
        ConfigNotFoundError: If *path* was given and does not exist.
        InvalidConfigError: If the file is not a JSON object or a value
            fails validation.
        MissingFieldError: If validation reports a required field missing.
    """
    data: dict[str, Any] = {}
    if path is not None:
        if not path.is_file():
            raise ConfigNotFoundError(str(path))
        data.update(_read_settings_file(path))
    else:
        default_path = default_config_path()
        if default_path.is_file():
            data.update(_read_settings_file(default_path))

    data.update(_env_overrides())
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        for err in exc.errors():
            if err.get("type") == "missing":
                raise MissingFieldError(".".join(str(p) for p in err["loc"])) from exc
        raise InvalidConfigError(str(exc)) from exc
