"""Configuration paths, atomic writes, and sync settings.

This module handles the on-disk layout for gcloud-switch:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.gcloud-switch/`` on macOS and Windows. ``GCLOUD_SWITCH_CONFIG_DIR``
  overrides the config directory entirely. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Well-known files** -- :func:`profiles_path`, :func:`adc_dir`,
  :func:`sync_config_path`, :func:`sync_repo_dir`.
* **Sync settings** -- :func:`load_sync_config` / :func:`save_sync_config`
  for the optional :class:`~gcloud_switch.models.SyncConfig`.
* **gcloud's own directory** -- :func:`gcloud_config_dir`, honouring
  ``CLOUDSDK_CONFIG``.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from gcloud_switch.exceptions import ConfigError
from gcloud_switch.models import SyncConfig

_APP_NAME = "gcloud-switch"
_CONFIG_DIR_ENV = "GCLOUD_SWITCH_CONFIG_DIR"
_PROFILES_FILENAME = "profiles.json"
_SYNC_CONFIG_FILENAME = "sync-config.json"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/FreeBSD)."""
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


def _ensure_dir(path: Path) -> Path:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Cannot create directory {path}: {exc}") from exc
    return path


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    Resolution order:

    1. ``$GCLOUD_SWITCH_CONFIG_DIR`` if set.
    2. On Linux/BSD: ``$XDG_CONFIG_HOME/gcloud-switch/`` (default
       ``~/.config/gcloud-switch/``).
    3. On macOS/Windows: ``~/.gcloud-switch/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).

    Raises:
        ConfigError: If the directory cannot be created.
    """
    override = os.environ.get(_CONFIG_DIR_ENV, "")
    if override:
        path = Path(override).expanduser()
    elif _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    return _ensure_dir(path)


def get_data_dir() -> Path:
    """Return the data directory (logs, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/gcloud-switch/`` (default
    ``~/.local/share/gcloud-switch/``). On macOS/Windows:
    ``~/.gcloud-switch/data/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    return _ensure_dir(path)


def get_logs_dir() -> Path:
    """Return ``<data_dir>/logs/``, creating it if necessary."""
    return _ensure_dir(get_data_dir() / "logs")


def profiles_path() -> Path:
    """Path to the persisted profile document."""
    return get_config_dir() / _PROFILES_FILENAME


def adc_dir() -> Path:
    """Directory holding one stored ADC credential file per profile."""
    return _ensure_dir(get_config_dir() / "adc")


def sync_config_path() -> Path:
    return get_config_dir() / _SYNC_CONFIG_FILENAME


def sync_repo_dir() -> Path:
    """Local clone of the synchronisation remote (may not exist yet)."""
    return get_config_dir() / "sync-repo"


def gcloud_config_dir() -> Path:
    """Return gcloud's configuration directory.

    gcloud uses ``~/.config/gcloud`` on every platform, ignoring XDG and
    macOS conventions, unless ``CLOUDSDK_CONFIG`` is set.
    """
    custom = os.environ.get("CLOUDSDK_CONFIG", "")
    if custom:
        return Path(custom).expanduser()
    return Path.home() / ".config" / "gcloud"


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.

    Args:
        path: Destination file.
        data: Text content.
        mode: Optional permission bits applied before any content is written
            (``0o600`` for credential files).
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
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
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


# --- Sync config ---


def load_sync_config(path: Optional[Path] = None) -> Optional[SyncConfig]:
    """Load the sync configuration.

    Args:
        path: Override for the config file location.

    Returns:
        The :class:`~gcloud_switch.models.SyncConfig`, or ``None`` if the
        file is missing, empty, or has no remote URL.

    Raises:
        ConfigError: If the file exists but is not valid JSON or fails
            validation.
    """
    path = path or sync_config_path()
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8").strip()
        if not text:
            return None
        config = SyncConfig.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid sync config at {path}: {exc}") from exc
    if not config.is_configured:
        return None
    return config


def save_sync_config(config: SyncConfig, path: Optional[Path] = None) -> None:
    """Persist the sync configuration atomically."""
    data = config.model_dump(mode="json")
    atomic_write(path or sync_config_path(), json.dumps(data, indent=2) + "\n")
