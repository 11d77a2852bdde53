"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for oauthview:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.oauthview/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~oauthview.models.GlobalConfig`
  JSON file storing defaults (target prefix, trust store, output format).
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, project-local config, and global config into the
  final effective configuration.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from oauthview.exceptions import ConfigError
from oauthview.models import GlobalConfig

_APP_NAME = "oauthview"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "oauthview.json"
_TRUST_STORE_FILENAME = "known_servers.json"

ENV_TARGET_PREFIX = "OAUTHVIEW_TARGET_PREFIX"
ENV_TRUST_STORE = "OAUTHVIEW_TRUST_STORE"


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

    On Linux/BSD: ``$XDG_CONFIG_HOME/oauthview/`` (default ``~/.config/oauthview/``).
    On macOS/Windows: ``~/.oauthview/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (trust store, crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/oauthview/`` (default ``~/.local/share/oauthview/``).
    On macOS/Windows: ``~/.oauthview/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.

    Args:
        path: Destination file.
        data: Text content to write.
        mode: Optional permission bits applied to the temp file before any
            content is written (e.g. ``0o600`` for the trust store).
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


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~oauthview.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./oauthview.json``.

    Project-local config sits between global config and environment variables
    in the precedence chain. It typically pins the redirect URI prefix of the
    application checked out in the current directory.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Project config at {path} must be a JSON object")
    return data


# --- Precedence resolution ---


def resolve_config(
    cli_store_path: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_store_path``; ``replay --target-prefix`` is
           applied by the command itself, above the event log's prefix)
        2. Environment variables (``OAUTHVIEW_TARGET_PREFIX``,
           ``OAUTHVIEW_TRUST_STORE``)
        3. Project config (``./oauthview.json``, keys ``target_prefix`` and
           ``trust_store``)
        4. User config (``~/.config/oauthview/config.json``)
        5. Defaults

    Returns:
        The effective :class:`~oauthview.models.GlobalConfig`. It is a
        fresh object; saving it would persist the overrides.
    """
    # 5 + 4. Load base global config (fills in defaults automatically)
    config = load_global_config()

    # 3. Project-local config
    project = load_project_config()
    if project is not None:
        if project.get("target_prefix"):
            config.monitor.target_prefix = str(project["target_prefix"])
        if project.get("trust_store"):
            config.trust.store_path = str(project["trust_store"])

    # 2. Environment variables
    env_prefix = os.environ.get(ENV_TARGET_PREFIX)
    if env_prefix:
        config.monitor.target_prefix = env_prefix
    env_store = os.environ.get(ENV_TRUST_STORE)
    if env_store:
        config.trust.store_path = env_store

    # 1. CLI flags (highest precedence)
    if cli_store_path is not None:
        config.trust.store_path = cli_store_path

    return config


def get_trust_store_path(config: Optional[GlobalConfig] = None) -> Path:
    """Return the known-servers store file for *config*.

    Uses ``config.trust.store_path`` when set (``~`` is expanded), otherwise
    ``<data_dir>/known_servers.json``.
    """
    if config is not None and config.trust.store_path:
        return Path(config.trust.store_path).expanduser()
    return get_data_dir() / _TRUST_STORE_FILENAME
