"""Persistent JSON config helpers.

Stores the ssh host, device data directory, cache TTL and the export/save
destinations. All access is defensive: malformed or missing config falls back
to defaults.
"""

from __future__ import annotations

import json
import shlex
import tempfile
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_cache_dir, user_config_dir, user_documents_dir

from .cache import DEFAULT_CACHE_TTL_SECONDS
from .export import DEFAULT_RCU_COMMAND
from .metadata_model import DEFAULT_REMOTE_DIR

APP_NAME = "rmexport"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_SSH_HOST = "remarkable-usb"


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings (config file values merged with defaults)."""

    ssh_host: str
    remote_dir: str
    cache_ttl_seconds: float
    cache_dir: Path
    export_dir: Path
    save_dir: Path
    viewer_command: str | None
    rcu_command: str


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON, ignoring write errors.

    The browser itself never writes config; this seeds or rewrites the file
    for setup scripts and tests.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass


def _load_string(data: dict[str, object], key: str) -> str | None:
    """Return a stripped non-empty string value, else ``None``."""
    value = data.get(key)
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _load_path(data: dict[str, object], key: str, default: Path) -> Path:
    value = _load_string(data, key)
    return Path(value).expanduser() if value is not None else default


def _load_positive_seconds(data: dict[str, object], key: str, default: float) -> float:
    """Read a positive number; booleans and non-numbers fall back to ``default``."""
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value <= 0:
        return default
    return float(value)


def load_settings() -> Settings:
    """Load every setting at once from a single config read."""
    data = load_config()
    return Settings(
        ssh_host=_load_string(data, "ssh_host") or DEFAULT_SSH_HOST,
        remote_dir=_load_string(data, "remote_dir") or DEFAULT_REMOTE_DIR,
        cache_ttl_seconds=_load_positive_seconds(data, "cache_ttl_seconds", DEFAULT_CACHE_TTL_SECONDS),
        cache_dir=_load_path(data, "cache_dir", Path(user_cache_dir(APP_NAME, appauthor=False))),
        export_dir=_load_path(data, "export_dir", Path(tempfile.gettempdir())),
        save_dir=_load_path(data, "save_dir", Path(user_documents_dir())),
        viewer_command=_load_string(data, "viewer_command"),
        rcu_command=_load_string(data, "rcu_command") or shlex.join(DEFAULT_RCU_COMMAND),
    )
