"""Configuration persistence — load, save, legacy migration."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml
from platformdirs import user_config_dir, user_data_dir

from scrbl.models import CONFIG_APP_NAME, DEFAULT_EDITOR, UserConfig

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration Persistence
# ============================================================================
#
# Validation contract — _dict_to_config() guarantees valid output for any input:
#
#   Field        Rule                                 Handler
#   ───────────  ───────────────────────────────────  ─────────────────
#   notes_dir    "~" expanded, default data dir       _finalize_config
#   server_url   trailing "/" stripped                _finalize_config
#   api_key      surrounding whitespace trimmed       _finalize_config
#   editor       non-empty, default "nvim"            _finalize_config
#   scalars      type-checked via _safe_get()         _dict_to_config
#
CONFIG_FILENAME = "config.json"
LEGACY_CONFIG_FILENAME = "config.yaml"
CONFIG_ENV_VAR = "SCRBL_CONFIG"
NOTES_DIRNAME = "notes"


def get_config_path() -> Path:
    """Get the path to the configuration file.

    ``$SCRBL_CONFIG`` wins when set. Otherwise platformdirs picks the
    per-user config directory:
    - Linux: ~/.config/scrbl/config.json
    - macOS: ~/Library/Application Support/scrbl/config.json
    - Windows: %APPDATA%/scrbl/config.json
    """
    override = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return Path(user_config_dir(CONFIG_APP_NAME)) / CONFIG_FILENAME


def default_notes_dir() -> Path:
    return Path(user_data_dir(CONFIG_APP_NAME)) / NOTES_DIRNAME


def _config_to_dict(config: UserConfig) -> dict[str, Any]:
    """Serialize UserConfig to a JSON-compatible dictionary."""
    return {
        "version": config.version,
        "notes_dir": config.notes_dir,
        "server_url": config.server_url,
        "api_key": config.api_key,
        "editor": config.editor,
        "theme_name": config.theme_name,
    }


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type):
        return default
    return value


def _finalize_config(config: UserConfig) -> UserConfig:
    """Apply defaults and normalization shared by every config source."""
    notes_dir = config.notes_dir.strip() or str(default_notes_dir())
    config.notes_dir = str(Path(notes_dir).expanduser())
    config.server_url = config.server_url.strip().rstrip("/")
    config.api_key = config.api_key.strip()
    config.editor = config.editor.strip() or DEFAULT_EDITOR
    return config


def _dict_to_config(data: dict[str, Any]) -> UserConfig:
    """Parse a config dictionary into a normalized UserConfig."""
    if not isinstance(data, dict):
        raise TypeError(f"config root must be an object, got {type(data).__name__}")
    defaults = UserConfig()
    config = UserConfig(
        notes_dir=_safe_get(data, "notes_dir", "", str),
        server_url=_safe_get(data, "server_url", "", str),
        api_key=_safe_get(data, "api_key", "", str),
        editor=_safe_get(data, "editor", defaults.editor, str),
        theme_name=_safe_get(data, "theme_name", defaults.theme_name, str),
        version=_safe_get(data, "version", defaults.version, int),
    )
    return _finalize_config(config)


def parse_legacy_config(text: str) -> dict[str, Any]:
    """Parse the old YAML config; a non-mapping document yields ``{}``.

    >>> parse_legacy_config("notes_dir: ~/notes\\n# comment\\nserver_url: 'http://x'\\n")
    {'notes_dir': '~/notes', 'server_url': 'http://x'}
    """
    data = yaml.safe_load(text)
    if not isinstance(data, dict):
        return {}
    return data


def _backup_corrupt_config(config_path: Path) -> None:
    backup_path = config_path.with_name(config_path.name + ".corrupt")
    try:
        os.replace(config_path, backup_path)
        logger.warning("Backed up corrupt config to %s", backup_path)
    except OSError as e:
        logger.warning("Could not back up corrupt config: %s", e)


def _load_legacy_config(config_path: Path) -> UserConfig | None:
    legacy_path = config_path.with_name(LEGACY_CONFIG_FILENAME)
    if not legacy_path.is_file():
        return None
    try:
        data = parse_legacy_config(legacy_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read legacy config %s: %s", legacy_path, e)
        return None
    logger.debug("Loaded legacy config from %s", legacy_path)
    return _dict_to_config(data)


def load_config() -> UserConfig:
    """Load configuration from disk.

    Returns default config if file doesn't exist or is corrupted.
    A corrupt file is moved aside and ``config_defaulted`` is set so the
    UI can tell the user.
    """
    config_path = get_config_path()

    if not config_path.exists():
        legacy = _load_legacy_config(config_path)
        return legacy if legacy is not None else _finalize_config(UserConfig())

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return _dict_to_config(data)
    except json.JSONDecodeError as e:
        logger.warning("Config file has invalid JSON, using defaults: %s", e)
    except (KeyError, TypeError) as e:
        logger.warning("Config file has invalid structure, using defaults: %s", e)
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return _finalize_config(UserConfig())

    _backup_corrupt_config(config_path)
    config = _finalize_config(UserConfig())
    config.config_defaulted = True
    return config


def save_config(config: UserConfig) -> bool:
    """Save configuration to disk atomically.

    Uses write-to-tempfile + os.replace() to prevent partial writes
    on crash/interrupt from corrupting the config file.

    Returns True on success, False on failure.
    """
    config_path = get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        json_str = json.dumps(_config_to_dict(config), indent=2, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(dir=config_path.parent, suffix=".tmp", prefix=".config-")
        closed = False
        try:
            os.write(fd, json_str.encode("utf-8"))
            os.close(fd)
            closed = True
            os.replace(tmp_path, config_path)
        except BaseException:
            if not closed:
                os.close(fd)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False


def mask_secret(value: str) -> str:
    """Mask all but the last four characters of a secret."""
    if not value:
        return ""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]


__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILENAME",
    "LEGACY_CONFIG_FILENAME",
    "default_notes_dir",
    "get_config_path",
    "load_config",
    "mask_secret",
    "parse_legacy_config",
    "save_config",
]
