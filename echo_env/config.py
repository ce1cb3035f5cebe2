"""Configuration helpers for echo-env."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import json
import os

from dotenv import dotenv_values

from .logging import get_logger

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = PACKAGE_DIR / "default_config.yml"
WORKSPACE_CONFIG_NAME = "echo_env.yml"
EDITOR_SETTINGS_PATH = Path(".vscode") / "settings.json"
ENV_OVERRIDES_NAME = ".echo-env"
ENV_PREFIX = "ECHO_ENV_"
KEY_TOKEN = "${key}"
LOG_FORMATS = {"console", "json"}

# echoEnv.* keys written by the editor add-on, mapped onto our config paths.
EDITOR_KEYS = {
    "echoEnv.sourceFiles": "sync.source_files",
    "echoEnv.destinationFiles": "sync.destination_files",
    "echoEnv.placeholderFormat": "sync.placeholder_format",
    "echoEnv.showNotifications": "notifications.show",
}

ENV_KEYS = {
    "SOURCE_FILES": "sync.source_files",
    "DESTINATION_FILES": "sync.destination_files",
    "PLACEHOLDER_FORMAT": "sync.placeholder_format",
    "STRICT": "sync.strict",
    "SHOW_NOTIFICATIONS": "notifications.show",
    "WATCH_CONFIG": "watch.config",
    "LOG_LEVEL": "logging.level",
    "LOG_FORMAT": "logging.format",
}

logger = get_logger(__name__)


def _convert_scalar(value: str) -> Any:
    value = value.strip()
    if value in {"", "~", "null", "Null", "NULL"}:
        return None
    if value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    if value.startswith("'") and value.endswith("'"):
        return value[1:-1]
    if value.startswith("[") and value.endswith("]"):
        inner = value[1:-1].strip()
        if not inner:
            return []
        return [_convert_scalar(item) for item in inner.split(",")]
    lowered = value.lower()
    if lowered in {"true", "yes", "y", "on"}:
        return True
    if lowered in {"false", "no", "n", "off"}:
        return False
    try:
        return int(value)
    except ValueError:
        return value


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Parse the small YAML subset used by echo_env.yml files."""
    if not path.exists():
        return {}

    root: Dict[str, Any] = {}
    # (indent, container, parent, key in parent)
    stack: list[tuple[int, Any, Optional[Dict[str, Any]], Optional[str]]] = [
        (0, root, None, None)
    ]
    with path.open(encoding="utf-8") as fh:
        for raw_line in fh:
            line = raw_line.rstrip()
            stripped = line.lstrip()
            if not stripped or stripped.startswith("#"):
                continue

            indent = len(line) - len(stripped)
            if indent % 2 != 0:
                raise ValueError(f"Invalid indentation in {path}: '{line}'")

            while len(stack) > 1 and indent < stack[-1][0]:
                stack.pop()
            level, current, parent, parent_key = stack[-1]

            if stripped == "-" or stripped.startswith("- "):
                if isinstance(current, dict):
                    if current or parent is None or parent_key is None:
                        raise ValueError(f"Unexpected list item in {path}: '{line}'")
                    current = []
                    parent[parent_key] = current
                    stack[-1] = (level, current, parent, parent_key)
                current.append(_convert_scalar(stripped[1:]))
                continue

            if isinstance(current, list):
                raise ValueError(f"Expected list item in {path}: '{line}'")

            key, sep, value = stripped.partition(":")
            key = key.strip()
            if not sep:
                raise ValueError(f"Missing ':' in config line: '{line}'")

            value = value.strip()
            if not value:
                new_section: Dict[str, Any] = {}
                current[key] = new_section
                stack.append((indent + 2, new_section, current, key))
            else:
                current[key] = _convert_scalar(value)

    return root


def _load_editor_settings(path: Path) -> Dict[str, Any]:
    """Pick the echoEnv.* keys out of an editor settings.json file."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        # settings.json is frequently JSON-with-comments; we only read strict JSON.
        logger.warning("Ignoring unreadable editor settings", path=str(path), error=str(exc))
        return {}
    if not isinstance(data, dict):
        return {}

    overrides: Dict[str, Any] = {}
    for editor_key, config_path in EDITOR_KEYS.items():
        if editor_key in data and data[editor_key] is not None:
            _config_set(overrides, config_path, data[editor_key])
    return overrides


def _load_env_overrides(path: Path, environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Optional[str]] = {}
    if path.exists():
        values.update(dotenv_values(path, interpolate=False))
    values.update(environ)

    overrides: Dict[str, Any] = {}
    for suffix, config_path in ENV_KEYS.items():
        raw = values.get(ENV_PREFIX + suffix)
        if raw is None:
            continue
        if config_path.endswith("_files"):
            _config_set(overrides, config_path, _split_list(raw))
        else:
            _config_set(overrides, config_path, raw)
    return overrides


def _split_list(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge_config(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _str_to_bool(value: Optional[str], *, default: bool = False) -> bool:
    if value is None:
        return default
    value = value.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _config_get(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    current: Any = config
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def _config_set(config: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = config
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _config_bool(config: Dict[str, Any], path: str, default: bool) -> bool:
    value = _config_get(config, path)
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _str_to_bool(value, default=default)
    return default


def _config_list(config: Dict[str, Any], path: str) -> List[str]:
    value = _config_get(config, path)
    if value is None:
        return []
    if isinstance(value, str):
        return _split_list(value)
    if isinstance(value, list):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    raise ValueError(f"Expected a list for {path}, got {value!r}")


def _config_str(config: Dict[str, Any], path: str, default: Optional[str] = None) -> str:
    value = _config_get(config, path)
    if value is None:
        value = default
    if value is None:
        raise ValueError(f"Missing configuration for {path}")
    return str(value)


@dataclass
class Settings:
    """Effective settings for one workspace."""

    workspace_root: Path
    source_files: List[str] = field(default_factory=list)
    destination_files: List[str] = field(default_factory=list)
    placeholder_format: str = KEY_TOKEN
    show_notifications: bool = True
    strict: bool = False
    watch_config: bool = True
    log_level: str = "INFO"
    log_format: str = "console"

    def validate(self) -> "Settings":
        if not self.source_files:
            raise ValueError("At least one source file must be configured.")
        if not self.destination_files:
            raise ValueError("At least one destination file must be configured.")
        if KEY_TOKEN not in self.placeholder_format:
            raise ValueError(
                f"Placeholder format {self.placeholder_format!r} must contain {KEY_TOKEN}."
            )
        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Unknown log format {self.log_format!r} (expected one of {', '.join(sorted(LOG_FORMATS))})."
            )
        return self

    def config_paths(self) -> List[Path]:
        """Workspace files whose edits change these settings."""
        return [
            self.workspace_root / WORKSPACE_CONFIG_NAME,
            self.workspace_root / EDITOR_SETTINGS_PATH,
            self.workspace_root / ENV_OVERRIDES_NAME,
        ]

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy of the settings with specified attributes replaced."""
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        """Expose a dict representation for debugging/logging."""
        return {
            "workspace_root": str(self.workspace_root),
            "source_files": list(self.source_files),
            "destination_files": list(self.destination_files),
            "placeholder_format": self.placeholder_format,
            "show_notifications": self.show_notifications,
            "strict": self.strict,
            "watch_config": self.watch_config,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


def load_config(
    workspace_root: Path, *, environ: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """Merge every configuration layer for a workspace into one dict."""
    environ = os.environ if environ is None else environ
    config: Dict[str, Any] = {}
    config = _merge_config(config, _load_yaml(DEFAULT_CONFIG_PATH))
    config = _merge_config(config, _load_yaml(workspace_root / WORKSPACE_CONFIG_NAME))
    config = _merge_config(config, _load_editor_settings(workspace_root / EDITOR_SETTINGS_PATH))
    config = _merge_config(
        config, _load_env_overrides(workspace_root / ENV_OVERRIDES_NAME, environ)
    )
    return deepcopy(config)


def load_settings(
    workspace_root: Path, *, environ: Optional[Mapping[str, str]] = None
) -> Settings:
    """Build validated settings for the workspace rooted at ``workspace_root``."""
    root = Path(workspace_root).expanduser().resolve()
    config = load_config(root, environ=environ)
    settings = Settings(
        workspace_root=root,
        source_files=_config_list(config, "sync.source_files"),
        destination_files=_config_list(config, "sync.destination_files"),
        placeholder_format=_config_str(config, "sync.placeholder_format", KEY_TOKEN),
        show_notifications=_config_bool(config, "notifications.show", True),
        strict=_config_bool(config, "sync.strict", False),
        watch_config=_config_bool(config, "watch.config", True),
        log_level=_config_str(config, "logging.level", "INFO").upper(),
        log_format=_config_str(config, "logging.format", "console").lower(),
    )
    return settings.validate()
