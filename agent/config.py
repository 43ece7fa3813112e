"""Configuration loading for Lantern extensions.

Environment variables come from ``$LANTERN_HOME/.env`` (falling back to a
project ``.env``), loaded with python-dotenv. Structured settings come from
``$LANTERN_HOME/config.yaml``::

    subagents:
      max_turns: 20
      oracle:
        tier: complex
        effort: high
    models:
      extra:
        - openrouter:anthropic/claude-opus-4.6
    web_fetch:
      timeout_ms: 30000

A missing or unreadable config file is not an error; every accessor falls
back to its default.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from lantern_constants import get_lantern_home

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 20
DEFAULT_FETCH_TIMEOUT_MS = 30000
MAX_FETCH_TIMEOUT_MS = 300000

_VALID_TIERS = ("complex", "standard", "simple")
_VALID_EFFORTS = ("low", "medium", "high")


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""
    pass


def _load_dotenv_file(path: Path) -> None:
    try:
        load_dotenv(dotenv_path=path, encoding="utf-8")
    except UnicodeDecodeError:
        load_dotenv(dotenv_path=path, encoding="latin-1")


def load_env(project_dir: Optional[Path] = None) -> Optional[Path]:
    """Load ``$LANTERN_HOME/.env``, or the project ``.env`` as a dev fallback.

    Returns the path that was loaded, or None when neither file exists.
    Existing environment variables are never overridden.
    """
    user_env = get_lantern_home() / ".env"
    project_env = Path(project_dir or Path.cwd()) / ".env"
    for candidate in (user_env, project_env):
        if candidate.exists():
            _load_dotenv_file(candidate)
            logger.info("Loaded environment variables from %s", candidate)
            return candidate
    logger.debug("No .env file found. Using system environment variables.")
    return None


def get_config_path() -> Path:
    return get_lantern_home() / "config.yaml"


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read config.yaml. Missing, empty or malformed files yield ``{}``."""
    config_path = Path(path) if path else get_config_path()
    if not config_path.exists():
        return {}
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level must be a mapping", config_path)
        return {}
    return data


def _section(config: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = config.get(key)
    return value if isinstance(value, dict) else {}


def validate_config(config: Dict[str, Any]) -> None:
    """Check the typed fields of a loaded config.

    Raises:
        ConfigValidationError: On an unknown tier/effort, a non-positive
            ``subagents.max_turns``, an out-of-range ``web_fetch.timeout_ms``,
            or a ``models.extra`` entry that is not ``provider:id``.
    """
    errors: List[str] = []

    subagents = _section(config, "subagents")
    for name, settings in subagents.items():
        if name == "max_turns":
            if not isinstance(settings, int) or isinstance(settings, bool) or settings < 1:
                errors.append("subagents.max_turns must be a positive integer")
            continue
        if not isinstance(settings, dict):
            errors.append(f"subagents.{name} must be a mapping")
            continue
        tier = settings.get("tier")
        if tier is not None and tier not in _VALID_TIERS:
            errors.append(f"subagents.{name}.tier must be one of {', '.join(_VALID_TIERS)}")
        effort = settings.get("effort")
        if effort is not None and effort not in _VALID_EFFORTS:
            errors.append(f"subagents.{name}.effort must be one of {', '.join(_VALID_EFFORTS)}")

    timeout = _section(config, "web_fetch").get("timeout_ms")
    if timeout is not None and (
        not isinstance(timeout, int) or isinstance(timeout, bool) or not 1 <= timeout <= MAX_FETCH_TIMEOUT_MS
    ):
        errors.append(f"web_fetch.timeout_ms must be between 1 and {MAX_FETCH_TIMEOUT_MS}")

    extra = _section(config, "models").get("extra")
    if extra is not None:
        if not isinstance(extra, list):
            errors.append("models.extra must be a list")
        else:
            for entry in extra:
                if not isinstance(entry, str) or ":" not in entry or entry.startswith(":") or entry.endswith(":"):
                    errors.append(f"models.extra entry {entry!r} must look like provider:model-id")

    if errors:
        raise ConfigValidationError("; ".join(errors))


@dataclass(frozen=True)
class SubagentSettings:
    tier: Optional[str] = None
    effort: Optional[str] = None


def get_subagent_settings(name: str, config: Optional[Dict[str, Any]] = None) -> SubagentSettings:
    """Per-subagent tier/effort overrides. Invalid values are dropped with a warning."""
    if config is None:
        config = load_config()
    settings = _section(config, "subagents").get(name)
    if not isinstance(settings, dict):
        return SubagentSettings()

    tier = settings.get("tier")
    if tier is not None and tier not in _VALID_TIERS:
        logger.warning("Ignoring invalid tier %r for subagent %s", tier, name)
        tier = None
    effort = settings.get("effort")
    if effort is not None and effort not in _VALID_EFFORTS:
        logger.warning("Ignoring invalid effort %r for subagent %s", effort, name)
        effort = None
    return SubagentSettings(tier=tier, effort=effort)


def get_max_turns(config: Optional[Dict[str, Any]] = None) -> int:
    if config is None:
        config = load_config()
    value = _section(config, "subagents").get("max_turns")
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return DEFAULT_MAX_TURNS


def get_fetch_timeout_ms(config: Optional[Dict[str, Any]] = None) -> int:
    if config is None:
        config = load_config()
    value = _section(config, "web_fetch").get("timeout_ms")
    if isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= MAX_FETCH_TIMEOUT_MS:
        return value
    return DEFAULT_FETCH_TIMEOUT_MS


def get_extra_models(config: Optional[Dict[str, Any]] = None) -> List[str]:
    if config is None:
        config = load_config()
    extra = _section(config, "models").get("extra")
    if not isinstance(extra, list):
        return []
    return [e.strip() for e in extra if isinstance(e, str) and ":" in e.strip()]
