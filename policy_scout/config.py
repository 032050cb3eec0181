"""
Settings loader.

Settings come from an optional YAML file (``--config`` or the
POLICY_SCOUT_CONFIG environment variable) with a top-level ``settings:``
mapping. ``${VAR}`` references are expanded from the environment before
parsing, and a missing variable is an error rather than an empty string.
"""
import os
import re
import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

import yaml

from policy_scout.adapters.aws_orgs import SCP_FILTER
from policy_scout.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "POLICY_SCOUT_CONFIG"

POLICY_TYPES = {
    "SERVICE_CONTROL_POLICY",
    "RESOURCE_CONTROL_POLICY",
    "TAG_POLICY",
    "BACKUP_POLICY",
    "AISERVICES_OPT_OUT_POLICY",
}

_ENV_PATTERN = re.compile(r'\$\{([A-Z0-9_]+)\}')


@dataclass(frozen=True)
class ScoutSettings:
    profile: Optional[str] = None
    region: Optional[str] = None
    max_retries: int = 3
    workers: int = 1
    timeout_seconds: Optional[float] = None
    policy_filter: str = SCP_FILTER

    def merged(self, **overrides: Any) -> "ScoutSettings":
        """Returns a copy where every non-None override wins (CLI flags over file values)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return _validated(replace(self, **changes))


def expand_env_vars(raw_yaml: str) -> str:
    """Replaces ${VAR_NAME} with the value from os.environ."""
    def replace_var(match):
        var_name = match.group(1)
        val = os.environ.get(var_name)
        if not val:
            raise ConfigurationError(
                f"Config references ${{{var_name}}}, but the environment variable is missing."
            )
        return val

    return _ENV_PATTERN.sub(replace_var, raw_yaml)


def _validated(settings: ScoutSettings) -> ScoutSettings:
    if not isinstance(settings.max_retries, int) or isinstance(settings.max_retries, bool) \
            or settings.max_retries <= 0:
        raise ConfigurationError(f"max_retries must be a positive integer, got: {settings.max_retries!r}")
    if not isinstance(settings.workers, int) or isinstance(settings.workers, bool) or settings.workers <= 0:
        raise ConfigurationError(f"workers must be a positive integer, got: {settings.workers!r}")
    if settings.timeout_seconds is not None:
        if isinstance(settings.timeout_seconds, bool) or not isinstance(settings.timeout_seconds, (int, float)) \
                or settings.timeout_seconds <= 0:
            raise ConfigurationError(
                f"timeout_seconds must be a positive number, got: {settings.timeout_seconds!r}"
            )
    if settings.policy_filter not in POLICY_TYPES:
        raise ConfigurationError(
            f"policy_filter must be one of {', '.join(sorted(POLICY_TYPES))}, got: {settings.policy_filter!r}"
        )
    for name in ("profile", "region"):
        value = getattr(settings, name)
        if value is not None and not isinstance(value, str):
            raise ConfigurationError(f"{name} must be a string, got: {value!r}")
    return settings


def parse_settings(raw_content: str) -> ScoutSettings:
    try:
        data = yaml.safe_load(expand_env_vars(raw_content)) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Config file is not valid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("Config file must be a mapping with a 'settings' key")

    section: Dict[str, Any] = data.get("settings") or {}
    if not isinstance(section, dict):
        raise ConfigurationError("'settings' must be a mapping")

    known = {f.name for f in fields(ScoutSettings)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ConfigurationError(f"Unknown settings: {', '.join(unknown)}")

    return _validated(ScoutSettings(**section))


def load_settings(path: Optional[str] = None) -> ScoutSettings:
    """
    Loads settings from `path`, or from $POLICY_SCOUT_CONFIG when no path is given.
    With neither, the defaults are returned.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return ScoutSettings()

    try:
        with open(path, 'r') as file:
            raw_content = file.read()
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    logger.debug(f"Loaded settings from {path}")
    return parse_settings(raw_content)
