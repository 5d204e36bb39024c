"""
Configuration for token analysis.

The configuration is built once by the caller (usually TokenscopeService) and
passed by reference into every component. It can be loaded from environment
variables, a JSON file, or passed directly.
"""

import json
import logging
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_ENTRY_LIMIT = 3

# camelCase keys accepted in tokenscope-config.json
_FILE_KEYS = {
    "entryLimit": "entry_limit",
    "enableContextBreakdown": "enable_context_breakdown",
    "enableToolSchemaEstimation": "enable_tool_schema_estimation",
    "enableCacheEfficiency": "enable_cache_efficiency",
    "enableSubagentAnalysis": "enable_subagent_analysis",
    "enableSkillAnalysis": "enable_skill_analysis",
    "maxSubagentSessions": "max_subagent_sessions",
    "collaboratorTimeout": "collaborator_timeout",
    "tokenizerLoadTimeout": "tokenizer_load_timeout",
    "pricingPath": "pricing_path",
}


def _to_bool(name: str, value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _to_int(name: str, value: Any, default: int) -> int:
    if value is None:
        return default
    if not isinstance(value, bool):
        try:
            return int(value)
        except (TypeError, ValueError):
            pass
    logger.warning(f"Ignoring invalid integer for {name}: {value!r}")
    return default


def _to_float(name: str, value: Any, default: Optional[float]) -> Optional[float]:
    """None, "", "none" and "off" disable the limit"""
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none", "off"):
        return None
    if not isinstance(value, bool):
        try:
            return float(value)
        except (TypeError, ValueError):
            pass
    logger.warning(f"Ignoring invalid number for {name}: {value!r}")
    return default


def _to_path(name: str, value: Any, default: Optional[str]) -> Optional[str]:
    return str(value) if value else None


_COERCERS: Dict[str, Callable[[str, Any, Any], Any]] = {
    "entry_limit": _to_int,
    "enable_context_breakdown": _to_bool,
    "enable_tool_schema_estimation": _to_bool,
    "enable_cache_efficiency": _to_bool,
    "enable_subagent_analysis": _to_bool,
    "enable_skill_analysis": _to_bool,
    "max_subagent_sessions": _to_int,
    "collaborator_timeout": _to_float,
    "tokenizer_load_timeout": _to_float,
    "pricing_path": _to_path,
}


def _env_bool(name: str, default: bool) -> bool:
    return _to_bool(name, os.environ.get(name), default)


def _env_int(name: str, default: int) -> int:
    return _to_int(name, os.environ.get(name), default)


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    value = os.environ.get(name)
    if value is None:
        return default
    return _to_float(name, value, default)


@dataclass(frozen=True)
class TokenscopeConfig:
    """
    Feature flags and limits for a token analysis run.

    Frozen: components only ever read it.
    """
    entry_limit: int = DEFAULT_ENTRY_LIMIT  # Top-N entries shown per category
    enable_context_breakdown: bool = True
    enable_tool_schema_estimation: bool = True
    enable_cache_efficiency: bool = True
    enable_subagent_analysis: bool = True
    enable_skill_analysis: bool = True
    max_subagent_sessions: int = 500  # Work cap for the descendant walk
    collaborator_timeout: Optional[float] = 30.0  # Seconds, per sub-analysis
    tokenizer_load_timeout: Optional[float] = 60.0  # Seconds, per encoder load
    pricing_path: Optional[str] = None  # None = packaged models.json

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "TokenscopeConfig":
        """Load configuration from environment variables (and an optional .env file)."""
        # With no path, python-dotenv searches upward for a .env file
        load_dotenv(env_file)

        defaults = cls()
        return cls(
            entry_limit=_env_int("TOKENSCOPE_ENTRY_LIMIT", defaults.entry_limit),
            enable_context_breakdown=_env_bool(
                "TOKENSCOPE_ENABLE_CONTEXT_BREAKDOWN", defaults.enable_context_breakdown
            ),
            enable_tool_schema_estimation=_env_bool(
                "TOKENSCOPE_ENABLE_TOOL_SCHEMA_ESTIMATION", defaults.enable_tool_schema_estimation
            ),
            enable_cache_efficiency=_env_bool(
                "TOKENSCOPE_ENABLE_CACHE_EFFICIENCY", defaults.enable_cache_efficiency
            ),
            enable_subagent_analysis=_env_bool(
                "TOKENSCOPE_ENABLE_SUBAGENT_ANALYSIS", defaults.enable_subagent_analysis
            ),
            enable_skill_analysis=_env_bool(
                "TOKENSCOPE_ENABLE_SKILL_ANALYSIS", defaults.enable_skill_analysis
            ),
            max_subagent_sessions=_env_int(
                "TOKENSCOPE_MAX_SUBAGENT_SESSIONS", defaults.max_subagent_sessions
            ),
            collaborator_timeout=_env_float(
                "TOKENSCOPE_COLLABORATOR_TIMEOUT", defaults.collaborator_timeout
            ),
            tokenizer_load_timeout=_env_float(
                "TOKENSCOPE_TOKENIZER_LOAD_TIMEOUT", defaults.tokenizer_load_timeout
            ),
            pricing_path=os.environ.get("TOKENSCOPE_PRICING_PATH") or None,
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TokenscopeConfig":
        """
        Create from a config dictionary.

        Accepts the camelCase keys of tokenscope-config.json as well as the
        snake_case field names. Unknown keys are ignored; missing keys keep
        their defaults. Values are coerced like environment variables, so
        "5" and "false" are read as 5 and False.
        """
        if not data:
            return cls()

        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _FILE_KEYS.get(key, key)
            if name in _COERCERS:
                kwargs[name] = _COERCERS[name](key, value, getattr(defaults, name))
            else:
                logger.debug(f"Ignoring unknown config key: {key}")
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TokenscopeConfig":
        """Load from a JSON file; a missing or invalid file yields the defaults."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug(f"No config file at {path}, using defaults")
            return cls()
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read config file {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Config file {path} does not contain an object, using defaults")
            return cls()
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary (tokenscope-config.json shape)."""
        reverse = {v: k for k, v in _FILE_KEYS.items()}
        return {reverse[name]: value for name, value in asdict(self).items()}
