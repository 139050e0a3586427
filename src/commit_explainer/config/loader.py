"""
Configuration loader for commit_explainer.

Settings for reaching the local LM Studio server are resolved in three
layers, later layers winning:

1. built-in defaults,
2. an optional JSON file ``config.json`` in ``~/.explain_commit/``,
3. environment variables (``LMSTUDIO_MODEL``, ``LMSTUDIO_BASE_URL``,
   ``LMSTUDIO_API_KEY``, ``EXPLAIN_TEMPERATURE``, ``EXPLAIN_AUTO_START``).

An environment value that cannot be parsed is ignored and the previous
layer's value is kept. A configuration file that exists but is
malformed raises :class:`ConfigError`.

The default model and API key are placeholders understood by LM Studio,
not secrets.
"""

from __future__ import annotations

import json
import logging
import math
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings or logging errors in
# environments where the root logger may be closed.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_BASE_URL = "http://localhost:1234/v1"
DEFAULT_MODEL = "qwen/qwen3-4b-2507"
DEFAULT_API_KEY = "lm-studio"
DEFAULT_TEMPERATURE = 0.2
DEFAULT_REQUEST_TIMEOUT = 60.0

ENV_MODEL = "LMSTUDIO_MODEL"
ENV_BASE_URL = "LMSTUDIO_BASE_URL"
ENV_API_KEY = "LMSTUDIO_API_KEY"
ENV_TEMPERATURE = "EXPLAIN_TEMPERATURE"
ENV_AUTO_START = "EXPLAIN_AUTO_START"

CONFIG_FILE_NAME = "config.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""

    pass


@dataclass(frozen=True)
class ExplainConfig:
    """Settings for talking to the LLM server.

    Parameters
    ----------
    base_url : str
        Base URL of the OpenAI-compatible API, e.g.
        ``"http://localhost:1234/v1"``.
    model : str
        Identifier of the model used for chat completions.
    api_key : str
        Sent as a bearer token.
    temperature : float
        Sampling temperature.
    request_timeout : float
        Timeout in seconds for the chat completion request.
    auto_start : bool
        Whether to try launching the server when it is not reachable.
    """

    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    api_key: str = DEFAULT_API_KEY
    temperature: float = DEFAULT_TEMPERATURE
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    auto_start: bool = True


def _get_config_directory() -> Path:
    """Return the per-user configuration directory (``~/.explain_commit``)."""
    return Path.home() / ".explain_commit"


def _parse_float(value: str) -> Optional[float]:
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _parse_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


def _load_file(config_path: Path) -> Dict[str, Any]:
    """Read and validate the JSON configuration file.

    Returns an empty dictionary when the file does not exist.
    """
    if not config_path.exists():
        logger.debug("No configuration file at %s; using defaults", config_path)
        return {}

    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, ValueError) as exc:
        # ValueError covers both JSONDecodeError and UnicodeDecodeError
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")

    for key in ("base_url", "model", "api_key"):
        if key in data and not isinstance(data[key], str):
            raise ConfigError(f"'{key}' must be a string")
    for key in ("temperature", "request_timeout"):
        if key not in data:
            continue
        if isinstance(data[key], bool) or not isinstance(data[key], (int, float)):
            raise ConfigError(f"'{key}' must be a number")
        # json accepts NaN and Infinity literals
        if not math.isfinite(data[key]):
            raise ConfigError(f"'{key}' must be a finite number")
    if "request_timeout" in data and data["request_timeout"] <= 0:
        raise ConfigError("'request_timeout' must be greater than zero")
    if "auto_start" in data and not isinstance(data["auto_start"], bool):
        raise ConfigError("'auto_start' must be a boolean")

    logger.debug("Loaded configuration file: %s", config_path)
    return data


def _apply_environment(config: ExplainConfig, environ: Mapping[str, str]) -> ExplainConfig:
    overrides: Dict[str, Any] = {}

    for env_name, field in ((ENV_MODEL, "model"), (ENV_BASE_URL, "base_url"), (ENV_API_KEY, "api_key")):
        value = environ.get(env_name, "")
        if value.strip():
            overrides[field] = value.strip()

    raw_temperature = environ.get(ENV_TEMPERATURE, "")
    if raw_temperature:
        temperature = _parse_float(raw_temperature)
        if temperature is None:
            logger.debug(
                "Ignoring unparseable %s=%r; using %s", ENV_TEMPERATURE, raw_temperature, config.temperature
            )
        else:
            overrides["temperature"] = temperature

    raw_auto_start = environ.get(ENV_AUTO_START, "")
    if raw_auto_start:
        auto_start = _parse_bool(raw_auto_start)
        if auto_start is None:
            logger.debug("Ignoring unrecognised %s=%r", ENV_AUTO_START, raw_auto_start)
        else:
            overrides["auto_start"] = auto_start

    return replace(config, **overrides)


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> ExplainConfig:
    """Resolve the effective configuration.

    Parameters
    ----------
    environ : Mapping[str, str], optional
        Environment to read overrides from. Defaults to ``os.environ``.
    config_path : Path, optional
        Location of the JSON configuration file. Defaults to
        ``~/.explain_commit/config.json``.

    Returns
    -------
    ExplainConfig
        The merged configuration.

    Raises
    ------
    ConfigError
        If the configuration file exists but is malformed.
    """
    if environ is None:
        environ = os.environ
    if config_path is None:
        config_path = _get_config_directory() / CONFIG_FILE_NAME

    data = _load_file(config_path)
    file_fields = {
        key: data[key]
        for key in ("base_url", "model", "api_key", "temperature", "request_timeout", "auto_start")
        if key in data
    }
    for key in ("temperature", "request_timeout"):
        if key in file_fields:
            file_fields[key] = float(file_fields[key])
    config = ExplainConfig(**file_fields)

    config = _apply_environment(config, environ)
    logger.debug("Effective configuration: %s", replace(config, api_key="***"))
    return config
