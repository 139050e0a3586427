"""
Configuration loading for commit_explainer.

Resolves the LM Studio connection settings from defaults, an optional
user configuration file, and environment variables. See
:mod:`commit_explainer.config.loader` for implementation details.
"""

from .loader import ConfigError, ExplainConfig, load_config  # noqa: F401
