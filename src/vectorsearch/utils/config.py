"""Configuration utilities for vectorsearch stores.

This module loads store configuration from YAML files or dictionaries,
resolving environment variables so that credentials and deployment-specific
endpoints never have to be written into the file itself.

Environment Variable Syntax:
    - ${VAR}: Substitute with environment variable VAR, empty string if unset
    - ${VAR:-default}: Substitute with VAR if set, otherwise use 'default'

Typical configuration::

    qdrant:
      url: ${QDRANT_URL:-http://localhost:6333}
      api_key: ${QDRANT_API_KEY:-}
      timeout: 60
      prefer_grpc: false
    search:
      max_batch_concurrency: 50
    logging:
      name: vectorsearch
      level: INFO

Usage:
    >>> from vectorsearch.utils.config import load_config
    >>> config = load_config("store.yaml")
"""

import logging
import os
import re
from typing import Any

import yaml

from vectorsearch.utils.logging import LoggerFactory


def resolve_env_vars(value: Any) -> Any:
    """Resolve environment variables in configuration values.

    Supports both simple ${VAR} and ${VAR:-default} syntax, including
    multiple substitutions within a single string (e.g., "http://${HOST}:${PORT}").

    Args:
        value: The value to resolve, can be a string, dict, or list.

    Returns:
        The resolved value with environment variables expanded.
    """
    if isinstance(value, str):
        pattern = r"\$\{([^}]+)\}"

        def replacer(match: re.Match[str]) -> str:
            expr = match.group(1)
            if ":-" in expr:
                var, default = expr.split(":-", 1)
                return os.environ.get(var, default)
            return os.environ.get(expr, "")

        return re.sub(pattern, replacer, value)
    if isinstance(value, dict):
        return {k: resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_env_vars(item) for item in value]
    return value


def load_config(config_path: str) -> dict[str, Any]:
    """Load configuration from a YAML file with environment variable resolution.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Configuration dictionary with environment variables resolved. An empty
        file yields an empty dictionary.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        yaml.YAMLError: If the YAML file is malformed.
    """
    with open(config_path) as f:
        config = yaml.safe_load(f)
    return resolve_env_vars(config or {})


def setup_logger(config: dict[str, Any]) -> logging.Logger:
    """Set up a logger based on the ``logging`` section of a configuration.

    Args:
        config: Configuration dictionary containing logging settings.

    Returns:
        Configured logger instance.
    """
    logging_config = config.get("logging", {})
    logger_name = logging_config.get("name", "vectorsearch")
    log_level_str = logging_config.get("level", "INFO")
    log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)

    factory = LoggerFactory(logger_name, log_level=log_level)
    logger = factory.get_logger()
    logger.setLevel(log_level)
    return logger
