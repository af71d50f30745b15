"""Shared utilities: configuration, logging and sparse vector handling.

Usage:
    >>> from vectorsearch.utils import LoggerFactory, load_config
    >>> from vectorsearch.utils.sparse import normalize_sparse
"""

from vectorsearch.utils.config import load_config, resolve_env_vars, setup_logger
from vectorsearch.utils.logging import BACKEND_LOGGER_NAMES, BackendLogBridge, LoggerFactory
from vectorsearch.utils.sparse import (
    normalize_sparse,
    sparse_components,
    sparse_problem,
    to_qdrant_sparse,
)


__all__ = [
    # Config
    "load_config",
    "resolve_env_vars",
    "setup_logger",
    # Logging
    "BACKEND_LOGGER_NAMES",
    "BackendLogBridge",
    "LoggerFactory",
    # Sparse
    "normalize_sparse",
    "sparse_components",
    "sparse_problem",
    "to_qdrant_sparse",
]
