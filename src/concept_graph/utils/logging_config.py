"""
Logging configuration for concept-graph.

Every module obtains its logger through ``get_logger(__name__)`` so that all
records share the ``concept_graph`` hierarchy and can be tuned in one place.
"""

import logging
import os
import sys
from typing import Optional, Union

PACKAGE_LOGGER_NAME = "concept_graph"
LOG_LEVEL_ENV_VAR = "CONCEPT_GRAPH_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Optional[Union[str, int]]) -> int:
    """Turn a level name, number or ``None`` (env / INFO) into a logging level."""
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV_VAR, "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return resolved


def setup_logging(
    level: Optional[Union[str, int]] = None,
    log_format: str = DEFAULT_FORMAT,
    stream=None,
) -> logging.Logger:
    """
    Configure the package logger with a single stream handler.

    Calling this more than once replaces the previous handler instead of
    stacking duplicates.

    Args:
        level: Level name or number. Defaults to ``CONCEPT_GRAPH_LOG_LEVEL``
            from the environment, then ``INFO``.
        log_format: ``logging.Formatter`` format string.
        stream: Output stream (default: ``sys.stderr``).

    Returns:
        The configured package logger.

    Raises:
        ValueError: If *level* is not a known logging level.
    """
    root = logging.getLogger(PACKAGE_LOGGER_NAME)
    root.setLevel(_resolve_level(level))

    for handler in list(root.handlers):
        if getattr(handler, "_concept_graph_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(log_format, datefmt=DEFAULT_DATE_FORMAT))
    handler._concept_graph_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger in the ``concept_graph`` namespace."""
    if name != PACKAGE_LOGGER_NAME and not name.startswith(PACKAGE_LOGGER_NAME + "."):
        name = f"{PACKAGE_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
