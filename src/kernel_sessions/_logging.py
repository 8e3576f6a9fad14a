"""
Logging configuration for applications embedding kernel-sessions.

Call `setup_logging()` before any other imports in your main entrypoint to ensure all loggers are configured correctly.

Environment Variables:
    - `PYTHONLOGLEVEL`: Root log level (default: INFO).
    - `KERNEL_SESSIONS_LOG_FORMAT`: Set to `json` to emit structured JSON log lines via python-json-logger.
"""

import logging
import os
import sys

from pythonjsonlogger import json as jsonlogger

LOG_FORMAT_ENV_VAR = "KERNEL_SESSIONS_LOG_FORMAT"
"""str: Name of the environment variable selecting the log output format ("text" or "json")."""

_TEXT_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def setup_logging() -> None:
    """
    Set up logging configuration for the application.

    Configures the root logger using the PYTHONLOGLEVEL environment variable to set the log level.
    When KERNEL_SESSIONS_LOG_FORMAT is `json`, records are written as JSON objects using
    `pythonjsonlogger.json.JsonFormatter` with ISO 8601 timestamps; otherwise a plain text format is used.
    Output always goes to stderr, and any previous root configuration is replaced.
    """
    level = os.getenv("PYTHONLOGLEVEL", "INFO")

    if os.getenv(LOG_FORMAT_ENV_VAR, "text").lower() == "json":
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                fmt=_JSON_FORMAT,
                datefmt="%Y-%m-%dT%H:%M:%S.%fZ",
            )
        )
        logging.basicConfig(level=level, handlers=[handler], force=True)
        return

    logging.basicConfig(
        level=level,
        format=_TEXT_FORMAT,
        stream=sys.stderr,
        force=True,  # Ensure we override any existing logging configuration
    )
