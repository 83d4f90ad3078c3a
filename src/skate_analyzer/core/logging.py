"""Logging configuration and utilities.

Both videos of a comparison go through the same analysis code, so messages
about one video are tagged with its role (``[reference]`` or ``[user]``) via
``role_logger``.
"""

import logging
import sys
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are chatty at INFO during model loading
NOISY_LOGGERS = ("mediapipe", "absl")


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure logging for the ``skate_analyzer`` namespace.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to a log file; parent directories are created
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    package_logger = logging.getLogger("skate_analyzer")
    package_logger.setLevel(log_level)
    package_logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a logger namespaced under ``skate_analyzer``.

    Args:
        name: Module name (typically __name__)
    """
    if not name.startswith("skate_analyzer"):
        name = f"skate_analyzer.{name}"

    return logging.getLogger(name)


class RoleLoggerAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Prefixes every message with the video role it concerns."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        return f"[{extra['role']}] {msg}", kwargs


def role_logger(logger: logging.Logger, role: str) -> RoleLoggerAdapter:
    """Wrap ``logger`` so its messages name the video role.

    Args:
        logger: Module logger
        role: Role name, e.g. ``VideoRole.USER.value``
    """
    return RoleLoggerAdapter(logger, {"role": role})
