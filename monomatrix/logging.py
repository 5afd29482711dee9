"""Logging for monomatrix runs, locally and inside GitHub Actions.

Inside a workflow, records are rendered as workflow commands so the runner
folds debug output behind step debugging and annotates warnings and errors.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional

_LOGGER_NAME = "monomatrix"

_COMMANDS = {
    logging.DEBUG: "debug",
    logging.WARNING: "warning",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


def escape_command_data(message: str) -> str:
    """Escape a message for use as workflow command data."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def workflow_command(command: str, message: str) -> str:
    return f"::{command}::{escape_command_data(message)}"


def in_github_actions(environ: Mapping[str, str]) -> bool:
    return environ.get("GITHUB_ACTIONS", "").lower() == "true"


class WorkflowCommandFormatter(logging.Formatter):
    """Formats debug/warning/error records as ``::<command>::`` lines."""

    def __init__(self) -> None:
        super().__init__("%(message)s")

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        command = _COMMANDS.get(record.levelno)
        return workflow_command(command, message) if command else message


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the monomatrix hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *,
    verbose: bool = False,
    github_actions: bool = False,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the monomatrix logger.

    Under GitHub Actions debug records are always emitted: the runner hides
    ``::debug::`` lines unless step debugging is enabled for the job.
    """
    level = logging.DEBUG if verbose or github_actions else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    if github_actions:
        stream_handler.setFormatter(WorkflowCommandFormatter())
    else:
        stream_handler.setFormatter(logging.Formatter("[monomatrix] %(levelname)s %(message)s"))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = [
    "WorkflowCommandFormatter",
    "configure_logging",
    "escape_command_data",
    "get_logger",
    "in_github_actions",
    "workflow_command",
]
