"""Logging for the orchestrator.

All module loggers live under the ``orchestrator`` logger, which carries two
handlers: a rich console handler on stderr (stdout is reserved for command
output such as ``parse-issue`` JSON) and a DEBUG file log. The file log goes
to ``~/.orchestrator/logs`` unless ``ORCHESTRATOR_LOG_DIR`` points elsewhere,
which lets CI jobs keep it in the workspace and upload it as an artifact.
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "orchestrator"
LOG_DIR_ENV = "ORCHESTRATOR_LOG_DIR"
LOG_FILE_NAME = "orchestrator.log"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def log_directory(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Directory of the debug log file."""
    env = os.environ if environ is None else environ
    override = env.get(LOG_DIR_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".orchestrator" / "logs"


def create_file_handler(log_dir: Path) -> Optional[logging.FileHandler]:
    """Build the DEBUG file handler, or None when ``log_dir`` is not writable."""
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
    except OSError:
        return None

    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def configure_root_logger() -> logging.Logger:
    """Attach the console and file handlers to the root orchestrator logger once."""
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if root_logger.handlers:
        return root_logger

    root_logger.setLevel(logging.INFO)
    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(logging.INFO)
    root_logger.addHandler(console_handler)

    file_handler = create_file_handler(log_directory())
    if file_handler is not None:
        root_logger.addHandler(file_handler)
    return root_logger


class OrchestratorLogger:
    """Thin wrapper over a child of the orchestrator logger."""

    def __init__(self, name: str = ROOT_LOGGER_NAME, level: str = "INFO"):
        configure_root_logger()
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))

    def debug(self, message: str, **kwargs) -> None:
        self.logger.debug(message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self.logger.info(message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self.logger.warning(message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self.logger.error(message, **kwargs)


def get_logger(name: Optional[str] = None, level: str = "INFO") -> OrchestratorLogger:
    """Get a logger, ``orchestrator`` or a module logger below it.

    Args:
        name: Logger name, usually ``__name__``
        level: Log level

    Returns:
        Logger instance
    """
    return OrchestratorLogger(name or ROOT_LOGGER_NAME, level)


def enable_verbose_logging() -> None:
    """Switch the orchestrator loggers and their console handler to DEBUG."""
    root_logger = configure_root_logger()
    root_logger.setLevel(logging.DEBUG)

    for name, child_logger in logging.Logger.manager.loggerDict.items():
        if isinstance(child_logger, logging.Logger) and name.startswith(ROOT_LOGGER_NAME):
            child_logger.setLevel(logging.DEBUG)

    for handler in root_logger.handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(logging.DEBUG)

    root_logger.debug("Verbose logging enabled")
