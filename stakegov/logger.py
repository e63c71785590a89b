"""
stakegov Logging System
=======================

A unified, thread-safe logging utility for stakegov. This module integrates
with the standard Python `logging` library and the `rich` library to provide
readable console output for ledger and governance events.

Usage:
    >>> from stakegov.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Engine started")
"""

import logging
import logging.handlers
import re
import sys
import threading
import time
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from .constants import (
    LOG_LEVEL,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_MAX_FILE_SIZE,
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_FILE_OUTPUT,
)


# Define log file location relative to the working directory
LOG_FILE_PATH = Path("logs") / "stakegov.log"


class LogManager:
    """
    Manages logging configuration via the Singleton pattern.

    Ensures the logging subsystem is initialized exactly once, attaching a
    Rich console handler and, when enabled, a rotating file handler.
    """

    _instance: Optional["LogManager"] = None
    _lock: threading.Lock = threading.Lock()


    def __new__(cls) -> "LogManager":
        """Creates or returns the existing singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance


    def __init__(self) -> None:
        if self._initialized:
            return
        self._configured = False
        self._initialized = True


    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """
        Validates a logging format string by formatting a dummy record.

        Args:
            log_format (str): The logging format string.

        Returns:
            str: The validated format string, or the default `LOG_FORMAT` if
            validation fails.
        """
        if not log_format:
            return str(LOG_FORMAT.default())
        try:
            formatter = logging.Formatter(fmt=str(log_format))
            record = logging.LogRecord(
                name="test", level=logging.INFO, pathname="", lineno=0,
                msg="test", args=(), exc_info=None,
            )
            formatter.format(record)
            return str(log_format)
        except (ValueError, KeyError, TypeError) as e:
            print(
                f"{time.strftime(str(LOG_DATE_FORMAT.default()))} - stakegov.logger - "
                f"Validation Error: {e}. Using default.",
                file=sys.stderr,
            )
            return str(LOG_FORMAT.default())


    @staticmethod
    def validate_date_format(date_format: str) -> str:
        """
        Validates a date format string against strftime directives.

        Returns the default `LOG_DATE_FORMAT` when the string holds no
        directive at all.
        """
        if not date_format or not re.search(r"%[A-Za-z]", str(date_format)):
            return str(LOG_DATE_FORMAT.default())
        return str(date_format)


    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        """
        Configures the root logger with console and file handlers.

        Args:
            log_level (Optional[str]): Logging level (DEBUG, INFO, etc.). Defaults to env var.
            log_file (Optional[Path]): Path to log file. Defaults to `logs/stakegov.log`.
            console_output (bool): Enable console logging. Defaults to True.
            file_output (Optional[bool]): Enable rotating file logging. Defaults to env var.
        """
        with self._lock:
            if self._configured:
                return

            level_str = log_level or LOG_LEVEL
            numeric_level = getattr(logging, str(level_str).upper(), logging.INFO)

            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)
            root_logger.handlers.clear()

            log_format = self.validate_log_format(LOG_FORMAT)
            date_format = self.validate_date_format(LOG_DATE_FORMAT)

            # UTC keeps ledger timestamps comparable across hosts
            formatter = TerminalSafeFormatter(fmt=log_format, datefmt=date_format + " UTC")
            formatter.converter = time.gmtime

            if console_output:
                if LOG_CONSOLE_HIGHLIGHTING:
                    theme = Theme(
                        {
                            "stakegov.address":        "cyan",
                            "stakegov.amount":         "bold white",
                            "stakegov.arrow":          "bold yellow",
                            "stakegov.level_critical": "bold red reverse",
                            "stakegov.level_debug":    "bold dim",
                            "stakegov.level_error":    "bold red",
                            "stakegov.level_info":     "bold green",
                            "stakegov.level_warning":  "bold yellow",
                            "stakegov.logger_name":    "magenta",
                            "stakegov.proposal":       "bold magenta",
                            "stakegov.state":          "bold blue",
                            "stakegov.timestamp":      "bold cyan",
                        }
                    )
                    console = Console(theme=theme, highlight=False, stderr=True)
                    handler = RichHandler(
                        console=console,
                        highlighter=StakeGovLogHighlighter(),
                        rich_tracebacks=True,
                        omit_repeated_times=False,
                        show_path=False,
                        show_time=False,
                        show_level=False,
                        markup=False,
                    )
                else:
                    handler = logging.StreamHandler(sys.stderr)
                handler.setLevel(numeric_level)
                handler.setFormatter(formatter)
                root_logger.addHandler(handler)

            if file_output is None:
                file_output = bool(LOG_FILE_OUTPUT)
            if file_output:
                log_file_path = log_file or LOG_FILE_PATH
                log_file_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    filename=str(log_file_path),
                    maxBytes=LOG_MAX_FILE_SIZE,
                    backupCount=LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setLevel(numeric_level)
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)

            self._configured = True


    def apply_settings(self, level: str, file_output: bool = False) -> None:
        """
        Re-tunes an already configured logging system from loaded settings.

        Sets the level of the `stakegov` logger hierarchy and attaches the
        rotating file handler if file output was requested and none exists.
        """
        if not self._configured:
            self.configure()
        numeric_level = getattr(logging, str(level).upper(), None)
        if not isinstance(numeric_level, int):
            numeric_level = logging.INFO
        package_logger = logging.getLogger("stakegov")
        package_logger.setLevel(numeric_level)

        if not file_output:
            return
        with self._lock:
            root_logger = logging.getLogger()
            if any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root_logger.handlers):
                return
            LOG_FILE_PATH.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                filename=str(LOG_FILE_PATH),
                maxBytes=LOG_MAX_FILE_SIZE,
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
            formatter = TerminalSafeFormatter(
                fmt=self.validate_log_format(LOG_FORMAT),
                datefmt=self.validate_date_format(LOG_DATE_FORMAT) + " UTC",
            )
            formatter.converter = time.gmtime
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)


    def get_logger(self, name: str) -> logging.Logger:
        """
        Retrieves a configured logger instance for a specific module.

        Args:
            name (str): The name of the logger (typically `__name__`).

        Returns:
            logging.Logger: A configured standard Python logger.
        """
        if not self._configured:
            self.configure()
        return logging.getLogger(name)


    @property
    def is_configured(self) -> bool:
        """Returns True if the logging system has been successfully configured."""
        return self._configured


class TerminalSafeFormatter(logging.Formatter):
    """
    A formatter that strips ANSI escape sequences and control characters.

    Descriptions and addresses are user supplied; they must not be able to
    rewrite the operator's terminal.
    """

    _ansi_escape_re = re.compile(
        r"\x1b\[[0-?]*[ -/]*[@-~]"
        r"|\x1b[@-Z\\-_]"
    )
    # Control chars (0x00-0x1F) excluding Tab and Newline, plus CR
    _control_chars_re = re.compile(r"[\x00-\x08\x0B-\x1F\x7F]")


    @classmethod
    def sanitize(cls, text: str) -> str:
        if not text:
            return text
        text = cls._ansi_escape_re.sub("", text)
        return cls._control_chars_re.sub("", text)


    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


class StakeGovLogHighlighter(RegexHighlighter):
    """Regex-based coloring for ledger and governance log lines."""

    base_style = "stakegov."
    highlights = [
        r"(?P<arrow>(\-\->)|(→))",
        r"(?P<level_critical>\bCRITICAL\b)",
        r"(?P<level_debug>\bDEBUG\b)",
        r"(?P<level_error>\bERROR\b)",
        r"(?P<level_info>\bINFO\b)",
        r"(?P<level_warning>\bWARNING\b)",
        r"\-\s+\w+\s+-\s+(?P<logger_name>[\w.]+)(?=\s-\s)",
        r"(?P<proposal>#\d+)",
        r"(?P<state>\b(PENDING|ACTIVE|CANCELED|DEFEATED|SUCCEEDED|EXECUTED)\b)",
        r"(?P<amount>(?<![\w#])\d+(?![\w]))",
        r"(?P<address>\b0x[0-9a-fA-F]{6,}\b)",
        r"(?P<timestamp>^(.*?)UTC)",
    ]


_log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Module-level convenience wrapper around `LogManager.get_logger`."""
    return _log_manager.get_logger(name)


def apply_settings(level: str, file_output: bool = False) -> None:
    """Module-level convenience wrapper around `LogManager.apply_settings`."""
    _log_manager.apply_settings(level, file_output)
