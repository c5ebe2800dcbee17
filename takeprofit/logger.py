"""
Ledger logging.

Every module asks for its logger through ``get_logger(__name__)``. The first
call installs handlers on the root logger (a rich console handler, plus an
optional size-rotated file under ``logs/``); later calls reuse them.

Loaded configuration is applied afterwards with
``LogManager().apply_settings(level, file_output)``.
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
    LOG_BACKUP_COUNT,
    LOG_CONSOLE_HIGHLIGHTING,
    LOG_DATE_FORMAT,
    LOG_FILE_OUTPUT,
    LOG_FORMAT,
    LOG_LEVEL,
    LOG_MAX_FILE_SIZE,
)

LOG_FILE_PATH = Path(__file__).resolve().parent.parent / "logs" / "takeprofit.log"

LEDGER_THEME = Theme({
    "takeprofit.debug":     "dim",
    "takeprofit.info":      "green",
    "takeprofit.warning":   "bold yellow",
    "takeprofit.error":     "bold red",
    "takeprofit.critical":  "bold white on red",
    "takeprofit.module":    "magenta",
    "takeprofit.order":     "cyan",
    "takeprofit.tick":      "yellow",
    "takeprofit.direction": "bold",
    "takeprofit.amount":    "bright_blue",
})


class LedgerLogHighlighter(RegexHighlighter):
    """Colours levels, order keys, ticks and directions in console output."""

    base_style = "takeprofit."
    highlights = [
        r"\b(?P<debug>DEBUG)\b",
        r"\b(?P<info>INFO)\b",
        r"\b(?P<warning>WARNING)\b",
        r"\b(?P<error>ERROR)\b",
        r"\b(?P<critical>CRITICAL)\b",
        r"\b(?P<module>takeprofit(\.\w+)+)\b",
        r"(?P<order>order=[0-9a-f]+)",
        r"(?P<tick>tick=-?\d+)",
        r"\b(?P<direction>zero_for_one|one_for_zero)\b",
        r"(?<=[ =+])(?P<amount>\d+\.\d+)\b",
    ]


class TerminalSafeFormatter(logging.Formatter):
    """Formatter that drops escape sequences and control characters from the output."""

    # CSI sequences, two-byte escapes, then C0 controls except \t and \n, and DEL
    _unsafe = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b[@-Z\\-_]|[\x00-\x08\x0b-\x1f\x7f]")

    @classmethod
    def sanitize(cls, text: str) -> str:
        return cls._unsafe.sub("", text) if text else text

    def format(self, record: logging.LogRecord) -> str:
        return self.sanitize(super().format(record))


def _level_number(level: Optional[str]) -> int:
    return getattr(logging, str(level or LOG_LEVEL).upper(), logging.INFO)


class LogManager:
    """
    Process-wide logging setup (singleton).

    configure() runs once; apply_settings() may be called any number of
    times afterwards to change the level or switch on file output.
    """

    _instance: Optional["LogManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LogManager":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._configured = False
                instance._formatter = None
                cls._instance = instance
        return cls._instance

    @property
    def is_configured(self) -> bool:
        return self._configured

    @staticmethod
    def validate_log_format(log_format: str) -> str:
        """Return *log_format* if it renders a record cleanly, else the default format."""
        default = str(LOG_FORMAT.default())
        if not log_format:
            return default
        try:
            probe = logging.LogRecord("probe", logging.INFO, "", 0, "probe", (), None)
            logging.Formatter(fmt=str(log_format)).format(probe)
        except (ValueError, KeyError, TypeError) as e:
            stamp = time.strftime(str(LOG_DATE_FORMAT.default()))
            print(f"{stamp} - takeprofit.logger - bad LOG_FORMAT ({e}), using default", file=sys.stderr)
            return default
        return str(log_format)

    def configure(
        self,
        log_level: Optional[str] = None,
        log_file: Optional[Path] = None,
        console_output: bool = True,
        file_output: Optional[bool] = None,
    ) -> None:
        with self._lock:
            if self._configured:
                return

            level = _level_number(log_level)
            formatter = TerminalSafeFormatter(
                fmt=self.validate_log_format(LOG_FORMAT),
                datefmt=f"{LOG_DATE_FORMAT} UTC",
            )
            formatter.converter = time.gmtime
            self._formatter = formatter

            root = logging.getLogger()
            root.handlers.clear()
            root.setLevel(level)

            if console_output:
                root.addHandler(self._console_handler(level))
            if LOG_FILE_OUTPUT if file_output is None else file_output:
                root.addHandler(self._file_handler(level, log_file))

            self._configured = True

    def apply_settings(self, log_level: str, file_output: bool = False, log_file: Optional[Path] = None) -> None:
        """Re-level the root logger and its handlers; attach the file handler if asked."""
        if not self._configured:
            self.configure(log_level=log_level, log_file=log_file, file_output=file_output)
            return

        level = _level_number(log_level)
        with self._lock:
            root = logging.getLogger()
            root.setLevel(level)
            for handler in root.handlers:
                handler.setLevel(level)
            if file_output and not any(
                isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers
            ):
                root.addHandler(self._file_handler(level, log_file))

    def get_logger(self, name: str) -> logging.Logger:
        if not self._configured:
            self.configure()
        return logging.getLogger(name)

    # -- Handlers -------------------------------------------------------------

    def _console_handler(self, level: int) -> logging.Handler:
        if LOG_CONSOLE_HIGHLIGHTING:
            handler: logging.Handler = RichHandler(
                console=Console(theme=LEDGER_THEME, stderr=True, highlight=False),
                highlighter=LedgerLogHighlighter(),
                show_time=False,
                show_level=False,
                show_path=False,
                markup=False,
                rich_tracebacks=True,
            )
        else:
            handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(self._formatter)
        return handler

    def _file_handler(self, level: int, log_file: Optional[Path]) -> logging.Handler:
        path = Path(log_file) if log_file else LOG_FILE_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=LOG_MAX_FILE_SIZE, backupCount=LOG_BACKUP_COUNT, encoding="utf-8",
        )
        handler.setLevel(level)
        handler.setFormatter(self._formatter)
        return handler


def get_logger(name: str) -> logging.Logger:
    """Module logger; installs the handlers on first use."""
    return LogManager().get_logger(name)
