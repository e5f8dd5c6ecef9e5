"""Console logging for review sessions and the command-line front end.

- Everything goes to stderr so command output on stdout stays parseable
- DEBUG lines only appear in verbose mode
- Colours are used when stderr is a terminal
"""

import sys
import traceback
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels for console output."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


_COLORS = {
    LogLevel.DEBUG: "36",  # Cyan
    LogLevel.INFO: "37",  # White
    LogLevel.WARNING: "33",  # Yellow
    LogLevel.ERROR: "31",  # Red
}

_LABELS = {
    LogLevel.DEBUG: "DEBUG: ",
    LogLevel.INFO: "",
    LogLevel.WARNING: "Warning: ",
    LogLevel.ERROR: "Error: ",
}


class Logger:
    """Small stderr logger.

    Attributes:
        verbose: If True, DEBUG messages are printed
        quiet: If True, INFO messages are suppressed
        use_colors: If True, use ANSI color codes
    """

    def __init__(
        self,
        verbose: bool = False,
        use_colors: bool = True,
        quiet: bool = False,
        stream: TextIO | None = None,
    ) -> None:
        self.verbose = verbose
        self.quiet = quiet
        self._stream = stream
        self.use_colors = use_colors and self.stream.isatty()

    @property
    def stream(self) -> TextIO:
        # Resolved lazily so pytest's capsys replacement of sys.stderr is honoured
        return self._stream if self._stream is not None else sys.stderr

    def _emit(self, level: LogLevel, message: str, details: dict[str, Any] | None = None) -> None:
        text = f"{_LABELS[level]}{message}"
        if self.use_colors:
            text = f"\033[{_COLORS[level]}m{text}\033[0m"
        if details:
            text += " (" + " ".join(f"{k}={v!r}" for k, v in details.items()) + ")"
        print(text, file=self.stream)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message with optional key-value details (verbose only)."""
        if self.verbose:
            self._emit(LogLevel.DEBUG, message, kwargs)

    def info(self, message: str) -> None:
        if not self.quiet:
            self._emit(LogLevel.INFO, message)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._emit(LogLevel.WARNING, message, kwargs)

    def error(self, message: str, suggestion: str | None = None) -> None:
        """Log error message with optional suggestion.

        Args:
            message: Error message to log
            suggestion: Optional hint for fixing the error
        """
        self._emit(LogLevel.ERROR, message)
        if suggestion:
            self._emit(LogLevel.WARNING, f"  -> {suggestion}")

    def exception(self, message: str, exc: BaseException) -> None:
        """Log an exception; the traceback is included in verbose mode."""
        self.error(f"{message}: {exc}")
        if self.verbose:
            tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            print(tb, file=self.stream)


# Process-wide logger for the command-line front end
_logger: Logger | None = None


def init_logger(verbose: bool = False, use_colors: bool = True, quiet: bool = False) -> Logger:
    """Initialize the command-line logger.

    Args:
        verbose: Enable debug output
        use_colors: Enable ANSI color codes
        quiet: Suppress info output

    Returns:
        Logger instance
    """
    global _logger
    _logger = Logger(verbose=verbose, use_colors=use_colors, quiet=quiet)
    return _logger


def get_logger() -> Logger:
    """Get the command-line logger.

    Raises:
        RuntimeError: If logger not initialized
    """
    if _logger is None:
        raise RuntimeError("Logger not initialized. Call init_logger() first.")
    return _logger
