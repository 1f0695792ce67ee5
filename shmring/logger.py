"""Log levels and the default log sink."""

from __future__ import annotations

import sys
from enum import Enum
from typing import Callable


class LogLevel(Enum):
    DEBUG = "Debug"
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"


Logger = Callable[[LogLevel, str], None]


def default_logger(level: LogLevel, message: str) -> None:
    """Print *message* tagged with *level*: debug and info to stdout, others to stderr."""
    stream = sys.stdout if level in (LogLevel.DEBUG, LogLevel.INFO) else sys.stderr
    tag = f"[{level.value}]".ljust(10)
    print(f"[SHM ps] {tag}{message}", file=stream)