"""Trace logging to standard output and to a per-source log file."""

from __future__ import annotations

import sys
from datetime import datetime
from enum import Enum
from typing import Callable

from fastqueue.file_handler import FileHandler

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class LogTraceType(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARNING"
    ERR = "ERROR"


class Logger:
    """Writes timestamped trace lines for one named source."""

    def __init__(
        self,
        source_name: str,
        file_handler: FileHandler,
        trace_log_path: str,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.source_name = source_name
        self.source_path = f"{trace_log_path}/{source_name}.txt"
        self._fh = file_handler
        self._clock = clock

        file_handler.create_directory(trace_log_path)
        if not file_handler.check_if_exists(self.source_path):
            file_handler.create_new_file(self.source_path, b"", source_name, True)
            self.log_info(
                f"Initialize log file {self.source_path} for source {source_name}"
            )

    def log(self, trace_type: LogTraceType | str, message: str) -> None:
        label = trace_type.value if isinstance(trace_type, LogTraceType) else str(trace_type)
        try:
            line = f"{self._clock().strftime(TIME_FORMAT)} | {label} | {message}\n"
            print(line, end="", file=sys.stdout)
            self._fh.write_to_file(
                self.source_name, self.source_path, line.encode("utf-8"), -1, True
            )
        except (OSError, ValueError):
            print("Error occurred while trying to log trace message.", file=sys.stdout)

    def log_info(self, message: str) -> None:
        self.log(LogTraceType.INFO, message)

    def log_warning(self, message: str) -> None:
        self.log(LogTraceType.WARN, message)

    def log_error(self, message: str) -> None:
        self.log(LogTraceType.ERR, message)