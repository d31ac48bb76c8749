"""
Progress sinks. Purely observational: nothing reported here affects control flow.
"""

import logging
from typing import Protocol


class ProgressSink(Protocol):
    def report(self, stage_name: str, percent: float, message: str) -> None:
        ...


class LoggingProgressSink:
    """Writes progress milestones to the log."""

    def __init__(self, logger_name: str = "pyprovision.progress"):
        self.logger = logging.getLogger(logger_name)

    def report(self, stage_name: str, percent: float, message: str) -> None:
        self.logger.info(f"[{stage_name} {percent:5.1f}%] {message}")


class NullProgressSink:
    def report(self, stage_name: str, percent: float, message: str) -> None:
        pass
