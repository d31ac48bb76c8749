"""
Collaborators the pipeline talks to: decision callbacks and progress sinks.
"""

from .decisions import AutoDecisionProvider, ConsoleDecisionProvider, Decision
from .progress import LoggingProgressSink

__all__ = ["AutoDecisionProvider", "ConsoleDecisionProvider", "Decision", "LoggingProgressSink"]
