"""
Stage and run result models.
"""

import logging
from enum import Enum
from typing import Optional, Any, List
from datetime import datetime, timezone
from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Why a stage failed."""
    PREREQUISITE_MISSING = "prerequisite_missing"
    TRANSPORT_FAILURE = "transport_failure"
    PROCESS_FAILURE = "process_failure"
    VERIFICATION_FAILURE = "verification_failure"
    USER_DECLINED = "user_declined"
    INTERNAL_ERROR = "internal_error"


class PipelineState(str, Enum):
    """States of the installation pipeline, in the order they are reached."""
    IDLE = "idle"
    RUNTIME_READY = "runtime_ready"
    REPO_READY = "repo_ready"
    ENV_READY = "env_ready"
    PACKAGES_READY = "packages_ready"
    ARTIFACTS_READY = "artifacts_ready"
    DONE = "done"
    FAILED = "failed"


class StageFailure(BaseModel):
    """Typed failure reason of a stage."""
    kind: FailureKind = Field(..., description="Failure category")
    message: str = Field(..., description="Human readable explanation")
    exit_code: Optional[int] = Field(None, description="Exit code for process failures")

    def __str__(self) -> str:
        text = f"{self.kind.value}: {self.message}"
        if self.exit_code is not None:
            text += f" (exit code {self.exit_code})"
        return text


class StageResult(BaseModel):
    """Outcome of one pipeline stage."""
    stage: str = Field(..., description="Stage name")
    success: bool = Field(default=False, description="Whether the stage succeeded")
    log: List[str] = Field(default_factory=list, description="Human readable log lines")
    failure: Optional[StageFailure] = None
    value: Any = Field(None, description="Typed output consumed by later stages")

    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    def note(self, message: str, logger: Optional[logging.Logger] = None,
             level: int = logging.INFO) -> None:
        """Append a log line, mirroring it to ``logger`` when given."""
        if level >= logging.WARNING:
            self.log.append(f"{logging.getLevelName(level)}: {message}")
        else:
            self.log.append(message)
        if logger is not None:
            logger.log(level, message)

    @property
    def warnings(self) -> List[str]:
        return [line for line in self.log if line.startswith("WARNING: ")]

    def succeed(self, value: Any = None) -> "StageResult":
        """Mark the stage successful."""
        self.success = True
        self.failure = None
        self.value = value
        self._complete()
        return self

    def fail(self, kind: FailureKind, message: str,
             exit_code: Optional[int] = None) -> "StageResult":
        """Mark the stage failed with a typed reason."""
        self.success = False
        self.failure = StageFailure(kind=kind, message=message, exit_code=exit_code)
        self.log.append(f"ERROR: {message}")
        self._complete()
        return self

    def _complete(self) -> None:
        self.completed_at = datetime.now(timezone.utc)
        self.duration_seconds = (self.completed_at - self.started_at).total_seconds()


class RunReport(BaseModel):
    """Final report of one orchestrator run."""
    state: PipelineState = Field(..., description="Terminal state")
    failed_stage: Optional[PipelineState] = Field(None, description="State whose stage failed")
    failure: Optional[StageFailure] = Field(None, description="First failure, verbatim")
    stages: List[StageResult] = Field(default_factory=list)
    duration_seconds: float = Field(default=0.0)

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.DONE

    def summary(self) -> str:
        if self.succeeded:
            return f"Installation completed successfully in {self.duration_seconds:.1f}s"
        stage = self.failed_stage.value if self.failed_stage else "unknown"
        return f"Installation failed at {stage}: {self.failure}"

    class Config:
        json_schema_extra = {
            "example": {
                "state": "failed",
                "failed_stage": "runtime_ready",
                "failure": {"kind": "user_declined", "message": "Runtime installation aborted by user"},
                "duration_seconds": 1.2
            }
        }
