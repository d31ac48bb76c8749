"""
Data models for the provisioning pipeline.
"""

from .plan import InstallPlan
from .installation import FailureKind, PipelineState, RunReport, StageFailure, StageResult
from .runtime import DetectedRuntime, EnvironmentHandle, LauncherArtifacts, ProcessInvocation

__all__ = [
    "InstallPlan",
    "FailureKind",
    "PipelineState",
    "RunReport",
    "StageFailure",
    "StageResult",
    "DetectedRuntime",
    "EnvironmentHandle",
    "LauncherArtifacts",
    "ProcessInvocation"
]
