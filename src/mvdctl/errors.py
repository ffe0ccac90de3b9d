"""Exceptions raised by the mvdctl pipelines."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .stages import PipelineSummary


class MvdError(Exception):
    """Base exception for mvdctl errors."""

    pass


class ConfigError(MvdError):
    """Configuration file, environment or argument value is invalid."""

    pass


class ExecutionError(MvdError):
    """An external program could not be launched at all.

    A non-zero exit code is never an ExecutionError; it is returned as data
    in the ExecutionResult.

    Attributes:
        program: The executable that failed to start.
        reason: Short description (not found, permission denied, timeout).
    """

    def __init__(self, program: str, reason: str):
        self.program = program
        self.reason = reason
        super().__init__(f"Cannot run '{program}': {reason}")


class PreflightError(MvdError):
    """Required tooling is missing or unusable; no stage has run yet.

    Attributes:
        missing: Executables not found on PATH.
        version_too_low: True when the JVM major version is below the minimum.
        runtime_unavailable: True when the container runtime is not running.
        detected: Version line reported by the JVM, if any.
    """

    def __init__(
        self,
        missing: Optional[list[str]] = None,
        version_too_low: bool = False,
        runtime_unavailable: bool = False,
        detected: str = "",
        min_java_major: int = 17,
    ):
        self.missing = list(missing or [])
        self.version_too_low = version_too_low
        self.runtime_unavailable = runtime_unavailable
        self.detected = detected

        problems = []
        if self.missing:
            problems.append(f"missing tools: {', '.join(self.missing)}")
        if runtime_unavailable:
            problems.append("container runtime is not running (docker info failed)")
        if version_too_low:
            problems.append(f"Java >= {min_java_major} required, detected: {detected or 'unknown'}")
        super().__init__("Preflight failed: " + "; ".join(problems))


class FatalStageError(MvdError):
    """A fatal-policy stage failed and the pipeline stopped.

    Attributes:
        stage: Name of the stage responsible.
        summary: PipelineSummary accumulated up to and including the failure.
    """

    def __init__(self, stage: str, message: str, summary: Optional["PipelineSummary"] = None):
        self.stage = stage
        self.message = message
        self.summary = summary
        super().__init__(f"Stage '{stage}' failed: {message}")
