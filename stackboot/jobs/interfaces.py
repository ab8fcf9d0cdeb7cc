"""Typed interfaces for job-layer orchestration responsibilities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from stackboot.domain import CredentialRecord, LifecyclePhaseResult


@dataclass(frozen=True)
class JobExecutionResult:
    """Result contract for one named job execution.

    Attributes:
        job_name: Job identifier.
        status: Final execution state.
    """

    job_name: str
    status: str


@dataclass(frozen=True)
class LifecycleRunResult:
    """Outcome of one bootstrap lifecycle run.

    Attributes:
        status: `success`, `partial`, or `failed`.
        timeline: Structured timeline events in emission order.
        warnings: Human-readable warnings for isolated failures.
        phases: Phase results in execution order.
    """

    status: str
    timeline: list[dict[str, object]]
    warnings: list[str] = field(default_factory=list)
    phases: tuple[LifecyclePhaseResult, ...] = ()

    def result_to_payload(self) -> dict[str, Any]:
        """Return the JSON-serializable form persisted and served over HTTP.

        Returns:
            dict[str, Any]: Status, timeline, warnings and phase summaries.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        return {
            "status": self.status,
            "timeline": list(self.timeline),
            "warnings": list(self.warnings),
            "phases": [{"phase": phase.phase, "status": phase.status} for phase in self.phases],
        }


@dataclass(frozen=True)
class TokenRefreshResult:
    """Outcome of one credential refresh.

    Attributes:
        status: `refreshed` or `skipped`.
        trigger: Command that requested the refresh (`pull` or `push`).
        record: Newly validated record, None when skipped.
        tokens: Cached records after the refresh, newest first.
    """

    status: str
    trigger: str
    record: CredentialRecord | None = None
    tokens: tuple[CredentialRecord, ...] = ()


class JobOrchestratorPort(Protocol):
    """Port definition for orchestrating named lifecycle jobs."""

    def job_supported_names(self) -> tuple[str, ...]:
        """Return the set of workflow names this orchestrator can execute.

        Returns:
            tuple[str, ...]: Deterministic list of supported job names.

        Raises:
            RuntimeError: Raised when supported job metadata is unavailable.
        """

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Execute one named workflow in the job layer.

        Args:
            job_name: Workflow name.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            ValueError: Raised when the job name is unsupported.
        """
