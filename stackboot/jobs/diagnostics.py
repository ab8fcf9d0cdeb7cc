"""Shared diagnostics helpers for lifecycle timelines."""

from __future__ import annotations

from stackboot.domain import EntityOutcome, LifecyclePhaseResult, UnresolvedRelationship


def job_collect_probe_failures(phases) -> list[dict[str, str]]:
    """Collect failed per-entity outcomes from phase results.

    Args:
        phases: Lifecycle phase results.

    Returns:
        list[dict[str, str]]: Failure summaries with phase, entity and error code.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    failures: list[dict[str, str]] = []
    for phase in phases:
        if not isinstance(phase, LifecyclePhaseResult):
            continue
        for outcome in phase.phase_failed_outcomes():
            failures.append(
                {
                    "phase": phase.phase,
                    "entity": outcome.entity,
                    "error_code": outcome.error_code or "UNKNOWN",
                }
            )
    return failures


def job_describe_unresolved(unresolved: UnresolvedRelationship) -> str:
    """Return a warning line for one unresolved relationship."""

    return f"relationship {unresolved.alias} of {unresolved.app} ({unresolved.target}) is unresolved: {unresolved.reason}"


def job_describe_failure(outcome: EntityOutcome) -> str:
    """Return a warning line for one failed outcome."""

    return f"{outcome.entity}: {outcome.error_code} {outcome.error_message or ''}".rstrip()


def job_extract_failed_entities_from_timeline(timeline) -> dict[str, list[str]]:
    """Group failed entities by stage from a persisted timeline.

    Args:
        timeline: Persisted lifecycle timeline.

    Returns:
        dict[str, list[str]]: Stage name to failed entity names.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    failed_entities: dict[str, list[str]] = {}
    if not isinstance(timeline, list):
        return failed_entities

    for event in timeline:
        if not isinstance(event, dict) or event.get("status") != "failed":
            continue
        details = event.get("details")
        if not isinstance(details, dict) or "entity" not in details:
            continue
        failed_entities.setdefault(str(event.get("stage")), []).append(str(details["entity"]))
    return failed_entities
