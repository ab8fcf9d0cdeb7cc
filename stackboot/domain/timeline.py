"""Lifecycle timeline event helpers.

Timeline events are plain JSON-serializable dicts so a whole run can be
persisted to the cache store and served back by the HTTP surface unchanged.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .models import EntityOutcome


def domain_build_stage_event(
    stage: str,
    status: str,
    details: dict[str, Any] | None = None,
) -> dict[str, object]:
    """Build one structured lifecycle timeline event.

    Args:
        stage: Lifecycle phase name.
        status: Phase status marker (`started`, `completed`, `skipped`, `failed`, ...).
        details: Optional structured details object.

    Returns:
        dict[str, object]: Structured timeline event.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    event_payload: dict[str, object] = {
        "stage": stage,
        "status": status,
        "at_utc": datetime.now(timezone.utc).isoformat(),
    }
    if details is not None:
        event_payload["details"] = details
    return event_payload


def domain_build_outcome_event(stage: str, outcome: EntityOutcome) -> dict[str, object]:
    """Build one timeline event describing a per-entity outcome.

    Args:
        stage: Lifecycle phase that produced the outcome.
        outcome: Per-entity outcome.

    Returns:
        dict[str, object]: Structured timeline event with entity details.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    details: dict[str, object] = {"entity": outcome.entity}
    if outcome.error_code is not None:
        details["error_code"] = outcome.error_code
    if outcome.error_message is not None:
        details["error_message"] = outcome.error_message
    if outcome.raw_output is not None:
        details["raw_output"] = outcome.raw_output
    return domain_build_stage_event(stage=stage, status=outcome.status, details=details)

