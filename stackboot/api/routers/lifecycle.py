"""Lifecycle API router composition for run trigger and last-run diagnostics."""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from stackboot.jobs import LifecycleSequencer, job_extract_failed_entities_from_timeline


def api_create_lifecycle_router(lifecycle_sequencer: LifecycleSequencer) -> APIRouter:
    """Create lifecycle router with trigger and last-run endpoints.

    Args:
        lifecycle_sequencer: Job-layer lifecycle sequencer.

    Returns:
        APIRouter: Router exposing lifecycle APIs.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if lifecycle_sequencer is None:
        raise ValueError("lifecycle_sequencer must not be None")

    router = APIRouter(prefix="/lifecycle", tags=["lifecycle"])

    @router.post("/run")
    def api_lifecycle_run_trigger(rebuild: bool = Query(default=False)) -> JSONResponse:
        """Run the bootstrap lifecycle once.

        Returns:
            JSONResponse: Run result payload; HTTP 422 when the run failed on config.

        Raises:
            RuntimeError: Raised when execution fails unexpectedly.
        """

        run_result = lifecycle_sequencer.lifecycle_execute(rebuild=rebuild)
        status_code = status.HTTP_200_OK
        if run_result.status == "failed":
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        return JSONResponse(content=run_result.result_to_payload(), status_code=status_code)

    @router.get("/last")
    def api_lifecycle_last() -> JSONResponse:
        """Return the persisted result of the previous run.

        Returns:
            JSONResponse: Last run payload with failed entities grouped by stage.

        Raises:
            RuntimeError: Raised when the cache store read fails.
        """

        last_result = lifecycle_sequencer.lifecycle_last()
        if last_result is None:
            payload = {"status": "error", "message": "no lifecycle run recorded"}
            return JSONResponse(content=payload, status_code=status.HTTP_404_NOT_FOUND)

        payload = {
            **last_result,
            "failed_entities": job_extract_failed_entities_from_timeline(last_result.get("timeline")),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router
