"""Tests for lifecycle trigger and last-run API endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

from stackboot.api.application import create_api_application
from stackboot.config import AppSettings
from stackboot.domain import HealthStatus
from stackboot.jobs import LifecycleRunResult


class _HealthyDatabaseService:
    def db_connection_label(self) -> str:
        return "sqlite:///test.db"

    def db_check_health(self) -> HealthStatus:
        return HealthStatus(status="ok", detail="cache store connectivity verified")


class _LifecycleSequencerStub:
    """Sequencer double returning a scripted run result."""

    def __init__(self, run_status: str = "success", last_result: dict | None = None):
        self._run_status = run_status
        self._last_result = last_result
        self.rebuild_calls: list[bool] = []

    def lifecycle_execute(self, rebuild: bool = False) -> LifecycleRunResult:
        """Record the rebuild flag and return a deterministic result.

        Args:
            rebuild: Rebuild flag passed by the endpoint.

        Returns:
            LifecycleRunResult: Scripted run result.

        Raises:
            RuntimeError: This stub does not raise runtime errors.
        """

        self.rebuild_calls.append(rebuild)
        timeline = [
            {"stage": "run", "status": "started", "at_utc": "2026-10-17T00:00:00+00:00"},
            {"stage": "run", "status": self._run_status, "at_utc": "2026-10-17T00:00:01+00:00"},
        ]
        return LifecycleRunResult(status=self._run_status, timeline=timeline)

    def lifecycle_last(self) -> dict | None:
        return self._last_result


class _TokenCacheServiceStub:
    def token_cache_get(self) -> list[object]:
        return []


def _build_client(sequencer: _LifecycleSequencerStub) -> TestClient:
    application = create_api_application(
        AppSettings(environment_name="test", database_url="sqlite:///test.db", app_name="mystack"),
        _HealthyDatabaseService(),
        sequencer,
        _TokenCacheServiceStub(),
    )
    return TestClient(application)


def test_lifecycle_run_returns_result_payload() -> None:
    """Trigger a run and return its serialized result.

    Returns:
        None: Assertions validate status code, payload and rebuild flag.

    Raises:
        AssertionError: Raised when response does not match expected payload.
    """

    sequencer = _LifecycleSequencerStub()

    response = _build_client(sequencer).post("/lifecycle/run", params={"rebuild": "true"})

    assert response.status_code == 200
    assert response.json()["status"] == "success"
    assert [event["stage"] for event in response.json()["timeline"]] == ["run", "run"]
    assert sequencer.rebuild_calls == [True]


def test_lifecycle_run_returns_unprocessable_when_run_failed() -> None:
    response = _build_client(_LifecycleSequencerStub(run_status="failed")).post("/lifecycle/run")

    assert response.status_code == 422
    assert response.json()["status"] == "failed"


def test_lifecycle_last_returns_not_found_before_first_run() -> None:
    response = _build_client(_LifecycleSequencerStub()).get("/lifecycle/last")

    assert response.status_code == 404
    assert response.json()["status"] == "error"


def test_lifecycle_last_groups_failed_entities_by_stage() -> None:
    last_result = {
        "status": "partial",
        "timeline": [
            {"stage": "open_services", "status": "failed", "details": {"entity": "db", "error_code": "PROBE_PARSE_ERROR"}},
            {"stage": "open_services", "status": "completed", "details": {"entities": ["db", "cache"]}},
        ],
        "warnings": ["db: PROBE_PARSE_ERROR probe output is not valid JSON"],
        "phases": [],
    }

    response = _build_client(_LifecycleSequencerStub(last_result=last_result)).get("/lifecycle/last")

    assert response.status_code == 200
    assert response.json()["status"] == "partial"
    assert response.json()["failed_entities"] == {"open_services": ["db"]}
