"""Tests for the docker SDK container engine adapter."""

from __future__ import annotations

import asyncio

import pytest
from docker.errors import APIError, NotFound
from requests.exceptions import ConnectionError as RequestsConnectionError

from stackboot.adapters import (
    CAPTURE_STDOUT_STDERR,
    ContainerEngineError,
    ContainerExecError,
    ContainerExecOptions,
    ContainerNotFoundError,
    DockerContainerEngine,
    RetryStrategy,
)


class _ContainerStub:
    """Container double replaying scripted exec results."""

    def __init__(self, attrs: dict, exec_results: list[tuple[int, bytes] | Exception]):
        self.attrs = attrs
        self._exec_results = list(exec_results)
        self.exec_calls: list[dict[str, object]] = []

    def exec_run(self, **kwargs):
        """Record exec arguments and return the next scripted result.

        Returns:
            tuple[int, bytes]: Exit code and output.

        Raises:
            Exception: Raised when the scripted result is an exception.
        """

        self.exec_calls.append(kwargs)
        result = self._exec_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class _ContainerCollectionStub:
    def __init__(self, containers: dict[str, _ContainerStub], lookup_errors: list[Exception] | None = None):
        self._containers = containers
        self._lookup_errors = list(lookup_errors or [])

    def get(self, container_id: str) -> _ContainerStub:
        if self._lookup_errors:
            raise self._lookup_errors.pop(0)
        if container_id not in self._containers:
            raise NotFound(f"No such container: {container_id}")
        return self._containers[container_id]


class _DockerClientStub:
    def __init__(self, containers: dict[str, _ContainerStub], lookup_errors: list[Exception] | None = None):
        self.containers = _ContainerCollectionStub(containers, lookup_errors)


class _SleepRecorder:
    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


def _build_engine(
    containers: dict[str, _ContainerStub],
    sleep: _SleepRecorder | None = None,
    lookup_errors: list[Exception] | None = None,
) -> DockerContainerEngine:
    return DockerContainerEngine(
        client=_DockerClientStub(containers, lookup_errors),
        retry_strategy=RetryStrategy(
            backoff_base_seconds=0.5,
            max_backoff_seconds=2.0,
            random_unit_interval_provider=lambda: 0.0,
        ),
        sleep=sleep or _SleepRecorder(),
    )


def test_inspect_reports_running_state_and_network_addresses() -> None:
    """Map docker inspect attributes onto container facts.

    Returns:
        None: Assertions validate inspection mapping.

    Raises:
        AssertionError: Raised when mapping is wrong.
    """

    container = _ContainerStub(
        attrs={
            "State": {"Running": True},
            "NetworkSettings": {
                "Networks": {
                    "mystack_default": {"IPAddress": "10.0.0.5"},
                    "lando_bridge_network": {"IPAddress": ""},
                }
            },
        },
        exec_results=[],
    )
    engine = _build_engine({"mystack_db_1": container})

    inspection = asyncio.run(engine.engine_inspect("mystack_db_1"))

    assert inspection.running is True
    assert inspection.networks == {"mystack_default": "10.0.0.5", "lando_bridge_network": None}


def test_inspect_raises_not_found_for_missing_container() -> None:
    engine = _build_engine({})

    with pytest.raises(ContainerNotFoundError):
        asyncio.run(engine.engine_inspect("mystack_db_1"))


def test_exec_retries_failed_attempts_with_backoff() -> None:
    """Retry non-zero exits until one succeeds.

    Returns:
        None: Assertions validate retry behavior.

    Raises:
        AssertionError: Raised when retries or waits are wrong.
    """

    container = _ContainerStub(attrs={}, exec_results=[(1, b"not ready"), (1, b"not ready"), (0, b'{"mysql": []}')])
    sleep = _SleepRecorder()
    engine = _build_engine({"mystack_db_1": container}, sleep)

    output = asyncio.run(
        engine.engine_exec(
            "mystack_db_1",
            ["/helpers/psh-open.sh", "{}"],
            ContainerExecOptions(services=("db",), attempts=3),
        )
    )

    assert output == b'{"mysql": []}'
    assert len(container.exec_calls) == 3
    assert container.exec_calls[0]["user"] == "root"
    assert container.exec_calls[0]["stderr"] is False
    assert sleep.waits == [0.5, 1.0]


def test_exec_single_attempt_raises_with_exit_code_and_output() -> None:
    container = _ContainerStub(attrs={}, exec_results=[(2, b"boom")])
    engine = _build_engine({"mystack_web_1": container})

    with pytest.raises(ContainerExecError) as error_info:
        asyncio.run(
            engine.engine_exec(
                "mystack_web_1",
                ["/helpers/psh-open.sh", "{}"],
                ContainerExecOptions(capture=CAPTURE_STDOUT_STDERR, attempts=1),
            )
        )

    assert error_info.value.exit_code == 2
    assert error_info.value.output == b"boom"
    assert container.exec_calls[0]["stderr"] is True


def test_exec_does_not_retry_missing_container() -> None:
    sleep = _SleepRecorder()
    engine = _build_engine({}, sleep)

    with pytest.raises(ContainerNotFoundError):
        asyncio.run(engine.engine_exec("mystack_db_1", ["true"], ContainerExecOptions(attempts=3)))

    assert sleep.waits == []


def test_exec_retries_transport_and_daemon_errors() -> None:
    """Treat dropped daemon connections as failed attempts instead of escaping.

    Returns:
        None: Assertions validate retry behavior on transport errors.

    Raises:
        AssertionError: Raised when a transport error escapes the retry loop.
    """

    container = _ContainerStub(
        attrs={},
        exec_results=[RequestsConnectionError("connection aborted"), APIError("server error"), (0, b"{}")],
    )
    sleep = _SleepRecorder()
    engine = _build_engine({"mystack_db_1": container}, sleep)

    output = asyncio.run(engine.engine_exec("mystack_db_1", ["true"], ContainerExecOptions(attempts=3)))

    assert output == b"{}"
    assert len(container.exec_calls) == 3
    assert sleep.waits == [0.5, 1.0]


def test_exec_raises_exec_error_when_transport_keeps_failing() -> None:
    container = _ContainerStub(attrs={}, exec_results=[RequestsConnectionError("connection refused")] * 2)
    engine = _build_engine({"mystack_db_1": container})

    with pytest.raises(ContainerExecError) as error_info:
        asyncio.run(engine.engine_exec("mystack_db_1", ["true"], ContainerExecOptions(attempts=2)))

    assert isinstance(error_info.value.__cause__, RequestsConnectionError)


def test_exec_retries_container_lookup_transport_error() -> None:
    container = _ContainerStub(attrs={}, exec_results=[(0, b"ok")])
    sleep = _SleepRecorder()
    engine = _build_engine({"mystack_db_1": container}, sleep, lookup_errors=[RequestsConnectionError("reset")])

    output = asyncio.run(engine.engine_exec("mystack_db_1", ["true"], ContainerExecOptions(attempts=2)))

    assert output == b"ok"
    assert sleep.waits == [0.5]


def test_inspect_maps_lookup_transport_error_to_engine_error() -> None:
    engine = _build_engine({}, lookup_errors=[RequestsConnectionError("connection refused")])

    with pytest.raises(ContainerEngineError) as error_info:
        asyncio.run(engine.engine_inspect("mystack_db_1"))

    assert not isinstance(error_info.value, ContainerNotFoundError)


def test_exec_rejects_zero_attempts_before_touching_the_container() -> None:
    container = _ContainerStub(attrs={}, exec_results=[])
    engine = _build_engine({"mystack_db_1": container})

    with pytest.raises(ValueError):
        asyncio.run(engine.engine_exec("mystack_db_1", ["true"], ContainerExecOptions(attempts=0)))

    assert container.exec_calls == []


def test_retry_strategy_caps_backoff_and_validates_jitter_source() -> None:
    strategy = RetryStrategy(backoff_base_seconds=1.0, max_backoff_seconds=3.0, random_unit_interval_provider=lambda: 0.0)

    assert [strategy.strategy_calculate_retry_wait_seconds(index) for index in range(4)] == [1.0, 2.0, 3.0, 3.0]
    with pytest.raises(ValueError):
        strategy.strategy_calculate_retry_wait_seconds(-1)
    with pytest.raises(RuntimeError):
        RetryStrategy(random_unit_interval_provider=lambda: 1.5).strategy_calculate_jitter_multiplier()
    with pytest.raises(ValueError):
        RetryStrategy(max_backoff_seconds=0)
