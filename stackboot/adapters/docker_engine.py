"""Docker SDK adapter for container inspection and in-container command execution."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from .errors import ContainerEngineError, ContainerExecError, ContainerNotFoundError
from .interfaces import CAPTURE_STDOUT_STDERR, ContainerEnginePort, ContainerExecOptions, ContainerInspection
from .retry import RetryStrategy

logger = logging.getLogger(__name__)


class DockerContainerEngine(ContainerEnginePort):
    """Container engine backed by the docker SDK.

    SDK calls are blocking; each one runs in a worker thread so that probes
    against different containers overlap on the event loop.
    """

    def __init__(
        self,
        client: Any | None = None,
        client_factory: Callable[[], Any] = docker.from_env,
        retry_strategy: RetryStrategy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize docker engine adapter.

        Args:
            client: Optional preconfigured docker client.
            client_factory: Factory used to lazily create the client.
            retry_strategy: Wait calculation between exec attempts.
            sleep: Awaitable sleep used between exec attempts.

        Returns:
            None: Initializer does not return a value.

        Raises:
            RuntimeError: This initializer does not raise runtime errors.
        """

        self._client = client
        self._client_factory = client_factory
        self._retry_strategy = retry_strategy or RetryStrategy()
        self._sleep = sleep

    async def engine_inspect(self, container_id: str) -> ContainerInspection:
        """Inspect one container for running state and network addresses.

        Args:
            container_id: Container id or name.

        Returns:
            ContainerInspection: Running flag and network alias to IP mapping.

        Raises:
            ContainerNotFoundError: Raised when the container does not exist.
            ContainerEngineError: Raised when the docker daemon call fails.
        """

        attributes = await asyncio.to_thread(self._engine_inspect_sync, container_id)
        state = attributes.get("State") or {}
        raw_networks = (attributes.get("NetworkSettings") or {}).get("Networks") or {}
        networks = {
            str(alias): (network.get("IPAddress") or None) if isinstance(network, dict) else None
            for alias, network in raw_networks.items()
        }
        return ContainerInspection(
            container_id=container_id,
            running=bool(state.get("Running")),
            networks=networks,
        )

    async def engine_exec(self, container_id: str, command: list[str], options: ContainerExecOptions) -> bytes:
        """Execute a command, retrying failed attempts up to `options.attempts`.

        Args:
            container_id: Container id or name.
            command: Command argv.
            options: Execution options.

        Returns:
            bytes: Captured output of the first successful attempt.

        Raises:
            ValueError: Raised when command is empty or attempts is below one.
            ContainerNotFoundError: Raised immediately when the container does not exist.
            ContainerExecError: Raised with the last failure when every attempt failed.
        """

        if not command:
            raise ValueError("command must not be empty")
        if options.attempts < 1:
            raise ValueError("attempts must be >= 1")

        last_error: ContainerExecError | None = None
        for attempt_index in range(options.attempts):
            if attempt_index > 0:
                wait_seconds = self._retry_strategy.strategy_calculate_retry_wait_seconds(attempt_index - 1)
                logger.debug(
                    "retrying exec in %s (attempt %d/%d) after %.2fs",
                    container_id,
                    attempt_index + 1,
                    options.attempts,
                    wait_seconds,
                )
                if wait_seconds > 0:
                    await self._sleep(wait_seconds)
            try:
                output = await asyncio.to_thread(self._engine_exec_sync, container_id, command, options)
            except ContainerExecError as error:
                last_error = error
                logger.debug("exec in %s failed: %s", container_id, error)
                continue

            if not options.silent:
                logger.info("%s: %s", container_id, output.decode("utf-8", errors="replace").rstrip())
            return output

        if last_error is None:
            raise ContainerExecError(f"exec in {container_id} made no attempts")
        raise last_error

    def _engine_client(self) -> Any:
        if self._client is None:
            try:
                self._client = self._client_factory()
            except DockerException as error:
                raise ContainerEngineError("docker daemon is not reachable") from error
        return self._client

    def _engine_get_container(self, container_id: str) -> Any:
        try:
            return self._engine_client().containers.get(container_id)
        except NotFound as error:
            raise ContainerNotFoundError(f"container {container_id} does not exist") from error
        except (DockerException, RequestException) as error:
            raise ContainerEngineError(f"failed to look up container {container_id}: {error}") from error

    def _engine_inspect_sync(self, container_id: str) -> dict[str, Any]:
        return dict(self._engine_get_container(container_id).attrs or {})

    def _engine_exec_sync(self, container_id: str, command: list[str], options: ContainerExecOptions) -> bytes:
        try:
            container = self._engine_get_container(container_id)
        except ContainerNotFoundError:
            raise
        except ContainerEngineError as error:
            # Retried like any failed exec attempt.
            raise ContainerExecError(str(error)) from error
        try:
            exec_result = container.exec_run(
                cmd=command,
                user=options.user,
                stdout=True,
                stderr=options.capture == CAPTURE_STDOUT_STDERR,
                tty=False,
                demux=False,
            )
        except (DockerException, RequestException) as error:
            raise ContainerExecError(f"exec in {container_id} failed: {error}") from error

        exit_code, output = exec_result
        output_bytes = bytes(output or b"")
        if exit_code not in (0, None):
            raise ContainerExecError(
                f"{command[0]} exited with code {exit_code} in {container_id}",
                exit_code=exit_code,
                output=output_bytes,
            )
        return output_bytes
