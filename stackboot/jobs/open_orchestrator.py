"""Two-phase OPEN protocol between backing services and application servers.

Phase 1 probes every running backing service for its endpoint descriptors.
Phase 2 starts only after every phase-1 probe has settled, and hands each
application server the descriptors of the services it declared a
relationship to. A failure of one probe is recorded as a failed outcome for
that entity and never cancels its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Final, Iterable, Mapping

from stackboot.adapters import (
    CAPTURE_STDOUT,
    ContainerEngineError,
    ContainerEnginePort,
    ContainerExecOptions,
    ContainerInspection,
)
from stackboot.db import CacheStorePort
from stackboot.domain import (
    Application,
    EntityOutcome,
    LifecyclePhaseResult,
    ProbeExecutionError,
    ProbeParseError,
    RelationshipUnresolvedError,
    Service,
)
from stackboot.domain.open_payload import (
    OPEN_RELATIONSHIPS_KEY,
    domain_build_appserver_payload,
    domain_build_open_merge,
    domain_build_service_open_payload,
    domain_get_ip_address,
    domain_merge_open_data,
    domain_parse_open_data,
    domain_serialize_payload,
)

logger = logging.getLogger(__name__)

PHASE_OPEN_SERVICES: Final[str] = "open_services"
PHASE_OPEN_APPSERVERS: Final[str] = "open_appservers"
UNEXPECTED_ERROR_CODE: Final[str] = "UNEXPECTED_ERROR"
OPEN_CACHE_WRITE_ERROR_CODE: Final[str] = "OPEN_CACHE_WRITE_ERROR"


def job_build_unexpected_outcome(entity: str, error: BaseException) -> EntityOutcome:
    """Record an exception that escaped one entity's task as a failed outcome.

    Args:
        entity: Service or application name the task was running for.
        error: Exception returned by the gathered task.

    Returns:
        EntityOutcome: Failed outcome carrying the error type and message.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    logger.warning("unexpected failure for %s: %s: %s", entity, type(error).__name__, error)
    return EntityOutcome(
        entity=entity,
        status="failed",
        data={},
        error_code=UNEXPECTED_ERROR_CODE,
        error_message=f"{type(error).__name__}: {error}",
    )


@dataclass(frozen=True)
class BootstrapOrchestratorConfig:
    """Configuration values for OPEN protocol execution.

    Attributes:
        stack_name: Local stack name; prefixes cache keys and hostnames.
        project_name: Container engine project name; prefixes container ids.
        domain_suffix: Local DNS suffix.
        probe_command: In-container OPEN helper.
        probe_attempts: Phase-1 attempts per service.
    """

    stack_name: str
    project_name: str
    domain_suffix: str = "lndo.site"
    probe_command: str = "/helpers/psh-open.sh"
    probe_attempts: int = 5

    @property
    def network_alias(self) -> str:
        return f"{self.project_name}_default"

    def config_container_id(self, entity_name: str) -> str:
        """Return the container id of one service or application server."""

        return f"{self.project_name}_{entity_name}_1"

    def config_open_cache_key(self, application_name: str) -> str:
        """Return the cache key holding the last OPEN payload of one application server."""

        return f"{self.stack_name}.{application_name}.open.cache"


def _job_phase_status(outcomes: tuple[EntityOutcome, ...]) -> str:
    if not outcomes:
        return "skipped"
    if any(outcome.status == "failed" for outcome in outcomes):
        return "partial"
    return "success"


class BootstrapOrchestrator:
    """Run the OPEN protocol against live containers."""

    def __init__(
        self,
        container_engine: ContainerEnginePort,
        cache_store: CacheStorePort,
        config: BootstrapOrchestratorConfig,
    ):
        """Initialize orchestrator dependencies.

        Args:
            container_engine: Container inspection and exec port.
            cache_store: Cache store receiving per-appserver OPEN payloads.
            config: OPEN execution configuration.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if container_engine is None:
            raise ValueError("container_engine must not be None")
        if cache_store is None:
            raise ValueError("cache_store must not be None")
        if not config.stack_name.strip():
            raise ValueError("config.stack_name must not be blank")
        if not config.project_name.strip():
            raise ValueError("config.project_name must not be blank")
        if not config.probe_command.strip():
            raise ValueError("config.probe_command must not be blank")
        if config.probe_attempts < 1:
            raise ValueError("config.probe_attempts must be >= 1")

        self._container_engine = container_engine
        self._cache_store = cache_store
        self._config = config

    async def orchestrator_open_services(
        self,
        services: Iterable[Service],
        facts: Mapping[str, ContainerInspection],
    ) -> LifecyclePhaseResult:
        """Probe every supported, running backing service concurrently.

        Returns only after every probe has settled. Failed probes contribute an
        empty endpoint mapping.

        Args:
            services: Services with bindings attached.
            facts: Inspection results keyed by entity name; absent or stopped
                entities are not probed.

        Returns:
            LifecyclePhaseResult: Outcomes per probed service; `details["service_data"]`
            maps every probed service name to its merged endpoint data.

        Raises:
            RuntimeError: Failures are isolated per service and not raised.
        """

        targets = [
            service
            for service in services
            if service.supported and service.name in facts and facts[service.name].running
        ]
        results = await asyncio.gather(
            *(self._job_probe_service(service, facts[service.name]) for service in targets),
            return_exceptions=True,
        )
        outcomes = tuple(
            job_build_unexpected_outcome(service.name, result) if isinstance(result, BaseException) else result
            for service, result in zip(targets, results)
        )
        service_data: dict[str, dict[str, list[dict[str, Any]]]] = {
            outcome.entity: (outcome.data if outcome.outcome_is_success() else {}) for outcome in outcomes
        }
        logger.debug("collected open data %s", service_data)
        return LifecyclePhaseResult(
            phase=PHASE_OPEN_SERVICES,
            status=_job_phase_status(outcomes),
            outcomes=outcomes,
            details={"service_data": service_data},
        )

    async def orchestrator_open_appservers(
        self,
        applications: Iterable[Application],
        service_data: Mapping[str, Mapping[str, list[dict[str, Any]]]],
        facts: Mapping[str, ContainerInspection],
    ) -> LifecyclePhaseResult:
        """Hand relationship payloads to every running application server.

        Args:
            applications: Applications whose servers are opened.
            service_data: Phase-1 output keyed by service name.
            facts: Inspection results keyed by entity name.

        Returns:
            LifecyclePhaseResult: Outcomes per application server;
            `details["warnings"]` lists relationships without phase-1 data.

        Raises:
            RuntimeError: Failures are isolated per application server and not raised.
        """

        targets = [
            application
            for application in applications
            if application.name in facts and facts[application.name].running
        ]
        results = await asyncio.gather(
            *(self._job_open_appserver(application, service_data) for application in targets),
            return_exceptions=True,
        )
        outcomes_list: list[EntityOutcome] = []
        warnings: list[str] = []
        for application, result in zip(targets, results):
            if isinstance(result, BaseException):
                outcomes_list.append(job_build_unexpected_outcome(application.name, result))
                continue
            outcome, application_warnings = result
            outcomes_list.append(outcome)
            warnings.extend(application_warnings)
        outcomes = tuple(outcomes_list)
        return LifecyclePhaseResult(
            phase=PHASE_OPEN_APPSERVERS,
            status=_job_phase_status(outcomes),
            outcomes=outcomes,
            details={"warnings": warnings},
        )

    async def orchestrator_run(
        self,
        services: Iterable[Service],
        applications: Iterable[Application],
        facts: Mapping[str, ContainerInspection],
    ) -> tuple[LifecyclePhaseResult, LifecyclePhaseResult]:
        """Run phase 1, wait for the barrier, then run phase 2."""

        services_phase = await self.orchestrator_open_services(services, facts)
        appservers_phase = await self.orchestrator_open_appservers(
            applications,
            services_phase.details["service_data"],
            facts,
        )
        return services_phase, appservers_phase

    async def _job_probe_service(self, service: Service, inspection: ContainerInspection) -> EntityOutcome:
        """Probe one backing service and merge live facts into its answer.

        Args:
            service: Backing service to probe.
            inspection: Live facts of its container.

        Returns:
            EntityOutcome: Success with merged endpoint data, or a failed outcome.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        command = [
            self._config.probe_command,
            domain_serialize_payload(domain_build_service_open_payload(service)),
        ]
        options = ContainerExecOptions(
            services=(service.name,),
            user="root",
            capture=CAPTURE_STDOUT,
            silent=True,
            attempts=self._config.probe_attempts,
        )
        try:
            raw_output = await self._container_engine.engine_exec(
                self._config.config_container_id(service.name),
                command,
                options,
            )
        except ContainerEngineError as error:
            execution_error = ProbeExecutionError(f"open probe failed for service {service.name}: {error}")
            logger.warning("%s", execution_error)
            return EntityOutcome(
                entity=service.name,
                status="failed",
                data={},
                error_code=execution_error.error_code,
                error_message=str(execution_error),
            )

        try:
            endpoints = domain_parse_open_data(raw_output)
        except ProbeParseError as error:
            logger.warning("could not parse open data from service %s: %s", service.name, error)
            return EntityOutcome(
                entity=service.name,
                status="failed",
                data={},
                error_code=error.error_code,
                error_message=str(error),
                raw_output=error.raw_output,
            )

        open_merge = domain_build_open_merge(
            stack_name=self._config.stack_name,
            domain_suffix=self._config.domain_suffix,
            service=service,
            ip_address=domain_get_ip_address(inspection.networks, self._config.network_alias),
        )
        return EntityOutcome(
            entity=service.name,
            status="success",
            data=domain_merge_open_data(endpoints, open_merge),
        )

    async def _job_open_appserver(
        self,
        application: Application,
        service_data: Mapping[str, Mapping[str, list[dict[str, Any]]]],
    ) -> tuple[EntityOutcome, list[str]]:
        """Persist and deliver the relationship payload of one application server.

        Args:
            application: Application to open.
            service_data: Phase-1 output keyed by service name.

        Returns:
            tuple[EntityOutcome, list[str]]: Outcome and unresolved-relationship warnings.

        Raises:
            RuntimeError: Cache and exec failures are returned as failed outcomes.
        """

        payload, missing_aliases = domain_build_appserver_payload(service_data, application)
        warnings: list[str] = []
        for alias in missing_aliases:
            unresolved = RelationshipUnresolvedError(
                f"relationship {alias} of {application.name} has no open data",
                app=application.name,
                alias=alias,
            )
            logger.warning("%s", unresolved)
            warnings.append(str(unresolved))

        # The payload must be persisted before the server is opened with it.
        try:
            self._cache_store.cache_set(self._config.config_open_cache_key(application.name), payload, persist=True)
        except (RuntimeError, ValueError) as error:
            logger.warning("could not cache open payload for %s: %s", application.name, error)
            return (
                EntityOutcome(
                    entity=application.name,
                    status="failed",
                    data={"missing_relationships": missing_aliases},
                    error_code=OPEN_CACHE_WRITE_ERROR_CODE,
                    error_message=f"open payload for application {application.name} was not cached: {error}",
                ),
                warnings,
            )
        logger.debug("open payload for %s is %s", application.name, payload)

        command = [self._config.probe_command, domain_serialize_payload({OPEN_RELATIONSHIPS_KEY: payload})]
        options = ContainerExecOptions(
            services=(application.name,),
            user="root",
            capture=CAPTURE_STDOUT,
            silent=True,
            attempts=1,
        )
        try:
            await self._container_engine.engine_exec(
                self._config.config_container_id(application.name),
                command,
                options,
            )
        except ContainerEngineError as error:
            execution_error = ProbeExecutionError(f"open probe failed for application {application.name}: {error}")
            logger.warning("%s", execution_error)
            return (
                EntityOutcome(
                    entity=application.name,
                    status="failed",
                    data={"missing_relationships": missing_aliases},
                    error_code=execution_error.error_code,
                    error_message=str(execution_error),
                ),
                warnings,
            )

        return (
            EntityOutcome(
                entity=application.name,
                status="success",
                data={"relationships": sorted(payload), "missing_relationships": missing_aliases},
            ),
            warnings,
        )
