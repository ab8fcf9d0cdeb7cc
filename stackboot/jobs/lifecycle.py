"""Job-layer lifecycle sequencer with deterministic phase timeline persistence."""

from __future__ import annotations

import asyncio
import logging
import traceback
from dataclasses import dataclass, replace
from typing import Any, Final

from stackboot.adapters import (
    ConfigSourcePort,
    ContainerEngineError,
    ContainerEnginePort,
    ContainerInspection,
    ContainerNotFoundError,
)
from stackboot.db import CacheStorePort
from stackboot.domain import (
    ConfigError,
    EntityOutcome,
    LifecyclePhaseResult,
    PlatformModel,
    ResolvedRelationships,
    domain_build_outcome_event,
    domain_build_stage_event,
)
from stackboot.domain.platform_config import domain_config_normalize, domain_find_closest_application
from stackboot.domain.relationships import domain_resolve_relationships
from stackboot.domain.service_support import domain_list_unsupported_services

from .diagnostics import job_collect_probe_failures, job_describe_failure, job_describe_unresolved
from .interfaces import JobExecutionResult, JobOrchestratorPort, LifecycleRunResult
from .open_orchestrator import BootstrapOrchestrator, job_build_unexpected_outcome
from .run_config import RunConfigBuilder

logger = logging.getLogger(__name__)

PHASE_CONFIG_NORMALIZE: Final[str] = "config_normalize"
PHASE_RELATIONSHIP_RESOLUTION: Final[str] = "relationship_resolution"
PHASE_RUN_CONFIG_GENERATION: Final[str] = "run_config_generation"
PHASE_RUN_CONFIG_WRITE: Final[str] = "run_config_write"
PHASE_CONTAINER_FACTS: Final[str] = "container_facts"
PHASE_SUMMARY: Final[str] = "summary"


@dataclass(frozen=True)
class LifecycleConfig:
    """Configuration values for lifecycle execution.

    Attributes:
        stack_name: Local stack name; prefixes cache keys.
        project_name: Container engine project name.
        domain_suffix: Local DNS suffix.
        platform_root: Project root directory.
        working_dir: Directory used for the closest-application lookup.
    """

    stack_name: str
    project_name: str
    domain_suffix: str = "lndo.site"
    platform_root: str = "."
    working_dir: str = "."

    @property
    def runconfig_lock_key(self) -> str:
        return f"{self.stack_name}.runconfig.lock"

    @property
    def lifecycle_last_key(self) -> str:
        return f"{self.stack_name}.lifecycle.last"

    def config_open_cache_key(self, application_name: str) -> str:
        return f"{self.stack_name}.{application_name}.open.cache"


class LifecycleSequencer(JobOrchestratorPort):
    """Sequence config, run config, container facts and OPEN phases for one stack."""

    _LIFECYCLE_JOB_NAME = "lifecycle_run"

    def __init__(
        self,
        config_source: ConfigSourcePort,
        container_engine: ContainerEnginePort,
        cache_store: CacheStorePort,
        orchestrator: BootstrapOrchestrator,
        run_config_builder: RunConfigBuilder,
        config: LifecycleConfig,
    ):
        """Initialize lifecycle dependencies.

        Args:
            config_source: Raw declarative config source.
            container_engine: Container inspection port.
            cache_store: Persistent cache store.
            orchestrator: OPEN protocol orchestrator.
            run_config_builder: Run config document builder.
            config: Lifecycle configuration.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if config_source is None:
            raise ValueError("config_source must not be None")
        if container_engine is None:
            raise ValueError("container_engine must not be None")
        if cache_store is None:
            raise ValueError("cache_store must not be None")
        if orchestrator is None:
            raise ValueError("orchestrator must not be None")
        if run_config_builder is None:
            raise ValueError("run_config_builder must not be None")
        if not config.stack_name.strip():
            raise ValueError("config.stack_name must not be blank")
        if not config.project_name.strip():
            raise ValueError("config.project_name must not be blank")

        self._config_source = config_source
        self._container_engine = container_engine
        self._cache_store = cache_store
        self._orchestrator = orchestrator
        self._run_config_builder = run_config_builder
        self._config = config

    def job_supported_names(self) -> tuple[str, ...]:
        """Return supported job names.

        Returns:
            tuple[str, ...]: Supported job names.

        Raises:
            RuntimeError: This implementation does not raise runtime errors.
        """

        return (self._LIFECYCLE_JOB_NAME,)

    def job_execute(self, job_name: str) -> JobExecutionResult:
        """Execute the lifecycle in a fresh event loop.

        Args:
            job_name: Name of job to execute.

        Returns:
            JobExecutionResult: Final execution status payload.

        Raises:
            ValueError: Raised when job name is unsupported.
        """

        normalized_job_name = job_name.strip()
        if normalized_job_name != self._LIFECYCLE_JOB_NAME:
            raise ValueError(f"unsupported job_name={normalized_job_name}")
        result = self.lifecycle_execute()
        return JobExecutionResult(job_name=normalized_job_name, status=result.status)

    def lifecycle_execute(self, rebuild: bool = False) -> LifecycleRunResult:
        """Run the lifecycle from synchronous code."""

        return asyncio.run(self.lifecycle_run(rebuild=rebuild))

    def lifecycle_last(self) -> dict[str, Any] | None:
        """Return the persisted result of the previous run, if any."""

        cached_result = self._cache_store.cache_get(self._config.lifecycle_last_key)
        return cached_result if isinstance(cached_result, dict) else None

    async def lifecycle_run(self, rebuild: bool = False) -> LifecycleRunResult:
        """Run every lifecycle phase in order and persist the timeline.

        Args:
            rebuild: Drop the run config lock and cached OPEN payloads first.

        Returns:
            LifecycleRunResult: Final status, timeline, warnings and phases.

        Raises:
            RuntimeError: Raised when the cache store cannot persist the result.
        """

        timeline: list[dict[str, object]] = [domain_build_stage_event(stage="run", status="started")]
        warnings: list[str] = []
        phases: list[LifecyclePhaseResult] = []

        timeline.append(domain_build_stage_event(stage=PHASE_CONFIG_NORMALIZE, status="started"))
        try:
            model, closest_application_name = self._job_normalize_config()
        except ConfigError as error:
            logger.error("%s", error)
            timeline.append(
                domain_build_stage_event(
                    stage=PHASE_CONFIG_NORMALIZE,
                    status="failed",
                    details={
                        "error_code": error.error_code,
                        "error_message": str(error),
                        "traceback": traceback.format_exc(),
                    },
                )
            )
            phases.append(LifecyclePhaseResult(phase=PHASE_CONFIG_NORMALIZE, status="failed"))
            return self._job_finalize(status="failed", timeline=timeline, warnings=[str(error)], phases=phases)

        unsupported_services = domain_list_unsupported_services(model.services)
        for service_name in unsupported_services:
            warnings.append(f"service {service_name} is not supported and will not run")
            logger.warning("service %s is not supported and will not run", service_name)
        phases.append(
            LifecyclePhaseResult(
                phase=PHASE_CONFIG_NORMALIZE,
                status="success",
                details={"closest_application": closest_application_name},
            )
        )
        timeline.append(
            domain_build_stage_event(
                stage=PHASE_CONFIG_NORMALIZE,
                status="completed",
                details={
                    "applications": [application.name for application in model.applications],
                    "services": [service.name for service in model.services],
                    "closest_application": closest_application_name,
                    "unsupported_services": unsupported_services,
                },
            )
        )

        if rebuild:
            self._job_invalidate_caches(model)

        resolved = self._job_resolve_relationships(model, closest_application_name, timeline, warnings, phases)
        model = replace(model, services=resolved.services)

        timeline.append(domain_build_stage_event(stage=PHASE_RUN_CONFIG_GENERATION, status="started"))
        documents = self._run_config_builder.run_config_build(model, resolved)
        phases.append(LifecyclePhaseResult(phase=PHASE_RUN_CONFIG_GENERATION, status="success"))
        timeline.append(
            domain_build_stage_event(
                stage=PHASE_RUN_CONFIG_GENERATION,
                status="completed",
                details={"documents": [document.name for document in documents]},
            )
        )

        if self._cache_store.cache_get(self._config.runconfig_lock_key):
            phases.append(LifecyclePhaseResult(phase=PHASE_RUN_CONFIG_WRITE, status="skipped"))
            timeline.append(
                domain_build_stage_event(
                    stage=PHASE_RUN_CONFIG_WRITE,
                    status="skipped",
                    details={"reason": "lock_present"},
                )
            )
        else:
            written_files = self._run_config_builder.run_config_write(documents)
            self._cache_store.cache_set(self._config.runconfig_lock_key, True, persist=True)
            phases.append(LifecyclePhaseResult(phase=PHASE_RUN_CONFIG_WRITE, status="success"))
            timeline.append(
                domain_build_stage_event(
                    stage=PHASE_RUN_CONFIG_WRITE,
                    status="completed",
                    details={"files": written_files},
                )
            )

        facts = await self._job_collect_container_facts(model, timeline, phases)

        services_phase = await self._orchestrator.orchestrator_open_services(model.services, facts)
        self._job_record_phase(services_phase, timeline, warnings, phases)

        appservers_phase = await self._orchestrator.orchestrator_open_appservers(
            model.applications,
            services_phase.details["service_data"],
            facts,
        )
        self._job_record_phase(appservers_phase, timeline, warnings, phases)
        warnings.extend(appservers_phase.details.get("warnings", []))

        probe_failures = job_collect_probe_failures(phases)
        summary_details = {
            "unsupported_services": unsupported_services,
            "unresolved_relationships": [
                {"app": item.app, "alias": item.alias, "target": item.target, "reason": item.reason}
                for item in resolved.unresolved
            ],
            "probe_failures": probe_failures,
        }
        timeline.append(domain_build_stage_event(stage=PHASE_SUMMARY, status="completed", details=summary_details))
        phases.append(LifecyclePhaseResult(phase=PHASE_SUMMARY, status="success", details=summary_details))

        status = "partial" if warnings or probe_failures else "success"
        return self._job_finalize(status=status, timeline=timeline, warnings=warnings, phases=phases)

    def _job_normalize_config(self) -> tuple[PlatformModel, str]:
        """Load declarations, normalize them and find the closest application.

        Returns:
            tuple[PlatformModel, str]: Normalized model and closest application name.

        Raises:
            ConfigError: Raised when no valid application exists or none is closest.
        """

        raw_config = self._config_source.config_source_load()
        model = domain_config_normalize(
            raw_config,
            stack_name=self._config.stack_name,
            domain_suffix=self._config.domain_suffix,
            platform_root=self._config.platform_root,
        )
        closest_application = domain_find_closest_application(model.applications, self._config.working_dir)
        logger.debug("closest application is %s", closest_application.name)
        return model, closest_application.name

    def _job_invalidate_caches(self, model: PlatformModel) -> None:
        self._cache_store.cache_remove(self._config.runconfig_lock_key)
        for application in model.applications:
            self._cache_store.cache_remove(self._config.config_open_cache_key(application.name))
        logger.info("dropped run config lock and cached open payloads for rebuild")

    def _job_resolve_relationships(
        self,
        model: PlatformModel,
        closest_application_name: str,
        timeline: list[dict[str, object]],
        warnings: list[str],
        phases: list[LifecyclePhaseResult],
    ) -> ResolvedRelationships:
        """Resolve relationships seeded from the closest application's cached payload.

        Args:
            model: Normalized platform model.
            closest_application_name: Application whose cached payload seeds resolution.
            timeline: Mutable stage timeline events.
            warnings: Mutable warning list.
            phases: Mutable phase result list.

        Returns:
            ResolvedRelationships: Resolution output.

        Raises:
            RuntimeError: Raised when the cache store read fails.
        """

        timeline.append(domain_build_stage_event(stage=PHASE_RELATIONSHIP_RESOLUTION, status="started"))
        seed_payload = self._cache_store.cache_get(self._config.config_open_cache_key(closest_application_name))
        seed_payloads = {closest_application_name: seed_payload} if seed_payload is not None else None
        resolved = domain_resolve_relationships(model, seed_payloads)

        for unresolved in resolved.unresolved:
            description = job_describe_unresolved(unresolved)
            logger.warning("%s", description)
            warnings.append(description)

        seeded_aliases = [
            f"{binding.app}.{binding.alias}"
            for bindings in resolved.application_bindings.values()
            for binding in bindings
            if binding.seeded
        ]
        phases.append(
            LifecyclePhaseResult(
                phase=PHASE_RELATIONSHIP_RESOLUTION,
                status="partial" if resolved.unresolved else "success",
            )
        )
        timeline.append(
            domain_build_stage_event(
                stage=PHASE_RELATIONSHIP_RESOLUTION,
                status="completed",
                details={
                    "seeded": seeded_aliases,
                    "unresolved_count": len(resolved.unresolved),
                },
            )
        )
        return resolved

    async def _job_collect_container_facts(
        self,
        model: PlatformModel,
        timeline: list[dict[str, object]],
        phases: list[LifecyclePhaseResult],
    ) -> dict[str, ContainerInspection]:
        """Inspect every supported service and application server container.

        Args:
            model: Platform model with bound services.
            timeline: Mutable stage timeline events.
            phases: Mutable phase result list.

        Returns:
            dict[str, ContainerInspection]: Running containers keyed by entity name.

        Raises:
            RuntimeError: Inspection failures are recorded and not raised.
        """

        timeline.append(domain_build_stage_event(stage=PHASE_CONTAINER_FACTS, status="started"))
        entity_names = [service.name for service in model.services if service.supported]
        entity_names.extend(application.name for application in model.applications)
        results = await asyncio.gather(
            *(self._job_inspect_entity(name) for name in entity_names),
            return_exceptions=True,
        )
        outcomes = [
            job_build_unexpected_outcome(name, result) if isinstance(result, BaseException) else result
            for name, result in zip(entity_names, results)
        ]

        facts: dict[str, ContainerInspection] = {}
        for outcome in outcomes:
            if outcome.outcome_is_success():
                facts[outcome.entity] = outcome.data
            else:
                timeline.append(domain_build_outcome_event(stage=PHASE_CONTAINER_FACTS, outcome=outcome))

        failed = [outcome for outcome in outcomes if outcome.status == "failed"]
        phases.append(
            LifecyclePhaseResult(
                phase=PHASE_CONTAINER_FACTS,
                status="partial" if failed else "success",
                outcomes=tuple(outcomes),
            )
        )
        timeline.append(
            domain_build_stage_event(
                stage=PHASE_CONTAINER_FACTS,
                status="completed",
                details={"running": sorted(facts)},
            )
        )
        return facts

    async def _job_inspect_entity(self, entity_name: str) -> EntityOutcome:
        container_id = self._job_container_id(entity_name)
        try:
            inspection = await self._container_engine.engine_inspect(container_id)
        except ContainerNotFoundError as error:
            return EntityOutcome(entity=entity_name, status="skipped", error_message=str(error))
        except ContainerEngineError as error:
            logger.warning("could not inspect %s: %s", container_id, error)
            return EntityOutcome(
                entity=entity_name,
                status="failed",
                error_code="CONTAINER_INSPECT_ERROR",
                error_message=str(error),
            )
        if not inspection.running:
            return EntityOutcome(entity=entity_name, status="skipped", error_message=f"{container_id} is not running")
        return EntityOutcome(entity=entity_name, status="success", data=inspection)

    def _job_container_id(self, entity_name: str) -> str:
        return f"{self._config.project_name}_{entity_name}_1"

    def _job_record_phase(
        self,
        phase: LifecyclePhaseResult,
        timeline: list[dict[str, object]],
        warnings: list[str],
        phases: list[LifecyclePhaseResult],
    ) -> None:
        for outcome in phase.phase_failed_outcomes():
            timeline.append(domain_build_outcome_event(stage=phase.phase, outcome=outcome))
            warnings.append(job_describe_failure(outcome))
        timeline.append(
            domain_build_stage_event(
                stage=phase.phase,
                status="completed" if phase.status != "skipped" else "skipped",
                details={"entities": [outcome.entity for outcome in phase.outcomes]},
            )
        )
        phases.append(phase)

    def _job_finalize(
        self,
        status: str,
        timeline: list[dict[str, object]],
        warnings: list[str],
        phases: list[LifecyclePhaseResult],
    ) -> LifecycleRunResult:
        timeline.append(domain_build_stage_event(stage="run", status=status))
        result = LifecycleRunResult(status=status, timeline=timeline, warnings=warnings, phases=tuple(phases))
        self._cache_store.cache_set(self._config.lifecycle_last_key, result.result_to_payload(), persist=True)
        logger.info("lifecycle run finished with status %s", status)
        return result
