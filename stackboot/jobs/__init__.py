"""Job layer package for lifecycle orchestration boundaries."""

from .diagnostics import job_collect_probe_failures, job_extract_failed_entities_from_timeline
from .interfaces import JobExecutionResult, JobOrchestratorPort, LifecycleRunResult, TokenRefreshResult
from .lifecycle import LifecycleConfig, LifecycleSequencer
from .open_orchestrator import BootstrapOrchestrator, BootstrapOrchestratorConfig
from .run_config import RunConfigBuilder, RunConfigDocument
from .token_cache import REFRESH_TRIGGERS, TokenCacheService

__all__ = [
	"BootstrapOrchestrator",
	"BootstrapOrchestratorConfig",
	"JobExecutionResult",
	"JobOrchestratorPort",
	"LifecycleConfig",
	"LifecycleRunResult",
	"LifecycleSequencer",
	"REFRESH_TRIGGERS",
	"RunConfigBuilder",
	"RunConfigDocument",
	"TokenCacheService",
	"TokenRefreshResult",
	"job_collect_probe_failures",
	"job_extract_failed_entities_from_timeline",
]
