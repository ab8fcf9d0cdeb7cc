"""Domain models and pure transformations for the bootstrap lifecycle."""

from .errors import (
	ConfigError,
	CredentialValidationError,
	ProbeExecutionError,
	ProbeParseError,
	RelationshipUnresolvedError,
	StackbootError,
)
from .models import (
	Application,
	CredentialRecord,
	EntityOutcome,
	HealthStatus,
	LifecyclePhaseResult,
	PlatformModel,
	RawPlatformConfig,
	RelationshipBinding,
	RelationshipTarget,
	ResolvedRelationships,
	Route,
	Service,
	UnresolvedRelationship,
)
from .timeline import domain_build_outcome_event, domain_build_stage_event

__all__ = [
	"Application",
	"ConfigError",
	"CredentialRecord",
	"CredentialValidationError",
	"EntityOutcome",
	"HealthStatus",
	"LifecyclePhaseResult",
	"PlatformModel",
	"ProbeExecutionError",
	"ProbeParseError",
	"RawPlatformConfig",
	"RelationshipBinding",
	"RelationshipTarget",
	"RelationshipUnresolvedError",
	"ResolvedRelationships",
	"Route",
	"Service",
	"StackbootError",
	"UnresolvedRelationship",
	"domain_build_outcome_event",
	"domain_build_stage_event",
]
