"""Typed domain models shared across runtime layers.

This module provides the normalized in-memory representation of a Platform.sh
style stack (applications, services, routes, relationships) together with the
per-entity result contracts exchanged between lifecycle phases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
    """

    status: str
    detail: str


@dataclass(frozen=True)
class RelationshipTarget:
    """Declared target of one application relationship.

    Attributes:
        service: Target service (or application) name.
        endpoint: Endpoint name exposed by the target service.
    """

    service: str
    endpoint: str


@dataclass(frozen=True)
class Application:
    """Normalized application definition.

    Attributes:
        name: Application name, also the appserver container name.
        config_file: Path of the declaring `.platform.app.yaml` file.
        type: Runtime type string (for example `php:8.1`).
        relationships: Ordered alias to target mapping as declared.
        mount_dir: Directory that contains the declaring config file.
        source_dir: In-container source directory for the application.
        web: Raw `web` section.
        variables: Raw `variables` section.
        disk: Declared disk size in MB.
        raw: Raw application definition as parsed.
    """

    name: str
    config_file: str
    type: str
    relationships: tuple[tuple[str, RelationshipTarget], ...]
    mount_dir: str
    source_dir: str
    web: dict[str, Any] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    disk: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def application_relationship_aliases(self) -> tuple[str, ...]:
        """Return declared relationship aliases in declaration order.

        Returns:
            tuple[str, ...]: Relationship aliases.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        return tuple(alias for alias, _ in self.relationships)


@dataclass(frozen=True)
class RelationshipBinding:
    """Named edge from an application to endpoints of one backing service.

    Attributes:
        alias: Relationship name declared by the application.
        app: Declaring application name.
        service: Target service name.
        endpoint: Target endpoint name.
        endpoints: Non-empty endpoint descriptor list (dict form).
        seeded: Whether endpoints were reused from a cached OPEN payload.
    """

    alias: str
    app: str
    service: str
    endpoint: str
    endpoints: tuple[dict[str, Any], ...]
    seeded: bool = False


@dataclass(frozen=True)
class UnresolvedRelationship:
    """Explicit unresolved-relationship condition for one application.

    Attributes:
        app: Declaring application name.
        alias: Relationship name that could not be resolved.
        target: Declared `service:endpoint` target.
        reason: Short machine-readable reason code.
    """

    app: str
    alias: str
    target: str
    reason: str


@dataclass(frozen=True)
class Service:
    """Normalized backing service definition.

    Attributes:
        name: Service name, also the service container name.
        type: Service type without version (for example `mysql`).
        version: Declared version (for example `10.4`).
        disk: Declared disk size in MB.
        configuration: Raw `configuration` section.
        supported: Whether the local stack can run this service type.
        bindings: Relationship bindings keyed by `<app>.<alias>`.
    """

    name: str
    type: str
    version: str
    disk: int | None = None
    configuration: dict[str, Any] = field(default_factory=dict)
    supported: bool = True
    bindings: dict[str, RelationshipBinding] = field(default_factory=dict)

    def service_type_label(self) -> str:
        """Return `<type>:<version>` label used in endpoint descriptors.

        Returns:
            str: Type label, or bare type when no version is declared.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        if not self.version:
            return self.type
        return f"{self.type}:{self.version}"


@dataclass(frozen=True)
class Route:
    """Normalized route definition.

    Attributes:
        url: Route URL with placeholders substituted.
        original_url: Route key as declared.
        type: Route type (`upstream` or `redirect`).
        upstream: Upstream target for upstream routes.
        to: Redirect target for redirect routes.
        primary: Whether the route is the primary route.
    """

    url: str
    original_url: str
    type: str
    upstream: str | None
    to: str | None
    primary: bool


@dataclass(frozen=True)
class RawPlatformConfig:
    """Raw parsed declarative input produced by a config source.

    Attributes:
        applications: Raw application definitions.
        application_files: Config file path per application, index-aligned.
        services: Raw service definitions keyed by service name.
        routes: Raw route definitions keyed by route URL.
    """

    applications: list[dict[str, Any]]
    application_files: list[str]
    services: dict[str, dict[str, Any]]
    routes: dict[str, dict[str, Any]]


@dataclass(frozen=True)
class PlatformModel:
    """Normalized configuration model owned by one lifecycle run.

    Attributes:
        stack_name: Local stack (project) name.
        domain_suffix: Local DNS suffix (for example `lndo.site`).
        applications: Normalized applications in declaration order.
        services: Normalized services in declaration order.
        routes: Normalized routes in declaration order.
    """

    stack_name: str
    domain_suffix: str
    applications: tuple[Application, ...]
    services: tuple[Service, ...]
    routes: tuple[Route, ...]

    @property
    def domain(self) -> str:
        """Return the local app domain `<stack>.<domain-suffix>`."""

        return f"{self.stack_name}.{self.domain_suffix}"

    def model_find_application(self, name: str) -> Application | None:
        """Return the application with the given name.

        Args:
            name: Application name.

        Returns:
            Application | None: Matching application or None.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        for application in self.applications:
            if application.name == name:
                return application
        return None

    def model_find_service(self, name: str) -> Service | None:
        """Return the first service with the given name in declaration order."""

        for service in self.services:
            if service.name == name:
                return service
        return None


@dataclass(frozen=True)
class ResolvedRelationships:
    """Relationship resolution output.

    Attributes:
        services: Services with bindings attached, in declaration order.
        application_bindings: Resolved bindings per application name.
        unresolved: Unresolved-relationship conditions in declaration order.
    """

    services: tuple[Service, ...]
    application_bindings: dict[str, tuple[RelationshipBinding, ...]]
    unresolved: tuple[UnresolvedRelationship, ...]

    def resolved_unresolved_for(self, app_name: str) -> tuple[UnresolvedRelationship, ...]:
        """Return unresolved conditions for one application."""

        return tuple(item for item in self.unresolved if item.app == app_name)


@dataclass(frozen=True)
class CredentialRecord:
    """One cached credential record.

    Attributes:
        token: Machine token value.
        email: Account identity that owns the token.
        date: Issued-at timestamp in epoch seconds.
    """

    token: str
    email: str
    date: int

    def credential_to_payload(self) -> dict[str, Any]:
        """Return JSON-serializable representation.

        Returns:
            dict[str, Any]: Record payload.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        return {"token": self.token, "email": self.email, "date": self.date}

    @classmethod
    def credential_from_payload(cls, payload: dict[str, Any]) -> CredentialRecord:
        """Build a record from its cached payload.

        Args:
            payload: Cached record mapping.

        Returns:
            CredentialRecord: Parsed record.

        Raises:
            ValueError: Raised when required fields are missing.
        """

        try:
            return cls(token=str(payload["token"]), email=str(payload["email"]), date=int(payload["date"]))
        except (KeyError, TypeError) as error:
            raise ValueError(f"invalid credential record payload: {payload!r}") from error


@dataclass(frozen=True)
class EntityOutcome:
    """Per-entity phase outcome used for structural failure isolation.

    Attributes:
        entity: Service or application name.
        status: `success`, `failed`, or `skipped`.
        data: Outcome data when successful.
        error_code: Deterministic error code when failed.
        error_message: Human-readable error message when failed.
        raw_output: Raw probe output kept for diagnostics.
    """

    entity: str
    status: str
    data: Any = None
    error_code: str | None = None
    error_message: str | None = None
    raw_output: str | None = None

    def outcome_is_success(self) -> bool:
        """Return whether the outcome is successful."""

        return self.status == "success"


@dataclass(frozen=True)
class LifecyclePhaseResult:
    """Transient result of one lifecycle phase.

    Attributes:
        phase: Phase name.
        status: `success`, `partial`, `skipped`, or `failed`.
        outcomes: Per-entity outcomes collected by the phase.
        details: Structured phase details.
    """

    phase: str
    status: str
    outcomes: tuple[EntityOutcome, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    def phase_failed_outcomes(self) -> tuple[EntityOutcome, ...]:
        """Return failed outcomes in collection order."""

        return tuple(outcome for outcome in self.outcomes if outcome.status == "failed")
