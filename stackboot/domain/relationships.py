"""Relationship resolution between applications and backing services."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from .models import (
    PlatformModel,
    RelationshipBinding,
    RelationshipTarget,
    ResolvedRelationships,
    Service,
    UnresolvedRelationship,
)
from .open_payload import CLUSTER_NAME, domain_build_service_hostname, domain_extract_seed_relationships

UNRESOLVED_UNKNOWN_SERVICE = "unknown_service"
UNRESOLVED_TARGET_IS_APPLICATION = "target_is_application"
UNRESOLVED_UNSUPPORTED_SERVICE = "unsupported_service"


def domain_build_static_endpoint(model: PlatformModel, service: Service, endpoint: str) -> dict[str, Any]:
    """Derive one endpoint descriptor from declarative config alone.

    Args:
        model: Normalized platform model.
        service: Target backing service.
        endpoint: Target endpoint name.

    Returns:
        dict[str, Any]: Descriptor without live facts (`ip` is None).

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return {
        "cluster": CLUSTER_NAME,
        "fragment": None,
        "hostname": domain_build_service_hostname(model.stack_name, service.name, model.domain_suffix),
        "ip": None,
        "rel": endpoint,
        "service": service.name,
        "type": service.service_type_label(),
    }


def _domain_seed_is_stable(descriptors: list[dict[str, Any]], service: Service, endpoint: str) -> bool:
    # A seed is stale once the alias points at a different service, type or endpoint.
    return all(
        descriptor.get("service") == service.name
        and descriptor.get("type") == service.service_type_label()
        and descriptor.get("rel", endpoint) == endpoint
        for descriptor in descriptors
    )


def _domain_select_target_service(model: PlatformModel, target: RelationshipTarget) -> Service | None:
    for service in model.services:
        if service.name == target.service:
            return service
    return None


def domain_resolve_relationships(
    model: PlatformModel,
    seed_payloads: Mapping[str, object] | None = None,
) -> ResolvedRelationships:
    """Bind every declared application relationship to a backing service.

    Every declared alias ends up either as a binding with a non-empty
    endpoint list or as an explicit unresolved condition. Services are
    searched in declaration order, so the first matching service wins.

    Args:
        model: Normalized platform model.
        seed_payloads: Cached OPEN payloads keyed by application name. Seeded
            endpoints are reused when they still point at the same service.

    Returns:
        ResolvedRelationships: Services with bindings attached, bindings per
        application, and unresolved conditions.

    Raises:
        RuntimeError: This function does not raise runtime errors.
    """

    seeds = {
        app_name: domain_extract_seed_relationships(payload)
        for app_name, payload in (seed_payloads or {}).items()
    }
    service_bindings: dict[str, dict[str, RelationshipBinding]] = {service.name: {} for service in model.services}
    application_bindings: dict[str, tuple[RelationshipBinding, ...]] = {}
    unresolved: list[UnresolvedRelationship] = []

    for application in model.applications:
        resolved_for_application: list[RelationshipBinding] = []
        application_seed = seeds.get(application.name, {})
        for alias, target in application.relationships:
            target_label = f"{target.service}:{target.endpoint}"
            service = _domain_select_target_service(model, target)
            if service is None:
                reason = (
                    UNRESOLVED_TARGET_IS_APPLICATION
                    if model.model_find_application(target.service) is not None
                    else UNRESOLVED_UNKNOWN_SERVICE
                )
                unresolved.append(UnresolvedRelationship(app=application.name, alias=alias, target=target_label, reason=reason))
                continue
            if not service.supported:
                unresolved.append(
                    UnresolvedRelationship(
                        app=application.name,
                        alias=alias,
                        target=target_label,
                        reason=UNRESOLVED_UNSUPPORTED_SERVICE,
                    )
                )
                continue

            seeded_descriptors = application_seed.get(alias)
            if seeded_descriptors and _domain_seed_is_stable(seeded_descriptors, service, target.endpoint):
                endpoints = tuple(seeded_descriptors)
                seeded = True
            else:
                endpoints = (domain_build_static_endpoint(model, service, target.endpoint),)
                seeded = False

            binding = RelationshipBinding(
                alias=alias,
                app=application.name,
                service=service.name,
                endpoint=target.endpoint,
                endpoints=endpoints,
                seeded=seeded,
            )
            resolved_for_application.append(binding)
            service_bindings[service.name][f"{application.name}.{alias}"] = binding
        application_bindings[application.name] = tuple(resolved_for_application)

    bound_services = tuple(replace(service, bindings=dict(service_bindings[service.name])) for service in model.services)
    return ResolvedRelationships(
        services=bound_services,
        application_bindings=application_bindings,
        unresolved=tuple(unresolved),
    )
