"""Normalization of raw Platform.sh style declarations into the config model.

All functions are pure transformations: they take raw parsed mappings (as
produced by a config source) and return frozen model instances.
"""

from __future__ import annotations

import os
from pathlib import PurePosixPath
from typing import Any, Final

from .errors import ConfigError
from .models import Application, PlatformModel, RawPlatformConfig, RelationshipTarget, Route, Service
from .service_support import domain_service_type_is_supported

APPLICATION_SOURCE_ROOT: Final[str] = "/app"
_DOMAIN_ROUTE_PLACEHOLDERS: Final[tuple[str, ...]] = ("{default}", "{all}")


def domain_split_type_label(type_label: str) -> tuple[str, str]:
    """Split a `<type>:<version>` declaration into its parts.

    Args:
        type_label: Declared type label.

    Returns:
        tuple[str, str]: Type and version; version is empty when not declared.

    Raises:
        ValueError: Raised when the type part is blank.
    """

    service_type, _, version = type_label.strip().partition(":")
    if not service_type.strip():
        raise ValueError(f"invalid type declaration: {type_label!r}")
    return service_type.strip(), version.strip()


def domain_parse_relationship_target(alias: str, declaration: str) -> RelationshipTarget:
    """Parse one `service:endpoint` relationship declaration.

    Args:
        alias: Relationship name declared by the application.
        declaration: Raw relationship value.

    Returns:
        RelationshipTarget: Target service and endpoint. The alias doubles as
        endpoint name when the declaration omits it.

    Raises:
        ValueError: Raised when the service part is blank.
    """

    service_name, _, endpoint_name = str(declaration).strip().partition(":")
    if not service_name.strip():
        raise ValueError(f"relationship {alias!r} has no target service")
    return RelationshipTarget(service=service_name.strip(), endpoint=endpoint_name.strip() or alias)


def domain_parse_applications(
    applications: list[dict[str, Any]],
    application_files: list[str],
    platform_root: str,
) -> tuple[Application, ...]:
    """Normalize raw application definitions.

    Definitions without a name are not valid applications and are dropped.

    Args:
        applications: Raw application definitions.
        application_files: Config file path per application, index-aligned.
        platform_root: Project root directory used to derive source dirs.

    Returns:
        tuple[Application, ...]: Applications in declaration order.

    Raises:
        ConfigError: Raised when a relationship declaration is malformed.
    """

    normalized_applications: list[Application] = []
    for index, raw_application in enumerate(applications):
        if not isinstance(raw_application, dict):
            continue
        application_name = str(raw_application.get("name") or "").strip()
        if not application_name:
            continue

        config_file = application_files[index] if index < len(application_files) else ""
        mount_dir = os.path.dirname(config_file) if config_file else platform_root
        relative_mount_dir = os.path.relpath(mount_dir, platform_root) if platform_root else "."
        source_dir = str(PurePosixPath(APPLICATION_SOURCE_ROOT) / relative_mount_dir.replace(os.sep, "/"))

        relationships: list[tuple[str, RelationshipTarget]] = []
        for alias, declaration in (raw_application.get("relationships") or {}).items():
            try:
                relationships.append((str(alias), domain_parse_relationship_target(str(alias), declaration)))
            except ValueError as error:
                raise ConfigError(f"application {application_name}: {error}") from error

        disk_value = raw_application.get("disk")
        normalized_applications.append(
            Application(
                name=application_name,
                config_file=config_file,
                type=str(raw_application.get("type") or ""),
                relationships=tuple(relationships),
                mount_dir=mount_dir,
                source_dir=source_dir,
                web=dict(raw_application.get("web") or {}),
                variables=dict(raw_application.get("variables") or {}),
                disk=int(disk_value) if disk_value is not None else None,
                raw=dict(raw_application),
            )
        )
    return tuple(normalized_applications)


def domain_parse_services(services: dict[str, dict[str, Any]]) -> tuple[Service, ...]:
    """Normalize raw service definitions keyed by service name.

    Args:
        services: Raw `services.yaml` mapping.

    Returns:
        tuple[Service, ...]: Services in declaration order, without bindings.

    Raises:
        ConfigError: Raised when a service has no type.
    """

    normalized_services: list[Service] = []
    for service_name, raw_service in (services or {}).items():
        raw_service = raw_service or {}
        try:
            service_type, version = domain_split_type_label(str(raw_service.get("type") or ""))
        except ValueError as error:
            raise ConfigError(f"service {service_name}: {error}") from error
        disk_value = raw_service.get("disk")
        normalized_services.append(
            Service(
                name=str(service_name),
                type=service_type,
                version=version,
                disk=int(disk_value) if disk_value is not None else None,
                configuration=dict(raw_service.get("configuration") or {}),
                supported=domain_service_type_is_supported(service_type),
            )
        )
    return tuple(normalized_services)


def domain_parse_routes(routes: dict[str, dict[str, Any]], domain: str) -> tuple[Route, ...]:
    """Normalize raw route definitions for the local domain.

    Args:
        routes: Raw `routes.yaml` mapping keyed by route URL.
        domain: Local app domain substituted for route placeholders.

    Returns:
        tuple[Route, ...]: Routes in declaration order with exactly one primary
        route when at least one upstream route exists.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    parsed_routes: list[Route] = []
    explicit_primary = any(bool((config or {}).get("primary")) for config in (routes or {}).values())
    primary_assigned = False
    for original_url, route_config in (routes or {}).items():
        route_config = route_config or {}
        url = str(original_url)
        for placeholder in _DOMAIN_ROUTE_PLACEHOLDERS:
            url = url.replace(placeholder, domain)
        route_type = str(route_config.get("type") or "upstream")
        if explicit_primary:
            is_primary = bool(route_config.get("primary"))
        else:
            is_primary = route_type == "upstream" and not primary_assigned
        primary_assigned = primary_assigned or is_primary
        parsed_routes.append(
            Route(
                url=url,
                original_url=str(original_url),
                type=route_type,
                upstream=route_config.get("upstream"),
                to=route_config.get("to"),
                primary=is_primary,
            )
        )
    return tuple(parsed_routes)


def domain_config_normalize(
    raw_config: RawPlatformConfig,
    stack_name: str,
    domain_suffix: str,
    platform_root: str,
) -> PlatformModel:
    """Normalize a raw declarative config into the platform model.

    Args:
        raw_config: Raw parsed declarations.
        stack_name: Local stack (project) name.
        domain_suffix: Local DNS suffix.
        platform_root: Project root directory.

    Returns:
        PlatformModel: Normalized model.

    Raises:
        ConfigError: Raised when no valid application definitions exist.
    """

    applications = domain_parse_applications(
        applications=raw_config.applications,
        application_files=raw_config.application_files,
        platform_root=platform_root,
    )
    if not applications:
        raise ConfigError(f"could not detect any valid .platform.app.yaml definitions in {platform_root}")

    return PlatformModel(
        stack_name=stack_name,
        domain_suffix=domain_suffix,
        applications=applications,
        services=domain_parse_services(raw_config.services),
        routes=domain_parse_routes(raw_config.routes, f"{stack_name}.{domain_suffix}"),
    )


def domain_find_closest_application(applications: tuple[Application, ...], start_dir: str) -> Application:
    """Return the application whose config directory is nearest to `start_dir`.

    Args:
        applications: Normalized applications.
        start_dir: Directory to search upward from.

    Returns:
        Application: Application with the deepest config directory that is
        `start_dir` itself or one of its ancestors.

    Raises:
        ConfigError: Raised when no application config sits on that path.
    """

    normalized_start_dir = os.path.abspath(start_dir)
    closest_application: Application | None = None
    closest_depth = -1
    for application in applications:
        if not application.config_file:
            continue
        application_dir = os.path.abspath(os.path.dirname(application.config_file))
        try:
            common_path = os.path.commonpath([application_dir, normalized_start_dir])
        except ValueError:
            continue
        if common_path != application_dir:
            continue
        depth = len(PurePosixPath(application_dir.replace(os.sep, "/")).parts)
        if depth > closest_depth:
            closest_application = application
            closest_depth = depth

    if closest_application is None:
        raise ConfigError(f"no application definition found at or above {normalized_start_dir}")
    return closest_application
