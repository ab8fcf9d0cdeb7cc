"""Service type support policy for the local container stack."""

from __future__ import annotations

from typing import Final, Iterable

from .models import Service

SUPPORTED_SERVICE_TYPES: Final[frozenset[str]] = frozenset(
    {
        "elasticsearch",
        "influxdb",
        "kafka",
        "mariadb",
        "memcached",
        "mongodb",
        "mysql",
        "oracle-mysql",
        "postgresql",
        "rabbitmq",
        "redis",
        "redis-persistent",
        "solr",
        "varnish",
    }
)


def domain_service_type_is_supported(service_type: str) -> bool:
    """Return whether a service type can run as a local backing container.

    Args:
        service_type: Service type without version.

    Returns:
        bool: True when the type is supported.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return service_type.strip().lower() in SUPPORTED_SERVICE_TYPES


def domain_list_unsupported_services(services: Iterable[Service]) -> list[str]:
    """Return unsupported service names in declaration order.

    Args:
        services: Normalized services.

    Returns:
        list[str]: Names of services that will not get a container.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return [service.name for service in services if not service.supported]
