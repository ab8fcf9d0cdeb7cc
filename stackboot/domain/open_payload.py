"""OPEN protocol payload helpers.

Backing services answer the OPEN probe with a JSON document mapping endpoint
names to endpoint descriptor lists. These helpers parse that output, mix in
live container facts, and assemble the relationship payload handed to each
application server.
"""

from __future__ import annotations

import json
from typing import Any, Final, Mapping

from .errors import ProbeParseError
from .models import Application, Service

CLUSTER_NAME: Final[str] = "bespin"
OPEN_RELATIONSHIPS_KEY: Final[str] = "relationships"


def domain_build_service_hostname(stack_name: str, service_name: str, domain_suffix: str) -> str:
    """Build the synthesized internal hostname for one service container.

    Args:
        stack_name: Local stack (project) name.
        service_name: Service name.
        domain_suffix: Local DNS suffix.

    Returns:
        str: Hostname of the form `<app>.<service>.service._.<domain-suffix>`.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return f"{stack_name}.{service_name}.service._.{domain_suffix}"


def domain_build_open_merge(
    stack_name: str,
    domain_suffix: str,
    service: Service,
    ip_address: str | None,
) -> dict[str, Any]:
    """Build the live-fact descriptor merged into every probed endpoint.

    Args:
        stack_name: Local stack (project) name.
        domain_suffix: Local DNS suffix.
        service: Probed backing service.
        ip_address: Container IP address on the stack default network.

    Returns:
        dict[str, Any]: Provenance and live-fact fields.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return {
        "cluster": CLUSTER_NAME,
        "fragment": None,
        "hostname": domain_build_service_hostname(stack_name, service.name, domain_suffix),
        "ip": ip_address,
        "service": service.name,
        "type": service.service_type_label(),
    }


def domain_parse_open_data(raw_output: bytes | str) -> dict[str, list[dict[str, Any]]]:
    """Parse phase-1 probe output into endpoint descriptor lists.

    The probe may print diagnostics before its JSON answer, so the last
    non-empty line is tried when the whole output is not valid JSON.

    Args:
        raw_output: Captured probe stdout.

    Returns:
        dict[str, list[dict[str, Any]]]: Endpoint name to descriptor list.

    Raises:
        ProbeParseError: Raised when output is not structured endpoint data.
    """

    text_output = raw_output.decode("utf-8", errors="replace") if isinstance(raw_output, bytes) else str(raw_output)
    stripped_output = text_output.strip()
    if not stripped_output:
        raise ProbeParseError("probe returned no output", raw_output=text_output)

    candidates = [stripped_output]
    output_lines = [line.strip() for line in stripped_output.splitlines() if line.strip()]
    if len(output_lines) > 1:
        candidates.append(output_lines[-1])

    parsed: object = None
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
            break
        except json.JSONDecodeError:
            continue
    else:
        raise ProbeParseError("probe output is not valid JSON", raw_output=text_output)

    if not isinstance(parsed, dict):
        raise ProbeParseError("probe output must be a JSON object", raw_output=text_output)

    endpoints: dict[str, list[dict[str, Any]]] = {}
    for endpoint_name, descriptors in parsed.items():
        if isinstance(descriptors, dict):
            descriptors = [descriptors]
        if not isinstance(descriptors, list) or not all(isinstance(item, dict) for item in descriptors):
            raise ProbeParseError(
                f"endpoint {endpoint_name!r} must map to a descriptor list",
                raw_output=text_output,
            )
        endpoints[str(endpoint_name)] = [dict(item) for item in descriptors]
    return endpoints


def domain_merge_open_data(
    endpoints: Mapping[str, list[dict[str, Any]]],
    open_merge: Mapping[str, Any],
) -> dict[str, list[dict[str, Any]]]:
    """Merge live-fact fields into every endpoint descriptor.

    Live facts win over probe output; `rel` defaults to the endpoint name.

    Args:
        endpoints: Parsed probe output.
        open_merge: Live-fact descriptor from `domain_build_open_merge`.

    Returns:
        dict[str, list[dict[str, Any]]]: New mapping with merged descriptors.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    merged: dict[str, list[dict[str, Any]]] = {}
    for endpoint_name, descriptors in endpoints.items():
        merged_descriptors = []
        for descriptor in descriptors:
            merged_descriptor = {**descriptor, **open_merge}
            merged_descriptor.setdefault("rel", endpoint_name)
            merged_descriptors.append(merged_descriptor)
        merged[endpoint_name] = merged_descriptors
    return merged


def domain_build_appserver_payload(
    service_data: Mapping[str, Mapping[str, list[dict[str, Any]]]],
    application: Application,
) -> tuple[dict[str, list[dict[str, Any]]], list[str]]:
    """Build the relationship payload for one application server.

    Args:
        service_data: Phase-1 results keyed by service name then endpoint name.
        application: Application whose relationships are looked up.

    Returns:
        tuple[dict[str, list[dict[str, Any]]], list[str]]: Payload keyed by
        relationship alias, and aliases that had no phase-1 data.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    payload: dict[str, list[dict[str, Any]]] = {}
    missing_aliases: list[str] = []
    for alias, target in application.relationships:
        endpoints = service_data.get(target.service) or {}
        descriptors = endpoints.get(target.endpoint)
        if descriptors is None and len(endpoints) == 1:
            descriptors = next(iter(endpoints.values()))
        if not descriptors:
            missing_aliases.append(alias)
            continue
        payload[alias] = [dict(descriptor) for descriptor in descriptors]
    return payload, missing_aliases


def domain_build_service_open_payload(service: Service) -> dict[str, Any]:
    """Build the static merge descriptor handed to a backing service probe.

    Args:
        service: Backing service with resolved bindings.

    Returns:
        dict[str, Any]: `{"relationships": {alias: {...}}}`; when two
        applications use the same alias the first declared binding wins.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    relationships: dict[str, dict[str, str]] = {}
    for binding in service.bindings.values():
        if binding.alias in relationships:
            continue
        relationships[binding.alias] = {
            "app": binding.app,
            "endpoint": binding.endpoint,
            "service": binding.service,
        }
    return {OPEN_RELATIONSHIPS_KEY: relationships}


def domain_serialize_payload(payload: Mapping[str, Any]) -> str:
    """Serialize an OPEN or run-config payload deterministically."""

    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def domain_extract_seed_relationships(cached_payload: object) -> dict[str, list[dict[str, Any]]]:
    """Extract relationship endpoints from a cached OPEN payload.

    Args:
        cached_payload: Cached payload, either flat (`{alias: [...]}`) or
            wrapped in a `relationships` key. Anything else yields no seed.

    Returns:
        dict[str, list[dict[str, Any]]]: Alias to descriptor list.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if not isinstance(cached_payload, dict):
        return {}
    relationships = cached_payload.get(OPEN_RELATIONSHIPS_KEY, cached_payload)
    if not isinstance(relationships, dict):
        return {}

    seed: dict[str, list[dict[str, Any]]] = {}
    for alias, descriptors in relationships.items():
        if isinstance(descriptors, list) and descriptors and all(isinstance(item, dict) for item in descriptors):
            seed[str(alias)] = [dict(item) for item in descriptors]
    return seed


def domain_get_ip_address(networks: Mapping[str, str | None], network_alias: str) -> str | None:
    """Return the container IP address on one network alias, if attached."""

    ip_address = networks.get(network_alias)
    return ip_address or None
