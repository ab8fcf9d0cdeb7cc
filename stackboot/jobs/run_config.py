"""Per-container run configuration documents injected as `/run/config.json`."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

from stackboot.domain import Application, PlatformModel, ResolvedRelationships, Route, Service
from stackboot.domain.open_payload import (
    CLUSTER_NAME,
    OPEN_RELATIONSHIPS_KEY,
    domain_build_service_hostname,
    domain_build_service_open_payload,
    domain_serialize_payload,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunConfigDocument:
    """One run config document bound to a container.

    Attributes:
        name: Service or application name.
        file: Target file path under the config root.
        data: Document content.
    """

    name: str
    file: str
    data: dict[str, Any]

    def document_to_bytes(self) -> bytes:
        """Serialize with sorted keys and fixed separators."""

        return domain_serialize_payload(self.data).encode("utf-8")


def _job_route_payload(route: Route) -> dict[str, Any]:
    return {
        "original_url": route.original_url,
        "primary": route.primary,
        "to": route.to,
        "type": route.type,
        "upstream": route.upstream,
    }


class RunConfigBuilder:
    """Build and write deterministic run config documents."""

    def __init__(self, config_root: str):
        """Initialize builder.

        Args:
            config_root: Directory that receives `<name>.json` files.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when config_root is blank.
        """

        if not config_root.strip():
            raise ValueError("config_root must not be blank")
        self._config_root = config_root

    def run_config_build(self, model: PlatformModel, resolved: ResolvedRelationships) -> list[RunConfigDocument]:
        """Build one document per application and per supported service.

        Args:
            model: Normalized platform model.
            resolved: Relationship resolution output.

        Returns:
            list[RunConfigDocument]: Documents sorted by name.

        Raises:
            RuntimeError: This method does not raise runtime errors.
        """

        routes = {route.url: _job_route_payload(route) for route in model.routes}
        documents = [
            self._job_build_application_document(model, application, resolved, routes)
            for application in model.applications
        ]
        documents.extend(
            self._job_build_service_document(model, service) for service in resolved.services if service.supported
        )
        return sorted(documents, key=lambda document: document.name)

    def run_config_write(self, documents: list[RunConfigDocument]) -> list[str]:
        """Write documents to their files, replacing previous content atomically.

        Args:
            documents: Documents to write.

        Returns:
            list[str]: Written file paths.

        Raises:
            OSError: Raised when the config root is not writable.
        """

        os.makedirs(self._config_root, exist_ok=True)
        written_files: list[str] = []
        for document in documents:
            temporary_file = f"{document.file}.tmp"
            with open(temporary_file, "wb") as handle:
                handle.write(document.document_to_bytes())
            os.replace(temporary_file, document.file)
            logger.debug("dumped run config for %s to %s", document.name, document.file)
            written_files.append(document.file)
        return written_files

    def _job_document_file(self, name: str) -> str:
        return os.path.join(self._config_root, f"{name}.json")

    def _job_build_application_document(
        self,
        model: PlatformModel,
        application: Application,
        resolved: ResolvedRelationships,
        routes: dict[str, dict[str, Any]],
    ) -> RunConfigDocument:
        relationships = {
            binding.alias: [dict(endpoint) for endpoint in binding.endpoints]
            for binding in resolved.application_bindings.get(application.name, ())
        }
        data = {
            "application": dict(application.raw),
            "applications": [dict(item.raw) for item in model.applications],
            "cluster": CLUSTER_NAME,
            "configuration": dict(application.raw.get("configuration") or {}),
            "domainname": model.domain,
            "hostname": domain_build_service_hostname(model.stack_name, application.name, model.domain_suffix),
            "name": application.name,
            "relationships": relationships,
            "routes": routes,
            "service": application.name,
            "type": application.type,
            "variables": dict(application.variables),
        }
        return RunConfigDocument(name=application.name, file=self._job_document_file(application.name), data=data)

    def _job_build_service_document(self, model: PlatformModel, service: Service) -> RunConfigDocument:
        data = {
            "cluster": CLUSTER_NAME,
            "configuration": dict(service.configuration),
            "disk": service.disk,
            "domainname": model.domain,
            "hostname": domain_build_service_hostname(model.stack_name, service.name, model.domain_suffix),
            "name": service.name,
            "relationships": domain_build_service_open_payload(service)[OPEN_RELATIONSHIPS_KEY],
            "service": service.name,
            "type": service.service_type_label(),
            "version": service.version,
        }
        return RunConfigDocument(name=service.name, file=self._job_document_file(service.name), data=data)
