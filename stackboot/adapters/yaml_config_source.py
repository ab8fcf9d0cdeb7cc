"""YAML file config source for Platform.sh style declarations."""

from __future__ import annotations

import logging
import os
from typing import Any

import yaml

from stackboot.domain import Application, ConfigError, RawPlatformConfig
from stackboot.domain.platform_config import domain_find_closest_application, domain_parse_applications

from .interfaces import ConfigSourcePort

logger = logging.getLogger(__name__)


class YamlConfigSource(ConfigSourcePort):
    """Load `.platform.app.yaml`, `services.yaml` and `routes.yaml` from explicit paths.

    Relative paths resolve against `platform_root`. Missing service and route
    files are treated as empty declarations; missing application files are
    skipped so that normalization reports the absence of applications.
    """

    def __init__(
        self,
        platform_root: str,
        app_files: list[str],
        services_file: str = ".platform/services.yaml",
        routes_file: str = ".platform/routes.yaml",
    ):
        """Initialize config source.

        Args:
            platform_root: Project root directory.
            app_files: Application config file paths.
            services_file: Services declaration file path.
            routes_file: Routes declaration file path.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when platform_root is blank.
        """

        if not platform_root.strip():
            raise ValueError("platform_root must not be blank")
        self._platform_root = os.path.abspath(platform_root)
        self._app_files = [self._source_resolve_path(path) for path in app_files]
        self._services_file = self._source_resolve_path(services_file)
        self._routes_file = self._source_resolve_path(routes_file)

    @property
    def platform_root(self) -> str:
        return self._platform_root

    def config_source_load(self) -> RawPlatformConfig:
        """Read and parse every declared file.

        Returns:
            RawPlatformConfig: Raw declarations; application files index-aligned with definitions.

        Raises:
            ConfigError: Raised when a file holds invalid YAML or an unexpected top-level shape.
        """

        applications: list[dict[str, Any]] = []
        application_files: list[str] = []
        for app_file in self._app_files:
            if not os.path.isfile(app_file):
                logger.warning("application config %s does not exist, skipping", app_file)
                continue
            document = self._source_read_document(app_file)
            if isinstance(document, list):
                for entry in document:
                    applications.append(entry)
                    application_files.append(app_file)
            elif isinstance(document, dict):
                applications.append(document)
                application_files.append(app_file)
            elif document is not None:
                raise ConfigError(f"{app_file} must contain a mapping or a list of mappings")

        services = self._source_read_mapping(self._services_file)
        routes = self._source_read_mapping(self._routes_file)
        logger.debug(
            "loaded %d application definitions, %d services, %d routes",
            len(applications),
            len(services),
            len(routes),
        )
        return RawPlatformConfig(
            applications=applications,
            application_files=application_files,
            services=services,
            routes=routes,
        )

    def config_source_find_closest_application(self, start_dir: str) -> Application:
        raw_config = self.config_source_load()
        applications = domain_parse_applications(
            applications=raw_config.applications,
            application_files=raw_config.application_files,
            platform_root=self._platform_root,
        )
        return domain_find_closest_application(applications, start_dir)

    def _source_resolve_path(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.join(self._platform_root, path)

    def _source_read_mapping(self, path: str) -> dict[str, Any]:
        if not os.path.isfile(path):
            return {}
        document = self._source_read_document(path)
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigError(f"{path} must contain a mapping")
        return document

    @staticmethod
    def _source_read_document(path: str) -> Any:
        try:
            with open(path, encoding="utf-8") as handle:
                return yaml.safe_load(handle)
        except yaml.YAMLError as error:
            raise ConfigError(f"failed to parse {path}: {error}") from error
        except OSError as error:
            raise ConfigError(f"failed to read {path}") from error
