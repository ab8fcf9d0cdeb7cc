"""Adapter layer package for container engine, credential API and config file boundaries."""

from .docker_engine import DockerContainerEngine
from .errors import (
	ContainerEngineError,
	ContainerExecError,
	ContainerNotFoundError,
	CredentialApiConnectionError,
	CredentialApiError,
	CredentialApiTimeoutError,
	CredentialRejectedError,
)
from .interfaces import (
	CAPTURE_STDOUT,
	CAPTURE_STDOUT_STDERR,
	AccountInfo,
	ConfigSourcePort,
	ContainerEnginePort,
	ContainerExecOptions,
	ContainerInspection,
	CredentialApiPort,
)
from .platformsh_api import PlatformshApiClient
from .retry import RetryStrategy
from .yaml_config_source import YamlConfigSource

__all__ = [
	"AccountInfo",
	"CAPTURE_STDOUT",
	"CAPTURE_STDOUT_STDERR",
	"ConfigSourcePort",
	"ContainerEngineError",
	"ContainerEnginePort",
	"ContainerExecError",
	"ContainerExecOptions",
	"ContainerInspection",
	"ContainerNotFoundError",
	"CredentialApiConnectionError",
	"CredentialApiError",
	"CredentialApiPort",
	"CredentialApiTimeoutError",
	"CredentialRejectedError",
	"DockerContainerEngine",
	"PlatformshApiClient",
	"RetryStrategy",
	"YamlConfigSource",
]
