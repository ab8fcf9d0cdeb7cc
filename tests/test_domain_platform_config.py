"""Tests for normalization of raw platform declarations."""

from __future__ import annotations

import os

import pytest

from stackboot.domain import ConfigError, RawPlatformConfig, RelationshipTarget
from stackboot.domain.platform_config import (
    domain_config_normalize,
    domain_find_closest_application,
    domain_parse_applications,
    domain_parse_relationship_target,
    domain_parse_routes,
    domain_parse_services,
    domain_split_type_label,
)


def _build_raw_config(root: str) -> RawPlatformConfig:
    """Build a two-application raw config rooted at `root`.

    Returns:
        RawPlatformConfig: Raw declarations with one nested application.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return RawPlatformConfig(
        applications=[
            {"name": "web", "type": "php:8.1", "relationships": {"database": "db:mysql", "cache": "redis"}},
            {"name": "api", "type": "nodejs:18", "relationships": {"database": "db:mysql"}},
        ],
        application_files=[
            os.path.join(root, ".platform.app.yaml"),
            os.path.join(root, "api", ".platform.app.yaml"),
        ],
        services={
            "db": {"type": "mysql:10.4", "disk": 256},
            "redis": {"type": "redis:6.0"},
            "search": {"type": "chroma:1.0"},
        },
        routes={
            "https://{default}/": {"type": "upstream", "upstream": "web:http"},
            "https://www.{default}/": {"type": "redirect", "to": "https://{default}/"},
        },
    )


def test_split_type_label_separates_version() -> None:
    assert domain_split_type_label("mysql:10.4") == ("mysql", "10.4")
    assert domain_split_type_label("redis") == ("redis", "")


def test_split_type_label_rejects_blank_type() -> None:
    with pytest.raises(ValueError):
        domain_split_type_label(":10")


def test_relationship_target_defaults_endpoint_to_alias() -> None:
    """Use the alias as endpoint name when the declaration omits it.

    Returns:
        None: Assertions validate parsed target.

    Raises:
        AssertionError: Raised when endpoint defaulting is wrong.
    """

    assert domain_parse_relationship_target("redis", "cache") == RelationshipTarget(service="cache", endpoint="redis")
    assert domain_parse_relationship_target("database", "db:mysql") == RelationshipTarget(
        service="db",
        endpoint="mysql",
    )


def test_parse_applications_skips_nameless_definitions_and_derives_source_dir(tmp_path) -> None:
    root = str(tmp_path)
    applications = domain_parse_applications(
        applications=[{"type": "php:8.1"}, {"name": "api", "type": "nodejs:18"}],
        application_files=[os.path.join(root, ".platform.app.yaml"), os.path.join(root, "api", ".platform.app.yaml")],
        platform_root=root,
    )

    assert [application.name for application in applications] == ["api"]
    assert applications[0].source_dir == "/app/api"
    assert applications[0].mount_dir == os.path.join(root, "api")


def test_parse_applications_rejects_relationship_without_service(tmp_path) -> None:
    with pytest.raises(ConfigError):
        domain_parse_applications(
            applications=[{"name": "web", "relationships": {"database": ":mysql"}}],
            application_files=[str(tmp_path / ".platform.app.yaml")],
            platform_root=str(tmp_path),
        )


def test_parse_services_flags_unsupported_types() -> None:
    services = domain_parse_services({"db": {"type": "mysql:10.4", "disk": "512"}, "search": {"type": "chroma:1"}})

    assert services[0].type == "mysql"
    assert services[0].version == "10.4"
    assert services[0].disk == 512
    assert services[0].supported is True
    assert services[1].supported is False


def test_parse_services_requires_type() -> None:
    with pytest.raises(ConfigError):
        domain_parse_services({"db": {"disk": 256}})


def test_parse_routes_replaces_placeholders_and_marks_first_upstream_primary() -> None:
    """Replace `{default}` with the local domain and pick one primary route.

    Returns:
        None: Assertions validate parsed routes.

    Raises:
        AssertionError: Raised when route normalization is wrong.
    """

    routes = domain_parse_routes(
        {
            "https://www.{default}/": {"type": "redirect", "to": "https://{default}/"},
            "https://{default}/": {"type": "upstream", "upstream": "web:http"},
            "https://api.{all}/": {"type": "upstream", "upstream": "api:http"},
        },
        "mystack.lndo.site",
    )

    assert [route.url for route in routes] == [
        "https://www.mystack.lndo.site/",
        "https://mystack.lndo.site/",
        "https://api.mystack.lndo.site/",
    ]
    assert [route.primary for route in routes] == [False, True, False]
    assert routes[0].original_url == "https://www.{default}/"


def test_parse_routes_honors_explicit_primary() -> None:
    routes = domain_parse_routes(
        {
            "https://{default}/": {"type": "upstream", "upstream": "web:http"},
            "https://api.{default}/": {"type": "upstream", "upstream": "api:http", "primary": True},
        },
        "mystack.lndo.site",
    )

    assert [route.primary for route in routes] == [False, True]


def test_config_normalize_builds_model(tmp_path) -> None:
    model = domain_config_normalize(
        _build_raw_config(str(tmp_path)),
        stack_name="mystack",
        domain_suffix="lndo.site",
        platform_root=str(tmp_path),
    )

    assert model.domain == "mystack.lndo.site"
    assert [application.name for application in model.applications] == ["web", "api"]
    assert [service.name for service in model.services] == ["db", "redis", "search"]
    assert model.model_find_service("redis").version == "6.0"
    assert model.model_find_application("api").relationships[0][1] == RelationshipTarget(service="db", endpoint="mysql")


def test_config_normalize_raises_without_applications(tmp_path) -> None:
    """Abort normalization when no application definition is valid.

    Returns:
        None: Assertions validate raised error.

    Raises:
        AssertionError: Raised when no ConfigError is raised.
    """

    raw_config = RawPlatformConfig(applications=[{"type": "php"}], application_files=[], services={}, routes={})

    with pytest.raises(ConfigError) as error_info:
        domain_config_normalize(raw_config, stack_name="mystack", domain_suffix="lndo.site", platform_root=str(tmp_path))

    assert error_info.value.error_code == "CONFIG_ERROR"


def test_find_closest_application_prefers_deepest_ancestor(tmp_path) -> None:
    model = domain_config_normalize(
        _build_raw_config(str(tmp_path)),
        stack_name="mystack",
        domain_suffix="lndo.site",
        platform_root=str(tmp_path),
    )
    nested_dir = tmp_path / "api" / "src"
    nested_dir.mkdir(parents=True)

    assert domain_find_closest_application(model.applications, str(nested_dir)).name == "api"
    assert domain_find_closest_application(model.applications, str(tmp_path)).name == "web"


def test_find_closest_application_raises_outside_project(tmp_path) -> None:
    project_root = tmp_path / "project"
    project_root.mkdir()
    model = domain_config_normalize(
        _build_raw_config(str(project_root)),
        stack_name="mystack",
        domain_suffix="lndo.site",
        platform_root=str(project_root),
    )

    with pytest.raises(ConfigError):
        domain_find_closest_application(model.applications, str(tmp_path))
