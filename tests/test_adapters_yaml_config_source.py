"""Tests for the YAML file config source."""

from __future__ import annotations

import pytest

from stackboot.adapters import YamlConfigSource
from stackboot.domain import ConfigError


def _write_project(root) -> None:
    (root / ".platform").mkdir()
    (root / ".platform.app.yaml").write_text(
        "name: web\ntype: php:8.1\nrelationships:\n  database: db:mysql\n",
        encoding="utf-8",
    )
    (root / "api").mkdir()
    (root / "api" / ".platform.app.yaml").write_text("name: api\ntype: nodejs:18\n", encoding="utf-8")
    (root / ".platform" / "services.yaml").write_text("db:\n  type: mysql:10.4\n  disk: 256\n", encoding="utf-8")
    (root / ".platform" / "routes.yaml").write_text(
        "https://{default}/:\n  type: upstream\n  upstream: web:http\n",
        encoding="utf-8",
    )


def test_load_reads_declared_files_relative_to_root(tmp_path) -> None:
    """Load applications, services and routes from explicit paths.

    Returns:
        None: Assertions validate parsed declarations.

    Raises:
        AssertionError: Raised when parsed declarations are wrong.
    """

    _write_project(tmp_path)
    source = YamlConfigSource(
        platform_root=str(tmp_path),
        app_files=[".platform.app.yaml", "api/.platform.app.yaml"],
    )

    raw_config = source.config_source_load()

    assert [application["name"] for application in raw_config.applications] == ["web", "api"]
    assert raw_config.application_files == [
        str(tmp_path / ".platform.app.yaml"),
        str(tmp_path / "api" / ".platform.app.yaml"),
    ]
    assert raw_config.services == {"db": {"type": "mysql:10.4", "disk": 256}}
    assert raw_config.routes["https://{default}/"]["upstream"] == "web:http"


def test_load_treats_missing_optional_files_as_empty(tmp_path) -> None:
    (tmp_path / ".platform.app.yaml").write_text("name: web\n", encoding="utf-8")
    source = YamlConfigSource(platform_root=str(tmp_path), app_files=[".platform.app.yaml", "missing/.platform.app.yaml"])

    raw_config = source.config_source_load()

    assert len(raw_config.applications) == 1
    assert raw_config.services == {}
    assert raw_config.routes == {}


def test_load_raises_config_error_for_invalid_yaml(tmp_path) -> None:
    (tmp_path / ".platform.app.yaml").write_text("name: [web\n", encoding="utf-8")
    source = YamlConfigSource(platform_root=str(tmp_path), app_files=[".platform.app.yaml"])

    with pytest.raises(ConfigError):
        source.config_source_load()


def test_find_closest_application_walks_up_from_start_dir(tmp_path) -> None:
    _write_project(tmp_path)
    (tmp_path / "api" / "src").mkdir()
    source = YamlConfigSource(
        platform_root=str(tmp_path),
        app_files=[".platform.app.yaml", "api/.platform.app.yaml"],
    )

    assert source.config_source_find_closest_application(str(tmp_path / "api" / "src")).name == "api"
    assert source.config_source_find_closest_application(str(tmp_path / ".platform")).name == "web"
