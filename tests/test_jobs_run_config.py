"""Tests for run config document generation."""

from __future__ import annotations

import json
import os

from stackboot.domain import RawPlatformConfig
from stackboot.domain.platform_config import domain_config_normalize
from stackboot.domain.relationships import domain_resolve_relationships
from stackboot.jobs import RunConfigBuilder


def _build_inputs():
    raw_config = RawPlatformConfig(
        applications=[
            {
                "name": "web",
                "type": "php:8.1",
                "relationships": {"database": "db:mysql"},
                "variables": {"env": {"APP_ENV": "dev"}},
            }
        ],
        application_files=["/srv/project/.platform.app.yaml"],
        services={
            "db": {"type": "mysql:10.4", "disk": 512, "configuration": {"schemas": ["main"]}},
            "headless": {"type": "chrome-headless:73"},
        },
        routes={
            "https://{default}/": {"type": "upstream", "upstream": "web:http"},
            "https://www.{default}/": {"type": "redirect", "to": "https://{default}/"},
        },
    )
    model = domain_config_normalize(raw_config, stack_name="mystack", domain_suffix="lndo.site", platform_root="/srv/project")
    return model, domain_resolve_relationships(model)


def test_build_emits_application_and_supported_service_documents(tmp_path) -> None:
    """Build documents for the application and every supported service.

    Returns:
        None: Assertions validate document set and content.

    Raises:
        AssertionError: Raised when documents are wrong.
    """

    model, resolved = _build_inputs()

    documents = RunConfigBuilder(str(tmp_path)).run_config_build(model, resolved)

    assert [document.name for document in documents] == ["db", "web"]
    web_document = documents[1].data
    assert web_document["domainname"] == "mystack.lndo.site"
    assert web_document["relationships"]["database"][0]["service"] == "db"
    assert web_document["routes"]["https://mystack.lndo.site/"] == {
        "original_url": "https://{default}/",
        "primary": True,
        "to": None,
        "type": "upstream",
        "upstream": "web:http",
    }
    assert web_document["variables"] == {"env": {"APP_ENV": "dev"}}

    db_document = documents[0].data
    assert db_document["type"] == "mysql:10.4"
    assert db_document["disk"] == 512
    assert db_document["relationships"] == {"database": {"app": "web", "endpoint": "mysql", "service": "db"}}


def test_build_output_is_byte_identical_across_runs(tmp_path) -> None:
    first_model, first_resolved = _build_inputs()
    second_model, second_resolved = _build_inputs()
    builder = RunConfigBuilder(str(tmp_path))

    first = [document.document_to_bytes() for document in builder.run_config_build(first_model, first_resolved)]
    second = [document.document_to_bytes() for document in builder.run_config_build(second_model, second_resolved)]

    assert first == second


def test_write_replaces_files_under_config_root(tmp_path) -> None:
    model, resolved = _build_inputs()
    config_root = tmp_path / "config"
    builder = RunConfigBuilder(str(config_root))
    documents = builder.run_config_build(model, resolved)

    builder.run_config_write(documents)
    written_files = builder.run_config_write(documents)

    assert written_files == [str(config_root / "db.json"), str(config_root / "web.json")]
    assert sorted(os.listdir(config_root)) == ["db.json", "web.json"]
    with open(config_root / "web.json", encoding="utf-8") as handle:
        assert json.load(handle)["name"] == "web"
