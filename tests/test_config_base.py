"""Tests for document loading and structural validation."""

import pytest

from crossbar.components import RawConfig, load_document
from crossbar.components.config_base import issue_path
from crossbar.errors import ConfigError, ConfigValidationError


class TestLoadDocument:
    """load_document error handling."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("regions:\n  - us-east1\n")
        assert load_document(path) == {"regions": ["us-east1"]}

    def test_json_is_yaml(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text('{"regions": ["us-east1"]}')
        assert load_document(path) == {"regions": ["us-east1"]}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_document(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_document(tmp_path / "missing.yaml")

    def test_invalid_yaml_reports_location(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("regions: [us-east1\n")
        with pytest.raises(ConfigError, match="line"):
            load_document(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a mapping"):
            load_document(path)


class TestConfigModel:
    """camelCase documents and issue paths."""

    def test_issue_path(self):
        assert issue_path(("clusters", 0, "app", "image")) == "clusters[0].app.image"
        assert issue_path(("regions", 2)) == "regions[2]"
        assert issue_path(()) == "<root>"

    def test_from_yaml_rejects_unknown_keys(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("regions: [us-east1]\ntemplate:\n  nodePool: {}\n")
        with pytest.raises(ConfigValidationError) as exc_info:
            RawConfig.from_yaml(path)
        assert [i.field for i in exc_info.value.issues] == ["template.nodePool"]

    def test_yaml_round_trip_uses_document_keys(self, region_document):
        config = RawConfig.model_validate(region_document)
        text = config.to_yaml_string()
        assert "minNodes: 1" in text
        assert "min_nodes" not in text
