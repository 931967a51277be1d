"""Unit tests for core.yaml module."""

import pytest

from dwebns.core.yaml import load_yaml, section
from dwebns.exceptions import ConfigurationError


class TestLoadYaml:
    """load_yaml()."""

    def test_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("ledger:\n  chain_id: 1\nlistener:\n  interval: 2.5\n")

        assert load_yaml(path) == {"ledger": {"chain_id": 1}, "listener": {"interval": 2.5}}

    def test_accepts_str_path(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\n")

        assert load_yaml(str(path)) == {"a": 1}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_yaml(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("ledger: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_yaml(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="must be a mapping"):
            load_yaml(path)

    def test_safe_load_rejects_python_tags(self, tmp_path):
        path = tmp_path / "unsafe.yaml"
        path.write_text("a: !!python/object/apply:os.getcwd []\n")

        with pytest.raises(ConfigurationError):
            load_yaml(path)


class TestSection:
    """section()."""

    def test_present(self):
        assert section({"ledger": {"chain_id": 1}}, "ledger") == {"chain_id": 1}

    @pytest.mark.parametrize("data", [{}, {"ledger": None}])
    def test_absent_or_null(self, data):
        assert section(data, "ledger") == {}

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError, match="'ledger' must be a mapping"):
            section({"ledger": [1, 2]}, "ledger")
