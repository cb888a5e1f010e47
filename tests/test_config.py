"""Tests for store settings."""

import pytest

from linked_records import ConfigurationError, Store, StoreSettings
from linked_records.config import load_toml_config, parse_bool


def _write_config(tmp_path, text):
    path = tmp_path / "linked_records.toml"
    path.write_text(text)
    return path


class TestStoreSettings:
    """Tests for StoreSettings.load."""

    def test_defaults(self):
        """Test settings with no file and an empty environment."""
        settings = StoreSettings.load(environ={})
        assert settings == StoreSettings(unlink_on_destroy=True, id_attribute="id")

    def test_load_from_file(self, tmp_path):
        """Test reading the [store] table of a TOML file."""
        path = _write_config(
            tmp_path, '[store]\nunlink_on_destroy = false\nid_attribute = "key"\n'
        )
        settings = StoreSettings.load(path, environ={})
        assert settings.unlink_on_destroy is False
        assert settings.id_attribute == "key"

    def test_file_from_environment(self, tmp_path):
        """Test locating the file through LINKED_RECORDS_CONFIG."""
        path = _write_config(tmp_path, "[store]\nunlink_on_destroy = false\n")
        settings = StoreSettings.load(environ={"LINKED_RECORDS_CONFIG": str(path)})
        assert settings.unlink_on_destroy is False

    def test_environment_overrides_file(self, tmp_path):
        """Test that environment variables win over the file."""
        path = _write_config(tmp_path, "[store]\nunlink_on_destroy = false\n")
        environ = {
            "LINKED_RECORDS_UNLINK_ON_DESTROY": "yes",
            "LINKED_RECORDS_ID_ATTRIBUTE": "pk",
        }
        settings = StoreSettings.load(path, environ=environ)
        assert settings.unlink_on_destroy is True
        assert settings.id_attribute == "pk"

    def test_file_without_store_table(self, tmp_path):
        """Test that other tables are ignored."""
        path = _write_config(tmp_path, "[other]\nvalue = 1\n")
        assert StoreSettings.load(path, environ={}) == StoreSettings()

    def test_unknown_setting(self, tmp_path):
        """Test that unknown keys are rejected."""
        path = _write_config(tmp_path, "[store]\ncache_size = 10\n")
        with pytest.raises(ConfigurationError, match="cache_size") as exc_info:
            StoreSettings.load(path, environ={})
        assert exc_info.value.details == {"unknown": ["cache_size"]}

    def test_bad_boolean(self):
        """Test that an unparseable boolean is rejected."""
        with pytest.raises(ConfigurationError, match="expects a boolean"):
            StoreSettings.load(environ={"LINKED_RECORDS_UNLINK_ON_DESTROY": "maybe"})

    def test_bad_id_attribute(self, tmp_path):
        """Test that the identifier field must be a non-empty string."""
        path = _write_config(tmp_path, "[store]\nid_attribute = 3\n")
        with pytest.raises(ConfigurationError, match="id_attribute"):
            StoreSettings.load(path, environ={})

    def test_invalid_toml(self, tmp_path):
        """Test that a malformed file raises ConfigurationError."""
        path = _write_config(tmp_path, "[store\n")
        with pytest.raises(ConfigurationError):
            load_toml_config(path)

    def test_missing_file(self, tmp_path):
        """Test that a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            StoreSettings.load(tmp_path / "missing.toml", environ={})

    @pytest.mark.parametrize(
        "value,expected",
        [(True, True), ("on", True), ("1", True), (" False ", False), ("no", False)],
    )
    def test_parse_bool(self, value, expected):
        """Test accepted boolean spellings."""
        assert parse_bool("flag", value) is expected

    def test_store_uses_id_attribute(self):
        """Test that mappers default to the configured identifier field."""
        store = Store(StoreSettings(id_attribute="key"))
        assert store.define_mapper("post").id_attribute == "key"
        assert store.define_mapper("tag", id_attribute="slug").id_attribute == "slug"
