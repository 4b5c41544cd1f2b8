import json

import pytest

from drm_backend.utils.settings_store import (
    DEFAULT_SETTINGS,
    SettingNotFoundError,
    SettingsStore,
    infer_value_type,
    parse_value,
    stringify_value,
)


@pytest.mark.parametrize("raw,value_type,expected", [
    ("3", "NUMBER", 3),
    ("1.5", "NUMBER", 1.5),
    ("abc", "NUMBER", None),
    ("true", "BOOLEAN", True),
    ("True", "BOOLEAN", False),
    ('{"a": 1}', "JSON", {"a": 1}),
    ("{bad", "JSON", None),
    ("cbcs", "STRING", "cbcs"),
])
def test_parse_value(raw, value_type, expected):
    assert parse_value(raw, value_type) == expected


def test_stringify_value():
    assert stringify_value(True, "BOOLEAN") == "true"
    assert stringify_value(False, "STRING") == "false"
    assert stringify_value(900, "NUMBER") == "900"
    assert json.loads(stringify_value({"a": [1]}, "JSON")) == {"a": [1]}


def test_infer_value_type():
    assert infer_value_type(True) == "BOOLEAN"
    assert infer_value_type(3) == "NUMBER"
    assert infer_value_type([1]) == "JSON"
    assert infer_value_type("x") == "STRING"


class TestSettingsStore:
    def test_get_falls_back_to_defaults(self):
        store = SettingsStore()
        assert store.get("drm.encryption.enabled") is True
        assert store.get("authentication.maxAttempts") == 5
        assert store.get("unknown.key") is None
        assert store.get("unknown.key", "fallback") == "fallback"

    def test_read_after_write(self):
        store = SettingsStore()
        store.set("drm.encryption.enabled", False)
        assert store.get("drm.encryption.enabled") is False

    def test_set_keeps_existing_metadata(self):
        store = SettingsStore()
        store.initialize_defaults()
        store.set("drm.encryption.mode", "cenc")
        record = store.get_record("drm.encryption.mode")
        assert record.is_public is True
        assert record.category == "drm"
        assert record.value_type == "STRING"

    def test_new_key_infers_type_and_category(self):
        store = SettingsStore()
        assert store.set("player.bufferMs", 900) == 900
        record = store.get_record("player.bufferMs")
        assert record.value_type == "NUMBER"
        assert record.category == "player"

    def test_invalid_value_type(self):
        with pytest.raises(ValueError, match="Unsupported valueType"):
            SettingsStore().set("a.b", "x", value_type="BLOB")

    def test_initialize_defaults_counts(self):
        store = SettingsStore()
        assert store.initialize_defaults() == {"initialized": len(DEFAULT_SETTINGS), "updated": 0}
        assert store.initialize_defaults() == {"initialized": 0, "updated": 0}

    def test_public_settings(self):
        store = SettingsStore()
        store.initialize_defaults()
        public = store.get_public()
        assert public["drm.encryption.enabled"] is True
        assert "drm.security.minLevel" not in public

    def test_get_many_filters(self):
        store = SettingsStore()
        store.initialize_defaults()
        assert set(store.get_many(category="stream")) == {
            "stream.whip.endpoint", "stream.whep.endpoint", "stream.domain"
        }
        assert list(store.get_many(keys=["drm.encryption.mode"])) == ["drm.encryption.mode"]

    def test_category_includes_defaults(self):
        store = SettingsStore()
        store.set("drm.encryption.mode", "cenc", category="drm")
        result = store.get_by_category("drm")
        assert result["drm.encryption.mode"]["value"] == "cenc"
        assert "isDefault" not in result["drm.encryption.mode"]
        assert result["drm.encryption.enabled"]["isDefault"] is True

    def test_delete_missing_raises(self):
        with pytest.raises(SettingNotFoundError):
            SettingsStore().delete("nope")

    def test_reset_restores_default(self):
        store = SettingsStore()
        store.set("drm.encryption.mode", "cenc")
        assert store.reset("drm.encryption.mode") == {"success": True, "setting": "cbcs"}
        assert store.get("drm.encryption.mode") == "cbcs"

    def test_reset_without_default_removes(self):
        store = SettingsStore()
        store.set("custom.flag", True)
        assert store.reset("custom.flag")["success"] is True
        assert store.get("custom.flag") is None

    def test_set_many(self):
        store = SettingsStore()
        result = store.set_many({
            "stream.domain": {"value": "customer.cloudflarestream.com"},
            "drm.security.minLevel": {"value": 1, "valueType": "NUMBER"},
        })
        assert result["count"] == 2
        assert store.get("drm.security.minLevel") == 1


class TestPersistence:
    def test_round_trip_through_file(self, tmp_path):
        path = tmp_path / "settings.json"
        store = SettingsStore(path=str(path))
        store.set("drm.encryption.enabled", False)

        reloaded = SettingsStore(path=str(path))
        assert reloaded.get("drm.encryption.enabled") is False

    def test_bad_file_is_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")
        store = SettingsStore(path=str(path))
        assert store.get("drm.encryption.enabled") is True

    def test_non_object_rows_are_skipped(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({
            "drm.encryption.enabled": "true",
            "stream.domain": {"value": "cdn.example.com", "category": "stream"},
        }), encoding="utf-8")
        store = SettingsStore(path=str(path))
        assert store.get_record("drm.encryption.enabled") is None
        assert store.get("stream.domain") == "cdn.example.com"

    def test_failed_write_leaves_memory_unchanged(self, tmp_path):
        """A settings file path that is a directory makes every save fail"""
        target = tmp_path / "settings"
        target.mkdir()
        store = SettingsStore(path=str(target))

        with pytest.raises(OSError):
            store.set("drm.encryption.enabled", False)
        assert store.get("drm.encryption.enabled") is True
        assert not (tmp_path / "settings.tmp").exists()

    def test_failed_delete_keeps_row(self, tmp_path):
        target = tmp_path / "settings"
        store = SettingsStore(path=str(target))
        store.set("custom.flag", True)
        target.unlink()
        target.mkdir()

        with pytest.raises(OSError):
            store.delete("custom.flag")
        assert store.get("custom.flag") is True


@pytest.mark.parametrize("value,value_type,expected", [
    (False, "BOOLEAN", False),
    ("false", "STRING", False),
    ("TRUE", "STRING", True),
    ("0", "STRING", False),
    ("maybe", "STRING", True),
    (0, "NUMBER", True),
])
def test_get_flag(value, value_type, expected):
    store = SettingsStore()
    store.set("drm.outputProtection.enforce", value, value_type=value_type)
    assert store.get_flag("drm.outputProtection.enforce", True) is expected


def test_get_flag_default_for_unknown_key():
    assert SettingsStore().get_flag("no.such.flag", False) is False
