"""
Tests for settings sanitization and option stores
"""
import json
import logging
from datetime import datetime

import pytest

from options import (
    OPTION_KEY,
    JsonFileOptionStore,
    MeasurementConfig,
    MemoryOptionStore,
    OptionStoreError,
    load_config,
    parse_float,
    sanitize,
    save_config,
)

NOW = datetime(2024, 3, 9, 14, 30, 5)


def fixed_clock():
    return NOW


class TestSanitize:

    def test_empty_form_gives_defaults(self):
        config = sanitize({}, now=fixed_clock)
        assert config == MeasurementConfig(updated_at="2024-03-09 14:30:05")

    def test_valid_form(self):
        config = sanitize({
            "weight": "154",
            "weight_unit": "lb",
            "height": "69",
            "height_unit": "in",
            "show_updated": "1",
            "custom_label": "Progress",
        }, now=fixed_clock)
        assert config.weight == 154.0
        assert config.weight_unit == "lb"
        assert config.height == 69.0
        assert config.height_unit == "in"
        assert config.show_updated is True
        assert config.custom_label == "Progress"

    @pytest.mark.parametrize("w_unit,h_unit", [
        ("stone", "ft"),
        ("KG", "CM"),
        ("", ""),
        (None, None),
    ])
    def test_bad_units_coerced(self, w_unit, h_unit):
        config = sanitize({"weight_unit": w_unit, "height_unit": h_unit}, now=fixed_clock)
        assert config.weight_unit == "kg"
        assert config.height_unit == "cm"

    @pytest.mark.parametrize("show,expected", [
        ("1", True),
        ("on", True),
        ("", False),
        ("0", False),
    ])
    def test_show_updated(self, show, expected):
        assert sanitize({"show_updated": show}, now=fixed_clock).show_updated is expected

    def test_label_is_stripped_of_markup(self):
        config = sanitize({"custom_label": "  <b>My</b>\n  <script>x</script>weight  "}, now=fixed_clock)
        assert config.custom_label == "My xweight"

    def test_stamps_save_time(self):
        assert sanitize({}, now=fixed_clock).updated_at == "2024-03-09 14:30:05"


class TestParseFloat:

    @pytest.mark.parametrize("raw,expected", [
        ("72.5", 72.5),
        ("72.5kg", 72.5),
        (" 1e2", 100.0),
        (".5", 0.5),
        ("-5", -5.0),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (12, 12.0),
    ])
    def test_lenient(self, raw, expected):
        assert parse_float(raw) == expected


class TestMeasurementConfig:

    def test_from_dict_round_trip(self):
        original = MeasurementConfig(weight=70.0, height=175.0, show_updated=True,
                                     custom_label="Me", updated_at="2024-03-09 14:30:05")
        assert MeasurementConfig.from_dict(original.to_dict()) == original

    def test_from_dict_defaults_and_coercion(self):
        config = MeasurementConfig.from_dict({"weight": "80", "weight_unit": "st", "extra": 1})
        assert config.weight == 80.0
        assert config.weight_unit == "kg"
        assert config.height == 0.0
        assert config.updated_at is None

    def test_from_none(self):
        assert MeasurementConfig.from_dict(None) == MeasurementConfig()

    def test_from_non_mapping(self):
        assert MeasurementConfig.from_dict("garbage") == MeasurementConfig()
        assert MeasurementConfig.from_dict([1, 2]) == MeasurementConfig()


class TestMemoryOptionStore:

    def test_get_default(self):
        assert MemoryOptionStore().get(OPTION_KEY, {}) == {}

    def test_set_get(self):
        store = MemoryOptionStore()
        store.set(OPTION_KEY, {"weight": 70})
        assert store.get(OPTION_KEY) == {"weight": 70}


class TestJsonFileOptionStore:

    def test_missing_file_reads_empty(self, tmp_path):
        store = JsonFileOptionStore(tmp_path / "options.json")
        assert store.get(OPTION_KEY, {}) == {}

    def test_round_trip(self, tmp_path):
        path = tmp_path / "options.json"
        store = JsonFileOptionStore(path)
        store.set(OPTION_KEY, {"weight": 70.0, "weight_unit": "kg"})
        store.set("other", {"x": 1})

        reopened = JsonFileOptionStore(path)
        assert reopened.get(OPTION_KEY) == {"weight": 70.0, "weight_unit": "kg"}
        assert json.loads(path.read_text(encoding="utf-8"))["other"] == {"x": 1}

    def test_corrupt_file_reads_empty(self, tmp_path, caplog):
        path = tmp_path / "options.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFileOptionStore(path)
        with caplog.at_level(logging.WARNING, logger="options"):
            assert store.get(OPTION_KEY, {}) == {}
        assert "Could not read options file" in caplog.text

        store.set(OPTION_KEY, {"weight": 1.0})
        assert store.get(OPTION_KEY) == {"weight": 1.0}

    def test_non_object_file_reads_empty(self, tmp_path):
        path = tmp_path / "options.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert JsonFileOptionStore(path).get(OPTION_KEY, {}) == {}

    def test_non_object_entry_loads_defaults(self, tmp_path, caplog):
        path = tmp_path / "options.json"
        path.write_text(json.dumps({OPTION_KEY: "garbage"}), encoding="utf-8")
        with caplog.at_level(logging.WARNING, logger="options"):
            assert load_config(JsonFileOptionStore(path)) == MeasurementConfig()
        assert "is not an object" in caplog.text

    def test_write_failure_raises(self, tmp_path):
        target = tmp_path / "taken"
        target.mkdir()
        store = JsonFileOptionStore(target)
        with pytest.raises(OptionStoreError):
            store.set(OPTION_KEY, {"weight": 1.0})
        assert [p.name for p in tmp_path.iterdir()] == ["taken"]


class TestSaveLoad:

    def test_save_then_load(self, caplog):
        store = MemoryOptionStore()
        with caplog.at_level(logging.INFO, logger="options"):
            saved = save_config(store, {"weight": "70", "height": "175"}, now=fixed_clock)
        assert "Saved measurements" in caplog.text
        assert load_config(store) == saved
        assert store.get(OPTION_KEY)["updated_at"] == "2024-03-09 14:30:05"

    def test_load_empty_store(self):
        assert load_config(MemoryOptionStore()) == MeasurementConfig()
