# options.py
import json
import logging
import os
import re
import tempfile
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from markupsafe import Markup

from bmi import HEIGHT_UNITS, WEIGHT_UNITS

logger = logging.getLogger(__name__)

OPTION_KEY = "bmi_widget_options"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEADING_NUMBER = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


class OptionStoreError(Exception):
    pass


def parse_float(value) -> float:
    """Lenient float: uses the leading numeric part of strings ("72.5kg" -> 72.5), else 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    m = _LEADING_NUMBER.match(str(value))
    if not m:
        return 0.0
    try:
        return float(m.group(0))
    except ValueError:
        return 0.0


def _unit(value, allowed):
    return value if value in allowed else allowed[0]


def _flag(value) -> bool:
    if isinstance(value, str):
        return value.strip() not in ("", "0")
    return bool(value)


def clean_label(value) -> str:
    if value is None:
        return ""
    return Markup(str(value)).striptags()


@dataclass
class MeasurementConfig:
    weight: float = 0.0
    weight_unit: str = "kg"
    height: float = 0.0
    height_unit: str = "cm"
    show_updated: bool = False
    custom_label: str = ""
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "MeasurementConfig":
        if not isinstance(data, Mapping):
            data = {}
        return cls(
            weight=parse_float(data.get("weight")),
            weight_unit=_unit(data.get("weight_unit"), WEIGHT_UNITS),
            height=parse_float(data.get("height")),
            height_unit=_unit(data.get("height_unit"), HEIGHT_UNITS),
            show_updated=_flag(data.get("show_updated", False)),
            custom_label=str(data.get("custom_label") or ""),
            updated_at=data.get("updated_at") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def sanitize(form: Mapping[str, Any], now: Optional[Callable[[], datetime]] = None) -> MeasurementConfig:
    """Turn submitted settings into a clean record stamped with the save time."""
    clock = now or datetime.now
    return MeasurementConfig(
        weight=parse_float(form.get("weight")),
        weight_unit=_unit(form.get("weight_unit", "kg"), WEIGHT_UNITS),
        height=parse_float(form.get("height")),
        height_unit=_unit(form.get("height_unit", "cm"), HEIGHT_UNITS),
        show_updated=_flag(form.get("show_updated", "")),
        custom_label=clean_label(form.get("custom_label")),
        updated_at=clock().strftime(TIMESTAMP_FORMAT),
    )


# -------- Stores --------

class MemoryOptionStore:
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data = dict(initial or {})

    def get(self, key, default=None):
        value = self._data.get(key)
        if value is None:
            return default
        return dict(value) if isinstance(value, dict) else value

    def set(self, key, value) -> None:
        self._data[key] = dict(value)


class JsonFileOptionStore:
    """All options kept as one JSON object in a single file."""

    def __init__(self, path):
        self.path = os.fspath(path)

    def _read_all(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read options file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Options file {self.path} does not hold an object; ignoring it")
            return {}
        return data

    def get(self, key, default=None):
        value = self._read_all().get(key)
        return default if value is None else value

    def set(self, key, value) -> None:
        data = self._read_all()
        data[key] = value
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".options-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2, sort_keys=True)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise OptionStoreError(f"Could not write options file {self.path}: {e}") from e


def load_config(store, key: str = OPTION_KEY) -> MeasurementConfig:
    data = store.get(key, {})
    if not isinstance(data, Mapping):
        logger.warning(f"Stored {key} is not an object ({type(data).__name__}); using defaults")
        data = {}
    return MeasurementConfig.from_dict(data)


def save_config(store, form: Mapping[str, Any], now=None, key: str = OPTION_KEY) -> MeasurementConfig:
    config = sanitize(form, now=now)
    store.set(key, config.to_dict())
    logger.info(
        f"Saved measurements: {config.weight} {config.weight_unit}, "
        f"{config.height} {config.height_unit} at {config.updated_at}"
    )
    return config
