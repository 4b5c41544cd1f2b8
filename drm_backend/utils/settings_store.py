"""
Thread-safe application settings store.

Values are kept as strings with a value type (STRING, NUMBER, BOOLEAN, JSON)
and parsed on the way out. Keys without a stored row fall back to
DEFAULT_SETTINGS. When a file path is given, the table is loaded from it at
start and rewritten after every change.
"""

import json
import os
import logging
from collections import OrderedDict
from dataclasses import dataclass, asdict, field, replace
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

VALUE_TYPES = ("STRING", "NUMBER", "BOOLEAN", "JSON")

_FLAG_VALUES = {"true": True, "1": True, "false": False, "0": False}


class SettingNotFoundError(KeyError):
    """Raised when deleting or resetting a key that has no stored row."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return "Setting not found"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SettingRecord:
    key: str
    value: str
    value_type: str = "STRING"
    category: str = "general"
    description: Optional[str] = None
    is_public: bool = False
    updated_at: str = field(default_factory=_now)


def _default(key, value, value_type, category, description, is_public=False) -> SettingRecord:
    return SettingRecord(key, value, value_type, category, description, is_public, updated_at="")


DEFAULT_SETTINGS: Dict[str, SettingRecord] = {
    s.key: s for s in (
        _default("drm.encryption.enabled", "true", "BOOLEAN", "drm", "Enable DRM encryption for streams", True),
        _default("drm.encryption.mode", "cbcs", "STRING", "drm", "DRM encryption mode (cenc or cbcs)", True),
        _default("drm.security.minLevel", "3", "NUMBER", "drm", "Minimum DRM security level"),
        _default("drm.outputProtection.digital", "true", "BOOLEAN", "drm", "Enable digital output protection"),
        _default("drm.outputProtection.analogue", "true", "BOOLEAN", "drm", "Enable analogue output protection"),
        _default("drm.outputProtection.enforce", "true", "BOOLEAN", "drm", "Enforce output protection"),
        _default("stream.whip.endpoint", "", "STRING", "stream", "Default WHIP endpoint URL", True),
        _default("stream.whep.endpoint", "", "STRING", "stream", "Default WHEP endpoint URL", True),
        _default("stream.domain", "", "STRING", "stream", "Cloudflare Stream domain", True),
        _default("authentication.maxAttempts", "5", "NUMBER", "authentication",
                 "Maximum login attempts before lockout"),
        _default("authentication.lockoutDuration", "900", "NUMBER", "authentication",
                 "Account lockout duration in seconds"),
        _default("authentication.sessionExpiry", "86400", "NUMBER", "authentication",
                 "Session expiry time in seconds"),
    )
}


def parse_value(value: Optional[str], value_type: str) -> Any:
    if value is None:
        return None
    if value_type == "NUMBER":
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return int(number) if number.is_integer() else number
    if value_type == "BOOLEAN":
        return value == "true"
    if value_type == "JSON":
        try:
            return json.loads(value)
        except (TypeError, ValueError):
            return None
    return value


def stringify_value(value: Any, value_type: str) -> str:
    if value_type == "JSON":
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def infer_value_type(value: Any) -> str:
    if isinstance(value, bool):
        return "BOOLEAN"
    if isinstance(value, (int, float)):
        return "NUMBER"
    if isinstance(value, (dict, list)):
        return "JSON"
    return "STRING"


class SettingsStore:
    """
    Key/value settings table guarded by a lock.

    One instance lives on the application context; tests build their own.
    """

    def __init__(self, path: Optional[str] = None):
        self._rows: "OrderedDict[str, SettingRecord]" = OrderedDict()
        self._lock = Lock()
        self._path = path
        if path:
            self._load(path)

    @property
    def path(self) -> Optional[str]:
        return self._path

    # --- persistence -------------------------------------------------------

    def _load(self, path: str) -> None:
        if not os.path.exists(path):
            logger.info(f"settings: File not found, starting empty: {path}")
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"❌ settings: Could not read {path}: {e}")
            return
        if not isinstance(raw, dict):
            logger.error(f"❌ settings: {path} must hold a JSON object, got {type(raw).__name__}")
            return
        for key, data in raw.items():
            if not isinstance(data, dict):
                logger.warning(f"⚠️ settings: Skipping malformed row {key!r}: expected an object, got {type(data).__name__}")
                continue
            try:
                self._rows[key] = SettingRecord(key=key, **{k: v for k, v in data.items() if k != "key"})
            except TypeError as e:
                logger.warning(f"⚠️ settings: Skipping malformed row {key!r}: {e}")
        logger.info(f"✅ settings: Loaded {len(self._rows)} settings from {path}")

    def _save(self, rows: "OrderedDict[str, SettingRecord]") -> None:
        if not self._path:
            return
        tmp_path = f"{self._path}.tmp"
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({k: asdict(v) for k, v in rows.items()}, f, indent=2)
            os.replace(tmp_path, self._path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    def _commit(self, rows: "OrderedDict[str, SettingRecord]") -> None:
        """Persist ``rows`` and only then make them current. Caller holds the lock."""
        self._save(rows)
        self._rows = rows

    # --- reads -------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Stored value, else the built-in default for the key, else ``default``."""
        with self._lock:
            row = self._rows.get(key)
        if row is None:
            row = DEFAULT_SETTINGS.get(key)
        if row is None:
            return default
        return parse_value(row.value, row.value_type)

    def get_flag(self, key: str, default: bool) -> bool:
        """Boolean view of a setting. Text values 'true'/'false' count, anything else gives ``default``."""
        value = self.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in _FLAG_VALUES:
            return _FLAG_VALUES[value.strip().lower()]
        if value is not None:
            logger.warning(f"⚠️ settings: {key}={value!r} is not a boolean, using {default}")
        return default

    def get_record(self, key: str) -> Optional[SettingRecord]:
        with self._lock:
            return self._rows.get(key)

    @staticmethod
    def _describe(row: SettingRecord, include_category: bool = True) -> Dict[str, Any]:
        data = {
            "value": parse_value(row.value, row.value_type),
            "valueType": row.value_type,
            "description": row.description,
            "isPublic": row.is_public,
            "updatedAt": row.updated_at or None,
        }
        if include_category:
            data["category"] = row.category
        return data

    def get_many(self, category: Optional[str] = None, keys: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Stored settings filtered by category, or else by key list, ordered by category then key."""
        wanted = set(keys) if keys else None
        with self._lock:
            rows = list(self._rows.values())
        if category:
            rows = [r for r in rows if r.category == category]
        elif wanted:
            rows = [r for r in rows if r.key in wanted]
        rows.sort(key=lambda r: (r.category, r.key))
        return {r.key: self._describe(r) for r in rows}

    def get_public(self) -> Dict[str, Any]:
        with self._lock:
            rows = [r for r in self._rows.values() if r.is_public]
        rows.sort(key=lambda r: (r.category, r.key))
        return {r.key: parse_value(r.value, r.value_type) for r in rows}

    def get_by_category(self, category: str) -> Dict[str, Any]:
        """Stored settings of a category plus its un-overridden defaults (flagged isDefault)."""
        with self._lock:
            rows = sorted((r for r in self._rows.values() if r.category == category), key=lambda r: r.key)
        result = {r.key: self._describe(r, include_category=False) for r in rows}
        for key, row in DEFAULT_SETTINGS.items():
            if row.category == category and key not in result:
                data = self._describe(row, include_category=False)
                data.pop("updatedAt")
                data["isDefault"] = True
                result[key] = data
        return result

    # --- writes ------------------------------------------------------------

    @staticmethod
    def _from_default(default: SettingRecord) -> SettingRecord:
        return SettingRecord(
            key=default.key,
            value=default.value,
            value_type=default.value_type,
            category=default.category,
            description=default.description,
            is_public=default.is_public,
        )

    def set(
        self,
        key: str,
        value: Any,
        value_type: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> Any:
        """Upsert a setting and return its parsed value. Unspecified metadata is kept."""
        with self._lock:
            existing = self._rows.get(key) or DEFAULT_SETTINGS.get(key)
            vtype = (value_type or (existing.value_type if existing else None) or infer_value_type(value)).upper()
            if vtype not in VALUE_TYPES:
                raise ValueError(f"Unsupported valueType: {vtype}. Valid values: {', '.join(VALUE_TYPES)}")
            row = SettingRecord(
                key=key,
                value=stringify_value(value, vtype),
                value_type=vtype,
                category=category or (existing.category if existing else key.split(".")[0]),
                description=description if description is not None else (existing.description if existing else None),
                is_public=is_public if is_public is not None else (existing.is_public if existing else False),
            )
            rows = OrderedDict(self._rows)
            rows[key] = row
            self._commit(rows)
        logger.info(f"⚙️ Setting updated: {key} = {row.value!r} ({row.value_type})")
        return parse_value(row.value, row.value_type)

    def set_many(self, settings: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        results = []
        for key, data in settings.items():
            data = data if isinstance(data, dict) else {"value": data}
            value = self.set(
                key,
                data.get("value"),
                value_type=data.get("valueType"),
                category=data.get("category"),
                description=data.get("description"),
                is_public=data.get("isPublic"),
            )
            results.append({"key": key, "success": True, "setting": value})
        return {"success": True, "count": len(results), "results": results}

    def delete(self, key: str) -> None:
        with self._lock:
            if key not in self._rows:
                raise SettingNotFoundError(key)
            rows = OrderedDict(self._rows)
            del rows[key]
            self._commit(rows)
        logger.info(f"🗑️ Setting deleted: {key}")

    def reset(self, key: str) -> Dict[str, Any]:
        """Delete the stored row and restore the built-in default when one exists."""
        default = DEFAULT_SETTINGS.get(key)
        with self._lock:
            if key not in self._rows:
                raise SettingNotFoundError(key)
            rows = OrderedDict(self._rows)
            del rows[key]
            if default is not None:
                rows[key] = self._from_default(default)
            self._commit(rows)
        logger.info(f"↩️ Setting reset: {key}")
        if default is None:
            return {"success": True, "message": "Setting removed (no default exists)"}
        return {"success": True, "setting": parse_value(default.value, default.value_type)}

    def initialize_defaults(self) -> Dict[str, int]:
        """Insert missing default rows and refresh their description/category."""
        initialized = 0
        updated = 0
        with self._lock:
            rows = OrderedDict(self._rows)
            for key, default in DEFAULT_SETTINGS.items():
                existing = rows.get(key)
                if existing is None:
                    rows[key] = self._from_default(default)
                    initialized += 1
                elif existing.description != default.description or existing.category != default.category:
                    rows[key] = replace(existing, description=default.description, category=default.category)
                    updated += 1
            if initialized or updated:
                self._commit(rows)
        logger.info(f"✅ Default settings initialized: {initialized} new, {updated} updated")
        return {"initialized": initialized, "updated": updated}
