import json
import os
import tempfile
import threading
from typing import Dict, Optional

_DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
_FILE_LOCK = threading.Lock()

# Logical namespaces of the persisted state
MENU_KEY = "menu"
TRANSACTIONS_KEY = "transactions"
EXPENDITURES_KEY = "expenditures"
PROFILE_KEY = "profile"
STORAGE_KEYS = (MENU_KEY, TRANSACTIONS_KEY, EXPENDITURES_KEY, PROFILE_KEY)

DEFAULTS = {
    "config.json": {
        "backup": {
            "enabled": True,
            "interval_seconds": 3600,
            "keep": 7
        },
        "pricing_advice": {
            "model": "gemini-2.5-flash",
            "timeout_seconds": 20
        },
        "reports": {
            "day_label_with_year": False
        }
    }
}


def data_path(filename: str) -> str:
    os.makedirs(_DATA_DIR, exist_ok=True)
    return os.path.join(_DATA_DIR, filename)


def _atomic_write(path: str, payload: bytes):
    directory = os.path.dirname(path)
    tmp_fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=directory)
    try:
        with os.fdopen(tmp_fd, "wb") as f:
            f.write(payload)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def ensure_defaults():
    os.makedirs(_DATA_DIR, exist_ok=True)
    for fname, default in DEFAULTS.items():
        path = data_path(fname)
        if not os.path.exists(path):
            with _FILE_LOCK:
                _atomic_write(path, json.dumps(default, indent=2).encode("utf-8"))


def read_json(filename: str):
    path = data_path(filename)
    with _FILE_LOCK:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)


def write_json(filename: str, obj):
    path = data_path(filename)
    with _FILE_LOCK:
        _atomic_write(path, json.dumps(obj, indent=2).encode("utf-8"))


def read_config() -> Dict:
    """Config merged over DEFAULTS so missing sections never break callers."""
    cfg = json.loads(json.dumps(DEFAULTS["config.json"]))
    try:
        stored = read_json("config.json")
    except (OSError, ValueError):
        return cfg
    for section, values in stored.items():
        if isinstance(values, dict) and isinstance(cfg.get(section), dict):
            cfg[section].update(values)
        else:
            cfg[section] = values
    return cfg


class JsonFileStorage:
    """Persistence port backed by one file per namespace in the data directory.

    Every ``set`` is a full snapshot of the namespace written atomically, so
    concurrent writers can only ever produce last-write-wins.
    """

    def _path(self, key: str) -> str:
        if key not in STORAGE_KEYS:
            raise ValueError(f"Unknown storage key: {key}")
        return data_path(f"{key}.json")

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        with _FILE_LOCK:
            if not os.path.exists(path):
                return None
            with open(path, "rb") as f:
                return f.read()

    def set(self, key: str, value: bytes):
        path = self._path(key)
        with _FILE_LOCK:
            _atomic_write(path, value)

    def remove(self, key: str):
        path = self._path(key)
        with _FILE_LOCK:
            if os.path.exists(path):
                os.remove(path)

    def clear(self):
        for key in STORAGE_KEYS:
            self.remove(key)


class MemoryStorage:
    """Dict-backed persistence port with the same contract as JsonFileStorage."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._blobs: Dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def set(self, key: str, value: bytes):
        self._blobs[key] = bytes(value)

    def remove(self, key: str):
        self._blobs.pop(key, None)

    def clear(self):
        self._blobs.clear()


def load_json_blob(storage, key: str):
    """Decode a namespace blob; returns None when absent."""
    raw = storage.get(key)
    if raw is None:
        return None
    return json.loads(raw.decode("utf-8"))


def dump_json_blob(storage, key: str, obj):
    storage.set(key, json.dumps(obj, ensure_ascii=False).encode("utf-8"))
