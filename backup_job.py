import json
import logging
import os
from typing import Dict

from models.backup import export_backup
from utils.file_manager import data_path, read_config

LOG = logging.getLogger(__name__)

BACKUP_DIR = "backups"


def _backup_dir() -> str:
    path = data_path(BACKUP_DIR)
    os.makedirs(path, exist_ok=True)
    return path


def list_snapshots():
    directory = _backup_dir()
    # lexicographic works for backup_YYYYmmdd_HHMMSS names
    return sorted(f for f in os.listdir(directory) if f.startswith("backup_") and f.endswith(".json"))


def prune_snapshots(keep: int):
    directory = _backup_dir()
    removed = []
    snapshots = list_snapshots()
    for name in snapshots[:max(len(snapshots) - keep, 0)]:
        os.remove(os.path.join(directory, name))
        removed.append(name)
    return removed


def write_backup_snapshot(catalog, ledger, profiles, clock) -> Dict:
    """Write the full backup object to the data dir; returns a summary."""
    cfg = read_config()
    now = clock.now()
    backup = export_backup(catalog, ledger, profiles, now)
    name = f"backup_{now.strftime('%Y%m%d_%H%M%S')}.json"
    path = os.path.join(_backup_dir(), name)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(backup, f, ensure_ascii=False, indent=2)
    removed = prune_snapshots(int(cfg["backup"].get("keep", 7)))
    LOG.info("Wrote backup snapshot %s (%d transactions)", name, len(backup["transactions"]))
    return {
        "file": name,
        "menu": len(backup["menu"]),
        "transactions": len(backup["transactions"]),
        "expenditures": len(backup["expenditures"]),
        "pruned": removed,
    }
