import logging
from datetime import datetime
from typing import Dict

from models.domain import Expenditure, MenuItem, StoreProfile, Transaction

LOG = logging.getLogger(__name__)

BACKUP_SECTIONS = ("menu", "transactions", "expenditures", "profile")


class BackupImportError(ValueError):
    pass


def export_backup(catalog, ledger, profiles, now: datetime) -> Dict:
    return {
        "menu": [item.to_dict() for item in catalog.list()],
        "transactions": [t.to_dict() for t in ledger.transactions()],
        "expenditures": [e.to_dict() for e in ledger.expenditures()],
        "profile": profiles.get().to_dict(),
        "exportedAt": now.isoformat(),
    }


def _parse_list(data: Dict, key: str, entity):
    rows = data[key]
    if not isinstance(rows, list):
        raise BackupImportError(f"'{key}' must be a list")
    try:
        return [entity.from_dict(row) for row in rows]
    except (ValueError, KeyError, TypeError) as exc:
        raise BackupImportError(f"Invalid entry in '{key}': {exc}") from exc


def parse_backup(data) -> Dict:
    """Validate a backup object without touching any store."""
    if not isinstance(data, dict):
        raise BackupImportError("Backup must be a JSON object")
    if not any(key in data for key in BACKUP_SECTIONS):
        raise BackupImportError("Backup contains no known sections")

    parsed = {}
    if data.get("menu") is not None:
        parsed["menu"] = _parse_list(data, "menu", MenuItem)
    if data.get("transactions") is not None:
        parsed["transactions"] = _parse_list(data, "transactions", Transaction)
    if data.get("expenditures") is not None:
        parsed["expenditures"] = _parse_list(data, "expenditures", Expenditure)
    if data.get("profile") is not None:
        try:
            parsed["profile"] = StoreProfile.from_dict(data["profile"])
        except (ValueError, KeyError, TypeError) as exc:
            raise BackupImportError(f"Invalid profile: {exc}") from exc
    return parsed


def import_backup(data, catalog, ledger, profiles) -> Dict[str, int]:
    """Replace every section present in `data`; all-or-nothing on validation."""
    parsed = parse_backup(data)
    if "menu" in parsed:
        catalog.replace_all(parsed["menu"])
    if "transactions" in parsed:
        ledger.replace_transactions(parsed["transactions"])
    if "expenditures" in parsed:
        ledger.replace_expenditures(parsed["expenditures"])
    if "profile" in parsed:
        profiles.save(parsed["profile"])
    counts = {k: (len(v) if isinstance(v, list) else 1) for k, v in parsed.items()}
    LOG.info("Imported backup sections: %s", counts)
    return counts


def factory_reset(storage, catalog, ledger):
    """Wipe every namespace; stores reload to their seed/empty state."""
    storage.clear()
    catalog.reload()
    ledger.reload()
    LOG.warning("Factory reset: all stored data cleared")
