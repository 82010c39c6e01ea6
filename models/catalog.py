import logging
from datetime import datetime
from typing import List, Optional

from models.domain import Category, MenuItem
from utils.clock import to_millis
from utils.file_manager import MENU_KEY, dump_json_blob, load_json_blob

LOG = logging.getLogger(__name__)

SEED_MENU = [
    {"id": "1", "name": "Nasi Goreng Spesial", "category": "FOOD", "hpp": 12000, "price": 25000, "description": "Telur, Ayam, Sosis"},
    {"id": "2", "name": "Mie Goreng Seafood", "category": "FOOD", "hpp": 15000, "price": 30000, "description": "Udang, Cumi"},
    {"id": "3", "name": "Kwetiaw Siram Sapi", "category": "FOOD", "hpp": 18000, "price": 35000, "description": "Daging sapi iris"},
    {"id": "4", "name": "Es Teh Manis", "category": "BEVERAGE", "hpp": 2000, "price": 5000},
    {"id": "5", "name": "Es Jeruk", "category": "BEVERAGE", "hpp": 4000, "price": 10000},
    {"id": "6", "name": "Kerupuk Putih", "category": "ADD_ON", "hpp": 500, "price": 2000},
]


def seed_menu() -> List[MenuItem]:
    return [MenuItem.from_dict(d) for d in SEED_MENU]


class CatalogStore:
    """Ordered menu catalog persisted as one snapshot under MENU_KEY."""

    def __init__(self, storage):
        self.storage = storage
        self._items = self._load()

    def _load(self) -> List[MenuItem]:
        try:
            raw = load_json_blob(self.storage, MENU_KEY)
            if raw is None:
                return seed_menu()
            return [MenuItem.from_dict(d) for d in raw]
        except (ValueError, KeyError, TypeError) as exc:
            LOG.warning("Stored menu is unreadable (%s); using seed catalog", exc)
            return seed_menu()

    def _save(self):
        dump_json_blob(self.storage, MENU_KEY, [item.to_dict() for item in self._items])

    def reload(self):
        self._items = self._load()

    def list(self, category: Optional[Category] = None) -> List[MenuItem]:
        if category is None:
            return list(self._items)
        category = Category(category)
        return [item for item in self._items if item.category == category]

    def get(self, item_id: str) -> Optional[MenuItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def new_item_id(self, now: datetime) -> str:
        candidate = to_millis(now)
        while self.get(str(candidate)) is not None:
            candidate += 1
        return str(candidate)

    def add(self, item: MenuItem) -> MenuItem:
        if self.get(item.id) is not None:
            raise ValueError(f"Menu item {item.id} already exists")
        self._items.append(item)
        self._save()
        return item

    def update(self, item: MenuItem) -> MenuItem:
        for idx, current in enumerate(self._items):
            if current.id == item.id:
                self._items[idx] = item
                self._save()
                return item
        raise ValueError(f"Unknown menu item: {item.id}")

    def remove(self, item_id: str):
        item = self.get(item_id)
        if item is None:
            raise ValueError(f"Unknown menu item: {item_id}")
        self._items.remove(item)
        self._save()

    def replace_all(self, items: List[MenuItem]):
        self._items = list(items)
        self._save()
