from datetime import datetime

import pytest

import utils.file_manager as fm
from models.catalog import CatalogStore
from models.domain import Category, MenuItem, StoreProfile
from models.ledger import LedgerStore
from models.profile import ProfileStore

NOW = datetime(2025, 9, 3, 14, 30)


def test_catalog_seeds_and_persists(tmp_path, monkeypatch):
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    storage = fm.JsonFileStorage()
    catalog = CatalogStore(storage)
    assert [i.id for i in catalog.list()] == ["1", "2", "3", "4", "5", "6"]
    assert [i.id for i in catalog.list(Category.BEVERAGE)] == ["4", "5"]

    item = MenuItem(id=catalog.new_item_id(NOW), name="Nasi Goreng Kampung", category=Category.FOOD,
                    hpp=10000, price=22000, promo_price=20000)
    catalog.add(item)
    item.price = 23000
    catalog.update(item)
    catalog.remove("6")

    reloaded = CatalogStore(fm.JsonFileStorage())
    assert [i.id for i in reloaded.list()][-1] == item.id
    assert reloaded.get(item.id).price == 23000
    assert reloaded.get(item.id).promo_price == 20000
    assert reloaded.get("6") is None


def test_catalog_rejects_bad_operations():
    catalog = CatalogStore(fm.MemoryStorage())
    with pytest.raises(ValueError):
        catalog.add(catalog.get("1"))
    with pytest.raises(ValueError):
        catalog.remove("nope")
    with pytest.raises(ValueError):
        catalog.update(MenuItem(id="nope", name="x", category=Category.FOOD, hpp=0, price=0))
    with pytest.raises(ValueError):
        MenuItem(id="x", name="x", category=Category.FOOD, hpp=-1, price=0)


def test_corrupt_blobs_fall_back_to_defaults():
    storage = fm.MemoryStorage({
        fm.MENU_KEY: b"{not json",
        fm.TRANSACTIONS_KEY: b'[{"id": 1}]',
        fm.EXPENDITURES_KEY: b"\xff\xfe",
        fm.PROFILE_KEY: b"[]",
    })
    assert len(CatalogStore(storage).list()) == 6
    ledger = LedgerStore(storage)
    assert ledger.transactions() == []
    assert ledger.expenditures() == []
    assert ProfileStore(storage).get().name == "Nasi Goreng AI"


def test_expenditures_add_and_remove():
    storage = fm.MemoryStorage()
    ledger = LedgerStore(storage)
    first = ledger.add_expenditure("Gas LPG", 25000, NOW, NOW)
    second = ledger.add_expenditure("Beras", 100000, NOW, NOW)
    assert first.id != second.id

    with pytest.raises(ValueError):
        ledger.add_expenditure("Gratis", 0, NOW, NOW)
    with pytest.raises(ValueError):
        ledger.add_expenditure("  ", 1000, NOW, NOW)

    ledger.remove_expenditure(first.id)
    assert [e.id for e in LedgerStore(storage).expenditures()] == [second.id]
    with pytest.raises(ValueError):
        ledger.remove_expenditure(first.id)


def test_profile_is_replaced_on_save():
    storage = fm.MemoryStorage()
    profiles = ProfileStore(storage)
    profiles.save(StoreProfile(name="Warung Bu Tini", address="Jl. Melati 2"))
    saved = ProfileStore(storage).get()
    assert saved.name == "Warung Bu Tini"
    assert saved.phone == ""
    with pytest.raises(ValueError):
        profiles.save(StoreProfile(name=" "))


def test_file_storage_contract(tmp_path, monkeypatch):
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    storage = fm.JsonFileStorage()
    assert storage.get(fm.MENU_KEY) is None
    storage.set(fm.MENU_KEY, b"[]")
    storage.set(fm.PROFILE_KEY, b"{}")
    assert storage.get(fm.MENU_KEY) == b"[]"
    storage.remove(fm.MENU_KEY)
    assert storage.get(fm.MENU_KEY) is None
    storage.clear()
    assert storage.get(fm.PROFILE_KEY) is None
    with pytest.raises(ValueError):
        storage.get("other")


def test_config_defaults_merge(tmp_path, monkeypatch):
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    fm.ensure_defaults()
    fm.write_json("config.json", {"backup": {"keep": 2}})
    cfg = fm.read_config()
    assert cfg["backup"]["keep"] == 2
    assert cfg["backup"]["interval_seconds"] == 3600
    assert cfg["pricing_advice"]["model"] == "gemini-2.5-flash"
