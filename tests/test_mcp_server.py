import json
from datetime import datetime

import pytest
from fastmcp import FastMCP

import utils.file_manager as fm
from mcp_server import (
    _parse_arg,
    create_server,
    expenditure_payload,
    pricing_advice_payload,
    receipt_payload,
    report_payload,
    ring_up_order,
)
from models.catalog import CatalogStore
from models.ledger import LedgerStore
from models.profile import ProfileStore
from utils.clock import FixedClock

NOW = datetime(2025, 9, 3, 14, 30)


def test_create_server_uses_injected_storage(tmp_path, monkeypatch):
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    storage = fm.MemoryStorage()
    server = create_server(storage=storage, clock=FixedClock(datetime(2025, 9, 3, 14, 30)))
    assert isinstance(server, FastMCP)
    assert server.name == "Stall POS Local MCP"
    # nothing was written to disk without a file-backed storage
    assert not (tmp_path / "data").exists()


def stores():
    storage = fm.MemoryStorage()
    return CatalogStore(storage), LedgerStore(storage), ProfileStore(storage), FixedClock(NOW)


def test_parse_arg_requires_json_object():
    assert _parse_arg("") == {}
    assert _parse_arg('{"filter": "WEEK"}') == {"filter": "WEEK"}
    for bad in ('["a"]', '"x"', "42", "null", "{not json"):
        with pytest.raises(ValueError):
            _parse_arg(bad)


@pytest.mark.parametrize("arg", [
    '["1"]',
    '{"items": "1"}',
    '{"items": {"id": "1"}}',
    '{"items": ["1"]}',
    '{"items": [{"id": "1", "qty": 0}]}',
    '{"items": [{"id": "1", "qty": "2"}]}',
    '{"items": [{"id": "1"}, {"id": "nope"}]}',
    '{"items": []}',
])
def test_ring_up_rejects_malformed_orders(arg):
    catalog, ledger, _, clock = stores()
    result = ring_up_order(catalog, ledger, clock, arg)
    assert "error" in result
    assert ledger.transactions() == []


def test_ring_up_records_one_transaction():
    catalog, ledger, _, clock = stores()
    result = ring_up_order(catalog, ledger, clock, json.dumps({
        "items": [{"id": "1", "qty": 2}, {"id": "4"}],
        "cashGiven": 60000,
        "customerName": "Budi",
    }))
    trx = result["transaction"]
    assert trx["totalAmount"] == 55000
    assert trx["change"] == 5000
    assert [t.id for t in ledger.transactions()] == [trx["id"]]

    short = ring_up_order(catalog, ledger, clock, '{"items": [{"id": "3"}], "cashGiven": 1000}')
    assert "error" in short
    assert len(ledger.transactions()) == 1


def test_report_expenditure_and_receipt_payloads(tmp_path, monkeypatch):
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    catalog, ledger, profiles, clock = stores()
    assert "error" in report_payload(ledger, clock, '["TODAY"]')
    assert "error" in report_payload(ledger, clock, '{"filter": "YEAR"}')
    assert "error" in expenditure_payload(ledger, clock, '[25000]')
    assert "error" in expenditure_payload(ledger, clock, '{"description": "Gas", "amount": 0}')
    assert expenditure_payload(ledger, clock, '{"description": "Gas LPG", "amount": 25000}')["expenditure"]["amount"] == 25000

    trx = ring_up_order(catalog, ledger, clock, '{"items": [{"id": "5"}], "orderSource": "ONLINE_GOJEK"}')["transaction"]
    summary = report_payload(ledger, clock, "")["summary"]
    assert summary["total_sales"] == 10000

    receipt = receipt_payload(ledger, profiles, json.dumps({"id": trx["id"]}))
    assert receipt["receipt"]["method"] == "GOJEK"
    assert "TERIMA KASIH" in receipt["text"]
    assert "error" in receipt_payload(ledger, profiles, '{"id": "TRX-0"}')
    assert "error" in receipt_payload(ledger, profiles, '"TRX-0"')


def test_pricing_advice_payload(tmp_path, monkeypatch):
    monkeypatch.setattr(fm, "_DATA_DIR", tmp_path / "data")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    assert "error" in pricing_advice_payload('{"name": "Nasi Uduk"}')
    assert "error" in pricing_advice_payload('["Nasi Uduk", 8000]')
    advice = pricing_advice_payload('{"name": "Nasi Uduk", "hpp": 8000}')["advice"]
    assert advice["suggestedPrice"] == 16000
