"""
Local MCP server for the stall POS.

Exposes the catalog, the register and the reports as FastMCP tools so an LLM
controller can ring up orders, log expenditures and read financial summaries.
Every tool returns an MCP content array with a single JSON text item.
"""
import json
import logging
from datetime import date
from typing import Any, Dict, List

from fastmcp import FastMCP

from models.backup import export_backup
from models.catalog import CatalogStore
from models.checkout import CheckoutSession
from models.domain import CustomRange, TimeFilter
from models.ledger import LedgerStore
from models.profile import ProfileStore
from models.receipt import build_receipt, render_text
from models.reports import summarize
from utils.clock import SystemClock
from utils.file_manager import JsonFileStorage, ensure_defaults, read_config
from utils.pricing_advice import get_pricing_recommendation

LOG = logging.getLogger(__name__)

server_instructions = """
This MCP server operates the point-of-sale of a single food stall. It can list
the menu, ring up orders, record expenditures and report sales and profit for
a time window (TODAY, WEEK, MONTH, LIFETIME or CUSTOM).
"""


def _content(payload) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


def _parse_arg(arg: str) -> Dict:
    """Tool arguments are a JSON object; empty means no options."""
    data = json.loads(arg) if arg and arg.strip() else {}
    if not isinstance(data, dict):
        raise ValueError("Argument must be a JSON object")
    return data


def report_payload(ledger, clock, arg: str = "") -> Dict:
    try:
        data = _parse_arg(arg)
        time_filter = TimeFilter(str(data.get("filter", "TODAY")).upper())
        custom = CustomRange(
            start=date.fromisoformat(data["start"]) if data.get("start") else None,
            end=date.fromisoformat(data["end"]) if data.get("end") else None,
        )
    except (ValueError, TypeError) as e:
        return {"error": str(e)}
    with_year = bool(read_config()["reports"].get("day_label_with_year", False))
    return {"summary": summarize(ledger.transactions(), ledger.expenditures(), time_filter, clock.now(), custom, with_year)}


def _order_lines(catalog, entries) -> List:
    if not isinstance(entries, list):
        raise ValueError("items must be a list")
    lines = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError("Each item must be an object like {\"id\": \"1\", \"qty\": 2}")
        item = catalog.get(str(entry.get("id")))
        if item is None:
            raise ValueError(f"Unknown menu item: {entry.get('id')}")
        qty = entry.get("qty", 1)
        if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            raise ValueError("qty must be a positive integer")
        lines.append((item, qty))
    return lines


def ring_up_order(catalog, ledger, clock, arg: str) -> Dict:
    """Check out one order; nothing is recorded unless the whole order is valid."""
    try:
        data = _parse_arg(arg)
        lines = _order_lines(catalog, data.get("items", []))
        session = CheckoutSession(ledger, clock)
        for item, qty in lines:
            for _ in range(qty):
                session.add(item)
        session.set_context(
            order_source=data.get("orderSource"),
            payment_method=data.get("paymentMethod"),
            customer_name=data.get("customerName"),
            cash_given=data.get("cashGiven"),
        )
        trx = session.checkout()
    except (ValueError, TypeError) as e:
        return {"error": str(e)}
    return {"transaction": trx.to_dict()}


def expenditure_payload(ledger, clock, arg: str) -> Dict:
    try:
        data = _parse_arg(arg)
        now = clock.now()
        exp = ledger.add_expenditure(data.get("description"), int(data.get("amount") or 0), now, now)
    except (ValueError, TypeError) as e:
        return {"error": str(e)}
    return {"expenditure": exp.to_dict()}


def receipt_payload(ledger, profiles, arg: str) -> Dict:
    try:
        data = _parse_arg(arg)
    except ValueError as e:
        return {"error": str(e)}
    trx_id = data.get("id")
    trx = ledger.get_transaction(str(trx_id)) if trx_id else None
    if trx is None:
        return {"error": f"Unknown transaction: {trx_id}"}
    receipt = build_receipt(trx, profiles.get())
    return {"receipt": receipt, "text": render_text(receipt)}


def pricing_advice_payload(arg: str) -> Dict:
    try:
        data = _parse_arg(arg)
        hpp = int(data["hpp"])
        name = str(data["name"])
    except (ValueError, KeyError, TypeError) as e:
        return {"error": f"Provide name and hpp: {e}"}
    cfg = read_config()["pricing_advice"]
    advice = get_pricing_recommendation(name, data.get("ingredients") or "", hpp,
                                        model=cfg.get("model", "gemini-2.5-flash"),
                                        timeout=float(cfg.get("timeout_seconds", 20)))
    return {"advice": advice.to_dict()}


def create_server(storage=None, clock=None) -> FastMCP:
    if storage is None:
        ensure_defaults()
        storage = JsonFileStorage()
    clock = clock or SystemClock()
    catalog = CatalogStore(storage)
    ledger = LedgerStore(storage)
    profiles = ProfileStore(storage)

    mcp = FastMCP(name="Stall POS Local MCP", instructions=server_instructions)

    @mcp.tool()
    async def menu() -> Dict[str, Any]:
        """
        Return the menu catalog.

        Returns:
            MCP content array with JSON: {"menu": [{id, name, category, hpp, price, ...}]}
        """
        return _content({"menu": [i.to_dict() for i in catalog.list()]})

    @mcp.tool()
    async def report_summary(arg: str = "") -> Dict[str, Any]:
        """
        Return sales and profit aggregates for a time window.

        The `arg` parameter accepts a JSON object like
        {"filter": "WEEK"} or {"filter": "CUSTOM", "start": "2025-09-01", "end": "2025-09-07"}.
        Missing filter means TODAY.

        Returns:
            MCP content array with JSON: {"summary": {...}} or {"error": "..."}.
        """
        return _content(report_payload(ledger, clock, arg))

    @mcp.tool()
    async def ring_up(arg: str) -> Dict[str, Any]:
        """
        Ring up and check out one order.

        The `arg` parameter is a JSON object:
          {"items": [{"id": "1", "qty": 2}, ...],
           "orderSource": "OFFLINE", "paymentMethod": "CASH",
           "customerName": "Budi", "cashGiven": 50000}

        Returns:
            MCP content array with JSON: {"transaction": {...}} or {"error": "..."}.

        Edge cases:
            - Unknown item ids or non-positive quantities reject the whole order.
            - Cash payments below the total are rejected and nothing is recorded.
        """
        return _content(ring_up_order(catalog, ledger, clock, arg))

    @mcp.tool()
    async def add_expenditure(arg: str) -> Dict[str, Any]:
        """
        Record an operating expenditure.

        The `arg` parameter is a JSON object: {"description": "Gas LPG", "amount": 25000}.

        Returns:
            MCP content array with JSON: {"expenditure": {...}} or {"error": "..."}.
        """
        return _content(expenditure_payload(ledger, clock, arg))

    @mcp.tool()
    async def receipt(arg: str) -> Dict[str, Any]:
        """
        Return the receipt of a recorded transaction.

        The `arg` parameter is a JSON object: {"id": "TRX-1756884600000"}.

        Returns:
            MCP content array with JSON: {"receipt": {...}, "text": "..."} or {"error": "..."}.
        """
        return _content(receipt_payload(ledger, profiles, arg))

    @mcp.tool()
    async def export_backup_tool() -> Dict[str, Any]:
        """
        Return the full backup object: {menu, transactions, expenditures, profile, exportedAt}.
        """
        return _content(export_backup(catalog, ledger, profiles, clock.now()))

    @mcp.tool()
    async def pricing_advice(arg: str) -> Dict[str, Any]:
        """
        Suggest a selling price for a new menu item.

        The `arg` parameter is a JSON object: {"name": "...", "ingredients": "...", "hpp": 12000}.
        When the advisory service is unavailable the suggestion falls back to
        twice the HPP with a 50% margin.
        """
        return _content(pricing_advice_payload(arg))

    return mcp


def main():
    logging.basicConfig(level=logging.INFO)
    server = create_server()
    LOG.info("Starting local MCP server on 0.0.0.0:8000 (HTTP)")
    server.run(transport="http", host="0.0.0.0", port=8000, path="/mcp")


if __name__ == "__main__":
    main()
