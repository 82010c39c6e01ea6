import logging
from datetime import date, datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from flask import Flask, Response, jsonify, request

from backup_job import write_backup_snapshot
from models.backup import export_backup, factory_reset, import_backup
from models.catalog import CatalogStore
from models.checkout import CheckoutSession
from models.domain import Category, CustomRange, MenuItem, StoreProfile, TimeFilter
from models.ledger import LedgerStore
from models.pricing import suggested_margin
from models.profile import ProfileStore
from models.receipt import build_receipt, render_text
from models.reports import (
    EXPENDITURE_HEADERS,
    TRANSACTION_HEADERS,
    expenditure_row,
    filter_by_time,
    report_filename,
    summarize,
    to_csv,
    transaction_row,
)
from utils.clock import SystemClock
from utils.file_manager import JsonFileStorage, ensure_defaults, read_config
from utils.pricing_advice import get_pricing_recommendation

LOG = logging.getLogger(__name__)


def _error(message, status=400):
    return jsonify({"ok": False, "error": message}), status


def _report_args():
    """Time filter, custom range and year-label flag from the query string."""
    time_filter = TimeFilter(request.args.get("filter", TimeFilter.TODAY.value).upper())
    start = request.args.get("start")
    end = request.args.get("end")
    custom = CustomRange(
        start=date.fromisoformat(start) if start else None,
        end=date.fromisoformat(end) if end else None,
    )
    with_year = request.args.get("with_year")
    if with_year is None:
        with_year = bool(read_config()["reports"].get("day_label_with_year", False))
    else:
        with_year = with_year.lower() in ("1", "true", "yes")
    return time_filter, custom, with_year


def _menu_item_from_body(data, item_id):
    name = (data.get("name") or "").strip()
    if not name:
        raise ValueError("Provide a menu name")
    promo = data.get("promoPrice")
    return MenuItem.from_dict({
        "id": item_id,
        "name": name,
        "category": data.get("category") or Category.FOOD.value,
        "hpp": int(data.get("hpp") or 0),
        "price": int(data.get("price") or 0),
        "promoPrice": int(promo) if promo and int(promo) > 0 else None,
        "description": data.get("description") or "",
        "isPopular": bool(data.get("isPopular", False)),
    })


def create_app(storage=None, clock=None, start_scheduler=True) -> Flask:
    if storage is None:
        ensure_defaults()
        storage = JsonFileStorage()
    clock = clock or SystemClock()

    catalog = CatalogStore(storage)
    ledger = LedgerStore(storage)
    profiles = ProfileStore(storage)
    session = CheckoutSession(ledger, clock)

    app = Flask(__name__)
    app.config.update(STORAGE=storage, CLOCK=clock, CATALOG=catalog, LEDGER=ledger, PROFILES=profiles, SESSION=session)

    scheduler = BackgroundScheduler(daemon=True)
    app.config["SCHEDULER"] = scheduler

    def _backup_tick():
        write_backup_snapshot(catalog, ledger, profiles, clock)

    def _schedule_job():
        cfg = read_config()
        enabled = bool(cfg["backup"].get("enabled", True))
        seconds = int(cfg["backup"].get("interval_seconds", 3600))
        for job in scheduler.get_jobs():
            scheduler.remove_job(job.id)
        if enabled:
            scheduler.add_job(_backup_tick, trigger=IntervalTrigger(seconds=seconds), id="backup_tick", replace_existing=True)
            if not scheduler.running:
                scheduler.start()

    if start_scheduler:
        _schedule_job()

    @app.get("/status")
    def status():
        jobs = scheduler.get_jobs() if scheduler.running else []
        next_run = jobs[0].next_run_time.isoformat() if jobs else None
        return jsonify({
            "store": profiles.get().name,
            "menu_items": len(catalog.list()),
            "transactions": len(ledger.transactions()),
            "expenditures": len(ledger.expenditures()),
            "scheduler_running": scheduler.running,
            "next_backup_time": next_run,
        })

    # -------- Menu --------
    @app.get("/menu")
    def menu_list():
        category = request.args.get("category")
        try:
            items = catalog.list(Category(category.upper()) if category else None)
        except ValueError as e:
            return _error(str(e))
        return jsonify({"ok": True, "menu": [i.to_dict() for i in items]})

    @app.post("/menu")
    def menu_add():
        data = request.get_json(force=True, silent=True) or {}
        try:
            if not data.get("hpp"):
                raise ValueError("Provide a menu name and HPP")
            item = catalog.add(_menu_item_from_body(data, catalog.new_item_id(clock.now())))
        except (ValueError, TypeError) as e:
            return _error(str(e))
        return jsonify({"ok": True, "item": item.to_dict()}), 201

    @app.put("/menu/<item_id>")
    def menu_update(item_id):
        if catalog.get(item_id) is None:
            return _error(f"Unknown menu item: {item_id}", 404)
        data = request.get_json(force=True, silent=True) or {}
        try:
            if not data.get("price"):
                raise ValueError("Provide a menu name and price")
            item = catalog.update(_menu_item_from_body(data, item_id))
        except (ValueError, TypeError) as e:
            return _error(str(e))
        return jsonify({"ok": True, "item": item.to_dict()})

    @app.delete("/menu/<item_id>")
    def menu_delete(item_id):
        try:
            catalog.remove(item_id)
        except ValueError as e:
            return _error(str(e), 404)
        return jsonify({"ok": True})

    @app.post("/menu/pricing-advice")
    def menu_pricing_advice():
        data = request.get_json(force=True, silent=True) or {}
        name = (data.get("name") or "").strip()
        hpp = data.get("hpp")
        if not name or not hpp:
            return _error("Provide a menu name and HPP")
        cfg = read_config()["pricing_advice"]
        advice = get_pricing_recommendation(
            name,
            data.get("ingredients") or "",
            int(hpp),
            model=cfg.get("model", "gemini-2.5-flash"),
            timeout=float(cfg.get("timeout_seconds", 20)),
        )
        return jsonify({
            "ok": True,
            "advice": advice.to_dict(),
            "margin_check": suggested_margin(int(hpp), int(advice.suggested_price)),
        })

    # -------- Cart / checkout --------
    @app.get("/cart")
    def cart_get():
        return jsonify({"ok": True, "cart": session.snapshot()})

    @app.post("/cart/items")
    def cart_add():
        data = request.get_json(force=True, silent=True) or {}
        item = catalog.get(str(data.get("id")))
        if item is None:
            return _error(f"Unknown menu item: {data.get('id')}", 404)
        session.add(item)
        return jsonify({"ok": True, "cart": session.snapshot()})

    @app.post("/cart/items/<item_id>/quantity")
    def cart_quantity(item_id):
        data = request.get_json(force=True, silent=True) or {}
        try:
            session.update_quantity(item_id, int(data.get("delta", 0)))
        except (ValueError, TypeError) as e:
            return _error(str(e))
        return jsonify({"ok": True, "cart": session.snapshot()})

    @app.put("/cart/context")
    def cart_context():
        data = request.get_json(force=True, silent=True) or {}
        try:
            session.set_context(
                order_source=data.get("orderSource"),
                payment_method=data.get("paymentMethod"),
                customer_name=data.get("customerName"),
                cash_given=data.get("cashGiven"),
            )
        except (ValueError, TypeError) as e:
            return _error(str(e))
        return jsonify({"ok": True, "cart": session.snapshot()})

    @app.delete("/cart")
    def cart_clear():
        session.clear()
        return jsonify({"ok": True, "cart": session.snapshot()})

    @app.post("/cart/checkout")
    def cart_checkout():
        data = request.get_json(force=True, silent=True) or {}
        try:
            if data:
                session.set_context(
                    order_source=data.get("orderSource"),
                    payment_method=data.get("paymentMethod"),
                    customer_name=data.get("customerName"),
                    cash_given=data.get("cashGiven"),
                )
            trx = session.checkout()
        except (ValueError, TypeError) as e:
            return _error(str(e))
        return jsonify({"ok": True, "transaction": trx.to_dict()}), 201

    @app.get("/transactions")
    def transactions_list():
        try:
            time_filter, custom, _ = _report_args()
        except ValueError as e:
            return _error(str(e))
        rows = filter_by_time(ledger.transactions(), time_filter, clock.now(), custom)
        return jsonify({"ok": True, "transactions": [t.to_dict() for t in rows]})

    def _receipt_response(trx):
        receipt = build_receipt(trx, profiles.get())
        if request.args.get("format") == "text":
            return Response(render_text(receipt), mimetype="text/plain")
        return jsonify({"ok": True, "receipt": receipt})

    @app.get("/cart/last-receipt")
    def cart_last_receipt():
        if session.last_transaction is None:
            return _error("No transaction has been checked out yet", 404)
        return _receipt_response(session.last_transaction)

    @app.get("/transactions/<trx_id>/receipt")
    def transaction_receipt(trx_id):
        trx = ledger.get_transaction(trx_id)
        if trx is None:
            return _error(f"Unknown transaction: {trx_id}", 404)
        return _receipt_response(trx)

    # -------- Expenditures --------
    @app.get("/expenditures")
    def expenditures_list():
        rows = sorted(ledger.expenditures(), key=lambda e: e.timestamp, reverse=True)
        return jsonify({
            "ok": True,
            "expenditures": [e.to_dict() for e in rows],
            "total": sum(e.amount for e in rows),
        })

    @app.post("/expenditures")
    def expenditures_add():
        data = request.get_json(force=True, silent=True) or {}
        now = clock.now()
        try:
            day = date.fromisoformat(data["date"]) if data.get("date") else now.date()
            # the chosen day at the current hour and minute
            when = datetime(day.year, day.month, day.day, now.hour, now.minute)
            exp = ledger.add_expenditure(data.get("description"), int(data.get("amount") or 0), when, now)
        except (ValueError, TypeError) as e:
            return _error(str(e))
        return jsonify({"ok": True, "expenditure": exp.to_dict()}), 201

    @app.delete("/expenditures/<exp_id>")
    def expenditures_delete(exp_id):
        try:
            ledger.remove_expenditure(exp_id)
        except ValueError as e:
            return _error(str(e), 404)
        return jsonify({"ok": True})

    # -------- Reports --------
    @app.get("/reports/summary")
    def reports_summary():
        try:
            time_filter, custom, with_year = _report_args()
        except ValueError as e:
            return _error(str(e))
        summary = summarize(ledger.transactions(), ledger.expenditures(), time_filter, clock.now(), custom, with_year)
        return jsonify({"ok": True, "summary": summary})

    @app.get("/reports/transactions.csv")
    def reports_transactions_csv():
        try:
            time_filter, custom, _ = _report_args()
        except ValueError as e:
            return _error(str(e))
        now = clock.now()
        rows = filter_by_time(ledger.transactions(), time_filter, now, custom)
        if not rows:
            return _error("No transactions for this filter", 404)
        body = to_csv(TRANSACTION_HEADERS, (transaction_row(t) for t in rows))
        return Response(body, mimetype="text/csv", headers={
            "Content-Disposition": f"attachment; filename={report_filename(time_filter, now)}",
        })

    @app.get("/reports/expenditures.csv")
    def reports_expenditures_csv():
        try:
            time_filter, custom, _ = _report_args()
        except ValueError as e:
            return _error(str(e))
        now = clock.now()
        rows = filter_by_time(ledger.expenditures(), time_filter, now, custom)
        body = to_csv(EXPENDITURE_HEADERS, (expenditure_row(e) for e in rows))
        return Response(body, mimetype="text/csv", headers={
            "Content-Disposition": f"attachment; filename=Pengeluaran_{time_filter.value}_{now.date().isoformat()}.csv",
        })

    # -------- Profile --------
    @app.get("/profile")
    def profile_get():
        return jsonify({"ok": True, "profile": profiles.get().to_dict()})

    @app.put("/profile")
    def profile_put():
        data = request.get_json(force=True, silent=True) or {}
        try:
            profile = profiles.save(StoreProfile.from_dict(data))
        except (ValueError, KeyError, TypeError) as e:
            return _error(f"Invalid profile: {e}")
        return jsonify({"ok": True, "profile": profile.to_dict()})

    # -------- Admin --------
    @app.get("/backup")
    def backup_get():
        return jsonify(export_backup(catalog, ledger, profiles, clock.now()))

    @app.post("/backup/import")
    def backup_import():
        data = request.get_json(force=True, silent=True)
        try:
            counts = import_backup(data, catalog, ledger, profiles)
        except ValueError as e:
            return _error(str(e))
        session.clear()
        return jsonify({"ok": True, "imported": counts})

    @app.post("/backup/snapshot")
    def backup_snapshot():
        return jsonify({"ok": True, "snapshot": write_backup_snapshot(catalog, ledger, profiles, clock)})

    @app.post("/reset")
    def reset_all():
        factory_reset(storage, catalog, ledger)
        session.clear()
        session.last_transaction = None
        return jsonify({"ok": True})

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_app().run(host="0.0.0.0", port=5000, debug=True)
