from datetime import datetime

import pytest

from models.catalog import CatalogStore
from models.checkout import (
    BUILDING,
    COMMITTED,
    CheckoutSession,
    EmptyCartError,
    InsufficientCashError,
    build_transaction,
    compute_change,
)
from models.domain import CheckoutContext, OrderSource, PaymentMethod
from models.ledger import LedgerStore
from models.pricing import add_to_cart
from utils.clock import FixedClock, to_millis
from utils.file_manager import MemoryStorage

NOW = datetime(2025, 9, 3, 14, 30)


def setup_session():
    storage = MemoryStorage()
    catalog = CatalogStore(storage)
    ledger = LedgerStore(storage)
    session = CheckoutSession(ledger, FixedClock(NOW))
    # 25000/12000 x1 and 5000/2000 x2
    session.add(catalog.get("1"))
    session.add(catalog.get("4"))
    session.add(catalog.get("4"))
    return session, ledger, catalog


def test_cash_checkout_records_change():
    session, ledger, _ = setup_session()
    session.set_context(order_source="OFFLINE", payment_method="CASH", cash_given=50000)
    assert session.change_due() == 15000

    trx = session.checkout()
    assert trx.total_amount == 35000
    assert trx.total_hpp == 16000
    assert trx.total_profit == 19000
    assert trx.cash_given == 50000
    assert trx.change == 15000
    assert trx.payment_method == PaymentMethod.CASH
    assert trx.customer_name == "Pelanggan Umum"
    assert trx.timestamp == to_millis(NOW)
    assert ledger.transactions() == [trx]

    assert session.cart == []
    assert session.state == COMMITTED
    assert session.order_source == OrderSource.OFFLINE
    assert session.cash_given is None
    assert session.last_transaction is trx


def test_exact_cash_gives_zero_change():
    session, _, _ = setup_session()
    session.set_context(cash_given=35000)
    trx = session.checkout()
    assert trx.change == 0


def test_insufficient_cash_leaves_state_untouched():
    session, ledger, _ = setup_session()
    session.set_context(cash_given=34999)
    with pytest.raises(InsufficientCashError):
        session.checkout()
    assert ledger.transactions() == []
    assert len(session.cart) == 2
    assert session.state == BUILDING


def test_empty_cart_fails():
    storage = MemoryStorage()
    ledger = LedgerStore(storage)
    session = CheckoutSession(ledger, FixedClock(NOW))
    with pytest.raises(EmptyCartError):
        session.checkout()
    assert ledger.transactions() == []


def test_online_order_drops_payment_and_cash():
    session, _, _ = setup_session()
    session.set_context(order_source="ONLINE_GRAB", payment_method="QRIS", cash_given=1000, customer_name="  Sari ")
    trx = session.checkout()
    assert trx.order_source == OrderSource.ONLINE_GRAB
    assert trx.payment_method is None
    assert trx.cash_given is None
    assert trx.change is None
    assert trx.customer_name == "Sari"
    d = trx.to_dict()
    assert "paymentMethod" not in d and "cashGiven" not in d and "change" not in d


def test_non_cash_offline_payment_skips_cash_check():
    session, _, _ = setup_session()
    session.set_context(payment_method="QRIS")
    trx = session.checkout()
    assert trx.payment_method == PaymentMethod.QRIS
    assert trx.cash_given is None


def test_transaction_uses_hpp_captured_in_cart():
    session, _, catalog = setup_session()
    item = catalog.get("1")
    item.hpp = 99999
    catalog.update(item)
    session.set_context(cash_given=35000)
    assert session.checkout().total_hpp == 16000


def test_transaction_ids_increase_within_same_millisecond():
    session, ledger, catalog = setup_session()
    session.set_context(cash_given=35000)
    first = session.checkout()
    session.add(catalog.get("6"))
    session.set_context(cash_given=2000)
    second = session.checkout()
    assert first.id == f"TRX-{to_millis(NOW)}"
    assert second.id == f"TRX-{to_millis(NOW) + 1}"
    assert [t.id for t in ledger.transactions()] == [first.id, second.id]


def test_build_transaction_is_pure():
    storage = MemoryStorage()
    catalog = CatalogStore(storage)
    cart = add_to_cart([], catalog.get("2"))
    ctx = CheckoutContext(order_source=OrderSource.WHATSAPP, payment_method=PaymentMethod.CASH)
    trx = build_transaction(cart, ctx, NOW, "TRX-1")
    assert trx.total_amount == 30000
    assert trx.payment_method is None
    assert len(cart) == 1


def test_compute_change():
    assert compute_change(None, 1000) == 0
    assert compute_change(500, 1000) == 0
    assert compute_change(1500, 1000) == 500
