import logging
from datetime import datetime
from typing import Dict, List, Optional

from models.domain import (
    DEFAULT_CUSTOMER_NAME,
    CartLine,
    CheckoutContext,
    MenuItem,
    OrderSource,
    PaymentMethod,
    Transaction,
)
from models.pricing import add_to_cart, cart_hpp, cart_totals, update_quantity
from utils.clock import to_millis

LOG = logging.getLogger(__name__)

BUILDING = "BUILDING"
COMMITTED = "COMMITTED"


class CheckoutError(ValueError):
    pass


class EmptyCartError(CheckoutError):
    def __init__(self):
        super().__init__("Cart is empty")


class InsufficientCashError(CheckoutError):
    def __init__(self, cash_given, total_amount):
        self.cash_given = cash_given
        self.total_amount = total_amount
        super().__init__(f"Cash given ({cash_given}) is less than the total ({total_amount})")


def _is_cash_sale(context: CheckoutContext) -> bool:
    return context.order_source == OrderSource.OFFLINE and context.payment_method == PaymentMethod.CASH


def compute_change(cash_given: Optional[int], total_amount: int) -> int:
    """Change to hand back; 0 while the cash is missing or short."""
    if cash_given is None or cash_given < total_amount:
        return 0
    return cash_given - total_amount


def validate(cart: List[CartLine], context: CheckoutContext) -> int:
    """Raise the checkout error for this cart/context, else return the total."""
    if not cart:
        raise EmptyCartError()
    total_amount = cart_totals(cart)["total_amount"]
    if _is_cash_sale(context):
        cash = context.cash_given if context.cash_given is not None else 0
        if cash < total_amount:
            raise InsufficientCashError(cash, total_amount)
    return total_amount


def build_transaction(cart: List[CartLine], context: CheckoutContext, now: datetime, transaction_id: str) -> Transaction:
    total_amount = validate(cart, context)
    total_hpp = cart_hpp(cart)
    order_source = OrderSource(context.order_source)
    cash_sale = _is_cash_sale(context)
    payment = context.payment_method if order_source == OrderSource.OFFLINE else None
    customer = (context.customer_name or "").strip() or DEFAULT_CUSTOMER_NAME

    return Transaction(
        id=transaction_id,
        timestamp=to_millis(now),
        items=tuple(CartLine(line.item, line.quantity, line.price, line.original_price) for line in cart),
        total_amount=total_amount,
        total_hpp=total_hpp,
        total_profit=total_amount - total_hpp,
        order_source=order_source,
        payment_method=PaymentMethod(payment) if payment else None,
        customer_name=customer,
        cash_given=context.cash_given if cash_sale else None,
        change=compute_change(context.cash_given, total_amount) if cash_sale else None,
    )


class CheckoutSession:
    """Cart plus order context for the single register.

    The session stays in BUILDING while the cart is edited; a successful
    `checkout` commits the transaction to the ledger and resets the session.
    """

    def __init__(self, ledger, clock):
        self.ledger = ledger
        self.clock = clock
        self.cart: List[CartLine] = []
        self.last_transaction: Optional[Transaction] = None
        self.state = BUILDING
        self._reset_context()

    def _reset_context(self):
        self.order_source = OrderSource.OFFLINE
        self.payment_method = PaymentMethod.CASH
        self.customer_name = ""
        self.cash_given: Optional[int] = None

    def add(self, item: MenuItem):
        self.state = BUILDING
        add_to_cart(self.cart, item)
        return self.cart

    def update_quantity(self, item_id: str, delta: int):
        update_quantity(self.cart, item_id, delta)
        return self.cart

    def set_context(self, order_source=None, payment_method=None, customer_name=None, cash_given=None):
        if order_source is not None:
            self.order_source = OrderSource(order_source)
        if payment_method is not None:
            self.payment_method = PaymentMethod(payment_method)
        if customer_name is not None:
            self.customer_name = customer_name
        if cash_given is not None:
            self.cash_given = int(cash_given)

    def context(self) -> CheckoutContext:
        return CheckoutContext(
            order_source=self.order_source,
            payment_method=self.payment_method,
            customer_name=self.customer_name,
            cash_given=self.cash_given,
        )

    def totals(self) -> Dict[str, int]:
        return cart_totals(self.cart)

    def change_due(self) -> int:
        return compute_change(self.cash_given, self.totals()["total_amount"])

    def clear(self):
        self.cart = []
        self._reset_context()
        self.state = BUILDING

    def checkout(self) -> Transaction:
        now = self.clock.now()
        transaction = build_transaction(self.cart, self.context(), now, self.ledger.next_transaction_id(now))
        self.ledger.append(transaction)
        LOG.info("Recorded %s: %s via %s", transaction.id, transaction.total_amount, transaction.order_source.value)
        self.last_transaction = transaction
        self.cart = []
        self._reset_context()
        self.state = COMMITTED
        return transaction

    def snapshot(self) -> Dict:
        totals = self.totals()
        return {
            "state": self.state,
            "items": [line.to_dict() for line in self.cart],
            "total_amount": totals["total_amount"],
            "total_items": totals["total_items"],
            "order_source": self.order_source.value,
            "payment_method": self.payment_method.value if self.payment_method else None,
            "customer_name": self.customer_name,
            "cash_given": self.cash_given,
            "change": self.change_due(),
        }
