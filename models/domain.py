"""Domain entities for the stall POS.

Amounts are integers in the smallest currency unit (IDR) and timestamps are
Unix milliseconds. ``to_dict``/``from_dict`` use the camelCase JSON shape
that is persisted and exported in backups.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Category(str, Enum):
    FOOD = "FOOD"
    BEVERAGE = "BEVERAGE"
    ADD_ON = "ADD_ON"


class OrderSource(str, Enum):
    OFFLINE = "OFFLINE"
    ONLINE_GRAB = "ONLINE_GRAB"
    ONLINE_GOJEK = "ONLINE_GOJEK"
    ONLINE_SHOPEE = "ONLINE_SHOPEE"
    WHATSAPP = "WHATSAPP"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    QRIS = "QRIS"
    TRANSFER = "TRANSFER"
    E_WALLET = "E_WALLET"


class TimeFilter(str, Enum):
    TODAY = "TODAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    LIFETIME = "LIFETIME"
    CUSTOM = "CUSTOM"


DEFAULT_CUSTOMER_NAME = "Pelanggan Umum"


def _amount(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{name} must be a whole amount")
    return int(value)


def _optional_amount(value: Any, name: str) -> Optional[int]:
    return None if value is None else _amount(value, name)


def _strip_none(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass
class MenuItem:
    id: str
    name: str
    category: Category
    hpp: int
    price: int
    promo_price: Optional[int] = None
    description: Optional[str] = None
    is_popular: Optional[bool] = None

    def __post_init__(self):
        self.category = Category(self.category)
        if self.hpp < 0:
            raise ValueError("hpp must not be negative")
        if self.price < 0:
            raise ValueError("price must not be negative")
        if self.promo_price is not None and self.promo_price < 0:
            raise ValueError("promoPrice must not be negative")

    def to_dict(self) -> Dict[str, Any]:
        return _strip_none({
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "hpp": self.hpp,
            "price": self.price,
            "promoPrice": self.promo_price,
            "description": self.description,
            "isPopular": self.is_popular,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MenuItem":
        return cls(
            id=str(d["id"]),
            name=str(d["name"]),
            category=Category(d["category"]),
            hpp=_amount(d["hpp"], "hpp"),
            price=_amount(d["price"], "price"),
            promo_price=_optional_amount(d.get("promoPrice"), "promoPrice"),
            description=d.get("description"),
            is_popular=d.get("isPopular"),
        )


@dataclass
class CartLine:
    """A menu item snapshot taken when it entered the cart."""

    item: MenuItem
    quantity: int
    price: int
    original_price: int

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def hpp(self) -> int:
        return self.item.hpp

    def to_dict(self) -> Dict[str, Any]:
        d = self.item.to_dict()
        d["price"] = self.price
        d["quantity"] = self.quantity
        d["originalPrice"] = self.original_price
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CartLine":
        quantity = d["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError("quantity must be a positive integer")
        price = _amount(d["price"], "price")
        original = d.get("originalPrice")
        item = MenuItem.from_dict({**d, "price": original if original is not None else price})
        return cls(
            item=item,
            quantity=quantity,
            price=price,
            original_price=item.price,
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    timestamp: int
    items: Tuple[CartLine, ...]
    total_amount: int
    total_hpp: int
    total_profit: int
    order_source: OrderSource
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    cash_given: Optional[int] = None
    change: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return _strip_none({
            "id": self.id,
            "timestamp": self.timestamp,
            "items": [line.to_dict() for line in self.items],
            "totalAmount": self.total_amount,
            "totalHpp": self.total_hpp,
            "totalProfit": self.total_profit,
            "orderSource": self.order_source.value,
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "customerName": self.customer_name,
            "cashGiven": self.cash_given,
            "change": self.change,
        })

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Transaction":
        payment = d.get("paymentMethod")
        transaction = cls(
            id=str(d["id"]),
            timestamp=_amount(d["timestamp"], "timestamp"),
            items=tuple(CartLine.from_dict(line) for line in d["items"]),
            total_amount=_amount(d["totalAmount"], "totalAmount"),
            total_hpp=_amount(d["totalHpp"], "totalHpp"),
            total_profit=_amount(d["totalProfit"], "totalProfit"),
            order_source=OrderSource(d["orderSource"]),
            payment_method=PaymentMethod(payment) if payment else None,
            customer_name=d.get("customerName"),
            cash_given=_optional_amount(d.get("cashGiven"), "cashGiven"),
            change=_optional_amount(d.get("change"), "change"),
        )
        transaction.check_totals()
        return transaction

    def check_totals(self):
        """Stored totals must match the lines they were computed from."""
        amount = sum(line.price * line.quantity for line in self.items)
        hpp = sum(line.hpp * line.quantity for line in self.items)
        if self.total_amount != amount:
            raise ValueError(f"totalAmount {self.total_amount} does not match its items ({amount})")
        if self.total_hpp != hpp:
            raise ValueError(f"totalHpp {self.total_hpp} does not match its items ({hpp})")
        if self.total_profit != self.total_amount - self.total_hpp:
            raise ValueError("totalProfit must equal totalAmount - totalHpp")


@dataclass(frozen=True)
class Expenditure:
    id: str
    timestamp: int
    description: str
    amount: int

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError("amount must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "description": self.description,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Expenditure":
        return cls(
            id=str(d["id"]),
            timestamp=_amount(d["timestamp"], "timestamp"),
            description=str(d["description"]),
            amount=_amount(d["amount"], "amount"),
        )


@dataclass
class StoreProfile:
    name: str
    address: str = ""
    phone: str = ""
    social_media: str = ""
    footer_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "socialMedia": self.social_media,
            "footerText": self.footer_text,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StoreProfile":
        if not isinstance(d, dict):
            raise TypeError("profile must be an object")
        name = str(d["name"]).strip()
        if not name:
            raise ValueError("Store name is required")
        return cls(
            name=name,
            address=str(d.get("address", "")),
            phone=str(d.get("phone", "")),
            social_media=str(d.get("socialMedia", "")),
            footer_text=str(d.get("footerText", "")),
        )


@dataclass
class CheckoutContext:
    order_source: OrderSource = OrderSource.OFFLINE
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    cash_given: Optional[int] = None


@dataclass(frozen=True)
class CustomRange:
    start: Optional[date] = None
    end: Optional[date] = None


Cart = List[CartLine]


def copy_item(item: MenuItem) -> MenuItem:
    return replace(item)
