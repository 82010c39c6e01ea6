"""Receipt (struk) content for a committed transaction."""
from typing import Dict, List

from models.domain import DEFAULT_CUSTOMER_NAME, StoreProfile, Transaction
from models.pricing import promo_savings
from models.reports import source_label
from utils.clock import from_millis

RECEIPT_WIDTH = 32
THANKS = "TERIMA KASIH"


def build_receipt(transaction: Transaction, profile: StoreProfile) -> Dict:
    moment = from_millis(transaction.timestamp)
    lines = [
        {
            "name": line.name,
            "quantity": line.quantity,
            "price": line.price,
            "originalPrice": line.original_price,
            "subtotal": line.price * line.quantity,
        }
        for line in transaction.items
    ]
    payment = transaction.payment_method.value if transaction.payment_method else None
    return {
        "store": {
            "name": profile.name,
            "address": profile.address,
            "phone": profile.phone,
            "socialMedia": profile.social_media,
        },
        "transactionId": transaction.id,
        "date": f"{moment.day}/{moment.month}/{moment.year}",
        "time": f"{moment.hour:02d}.{moment.minute:02d}",
        "customerName": transaction.customer_name or DEFAULT_CUSTOMER_NAME,
        "orderSource": transaction.order_source.value,
        # offline sales show the payment method, online ones the platform
        "method": payment or source_label(transaction.order_source),
        "lines": lines,
        "totalItems": sum(line.quantity for line in transaction.items),
        "savings": promo_savings(list(transaction.items)),
        "totalAmount": transaction.total_amount,
        "cashGiven": transaction.cash_given,
        "change": transaction.change,
        "footer": profile.footer_text,
    }


def _money(amount: int) -> str:
    return f"{amount:,}".replace(",", ".")


def _row(left: str, right: str) -> str:
    gap = max(RECEIPT_WIDTH - len(left) - len(right), 1)
    return f"{left}{' ' * gap}{right}"


def render_text(receipt: Dict) -> str:
    """Fixed-width plain text for a thermal printer."""
    rule = "-" * RECEIPT_WIDTH
    store = receipt["store"]
    out: List[str] = [store["name"].upper().center(RECEIPT_WIDTH).rstrip()]
    for extra in (store["address"], store["phone"], store["socialMedia"]):
        if extra:
            out.append(extra.center(RECEIPT_WIDTH).rstrip())
    out.append(f"{receipt['date']} {receipt['time']}".center(RECEIPT_WIDTH).rstrip())
    out.append(receipt["transactionId"])
    out.append(receipt["customerName"])
    out.append(rule)
    for line in receipt["lines"]:
        out.append(line["name"])
        out.append(_row(f"{line['quantity']} x {_money(line['price'])}", _money(line["subtotal"])))
    out.append(rule)
    if receipt["savings"]:
        out.append(_row("Hemat", _money(receipt["savings"])))
    out.append(_row("TOTAL", f"IDR {_money(receipt['totalAmount'])}"))
    out.append(_row("Metode:", receipt["method"]))
    if receipt["cashGiven"] is not None:
        out.append(_row("Bayar:", f"IDR {_money(receipt['cashGiven'])}"))
        out.append(_row("Kembali:", f"IDR {_money(receipt['change'] or 0)}"))
    out.append(rule)
    out.append(THANKS.center(RECEIPT_WIDTH).rstrip())
    if receipt["footer"]:
        out.append(receipt["footer"].center(RECEIPT_WIDTH).rstrip())
    return "\n".join(out) + "\n"
