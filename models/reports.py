"""Time-window filtering and aggregates for the sales reports.

Every boundary is resolved against the caller's current local time, so the
TODAY/WEEK/MONTH views move forward as the clock does even with no new data.
"""

import csv
import io
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from models.domain import DEFAULT_CUSTOMER_NAME, CustomRange, Expenditure, TimeFilter, Transaction
from utils.clock import from_millis, to_millis

MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"]

TRANSACTION_HEADERS = ["ID Transaksi", "Tanggal", "Jam", "Pelanggan", "Items", "Sumber", "Pembayaran", "HPP", "Total Penjualan", "Profit"]
EXPENDITURE_HEADERS = ["ID Pengeluaran", "Tanggal", "Jam", "Keterangan", "Jumlah"]

def _start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)

def _end_of_day(d: date) -> datetime:
    # 23:59:59.999, millisecond precision like the stored timestamps
    return datetime.combine(d, time(23, 59, 59, 999000))

def period_bounds(time_filter, now: datetime, custom_range: Optional[CustomRange] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    time_filter = TimeFilter(time_filter)
    today = now.date()
    if time_filter == TimeFilter.TODAY:
        return _start_of_day(today), None
    if time_filter == TimeFilter.WEEK:
        # weeks start on Sunday; date.weekday() has Monday = 0
        days_since_sunday = (today.weekday() + 1) % 7
        return _start_of_day(today - timedelta(days=days_since_sunday)), None
    if time_filter == TimeFilter.MONTH:
        return _start_of_day(today.replace(day=1)), None
    if time_filter == TimeFilter.CUSTOM:
        if custom_range is None or custom_range.start is None or custom_range.end is None:
            return None, None
        return _start_of_day(custom_range.start), _end_of_day(custom_range.end)
    return None, None

def filter_by_time(records: Iterable, time_filter, now: datetime, custom_range: Optional[CustomRange] = None) -> List:
    start, end = period_bounds(time_filter, now, custom_range)
    start_ms = to_millis(start) if start else None
    end_ms = to_millis(end) if end else None
    out = []
    for r in records:
        if start_ms is not None and r.timestamp < start_ms:
            continue
        if end_ms is not None and r.timestamp > end_ms:
            continue
        out.append(r)
    return out

def day_label(ms: int, with_year: bool = False) -> str:
    d = from_millis(ms)
    label = f"{d.day} {MONTH_LABELS[d.month - 1]}"
    return f"{label} {d.year}" if with_year else label

def sales_by_day(transactions: Iterable[Transaction], with_year: bool = False) -> List[Dict]:
    # Without the year, the same day in different years shares a bucket.
    grouped: Dict[str, int] = {}
    for t in transactions:
        key = day_label(t.timestamp, with_year)
        grouped[key] = grouped.get(key, 0) + t.total_amount
    return [{"name": k, "sales": v} for k, v in grouped.items()]

def source_label(order_source) -> str:
    value = getattr(order_source, "value", order_source)
    return value.replace("ONLINE_", "")

def counts_by_source(transactions: Iterable[Transaction]) -> List[Dict]:
    grouped: Dict[str, int] = {}
    for t in transactions:
        key = source_label(t.order_source)
        grouped[key] = grouped.get(key, 0) + 1
    return [{"name": k, "value": v} for k, v in grouped.items()]

def top_items(transactions: Iterable[Transaction], limit: int = 5) -> List[Dict]:
    """Best sellers by quantity, then revenue."""
    agg: Dict[str, Dict] = {}
    for t in transactions:
        for line in t.items:
            row = agg.setdefault(line.id, {"id": line.id, "name": line.name, "quantity": 0, "revenue": 0})
            row["quantity"] += line.quantity
            row["revenue"] += line.price * line.quantity
    ranked = sorted(agg.values(), key=lambda r: (-r["quantity"], -r["revenue"]))
    return ranked[:limit]

def summarize(transactions: Iterable[Transaction], expenditures: Iterable[Expenditure], time_filter, now: datetime,
              custom_range: Optional[CustomRange] = None, with_year: bool = False) -> Dict:
    included = filter_by_time(transactions, time_filter, now, custom_range)
    spent = filter_by_time(expenditures, time_filter, now, custom_range)

    total_sales = sum(t.total_amount for t in included)
    total_op_profit = sum(t.total_profit for t in included)
    total_orders = len(included)
    total_expenditure = sum(e.amount for e in spent)
    return {
        "filter": TimeFilter(time_filter).value,
        "total_sales": total_sales,
        "total_op_profit": total_op_profit,
        "total_orders": total_orders,
        "avg_order_value": total_sales / total_orders if total_orders else 0,
        "total_expenditure": total_expenditure,
        "net_profit": total_op_profit - total_expenditure,
        "sales_by_day": sales_by_day(included, with_year),
        "counts_by_source": counts_by_source(included),
        "top_items": top_items(included),
    }

# -------- Export rows --------
def _date_and_time(ms: int) -> Tuple[str, str]:
    d = from_millis(ms)
    return f"{d.day}/{d.month}/{d.year}", f"{d.hour:02d}.{d.minute:02d}"

def transaction_row(t: Transaction) -> List:
    day, clock = _date_and_time(t.timestamp)
    return [
        t.id,
        day,
        clock,
        t.customer_name or DEFAULT_CUSTOMER_NAME,
        "; ".join(f"{line.name} ({line.quantity})" for line in t.items),
        t.order_source.value,
        t.payment_method.value if t.payment_method else "-",
        t.total_hpp,
        t.total_amount,
        t.total_profit,
    ]

def expenditure_row(e: Expenditure) -> List:
    day, clock = _date_and_time(e.timestamp)
    return [e.id, day, clock, e.description, e.amount]

def to_csv(headers: List[str], rows: Iterable[List]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return buf.getvalue().rstrip("\n")

def report_filename(time_filter, now: datetime) -> str:
    return f"Laporan_Penjualan_{TimeFilter(time_filter).value}_{now.date().isoformat()}.csv"
