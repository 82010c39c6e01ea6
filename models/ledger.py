import logging
from datetime import datetime
from typing import List, Optional

from models.domain import Expenditure, Transaction
from utils.clock import to_millis
from utils.file_manager import EXPENDITURES_KEY, TRANSACTIONS_KEY, dump_json_blob, load_json_blob

LOG = logging.getLogger(__name__)


def next_id(prefix: str, now: datetime, latest: Optional[str]) -> str:
    """`<prefix>-<ms>`, bumped past `latest` so ids keep increasing."""
    ms = to_millis(now)
    if latest:
        try:
            ms = max(ms, int(latest.rsplit("-", 1)[-1]) + 1)
        except ValueError:
            pass
    return f"{prefix}-{ms}"


class LedgerStore:
    """Append-only transactions plus the expenditure log."""

    def __init__(self, storage):
        self.storage = storage
        self._transactions = self._load(TRANSACTIONS_KEY, Transaction)
        self._expenditures = self._load(EXPENDITURES_KEY, Expenditure)

    def _load(self, key: str, entity):
        try:
            raw = load_json_blob(self.storage, key)
            if raw is None:
                return []
            return [entity.from_dict(d) for d in raw]
        except (ValueError, KeyError, TypeError) as exc:
            LOG.warning("Stored %s are unreadable (%s); starting empty", key, exc)
            return []

    def _save_transactions(self):
        dump_json_blob(self.storage, TRANSACTIONS_KEY, [t.to_dict() for t in self._transactions])

    def _save_expenditures(self):
        dump_json_blob(self.storage, EXPENDITURES_KEY, [e.to_dict() for e in self._expenditures])

    def reload(self):
        self._transactions = self._load(TRANSACTIONS_KEY, Transaction)
        self._expenditures = self._load(EXPENDITURES_KEY, Expenditure)

    # -------- Transactions --------
    def transactions(self) -> List[Transaction]:
        return list(self._transactions)

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    def latest_transaction_id(self) -> Optional[str]:
        return self._transactions[-1].id if self._transactions else None

    def next_transaction_id(self, now: datetime) -> str:
        return next_id("TRX", now, self.latest_transaction_id())

    def append(self, transaction: Transaction) -> Transaction:
        if any(t.id == transaction.id for t in self._transactions):
            raise ValueError(f"Transaction {transaction.id} already recorded")
        self._transactions.append(transaction)
        self._save_transactions()
        return transaction

    def replace_transactions(self, transactions: List[Transaction]):
        self._transactions = list(transactions)
        self._save_transactions()

    # -------- Expenditures --------
    def expenditures(self) -> List[Expenditure]:
        return list(self._expenditures)

    def add_expenditure(self, description: str, amount: int, timestamp: datetime, now: datetime) -> Expenditure:
        description = (description or "").strip()
        if not description:
            raise ValueError("Provide a description")
        latest = self._expenditures[-1].id if self._expenditures else None
        exp = Expenditure(
            id=next_id("EXP", now, latest),
            timestamp=to_millis(timestamp),
            description=description,
            amount=int(amount),
        )
        self._expenditures.append(exp)
        self._save_expenditures()
        return exp

    def remove_expenditure(self, exp_id: str):
        for exp in self._expenditures:
            if exp.id == exp_id:
                self._expenditures.remove(exp)
                self._save_expenditures()
                return
        raise ValueError(f"Unknown expenditure: {exp_id}")

    def replace_expenditures(self, expenditures: List[Expenditure]):
        self._expenditures = list(expenditures)
        self._save_expenditures()
