"""Repository functions over the SQLAlchemy session.

The rest of the code never touches SQL; it calls these helpers with a
session and an owner id.  Writers take a per-owner lock and commit once,
so a failed write leaves nothing half-applied and callers only see data
that actually persisted.
"""

from __future__ import annotations

import logging
import threading
import weakref
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import BudgetRecord, TransactionRecord
from models import Budget, Period, Transaction, TransactionType

logger = logging.getLogger(__name__)

# Entries disappear once no writer holds a reference to the lock
_owner_locks = weakref.WeakValueDictionary()
_registry_lock = threading.Lock()


class StorageError(RuntimeError):
    """A read or write was rejected by the database."""


@contextmanager
def owner_lock(owner_id: str):
    with _registry_lock:
        lock = _owner_locks.get(owner_id)
        if lock is None:
            lock = _owner_locks[owner_id] = threading.Lock()
    with lock:
        yield


@contextmanager
def _write(db: Session, action: str):
    try:
        yield
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Storage failure while trying to %s: %s", action, exc)
        raise StorageError(f"Could not {action}. Please try again.") from exc


def _to_transaction(row: TransactionRecord) -> Transaction:
    return Transaction(
        id=row.id,
        date=row.date,
        category=row.category,
        subcategory=row.subcategory,
        amount=Decimal(row.amount),
        description=row.description or "",
        type=TransactionType(row.type),
    )


def _to_budget(row: BudgetRecord) -> Budget:
    return Budget(category=row.category, amount=Decimal(row.amount), month=row.month)


def _fill(row: TransactionRecord, txn: Transaction) -> TransactionRecord:
    row.date = txn.date
    row.category = txn.category
    row.subcategory = txn.subcategory
    row.amount = txn.amount
    row.description = txn.description
    row.type = txn.type.value
    return row


# --- Transactions ---

def list_transactions(db: Session, owner_id: str) -> List[Transaction]:
    try:
        rows = (
            db.query(TransactionRecord)
            .filter(TransactionRecord.owner_id == owner_id)
            .order_by(TransactionRecord.date.desc(), TransactionRecord.id)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.error("Failed to load transactions for %s: %s", owner_id, exc)
        raise StorageError("Could not load transactions. Please try again.") from exc
    return [_to_transaction(r) for r in rows]


def get_transaction(db: Session, owner_id: str, txn_id: str) -> Transaction | None:
    try:
        row = db.get(TransactionRecord, txn_id)
    except SQLAlchemyError as exc:
        logger.error("Failed to load transaction %s: %s", txn_id, exc)
        raise StorageError("Could not load the transaction. Please try again.") from exc
    if row is None or row.owner_id != owner_id:
        return None
    return _to_transaction(row)


def upsert_transaction(db: Session, owner_id: str, txn: Transaction) -> Transaction:
    with owner_lock(owner_id), _write(db, "save the transaction"):
        row = db.get(TransactionRecord, txn.id)
        if row is not None and row.owner_id != owner_id:
            raise StorageError("Transaction belongs to another account.")
        if row is None:
            row = TransactionRecord(id=txn.id, owner_id=owner_id)
            db.add(row)
        _fill(row, txn)
    return txn


def bulk_insert_transactions(db: Session, owner_id: str, transactions: Iterable[Transaction]) -> int:
    transactions = list(transactions)
    with owner_lock(owner_id), _write(db, "import the transactions"):
        db.add_all(_fill(TransactionRecord(id=t.id, owner_id=owner_id), t) for t in transactions)
    return len(transactions)


def delete_transaction(db: Session, owner_id: str, txn_id: str) -> bool:
    with owner_lock(owner_id), _write(db, "delete the transaction"):
        deleted = (
            db.query(TransactionRecord)
            .filter(TransactionRecord.owner_id == owner_id, TransactionRecord.id == txn_id)
            .delete(synchronize_session=False)
        )
    return bool(deleted)


def delete_transactions_in_month(db: Session, owner_id: str, month) -> int:
    period = Period.for_month(month)
    with owner_lock(owner_id), _write(db, f"delete transactions for {month}"):
        deleted = (
            db.query(TransactionRecord)
            .filter(
                TransactionRecord.owner_id == owner_id,
                TransactionRecord.date >= period.start,
                TransactionRecord.date <= period.end,
            )
            .delete(synchronize_session=False)
        )
    return deleted


def delete_all_transactions(db: Session, owner_id: str) -> int:
    with owner_lock(owner_id), _write(db, "delete all transactions"):
        deleted = (
            db.query(TransactionRecord)
            .filter(TransactionRecord.owner_id == owner_id)
            .delete(synchronize_session=False)
        )
    return deleted


# --- Budgets ---

def list_budgets(db: Session, owner_id: str) -> List[Budget]:
    try:
        rows = (
            db.query(BudgetRecord)
            .filter(BudgetRecord.owner_id == owner_id)
            .order_by(BudgetRecord.month.desc(), BudgetRecord.category)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.error("Failed to load budgets for %s: %s", owner_id, exc)
        raise StorageError("Could not load budgets. Please try again.") from exc
    return [_to_budget(r) for r in rows]


def replace_budgets_for_months(db: Session, owner_id: str, budgets: Iterable[Budget]) -> List[Budget]:
    """Replace every budget of each month present in ``budgets``.

    Delete and insert run in one transaction under the owner's lock.
    """
    budgets = list(budgets)
    seen = set()
    for b in budgets:
        key = (b.category, b.month)
        if key in seen:
            raise ValueError(f"Duplicate budget for {b.category} in {b.month}")
        seen.add(key)

    months = sorted({b.month for b in budgets})
    with owner_lock(owner_id), _write(db, "save the budgets"):
        if months:
            (
                db.query(BudgetRecord)
                .filter(BudgetRecord.owner_id == owner_id, BudgetRecord.month.in_(months))
                .delete(synchronize_session=False)
            )
        db.add_all(
            BudgetRecord(owner_id=owner_id, category=b.category, amount=b.amount, month=b.month)
            for b in budgets
        )
    return budgets
