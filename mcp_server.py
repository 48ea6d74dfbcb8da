"""Lightweight MCP-aligned server exposing finance tracker tools over FastAPI."""

from __future__ import annotations

import datetime as dt
from contextlib import asynccontextmanager
from decimal import Decimal
from functools import lru_cache
from io import BytesIO
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ai_classifier import default_classifier
from batch_classifier import classify_batch
from categories import all_categories, category_type, color_for
from classifier import classify
from config import DEFAULT_OWNER_ID, OPENAI_API_KEY, configure_logging
from database import get_db, init_db
from export import export_monthly_report, export_transactions_csv
from insights import (
    average_monthly_savings,
    budget_report,
    category_totals,
    compute_kpis,
    generate_actionable_tips,
    investments_by_type,
    monthly_savings,
    monthly_totals,
    monthly_trend,
    summarize_budget_watch,
    top_expense_categories,
)
from models import Budget, Period, Transaction, TransactionType, parse_month
from process_transactions import ImportFormatError, parse_csv
from storage import (
    StorageError,
    bulk_insert_transactions,
    delete_all_transactions,
    delete_transaction,
    delete_transactions_in_month,
    get_transaction,
    list_budgets,
    list_transactions,
    replace_budgets_for_months,
    upsert_transaction,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    configure_logging()
    init_db()
    yield
    if shared_ai_classifier.cache_info().currsize:
        shared_ai_classifier().close()
        shared_ai_classifier.cache_clear()


app = FastAPI(title="Finance Tracker MCP Server", version="0.2.0", lifespan=lifespan)


def get_owner(x_owner_id: Optional[str] = Header(None)) -> str:
    return x_owner_id or DEFAULT_OWNER_ID


@lru_cache(maxsize=1)
def shared_ai_classifier():
    return default_classifier()


def get_ai_classifier():
    # keyword rules only until an API key is configured
    return shared_ai_classifier() if OPENAI_API_KEY else None


def storage_failure(exc: StorageError) -> HTTPException:
    return HTTPException(status_code=503, detail=str(exc))


def month_or_400(month: str) -> str:
    try:
        return parse_month(month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def resolve_type(category: Optional[str], txn_type: Optional[TransactionType]) -> Optional[TransactionType]:
    """Type implied by the category's tree; a contradicting type is rejected."""
    tree = category_type(category)
    if tree is None:
        return txn_type
    if txn_type is not None and txn_type is not tree:
        raise HTTPException(status_code=400, detail=f"'{category}' is an {tree.value} category, not {txn_type.value}")
    return tree


# --- Schemas ---

class TransactionIn(BaseModel):
    date: dt.date
    amount: Decimal = Field(..., ge=0)
    description: str = ""
    category: Optional[str] = None
    subcategory: Optional[str] = None
    type: Optional[TransactionType] = None


class TransactionUpdate(BaseModel):
    """Partial edit: only the fields present in the request change."""

    date: Optional[dt.date] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    type: Optional[TransactionType] = None


class TransactionOut(BaseModel):
    id: str
    date: dt.date
    category: str
    subcategory: str
    amount: float
    description: str
    type: TransactionType

    @classmethod
    def from_domain(cls, txn: Transaction) -> "TransactionOut":
        return cls(**txn.model_dump(exclude={"amount"}), amount=float(txn.amount))


class BudgetIn(BaseModel):
    category: str
    amount: Decimal = Field(..., ge=0)
    month: str


class BudgetOut(BaseModel):
    category: str
    amount: float
    month: str


class CategorizeRequest(BaseModel):
    description: str
    subcategory: Optional[str] = None


class CategorizeResponse(BaseModel):
    category: str
    subcategory: str
    type: TransactionType
    confidence: float


class ImportResponse(BaseModel):
    imported: int
    total_rows: int
    skipped: int
    message: str


class DeleteResponse(BaseModel):
    deleted: int


class MonthlyTotalsOut(BaseModel):
    month: str
    income: float
    expenses: float
    budgeted_income: float
    budgeted_expenses: float


class BudgetLineOut(BaseModel):
    category: str
    type: Optional[TransactionType]
    actual: float
    budget: float
    variance: float
    variance_pct: float
    is_over: bool


class KPIOut(BaseModel):
    net_worth: float
    avg_monthly_income: float
    avg_monthly_expense: float
    savings_ratio: float
    debt_to_income_ratio: float


class SavingsMonthOut(BaseModel):
    month: str
    income: float
    savings: float
    savings_rate: float


class CategoryTotalOut(BaseModel):
    category: str
    amount: float
    color: str


class DashboardResponse(BaseModel):
    month: str
    totals: MonthlyTotalsOut
    categories: List[CategoryTotalOut]
    budgets: List[BudgetLineOut]
    kpis: KPIOut
    trend: List[MonthlyTotalsOut]
    savings: List[SavingsMonthOut]
    avg_monthly_savings: float
    top_expenses: List[Dict[str, object]]
    investments: Dict[str, float]
    alerts: List[str]
    tips: List[str]


def _totals_out(totals) -> MonthlyTotalsOut:
    return MonthlyTotalsOut(**{k: (float(v) if isinstance(v, Decimal) else v) for k, v in totals.model_dump().items()})


# --- Tools ---

@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/categories")
async def categories():
    return {name: list(subs) for name, subs in all_categories().items()}


@app.post("/tools/categorize_transaction", response_model=CategorizeResponse)
async def categorize_transaction(req: CategorizeRequest):
    result = classify(req.description, req.subcategory)
    return CategorizeResponse(**result.model_dump())


# --- Transactions ---

@app.get("/transactions", response_model=List[TransactionOut])
def get_transactions(db: Session = Depends(get_db), owner: str = Depends(get_owner)):
    try:
        return [TransactionOut.from_domain(t) for t in list_transactions(db, owner)]
    except StorageError as exc:
        raise storage_failure(exc)


@app.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    req: TransactionIn,
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
    ai_classifier=Depends(get_ai_classifier),
):
    fields = req.model_dump(exclude_none=True)
    txn_type = resolve_type(req.category, req.type)
    if txn_type is not None:
        fields["type"] = txn_type
    txn = Transaction(**fields)
    if not txn.is_classified:
        txn = classify_batch([txn], ai_classifier=ai_classifier)[0]
    try:
        upsert_transaction(db, owner, txn)
    except StorageError as exc:
        raise storage_failure(exc)
    return TransactionOut.from_domain(txn)


@app.put("/transactions/{txn_id}", response_model=TransactionOut)
def edit_transaction(
    txn_id: str,
    req: TransactionUpdate,
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
):
    try:
        current = get_transaction(db, owner, txn_id)
    except StorageError as exc:
        raise storage_failure(exc)
    if current is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    changes = {k: v for k, v in req.model_dump(exclude_unset=True).items() if v is not None}
    if "category" in changes or "type" in changes:
        txn_type = resolve_type(changes.get("category", current.category), changes.get("type"))
        if txn_type is not None:
            changes["type"] = txn_type
    updated = Transaction.model_validate({**current.model_dump(), **changes})
    try:
        upsert_transaction(db, owner, updated)
    except StorageError as exc:
        raise storage_failure(exc)
    return TransactionOut.from_domain(updated)


@app.delete("/transactions/{txn_id}", response_model=DeleteResponse)
def remove_transaction(txn_id: str, db: Session = Depends(get_db), owner: str = Depends(get_owner)):
    try:
        deleted = delete_transaction(db, owner, txn_id)
    except StorageError as exc:
        raise storage_failure(exc)
    if not deleted:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return DeleteResponse(deleted=1)


@app.delete("/transactions", response_model=DeleteResponse)
def remove_transactions(
    month: Optional[str] = Query(None, description="YYYY-MM; omit to delete everything"),
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
):
    try:
        if month:
            deleted = delete_transactions_in_month(db, owner, month_or_400(month))
        else:
            deleted = delete_all_transactions(db, owner)
    except StorageError as exc:
        raise storage_failure(exc)
    return DeleteResponse(deleted=deleted)


@app.post("/transactions/classify", response_model=List[TransactionOut])
def classify_stored(
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
    ai_classifier=Depends(get_ai_classifier),
):
    """Classify every stored transaction still marked Uncategorized."""
    try:
        stored = list_transactions(db, owner)
        pending = [t for t in stored if not t.is_classified]
        classified = classify_batch(pending, ai_classifier=ai_classifier)
        for txn in classified:
            upsert_transaction(db, owner, txn)
    except StorageError as exc:
        raise storage_failure(exc)
    return [TransactionOut.from_domain(t) for t in classified]


@app.post("/transactions/import", response_model=ImportResponse)
def import_transactions(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
    ai_classifier=Depends(get_ai_classifier),
):
    try:
        result = parse_csv(file.file)
    except ImportFormatError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    classified = classify_batch(result.transactions, ai_classifier=ai_classifier)
    try:
        bulk_insert_transactions(db, owner, classified)
    except StorageError as exc:
        raise storage_failure(exc)
    return ImportResponse(
        imported=result.imported,
        total_rows=result.total_rows,
        skipped=result.skipped,
        message=result.summary,
    )


@app.get("/transactions/export")
def export_transactions(db: Session = Depends(get_db), owner: str = Depends(get_owner)):
    try:
        transactions = list_transactions(db, owner)
    except StorageError as exc:
        raise storage_failure(exc)
    return Response(
        content=export_transactions_csv(transactions),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="transactions.csv"'},
    )


# --- Budgets ---

@app.get("/budgets", response_model=List[BudgetOut])
def get_budgets(
    month: Optional[str] = None,
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
):
    try:
        budgets = list_budgets(db, owner)
    except StorageError as exc:
        raise storage_failure(exc)
    if month:
        key = month_or_400(month)
        budgets = [b for b in budgets if b.month == key]
    return [BudgetOut(category=b.category, amount=float(b.amount), month=b.month) for b in budgets]


@app.put("/budgets", response_model=List[BudgetOut])
def save_budgets(
    req: List[BudgetIn],
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
):
    try:
        budgets = [Budget(**b.model_dump()) for b in req]
        replace_budgets_for_months(db, owner, budgets)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except StorageError as exc:
        raise storage_failure(exc)
    return [BudgetOut(category=b.category, amount=float(b.amount), month=b.month) for b in budgets]


# --- Dashboard / reports ---

@app.get("/dashboard/{month}", response_model=DashboardResponse)
def dashboard(
    month: str,
    trend_months: int = Query(6, ge=1, le=24),
    db: Session = Depends(get_db),
    owner: str = Depends(get_owner),
):
    key = month_or_400(month)
    try:
        transactions = list_transactions(db, owner)
        budgets = list_budgets(db, owner)
    except StorageError as exc:
        raise storage_failure(exc)

    period = Period.for_month(key)
    lines = budget_report(transactions, budgets, key)
    kpis = compute_kpis(transactions, as_of=period.end)
    in_month = [t for t in transactions if period.contains(t.date)]
    trend = monthly_trend(transactions, budgets, trend_months, as_of=period.end)
    savings = monthly_savings(transactions, trend.months)

    return DashboardResponse(
        month=key,
        totals=_totals_out(monthly_totals(transactions, budgets, key)),
        categories=[
            CategoryTotalOut(category=name, amount=float(amount), color=color_for(name))
            for name, amount in category_totals(transactions, period).items()
        ],
        budgets=[
            BudgetLineOut(
                category=line.category,
                type=line.type,
                actual=float(line.actual),
                budget=float(line.budget),
                variance=float(line.variance.amount),
                variance_pct=float(line.variance.percentage),
                is_over=line.variance.is_over,
            )
            for line in lines
        ],
        kpis=KPIOut(**{k: float(v) for k, v in kpis.model_dump().items()}),
        trend=[_totals_out(t) for t in trend],
        savings=[
            SavingsMonthOut(**{k: (float(v) if isinstance(v, Decimal) else v) for k, v in row.items()})
            for row in savings
        ],
        avg_monthly_savings=float(average_monthly_savings(savings)),
        top_expenses=[
            {"category": row["category"], "amount": float(row["amount"]), "percentage": float(row["percentage"])}
            for row in top_expense_categories(in_month)
        ],
        investments={k: float(v) for k, v in investments_by_type(in_month).items()},
        alerts=summarize_budget_watch(lines),
        tips=generate_actionable_tips(kpis),
    )


@app.get("/reports/{month}")
def monthly_report(month: str, db: Session = Depends(get_db), owner: str = Depends(get_owner)):
    key = month_or_400(month)
    try:
        transactions = list_transactions(db, owner)
        budgets = list_budgets(db, owner)
    except StorageError as exc:
        raise storage_failure(exc)

    buffer = BytesIO()
    export_monthly_report(transactions, budgets, key, buffer)
    return Response(
        content=buffer.getvalue(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="Monthly_Report_{key.replace("-", "_")}.xlsx"'},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("mcp_server:app", host="0.0.0.0", port=8001, reload=True)
