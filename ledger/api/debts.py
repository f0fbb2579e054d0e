# ledger/api/debts.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from ledger.api.deps import get_ledger
from ledger.models.debts import CustomerDebt, DebtSummary
from ledger.service import Ledger
from ledger.services.debts import filter_debts

router = APIRouter(prefix="/debts", tags=["debts"])


@router.get("/", response_model=List[CustomerDebt])
def list_customer_debts(
    q: Optional[str] = Query(
        default=None,
        description="Case-insensitive search over name, email, phone and company",
    ),
    ledger: Ledger = Depends(get_ledger),
) -> List[CustomerDebt]:
    """
    Customers who still owe money, largest balance first.
    """
    debts = ledger.list_customer_debts()
    if q:
        debts = filter_debts(debts, q)
    return debts


@router.get("/summary", response_model=DebtSummary)
def debt_summary(request: Request, ledger: Ledger = Depends(get_ledger)) -> DebtSummary:
    """
    Dashboard totals. Served from the snapshot the refresh scheduler keeps
    current; computed on the spot until the first refresh has run.
    """
    snapshot = getattr(request.app.state, "debt_summary", None)
    if snapshot is None:
        snapshot = ledger.debt_summary()
    return snapshot
