# ledger/api/commissions.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ledger.api.deps import get_ledger
from ledger.models.commissions import CommissionView
from ledger.service import Ledger

router = APIRouter(prefix="/commissions", tags=["commissions"])


@router.get("/", response_model=List[CommissionView])
def list_commissions(
    user_id: Optional[int] = Query(default=None),
    order_id: Optional[int] = Query(default=None),
    ledger: Ledger = Depends(get_ledger),
) -> List[CommissionView]:
    """
    Commissions with paid / unpaid taken from the payment state of their order.
    """
    return ledger.list_commissions(user_id=user_id, order_id=order_id)
