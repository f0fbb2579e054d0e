# ledger/models/commissions.py

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class CommissionView(BaseModel):
    id: int
    user_id: int
    order_id: int
    job_title: str
    commission_type: str
    commission_percentage: Decimal
    commission_amount: Decimal
    paid_status: str
    invoice_id: Optional[int] = None
