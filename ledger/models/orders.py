# ledger/models/orders.py

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class OrderIn(BaseModel):
    customer_id: int
    job_title: str
    order_value: Decimal = Decimal("0")
    status: str = "pending"
    designer_id: Optional[int] = None
    print_operator_id: Optional[int] = None
    salesperson_id: Optional[int] = None


class OrderOut(BaseModel):
    id: int
    customer_id: int
    job_title: str
    order_value: Decimal
    amount_paid: Decimal
    payment_status: str
    status: str
    designer_id: Optional[int] = None
    print_operator_id: Optional[int] = None
    salesperson_id: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CascadeStep(BaseModel):
    table: str
    deleted: int = 0
    error: Optional[str] = None


class CascadeReport(BaseModel):
    order_id: int
    steps: List[CascadeStep]

    @property
    def failed_steps(self) -> List[CascadeStep]:
        return [step for step in self.steps if step.error]
