# ledger/models/payments.py

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class Allocation(BaseModel):
    invoice_id: int
    amount: Decimal


class PaymentIn(BaseModel):
    customer_id: int
    method: str
    allocations: List[Allocation]
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: Optional[date] = None


class OrderPaymentIn(BaseModel):
    amount: Decimal
    method: str
    reference: Optional[str] = None
    notes: Optional[str] = None
    payment_date: Optional[date] = None


class PaymentOut(BaseModel):
    id: int
    customer_id: Optional[int] = None
    invoice_id: Optional[int] = None
    order_id: Optional[int] = None
    parent_payment_id: Optional[int] = None
    amount: Decimal
    method: str
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    origin: str
    payment_date: date

    class Config:
        from_attributes = True


class AllocationResult(BaseModel):
    invoice_id: int
    invoice_number: str
    applied: Decimal
    amount_paid: Decimal
    outstanding: Decimal
    status: str


class PaymentSummary(BaseModel):
    payment: PaymentOut
    allocations: List[AllocationResult]
