# ledger/models/debts.py

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel


class InvoiceDebt(BaseModel):
    id: int
    invoice_number: str
    invoice_date: date
    total_amount: Decimal
    amount_paid: Decimal
    outstanding: Decimal
    status: str


class CustomerDebt(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company_name: Optional[str] = None
    total_billed: Decimal
    total_paid: Decimal
    outstanding: Decimal
    invoice_count: int
    invoices: List[InvoiceDebt]


class DebtSummary(BaseModel):
    total_outstanding: Decimal
    debtor_count: int
    refreshed_at: Optional[datetime] = None
