# ledger/models/invoices.py

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class InvoiceItemIn(BaseModel):
    """
    One invoice line. `id` identifies an existing item when editing.

    `amount` is optional: when left out it is quantity x unit_price. Items
    priced by area send the amount they computed along with `pricing`.
    """

    id: Optional[int] = None
    description: str
    quantity: Decimal = Decimal("1")
    unit_price: Decimal = Decimal("0")
    amount: Optional[Decimal] = None
    product_id: Optional[int] = None
    pricing: Optional[Dict[str, Any]] = None


class InvoiceItemOut(BaseModel):
    id: int
    invoice_id: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal
    product_id: Optional[int] = None
    pricing: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True


class InvoiceIn(BaseModel):
    customer_id: int
    items: List[InvoiceItemIn]
    tax_amount: Decimal = Decimal("0")
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    order_id: Optional[int] = None
    project_name: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None


class InvoiceEdit(BaseModel):
    items: List[InvoiceItemIn]
    tax_amount: Decimal = Decimal("0")
    due_date: Optional[date] = None
    project_name: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None


class StatusChange(BaseModel):
    status: str


class InvoiceOut(BaseModel):
    id: int
    invoice_number: str
    customer_id: int
    order_id: Optional[int] = None
    invoice_date: date
    due_date: Optional[date] = None
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    outstanding: Decimal
    status: str
    project_name: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    updated_at: Optional[datetime] = None
    items: List[InvoiceItemOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
