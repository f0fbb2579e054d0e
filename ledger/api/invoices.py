# ledger/api/invoices.py

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ledger.api.deps import get_ledger
from ledger.models.invoices import InvoiceEdit, InvoiceIn, InvoiceOut, StatusChange
from ledger.service import Ledger

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("/", response_model=List[InvoiceOut])
def list_invoices(
    customer_id: Optional[int] = Query(default=None),
    status: Optional[str] = Query(
        default=None,
        description="draft | unpaid | partial | paid",
    ),
    ledger: Ledger = Depends(get_ledger),
) -> List[InvoiceOut]:
    return ledger.list_invoices(customer_id=customer_id, status=status)


@router.post("/", response_model=InvoiceOut, status_code=201)
def create_invoice(body: InvoiceIn, ledger: Ledger = Depends(get_ledger)) -> InvoiceOut:
    """
    Create a draft invoice. Totals are computed from the items and tax.
    """
    return ledger.create_invoice(
        customer_id=body.customer_id,
        items=body.items,
        tax_amount=body.tax_amount,
        due_date=body.due_date,
        order_id=body.order_id,
        notes=body.notes,
        project_name=body.project_name,
        invoice_number=body.invoice_number,
        invoice_date=body.invoice_date,
        terms=body.terms,
    )


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: int, ledger: Ledger = Depends(get_ledger)) -> InvoiceOut:
    return ledger.get_invoice(invoice_id)


@router.put("/{invoice_id}", response_model=InvoiceOut)
def edit_invoice(
    invoice_id: int,
    body: InvoiceEdit,
    ledger: Ledger = Depends(get_ledger),
) -> InvoiceOut:
    return ledger.edit_invoice(
        invoice_id,
        items=body.items,
        tax_amount=body.tax_amount,
        due_date=body.due_date,
        notes=body.notes,
        project_name=body.project_name,
        terms=body.terms,
    )


@router.post("/{invoice_id}/status", response_model=InvoiceOut)
def set_status(
    invoice_id: int,
    body: StatusChange,
    ledger: Ledger = Depends(get_ledger),
) -> InvoiceOut:
    return ledger.set_status(invoice_id, body.status)


@router.get("/{invoice_id}/cap")
def cap_allocation(
    invoice_id: int,
    amount: Decimal = Query(..., description="Requested allocation"),
    ledger: Ledger = Depends(get_ledger),
):
    """
    Preview how much of `amount` the invoice can take.
    """
    invoice = ledger.get_invoice(invoice_id)
    return {
        "invoice_id": invoice_id,
        "requested": amount,
        "allocatable": ledger.cap_allocation(invoice, amount),
    }


@router.delete("/{invoice_id}", status_code=204)
def delete_invoice(invoice_id: int, ledger: Ledger = Depends(get_ledger)) -> None:
    ledger.delete_invoice(invoice_id)
