# ledger/api/payments.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ledger.api.deps import get_ledger
from ledger.models.payments import PaymentIn, PaymentOut, PaymentSummary
from ledger.service import Ledger

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/", response_model=List[PaymentOut])
def list_payments(
    customer_id: Optional[int] = Query(default=None),
    invoice_id: Optional[int] = Query(default=None),
    order_id: Optional[int] = Query(default=None),
    ledger: Ledger = Depends(get_ledger),
) -> List[PaymentOut]:
    return ledger.list_payments(
        customer_id=customer_id, invoice_id=invoice_id, order_id=order_id
    )


@router.post("/", response_model=PaymentSummary, status_code=201)
def record_payment(body: PaymentIn, ledger: Ledger = Depends(get_ledger)) -> PaymentSummary:
    """
    Record one collected payment split across the given invoices.

    Allocations are taken as sent; cap them against each invoice's
    outstanding balance first (GET /invoices/{id}/cap). An allocation
    above the balance rejects the whole payment with 409.
    """
    return ledger.record_payment(
        customer_id=body.customer_id,
        method=body.method,
        allocations=body.allocations,
        reference=body.reference,
        notes=body.notes,
        payment_date=body.payment_date,
    )


@router.delete("/{payment_id}", status_code=204)
def delete_payment(payment_id: int, ledger: Ledger = Depends(get_ledger)) -> None:
    ledger.delete_payment(payment_id)
