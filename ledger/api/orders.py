# ledger/api/orders.py

from fastapi import APIRouter, Depends

from ledger.api.deps import get_ledger
from ledger.models.orders import CascadeReport, OrderIn, OrderOut
from ledger.models.payments import OrderPaymentIn, PaymentOut
from ledger.service import Ledger

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=OrderOut, status_code=201)
def create_order(body: OrderIn, ledger: Ledger = Depends(get_ledger)) -> OrderOut:
    return ledger.create_order(**body.model_dump())


@router.get("/{order_id}", response_model=OrderOut)
def get_order(order_id: int, ledger: Ledger = Depends(get_ledger)) -> OrderOut:
    return ledger.get_order(order_id)


@router.post("/{order_id}/payments", response_model=PaymentOut, status_code=201)
def record_order_payment(
    order_id: int,
    body: OrderPaymentIn,
    ledger: Ledger = Depends(get_ledger),
) -> PaymentOut:
    return ledger.record_order_payment(
        order_id,
        amount=body.amount,
        method=body.method,
        reference=body.reference,
        notes=body.notes,
        payment_date=body.payment_date,
    )


@router.delete("/{order_id}", response_model=CascadeReport)
def delete_order(order_id: int, ledger: Ledger = Depends(get_ledger)) -> CascadeReport:
    """
    Delete an order together with its invoice, payments, commissions,
    files, comments, history and notifications.
    """
    return ledger.delete_order_cascade(order_id)
