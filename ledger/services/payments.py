# ledger/services/payments.py
"""
Payment allocation.

A customer hands over one payment; the caller decides how much of it goes
to each outstanding invoice. The engine books a summary payment for the
whole amount and one allocation payment per invoice, moving each invoice's
paid amount and status along the way.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from ledger.db.schema import PAYMENT_METHODS, customers, invoices, orders, payments
from ledger.db.store import Row, Store, Unit
from ledger.errors import ConflictError, NotFoundError, ValidationError
from ledger.models.invoices import InvoiceOut
from ledger.models.payments import (
    Allocation,
    AllocationResult,
    PaymentOut,
    PaymentSummary,
)
from ledger.money import Amount, from_cents, to_cents
from ledger.services.allocations import settle_summaries
from ledger.services.invoices import require_invoice, row_to_invoice
from ledger.services.refresh import ChangeNotifier
from ledger.services.status import DRAFT, PAID, derive_status

logger = logging.getLogger(__name__)

AllocationLike = Union[Allocation, Tuple[int, Amount], Mapping[str, Any]]


def row_to_payment(row: Row) -> PaymentOut:
    return PaymentOut(
        id=row["id"],
        customer_id=row["customer_id"],
        invoice_id=row["invoice_id"],
        order_id=row["order_id"],
        parent_payment_id=row["parent_payment_id"],
        amount=from_cents(row["amount_cents"]),
        method=row["method"],
        reference_number=row["reference_number"],
        notes=row["notes"],
        origin=row["origin"],
        payment_date=row["payment_date"],
    )


def cap_allocation(invoice: InvoiceOut, requested: Amount) -> Decimal:
    """
    Clamp a requested allocation to what the invoice still owes.

    Negative requests count as zero. Applying the cap to its own result
    changes nothing.
    """
    requested_cents = max(to_cents(requested), 0)
    outstanding_cents = max(to_cents(invoice.total_amount) - to_cents(invoice.amount_paid), 0)
    return from_cents(min(requested_cents, outstanding_cents))


def _check_method(method: str) -> None:
    if method not in PAYMENT_METHODS:
        raise ValidationError(
            f"Unknown payment method {method!r}; expected one of {', '.join(PAYMENT_METHODS)}"
        )


def _parse_allocations(allocations: Optional[Iterable[AllocationLike]]) -> List[Tuple[int, int]]:
    parsed = []
    for allocation in allocations or ():
        try:
            if isinstance(allocation, Allocation):
                invoice_id, amount = allocation.invoice_id, allocation.amount
            elif isinstance(allocation, Mapping):
                invoice_id, amount = allocation["invoice_id"], allocation["amount"]
            else:
                invoice_id, amount = allocation
            invoice_id = int(invoice_id)
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(
                f"Malformed allocation {allocation!r}; expected an invoice id and an amount"
            ) from exc
        parsed.append((invoice_id, to_cents(amount)))
    return parsed


def _reverse_on_invoice(unit: Unit, invoice_id: int, amount_cents: int) -> None:
    invoice = unit.first(invoices, {"id": invoice_id})
    if invoice is None:
        return
    paid_cents = max(invoice["paid_cents"] - amount_cents, 0)
    patch = {"paid_cents": paid_cents}
    if invoice["status"] != DRAFT:
        patch["status"] = derive_status(invoice["total_cents"], paid_cents)
    unit.update(invoices, patch, {"id": invoice_id})


def _reverse_on_order(unit: Unit, order_id: int, amount_cents: int) -> None:
    order = unit.first(orders, {"id": order_id})
    if order is None:
        return
    paid_cents = max(order["paid_cents"] - amount_cents, 0)
    unit.update(
        orders,
        {
            "paid_cents": paid_cents,
            "payment_status": derive_status(order["order_value_cents"], paid_cents),
        },
        {"id": order_id},
    )


class PaymentEngine:
    def __init__(self, store: Store, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.notifier = notifier

    def _changed(self, *tables: str) -> None:
        if self.notifier is not None:
            self.notifier.publish(*tables)

    cap_allocation = staticmethod(cap_allocation)

    def list_outstanding(self, customer_id: int) -> List[InvoiceOut]:
        """Invoices of a customer that are not fully paid, oldest first."""
        with self.store.begin() as unit:
            if unit.first(customers, {"id": customer_id}) is None:
                raise NotFoundError(f"Customer {customer_id} not found")
            rows = unit.select(
                invoices,
                (invoices.c.customer_id == customer_id) & (invoices.c.status != PAID),
                order_by=(invoices.c.invoice_date, invoices.c.id),
            )
        return [row_to_invoice(row) for row in rows]

    def list_payments(
        self,
        customer_id: Optional[int] = None,
        invoice_id: Optional[int] = None,
        order_id: Optional[int] = None,
    ) -> List[PaymentOut]:
        filter = {}
        if customer_id is not None:
            filter["customer_id"] = customer_id
        if invoice_id is not None:
            filter["invoice_id"] = invoice_id
        if order_id is not None:
            filter["order_id"] = order_id

        with self.store.begin() as unit:
            rows = unit.select(payments, filter, order_by=(payments.c.id,))
        return [row_to_payment(row) for row in rows]

    def record_payment(
        self,
        customer_id: int,
        method: str,
        allocations: Iterable[AllocationLike],
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        payment_date: Optional[date] = None,
    ) -> PaymentSummary:
        """
        Book one customer payment split across invoices.

        Amounts are expected to be capped with `cap_allocation` already. An
        amount that would push an invoice past its total is refused with
        ConflictError, and because the whole payment is one transaction
        nothing of it is kept in that case.
        """
        _check_method(method)
        parsed = _parse_allocations(allocations)
        if not parsed:
            raise ValidationError("A payment needs at least one invoice allocation")

        positive = [(invoice_id, cents) for invoice_id, cents in parsed if cents > 0]
        if not positive:
            raise ValidationError("At least one allocation amount must be greater than zero")

        total_cents = sum(cents for _, cents in positive)
        payment_date = payment_date or date.today()

        with self.store.begin() as unit:
            if unit.first(customers, {"id": customer_id}) is None:
                raise NotFoundError(f"Customer {customer_id} not found")

            targets = {}
            for invoice_id, _ in positive:
                invoice = require_invoice(unit, invoice_id)
                if invoice["customer_id"] != customer_id:
                    raise ValidationError(
                        f"Invoice {invoice['invoice_number']} does not belong to customer {customer_id}"
                    )
                targets[invoice_id] = invoice

            (summary,) = unit.insert(
                payments,
                {
                    "customer_id": customer_id,
                    "amount_cents": total_cents,
                    "method": method,
                    "reference_number": reference,
                    "notes": notes,
                    "origin": "allocation",
                    "payment_date": payment_date,
                },
            )

            results = []
            for invoice_id, cents in positive:
                number = targets[invoice_id]["invoice_number"]
                changed = unit.increment(
                    invoices, "paid_cents", cents, invoice_id, ceiling="total_cents"
                )
                if not changed:
                    current = require_invoice(unit, invoice_id)
                    raise ConflictError(
                        f"Allocation of {from_cents(cents)} exceeds the outstanding "
                        f"{from_cents(current['total_cents'] - current['paid_cents'])} "
                        f"on invoice {number}"
                    )

                invoice = require_invoice(unit, invoice_id)
                status = derive_status(invoice["total_cents"], invoice["paid_cents"])
                unit.update(invoices, {"status": status}, {"id": invoice_id})

                unit.insert(
                    payments,
                    {
                        "customer_id": customer_id,
                        "invoice_id": invoice_id,
                        "parent_payment_id": summary["id"],
                        "amount_cents": cents,
                        "method": method,
                        "reference_number": reference,
                        "notes": f"Allocated from payment #{summary['id']}",
                        "origin": "allocation",
                        "payment_date": payment_date,
                    },
                )

                results.append(
                    AllocationResult(
                        invoice_id=invoice_id,
                        invoice_number=number,
                        applied=from_cents(cents),
                        amount_paid=from_cents(invoice["paid_cents"]),
                        outstanding=from_cents(invoice["total_cents"] - invoice["paid_cents"]),
                        status=status,
                    )
                )

        logger.info(
            "Recorded payment #%s of %s from customer %s across %d invoice(s)",
            summary["id"], from_cents(total_cents), customer_id, len(results),
        )
        self._changed("payments", "invoices")
        return PaymentSummary(payment=row_to_payment(summary), allocations=results)

    def record_order_payment(
        self,
        order_id: int,
        amount: Amount,
        method: str,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        payment_date: Optional[date] = None,
    ) -> PaymentOut:
        """Book a payment straight against an order, without an invoice."""
        _check_method(method)
        cents = to_cents(amount)
        if cents <= 0:
            raise ValidationError("Payment amount must be greater than zero")

        with self.store.begin() as unit:
            order = unit.first(orders, {"id": order_id})
            if order is None:
                raise NotFoundError(f"Order {order_id} not found")

            changed = unit.increment(
                orders, "paid_cents", cents, order_id, ceiling="order_value_cents"
            )
            if not changed:
                raise ConflictError(
                    f"Payment of {from_cents(cents)} exceeds the outstanding "
                    f"{from_cents(order['order_value_cents'] - order['paid_cents'])} "
                    f"on order {order_id}"
                )
            order = unit.first(orders, {"id": order_id})
            unit.update(
                orders,
                {"payment_status": derive_status(order["order_value_cents"], order["paid_cents"])},
                {"id": order_id},
            )

            (row,) = unit.insert(
                payments,
                {
                    "customer_id": order["customer_id"],
                    "order_id": order_id,
                    "amount_cents": cents,
                    "method": method,
                    "reference_number": reference,
                    "notes": notes,
                    "origin": "manual",
                    "payment_date": payment_date or date.today(),
                },
            )

        logger.info("Recorded payment of %s on order %s", from_cents(cents), order_id)
        self._changed("payments", "orders")
        return row_to_payment(row)

    def delete_payment(self, payment_id: int) -> None:
        """
        Remove a payment and take its amount back off whatever it paid.

        Deleting a summary payment removes its allocations too; deleting one
        allocation shrinks its summary, or removes it with the last one.
        """
        with self.store.begin() as unit:
            payment = unit.first(payments, {"id": payment_id})
            if payment is None:
                raise NotFoundError(f"Payment {payment_id} not found")

            children = unit.select(payments, {"parent_payment_id": payment_id})
            for row in children + [payment]:
                if row["invoice_id"] is not None:
                    _reverse_on_invoice(unit, row["invoice_id"], row["amount_cents"])
                elif row["order_id"] is not None:
                    _reverse_on_order(unit, row["order_id"], row["amount_cents"])

            if children:
                unit.delete(payments, {"parent_payment_id": payment_id})
            unit.delete(payments, {"id": payment_id})
            if payment["parent_payment_id"] is not None:
                settle_summaries(unit, [payment["parent_payment_id"]])

        logger.info(
            "Deleted payment #%s (%s) with %d allocation(s)",
            payment_id, from_cents(payment["amount_cents"]), len(children),
        )
        self._changed("payments", "invoices", "orders")
