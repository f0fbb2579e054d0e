# ledger/services/debts.py

import logging
from datetime import datetime
from typing import Dict, List

from sqlalchemy import select

from ledger.db.schema import customers, invoices
from ledger.db.store import Store
from ledger.models.debts import CustomerDebt, DebtSummary, InvoiceDebt
from ledger.money import TOLERANCE_CENTS, from_cents
from ledger.services.status import DRAFT

logger = logging.getLogger(__name__)


class DebtAggregator:
    """Read-only rollup of what every customer still owes."""

    def __init__(self, store: Store):
        self.store = store

    def list_customer_debts(self) -> List[CustomerDebt]:
        """
        Group all non-draft invoices by customer.

        invoice_count counts every non-draft invoice of the customer, settled
        ones included; the per-invoice breakdown only lists invoices that
        still owe more than the tolerance. Customers whose total outstanding
        is within the tolerance are left out. Largest debt first.
        """
        stmt = (
            select(
                invoices.c.id,
                invoices.c.invoice_number,
                invoices.c.invoice_date,
                invoices.c.total_cents,
                invoices.c.paid_cents,
                invoices.c.status,
                customers.c.id.label("customer_id"),
                customers.c.name,
                customers.c.email,
                customers.c.phone,
                customers.c.company_name,
            )
            .select_from(invoices.join(customers))
            .where(invoices.c.status != DRAFT)
            .order_by(invoices.c.invoice_date, invoices.c.id)
        )

        with self.store.begin() as unit:
            rows = unit.execute(stmt, "Reading invoices").mappings().all()

        grouped: Dict[int, dict] = {}
        for row in rows:
            entry = grouped.setdefault(
                row["customer_id"],
                {
                    "customer": row,
                    "billed": 0,
                    "paid": 0,
                    "count": 0,
                    "invoices": [],
                },
            )
            owed = row["total_cents"] - row["paid_cents"]
            entry["billed"] += row["total_cents"]
            entry["paid"] += row["paid_cents"]
            entry["count"] += 1
            if owed > TOLERANCE_CENTS:
                entry["invoices"].append(
                    InvoiceDebt(
                        id=row["id"],
                        invoice_number=row["invoice_number"],
                        invoice_date=row["invoice_date"],
                        total_amount=from_cents(row["total_cents"]),
                        amount_paid=from_cents(row["paid_cents"]),
                        outstanding=from_cents(owed),
                        status=row["status"],
                    )
                )

        debts = []
        for customer_id, entry in grouped.items():
            outstanding = entry["billed"] - entry["paid"]
            if outstanding <= TOLERANCE_CENTS:
                continue
            customer = entry["customer"]
            debts.append(
                CustomerDebt(
                    id=customer_id,
                    name=customer["name"],
                    email=customer["email"],
                    phone=customer["phone"],
                    company_name=customer["company_name"],
                    total_billed=from_cents(entry["billed"]),
                    total_paid=from_cents(entry["paid"]),
                    outstanding=from_cents(outstanding),
                    invoice_count=entry["count"],
                    invoices=entry["invoices"],
                )
            )

        debts.sort(key=lambda debt: debt.outstanding, reverse=True)
        logger.debug("Computed debts for %d customer(s)", len(debts))
        return debts

    def debt_summary(self) -> DebtSummary:
        debts = self.list_customer_debts()
        return DebtSummary(
            total_outstanding=sum((debt.outstanding for debt in debts), from_cents(0)),
            debtor_count=len(debts),
            refreshed_at=datetime.now(),
        )


def filter_debts(debts: List[CustomerDebt], query: str) -> List[CustomerDebt]:
    """Case-insensitive substring search over name, email, phone and company."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(debts)

    def matches(debt: CustomerDebt) -> bool:
        fields = (debt.name, debt.email, debt.phone, debt.company_name)
        return any(needle in field.lower() for field in fields if field)

    return [debt for debt in debts if matches(debt)]
