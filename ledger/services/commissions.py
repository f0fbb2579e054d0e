# ledger/services/commissions.py

from typing import List, Optional

from sqlalchemy import and_, select

from ledger.db.schema import commissions, invoices, orders
from ledger.db.store import Store
from ledger.models.commissions import CommissionView
from ledger.money import from_cents
from ledger.services.status import DRAFT, PAID


def commission_paid_status(order_payment_status: Optional[str], invoice_status: Optional[str]) -> str:
    # a non-draft invoice on the order is the more current source
    source = invoice_status if invoice_status and invoice_status != DRAFT else order_payment_status
    return "paid" if source == PAID else "unpaid"


class CommissionLinkage:
    """Commissions with their paid state read off the order they belong to."""

    def __init__(self, store: Store):
        self.store = store

    def list_commissions(
        self,
        user_id: Optional[int] = None,
        order_id: Optional[int] = None,
    ) -> List[CommissionView]:
        join = commissions.join(orders, commissions.c.order_id == orders.c.id).outerjoin(
            invoices,
            and_(invoices.c.order_id == orders.c.id, invoices.c.status != DRAFT),
        )

        stmt = (
            select(
                commissions.c.id,
                commissions.c.user_id,
                commissions.c.order_id,
                commissions.c.commission_type,
                commissions.c.commission_percentage,
                commissions.c.commission_amount_cents,
                orders.c.job_title,
                orders.c.payment_status,
                invoices.c.id.label("invoice_id"),
                invoices.c.status.label("invoice_status"),
            )
            .select_from(join)
            .order_by(commissions.c.id, invoices.c.id)
        )
        if user_id is not None:
            stmt = stmt.where(commissions.c.user_id == user_id)
        if order_id is not None:
            stmt = stmt.where(commissions.c.order_id == order_id)

        with self.store.begin() as unit:
            rows = unit.execute(stmt, "Reading commissions").mappings().all()

        views = {}
        for row in rows:
            # an order can carry more than one invoice; the first one wins
            if row["id"] in views:
                continue
            views[row["id"]] = CommissionView(
                id=row["id"],
                user_id=row["user_id"],
                order_id=row["order_id"],
                job_title=row["job_title"],
                commission_type=row["commission_type"],
                commission_percentage=row["commission_percentage"],
                commission_amount=from_cents(row["commission_amount_cents"]),
                paid_status=commission_paid_status(row["payment_status"], row["invoice_status"]),
                invoice_id=row["invoice_id"],
            )
        return list(views.values())
