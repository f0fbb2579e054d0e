# ledger/services/orders.py
"""
Minimal order records.

Orders belong to the shop's job workflow, which lives elsewhere; the ledger
only needs to create them, read their payment state and delete them.
"""

import logging
from typing import List, Optional

from ledger.db.schema import customers, orders
from ledger.db.store import Row, Store
from ledger.errors import NotFoundError, ValidationError
from ledger.models.orders import OrderOut
from ledger.money import Amount, from_cents, to_cents
from ledger.services.refresh import ChangeNotifier
from ledger.services.status import UNPAID

logger = logging.getLogger(__name__)


def _row_to_order(row: Row) -> OrderOut:
    return OrderOut(
        id=row["id"],
        customer_id=row["customer_id"],
        job_title=row["job_title"],
        order_value=from_cents(row["order_value_cents"]),
        amount_paid=from_cents(row["paid_cents"]),
        payment_status=row["payment_status"],
        status=row["status"],
        designer_id=row["designer_id"],
        print_operator_id=row["print_operator_id"],
        salesperson_id=row["salesperson_id"],
        created_at=row["created_at"],
    )


class OrderBook:
    def __init__(self, store: Store, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.notifier = notifier

    def create_order(
        self,
        customer_id: int,
        job_title: str,
        order_value: Amount = 0,
        status: str = "pending",
        designer_id: Optional[int] = None,
        print_operator_id: Optional[int] = None,
        salesperson_id: Optional[int] = None,
    ) -> OrderOut:
        if not job_title or not job_title.strip():
            raise ValidationError("Order job title is required")
        value_cents = to_cents(order_value)
        if value_cents < 0:
            raise ValidationError("Order value must not be negative")

        with self.store.begin() as unit:
            if unit.first(customers, {"id": customer_id}) is None:
                raise NotFoundError(f"Customer {customer_id} not found")
            (row,) = unit.insert(
                orders,
                {
                    "customer_id": customer_id,
                    "job_title": job_title.strip(),
                    "order_value_cents": value_cents,
                    "paid_cents": 0,
                    "payment_status": UNPAID,
                    "status": status,
                    "designer_id": designer_id,
                    "print_operator_id": print_operator_id,
                    "salesperson_id": salesperson_id,
                },
            )

        logger.info("Created order %s (%s) for customer %s", row["id"], row["job_title"], customer_id)
        if self.notifier is not None:
            self.notifier.publish("orders")
        return _row_to_order(row)

    def get_order(self, order_id: int) -> OrderOut:
        with self.store.begin() as unit:
            row = unit.first(orders, {"id": order_id})
        if row is None:
            raise NotFoundError(f"Order {order_id} not found")
        return _row_to_order(row)

    def list_orders(self, customer_id: Optional[int] = None) -> List[OrderOut]:
        filter = {"customer_id": customer_id} if customer_id is not None else None
        with self.store.begin() as unit:
            rows = unit.select(orders, filter, order_by=(orders.c.id,))
        return [_row_to_order(row) for row in rows]
