# ledger/services/cascade.py
"""
Order removal.

Deleting an order has to clear everything that points at it first, in
dependency order. Each dependent step runs in its own savepoint: when one
fails it is logged and skipped, and the coordinator carries on. Only the
final delete of the order itself is reported back as a failure, and since
the whole cascade shares one transaction that failure undoes every step.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy import Table

from ledger.db.schema import (
    commissions,
    invoice_items,
    invoices,
    notifications,
    order_comments,
    order_files,
    order_history,
    orders,
    payments,
)
from ledger.db.store import Store, Unit
from ledger.errors import LedgerError, NotFoundError
from ledger.models.orders import CascadeReport, CascadeStep
from ledger.services.allocations import delete_allocations
from ledger.services.refresh import ChangeNotifier

logger = logging.getLogger(__name__)

# Tables outside the ledger that hang off an order; removed by order id only.
ORDER_COLLABORATORS = (
    commissions,
    order_files,
    order_comments,
    order_history,
    notifications,
)


class CascadeDeleter:
    def __init__(
        self,
        store: Store,
        notifier: Optional[ChangeNotifier] = None,
        collaborators=ORDER_COLLABORATORS,
    ):
        self.store = store
        self.notifier = notifier
        self.collaborators = tuple(collaborators)

    def _step(
        self,
        unit: Unit,
        steps: List[CascadeStep],
        label: str,
        action: Callable[[], int],
    ) -> None:
        step = CascadeStep(table=label)
        try:
            with unit.savepoint():
                step.deleted = action()
        except LedgerError as exc:
            step.error = exc.message
            logger.warning("Cascade step %s failed, continuing: %s", label, exc.message)
        steps.append(step)

    def delete_order_cascade(self, order_id: int) -> CascadeReport:
        steps: List[CascadeStep] = []

        with self.store.begin() as unit:
            if unit.first(orders, {"id": order_id}) is None:
                raise NotFoundError(f"Order {order_id} not found")

            linked = unit.select(invoices, {"order_id": order_id})
            invoice_ids = [row["id"] for row in linked]

            if invoice_ids:
                self._step(
                    unit, steps, "invoice_items",
                    lambda: unit.delete(invoice_items, {"invoice_id": invoice_ids}),
                )
                self._step(
                    unit, steps, "payments (invoice)",
                    lambda: delete_allocations(unit, {"invoice_id": invoice_ids}),
                )
                self._step(
                    unit, steps, "invoices",
                    lambda: unit.delete(invoices, {"id": invoice_ids}),
                )

            self._step(
                unit, steps, "payments (order)",
                lambda: unit.delete(payments, {"order_id": order_id}),
            )

            for table in self.collaborators:
                self._step(unit, steps, table.name, _delete_by_order(unit, table, order_id))

            try:
                unit.delete(orders, {"id": order_id})
            except LedgerError as exc:
                failed = [step.table for step in steps if step.error]
                logger.error(
                    "Deleting order %s failed (failed steps: %s): %s",
                    order_id, ", ".join(failed) or "none", exc.message,
                )
                raise
            steps.append(CascadeStep(table="orders", deleted=1))

        report = CascadeReport(order_id=order_id, steps=steps)
        logger.info(
            "Deleted order %s with %d dependent row(s)",
            order_id, sum(step.deleted for step in steps) - 1,
        )
        self._changed(*[step.table.split(" ")[0] for step in steps])
        return report

    def _changed(self, *tables: str) -> None:
        if self.notifier is not None:
            self.notifier.publish(*dict.fromkeys(tables))


def _delete_by_order(unit: Unit, table: Table, order_id: int) -> Callable[[], int]:
    return lambda: unit.delete(table, {"order_id": order_id})
