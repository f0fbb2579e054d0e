# ledger/services/invoices.py
"""
Invoice lifecycle: create, edit, status transitions and deletion.
"""

import logging
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ledger.db.schema import (
    INVOICE_STATUSES,
    customers,
    invoice_items,
    invoices,
    orders,
    payments,
)
from ledger.db.store import Row, Store, Unit
from ledger.errors import ConflictError, LedgerError, NotFoundError, ValidationError
from ledger.models.invoices import InvoiceItemIn, InvoiceItemOut, InvoiceOut
from ledger.money import Amount, from_cents, line_amount_cents, to_cents
from ledger.services.allocations import delete_allocations
from ledger.services.refresh import ChangeNotifier
from ledger.services.status import DRAFT, PAID, UNPAID, derive_status

logger = logging.getLogger(__name__)

AUTO_PAYMENT_METHOD = "cash"
AUTO_PAYMENT_NOTE = "Auto-generated: invoice marked as paid"

ItemLike = Union[InvoiceItemIn, Mapping[str, Any]]


def _row_to_item(row: Row) -> InvoiceItemOut:
    return InvoiceItemOut(
        id=row["id"],
        invoice_id=row["invoice_id"],
        description=row["description"],
        quantity=row["quantity"],
        unit_price=from_cents(row["unit_price_cents"]),
        amount=from_cents(row["amount_cents"]),
        product_id=row["product_id"],
        pricing=row["pricing"],
    )


def row_to_invoice(row: Row, items: Iterable[Row] = ()) -> InvoiceOut:
    return InvoiceOut(
        id=row["id"],
        invoice_number=row["invoice_number"],
        customer_id=row["customer_id"],
        order_id=row["order_id"],
        invoice_date=row["invoice_date"],
        due_date=row["due_date"],
        subtotal=from_cents(row["subtotal_cents"]),
        tax_amount=from_cents(row["tax_cents"]),
        total_amount=from_cents(row["total_cents"]),
        amount_paid=from_cents(row["paid_cents"]),
        outstanding=from_cents(row["total_cents"] - row["paid_cents"]),
        status=row["status"],
        project_name=row["project_name"],
        notes=row["notes"],
        terms=row["terms"],
        updated_at=row["updated_at"],
        items=[_row_to_item(item) for item in items],
    )


def require_invoice(unit: Unit, invoice_id: int) -> Row:
    row = unit.first(invoices, {"id": invoice_id})
    if row is None:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    return row


def _coerce_items(items: Optional[List[ItemLike]]) -> List[InvoiceItemIn]:
    if not items:
        raise ValidationError("An invoice needs at least one item")

    parsed = []
    for item in items:
        if isinstance(item, Mapping):
            try:
                item = InvoiceItemIn(**item)
            except PydanticValidationError as exc:
                raise ValidationError(f"Invalid invoice item: {exc}") from exc
        if not item.description or not item.description.strip():
            raise ValidationError("Every invoice item needs a description")
        if item.quantity < 0 or item.unit_price < 0:
            raise ValidationError(
                f"Item {item.description!r}: quantity and unit price must not be negative"
            )
        if item.amount is not None and item.amount < 0:
            raise ValidationError(f"Item {item.description!r}: amount must not be negative")
        parsed.append(item)
    return parsed


def _item_values(item: InvoiceItemIn, existing: Optional[Row] = None) -> Row:
    unit_price_cents = to_cents(item.unit_price)
    product_id = item.product_id
    pricing = item.pricing

    if existing is not None:
        # advanced fields survive an edit that doesn't mention them
        if product_id is None:
            product_id = existing["product_id"]
        if pricing is None:
            pricing = existing["pricing"]

    if item.amount is not None:
        amount_cents = to_cents(item.amount)
    elif existing is not None and pricing:
        amount_cents = existing["amount_cents"]
    else:
        amount_cents = line_amount_cents(item.quantity, unit_price_cents)

    return {
        "description": item.description.strip(),
        "quantity": item.quantity,
        "unit_price_cents": unit_price_cents,
        "amount_cents": amount_cents,
        "product_id": product_id,
        "pricing": pricing,
    }


def _next_invoice_number(unit: Unit, invoice_date: date) -> str:
    prefix = f"INV-{invoice_date.strftime('%Y%m')}-"
    taken = unit.select(invoices, invoices.c.invoice_number.like(f"{prefix}%"))

    # numbers freed by deleted invoices are never handed out again
    last = 0
    for row in taken:
        suffix = row["invoice_number"][len(prefix):]
        if suffix.isdigit():
            last = max(last, int(suffix))
    return f"{prefix}{last + 1:04d}"


class InvoiceManager:
    def __init__(self, store: Store, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.notifier = notifier

    def _changed(self, *tables: str) -> None:
        if self.notifier is not None:
            self.notifier.publish(*tables)

    # ---- reads ----

    def get_invoice(self, invoice_id: int) -> InvoiceOut:
        with self.store.begin() as unit:
            row = require_invoice(unit, invoice_id)
            items = unit.select(
                invoice_items, {"invoice_id": invoice_id}, order_by=(invoice_items.c.id,)
            )
        return row_to_invoice(row, items)

    def list_invoices(
        self,
        customer_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[InvoiceOut]:
        filter = {}
        if customer_id is not None:
            filter["customer_id"] = customer_id
        if status is not None:
            filter["status"] = status

        with self.store.begin() as unit:
            rows = unit.select(
                invoices, filter, order_by=(invoices.c.invoice_date, invoices.c.id)
            )
        return [row_to_invoice(row) for row in rows]

    # ---- writes ----

    def create_invoice(
        self,
        customer_id: int,
        items: List[ItemLike],
        tax_amount: Amount = 0,
        due_date: Optional[date] = None,
        order_id: Optional[int] = None,
        notes: Optional[str] = None,
        project_name: Optional[str] = None,
        invoice_number: Optional[str] = None,
        invoice_date: Optional[date] = None,
        terms: Optional[str] = None,
    ) -> InvoiceOut:
        parsed = _coerce_items(items)
        tax_cents = to_cents(tax_amount)
        if tax_cents < 0:
            raise ValidationError("Tax amount must not be negative")

        invoice_date = invoice_date or date.today()
        values = [_item_values(item) for item in parsed]
        subtotal_cents = sum(v["amount_cents"] for v in values)

        with self.store.begin() as unit:
            if unit.first(customers, {"id": customer_id}) is None:
                raise NotFoundError(f"Customer {customer_id} not found")
            if order_id is not None and unit.first(orders, {"id": order_id}) is None:
                raise NotFoundError(f"Order {order_id} not found")

            number = (invoice_number or "").strip() or _next_invoice_number(unit, invoice_date)
            if unit.first(invoices, {"invoice_number": number}) is not None:
                raise ConflictError(f"Invoice number {number} already exists")

            (row,) = unit.insert(
                invoices,
                {
                    "invoice_number": number,
                    "customer_id": customer_id,
                    "order_id": order_id,
                    "invoice_date": invoice_date,
                    "due_date": due_date,
                    "subtotal_cents": subtotal_cents,
                    "tax_cents": tax_cents,
                    "total_cents": subtotal_cents + tax_cents,
                    "paid_cents": 0,
                    "status": DRAFT,
                    "project_name": project_name,
                    "notes": notes,
                    "terms": terms,
                },
            )
            item_rows = unit.insert(
                invoice_items, [dict(v, invoice_id=row["id"]) for v in values]
            )

        logger.info(
            "Created invoice %s for customer %s (total %s)",
            number, customer_id, from_cents(row["total_cents"]),
        )
        self._changed("invoices", "invoice_items")
        return row_to_invoice(row, item_rows)

    def edit_invoice(
        self,
        invoice_id: int,
        items: List[ItemLike],
        tax_amount: Amount = 0,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
        project_name: Optional[str] = None,
        terms: Optional[str] = None,
    ) -> InvoiceOut:
        """
        Replace the item set of an invoice and recompute its totals.

        Items carrying an `id` update the stored item (keeping its pricing
        and product link unless new ones are given), items without one are
        added, and stored items missing from `items` are removed. The paid
        amount is left alone; a non-draft invoice gets its status derived
        again from the new total.
        """
        parsed = _coerce_items(items)
        tax_cents = to_cents(tax_amount)
        if tax_cents < 0:
            raise ValidationError("Tax amount must not be negative")

        with self.store.begin() as unit:
            invoice = require_invoice(unit, invoice_id)
            existing = {
                row["id"]: row for row in unit.select(invoice_items, {"invoice_id": invoice_id})
            }

            updates, inserts = [], []
            for item in parsed:
                if item.id is None:
                    inserts.append(_item_values(item))
                elif item.id in existing:
                    updates.append((item.id, _item_values(item, existing[item.id])))
                else:
                    raise ValidationError(
                        f"Item {item.id} does not belong to invoice {invoice['invoice_number']}"
                    )

            subtotal_cents = sum(v["amount_cents"] for _, v in updates)
            subtotal_cents += sum(v["amount_cents"] for v in inserts)
            total_cents = subtotal_cents + tax_cents
            if total_cents < invoice["paid_cents"]:
                raise ValidationError(
                    f"New total {from_cents(total_cents)} is below the "
                    f"{from_cents(invoice['paid_cents'])} already paid on "
                    f"invoice {invoice['invoice_number']}"
                )

            kept = {item_id for item_id, _ in updates}
            removed = [item_id for item_id in existing if item_id not in kept]
            if removed:
                unit.delete(invoice_items, {"id": removed})
            for item_id, values in updates:
                unit.update(invoice_items, values, {"id": item_id})
            if inserts:
                unit.insert(invoice_items, [dict(v, invoice_id=invoice_id) for v in inserts])

            patch = {
                "subtotal_cents": subtotal_cents,
                "tax_cents": tax_cents,
                "total_cents": total_cents,
            }
            if invoice["status"] != DRAFT:
                patch["status"] = derive_status(total_cents, invoice["paid_cents"])
            for name, value in (
                ("due_date", due_date),
                ("notes", notes),
                ("project_name", project_name),
                ("terms", terms),
            ):
                if value is not None:
                    patch[name] = value
            unit.update(invoices, patch, {"id": invoice_id})

            row = require_invoice(unit, invoice_id)
            item_rows = unit.select(
                invoice_items, {"invoice_id": invoice_id}, order_by=(invoice_items.c.id,)
            )

        logger.info(
            "Edited invoice %s: %d updated, %d added, %d removed items",
            row["invoice_number"], len(updates), len(inserts), len(removed),
        )
        self._changed("invoices", "invoice_items")
        return row_to_invoice(row, item_rows)

    def set_status(self, invoice_id: int, status: str) -> InvoiceOut:
        """
        Set an invoice status by hand.

        "paid" fills the invoice up and books the difference as an
        auto-generated payment; "unpaid" clears the paid amount and removes
        the auto-generated payments again. Payments recorded through
        allocation are never touched here.
        """
        if status not in INVOICE_STATUSES:
            raise ValidationError(
                f"Unknown invoice status {status!r}; expected one of {', '.join(INVOICE_STATUSES)}"
            )

        with self.store.begin() as unit:
            invoice = require_invoice(unit, invoice_id)

            if status == PAID:
                delta = invoice["total_cents"] - invoice["paid_cents"]
                unit.update(
                    invoices,
                    {"status": PAID, "paid_cents": invoice["total_cents"]},
                    {"id": invoice_id},
                )
                if delta > 0:
                    unit.insert(
                        payments,
                        {
                            "customer_id": invoice["customer_id"],
                            "invoice_id": invoice_id,
                            "amount_cents": delta,
                            "method": AUTO_PAYMENT_METHOD,
                            "reference_number": f"AUTO-{invoice['invoice_number']}-{datetime.now():%Y%m%d%H%M%S}",
                            "notes": AUTO_PAYMENT_NOTE,
                            "origin": "auto_status_toggle",
                            "payment_date": date.today(),
                        },
                    )
            elif status == UNPAID:
                unit.update(
                    invoices,
                    {"status": UNPAID, "paid_cents": 0},
                    {"id": invoice_id},
                )
                removed = unit.delete(
                    payments, {"invoice_id": invoice_id, "origin": "auto_status_toggle"}
                )
                logger.info(
                    "Removed %d auto-generated payment(s) from invoice %s",
                    removed, invoice["invoice_number"],
                )
            else:
                unit.update(
                    invoices, {"status": status}, {"id": invoice_id}
                )

            row = require_invoice(unit, invoice_id)

        logger.info(
            "Invoice %s status %s -> %s", row["invoice_number"], invoice["status"], status
        )
        self._changed("invoices", "payments")
        return row_to_invoice(row)

    def delete_invoice(self, invoice_id: int) -> None:
        with self.store.begin() as unit:
            invoice = require_invoice(unit, invoice_id)
            try:
                unit.delete(invoice_items, {"invoice_id": invoice_id})
                delete_allocations(unit, {"invoice_id": invoice_id})
            except LedgerError as exc:
                logger.error(
                    "Could not remove dependents of invoice %s: %s",
                    invoice["invoice_number"], exc.message,
                )
                raise ConflictError(
                    f"Invoice {invoice['invoice_number']} was not deleted: {exc.message}"
                ) from exc
            unit.delete(invoices, {"id": invoice_id})

        logger.info("Deleted invoice %s", invoice["invoice_number"])
        self._changed("invoices", "invoice_items", "payments")
