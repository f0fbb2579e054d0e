# scripts/ingest.py
"""
Import opening balances: customers and the invoices they still carry from
before the ledger was in use.

Expected CSV columns:
    CustomerName, Email, Phone, Company,
    InvoiceNumber, InvoiceDate, DueDate, Total, Paid, Notes
"""

import csv
from datetime import date, datetime
from decimal import Decimal
import logging
from typing import List, Optional

from sqlalchemy import func

from ledger.db.schema import customers, invoice_items, invoices, payments
from ledger.money import from_cents, to_cents
from ledger.service import Ledger
from ledger.services.status import derive_status

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

FILE_PATH = "data/opening_balances.csv"
OPENING_ITEM = "Opening balance"


# ---- Helpers ----

def parse_money(value: Optional[str]) -> Decimal:
    value = (value or "").strip().replace(",", "")
    if value == "":
        return Decimal("0")
    return Decimal(value)


def parse_date(value: Optional[str]) -> Optional[date]:
    value = (value or "").strip()
    if not value:
        return None
    value = value.split()[0]
    for fmt in ("%Y-%m-%d", "%m/%d/%y", "%m/%d/%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date {value!r}")


def _clean(row: dict, key: str) -> Optional[str]:
    value = row.get(key)
    return value.strip() or None if value else None


def parse_opening_balances(file_path: str = FILE_PATH):
    customers_by_name = {}
    invoices_list = []

    n_rows = 0
    n_errors = 0
    error_examples = []

    seen_invoice_numbers: set[str] = set()
    duplicate_invoice_count = 0

    with open(file_path, newline="") as f:
        reader = csv.DictReader(f)

        for row in reader:
            n_rows += 1

            try:
                cname = row["CustomerName"].strip()
                if not cname:
                    raise ValueError("CustomerName is empty")
                key = cname.lower()

                # ----- MONEY -----
                total_cents = to_cents(parse_money(row["Total"]))
                paid_cents = to_cents(parse_money(row.get("Paid")))
                if total_cents < 0 or paid_cents < 0:
                    raise ValueError("Total and Paid must not be negative")
                if paid_cents > total_cents:
                    raise ValueError(
                        f"Paid {from_cents(paid_cents)} exceeds total {from_cents(total_cents)}"
                    )

                invoice_number = row["InvoiceNumber"].strip()
                if not invoice_number:
                    raise ValueError("InvoiceNumber is empty")

                if invoice_number in seen_invoice_numbers:
                    duplicate_invoice_count += 1
                    logger.warning(
                        "Duplicate InvoiceNumber %r at CSV row %s, keeping the last one",
                        invoice_number, n_rows,
                    )
                seen_invoice_numbers.add(invoice_number)

                invoice_date = parse_date(row.get("InvoiceDate")) or date.today()
                due_date = parse_date(row.get("DueDate"))

                # ----- CUSTOMER HANDLING -----
                if key not in customers_by_name:
                    customers_by_name[key] = {
                        "name": cname,
                        "email": _clean(row, "Email"),
                        "phone": _clean(row, "Phone"),
                        "company_name": _clean(row, "Company"),
                    }
                else:
                    # later rows may fill contact details the first row lacked
                    cust = customers_by_name[key]
                    for field, column in (("email", "Email"), ("phone", "Phone"), ("company_name", "Company")):
                        if not cust[field] and _clean(row, column):
                            cust[field] = _clean(row, column)

                invoices_list.append(
                    {
                        "customer_key": key,
                        "invoice_number": invoice_number,
                        "invoice_date": invoice_date,
                        "due_date": due_date,
                        "total_cents": total_cents,
                        "paid_cents": paid_cents,
                        "notes": _clean(row, "Notes"),
                    }
                )

            except Exception as e:
                n_errors += 1
                if len(error_examples) < 5:
                    error_examples.append(
                        {
                            "row_number": n_rows,
                            "row": dict(row),
                            "error": repr(e),
                        }
                    )

    stats = {
        "n_rows": n_rows,
        "n_customers": len(customers_by_name),
        "n_invoices": len(invoices_list),
        "n_errors": n_errors,
        "error_examples": error_examples,
        "n_duplicate_invoices": duplicate_invoice_count,
    }
    return list(customers_by_name.values()), invoices_list, stats


def load_into_db(ledger: Ledger, customers_list, invoices_list) -> List[str]:
    """
    Idempotent: customers are matched by name (case-insensitive) and
    invoices by invoice number, so re-running an import updates in place.

    Invoices that already have payments recorded in the ledger are left
    untouched; their numbers are returned.
    """
    skipped = []
    with ledger.store.begin() as unit:
        customer_ids = {}
        for c in customers_list:
            existing = unit.first(customers, func.lower(customers.c.name) == c["name"].lower())
            if existing is None:
                (existing,) = unit.insert(customers, c)
            customer_ids[c["name"].lower()] = existing["id"]

        for inv in invoices_list:
            values = {
                "customer_id": customer_ids[inv["customer_key"]],
                "invoice_date": inv["invoice_date"],
                "due_date": inv["due_date"],
                "subtotal_cents": inv["total_cents"],
                "tax_cents": 0,
                "total_cents": inv["total_cents"],
                "paid_cents": inv["paid_cents"],
                "status": derive_status(inv["total_cents"], inv["paid_cents"]),
                "notes": inv["notes"],
            }
            existing = unit.first(invoices, {"invoice_number": inv["invoice_number"]})

            if existing is None:
                (existing,) = unit.insert(
                    invoices, dict(values, invoice_number=inv["invoice_number"])
                )
            elif unit.first(payments, {"invoice_id": existing["id"]}) is not None:
                logger.warning(
                    "Invoice %s already has payments in the ledger, not overwriting it",
                    inv["invoice_number"],
                )
                skipped.append(inv["invoice_number"])
                continue
            else:
                unit.update(invoices, values, {"id": existing["id"]})
                unit.delete(invoice_items, {"invoice_id": existing["id"]})

            unit.insert(
                invoice_items,
                {
                    "invoice_id": existing["id"],
                    "description": OPENING_ITEM,
                    "quantity": Decimal("1"),
                    "unit_price_cents": inv["total_cents"],
                    "amount_cents": inv["total_cents"],
                },
            )

    ledger.notifier.publish("customers", "invoices", "invoice_items")
    return skipped


def main(file_path: str = FILE_PATH):
    customers_list, invoices_list, stats = parse_opening_balances(file_path)
    logger.info(
        "Parsed %s: %d row(s), %d customer(s), %d invoice(s), %d duplicate number(s)",
        file_path, stats["n_rows"], stats["n_customers"], stats["n_invoices"],
        stats["n_duplicate_invoices"],
    )
    for ex in stats["error_examples"]:
        logger.warning("Skipped row %s: %s", ex["row_number"], ex["error"])
    if stats["n_errors"] > len(stats["error_examples"]):
        logger.warning("... and %d more", stats["n_errors"] - len(stats["error_examples"]))

    ledger = Ledger()
    ledger.create_schema()
    skipped = load_into_db(ledger, customers_list, invoices_list)
    logger.info("Opening balances loaded, %d invoice(s) with payments left as they were", len(skipped))


if __name__ == "__main__":
    main()
