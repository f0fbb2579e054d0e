# tests/conftest.py

from decimal import Decimal

import pytest

from ledger.db.engine import get_engine
from ledger.service import Ledger


@pytest.fixture
def ledger(tmp_path):
    engine = get_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    ledger = Ledger(engine)
    ledger.create_schema()
    yield ledger
    ledger.dispose()


@pytest.fixture
def customer(ledger):
    return ledger.create_customer(
        "Kofi Mensah",
        email="kofi@mensahprints.com",
        phone="0244123456",
        company_name="Mensah Prints",
    )


@pytest.fixture
def issue_invoice(ledger, customer):
    """Create an invoice with a single line of `total` and move it out of draft."""

    def _issue(total, customer_id=None, invoice_date=None, order_id=None, **kwargs):
        invoice = ledger.create_invoice(
            customer_id=customer_id or customer.id,
            items=[{"description": "Banner print", "quantity": 1, "unit_price": Decimal(str(total))}],
            invoice_date=invoice_date,
            order_id=order_id,
            **kwargs,
        )
        return ledger.set_status(invoice.id, "unpaid")

    return _issue
