# tests/test_debts.py

from decimal import Decimal

from ledger.services.debts import filter_debts


def test_debt_rollup_example(ledger, customer, issue_invoice):
    part = issue_invoice("100.00")
    full = issue_invoice("50.00")
    ledger.record_payment(customer.id, "cash", [(part.id, "40"), (full.id, "50")])

    (debt,) = ledger.list_customer_debts()
    assert debt.id == customer.id
    assert debt.outstanding == Decimal("60.00")
    assert debt.total_billed == Decimal("150.00")
    assert debt.total_paid == Decimal("90.00")
    assert debt.invoice_count == 2
    assert [inv.id for inv in debt.invoices] == [part.id]


def test_drafts_and_settled_customers_are_left_out(ledger, customer, issue_invoice):
    ledger.create_invoice(customer.id, [{"description": "Quote only", "unit_price": "300"}])
    settled = ledger.create_customer("Settled Ltd")
    inv = issue_invoice("25.00", customer_id=settled.id)
    ledger.set_status(inv.id, "paid")

    assert ledger.list_customer_debts() == []


def test_debts_sorted_largest_first(ledger, customer, issue_invoice):
    small = ledger.create_customer("Small Debtor", email="accounts@small.com")
    issue_invoice("10.00", customer_id=small.id)
    issue_invoice("500.00")

    names = [debt.name for debt in ledger.list_customer_debts()]
    assert names == ["Kofi Mensah", "Small Debtor"]


def test_filter_debts_matches_any_contact_field(ledger, customer, issue_invoice):
    other = ledger.create_customer("Yaw Boateng", phone="0201112222", company_name="Boateng Media")
    issue_invoice("10.00", customer_id=other.id)
    issue_invoice("20.00")
    debts = ledger.list_customer_debts()

    assert [d.name for d in filter_debts(debts, "boateng MEDIA")] == ["Yaw Boateng"]
    assert [d.name for d in filter_debts(debts, "MENSAHPRINTS")] == ["Kofi Mensah"]
    assert [d.name for d in filter_debts(debts, "0244")] == ["Kofi Mensah"]
    assert len(filter_debts(debts, "  ")) == 2
    assert filter_debts(debts, "nobody") == []


def test_debt_summary(ledger, customer, issue_invoice):
    issue_invoice("10.00")
    issue_invoice("15.50")
    summary = ledger.debt_summary()
    assert summary.total_outstanding == Decimal("25.50")
    assert summary.debtor_count == 1
