# tests/test_payments.py

from datetime import date
from decimal import Decimal

import pytest

from ledger.errors import ConflictError, NotFoundError, ValidationError
from ledger.services.payments import cap_allocation
from ledger.services.status import derive_status
from ledger.money import to_cents


def _assert_invariants(ledger):
    for invoice in ledger.list_invoices():
        assert Decimal("0") <= invoice.amount_paid <= invoice.total_amount + Decimal("0.01")
        if invoice.status != "draft":
            assert invoice.status == derive_status(
                to_cents(invoice.total_amount), to_cents(invoice.amount_paid)
            )


def test_list_outstanding_oldest_first_without_paid(ledger, customer, issue_invoice):
    late = issue_invoice("20.00", invoice_date=date(2024, 5, 1))
    early = issue_invoice("30.00", invoice_date=date(2024, 1, 15))
    settled = issue_invoice("10.00", invoice_date=date(2023, 12, 1))
    ledger.set_status(settled.id, "paid")

    outstanding = ledger.list_outstanding(customer.id)
    assert [inv.id for inv in outstanding] == [early.id, late.id]
    assert outstanding[0].outstanding == Decimal("30.00")


def test_list_outstanding_unknown_customer(ledger):
    with pytest.raises(NotFoundError):
        ledger.list_outstanding(77)


@pytest.mark.parametrize("requested", ["-5", "0", "12.34", "39.99", "40", "100", "1e6"])
def test_cap_allocation_is_idempotent(ledger, issue_invoice, requested):
    invoice = issue_invoice("40.00")
    once = cap_allocation(invoice, requested)
    assert cap_allocation(invoice, once) == once
    assert Decimal("0") <= once <= Decimal("40.00")


def test_cap_allocation_clamps_to_outstanding(ledger, issue_invoice):
    invoice = issue_invoice("100.00")
    ledger.record_payment(invoice.customer_id, "cash", [(invoice.id, "60")])
    invoice = ledger.get_invoice(invoice.id)

    assert ledger.cap_allocation(invoice, "100") == Decimal("40.00")
    assert ledger.cap_allocation(invoice, "-3") == Decimal("0.00")


def test_allocation_conservation(ledger, customer, issue_invoice):
    a = issue_invoice("30.00")
    b = issue_invoice("50.00")

    summary = ledger.record_payment(
        customer.id, "bank_transfer", [(a.id, "30"), (b.id, "20")], reference="TRX-881"
    )

    assert summary.payment.amount == Decimal("50.00")
    assert summary.payment.invoice_id is None
    assert [r.status for r in summary.allocations] == ["paid", "partial"]

    a, b = ledger.get_invoice(a.id), ledger.get_invoice(b.id)
    assert a.status == "paid" and a.amount_paid == a.total_amount
    assert b.status == "partial" and b.amount_paid == Decimal("20.00")

    children = [p for p in ledger.list_payments(customer_id=customer.id) if p.parent_payment_id]
    assert sorted(p.amount for p in children) == [Decimal("20.00"), Decimal("30.00")]
    assert all(p.parent_payment_id == summary.payment.id for p in children)
    assert sum(p.amount for p in children) == summary.payment.amount


def test_non_positive_allocations_are_skipped(ledger, customer, issue_invoice):
    a = issue_invoice("30.00")
    b = issue_invoice("50.00")

    summary = ledger.record_payment(customer.id, "cash", [(a.id, "10"), (b.id, "0")])
    assert [r.invoice_id for r in summary.allocations] == [a.id]
    assert ledger.get_invoice(b.id).amount_paid == Decimal("0")


def test_uncapped_allocation_is_refused_and_nothing_sticks(ledger, customer, issue_invoice):
    a = issue_invoice("100.00")
    b = issue_invoice("40.00")

    with pytest.raises(ConflictError):
        ledger.record_payment(customer.id, "cash", [(a.id, "10"), (b.id, "100")])

    assert ledger.get_invoice(a.id).amount_paid == Decimal("0")
    assert ledger.get_invoice(b.id).amount_paid == Decimal("0")
    assert ledger.list_payments(customer_id=customer.id) == []

    capped = ledger.cap_allocation(ledger.get_invoice(b.id), "100")
    ledger.record_payment(customer.id, "cash", [(b.id, capped)])
    b = ledger.get_invoice(b.id)
    assert b.amount_paid == b.total_amount
    assert b.status == "paid"


@pytest.mark.parametrize("allocations", [[], [(1, "0")], [(1, "-5"), (1, "0")]])
def test_record_payment_needs_a_positive_allocation(ledger, customer, issue_invoice, allocations):
    issue_invoice("10.00")
    with pytest.raises(ValidationError):
        ledger.record_payment(customer.id, "cash", allocations)


def test_record_payment_validates_method_and_ownership(ledger, customer, issue_invoice):
    invoice = issue_invoice("10.00")
    other = ledger.create_customer("Ama Owusu")

    with pytest.raises(ValidationError):
        ledger.record_payment(customer.id, "barter", [(invoice.id, "5")])
    with pytest.raises(ValidationError):
        ledger.record_payment(other.id, "cash", [(invoice.id, "5")])
    with pytest.raises(NotFoundError):
        ledger.record_payment(customer.id, "cash", [(999, "5")])
    with pytest.raises(NotFoundError):
        ledger.record_payment(999, "cash", [(invoice.id, "5")])


def test_invariants_hold_over_a_sequence(ledger, customer, issue_invoice):
    a = issue_invoice("75.00")
    b = issue_invoice("120.50")
    c = issue_invoice("19.99")

    steps = [
        lambda: ledger.record_payment(customer.id, "cash", [(a.id, "25"), (b.id, "0.50")]),
        lambda: ledger.set_status(c.id, "paid"),
        lambda: ledger.record_payment(customer.id, "card", [(a.id, "50"), (b.id, "60")]),
        lambda: ledger.set_status(a.id, "unpaid"),
        lambda: ledger.record_payment(
            customer.id, "cheque",
            [(b.id, ledger.cap_allocation(ledger.get_invoice(b.id), "500"))],
        ),
        lambda: ledger.set_status(c.id, "unpaid"),
    ]
    for step in steps:
        step()
        _assert_invariants(ledger)


def test_allocating_to_a_draft_moves_it_out_of_draft(ledger, customer):
    draft = ledger.create_invoice(customer.id, [{"description": "Mugs", "quantity": 4, "unit_price": "5"}])
    ledger.record_payment(customer.id, "cash", [(draft.id, "5")])
    assert ledger.get_invoice(draft.id).status == "partial"


def test_delete_summary_payment_reverses_allocations(ledger, customer, issue_invoice):
    a = issue_invoice("30.00")
    b = issue_invoice("50.00")
    summary = ledger.record_payment(customer.id, "cash", [(a.id, "30"), (b.id, "20")])

    ledger.delete_payment(summary.payment.id)

    assert ledger.get_invoice(a.id).status == "unpaid"
    assert ledger.get_invoice(b.id).amount_paid == Decimal("0")
    assert ledger.list_payments(customer_id=customer.id) == []


def test_delete_single_allocation(ledger, customer, issue_invoice):
    a = issue_invoice("30.00")
    ledger.record_payment(customer.id, "cash", [(a.id, "30")])
    (child,) = ledger.list_payments(invoice_id=a.id)

    ledger.delete_payment(child.id)
    a = ledger.get_invoice(a.id)
    assert a.amount_paid == Decimal("0")
    assert a.status == "unpaid"
    # the summary went with its only allocation
    assert ledger.list_payments(customer_id=customer.id) == []

    with pytest.raises(NotFoundError):
        ledger.delete_payment(child.id)


def test_delete_one_allocation_shrinks_its_summary(ledger, customer, issue_invoice):
    a = issue_invoice("30.00")
    b = issue_invoice("50.00")
    summary = ledger.record_payment(customer.id, "cash", [(a.id, "30"), (b.id, "20")])
    (child_a,) = ledger.list_payments(invoice_id=a.id)

    ledger.delete_payment(child_a.id)

    payments = {p.id: p for p in ledger.list_payments(customer_id=customer.id)}
    children = [p for p in payments.values() if p.parent_payment_id == summary.payment.id]
    assert payments[summary.payment.id].amount == sum(p.amount for p in children)
    assert payments[summary.payment.id].amount == Decimal("20.00")
    assert ledger.get_invoice(b.id).amount_paid == Decimal("20.00")


@pytest.mark.parametrize(
    "allocations",
    [
        [{"amount": "5"}],
        [(1,)],
        [(1, "5", "extra")],
        [("INV-1", "5")],
        [None],
    ],
)
def test_malformed_allocations_are_validation_errors(ledger, customer, allocations):
    with pytest.raises(ValidationError):
        ledger.record_payment(customer.id, "cash", allocations)


def test_order_payment_updates_order_status(ledger, customer):
    order = ledger.create_order(customer.id, "Church programme booklets", order_value="200")

    ledger.record_order_payment(order.id, "50", "mobile_money", reference="MM-1")
    assert ledger.get_order(order.id).payment_status == "partial"

    payment = ledger.record_order_payment(order.id, "150", "cash")
    assert payment.origin == "manual"
    order = ledger.get_order(order.id)
    assert order.payment_status == "paid"
    assert order.amount_paid == Decimal("200.00")

    with pytest.raises(ConflictError):
        ledger.record_order_payment(order.id, "1", "cash")

    ledger.delete_payment(payment.id)
    assert ledger.get_order(order.id).payment_status == "partial"
