# tests/test_commissions.py

from ledger.db.schema import commissions


def _add_commission(ledger, order_id, user_id=7):
    with ledger.store.begin() as unit:
        unit.insert(
            commissions,
            {
                "user_id": user_id,
                "order_id": order_id,
                "commission_type": "salesperson",
                "commission_percentage": 10,
                "commission_amount_cents": 1500,
            },
        )


def test_paid_status_follows_order_payment(ledger, customer):
    order = ledger.create_order(customer.id, "Wedding cards", order_value="150")
    _add_commission(ledger, order.id)

    (view,) = ledger.list_commissions(user_id=7)
    assert view.paid_status == "unpaid"
    assert view.job_title == "Wedding cards"

    ledger.record_order_payment(order.id, "150", "cash")
    (view,) = ledger.list_commissions(user_id=7)
    assert view.paid_status == "paid"


def test_paid_status_follows_linked_invoice(ledger, customer):
    order = ledger.create_order(customer.id, "Calendars", order_value="80")
    invoice = ledger.create_invoice(
        customer.id, [{"description": "Wall calendars", "quantity": 20, "unit_price": "4"}],
        order_id=order.id,
    )
    _add_commission(ledger, order.id)

    # a draft invoice is ignored
    assert ledger.list_commissions(order_id=order.id)[0].paid_status == "unpaid"

    ledger.set_status(invoice.id, "unpaid")
    ledger.record_payment(customer.id, "cash", [(invoice.id, "80")])

    (view,) = ledger.list_commissions(order_id=order.id)
    assert view.paid_status == "paid"
    assert view.invoice_id == invoice.id


def test_filters(ledger, customer):
    order = ledger.create_order(customer.id, "Flyers", order_value="20")
    _add_commission(ledger, order.id, user_id=1)
    _add_commission(ledger, order.id, user_id=2)

    assert [c.user_id for c in ledger.list_commissions(user_id=2)] == [2]
    assert len(ledger.list_commissions(order_id=order.id)) == 2
    assert ledger.list_commissions(order_id=order.id + 1) == []
