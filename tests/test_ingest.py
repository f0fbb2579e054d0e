# tests/test_ingest.py

from decimal import Decimal

from scripts.ingest import load_into_db, parse_opening_balances

CSV = """CustomerName,Email,Phone,Company,InvoiceNumber,InvoiceDate,DueDate,Total,Paid,Notes
Kwame Nkrumah,,0209990000,,OB-001,01/15/24,02/15/24,"1,200.00",200.00,Carried over
kwame nkrumah,kwame@nkrumahdesigns.com,,Nkrumah Designs,OB-002,2024-02-01,,300.00,300.00,
Abena Ofori,,,,OB-003,2024-02-03,,50.00,80.00,
"""


def _write(tmp_path, text=CSV):
    path = tmp_path / "opening.csv"
    path.write_text(text)
    return str(path)


def test_parse_opening_balances(tmp_path):
    customers_list, invoices_list, stats = parse_opening_balances(_write(tmp_path))

    assert stats["n_rows"] == 3
    assert stats["n_errors"] == 1  # paid above total
    assert stats["n_customers"] == 1
    (kwame,) = customers_list
    assert kwame["email"] == "kwame@nkrumahdesigns.com"
    assert kwame["phone"] == "0209990000"
    assert [inv["total_cents"] for inv in invoices_list] == [120000, 30000]


def test_load_is_idempotent(ledger, tmp_path):
    customers_list, invoices_list, _ = parse_opening_balances(_write(tmp_path))
    load_into_db(ledger, customers_list, invoices_list)
    load_into_db(ledger, customers_list, invoices_list)

    (customer,) = ledger.list_customers()
    invoices = ledger.list_invoices(customer_id=customer.id)
    assert [inv.status for inv in invoices] == ["partial", "paid"]

    (debt,) = ledger.list_customer_debts()
    assert debt.outstanding == Decimal("1000.00")
    assert len(ledger.get_invoice(invoices[0].id).items) == 1


def test_reimport_leaves_invoices_with_payments_alone(ledger, tmp_path):
    customers_list, invoices_list, _ = parse_opening_balances(_write(tmp_path))
    assert load_into_db(ledger, customers_list, invoices_list) == []

    (customer,) = ledger.list_customers()
    carried = ledger.list_invoices(customer_id=customer.id)[0]
    ledger.record_payment(customer.id, "cash", [(carried.id, "100")])

    skipped = load_into_db(ledger, customers_list, invoices_list)

    assert skipped == [carried.invoice_number]
    carried = ledger.get_invoice(carried.id)
    assert carried.amount_paid == Decimal("300.00")
    assert sum(p.amount for p in ledger.list_payments(invoice_id=carried.id)) == Decimal("100.00")
