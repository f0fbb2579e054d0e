# tests/test_api.py

import pytest
from fastapi.testclient import TestClient

from ledger.main import create_app


@pytest.fixture
def client(ledger):
    app = create_app(ledger)
    with TestClient(app) as client:
        yield client


def _customer(client, **overrides):
    body = {"name": "Efua Asante", "email": "efua@asantegraphics.com", "company_name": "Asante Graphics"}
    body.update(overrides)
    resp = client.post("/customers/", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _issued_invoice(client, customer_id, price, **extra):
    body = {
        "customer_id": customer_id,
        "items": [{"description": "Roll-up banner", "quantity": 1, "unit_price": price}],
    }
    body.update(extra)
    resp = client.post("/invoices/", json=body)
    assert resp.status_code == 201, resp.text
    invoice = resp.json()
    resp = client.post(f"/invoices/{invoice['id']}/status", json={"status": "unpaid"})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_payment_flow_over_http(client):
    customer = _customer(client)
    a = _issued_invoice(client, customer["id"], "30.00", invoice_date="2024-01-02")
    b = _issued_invoice(client, customer["id"], "50.00", invoice_date="2024-02-02")

    outstanding = client.get(f"/customers/{customer['id']}/outstanding").json()
    assert [inv["id"] for inv in outstanding] == [a["id"], b["id"]]

    cap = client.get(f"/invoices/{a['id']}/cap", params={"amount": "45"}).json()
    assert float(cap["allocatable"]) == 30.0

    resp = client.post(
        "/payments/",
        json={
            "customer_id": customer["id"],
            "method": "mobile_money",
            "reference": "MM-20240301",
            "allocations": [
                {"invoice_id": a["id"], "amount": cap["allocatable"]},
                {"invoice_id": b["id"], "amount": "20"},
            ],
        },
    )
    assert resp.status_code == 201, resp.text
    summary = resp.json()
    assert float(summary["payment"]["amount"]) == 50.0
    assert [r["status"] for r in summary["allocations"]] == ["paid", "partial"]

    debts = client.get("/debts/", params={"q": "asante"}).json()
    assert len(debts) == 1
    assert float(debts[0]["outstanding"]) == 30.0
    assert debts[0]["invoice_count"] == 2


def test_errors_map_to_status_codes(client):
    customer = _customer(client)
    invoice = _issued_invoice(client, customer["id"], "40.00")

    resp = client.post("/invoices/", json={"customer_id": customer["id"], "items": []})
    assert resp.status_code == 400
    assert "at least one item" in resp.json()["detail"]

    assert client.get("/invoices/9999").status_code == 404
    assert client.get("/customers/9999/outstanding").status_code == 404

    resp = client.post(
        "/payments/",
        json={
            "customer_id": customer["id"],
            "method": "cash",
            "allocations": [{"invoice_id": invoice["id"], "amount": "100"}],
        },
    )
    assert resp.status_code == 409
    assert client.get(f"/invoices/{invoice['id']}").json()["amount_paid"] in ("0.00", "0", 0)


def test_order_cascade_over_http(client):
    customer = _customer(client)
    order = client.post(
        "/orders/", json={"customer_id": customer["id"], "job_title": "Event tickets", "order_value": "60"}
    ).json()
    invoice = _issued_invoice(client, customer["id"], "60.00", order_id=order["id"])

    resp = client.post(f"/orders/{order['id']}/payments", json={"amount": "10", "method": "cash"})
    assert resp.status_code == 201, resp.text

    resp = client.delete(f"/orders/{order['id']}")
    assert resp.status_code == 200, resp.text
    report = resp.json()
    assert all(step["error"] is None for step in report["steps"])

    assert client.get(f"/orders/{order['id']}").status_code == 404
    assert client.get(f"/invoices/{invoice['id']}").status_code == 404
    assert client.delete(f"/orders/{order['id']}").status_code == 404


def test_debt_summary_served_after_startup(client):
    customer = _customer(client)
    _issued_invoice(client, customer["id"], "12.50")

    summary = client.get("/debts/summary").json()
    assert "total_outstanding" in summary
    assert "debtor_count" in summary
