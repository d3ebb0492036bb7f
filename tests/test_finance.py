"""
Venture OS
Tests — invoices and payments.

Covers:
    - Invoice CRUD + validation (client required, amount, status, due date)
    - Invoice drawn from a price offer: amount, due date, project link
    - Payments: partial vs. full, method validation, Paid transition
"""

from datetime import UTC, datetime, timedelta

from venture_os.models import db
from venture_os.models.finance import Invoice, Payment
from venture_os.services import finance_service


def _create_client(client, **kw):
    payload = {"name": "Acme Studio"}
    payload.update(kw)
    res = client.post("/api/v1/clients", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _create_offer(client, client_id, **kw):
    payload = {
        "client_id": client_id,
        "title": "Website",
        "items": [
            {"name": "Design", "quantity": 2, "unit_price": 500},
            {"name": "Build", "quantity": 1, "unit_price": 1000},
        ],
    }
    payload.update(kw)
    res = client.post("/api/v1/price-offers", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _create_invoice(client, client_id, **kw):
    payload = {"client_id": client_id, "amount": 1500}
    payload.update(kw)
    res = client.post("/api/v1/invoices", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# INVOICE
# ═════════════════════════════════════════════════════════════════════════════

class TestInvoiceAPI:
    def test_defaults(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"])
        assert inv["status"] == "Pending"
        assert inv["amount"] == 1500
        assert inv["amount_paid"] == 0
        assert inv["project_id"] is None

    def test_client_required(self, client):
        res = client.post("/api/v1/invoices", json={"amount": 100})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Client is required"

    def test_unknown_client(self, client):
        res = client.post("/api/v1/invoices", json={"client_id": "nope", "amount": 100})
        assert res.status_code == 404

    def test_negative_amount_rejected(self, client):
        c = _create_client(client)
        res = client.post("/api/v1/invoices", json={"client_id": c["id"], "amount": -1})
        assert res.status_code == 400
        assert Invoice.query.count() == 0

    def test_invalid_status(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"])
        res = client.put(f"/api/v1/invoices/{inv['id']}", json={"status": "Settled"})
        assert res.status_code == 400
        assert db.session.get(Invoice, inv["id"]).status == "Pending"

    def test_bad_due_date_rejected(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"], due_date="2030-01-15T00:00:00Z")
        res = client.put(f"/api/v1/invoices/{inv['id']}", json={"due_date": "someday"})
        assert res.status_code == 400
        assert db.session.get(Invoice, inv["id"]).due_date is not None

    def test_update_and_filter(self, client):
        c = _create_client(client)
        a = _create_invoice(client, c["id"])
        _create_invoice(client, c["id"], amount=200)
        res = client.put(f"/api/v1/invoices/{a['id']}", json={"status": "Overdue", "amount": 1800})
        assert res.status_code == 200
        assert res.get_json()["amount"] == 1800

        body = client.get("/api/v1/invoices?status=Overdue").get_json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == a["id"]
        assert client.get(f"/api/v1/invoices?client_id={c['id']}").get_json()["total"] == 2

    def test_delete_removes_payments(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"])
        client.post(f"/api/v1/invoices/{inv['id']}/payments", json={"amount": 100})
        res = client.delete(f"/api/v1/invoices/{inv['id']}")
        assert res.status_code == 200
        assert client.get(f"/api/v1/invoices/{inv['id']}").status_code == 404
        assert Payment.query.count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# INVOICE FROM PRICE OFFER
# ═════════════════════════════════════════════════════════════════════════════

class TestInvoiceFromOffer:
    def test_bills_offer_total(self, client):
        c = _create_client(client)
        offer = _create_offer(client, c["id"])
        res = client.post(f"/api/v1/price-offers/{offer['id']}/invoice")
        assert res.status_code == 201
        inv = res.get_json()
        assert inv["client_id"] == c["id"]
        assert inv["amount"] == 2000
        assert inv["status"] == "Pending"
        assert inv["project_id"] is None
        assert inv["pdf_url"] is None

    def test_due_thirty_days_out(self, client):
        c = _create_client(client)
        offer = _create_offer(client, c["id"])
        now = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
        invoice, err = finance_service.create_invoice_from_offer(offer["id"], now=now)
        assert err is None
        assert invoice.due_date == now + timedelta(days=30)

    def test_links_project_through_contract(self, client):
        c = _create_client(client)
        offer = _create_offer(client, c["id"])
        client.put(f"/api/v1/price-offers/{offer['id']}", json={"status": "Accepted"})
        contract = client.get(f"/api/v1/contracts?client_id={c['id']}").get_json()["items"][0]
        project = client.post("/api/v1/projects", json={
            "name": "Website build", "client_id": c["id"], "contract_id": contract["id"],
        }).get_json()

        inv = client.post(f"/api/v1/price-offers/{offer['id']}/invoice").get_json()
        assert inv["project_id"] == project["id"]

    def test_missing_offer(self, client):
        res = client.post("/api/v1/price-offers/nope/invoice")
        assert res.status_code == 404
        assert Invoice.query.count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# PAYMENT
# ═════════════════════════════════════════════════════════════════════════════

class TestPaymentAPI:
    def test_partial_then_full(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"], amount=1000)

        res = client.post(f"/api/v1/invoices/{inv['id']}/payments", json={"amount": 400})
        assert res.status_code == 201
        body = res.get_json()
        assert body["payment"]["method"] == "Transfer"
        assert body["invoice"]["status"] == "Pending"
        assert body["invoice"]["amount_paid"] == 400

        res = client.post(f"/api/v1/invoices/{inv['id']}/payments", json={
            "amount": 600, "method": "Card", "transaction_ref": "ch_123",
        })
        assert res.status_code == 201
        assert res.get_json()["invoice"]["status"] == "Paid"

        payments = client.get(f"/api/v1/invoices/{inv['id']}/payments").get_json()
        assert payments["total"] == 2
        assert [p["amount"] for p in payments["items"]] == [400, 600]

        detail = client.get(f"/api/v1/invoices/{inv['id']}").get_json()
        assert detail["status"] == "Paid"
        assert len(detail["payments"]) == 2

    def test_overpayment_marks_paid(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"], amount=100)
        res = client.post(f"/api/v1/invoices/{inv['id']}/payments", json={"amount": 150, "method": "Cash"})
        assert res.get_json()["invoice"]["status"] == "Paid"

    def test_invalid_method(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"])
        res = client.post(f"/api/v1/invoices/{inv['id']}/payments", json={"amount": 10, "method": "Barter"})
        assert res.status_code == 400
        assert Payment.query.count() == 0

    def test_amount_must_be_positive(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"])
        for amount in (0, -5, "ten", None):
            res = client.post(f"/api/v1/invoices/{inv['id']}/payments", json={"amount": amount})
            assert res.status_code == 400
        assert Payment.query.count() == 0

    def test_cancelled_invoice_rejects_payment(self, client):
        c = _create_client(client)
        inv = _create_invoice(client, c["id"], status="Cancelled")
        res = client.post(f"/api/v1/invoices/{inv['id']}/payments", json={"amount": 10})
        assert res.status_code == 409

    def test_missing_invoice(self, client):
        res = client.post("/api/v1/invoices/nope/payments", json={"amount": 10})
        assert res.status_code == 404
        assert client.get("/api/v1/invoices/nope/payments").status_code == 404
