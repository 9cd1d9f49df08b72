"""Integration tests for the invoice endpoints."""

from __future__ import annotations

import pytest

from modules.invoices.models import CompanySettings

pytestmark = pytest.mark.integration


@pytest.fixture()
def company():
    return CompanySettings.objects.create(company_name="Demo Trading Ltd", next_invoice_number=7)


def _issue(client, order_id, **payload):
    return client.post(f"/api/v1/orders/{order_id}/invoices/", payload, format="json")


class TestInvoiceAPI:
    def test_issue(self, auth_client, company, make_order):
        order = make_order()

        response = _issue(auth_client, order.id, vat_rate="20")

        assert response.status_code == 201
        body = response.json()
        assert body["invoice_number"] == 7
        assert body["subtotal"] == "10.00"
        assert body["vat_amount"] == "2.00"
        assert body["total_amount"] == "12.00"
        assert body["buyer_name"] == "Maria Ivanova"

    def test_issue_without_company_settings(self, auth_client, make_order):
        response = _issue(auth_client, make_order().id)

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "company_settings_missing"

    def test_issue_with_taken_number(self, auth_client, company, make_order):
        order = make_order()
        _issue(auth_client, order.id)
        auth_client.put("/api/v1/invoices/counter/", {"next_invoice_number": 7}, format="json")

        response = _issue(auth_client, order.id)

        assert response.status_code == 409
        assert response.json()["errors"][0]["code"] == "invoice_issue_error"

    def test_invalid_dates(self, auth_client, company, make_order):
        response = _issue(
            auth_client,
            make_order().id,
            issue_date="2026-03-01",
            tax_event_date="2026-03-05",
        )

        assert response.status_code == 400

    def test_list_and_retrieve(self, auth_client, company, make_order):
        order = make_order()
        other = make_order()
        invoice_id = _issue(auth_client, order.id).json()["id"]
        _issue(auth_client, other.id)

        for_order = auth_client.get("/api/v1/invoices/", {"order": order.id}).json()
        scoped = auth_client.get(f"/api/v1/orders/{order.id}/invoices/").json()
        detail = auth_client.get(f"/api/v1/invoices/{invoice_id}/")

        assert [i["id"] for i in for_order] == [invoice_id]
        assert [i["id"] for i in scoped] == [invoice_id]
        assert detail.json()["invoice_number"] == 7

    def test_list_rejects_non_numeric_order(self, auth_client):
        response = auth_client.get("/api/v1/invoices/", {"order": "abc"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["attr"] == "order"

    def test_counter(self, auth_client, company):
        assert auth_client.get("/api/v1/invoices/counter/").json() == {"next_invoice_number": 7}

        response = auth_client.put(
            "/api/v1/invoices/counter/", {"next_invoice_number": 100}, format="json"
        )

        assert response.json() == {"next_invoice_number": 100}
        company.refresh_from_db()
        assert company.next_invoice_number == 100

    def test_counter_rejects_zero(self, auth_client, company):
        response = auth_client.put(
            "/api/v1/invoices/counter/", {"next_invoice_number": 0}, format="json"
        )

        assert response.status_code == 400
