"""
Tests for the GST invoice endpoints.
"""

import asyncio
from decimal import Decimal

from app.core.security import create_access_token


URL = "/api/v1/gst-invoices"

VALID_PAYLOAD = {
    "due_date": "2025-07-15",
    "supplier_name": "Sahyadri Software Pvt Ltd",
    "supplier_gstin": "27AAAAA0000A1Z5",
    "supplier_pan": "AAAAA0000A",
    "supplier_address": "Baner Road",
    "supplier_city": "Pune",
    "supplier_state": "27",
    "supplier_pincode": "411045",
    "supplier_email": "billing@sahyadrisoft.in",
    "buyer_name": "Ananya Textiles",
    "buyer_gstin": "27BBBBB1111B1Z5",
    "buyer_state": "27",
    "place_of_supply": "27",
    "items": [
        {"description": "Website development", "hsn_sac": "998314", "quantity": 2, "unit": "Nos", "rate": 500, "gst_rate": 18},
    ],
}


async def create_invoice(client, headers, **overrides):
    resp = await client.post(URL, json={**VALID_PAYLOAD, **overrides}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestAuth:
    async def test_missing_token_returns_401(self, client):
        resp = await client.get(URL)
        assert resp.status_code == 401

    async def test_invalid_token_returns_401(self, client):
        resp = await client.get(URL, headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


class TestCreateInvoice:
    async def test_intra_state_invoice(self, client, auth_headers):
        data = await create_invoice(client, auth_headers)

        assert data["invoice_number"] == "INV/2025-26/001"
        assert data["invoice_date"] == "2025-06-15"
        assert data["supply_type"] == "intra-state"
        assert data["status"] == "sent"
        assert data["user_id"] == "user-1"
        assert Decimal(data["total_taxable_value"]) == Decimal("1000.00")
        assert Decimal(data["total_cgst"]) == Decimal("90.00")
        assert Decimal(data["total_sgst"]) == Decimal("90.00")
        assert Decimal(data["total_igst"]) == 0
        assert data["grand_total"] == "1180.00"
        assert data["amount_in_words"] == "One Thousand One Hundred Eighty Rupees Only"
        assert data["terms"].startswith("Payment is due within 30 days")
        assert data["is_overdue"] is False

        line = data["items"][0]
        assert line["line_number"] == 1
        assert Decimal(line["cgst_rate"]) == Decimal("9")
        assert Decimal(line["igst_amount"]) == 0

    async def test_inter_state_invoice(self, client, auth_headers):
        data = await create_invoice(client, auth_headers, place_of_supply="07", buyer_state="07")

        assert data["supply_type"] == "inter-state"
        assert Decimal(data["total_igst"]) == Decimal("180.00")
        assert Decimal(data["total_cgst"]) == 0
        assert Decimal(data["total_sgst"]) == 0

    async def test_client_totals_are_ignored(self, client, auth_headers):
        data = await create_invoice(client, auth_headers, grand_total="1.00", supply_type="inter-state")
        assert data["grand_total"] == "1180.00"
        assert data["supply_type"] == "intra-state"

    async def test_numbers_increment(self, client, auth_headers):
        first = await create_invoice(client, auth_headers)
        second = await create_invoice(client, auth_headers)
        assert first["invoice_number"] == "INV/2025-26/001"
        assert second["invoice_number"] == "INV/2025-26/002"

    async def test_numbers_are_per_user(self, client, auth_headers, other_auth_headers):
        await create_invoice(client, auth_headers)
        await create_invoice(client, auth_headers)
        data = await create_invoice(client, other_auth_headers)
        assert data["invoice_number"] == "INV/2025-26/001"

    async def test_supplied_number_is_kept(self, client, auth_headers):
        data = await create_invoice(client, auth_headers, invoice_number="INV/2025-26/050")
        assert data["invoice_number"] == "INV/2025-26/050"

        # Next generated number follows the most recent invoice
        data = await create_invoice(client, auth_headers)
        assert data["invoice_number"] == "INV/2025-26/051"

    async def test_duplicate_supplied_number_returns_409(self, client, auth_headers):
        await create_invoice(client, auth_headers, invoice_number="CUSTOM-1")
        resp = await client.post(URL, json={**VALID_PAYLOAD, "invoice_number": "CUSTOM-1"}, headers=auth_headers)
        assert resp.status_code == 409
        assert resp.headers["X-Error-Code"] == "INVOICE_NUMBER_CONFLICT"

    async def test_same_number_allowed_for_other_user(self, client, auth_headers, other_auth_headers):
        await create_invoice(client, auth_headers, invoice_number="CUSTOM-1")
        await create_invoice(client, other_auth_headers, invoice_number="CUSTOM-1")

    async def test_invalid_gstin_returns_422(self, client, auth_headers):
        resp = await client.post(
            URL, json={**VALID_PAYLOAD, "supplier_gstin": "27AAAAA0000A125"}, headers=auth_headers
        )
        assert resp.status_code == 422
        errors = resp.json()["detail"]["errors"]
        assert [e["field"] for e in errors] == ["supplier_gstin"]

    async def test_lower_case_gstin_is_normalized(self, client, auth_headers):
        data = await create_invoice(client, auth_headers, supplier_gstin="27aaaaa0000a1z5")
        assert data["supplier_gstin"] == "27AAAAA0000A1Z5"

    async def test_missing_hsn_rejects_whole_invoice(self, client, auth_headers):
        items = [
            VALID_PAYLOAD["items"][0],
            {"description": "Hosting", "hsn_sac": "", "quantity": 1, "rate": 100, "gst_rate": 18},
        ]
        resp = await client.post(URL, json={**VALID_PAYLOAD, "items": items}, headers=auth_headers)
        assert resp.status_code == 422
        assert [e["field"] for e in resp.json()["detail"]["errors"]] == ["items[1].hsn_sac"]

        resp = await client.get(URL, headers=auth_headers)
        assert resp.json()["total"] == 0

    async def test_unsupported_gst_rate_returns_422(self, client, auth_headers):
        items = [{**VALID_PAYLOAD["items"][0], "gst_rate": 10}]
        resp = await client.post(URL, json={**VALID_PAYLOAD, "items": items}, headers=auth_headers)
        assert resp.status_code == 422

    async def test_missing_due_date_returns_422(self, client, auth_headers):
        payload = {k: v for k, v in VALID_PAYLOAD.items() if k != "due_date"}
        resp = await client.post(URL, json=payload, headers=auth_headers)
        assert resp.status_code == 422

    async def test_rate_finer_than_paise_returns_422(self, client, auth_headers):
        items = [{**VALID_PAYLOAD["items"][0], "rate": "10.005"}]
        resp = await client.post(URL, json={**VALID_PAYLOAD, "items": items}, headers=auth_headers)
        assert resp.status_code == 422


class TestConcurrentCreation:
    async def test_concurrent_creates_get_unique_numbers(self, client):
        headers = {"Authorization": f"Bearer {create_access_token('busy-user')}"}

        responses = await asyncio.gather(*[
            client.post(URL, json=VALID_PAYLOAD, headers=headers) for _ in range(5)
        ])

        assert all(r.status_code == 201 for r in responses)
        numbers = sorted(r.json()["invoice_number"] for r in responses)
        assert numbers == [f"INV/2025-26/{n:03d}" for n in range(1, 6)]


class TestNextNumber:
    async def test_preview_does_not_reserve(self, client, auth_headers):
        resp = await client.get(f"{URL}/next-number", headers=auth_headers)
        assert resp.json() == {"invoice_number": "INV/2025-26/001"}

        resp = await client.get(f"{URL}/next-number", headers=auth_headers)
        assert resp.json() == {"invoice_number": "INV/2025-26/001"}

        await create_invoice(client, auth_headers)
        resp = await client.get(f"{URL}/next-number", headers=auth_headers)
        assert resp.json() == {"invoice_number": "INV/2025-26/002"}


class TestGetUpdateDelete:
    async def test_get_invoice(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.get(f"{URL}/{created['id']}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["invoice_number"] == created["invoice_number"]

    async def test_other_users_invoice_is_not_found(self, client, auth_headers, other_auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.get(f"{URL}/{created['id']}", headers=other_auth_headers)
        assert resp.status_code == 404

    async def test_update_recomputes_supply_type(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.put(
            f"{URL}/{created['id']}", json={"place_of_supply": "29"}, headers=auth_headers
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["supply_type"] == "inter-state"
        assert Decimal(data["total_igst"]) == Decimal("180.00")
        assert Decimal(data["total_cgst"]) == 0
        assert Decimal(data["items"][0]["igst_amount"]) == Decimal("180.00")
        assert data["invoice_number"] == created["invoice_number"]

    async def test_update_replaces_items(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        items = [
            {"description": "Design", "hsn_sac": "998391", "quantity": 1, "rate": 2000, "gst_rate": 18},
            {"description": "Printing", "hsn_sac": "4911", "quantity": 10, "unit": "Pcs", "rate": 50, "gst_rate": 12},
        ]
        resp = await client.put(f"{URL}/{created['id']}", json={"items": items}, headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["items"]) == 2
        assert Decimal(data["total_taxable_value"]) == Decimal("2500.00")
        assert Decimal(data["total_tax"]) == Decimal("420.00")
        assert data["grand_total"] == "2920.00"

    async def test_update_with_invalid_gstin_leaves_invoice_unchanged(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.put(
            f"{URL}/{created['id']}", json={"buyer_gstin": "BAD"}, headers=auth_headers
        )
        assert resp.status_code == 422

        resp = await client.get(f"{URL}/{created['id']}", headers=auth_headers)
        assert resp.json()["buyer_gstin"] == "27BBBBB1111B1Z5"

    async def test_update_to_existing_number_returns_409(self, client, auth_headers):
        await create_invoice(client, auth_headers)
        second = await create_invoice(client, auth_headers)
        resp = await client.put(
            f"{URL}/{second['id']}", json={"invoice_number": "INV/2025-26/001"}, headers=auth_headers
        )
        assert resp.status_code == 409

    async def test_update_missing_invoice_returns_404(self, client, auth_headers):
        resp = await client.put(
            f"{URL}/00000000-0000-0000-0000-000000000000", json={"notes": "x"}, headers=auth_headers
        )
        assert resp.status_code == 404

    async def test_update_status(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.put(f"{URL}/{created['id']}/status", json={"status": "paid"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["status"] == "paid"

    async def test_update_status_rejects_unknown_value(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.put(f"{URL}/{created['id']}/status", json={"status": "lost"}, headers=auth_headers)
        assert resp.status_code == 422

    async def test_delete(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.delete(f"{URL}/{created['id']}", headers=auth_headers)
        assert resp.status_code == 200

        resp = await client.get(f"{URL}/{created['id']}", headers=auth_headers)
        assert resp.status_code == 404

    async def test_delete_other_users_invoice_returns_404(self, client, auth_headers, other_auth_headers):
        created = await create_invoice(client, auth_headers)
        resp = await client.delete(f"{URL}/{created['id']}", headers=other_auth_headers)
        assert resp.status_code == 404


class TestOverdue:
    async def test_past_due_unpaid_invoice_is_overdue(self, client, auth_headers):
        created = await create_invoice(client, auth_headers, due_date="2025-06-01")
        assert created["is_overdue"] is True

        resp = await client.put(f"{URL}/{created['id']}/status", json={"status": "paid"}, headers=auth_headers)
        assert resp.json()["is_overdue"] is False

    async def test_not_yet_due_invoice_is_not_overdue(self, client, auth_headers):
        created = await create_invoice(client, auth_headers)
        assert created["is_overdue"] is False

        listing = await client.get(URL, headers=auth_headers)
        assert listing.json()["items"][0]["is_overdue"] is False


class TestListInvoices:
    async def test_pagination(self, client, auth_headers):
        for _ in range(3):
            await create_invoice(client, auth_headers)

        resp = await client.get(URL, params={"page": 2, "limit": 2}, headers=auth_headers)
        data = resp.json()
        assert data["total"] == 3
        assert data["pages"] == 2
        assert data["page"] == 2
        assert len(data["items"]) == 1

    async def test_filter_by_status(self, client, auth_headers):
        await create_invoice(client, auth_headers)
        await create_invoice(client, auth_headers, status="draft")

        resp = await client.get(URL, params={"status": "draft"}, headers=auth_headers)
        assert resp.json()["total"] == 1

        resp = await client.get(URL, params={"status": "all"}, headers=auth_headers)
        assert resp.json()["total"] == 2

    async def test_search_is_case_insensitive(self, client, auth_headers):
        await create_invoice(client, auth_headers)
        await create_invoice(client, auth_headers, buyer_name="Kaveri Foods")

        resp = await client.get(URL, params={"search": "kaveri"}, headers=auth_headers)
        data = resp.json()
        assert data["total"] == 1
        assert data["items"][0]["buyer_name"] == "Kaveri Foods"

    async def test_sort_by_grand_total(self, client, auth_headers):
        await create_invoice(client, auth_headers)
        big_items = [{**VALID_PAYLOAD["items"][0], "quantity": 10}]
        await create_invoice(client, auth_headers, items=big_items)

        resp = await client.get(
            URL, params={"sort_by": "grand_total", "sort_order": "asc"}, headers=auth_headers
        )
        totals = [Decimal(i["grand_total"]) for i in resp.json()["items"]]
        assert totals == [Decimal("1180.00"), Decimal("11800.00")]

    async def test_rejects_unknown_sort_field(self, client, auth_headers):
        resp = await client.get(URL, params={"sort_by": "buyer_gstin"}, headers=auth_headers)
        assert resp.status_code == 422

    async def test_only_own_invoices(self, client, auth_headers, other_auth_headers):
        await create_invoice(client, auth_headers)
        resp = await client.get(URL, headers=other_auth_headers)
        assert resp.json()["total"] == 0


class TestStats:
    async def test_summary(self, client, auth_headers):
        paid = await create_invoice(client, auth_headers)
        await create_invoice(client, auth_headers)
        await client.put(f"{URL}/{paid['id']}/status", json={"status": "paid"}, headers=auth_headers)

        resp = await client.get(f"{URL}/stats/summary", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["total_invoices"] == 2
        assert data["total_revenue"] == "1180.00"

        by_status = {row["status"]: row for row in data["by_status"]}
        assert by_status["paid"]["count"] == 1
        assert by_status["sent"]["count"] == 1
        assert Decimal(by_status["sent"]["total_amount"]) == Decimal("1180.00")

    async def test_empty_summary(self, client, auth_headers):
        resp = await client.get(f"{URL}/stats/summary", headers=auth_headers)
        assert resp.json() == {"by_status": [], "total_invoices": 0, "total_revenue": "0.00"}
