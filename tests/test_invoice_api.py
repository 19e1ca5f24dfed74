"""Billing API tests: document creation, status workflow, conversion and stats."""

from __future__ import annotations


def _body(doc_type: str = "invoice", **extra) -> dict:
    return {
        "type": doc_type,
        "title": "Honorarios advocaticios",
        "receiver_name": "Maria Souza",
        "items": [
            {"description": "Consulta", "quantity": 2, "rate": "150.00"},
            {"description": "Peticao inicial", "rate": "99.90"},
        ],
        **extra,
    }


async def _create(client, headers, doc_type: str = "invoice", **extra) -> dict:
    response = await client.post("/api/invoices", json=_body(doc_type, **extra), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_computes_number_and_totals(client, alpha_headers):
    invoice = await _create(client, alpha_headers, discount=10, discount_type="percentage", fee=10)
    assert invoice["number"] == "INV-001"
    assert invoice["status"] == "DRAFT"
    assert invoice["created_by"] == "Ana Silva"
    assert invoice["subtotal"] == 399.9
    assert invoice["total"] == 369.91
    assert [item["amount"] for item in invoice["items"]] == [300.0, 99.9]

    estimate = await _create(client, alpha_headers, "estimate")
    assert estimate["number"] == "EST-001"


async def test_create_requires_items(client, alpha_headers):
    response = await client.post("/api/invoices", json=_body(items=[]), headers=alpha_headers)
    assert response.status_code == 422


async def test_numbering_is_per_tenant(client, alpha_headers, beta_headers):
    await _create(client, alpha_headers)
    await _create(client, alpha_headers)
    beta = await _create(client, beta_headers)
    assert beta["number"] == "INV-001"


async def test_patch_recomputes_totals(client, alpha_headers):
    invoice = await _create(client, alpha_headers)
    response = await client.patch(
        f"/api/invoices/{invoice['id']}",
        json={"items": [{"description": "Parecer", "rate": "500"}], "discount": 50},
        headers=alpha_headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["total"] == 450.0
    assert response.json()["last_modified_by"] == "Ana Silva"


async def test_invoice_workflow(client, alpha_headers):
    invoice = await _create(client, alpha_headers)

    response = await client.post(f"/api/invoices/{invoice['id']}/send", headers=alpha_headers)
    assert response.json()["status"] == "SENT"
    assert response.json()["email_sent"] is True

    response = await client.post(f"/api/invoices/{invoice['id']}/remind", headers=alpha_headers)
    assert response.json()["reminders_sent"] == 1

    response = await client.post(
        f"/api/invoices/{invoice['id']}/pay",
        json={"payment_method": "BOLETO"},
        headers=alpha_headers,
    )
    assert response.status_code == 200
    paid = response.json()
    assert paid["status"] == "PAID"
    assert paid["payment_method"] == "BOLETO"
    assert paid["payment_date"] is not None

    # Paid documents cannot go back to draft
    response = await client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "DRAFT"}, headers=alpha_headers)
    assert response.status_code == 409

    response = await client.post(f"/api/invoices/{invoice['id']}/cancel", headers=alpha_headers)
    assert response.json()["status"] == "CANCELLED"
    response = await client.post(f"/api/invoices/{invoice['id']}/send", headers=alpha_headers)
    assert response.status_code == 409
    assert "terminal" in response.json()["detail"]


async def test_unknown_status_value(client, alpha_headers):
    invoice = await _create(client, alpha_headers)
    response = await client.post(f"/api/invoices/{invoice['id']}/status", json={"status": "ARCHIVED"}, headers=alpha_headers)
    assert response.status_code == 422


async def test_estimates_cannot_be_paid(client, alpha_headers):
    estimate = await _create(client, alpha_headers, "estimate")
    response = await client.post(f"/api/invoices/{estimate['id']}/pay", json={}, headers=alpha_headers)
    assert response.status_code == 409
    assert response.json()["detail"].startswith("Only invoices can be paid")


async def test_convert_estimate(client, alpha_headers):
    estimate = await _create(client, alpha_headers, "estimate")
    await client.post(f"/api/invoices/{estimate['id']}/status", json={"status": "APPROVED"}, headers=alpha_headers)

    response = await client.post(f"/api/invoices/{estimate['id']}/convert", headers=alpha_headers)
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["invoice"]["number"] == "INV-001"
    assert data["invoice"]["estimate_id"] == estimate["id"]
    assert data["invoice"]["total"] == estimate["total"]
    assert data["estimate"]["converted_to_invoice"] is True
    assert data["estimate"]["invoice_id"] == data["invoice"]["id"]

    response = await client.post(f"/api/invoices/{estimate['id']}/convert", headers=alpha_headers)
    assert response.status_code == 409


async def test_list_filters(client, alpha_headers):
    await _create(client, alpha_headers, "estimate")
    invoice = await _create(client, alpha_headers)
    await client.post(f"/api/invoices/{invoice['id']}/send", headers=alpha_headers)

    response = await client.get("/api/invoices", params={"type": "invoice"}, headers=alpha_headers)
    assert [d["number"] for d in response.json()] == ["INV-001"]
    response = await client.get("/api/invoices", params={"status": "SENT"}, headers=alpha_headers)
    assert [d["number"] for d in response.json()] == ["INV-001"]
    response = await client.get("/api/invoices", params={"search": "est-"}, headers=alpha_headers)
    assert [d["number"] for d in response.json()] == ["EST-001"]


async def test_board(client, alpha_headers):
    invoice = await _create(client, alpha_headers)
    await _create(client, alpha_headers, "estimate")
    await client.post(f"/api/invoices/{invoice['id']}/send", headers=alpha_headers)

    board = (await client.get("/api/invoices/board", headers=alpha_headers)).json()
    assert len(board) == 9
    assert [column["id"] for column in board][:3] == ["DRAFT", "SENT", "VIEWED"]
    counts = {column["id"]: column["count"] for column in board}
    assert counts["DRAFT"] == 1
    assert counts["SENT"] == 1

    board = (await client.get("/api/invoices/board", params={"type": "estimate"}, headers=alpha_headers)).json()
    assert sum(column["count"] for column in board) == 1


async def test_stats(client, alpha_headers):
    paid = await _create(client, alpha_headers)
    sent = await _create(client, alpha_headers)
    await _create(client, alpha_headers, "estimate")
    await client.post(f"/api/invoices/{paid['id']}/pay", json={}, headers=alpha_headers)
    await client.post(f"/api/invoices/{sent['id']}/send", headers=alpha_headers)

    stats = (await client.get("/api/invoices/stats", headers=alpha_headers)).json()
    assert stats["total_invoices"] == 2
    assert stats["total_estimates"] == 1
    assert stats["paid_amount"] == 399.9
    assert stats["pending_amount"] == 399.9
    assert stats["this_month_revenue"] == 399.9
    assert stats["overdue_amount"] == 0.0
