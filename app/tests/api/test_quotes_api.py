def create_case(client, headers):
    r = client.post("/api/v1/cases", json={"title": "Divorce filing", "category": "family"}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["id"]


def test_lawyer_submits_and_updates_quote(client, client_headers, lawyer_a_headers):
    case_id = create_case(client, client_headers)

    r1 = client.post(
        "/api/v1/quotes",
        json={"case_id": case_id, "amount_cents": 80_000, "days": 30, "note": "includes filing"},
        headers=lawyer_a_headers,
    )
    assert r1.status_code == 201, r1.text
    assert r1.json()["status"] == "proposed"

    r2 = client.post(
        "/api/v1/quotes",
        json={"case_id": case_id, "amount_cents": 75_000, "days": 28},
        headers=lawyer_a_headers,
    )
    assert r2.status_code == 201
    assert r2.json()["id"] == r1.json()["id"]
    assert r2.json()["amount_cents"] == 75_000
    assert r2.json()["note"] == ""


def test_client_cannot_quote(client, client_headers):
    case_id = create_case(client, client_headers)
    r = client.post(
        "/api/v1/quotes",
        json={"case_id": case_id, "amount_cents": 100, "days": 1},
        headers=client_headers,
    )
    assert r.status_code == 403


def test_quote_bounds(client, client_headers, lawyer_a_headers):
    case_id = create_case(client, client_headers)

    for bad in (
        {"amount_cents": 0, "days": 10},
        {"amount_cents": 100_000_001, "days": 10},
        {"amount_cents": 100, "days": 0},
        {"amount_cents": 100, "days": 366},
        {"amount_cents": 100, "days": 10, "note": "x" * 501},
    ):
        r = client.post("/api/v1/quotes", json={"case_id": case_id, **bad}, headers=lawyer_a_headers)
        assert r.status_code == 422, bad


def test_quote_on_cancelled_case_conflicts(client, client_headers, lawyer_a_headers):
    case_id = create_case(client, client_headers)
    client.post(f"/api/v1/cases/{case_id}/cancel", headers=client_headers)

    r = client.post(
        "/api/v1/quotes",
        json={"case_id": case_id, "amount_cents": 100, "days": 1},
        headers=lawyer_a_headers,
    )
    assert r.status_code == 409
