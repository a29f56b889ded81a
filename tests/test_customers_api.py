"""Customer endpoints: CRUD, duplicates, search and feedback."""

CUSTOMER = {"name": "John Doe", "email": "John@Example.com", "phone": "555-123-4567"}


async def test_create_and_fetch_customer(client):
    created = await client.post("/api/customers", json=CUSTOMER)

    assert created.status_code == 201
    customer = created.json()["customer"]
    assert customer["email"] == "john@example.com"
    assert customer["loyalty_points"] == 0
    assert customer["visits"] == 0
    assert customer["tier"] == "Bronze"
    assert customer["status"] == "active"

    fetched = await client.get(f"/api/customers/{customer['id']}")
    assert fetched.json()["customer"]["name"] == "John Doe"


async def test_duplicate_email_or_phone_is_rejected(client):
    await client.post("/api/customers", json=CUSTOMER)

    same_email = await client.post(
        "/api/customers", json={**CUSTOMER, "phone": "555-000-1111"}
    )
    same_phone = await client.post(
        "/api/customers", json={**CUSTOMER, "email": "other@example.com"}
    )

    assert same_email.status_code == 400
    assert same_email.json()["message"] == "Customer already exists with this email or phone number"
    assert same_phone.status_code == 400


async def test_short_phone_fails_validation(client):
    response = await client.post("/api/customers", json={**CUSTOMER, "phone": "555-12"})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "phone"


async def test_search_and_pagination(client):
    await client.post("/api/customers", json=CUSTOMER)
    await client.post(
        "/api/customers",
        json={"name": "Alice Smith", "email": "alice@example.com", "phone": "555-222-3333"},
    )

    found = await client.get("/api/customers", params={"search": "alice"})
    everyone = await client.get("/api/customers", params={"sort_by": "name", "sort_order": "asc"})

    assert [c["name"] for c in found.json()["customers"]] == ["Alice Smith"]
    assert [c["name"] for c in everyone.json()["customers"]] == ["Alice Smith", "John Doe"]
    assert everyone.json()["pagination"]["total"] == 2


async def test_update_keeps_unique_contact_details(client):
    first = (await client.post("/api/customers", json=CUSTOMER)).json()["customer"]
    second = (
        await client.post(
            "/api/customers",
            json={"name": "Alice Smith", "email": "alice@example.com", "phone": "555-222-3333"},
        )
    ).json()["customer"]

    clash = await client.put(f"/api/customers/{second['id']}", json={"email": "john@example.com"})
    renamed = await client.put(f"/api/customers/{first['id']}", json={"name": "Johnny Doe", "tags": ["regular"]})

    assert clash.status_code == 400
    assert renamed.status_code == 200
    assert renamed.json()["customer"]["name"] == "Johnny Doe"
    assert renamed.json()["customer"]["tags"] == ["regular"]
    assert renamed.json()["customer"]["email"] == "john@example.com"


async def test_feedback_is_appended(client):
    customer_id = (await client.post("/api/customers", json=CUSTOMER)).json()["customer"]["id"]

    response = await client.post(
        f"/api/customers/{customer_id}/feedback", json={"rating": 5, "comment": "Lovely evening"}
    )

    assert response.status_code == 200
    feedback = response.json()["customer"]["feedback"]
    assert len(feedback) == 1
    assert feedback[0]["rating"] == 5


async def test_delete_requires_manager(client, as_user):
    customer_id = (await client.post("/api/customers", json=CUSTOMER)).json()["customer"]["id"]

    forbidden = await client.delete(f"/api/customers/{customer_id}", headers=as_user("staff"))
    deleted = await client.delete(f"/api/customers/{customer_id}", headers=as_user("manager"))
    missing = await client.get(f"/api/customers/{customer_id}")

    assert forbidden.status_code == 403
    assert deleted.json() == {"message": "Customer deleted successfully"}
    assert missing.status_code == 404


async def test_stats_overview_counts_tiers(client):
    await client.post("/api/customers", json=CUSTOMER)

    stats = (await client.get("/api/customers/stats/overview")).json()["stats"]

    assert stats["total_customers"] == 1
    assert stats["active_customers"] == 1
    assert stats["tiers"]["Bronze"] == 1


async def test_update_rejects_null_for_required_fields(client):
    customer_id = (await client.post("/api/customers", json=CUSTOMER)).json()["customer"]["id"]

    response = await client.put(f"/api/customers/{customer_id}", json={"name": None})
    cleared_notes = await client.put(f"/api/customers/{customer_id}", json={"notes": None})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "name"
    assert cleared_notes.status_code == 200
    assert cleared_notes.json()["customer"]["name"] == "John Doe"
