"""Inventory items, menu usage links and estimated consumption."""

from datetime import date, datetime

import pytest

from restaurant_crm.core.exceptions import NotFoundError, ValidationError
from restaurant_crm.schemas import InventoryItemCreate, InventoryItemUpdate, UsageLink
from restaurant_crm.services import reports
from restaurant_crm.services.inventory_service import InventoryService
from tests.factories import make_menu_item, make_order


async def test_low_stock_listing(db):
    await InventoryService.create_item(db, InventoryItemCreate(name="Flour", quantity=50, unit="kg"))
    await InventoryService.create_item(
        db, InventoryItemCreate(name="Basil", quantity=2, unit="bunch", low_stock_threshold=3)
    )

    low = await InventoryService.low_stock(db)

    assert [item.name for item in low] == ["Basil"]
    assert low[0].is_low_stock


async def test_update_quantity_changes_low_stock_flag(db):
    flour = await InventoryService.create_item(db, InventoryItemCreate(name="Flour", quantity=50, unit="kg"))

    updated = await InventoryService.update_item(db, flour.id, InventoryItemUpdate(quantity=4))

    assert updated.quantity == 4
    assert updated.is_low_stock


async def test_links_are_replaced_as_a_set(db):
    burger = await make_menu_item(db, name="Burger")
    fries = await make_menu_item(db, name="Fries", price=4.0)
    potatoes = await InventoryService.create_item(db, InventoryItemCreate(name="Potatoes", quantity=20, unit="kg"))

    await InventoryService.set_links(
        db,
        potatoes.id,
        [UsageLink(menu_item_id=fries.id, quantity_per_serving=0.25), UsageLink(menu_item_id=burger.id, quantity_per_serving=0.1)],
    )
    relinked = await InventoryService.set_links(
        db, potatoes.id, [UsageLink(menu_item_id=fries.id, quantity_per_serving=0.3)]
    )

    assert [(link.menu_item_id, link.quantity_per_serving) for link in relinked.usage_links] == [
        (fries.id, 0.3)
    ]


async def test_duplicate_or_unknown_links_are_rejected(db):
    fries = await make_menu_item(db, name="Fries", price=4.0)
    potatoes = await InventoryService.create_item(db, InventoryItemCreate(name="Potatoes", quantity=20))

    with pytest.raises(ValidationError):
        await InventoryService.set_links(
            db,
            potatoes.id,
            [UsageLink(menu_item_id=fries.id, quantity_per_serving=0.2)] * 2,
        )
    with pytest.raises(NotFoundError):
        await InventoryService.set_links(
            db, potatoes.id, [UsageLink(menu_item_id=777, quantity_per_serving=0.2)]
        )


async def test_usage_report_estimates_consumption(db):
    fries = await make_menu_item(db, name="Fries", price=4.0)
    potatoes = await InventoryService.create_item(db, InventoryItemCreate(name="Potatoes", quantity=10, unit="kg"))
    await InventoryService.create_item(db, InventoryItemCreate(name="Salt", quantity=1, unit="kg"))
    await InventoryService.set_links(
        db, potatoes.id, [UsageLink(menu_item_id=fries.id, quantity_per_serving=0.5)]
    )
    await make_order(db, datetime(2024, 1, 5, 12), lines=[(fries, 4)])

    usage = await reports.inventory_usage_report(db, date(2024, 1, 1), date(2024, 1, 10))

    assert usage["days"] == 10
    rows = {row["name"]: row for row in usage["items"]}
    assert rows["Potatoes"]["estimated_usage"] == 2.0
    assert rows["Potatoes"]["daily_usage"] == 0.2
    assert rows["Potatoes"]["days_remaining"] == 50.0
    assert rows["Salt"]["estimated_usage"] == 0
    assert rows["Salt"]["days_remaining"] is None
    assert rows["Salt"]["is_low_stock"] is True


async def test_inventory_api(client, as_user):
    forbidden = await client.post("/api/inventory", json={"name": "Flour"}, headers=as_user("staff"))
    created = await client.post("/api/inventory", json={"name": "Flour", "quantity": 3, "unit": "kg"})
    item_id = created.json()["item"]["id"]
    menu_item_id = (
        await client.post("/api/menu", json={"name": "Pancakes", "category": "desserts", "price": 7.0})
    ).json()["menu_item"]["id"]

    linked = await client.put(
        f"/api/inventory/{item_id}/links",
        json={"links": [{"menu_item_id": menu_item_id, "quantity_per_serving": 0.15}]},
    )
    low = await client.get("/api/inventory/low-stock", headers=as_user("staff"))
    usage = await client.get("/api/inventory/usage", params={"date_from": "2024-01-01", "date_to": "2024-01-07"})
    deleted = await client.delete(f"/api/inventory/{item_id}")
    listing = await client.get("/api/inventory")

    assert forbidden.status_code == 403
    assert created.status_code == 201
    assert created.json()["item"]["created_by_id"] is not None
    assert linked.json()["item"]["usage_links"] == [
        {"menu_item_id": menu_item_id, "quantity_per_serving": 0.15}
    ]
    assert [i["name"] for i in low.json()["items"]] == ["Flour"]
    assert usage.json()["usage"]["days"] == 7
    assert deleted.json() == {"message": "Inventory item deleted successfully"}
    assert listing.json()["items"] == []


async def test_inventory_update_rejects_null_quantity(client):
    created = await client.post("/api/inventory", json={"name": "Flour", "quantity": 3, "unit": "kg"})
    item_id = created.json()["item"]["id"]

    response = await client.put(f"/api/inventory/{item_id}", json={"quantity": None})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "quantity"
