"""Analytics aggregations: sales buckets, customer segments, menu, reservations."""

from datetime import date, datetime, timedelta

import pytest

from restaurant_crm.core.exceptions import ValidationError
from restaurant_crm.models import MenuCategory, OrderStatus, OrderType, ReservationStatus
from restaurant_crm.services import reports
from tests.factories import make_customer, make_menu_item, make_order, make_reservation

JANUARY = (date(2024, 1, 1), date(2024, 1, 31))


@pytest.fixture
async def january_orders(db):
    await make_order(db, datetime(2024, 1, 15, 10), total=21.6)
    await make_order(db, datetime(2024, 1, 15, 18), total=10.8, order_type=OrderType.TAKEOUT, tip=2.0)
    await make_order(db, datetime(2024, 1, 16, 12), total=32.4)
    await make_order(db, datetime(2024, 1, 16, 13), total=100.0, status=OrderStatus.CANCELLED)
    await make_order(db, datetime(2024, 2, 1, 12), total=50.0)


async def test_sales_summary_covers_completed_orders_in_range(db, january_orders):
    report = await reports.sales_report(db, *JANUARY)

    summary = report["summary"]
    assert report["period"] == {"start": "2024-01-01", "end": "2024-01-31"}
    assert summary["total_orders"] == 3
    assert summary["total_revenue"] == pytest.approx(64.8)
    assert summary["average_order_value"] == summary["total_revenue"] / 3
    assert summary["max_order_value"] == 32.4
    assert summary["min_order_value"] == 10.8
    assert summary["total_tips"] == 2.0


async def test_average_order_value_is_not_rounded(db):
    for total in (10.0, 10.0, 10.01):
        await make_order(db, datetime(2024, 1, 10, 12), total=total)

    report = await reports.sales_report(db, *JANUARY)

    summary = report["summary"]
    assert summary["total_revenue"] == 30.01
    assert summary["average_order_value"] == 30.01 / 3
    assert report["sales_data"][0]["average_order_value"] == 30.01 / 3


async def test_sales_buckets_by_day(db, january_orders):
    report = await reports.sales_report(db, *JANUARY, group_by="day")

    buckets = report["sales_data"]
    assert [b["period"] for b in buckets] == ["2024-01-15", "2024-01-16"]
    assert buckets[0]["total_orders"] == 2
    assert buckets[0]["revenue_by_type"] == {"dine-in": 21.6, "takeout": 10.8}
    assert buckets[1]["revenue_by_type"] == {"dine-in": 32.4, "takeout": 0.0}
    assert sum(b["total_revenue"] for b in buckets) == pytest.approx(report["summary"]["total_revenue"])


async def test_sales_buckets_by_week_and_month(db, january_orders):
    weekly = await reports.sales_report(db, *JANUARY, group_by="week")
    monthly = await reports.sales_report(db, date(2024, 1, 1), date(2024, 2, 29), group_by="month")

    assert [b["period"] for b in weekly["sales_data"]] == ["2024-W02"]
    assert [(b["period"], b["total_orders"]) for b in monthly["sales_data"]] == [
        ("2024-01", 3),
        ("2024-02", 1),
    ]


async def test_sales_order_type_filter(db, january_orders):
    report = await reports.sales_report(db, *JANUARY, order_type=OrderType.TAKEOUT)

    assert report["summary"]["total_orders"] == 1
    assert report["summary"]["total_revenue"] == 10.8


async def test_sales_report_without_orders(db):
    report = await reports.sales_report(db, *JANUARY)

    assert report["summary"]["total_orders"] == 0
    assert report["summary"]["average_order_value"] == 0.0
    assert report["sales_data"] == []


async def test_unknown_group_by_is_rejected(db):
    with pytest.raises(ValidationError):
        await reports.sales_report(db, *JANUARY, group_by="year")


def test_spend_segments():
    segments = reports.spend_segments([50.0, 150.0, 750.0, 999.99, 6000.0])

    assert [(s["segment"], s["count"]) for s in segments] == [
        ("0-99", 1),
        ("100-499", 1),
        ("500-999", 2),
        ("5000+", 1),
    ]
    assert segments[2]["total_spent"] == pytest.approx(1749.99)


async def test_customer_report(db):
    await make_customer(db, email="a@example.com", phone="555-000-0001", total_spent=50.0, visits=1)
    await make_customer(db, email="b@example.com", phone="555-000-0002", total_spent=150.0, visits=2)
    await make_customer(db, email="c@example.com", phone="555-000-0003", total_spent=750.0, visits=3)
    await make_customer(db, email="d@example.com", phone="555-000-0004", total_spent=6000.0, visits=0)

    report = await reports.customer_report(db)

    assert sum(day["new_customers"] for day in report["acquisition"]) == 4
    assert [s["segment"] for s in report["segments"]] == ["0-99", "100-499", "500-999", "5000+"]
    assert report["top_customers"][0]["email"] == "d@example.com"
    assert report["top_customers"][0]["tier"] == "VIP"
    retention = report["retention"]
    assert retention["total_customers"] == 4
    assert retention["returning_customers"] == 2
    assert retention["one_time_customers"] == 1
    assert retention["retention_rate"] == 50.0


async def test_menu_report(db):
    burger = await make_menu_item(db, name="Burger", price=10.0, cost=4.0, times_ordered=3)
    salad = await make_menu_item(
        db, name="Salad", category=MenuCategory.SALADS, price=8.0, cost=2.0, times_ordered=1
    )
    await make_order(db, datetime(2024, 1, 15, 12), lines=[(burger, 3), (salad, 1)])

    report = await reports.menu_report(db, *JANUARY, now=datetime.now() + timedelta(days=8))

    assert [(r["name"], r["total_quantity"], r["total_revenue"]) for r in report["top_selling"]] == [
        ("Burger", 3, 30.0),
        ("Salad", 1, 8.0),
    ]
    mains = report["category_performance"][0]
    assert mains["category"] == "mains"
    assert mains["profit_margin"] == 60.0
    assert report["profitability"][0]["name"] == "Burger"
    assert report["profitability"][0]["total_profit"] == 18.0
    assert [r["name"] for r in report["low_performers"]] == ["Salad", "Burger"]


async def test_menu_report_category_filter(db):
    burger = await make_menu_item(db, name="Burger", price=10.0)
    salad = await make_menu_item(db, name="Salad", category=MenuCategory.SALADS, price=8.0)
    await make_order(db, datetime(2024, 1, 15, 12), lines=[(burger, 1), (salad, 2)])

    report = await reports.menu_report(db, *JANUARY, category=MenuCategory.SALADS)

    assert [r["name"] for r in report["top_selling"]] == ["Salad"]


async def test_reservation_report(db):
    customer = await make_customer(db)
    await make_reservation(db, customer, time="19:00", table_number=5, party_size=4, status=ReservationStatus.COMPLETED)
    await make_reservation(db, customer, time="20:00", table_number=5, party_size=2, status=ReservationStatus.NO_SHOW)
    await make_reservation(db, customer, time="19:00", table_number=6, party_size=2, status=ReservationStatus.CONFIRMED)

    report = await reports.reservation_report(db, date(2030, 6, 1), date(2030, 6, 1))

    summary = report["summary"]
    assert summary["total_reservations"] == 3
    assert summary["total_guests"] == 8
    assert summary["completion_rate"] == 33.33
    assert summary["no_show_rate"] == 33.33
    assert report["daily_trends"][0]["date"] == "2030-06-01"
    assert report["peak_hours"][0] == {"time": "19:00", "reservations": 2, "average_party_size": 3.0}
    assert [(t["table_number"], t["reservations"]) for t in report["table_utilization"]] == [(5, 2), (6, 1)]


async def test_dashboard(db):
    now = datetime.now()
    customer = await make_customer(db)
    burger = await make_menu_item(db)
    await make_order(db, now, lines=[(burger, 2)], customer_id=customer.id)
    await make_order(db, now, lines=[(burger, 1)], status=OrderStatus.PREPARING)
    await make_reservation(db, customer, date=now.date() + timedelta(days=1))

    board = await reports.dashboard(db, now=now)

    assert board["today"]["completed_orders"] == 1
    assert board["today"]["revenue"] == 21.6
    assert board["today"]["open_orders"] == 1
    assert board["this_month"]["new_customers"] == 1
    assert board["top_items"] == [{"id": burger.id, "name": "Burger", "quantity": 2, "revenue": 20.0}]
    assert len(board["recent_orders"]) == 2
    assert board["upcoming_reservations"][0]["customer"] == "John Doe"


async def test_report_routes_require_manager(client, as_user):
    forbidden = await client.get("/api/reports/sales", headers=as_user("staff"))
    allowed = await client.get("/api/reports/sales", headers=as_user("manager"), params={"group_by": "week"})
    bad_group = await client.get("/api/reports/sales", params={"group_by": "year"})
    board = await client.get("/api/reports/dashboard", headers=as_user("staff"))

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()["group_by"] == "week"
    assert bad_group.status_code == 400
    assert board.status_code == 200


async def test_customer_menu_and_reservation_routes(client):
    for path in ("/api/reports/customers", "/api/reports/menu", "/api/reports/reservations"):
        response = await client.get(path, params={"date_from": "2024-01-01", "date_to": "2024-01-31"})
        assert response.status_code == 200
        assert response.json()["period"] == {"start": "2024-01-01", "end": "2024-01-31"}
