"""
Tests for the reporting engine

Figures only count completed transactions, windows are local calendar days
and period-over-period changes are null when there is nothing to compare.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

from bakerypos.conftest import utc
from bakerypos.core.exceptions import ValidationError
from bakerypos.modules.categories.models import Category
from bakerypos.modules.dashboard.service import ReportingService, resolve_report_window
from bakerypos.modules.stores.models import Store
from bakerypos.modules.transactions.models import TransactionStatus


UTC = ZoneInfo("UTC")
NOW = utc(2024, 5, 10, 15)


# ===== FIXTURES =====

@pytest.fixture
async def bakery_goods(make_product):
    """Two products whose May sales total 100.00 revenue at 60.00 cost"""
    tart = await make_product(name="Fruit Tart", price="30.00", cost_price="18.00", stock=100)
    cake = await make_product(name="Chocolate Cake", price="40.00", cost_price="24.00", stock=100)
    return tart, cake


@pytest.fixture
async def may_sales(record_sale, bakery_goods):
    tart, cake = bakery_goods
    await record_sale([(tart, 2)], utc(2024, 5, 2))
    await record_sale([(cake, 1)], utc(2024, 5, 6))
    # ignored: not completed, or outside the window
    await record_sale([(cake, 5)], utc(2024, 5, 3), status=TransactionStatus.CANCELLED)
    await record_sale([(tart, 9)], utc(2024, 5, 8, 0, 0))
    return tart, cake


# ===== WINDOWS =====

class TestReportWindow:

    def test_defaults_to_trailing_days(self):
        window = resolve_report_window(None, None, UTC, NOW)
        assert window.end_date == date(2024, 5, 10)
        assert window.days == 30

    def test_lone_start_runs_through_today(self):
        window = resolve_report_window(date(2024, 5, 1), None, UTC, NOW)
        assert (window.start_date, window.end_date) == (date(2024, 5, 1), date(2024, 5, 10))

    def test_lone_end_looks_back(self):
        window = resolve_report_window(None, date(2024, 4, 30), UTC, NOW)
        assert window.start_date == date(2024, 4, 1)

    def test_end_before_start_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_report_window(date(2024, 5, 2), date(2024, 5, 1), UTC, NOW)


# ===== REPORTS =====

class TestReportsStats:

    async def test_profit_scenario(self, db_session, sample_store, may_sales):
        report = await ReportingService(db_session, sample_store.id).get_reports_stats(date(2024, 5, 1), date(2024, 5, 7))
        assert report["total_revenue"] == Decimal("100.00")
        assert report["transaction_count"] == 2
        assert report["avg_order_value"] == Decimal("50.00")
        assert report["net_profit"] == Decimal("40.00")
        assert report["profit_margin"] == "40.0"

    async def test_empty_previous_period_gives_null_changes(self, db_session, sample_store, may_sales):
        report = await ReportingService(db_session, sample_store.id).get_reports_stats(date(2024, 5, 1), date(2024, 5, 7))
        assert report["revenue_change"] is None
        assert report["transaction_change"] is None
        assert report["profit_change"] is None
        assert report["has_previous_period_data"] is False

    async def test_changes_against_previous_period(self, db_session, sample_store, may_sales, record_sale):
        tart, _ = may_sales
        await record_sale([(tart, 1)], utc(2024, 4, 28))

        report = await ReportingService(db_session, sample_store.id).get_reports_stats(date(2024, 5, 1), date(2024, 5, 7))
        assert report["revenue_change"] == "233.3"
        assert report["transaction_change"] == "100.0"
        assert report["profit_change"] == "233.3"
        assert report["has_previous_period_data"] is True

    async def test_empty_period(self, db_session, sample_store):
        report = await ReportingService(db_session, sample_store.id).get_reports_stats(date(2024, 1, 1), date(2024, 1, 31))
        assert report["total_revenue"] == Decimal("0.00")
        assert report["avg_order_value"] == Decimal("0.00")
        assert report["net_profit"] == Decimal("0.00")
        assert report["profit_margin"] == "0.0"
        assert report["revenue_change"] is None

    async def test_missing_cost_counts_as_zero(self, db_session, sample_store, make_product, record_sale):
        loaf = await make_product(name="House Loaf", price="20.00", cost_price=None)
        await record_sale([(loaf, 2)], utc(2024, 5, 2))
        report = await ReportingService(db_session, sample_store.id).get_reports_stats(date(2024, 5, 1), date(2024, 5, 7))
        assert report["net_profit"] == Decimal("40.00")
        assert report["profit_margin"] == "100.0"

    async def test_other_stores_are_invisible(self, db_session, sample_store, other_store, make_product, record_sale):
        foreign = await make_product(store=other_store, price="99.00")
        await record_sale([(foreign, 1)], utc(2024, 5, 2), store=other_store)
        report = await ReportingService(db_session, sample_store.id).get_reports_stats(date(2024, 5, 1), date(2024, 5, 7))
        assert report["transaction_count"] == 0


class TestBestSellers:

    async def test_ordered_by_quantity_not_revenue(self, db_session, sample_store, make_product, record_sale, sample_category):
        bun = await make_product(name="Milk Bun", price="10.00", cost_price="6.00", category=sample_category)
        cake = await make_product(name="Layer Cake", price="30.00")
        await record_sale([(bun, 3), (cake, 1)], utc(2024, 5, 2))
        await record_sale([(bun, 2), (cake, 2)], utc(2024, 5, 3))

        rows = await ReportingService(db_session, sample_store.id).get_best_selling_products(date(2024, 5, 1), date(2024, 5, 7))
        assert [row["product_name"] for row in rows] == ["Milk Bun", "Layer Cake"]
        assert rows[0]["quantity_sold"] == 5
        assert rows[0]["revenue"] == Decimal("50.00")
        assert rows[0]["profit_margin"] == "40.0"
        assert rows[0]["category_name"] == "Bread"
        assert rows[1]["quantity_sold"] == 3
        assert rows[1]["revenue"] == Decimal("90.00")
        assert rows[1]["category_id"] is None

    async def test_ties_break_by_name_and_limit_applies(self, db_session, sample_store, make_product, record_sale):
        names = ["Eclair", "Brioche", "Danish"]
        products = [await make_product(name=name) for name in names]
        await record_sale([(product, 2) for product in products], utc(2024, 5, 2))

        rows = await ReportingService(db_session, sample_store.id).get_best_selling_products(
            date(2024, 5, 1), date(2024, 5, 7), limit=2
        )
        assert [row["product_name"] for row in rows] == ["Brioche", "Danish"]

    async def test_rows_keep_the_name_sold_under(self, db_session, sample_store, make_product, record_sale):
        croissant = await make_product(name="Croissant")
        await record_sale([(croissant, 4)], utc(2024, 5, 2))
        croissant.name = "Butter Croissant XL"
        await db_session.commit()

        rows = await ReportingService(db_session, sample_store.id).get_best_selling_products(date(2024, 5, 1), date(2024, 5, 7))
        assert [(row["product_name"], row["quantity_sold"]) for row in rows] == [("Croissant", 4)]


# ===== DASHBOARD =====

class TestDashboardStats:

    async def test_today_against_yesterday(self, db_session, sample_store, make_product, record_sale, sample_category):
        bread = await make_product(name="Sandwich Bread", price="60.00", category=sample_category, stock=40)
        await make_product(name="Pastry Box", price="50.00", stock=1, min_stock_alert=3)
        other_category = Category(store_id=sample_store.id, name="Cakes")
        db_session.add(other_category)
        await db_session.commit()
        await make_product(name="Retired Cake", category=other_category, is_active=False)

        await record_sale([(bread, 2)], NOW - timedelta(hours=2))
        await record_sale([(bread, 1)], NOW - timedelta(days=1))
        await record_sale([(bread, 1)], NOW - timedelta(days=1))
        await record_sale([(bread, 5)], NOW - timedelta(days=2))

        stats = await ReportingService(db_session, sample_store.id).get_stats(now=NOW)
        assert stats["today_revenue"] == Decimal("120.00")
        assert stats["revenue_change"] == "+0.0%"
        assert stats["total_products"] == 2
        assert stats["low_stock_items"] == 1
        assert stats["categories_count"] == 1

    async def test_growth_and_decline_are_signed(self, db_session, sample_store, make_product, record_sale):
        loaf = await make_product(price="10.00", stock=100)
        await record_sale([(loaf, 9)], NOW - timedelta(days=1))
        await record_sale([(loaf, 6)], NOW)
        stats = await ReportingService(db_session, sample_store.id).get_stats(now=NOW)
        assert stats["revenue_change"] == "-33.3%"

    async def test_no_sales_yesterday_reads_zero_percent(self, db_session, sample_store, make_product, record_sale):
        loaf = await make_product(price="10.00")
        await record_sale([(loaf, 1)], NOW)
        stats = await ReportingService(db_session, sample_store.id).get_stats(now=NOW)
        assert stats["revenue_change"] == "0%"


class TestSalesChart:

    async def test_zero_filled_ascending(self, db_session, sample_store, make_product, record_sale):
        loaf = await make_product(price="10.00", stock=100)
        await record_sale([(loaf, 1)], utc(2024, 5, 8, 9))
        await record_sale([(loaf, 2)], utc(2024, 5, 10, 9))
        await record_sale([(loaf, 3)], utc(2024, 5, 10, 11))
        await record_sale([(loaf, 4)], utc(2024, 5, 10, 12), status=TransactionStatus.PENDING)

        chart = await ReportingService(db_session, sample_store.id).get_sales_chart(days=3, now=NOW)
        assert [point["date"] for point in chart] == [date(2024, 5, 8), date(2024, 5, 9), date(2024, 5, 10)]
        assert [point["revenue"] for point in chart] == [Decimal("10.00"), Decimal("0.00"), Decimal("50.00")]
        assert [point["transactions"] for point in chart] == [1, 0, 2]

    async def test_days_follow_store_timezone(self, db_session, record_sale, make_product):
        store = Store(name="Jakarta Branch", timezone="Asia/Jakarta", invite_code="JKT00001")
        db_session.add(store)
        await db_session.commit()
        loaf = await make_product(price="10.00", store=store)
        # 20:00 UTC on May 9 is already May 10 in Jakarta
        await record_sale([(loaf, 1)], utc(2024, 5, 9, 20), store=store)

        chart = await ReportingService(db_session, store.id).get_sales_chart(days=2, now=NOW)
        assert [(point["date"], point["transactions"]) for point in chart] == [
            (date(2024, 5, 9), 0),
            (date(2024, 5, 10), 1),
        ]


# ===== API =====

class TestDashboardEndpoints:

    async def test_reports_stats_endpoint(self, client, admin_headers, may_sales):
        response = await client.get(
            "/dashboard/reports-stats", headers=admin_headers, params={"startDate": "2024-05-01", "endDate": "2024-05-07"}
        )
        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["netProfit"]) == Decimal("40.00")
        assert body["profitMargin"] == "40.0"
        assert body["revenueChange"] is None
        assert body["hasPreviousPeriodData"] is False
        assert body["periodStart"] == "2024-05-01"

    async def test_reports_stats_rejects_inverted_range(self, client, admin_headers):
        response = await client.get(
            "/dashboard/reports-stats", headers=admin_headers, params={"startDate": "2024-05-07", "endDate": "2024-05-01"}
        )
        assert response.status_code == 400

    async def test_best_selling_endpoint_and_csv(self, client, cashier_headers, may_sales):
        params = {"startDate": "2024-05-01", "endDate": "2024-05-07"}
        response = await client.get("/dashboard/best-selling", headers=cashier_headers, params=params)
        assert [row["productName"] for row in response.json()] == ["Fruit Tart", "Chocolate Cake"]
        assert response.json()[0]["quantitySold"] == 2

        response = await client.get("/dashboard/best-selling", headers=cashier_headers, params={**params, "export": "csv"})
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().splitlines()
        assert lines[0] == "Product,Category,Quantity Sold,Revenue,Profit Margin (%)"
        assert lines[1] == "Fruit Tart,,2,60.00,40.0"

    async def test_stats_and_chart_shapes(self, client, admin_headers):
        response = await client.get("/dashboard/stats", headers=admin_headers)
        assert response.status_code == 200
        assert set(response.json()) == {"todayRevenue", "revenueChange", "totalProducts", "lowStockItems", "categoriesCount"}
        assert response.json()["revenueChange"] == "0%"

        response = await client.get("/dashboard/sales-chart", headers=admin_headers, params={"days": 7})
        assert len(response.json()) == 7
        assert all(point["transactions"] == 0 for point in response.json())
