"""
Reporting engine.

Read-only aggregates over completed transactions for the dashboard and the
management reports. Every figure is scoped to one store, and calendar days
are the store's local days. Amounts are summed by the database and finished
in ``Decimal``; percentages go through ``bakerypos.common.money``.
"""
from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from zoneinfo import ZoneInfo
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bakerypos.common.money import ZERO, format_percent, format_signed_percent, percent, percent_change, to_money
from bakerypos.common.periods import DateRange, local_date_of, local_today, trailing_days
from bakerypos.core.config import settings
from bakerypos.core.exceptions import ValidationError
from bakerypos.modules.categories.models import Category
from bakerypos.modules.products.models import Product, StockStatus
from bakerypos.modules.stores.service import get_store_zone
from bakerypos.modules.transactions.models import Transaction, TransactionItem, TransactionStatus

logger = logging.getLogger(__name__)


def resolve_report_window(
    start_date: Optional[date],
    end_date: Optional[date],
    zone: ZoneInfo,
    now: Optional[datetime] = None
) -> DateRange:
    """
    Fill in missing report dates: no dates means the last
    ``DEFAULT_REPORT_DAYS`` days through today, a lone start date runs
    through today and a lone end date looks back the default length.
    """
    if start_date is None and end_date is None:
        return trailing_days(settings.DEFAULT_REPORT_DAYS, zone, now)
    if end_date is None:
        end_date = local_today(zone, now)
    if start_date is None:
        start_date = end_date - timedelta(days=settings.DEFAULT_REPORT_DAYS - 1)
    if end_date < start_date:
        raise ValidationError("endDate must not be before startDate")
    return DateRange(start_date, end_date)


def _margin(revenue: Decimal, profit: Decimal) -> str:
    # zero revenue reads as a 0.0 margin
    margin = percent(profit, revenue)
    return format_percent(margin if margin is not None else ZERO)


class ReportingService:
    """Dashboard and period reports for one store"""

    def __init__(self, db: AsyncSession, store_id: UUID):
        self.db = db
        self.store_id = store_id

    def _completed(self, window_start: datetime, window_end: datetime) -> List[Any]:
        """Filters for the store's completed transactions in ``[window_start, window_end)``."""
        return [
            Transaction.store_id == self.store_id,
            Transaction.status == TransactionStatus.COMPLETED,
            Transaction.created_at >= window_start,
            Transaction.created_at < window_end,
        ]

    async def _revenue(self, window: Tuple[datetime, datetime]) -> Tuple[Decimal, int]:
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(Transaction.total), 0).label("revenue"),
                func.count(Transaction.id).label("transactions")
            ).where(*self._completed(*window))
        )
        row = result.one()
        return to_money(row.revenue), int(row.transactions or 0)

    async def _item_revenue_and_cost(self, window: Tuple[datetime, datetime]) -> Tuple[Decimal, Decimal]:
        """
        Sold line subtotals and their cost. Cost comes from the product's
        current ``cost_price``; lines whose product has no cost count as free.
        """
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(TransactionItem.subtotal), 0).label("revenue"),
                func.coalesce(func.sum(Product.cost_price * TransactionItem.quantity), 0).label("cost")
            )
            .select_from(TransactionItem)
            .join(Transaction, TransactionItem.transaction_id == Transaction.id)
            .join(Product, TransactionItem.product_id == Product.id)
            .where(*self._completed(*window))
        )
        row = result.one()
        return to_money(row.revenue), to_money(row.cost)

    # ===== DASHBOARD =====

    async def get_stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Today's revenue against yesterday's, plus catalog counters."""
        zone = await get_store_zone(self.db, self.store_id)
        today = local_today(zone, now)
        today_window = DateRange(today, today)

        today_revenue, _ = await self._revenue(today_window.utc_bounds(zone))
        yesterday_revenue, _ = await self._revenue(today_window.previous().utc_bounds(zone))

        product_counts = await self.db.execute(
            select(
                func.count(Product.id).label("total"),
                func.count(func.distinct(Product.category_id)).label("categories")
            ).where(Product.store_id == self.store_id, Product.is_active.is_(True))
        )
        counts = product_counts.one()

        low_stock = await self.db.execute(
            select(func.count(Product.id)).where(
                Product.store_id == self.store_id,
                Product.is_active.is_(True),
                Product.stock_status == StockStatus.LOW_STOCK
            )
        )

        return {
            "today_revenue": today_revenue,
            "revenue_change": format_signed_percent(percent_change(today_revenue, yesterday_revenue)),
            "total_products": int(counts.total or 0),
            "low_stock_items": int(low_stock.scalar_one() or 0),
            "categories_count": int(counts.categories or 0),
        }

    async def get_sales_chart(self, days: int = 7, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        Revenue and transaction count per local day for the trailing ``days``
        days, today included. Days without sales are present with zeros.
        """
        if days < 1:
            raise ValidationError("days must be at least 1")
        zone = await get_store_zone(self.db, self.store_id)
        window = trailing_days(days, zone, now)

        # grouping by local day happens here; SQL DATE() would group by UTC day
        result = await self.db.execute(
            select(Transaction.created_at, Transaction.total).where(*self._completed(*window.utc_bounds(zone)))
        )

        buckets: "OrderedDict[date, Dict[str, Any]]" = OrderedDict()
        for offset in range(window.days):
            day = window.start_date + timedelta(days=offset)
            buckets[day] = {"date": day, "revenue": to_money(ZERO), "transactions": 0}

        for created_at, total in result.all():
            bucket = buckets.get(local_date_of(created_at, zone))
            if bucket is None:
                continue
            bucket["revenue"] = to_money(bucket["revenue"] + to_money(total))
            bucket["transactions"] += 1

        return list(buckets.values())

    # ===== REPORTS =====

    async def get_reports_stats(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> Dict[str, Any]:
        """
        Revenue, order count, average ticket and net profit for the period,
        each compared with the equally long period that ends the day before
        ``start_date``.

        Net profit is sold line subtotals minus ``cost_price * quantity`` at
        today's cost prices, so editing a cost price changes past reports.
        """
        zone = await get_store_zone(self.db, self.store_id)
        period = resolve_report_window(start_date, end_date, zone)
        previous = period.previous()

        current_bounds = period.utc_bounds(zone)
        previous_bounds = previous.utc_bounds(zone)

        revenue, transaction_count = await self._revenue(current_bounds)
        item_revenue, cost = await self._item_revenue_and_cost(current_bounds)
        net_profit = item_revenue - cost

        previous_revenue, previous_count = await self._revenue(previous_bounds)
        previous_item_revenue, previous_cost = await self._item_revenue_and_cost(previous_bounds)
        previous_profit = previous_item_revenue - previous_cost

        avg_order_value = to_money(revenue / transaction_count) if transaction_count else to_money(ZERO)

        logger.debug(
            f"Report for store {self.store_id} {period.start_date}..{period.end_date}: "
            f"revenue {revenue}, profit {net_profit}, previous revenue {previous_revenue}"
        )

        return {
            "period_start": period.start_date,
            "period_end": period.end_date,
            "total_revenue": revenue,
            "transaction_count": transaction_count,
            "avg_order_value": avg_order_value,
            "revenue_change": format_percent(percent_change(revenue, previous_revenue)),
            "transaction_change": format_percent(percent_change(transaction_count, previous_count)),
            "net_profit": net_profit,
            "profit_margin": _margin(item_revenue, net_profit),
            "profit_change": format_percent(percent_change(net_profit, previous_profit)),
            "has_previous_period_data": previous_revenue > ZERO or previous_count > 0,
        }

    async def get_best_selling_products(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """
        Products ranked by units sold in the period (name breaks ties).

        Rows carry the name the product was sold under; a product renamed
        within the period appears once per name.
        """
        zone = await get_store_zone(self.db, self.store_id)
        period = resolve_report_window(start_date, end_date, zone)

        quantity_sold = func.sum(TransactionItem.quantity).label("quantity_sold")
        result = await self.db.execute(
            select(
                TransactionItem.product_id,
                TransactionItem.product_name,
                Product.category_id,
                Category.name.label("category_name"),
                quantity_sold,
                func.coalesce(func.sum(TransactionItem.subtotal), 0).label("revenue"),
                func.coalesce(func.sum(Product.cost_price * TransactionItem.quantity), 0).label("cost")
            )
            .select_from(TransactionItem)
            .join(Transaction, TransactionItem.transaction_id == Transaction.id)
            .join(Product, TransactionItem.product_id == Product.id)
            .outerjoin(Category, Product.category_id == Category.id)
            .where(*self._completed(*period.utc_bounds(zone)))
            .group_by(TransactionItem.product_id, TransactionItem.product_name, Product.category_id, Category.name)
            .order_by(quantity_sold.desc(), TransactionItem.product_name.asc())
            .limit(limit)
        )

        best_sellers = []
        for row in result.all():
            revenue = to_money(row.revenue)
            best_sellers.append({
                "product_id": row.product_id,
                "product_name": row.product_name,
                "category_id": row.category_id,
                "category_name": row.category_name,
                "quantity_sold": int(row.quantity_sold or 0),
                "revenue": revenue,
                "profit_margin": _margin(revenue, revenue - to_money(row.cost)),
            })
        return best_sellers
