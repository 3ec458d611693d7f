import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from bakerypos.common.schemas import CamelModel


class DashboardStatsOut(CamelModel):
    """Today's snapshot for the dashboard header cards"""
    today_revenue: Decimal
    revenue_change: str
    total_products: int
    low_stock_items: int
    categories_count: int


class SalesChartPoint(CamelModel):
    date: datetime.date
    revenue: Decimal
    transactions: int


class ReportsStatsOut(CamelModel):
    """
    Revenue and profit for a period, compared with the period of the same
    length right before it. Change fields are one-decimal percentages, or
    ``null`` when the previous period has nothing to compare against.
    """
    period_start: datetime.date
    period_end: datetime.date
    total_revenue: Decimal
    transaction_count: int
    avg_order_value: Decimal
    revenue_change: Optional[str] = None
    transaction_change: Optional[str] = None
    net_profit: Decimal
    profit_margin: str
    profit_change: Optional[str] = None
    has_previous_period_data: bool


class BestSellerOut(CamelModel):
    product_id: UUID
    product_name: str
    category_id: Optional[UUID] = None
    category_name: Optional[str] = None
    quantity_sold: int
    revenue: Decimal
    profit_margin: str
