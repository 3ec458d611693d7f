from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Literal, Optional

from bakerypos.common.csv_export import create_csv_response
from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.dashboard.schemas import BestSellerOut, DashboardStatsOut, ReportsStatsOut, SalesChartPoint
from bakerypos.modules.dashboard.service import ReportingService
from bakerypos.modules.transactions.schemas import TransactionOut
from bakerypos.modules.transactions.service import CheckoutService

dashboard_router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

BEST_SELLER_CSV_HEADERS = {
    "product_name": "Product",
    "category_name": "Category",
    "quantity_sold": "Quantity Sold",
    "revenue": "Revenue",
    "profit_margin": "Profit Margin (%)",
}


@dashboard_router.get("/stats", response_model=DashboardStatsOut)
async def get_stats(
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    """Today's revenue (vs yesterday) and catalog counters."""
    return await ReportingService(db, auth_context.store_id).get_stats()


@dashboard_router.get("/sales-chart", response_model=List[SalesChartPoint])
async def get_sales_chart(
    days: int = Query(7, ge=1, le=366, description="Trailing days, today included"),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await ReportingService(db, auth_context.store_id).get_sales_chart(days)


@dashboard_router.get("/recent-transactions", response_model=List[TransactionOut])
async def get_recent_transactions(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await CheckoutService(db).get_recent_transactions(auth_context.store_id, limit)


@dashboard_router.get("/reports-stats", response_model=ReportsStatsOut)
async def get_reports_stats(
    start_date: Optional[date] = Query(None, alias="startDate", description="First day (inclusive)"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Last day (inclusive)"),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    """
    Period report with profit. Without dates it covers the last
    ``DEFAULT_REPORT_DAYS`` days; deltas are null when the previous period is empty.
    """
    return await ReportingService(db, auth_context.store_id).get_reports_stats(start_date, end_date)


@dashboard_router.get("/best-selling", response_model=List[BestSellerOut])
async def get_best_selling(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    limit: int = Query(10, ge=1, le=100),
    export: Optional[Literal["csv"]] = Query(None, description="Set to 'csv' to download"),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    rows = await ReportingService(db, auth_context.store_id).get_best_selling_products(start_date, end_date, limit)
    if export == "csv":
        return create_csv_response(rows, f"best_selling_{date.today().isoformat()}.csv", BEST_SELLER_CSV_HEADERS)
    return rows
