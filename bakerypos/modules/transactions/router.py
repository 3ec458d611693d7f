from datetime import date
from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Literal, Optional
from uuid import UUID

from bakerypos.common.csv_export import create_csv_response
from bakerypos.core.config import settings
from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.transactions.models import PaymentType, TransactionStatus
from bakerypos.modules.transactions.schemas import (
    CheckoutCommand, CheckoutRequest, TransactionDetailOut, TransactionList, TransactionStatusUpdate
)
from bakerypos.modules.transactions.service import CheckoutService

transaction_router = APIRouter(prefix="/transactions", tags=["Transactions"])

TRANSACTION_CSV_HEADERS = {
    "transaction_number": "Transaction #",
    "created_at": "Date",
    "customer_name": "Customer",
    "payment_type": "Payment",
    "status": "Status",
    "subtotal": "Subtotal",
    "discount": "Discount",
    "total": "Total",
}


@transaction_router.post("", response_model=TransactionDetailOut, status_code=status.HTTP_201_CREATED)
async def checkout(
    data: CheckoutRequest,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    """Checkout a cart: prices from the catalog, stock decremented atomically."""
    command = CheckoutCommand.from_request(auth_context.store_id, auth_context.user_id, data)
    return await CheckoutService(db).create_transaction(command)


@transaction_router.get("", response_model=TransactionList)
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    transaction_status: Optional[TransactionStatus] = Query(None, alias="status"),
    payment_type: Optional[PaymentType] = Query(None, alias="paymentType"),
    start_date: Optional[date] = Query(None, alias="startDate", description="First day (inclusive)"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Last day (inclusive)"),
    export: Optional[Literal["csv"]] = Query(None, description="Set to 'csv' to download"),
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    service = CheckoutService(db)
    if export == "csv":
        rows = await service.export_transactions(
            auth_context.store_id, transaction_status, payment_type, start_date, end_date
        )
        data = [{field: getattr(row, field) for field in TRANSACTION_CSV_HEADERS} for row in rows]
        return create_csv_response(data, f"transactions_{date.today().isoformat()}.csv", TRANSACTION_CSV_HEADERS)

    return await service.list_transactions(
        store_id=auth_context.store_id,
        page=page,
        limit=limit,
        status=transaction_status,
        payment_type=payment_type,
        start_date=start_date,
        end_date=end_date
    )


@transaction_router.get("/{transaction_id}", response_model=TransactionDetailOut)
async def get_transaction(
    transaction_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await CheckoutService(db).get_transaction(transaction_id, auth_context.store_id)


@transaction_router.put("/{transaction_id}/status", response_model=TransactionDetailOut)
async def update_transaction_status(
    transaction_id: UUID,
    data: TransactionStatusUpdate,
    db: AsyncSession = Depends(get_async_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_admin_or_manager())
):
    """Status override (admin/manager only); any status may be set."""
    return await CheckoutService(db).update_status(transaction_id, auth_context.store_id, data.status)
