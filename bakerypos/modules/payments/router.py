from fastapi import APIRouter, status, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from bakerypos.database.database import get_async_db
from bakerypos.modules.auth.dependencies import AuthDependencies
from bakerypos.modules.auth.schemas import AuthContext
from bakerypos.modules.payments.dependencies import get_payment_gateway, get_payment_service
from bakerypos.modules.payments.gateway import MidtransGateway
from bakerypos.modules.payments.schemas import DigitalCheckoutOut, NotificationAck, PaymentConfigOut, PaymentStatusOut
from bakerypos.modules.payments.service import PaymentService
from bakerypos.modules.transactions.schemas import CheckoutCommand, CheckoutRequest

logger = logging.getLogger(__name__)

payment_router = APIRouter(prefix="/payments", tags=["Payments"])


@payment_router.get("/config", response_model=PaymentConfigOut)
async def payment_config(gateway: MidtransGateway = Depends(get_payment_gateway)):
    """Public client key for the Snap popup."""
    return {"client_key": gateway.client_key, "is_production": gateway.is_production}


@payment_router.post("/checkout", response_model=DigitalCheckoutOut, status_code=status.HTTP_201_CREATED)
async def digital_checkout(
    data: CheckoutRequest,
    service: PaymentService = Depends(get_payment_service),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    """Card/transfer checkout: returns a Snap token and the pending transaction."""
    command = CheckoutCommand.from_request(auth_context.store_id, auth_context.user_id, data)
    return await service.start_digital_checkout(command)


@payment_router.post("/notification", response_model=NotificationAck)
async def payment_notification(
    request: Request,
    db: AsyncSession = Depends(get_async_db)
):
    """
    Gateway webhook (no session auth). Always answers 200: a failure here is
    logged, never returned, so the gateway does not retry forever.
    """
    try:
        body = await request.json()
        if not isinstance(body, dict):
            raise ValueError("Notification body must be a JSON object")
        service = PaymentService(db, get_payment_gateway(request))
        transaction = await service.handle_notification(body)
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error processing payment notification: {e}")
        return {"message": "Notification received"}

    if transaction is None:
        return {"message": "Notification received"}
    return {"message": "Notification processed"}


@payment_router.get("/{order_id}/status", response_model=PaymentStatusOut)
async def payment_status(
    order_id: str,
    service: PaymentService = Depends(get_payment_service),
    auth_context: AuthContext = Depends(AuthDependencies.require_store())
):
    return await service.get_payment_status(order_id, auth_context.store_id)
