from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bakerypos.core.exceptions import UpstreamError
from bakerypos.database.database import get_async_db
from bakerypos.modules.payments.gateway import MidtransGateway
from bakerypos.modules.payments.service import PaymentService


def get_payment_gateway(request: Request) -> MidtransGateway:
    """The gateway client built at startup (see ``main.startup_event``)."""
    gateway = getattr(request.app.state, "payment_gateway", None)
    if gateway is None:
        raise UpstreamError("Payment gateway is not configured")
    return gateway


def get_payment_service(
    db: AsyncSession = Depends(get_async_db),
    gateway: MidtransGateway = Depends(get_payment_gateway)
) -> PaymentService:
    return PaymentService(db, gateway)
