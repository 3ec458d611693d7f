from typing import Optional

from bakerypos.common.schemas import CamelModel
from bakerypos.modules.transactions.models import TransactionStatus
from bakerypos.modules.transactions.schemas import TransactionDetailOut


class PaymentConfigOut(CamelModel):
    """What the browser needs to load the Snap popup"""
    client_key: str
    is_production: bool


class DigitalCheckoutOut(CamelModel):
    transaction: TransactionDetailOut
    token: str
    redirect_url: str


class PaymentStatusOut(CamelModel):
    order_id: str
    transaction_status: Optional[str] = None
    fraud_status: Optional[str] = None
    payment_type: Optional[str] = None
    gross_amount: Optional[str] = None
    transaction_time: Optional[str] = None
    status: TransactionStatus


class NotificationAck(CamelModel):
    message: str
