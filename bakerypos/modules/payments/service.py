from typing import Any, Dict, Optional
from uuid import UUID, uuid4
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from bakerypos.common.money import is_whole_units
from bakerypos.core.exceptions import NotFoundError, ValidationError
from bakerypos.modules.payments.gateway import GatewayCustomer, GatewayItem, MidtransGateway, map_gateway_status
from bakerypos.modules.transactions.models import PaymentType, Transaction, TransactionStatus
from bakerypos.modules.transactions.schemas import CheckoutCommand
from bakerypos.modules.transactions.service import CheckoutService

logger = logging.getLogger(__name__)


class PaymentService:
    """Digital payments through the hosted checkout, and the gateway webhook"""

    def __init__(self, db: AsyncSession, gateway: MidtransGateway):
        self.db = db
        self.gateway = gateway
        self.checkout = CheckoutService(db)

    async def start_digital_checkout(self, command: CheckoutCommand) -> Dict[str, Any]:
        """
        Price the cart, get a Snap token for a new transaction id and only then
        persist the transaction as ``pending``. If the gateway call fails
        nothing is written.
        """
        if command.payment_type == PaymentType.CASH:
            raise ValidationError("Cash payments do not go through the payment gateway")

        quote = await self.checkout.quote_cart(
            command.store_id, command.items, command.discount, command.amount_received
        )
        # no database transaction stays open across the gateway call
        await self.db.rollback()

        # gateway lines are whole units; the charge must equal the stored total
        amounts = [line.unit_price for line in quote.lines] + [quote.discount]
        if not all(is_whole_units(amount) for amount in amounts):
            raise ValidationError("Digital payments need prices and discounts in whole currency units")

        transaction_id = uuid4()
        items = [
            GatewayItem(
                id=str(line.product_id),
                name=line.product_name,
                price=line.unit_price,
                quantity=line.quantity
            )
            for line in quote.lines
        ]
        customer = None
        if command.customer_name:
            customer = GatewayCustomer(first_name=command.customer_name, phone=command.customer_phone)

        snap = await self.gateway.create_snap_token(str(transaction_id), items, quote.discount, customer)

        transaction = await self.checkout.create_transaction(
            command,
            status=TransactionStatus.PENDING,
            transaction_id=transaction_id,
            quote=quote
        )
        logger.info(f"Digital checkout {transaction.transaction_number} awaiting payment (order {transaction_id})")
        return {"transaction": transaction, "token": snap["token"], "redirect_url": snap["redirect_url"]}

    async def handle_notification(self, body: Dict[str, Any]) -> Optional[Transaction]:
        """
        Verify a webhook against the gateway and apply the resulting status.
        Returns the updated transaction, or ``None`` for unknown orders.
        """
        status_response = await self.gateway.verify_notification(body)
        order_id = status_response.get("order_id") or body.get("order_id")
        transaction_status = status_response.get("transaction_status")
        fraud_status = status_response.get("fraud_status")
        new_status = map_gateway_status(transaction_status, fraud_status)

        logger.info(
            f"Gateway notification for order {order_id}: {transaction_status}/{fraud_status} -> {new_status.value}"
        )
        return await self.checkout.update_status_by_external_reference(order_id, new_status)

    async def get_payment_status(self, order_id: str, store_id: UUID) -> Dict[str, Any]:
        """Gateway view of one of the store's orders; foreign or unknown orders are 404."""
        try:
            transaction_id = UUID(order_id)
        except ValueError:
            raise NotFoundError("Transaction not found")
        await self.checkout.get_transaction(transaction_id, store_id)

        status_response = await self.gateway.get_status(order_id)
        gross_amount = status_response.get("gross_amount")
        return {
            "order_id": status_response.get("order_id") or order_id,
            "transaction_status": status_response.get("transaction_status"),
            "fraud_status": status_response.get("fraud_status"),
            "payment_type": status_response.get("payment_type"),
            "gross_amount": str(gross_amount) if gross_amount is not None else None,
            "transaction_time": status_response.get("transaction_time"),
            "status": map_gateway_status(
                status_response.get("transaction_status"), status_response.get("fraud_status")
            ),
        }
