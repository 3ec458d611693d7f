"""
Midtrans adapter.

One ``MidtransGateway`` is built at application startup and shared through
``app.state``; it owns an ``httpx.AsyncClient`` that is closed on shutdown.
Snap creates hosted-checkout tokens, the Core API answers status queries.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

import httpx

from bakerypos.common.money import to_whole_units
from bakerypos.core.config import Settings
from bakerypos.core.exceptions import UpstreamError, ValidationError
from bakerypos.modules.transactions.models import TransactionStatus

logger = logging.getLogger(__name__)

MAX_FIELD_LENGTH = 50
DEFAULT_CUSTOMER_EMAIL = "customer@example.com"
DEFAULT_CUSTOMER_PHONE = "08123456789"


@dataclass(frozen=True)
class GatewayItem:
    id: str
    name: str
    price: Decimal
    quantity: int


@dataclass(frozen=True)
class GatewayCustomer:
    first_name: str
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None


def map_gateway_status(transaction_status: Optional[str], fraud_status: Optional[str] = None) -> TransactionStatus:
    """Translate a Midtrans transaction status into ours."""
    if transaction_status == "capture":
        return TransactionStatus.COMPLETED if fraud_status == "accept" else TransactionStatus.PENDING
    if transaction_status == "settlement":
        return TransactionStatus.COMPLETED
    if transaction_status in ("cancel", "deny", "expire"):
        return TransactionStatus.CANCELLED
    if transaction_status in ("refund", "partial_refund"):
        return TransactionStatus.REFUNDED
    return TransactionStatus.PENDING


class MidtransGateway:

    def __init__(
        self,
        server_key: str,
        client_key: str,
        is_production: bool,
        snap_url: str,
        api_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.client_key = client_key
        self.is_production = is_production
        self.snap_url = snap_url.rstrip("/")
        self.api_url = api_url.rstrip("/")
        # Basic auth: server key as user name, empty password
        self._client = httpx.AsyncClient(
            auth=(server_key, ""),
            timeout=timeout,
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            transport=transport
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "MidtransGateway":
        return cls(
            server_key=settings.MIDTRANS_SERVER_KEY,
            client_key=settings.MIDTRANS_CLIENT_KEY,
            is_production=settings.MIDTRANS_IS_PRODUCTION,
            snap_url=settings.midtrans_snap_url,
            api_url=settings.midtrans_api_url,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
            transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def build_snap_payload(
        order_id: str,
        items: List[GatewayItem],
        discount: Decimal = Decimal("0"),
        customer: Optional[GatewayCustomer] = None
    ) -> Dict[str, Any]:
        """
        Snap request body. Midtrans wants whole currency units and item lines
        that add up to ``gross_amount``, so a discount is sent as a negative line.
        """
        item_details = [
            {
                "id": str(item.id)[:MAX_FIELD_LENGTH],
                "name": item.name[:MAX_FIELD_LENGTH],
                "price": to_whole_units(item.price),
                "quantity": item.quantity,
            }
            for item in items
        ]
        if discount and to_whole_units(discount) > 0:
            item_details.append({
                "id": "DISCOUNT",
                "name": "Discount",
                "price": -to_whole_units(discount),
                "quantity": 1,
            })

        gross_amount = sum(line["price"] * line["quantity"] for line in item_details)
        if gross_amount <= 0:
            raise ValidationError("Digital payments need a positive total")

        if customer:
            customer_details = {
                "first_name": customer.first_name[:MAX_FIELD_LENGTH],
                "last_name": customer.last_name[:MAX_FIELD_LENGTH],
                "email": customer.email or DEFAULT_CUSTOMER_EMAIL,
                "phone": customer.phone or DEFAULT_CUSTOMER_PHONE,
            }
        else:
            customer_details = {
                "first_name": "Customer",
                "email": DEFAULT_CUSTOMER_EMAIL,
                "phone": DEFAULT_CUSTOMER_PHONE,
            }

        return {
            "transaction_details": {"order_id": order_id, "gross_amount": gross_amount},
            "item_details": item_details,
            "customer_details": customer_details,
        }

    async def create_snap_token(
        self,
        order_id: str,
        items: List[GatewayItem],
        discount: Decimal = Decimal("0"),
        customer: Optional[GatewayCustomer] = None
    ) -> Dict[str, str]:
        """Request a hosted-checkout token; returns ``{token, redirect_url}``."""
        payload = self.build_snap_payload(order_id, items, discount, customer)
        logger.debug(f"Requesting Snap token for order {order_id} (gross {payload['transaction_details']['gross_amount']})")

        body = await self._request("POST", f"{self.snap_url}/transactions", json=payload)
        token = body.get("token")
        if not token:
            logger.error(f"Snap response for order {order_id} has no token: {body}")
            raise UpstreamError("Payment gateway returned no token")
        return {"token": token, "redirect_url": body.get("redirect_url", "")}

    async def get_status(self, order_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"{self.api_url}/{order_id}/status")

    async def verify_notification(self, notification: Dict[str, Any]) -> Dict[str, Any]:
        """
        Confirm a webhook by asking the gateway for the order's current status
        instead of trusting the posted body.
        """
        order_id = notification.get("order_id") if isinstance(notification, dict) else None
        if not order_id:
            raise ValidationError("Notification has no order_id")
        return await self.get_status(str(order_id))

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Payment gateway {method} {url} failed with {e.response.status_code}: {e.response.text}")
            raise UpstreamError(f"Payment gateway responded with {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Payment gateway {method} {url} failed: {e}")
            raise UpstreamError()
        except ValueError as e:
            logger.error(f"Payment gateway {method} {url} returned invalid JSON: {e}")
            raise UpstreamError("Payment gateway returned an invalid response")
