from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from bakerypos.common.schemas import CamelModel, PaginatedResponse
from bakerypos.core.exceptions import ValidationError
from bakerypos.modules.transactions.models import PaymentType, TransactionStatus


# ===== REQUESTS =====

class CartItem(CamelModel):
    product_id: UUID
    quantity: int = Field(..., gt=0, description="Units to sell")


class CheckoutRequest(CamelModel):
    """Cart as posted by the POS screen. Prices are never taken from the client."""
    items: List[CartItem] = Field(default_factory=list)
    payment_type: PaymentType
    customer_name: Optional[str] = Field(None, max_length=150)
    customer_phone: Optional[str] = Field(None, max_length=30)
    amount_received: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    discount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=1000)


class TransactionStatusUpdate(CamelModel):
    status: TransactionStatus


# ===== COMMAND =====

class CheckoutCommand(BaseModel):
    """
    Fully validated checkout input handed to the engine.

    Built only through ``from_request``: the cart is non-empty and duplicate
    product lines are merged into one line with the summed quantity.
    """
    model_config = ConfigDict(frozen=True)

    store_id: UUID
    user_id: UUID
    items: Tuple[Tuple[UUID, int], ...]
    payment_type: PaymentType
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    amount_received: Optional[Decimal] = None
    discount: Decimal = Decimal("0")
    notes: Optional[str] = None

    @classmethod
    def from_request(cls, store_id: Optional[UUID], user_id: UUID, request: CheckoutRequest) -> "CheckoutCommand":
        if store_id is None:
            raise ValidationError("Store ID is required")
        if not request.items:
            raise ValidationError("Cart is empty")

        merged: "OrderedDict[UUID, int]" = OrderedDict()
        for item in request.items:
            merged[item.product_id] = merged.get(item.product_id, 0) + item.quantity

        return cls(
            store_id=store_id,
            user_id=user_id,
            items=tuple(merged.items()),
            payment_type=request.payment_type,
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            amount_received=request.amount_received,
            discount=request.discount or Decimal("0"),
            notes=request.notes
        )


# ===== RESPONSES =====

class TransactionItemOut(CamelModel):
    id: UUID
    product_id: UUID
    product_name: str
    product_sku: Optional[str] = None
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


class TransactionOut(CamelModel):
    id: UUID
    store_id: UUID
    user_id: UUID
    transaction_number: str
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    payment_type: PaymentType
    amount_received: Optional[Decimal] = None
    change_due: Decimal
    status: TransactionStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class TransactionDetailOut(TransactionOut):
    items: List[TransactionItemOut]


TransactionList = PaginatedResponse[TransactionOut]
