"""
Checkout records.

A Transaction and its items are an immutable historical record: after the
checkout commits, only ``status`` (and ``updated_at``) may change. Items
snapshot the product name, SKU and unit price at sale time so later catalog
edits never rewrite history.
"""
from sqlalchemy import Column, String, Text, Integer, Numeric, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4
import enum

from bakerypos.database.database import Base
from bakerypos.common.mixins import BaseMixin, utcnow


class PaymentType(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"        # digital payment awaiting the gateway
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class Transaction(Base, BaseMixin):
    __tablename__ = "transactions"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    transaction_number = Column(String(32), nullable=False)

    # Customer info (optional for walk-in)
    customer_name = Column(String(150), nullable=True)
    customer_phone = Column(String(30), nullable=True)

    # Totals
    subtotal = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False, default=0)
    discount = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)

    # Payment
    payment_type = Column(Enum(PaymentType), nullable=False, index=True)
    amount_received = Column(Numeric(12, 2), nullable=True)
    change_due = Column(Numeric(12, 2), nullable=False, default=0)

    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.COMPLETED, index=True)
    notes = Column(Text, nullable=True)

    items = relationship(
        "TransactionItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionItem.line_number"
    )

    __table_args__ = (
        UniqueConstraint("transaction_number", name="uq_transaction_number"),
    )


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    transaction_id = Column(UUID(as_uuid=True), ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    # weak reference: the product may be soft-deleted later
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False, default=1)

    # Snapshot of the product at time of sale
    product_name = Column(String(200), nullable=False)
    product_sku = Column(String(100), nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    transaction = relationship("Transaction", back_populates="items")
