"""
Checkout engine.

Turns a validated cart into a priced, persisted Transaction and decrements
catalog stock. The whole checkout (price lookup, inserts and every stock
decrement) is one database transaction: either everything commits or nothing
does. Stock is decremented with a conditional UPDATE so two concurrent
checkouts can never both take the last unit.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4
import logging

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bakerypos.common.money import ZERO, to_money
from bakerypos.common.pagination import clamp_limit, count_rows, paginated
from bakerypos.common.periods import DateRange
from bakerypos.core.exceptions import (
    InsufficientStockError, NotFoundError, PersistenceError, ProductNotFoundError, ValidationError
)
from bakerypos.modules.products.models import Product
from bakerypos.modules.products.stock import apply_stock_delta
from bakerypos.modules.stores.service import get_store_zone
from bakerypos.modules.transactions import numbering
from bakerypos.modules.transactions.models import PaymentType, Transaction, TransactionItem, TransactionStatus
from bakerypos.modules.transactions.schemas import CheckoutCommand

logger = logging.getLogger(__name__)

# one retry with a fresh number after a unique-constraint clash
NUMBER_ATTEMPTS = 2


@dataclass(frozen=True)
class QuotedLine:
    product_id: UUID
    product_name: str
    product_sku: Optional[str]
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


@dataclass(frozen=True)
class CartQuote:
    """Priced cart; every amount is a two-decimal ``Decimal``."""
    lines: Tuple[QuotedLine, ...]
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    amount_received: Optional[Decimal]
    change_due: Decimal


# unique-violation text names the constraint on PostgreSQL and the columns on SQLite
NUMBER_CONSTRAINT = "uq_transaction_number"
NUMBER_COLUMN = "transactions.transaction_number"


def _is_number_clash(error: IntegrityError) -> bool:
    """
    True when an insert collided on the transaction number.

    asyncpg reports ``duplicate key value violates unique constraint
    "uq_transaction_number"``; SQLite reports ``UNIQUE constraint failed:
    transactions.transaction_number``. Anything else,
    such as a foreign key failure, is not retried.
    """
    message = str(error.orig if error.orig is not None else error)
    return NUMBER_CONSTRAINT in message or NUMBER_COLUMN in message


class CheckoutService:
    """Checkout, transaction history and status changes"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===== CHECKOUT =====

    async def quote_cart(
        self,
        store_id: UUID,
        items: Sequence[Tuple[UUID, int]],
        discount: Decimal = ZERO,
        amount_received: Optional[Decimal] = None
    ) -> CartQuote:
        """
        Price a cart from the current catalog.

        Every product must be active and belong to the store; the first one
        that does not raises ``ProductNotFoundError`` with its id. Prices come
        from the product rows, never from the client.
        """
        if not items:
            raise ValidationError("Cart is empty")

        product_ids = [product_id for product_id, _ in items]
        result = await self.db.execute(
            select(Product)
            .where(
                Product.id.in_(product_ids),
                Product.store_id == store_id,
                Product.is_active.is_(True)
            )
            .execution_options(populate_existing=True)
        )
        products = {product.id: product for product in result.scalars()}

        lines = []
        for product_id, quantity in items:
            product = products.get(product_id)
            if product is None:
                raise ProductNotFoundError(product_id)
            unit_price = to_money(product.selling_price)
            lines.append(QuotedLine(
                product_id=product.id,
                product_name=product.name,
                product_sku=product.sku,
                unit_price=unit_price,
                quantity=quantity,
                subtotal=to_money(unit_price * quantity)
            ))

        subtotal = to_money(sum((line.subtotal for line in lines), ZERO))
        discount = to_money(discount)
        # negative totals are representable; a discount larger than the cart is not rejected here
        total = subtotal - discount
        change_due = to_money(amount_received) - total if amount_received is not None else to_money(ZERO)

        return CartQuote(
            lines=tuple(lines),
            subtotal=subtotal,
            discount=discount,
            total=total,
            amount_received=to_money(amount_received) if amount_received is not None else None,
            change_due=change_due
        )

    async def persist_quote(
        self,
        command: CheckoutCommand,
        quote: CartQuote,
        transaction_number: str,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        transaction_id: Optional[UUID] = None
    ) -> Transaction:
        """
        Write the transaction, its item snapshots and the stock decrements.

        Runs inside the caller's database transaction and does not commit.
        Raises ``InsufficientStockError`` for the first line whose conditional
        decrement matches no row.
        """
        transaction = Transaction(
            id=transaction_id or uuid4(),
            store_id=command.store_id,
            user_id=command.user_id,
            transaction_number=transaction_number,
            customer_name=command.customer_name,
            customer_phone=command.customer_phone,
            subtotal=quote.subtotal,
            tax=to_money(ZERO),
            discount=quote.discount,
            total=quote.total,
            payment_type=command.payment_type,
            amount_received=quote.amount_received,
            change_due=quote.change_due,
            status=status,
            notes=command.notes
        )
        transaction.items = [
            TransactionItem(
                line_number=position,
                product_id=line.product_id,
                product_name=line.product_name,
                product_sku=line.product_sku,
                unit_price=line.unit_price,
                quantity=line.quantity,
                subtotal=line.subtotal
            )
            for position, line in enumerate(quote.lines, start=1)
        ]
        self.db.add(transaction)
        # surfaces a transaction number clash before any stock is touched
        await self.db.flush()

        for line in quote.lines:
            level = await apply_stock_delta(self.db, line.product_id, command.store_id, -line.quantity)
            if level is None:
                raise InsufficientStockError(line.product_id, line.quantity, line.product_name)

        return transaction

    async def create_transaction(
        self,
        command: CheckoutCommand,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        transaction_id: Optional[UUID] = None,
        quote: Optional[CartQuote] = None
    ) -> Transaction:
        """
        Checkout: price the cart, persist the transaction with its items and
        decrement stock, all in one database transaction.

        A clash on the transaction number rolls everything back and retries
        once with a new number; a second clash raises a retryable
        ``PersistenceError``.
        """
        for attempt in range(1, NUMBER_ATTEMPTS + 1):
            transaction_number = numbering.generate_transaction_number()
            try:
                cart_quote = quote or await self.quote_cart(
                    command.store_id, command.items, command.discount, command.amount_received
                )
                transaction = await self.persist_quote(
                    command, cart_quote, transaction_number, status=status, transaction_id=transaction_id
                )
                await self.db.commit()

            except IntegrityError as e:
                await self.db.rollback()
                if not _is_number_clash(e):
                    logger.exception(f"Integrity error while persisting checkout: {e}")
                    raise PersistenceError("Failed to persist transaction")
                if attempt < NUMBER_ATTEMPTS:
                    logger.warning(f"Transaction number {transaction_number} already taken, retrying")
                    continue
                raise PersistenceError("Could not allocate a unique transaction number", retryable=True)

            except InsufficientStockError as e:
                await self.db.rollback()
                logger.warning(f"Checkout rejected in store {command.store_id}: {e.detail}")
                raise

            except HTTPException:
                await self.db.rollback()
                raise

            except Exception as e:
                await self.db.rollback()
                logger.exception(f"Unexpected error during checkout: {e}")
                raise PersistenceError("Internal server error")

            logger.info(
                f"Transaction {transaction_number} created in store {command.store_id} "
                f"({len(cart_quote.lines)} lines, total {cart_quote.total}, {status.value})"
            )
            return await self.get_transaction(transaction.id, command.store_id)

        raise PersistenceError("Could not allocate a unique transaction number", retryable=True)

    # ===== QUERIES =====

    async def get_transaction(self, transaction_id: UUID, store_id: UUID) -> Transaction:
        result = await self.db.execute(
            select(Transaction)
            .options(selectinload(Transaction.items))
            .where(Transaction.id == transaction_id, Transaction.store_id == store_id)
            .execution_options(populate_existing=True)
        )
        transaction = result.scalar_one_or_none()
        if not transaction:
            raise NotFoundError("Transaction not found")
        return transaction

    async def _filtered_query(
        self,
        store_id: UUID,
        status: Optional[TransactionStatus] = None,
        payment_type: Optional[PaymentType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ):
        query = select(Transaction).where(Transaction.store_id == store_id)
        if status:
            query = query.where(Transaction.status == status)
        if payment_type:
            query = query.where(Transaction.payment_type == payment_type)

        if start_date or end_date:
            if start_date and end_date and end_date < start_date:
                raise ValidationError("endDate must not be before startDate")
            zone = await get_store_zone(self.db, store_id)
            window = DateRange(start_date or end_date, end_date or start_date)
            window_start, window_end = window.utc_bounds(zone)
            if start_date:
                query = query.where(Transaction.created_at >= window_start)
            if end_date:
                query = query.where(Transaction.created_at < window_end)
        return query

    async def list_transactions(
        self,
        store_id: UUID,
        page: int = 1,
        limit: int = 20,
        status: Optional[TransactionStatus] = None,
        payment_type: Optional[PaymentType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """Transactions newest first; dates are inclusive calendar days in the store timezone."""
        limit = clamp_limit(limit)
        query = await self._filtered_query(store_id, status, payment_type, start_date, end_date)
        total = await count_rows(self.db, query)
        result = await self.db.execute(
            query.order_by(Transaction.created_at.desc(), Transaction.transaction_number.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return paginated(list(result.scalars().all()), page, limit, total)

    async def export_transactions(
        self,
        store_id: UUID,
        status: Optional[TransactionStatus] = None,
        payment_type: Optional[PaymentType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Transaction]:
        query = await self._filtered_query(store_id, status, payment_type, start_date, end_date)
        result = await self.db.execute(query.order_by(Transaction.created_at.desc()))
        return list(result.scalars().all())

    async def get_recent_transactions(self, store_id: UUID, limit: int = 10) -> List[Transaction]:
        result = await self.db.execute(
            select(Transaction)
            .where(Transaction.store_id == store_id)
            .order_by(Transaction.created_at.desc(), Transaction.transaction_number.desc())
            .limit(clamp_limit(limit))
        )
        return list(result.scalars().all())

    # ===== STATUS =====

    async def update_status(self, transaction_id: UUID, store_id: UUID, new_status: TransactionStatus) -> Transaction:
        """
        Overwrite the status of a transaction in the store.

        Any status may move to any other (e.g. completed back to pending);
        callers are restricted to admins and managers at the router.
        """
        transaction = await self.get_transaction(transaction_id, store_id)
        previous = transaction.status
        transaction.status = new_status
        await self.db.commit()
        logger.info(
            f"Transaction {transaction.transaction_number} status {previous.value} -> {new_status.value}"
        )
        return await self.get_transaction(transaction_id, store_id)

    async def update_status_by_external_reference(
        self,
        order_id: str,
        new_status: TransactionStatus
    ) -> Optional[Transaction]:
        """
        Status update driven by the payment gateway; ``order_id`` is the
        transaction id. Idempotent. Unknown or malformed ids are logged and
        return ``None`` instead of raising.
        """
        try:
            transaction_id = UUID(str(order_id))
        except ValueError:
            logger.warning(f"Ignoring gateway update for malformed order id {order_id!r}")
            return None

        result = await self.db.execute(select(Transaction).where(Transaction.id == transaction_id))
        transaction = result.scalar_one_or_none()
        if transaction is None:
            logger.warning(f"Ignoring gateway update for unknown order id {order_id}")
            return None

        if transaction.status != new_status:
            logger.info(
                f"Transaction {transaction.transaction_number} status "
                f"{transaction.status.value} -> {new_status.value} (gateway)"
            )
            transaction.status = new_status
            await self.db.commit()
        return transaction
