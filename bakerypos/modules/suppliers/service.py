from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from bakerypos.common.pagination import clamp_limit, count_rows, paginated
from bakerypos.core.exceptions import ConflictError, NotFoundError
from bakerypos.modules.products.models import Product
from bakerypos.modules.suppliers.models import Supplier, SupplierCategory, SupplierStatus
from bakerypos.modules.suppliers.schemas import SupplierCreate, SupplierUpdate

logger = logging.getLogger(__name__)


class SupplierService:
    """Ingredient, packaging and equipment suppliers of a store"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_suppliers(
        self,
        store_id: UUID,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        category: Optional[SupplierCategory] = None,
        status: Optional[SupplierStatus] = None
    ) -> Dict[str, Any]:
        limit = clamp_limit(limit)
        query = select(Supplier).where(Supplier.store_id == store_id)

        if search:
            pattern = f"%{search}%"
            query = query.where(or_(
                Supplier.name.ilike(pattern),
                Supplier.contact_person.ilike(pattern),
                Supplier.email.ilike(pattern)
            ))
        if category:
            query = query.where(Supplier.category == category)
        if status:
            query = query.where(Supplier.status == status)

        total = await count_rows(self.db, query)
        result = await self.db.execute(
            query.order_by(Supplier.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return paginated(list(result.scalars().all()), page, limit, total)

    async def get_supplier(self, supplier_id: UUID, store_id: UUID) -> Supplier:
        result = await self.db.execute(
            select(Supplier).where(Supplier.id == supplier_id, Supplier.store_id == store_id)
        )
        supplier = result.scalar_one_or_none()
        if not supplier:
            raise NotFoundError("Supplier not found")
        return supplier

    async def create_supplier(self, data: SupplierCreate, store_id: UUID) -> Supplier:
        supplier = Supplier(**data.model_dump(), store_id=store_id)
        self.db.add(supplier)
        await self.db.commit()
        await self.db.refresh(supplier)
        logger.info(f"Supplier {supplier.id} created in store {store_id}")
        return supplier

    async def update_supplier(self, supplier_id: UUID, data: SupplierUpdate, store_id: UUID) -> Supplier:
        supplier = await self.get_supplier(supplier_id, store_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if field in ("name", "status") and value is None:
                continue
            setattr(supplier, field, value)
        await self.db.commit()
        await self.db.refresh(supplier)
        return supplier

    async def delete_supplier(self, supplier_id: UUID, store_id: UUID) -> None:
        supplier = await self.get_supplier(supplier_id, store_id)

        in_use = await self.db.execute(
            select(func.count(Product.id)).where(Product.supplier_id == supplier_id, Product.is_active.is_(True))
        )
        if in_use.scalar_one() > 0:
            raise ConflictError("Supplier still provides active products; mark it inactive instead")

        inactive = await self.db.execute(
            select(Product).where(Product.supplier_id == supplier_id, Product.is_active.is_(False))
        )
        for product in inactive.scalars():
            product.supplier_id = None

        await self.db.delete(supplier)
        await self.db.commit()
