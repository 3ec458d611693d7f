from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException
from typing import List, Optional
from uuid import UUID
import logging

from bakerypos.core.exceptions import ConflictError, NotFoundError, PersistenceError
from bakerypos.modules.brands.models import Brand
from bakerypos.modules.brands.schemas import BrandCreate, BrandUpdate
from bakerypos.modules.products.models import Product

logger = logging.getLogger(__name__)


class BrandService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _name_taken(self, name: str, store_id: UUID, exclude_id: Optional[UUID] = None) -> bool:
        query = select(Brand.id).where(
            func.lower(Brand.name) == name.lower(),
            Brand.store_id == store_id
        )
        if exclude_id:
            query = query.where(Brand.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def create_brand(self, data: BrandCreate, store_id: UUID) -> Brand:
        try:
            if await self._name_taken(data.name, store_id):
                raise ConflictError(f"A brand named '{data.name}' already exists")

            brand = Brand(name=data.name, description=data.description, store_id=store_id)
            self.db.add(brand)
            await self.db.commit()
            await self.db.refresh(brand)
            return brand

        except HTTPException:
            raise
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Brand violates a uniqueness constraint")
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Error creating brand: {e}")
            raise PersistenceError("Internal server error")

    async def list_brands(self, store_id: UUID) -> List[Brand]:
        result = await self.db.execute(
            select(Brand).where(Brand.store_id == store_id).order_by(Brand.name)
        )
        return list(result.scalars().all())

    async def get_brand(self, brand_id: UUID, store_id: UUID) -> Brand:
        result = await self.db.execute(
            select(Brand).where(Brand.id == brand_id, Brand.store_id == store_id)
        )
        brand = result.scalar_one_or_none()
        if not brand:
            raise NotFoundError("Brand not found")
        return brand

    async def update_brand(self, brand_id: UUID, data: BrandUpdate, store_id: UUID) -> Brand:
        brand = await self.get_brand(brand_id, store_id)
        update_dict = data.model_dump(exclude_unset=True)

        if update_dict.get("name"):
            update_dict["name"] = update_dict["name"].strip()
            if await self._name_taken(update_dict["name"], store_id, exclude_id=brand_id):
                raise ConflictError(f"Another brand is already named '{update_dict['name']}'")
        else:
            update_dict.pop("name", None)

        for field, value in update_dict.items():
            setattr(brand, field, value)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Brand violates a uniqueness constraint")
        await self.db.refresh(brand)
        return brand

    async def delete_brand(self, brand_id: UUID, store_id: UUID) -> None:
        brand = await self.get_brand(brand_id, store_id)

        in_use = await self.db.execute(
            select(func.count(Product.id)).where(Product.brand_id == brand_id, Product.is_active.is_(True))
        )
        if in_use.scalar_one() > 0:
            raise ConflictError("Brand still has products assigned")

        inactive = await self.db.execute(
            select(Product).where(Product.brand_id == brand_id, Product.is_active.is_(False))
        )
        for product in inactive.scalars():
            product.brand_id = None

        await self.db.delete(brand)
        await self.db.commit()
