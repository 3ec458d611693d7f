from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException
from typing import List, Optional
from uuid import UUID
import logging

from bakerypos.core.exceptions import ConflictError, NotFoundError, PersistenceError
from bakerypos.modules.categories.models import Category
from bakerypos.modules.categories.schemas import CategoryCreate, CategoryUpdate
from bakerypos.modules.products.models import Product

logger = logging.getLogger(__name__)


class CategoryService:
    """Product categories of a store"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _name_taken(self, name: str, store_id: UUID, exclude_id: Optional[UUID] = None) -> bool:
        query = select(Category.id).where(
            func.lower(Category.name) == name.lower(),
            Category.store_id == store_id
        )
        if exclude_id:
            query = query.where(Category.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def create_category(self, data: CategoryCreate, store_id: UUID) -> Category:
        try:
            if await self._name_taken(data.name, store_id):
                raise ConflictError(f"A category named '{data.name}' already exists")

            category = Category(
                name=data.name,
                description=data.description,
                color=data.color,
                store_id=store_id
            )
            self.db.add(category)
            await self.db.commit()
            await self.db.refresh(category)
            return category

        except HTTPException:
            raise
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Category violates a uniqueness constraint")
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Error creating category: {e}")
            raise PersistenceError("Internal server error")

    async def list_categories(self, store_id: UUID, search: Optional[str] = None) -> List[Category]:
        query = select(Category).where(Category.store_id == store_id)
        if search:
            query = query.where(Category.name.ilike(f"%{search}%"))
        result = await self.db.execute(query.order_by(Category.name))
        return list(result.scalars().all())

    async def get_category(self, category_id: UUID, store_id: UUID) -> Category:
        result = await self.db.execute(
            select(Category).where(Category.id == category_id, Category.store_id == store_id)
        )
        category = result.scalar_one_or_none()
        if not category:
            raise NotFoundError("Category not found")
        return category

    async def update_category(self, category_id: UUID, data: CategoryUpdate, store_id: UUID) -> Category:
        try:
            category = await self.get_category(category_id, store_id)
            update_dict = data.model_dump(exclude_unset=True)

            new_name = update_dict.get("name")
            if new_name:
                new_name = new_name.strip()
                update_dict["name"] = new_name
                if await self._name_taken(new_name, store_id, exclude_id=category_id):
                    raise ConflictError(f"Another category is already named '{new_name}'")
            elif "name" in update_dict:
                update_dict.pop("name")

            for field, value in update_dict.items():
                setattr(category, field, value)

            await self.db.commit()
            await self.db.refresh(category)
            return category

        except HTTPException:
            raise
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Category violates a uniqueness constraint")

    async def delete_category(self, category_id: UUID, store_id: UUID) -> None:
        category = await self.get_category(category_id, store_id)

        in_use = await self.db.execute(
            select(func.count(Product.id)).where(
                Product.category_id == category_id,
                Product.is_active.is_(True)
            )
        )
        if in_use.scalar_one() > 0:
            raise ConflictError("Category still has products assigned")

        # detach soft-deleted products so the foreign key does not block the delete
        inactive = await self.db.execute(
            select(Product).where(Product.category_id == category_id, Product.is_active.is_(False))
        )
        for product in inactive.scalars():
            product.category_id = None

        await self.db.delete(category)
        await self.db.commit()
