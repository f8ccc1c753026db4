"""Part repository - Database operations for inventory parts"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Part


class PartRepository:
    """Repository for part database operations"""

    @staticmethod
    def get_part_by_id(db: Session, part_id: str, tenant_id: str) -> Optional[Part]:
        return db.query(Part).filter(Part.id == part_id, Part.tenant_id == tenant_id).first()

    @staticmethod
    def get_part_by_number(
        db: Session, part_number: str, tenant_id: str, exclude_id: Optional[str] = None
    ) -> Optional[Part]:
        query = db.query(Part).filter(Part.tenant_id == tenant_id, Part.part_number == part_number)
        if exclude_id:
            query = query.filter(Part.id != exclude_id)
        return query.first()

    @staticmethod
    def search_parts(
        db: Session,
        tenant_id: str,
        page: int,
        limit: int,
        search: Optional[str] = None,
        category: Optional[str] = None,
        low_stock: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[Part], int]:
        query = db.query(Part).filter(Part.tenant_id == tenant_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Part.name.ilike(pattern),
                    Part.part_number.ilike(pattern),
                    Part.brand.ilike(pattern),
                )
            )
        if category:
            query = query.filter(Part.category == category)
        if low_stock is True:
            query = query.filter(Part.quantity < Part.min_quantity)
        elif low_stock is False:
            query = query.filter(Part.quantity >= Part.min_quantity)
        if is_active is not None:
            query = query.filter(Part.is_active.is_(is_active))

        total = query.count()
        items = query.order_by(Part.name.asc()).offset((page - 1) * limit).limit(limit).all()
        return items, total

    @staticmethod
    def create_part(db: Session, tenant_id: str, **part_data) -> Part:
        part = Part(tenant_id=tenant_id, **part_data)
        db.add(part)
        db.flush()
        return part

    @staticmethod
    def update_part(db: Session, part: Part, **updates) -> Part:
        for key, value in updates.items():
            if hasattr(part, key):
                setattr(part, key, value)
        db.flush()
        return part

    @staticmethod
    def delete_part(db: Session, part: Part) -> None:
        db.delete(part)
        db.flush()
