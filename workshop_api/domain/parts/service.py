"""Part service - inventory records and low-stock detection"""

import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from ...errors import DuplicateRecord, NotFound
from ...models import Part
from .repository import PartRepository
from .schemas import PartCreate, PartUpdate

logger = logging.getLogger(__name__)

_COLUMNS = {
    "partNumber": "part_number",
    "name": "name",
    "description": "description",
    "category": "category",
    "brand": "brand",
    "quantity": "quantity",
    "minQuantity": "min_quantity",
    "costPrice": "cost_price",
    "sellPrice": "sell_price",
    "location": "location",
    "isActive": "is_active",
}

# Columns that cannot be cleared with an explicit null
_NOT_NULL = {"name", "quantity", "min_quantity", "cost_price", "sell_price", "is_active"}


class PartService:
    """Service layer for part business logic"""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = PartRepository()

    def get_part(self, part_id: str) -> Part:
        part = self.repo.get_part_by_id(self.db, part_id, self.tenant_id)
        if not part:
            raise NotFound("Part", part_id)
        return part

    def list_parts(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        category: Optional[str] = None,
        low_stock: Optional[bool] = None,
        is_active: Optional[bool] = None,
    ) -> dict:
        items, total = self.repo.search_parts(
            self.db,
            self.tenant_id,
            page,
            limit,
            search=search,
            category=category,
            low_stock=low_stock,
            is_active=is_active,
        )
        return {
            "data": items,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }

    def create_part(self, data: PartCreate) -> Part:
        try:
            self._ensure_unique_number(data.partNumber)
            part = self.repo.create_part(
                self.db,
                self.tenant_id,
                **{_COLUMNS[key]: value for key, value in data.model_dump().items()},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(part)
        logger.info(f"Part {part.name} ({part.id}) created in tenant {self.tenant_id}")
        if part.low_stock:
            logger.warning(f"Part {part.id} is below its minimum quantity ({part.quantity}/{part.min_quantity})")
        return part

    def update_part(self, part_id: str, data: PartUpdate) -> Part:
        fields = data.model_dump(exclude_unset=True)
        try:
            part = self.get_part(part_id)
            if fields.get("partNumber"):
                self._ensure_unique_number(fields["partNumber"], exclude_id=part.id)

            updates = {
                _COLUMNS[key]: value
                for key, value in fields.items()
                if value is not None or _COLUMNS[key] not in _NOT_NULL
            }
            self.repo.update_part(self.db, part, **updates)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(part)
        logger.info(f"Part {part_id} updated: {sorted(fields)}")
        if part.low_stock:
            logger.warning(f"Part {part.id} is below its minimum quantity ({part.quantity}/{part.min_quantity})")
        return part

    def delete_part(self, part_id: str) -> None:
        try:
            part = self.get_part(part_id)
            self.repo.delete_part(self.db, part)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Part {part_id} deleted from tenant {self.tenant_id}")

    def _ensure_unique_number(self, part_number: Optional[str], exclude_id: Optional[str] = None) -> None:
        if part_number and self.repo.get_part_by_number(self.db, part_number, self.tenant_id, exclude_id):
            raise DuplicateRecord(
                f"Part number {part_number} already exists", field="partNumber", value=part_number
            )
