"""Part router - FastAPI endpoints for inventory parts"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Part, Tenant
from ...tenancy import get_current_tenant
from .schemas import PartCreate, PartListResponse, PartResponse, PartUpdate
from .service import PartService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parts", tags=["Parts"])


def get_part_service(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
) -> PartService:
    """Dependency injection for PartService"""
    return PartService(db, tenant.id)


def to_part_response(p: Part) -> PartResponse:
    return PartResponse(
        id=p.id,
        partNumber=p.part_number,
        name=p.name,
        description=p.description,
        category=p.category,
        brand=p.brand,
        quantity=p.quantity,
        minQuantity=p.min_quantity,
        costPrice=p.cost_price,
        sellPrice=p.sell_price,
        location=p.location,
        isActive=p.is_active,
        lowStock=p.low_stock,
        createdAt=p.created_at,
        updatedAt=p.updated_at,
    )


@router.post("", response_model=PartResponse, status_code=201)
async def create_part(
    data: PartCreate,
    service: PartService = Depends(get_part_service),
):
    part = service.create_part(data)
    return to_part_response(part)


@router.get("", response_model=PartListResponse)
async def list_parts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    lowStock: Optional[bool] = Query(None),
    isActive: Optional[bool] = Query(None),
    service: PartService = Depends(get_part_service),
):
    """List parts; lowStock=true keeps only parts below their minimum quantity"""
    result = service.list_parts(
        page=page,
        limit=limit,
        search=search,
        category=category,
        low_stock=lowStock,
        is_active=isActive,
    )
    return PartListResponse(
        data=[to_part_response(p) for p in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        totalPages=result["totalPages"],
    )


@router.get("/{part_id}", response_model=PartResponse)
async def get_part(
    part_id: str,
    service: PartService = Depends(get_part_service),
):
    part = service.get_part(part_id)
    return to_part_response(part)


@router.patch("/{part_id}", response_model=PartResponse)
async def update_part(
    part_id: str,
    data: PartUpdate,
    service: PartService = Depends(get_part_service),
):
    part = service.update_part(part_id, data)
    return to_part_response(part)


@router.delete("/{part_id}")
async def delete_part(
    part_id: str,
    service: PartService = Depends(get_part_service),
):
    service.delete_part(part_id)
    return {"message": "Part deleted successfully"}
