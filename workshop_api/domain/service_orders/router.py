"""Service order router - FastAPI endpoints for service orders"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import ServiceOrder, Tenant
from ...tenancy import get_current_tenant
from .schemas import (
    ServiceOrderCreate,
    ServiceOrderItemResponse,
    ServiceOrderListResponse,
    ServiceOrderResponse,
    ServiceOrderTransitionRequest,
)
from .service import ServiceOrderService
from .states import ServiceOrderStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/service-orders", tags=["Service Orders"])


def get_service_order_service(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
) -> ServiceOrderService:
    """Dependency injection for ServiceOrderService"""
    return ServiceOrderService(db, tenant.id)


def to_service_order_response(o: ServiceOrder) -> ServiceOrderResponse:
    return ServiceOrderResponse(
        id=o.id,
        number=o.number,
        customerId=o.customer_id,
        customerName=o.customer.name if o.customer else None,
        vehicleId=o.vehicle_id,
        technicianId=o.technician_id,
        technicianName=o.technician.name if o.technician else None,
        elevatorId=o.elevator_id,
        quoteId=o.quote_id,
        status=o.status,
        appointmentDate=o.appointment_date,
        estimatedHours=o.estimated_hours,
        laborCost=o.labor_cost,
        partsCost=o.parts_cost,
        discount=o.discount,
        totalCost=o.total_cost,
        items=[
            ServiceOrderItemResponse(
                id=item.id,
                type=item.type,
                partId=item.part_id,
                serviceId=item.service_id,
                name=item.name,
                description=item.description,
                quantity=item.quantity,
                unitCost=item.unit_cost,
                totalCost=item.total_cost,
                hours=item.hours,
            )
            for item in o.items
        ],
        notes=o.notes,
        startedAt=o.started_at,
        completedAt=o.completed_at,
        createdAt=o.created_at,
        updatedAt=o.updated_at,
    )


@router.post("", response_model=ServiceOrderResponse, status_code=201)
async def create_service_order(
    data: ServiceOrderCreate,
    service: ServiceOrderService = Depends(get_service_order_service),
):
    """Open a service order without going through a quote"""
    order = service.create_service_order(data)
    return to_service_order_response(order)


@router.get("", response_model=ServiceOrderListResponse)
async def list_service_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[ServiceOrderStatus] = Query(None),
    customerId: Optional[str] = Query(None),
    technicianId: Optional[str] = Query(None),
    service: ServiceOrderService = Depends(get_service_order_service),
):
    result = service.list_service_orders(
        page=page,
        limit=limit,
        status=status.value if status else None,
        customer_id=customerId,
        technician_id=technicianId,
    )
    return ServiceOrderListResponse(
        data=[to_service_order_response(o) for o in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        totalPages=result["totalPages"],
    )


@router.get("/{service_order_id}", response_model=ServiceOrderResponse)
async def get_service_order(
    service_order_id: str,
    service: ServiceOrderService = Depends(get_service_order_service),
):
    order = service.get_service_order(service_order_id)
    return to_service_order_response(order)


@router.post("/{service_order_id}/transition", response_model=ServiceOrderResponse)
async def transition_service_order(
    service_order_id: str,
    data: ServiceOrderTransitionRequest,
    service: ServiceOrderService = Depends(get_service_order_service),
):
    """Start, complete or cancel a service order"""
    order = service.transition(service_order_id, data.status)
    return to_service_order_response(order)
