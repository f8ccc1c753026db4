"""Customer router - FastAPI endpoints for customers and vehicles"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Customer, Tenant, Vehicle
from ...tenancy import get_current_tenant
from .schemas import (
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
    VehicleCreate,
    VehicleResponse,
)
from .service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["Customers"])


def get_customer_service(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db, tenant.id)


def to_vehicle_response(v: Vehicle) -> VehicleResponse:
    return VehicleResponse(
        id=v.id,
        customerId=v.customer_id,
        plate=v.plate,
        vin=v.vin,
        make=v.make,
        model=v.model,
        year=v.year,
        mileage=v.mileage,
        createdAt=v.created_at,
    )


def to_customer_response(c: Customer) -> CustomerResponse:
    return CustomerResponse(
        id=c.id,
        name=c.name,
        email=c.email,
        phone=c.phone,
        document=c.document,
        notes=c.notes,
        vehicles=[to_vehicle_response(v) for v in c.vehicles],
        createdAt=c.created_at,
        updatedAt=c.updated_at,
    )


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(
    data: CustomerCreate,
    service: CustomerService = Depends(get_customer_service),
):
    customer = service.create_customer(data)
    return to_customer_response(customer)


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = Query(None),
    service: CustomerService = Depends(get_customer_service),
):
    """Search customers by name, email or phone"""
    result = service.list_customers(page, limit, search)
    return CustomerListResponse(
        data=[to_customer_response(c) for c in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        totalPages=result["totalPages"],
    )


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: str,
    service: CustomerService = Depends(get_customer_service),
):
    customer = service.get_customer(customer_id)
    return to_customer_response(customer)


@router.patch("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    service: CustomerService = Depends(get_customer_service),
):
    customer = service.update_customer(customer_id, data)
    return to_customer_response(customer)


@router.post("/{customer_id}/vehicles", response_model=VehicleResponse, status_code=201)
async def add_vehicle(
    customer_id: str,
    data: VehicleCreate,
    service: CustomerService = Depends(get_customer_service),
):
    vehicle = service.add_vehicle(customer_id, data)
    return to_vehicle_response(vehicle)


@router.get("/{customer_id}/vehicles", response_model=list[VehicleResponse])
async def list_vehicles(
    customer_id: str,
    service: CustomerService = Depends(get_customer_service),
):
    return [to_vehicle_response(v) for v in service.list_vehicles(customer_id)]
