"""Quote router - FastAPI endpoints for the quote workflow"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import Quote, QuoteItem, Tenant
from ...tenancy import get_current_tenant
from ..service_orders.router import to_service_order_response
from ..service_orders.schemas import ServiceOrderResponse
from .schemas import (
    ApproveRequest,
    AssignMechanicRequest,
    CompleteDiagnosisRequest,
    QuoteCreate,
    QuoteItemResponse,
    QuoteListResponse,
    QuoteResponse,
    QuoteUpdate,
    RejectRequest,
)
from .service import QuoteService
from .states import QuoteStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quotes", tags=["Quotes"])


def get_quote_service(
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db),
) -> QuoteService:
    """Dependency injection for QuoteService"""
    return QuoteService(db, tenant.id)


def to_quote_item_response(item: QuoteItem) -> QuoteItemResponse:
    return QuoteItemResponse(
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


def to_quote_response(q: Quote, reservation_id: Optional[str] = None) -> QuoteResponse:
    return QuoteResponse(
        id=q.id,
        number=q.number,
        status=q.status,
        customerId=q.customer_id,
        customerName=q.customer.name if q.customer else None,
        vehicleId=q.vehicle_id,
        elevatorId=q.elevator_id,
        reportedProblem=q.reported_problem,
        assignedMechanicId=q.assigned_mechanic_id,
        assignedMechanicName=q.assigned_mechanic.name if q.assigned_mechanic else None,
        assignmentReason=q.assignment_reason,
        assignedAt=q.assigned_at,
        identifiedProblemCategory=q.problem_category,
        identifiedProblemDescription=q.problem_description,
        recommendations=q.recommendations,
        diagnosticNotes=q.diagnostic_notes,
        estimatedHours=q.estimated_hours,
        diagnosedAt=q.diagnosed_at,
        laborCost=q.labor_cost,
        partsCost=q.parts_cost,
        discount=q.discount,
        totalCost=q.total_cost,
        items=[to_quote_item_response(item) for item in q.items],
        customerSignature=q.customer_signature,
        sentAt=q.sent_at,
        approvedAt=q.approved_at,
        rejectedAt=q.rejected_at,
        rejectionReason=q.rejection_reason,
        convertedAt=q.converted_at,
        serviceOrderId=q.service_order_id,
        reservationId=reservation_id,
        createdAt=q.created_at,
        updatedAt=q.updated_at,
    )


def _detail(service: QuoteService, quote: Quote) -> QuoteResponse:
    return to_quote_response(quote, service.active_reservation_id(quote.id))


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=QuoteResponse, status_code=201)
async def create_quote(
    data: QuoteCreate,
    service: QuoteService = Depends(get_quote_service),
):
    """Create a draft quote"""
    quote = service.create_quote(data)
    return to_quote_response(quote)


@router.get("", response_model=QuoteListResponse)
async def list_quotes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[QuoteStatus] = Query(None),
    customerId: Optional[str] = Query(None),
    assignedMechanicId: Optional[str] = Query(None),
    service: QuoteService = Depends(get_quote_service),
):
    result = service.list_quotes(
        page=page,
        limit=limit,
        status=status.value if status else None,
        customer_id=customerId,
        assigned_mechanic_id=assignedMechanicId,
    )
    return QuoteListResponse(
        data=[to_quote_response(q) for q in result["data"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        totalPages=result["totalPages"],
    )


@router.get("/{quote_id}", response_model=QuoteResponse)
async def get_quote(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    quote = service.get_quote(quote_id)
    return _detail(service, quote)


@router.patch("/{quote_id}", response_model=QuoteResponse)
async def update_quote(
    quote_id: str,
    data: QuoteUpdate,
    service: QuoteService = Depends(get_quote_service),
):
    """Edit a quote that has not been sent to the customer yet"""
    quote = service.update_quote(quote_id, data)
    return _detail(service, quote)


@router.delete("/{quote_id}")
async def delete_quote(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    service.delete_quote(quote_id)
    return {"message": "Quote deleted successfully"}


# ============================================================================
# WORKFLOW
# ============================================================================


@router.post("/{quote_id}/send-for-diagnosis", response_model=QuoteResponse)
async def send_for_diagnosis(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    quote = service.send_for_diagnosis(quote_id)
    return _detail(service, quote)


@router.post("/{quote_id}/assign-mechanic", response_model=QuoteResponse)
async def assign_mechanic(
    quote_id: str,
    data: AssignMechanicRequest,
    service: QuoteService = Depends(get_quote_service),
):
    """Assign the mechanic responsible for the diagnosis"""
    quote = service.assign_mechanic(quote_id, data.mechanicId, data.reason)
    return _detail(service, quote)


@router.post("/{quote_id}/complete-diagnosis", response_model=QuoteResponse)
async def complete_diagnosis(
    quote_id: str,
    data: CompleteDiagnosisRequest,
    service: QuoteService = Depends(get_quote_service),
):
    quote = service.complete_diagnosis(quote_id, data)
    return _detail(service, quote)


@router.post("/{quote_id}/send", response_model=QuoteResponse)
async def send_to_customer(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    """Send the diagnosed quote to the customer for approval"""
    quote = service.send_to_customer(quote_id)
    return _detail(service, quote)


@router.post("/{quote_id}/approve", response_model=QuoteResponse)
async def approve_quote(
    quote_id: str,
    data: ApproveRequest,
    service: QuoteService = Depends(get_quote_service),
):
    """Approve the quote; answers 409 if the elevator cannot be reserved"""
    quote = service.approve(quote_id, data.customerSignature, data.elevatorId, data.scheduledStart)
    return _detail(service, quote)


@router.post("/{quote_id}/reject", response_model=QuoteResponse)
async def reject_quote(
    quote_id: str,
    data: RejectRequest,
    service: QuoteService = Depends(get_quote_service),
):
    quote = service.reject(quote_id, data.reason)
    return _detail(service, quote)


@router.post("/{quote_id}/convert", response_model=ServiceOrderResponse, status_code=201)
async def convert_quote(
    quote_id: str,
    service: QuoteService = Depends(get_quote_service),
):
    """Create the service order for an approved quote"""
    _quote, order = service.convert(quote_id)
    return to_service_order_response(order)
