"""Quote service - the quote to service order workflow"""

import logging
import math
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...config import DEFAULT_RESERVATION_MINUTES
from ...errors import InvalidTransition, NotFound, ValidationError
from ...models import Quote, QuoteItem, ServiceOrder, ServiceOrderItem
from ...shared.lookups import (
    require_customer,
    require_elevator,
    require_mechanic,
    require_part,
    require_vehicle,
)
from ...shared.pricing import compute_total, line_total
from ...shared.timeutils import to_utc_naive, utcnow
from ..elevators.repository import ElevatorRepository
from ..elevators.service import ElevatorService
from ..service_orders.repository import ServiceOrderRepository
from ..service_orders.states import ServiceOrderStatus
from .repository import QuoteRepository
from .schemas import (
    MAX_ESTIMATED_HOURS,
    MIN_ESTIMATED_HOURS,
    CompleteDiagnosisRequest,
    QuoteCreate,
    QuoteItemInput,
    QuoteItemType,
    QuoteUpdate,
)
from .states import ASSIGNABLE_STATUSES, EDITABLE_STATUSES, QuoteStatus, require_transition

logger = logging.getLogger(__name__)


class QuoteService:
    """Service layer for quote business logic"""

    def __init__(self, db: Session, tenant_id: str):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = QuoteRepository()
        self.elevators = ElevatorService(db, tenant_id)
        self.service_orders = ServiceOrderRepository()

    # ========================================================================
    # CORE CRUD OPERATIONS
    # ========================================================================

    def get_quote(self, quote_id: str, for_update: bool = False) -> Quote:
        quote = self.repo.get_quote_by_id(self.db, quote_id, self.tenant_id, for_update)
        if not quote:
            raise NotFound("Quote", quote_id)
        return quote

    def list_quotes(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        assigned_mechanic_id: Optional[str] = None,
    ) -> dict:
        items, total = self.repo.search_quotes(
            self.db,
            self.tenant_id,
            page,
            limit,
            status=status,
            customer_id=customer_id,
            assigned_mechanic_id=assigned_mechanic_id,
        )
        return {
            "data": items,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if limit else 0,
        }

    def active_reservation_id(self, quote_id: str) -> Optional[str]:
        reservation = ElevatorRepository.find_active_reservation_for_quote(self.db, quote_id)
        return reservation.id if reservation else None

    def create_quote(self, data: QuoteCreate) -> Quote:
        try:
            self._ensure_references(data.customerId, data.vehicleId, data.elevatorId)
            items = self._build_items(data.items)
            quote = self.repo.create_quote(
                self.db,
                self.tenant_id,
                customer_id=data.customerId,
                vehicle_id=data.vehicleId,
                elevator_id=data.elevatorId,
                reported_problem=data.reportedProblem,
                labor_cost=data.laborCost,
                parts_cost=data.partsCost,
                discount=data.discount,
                total_cost=compute_total(data.laborCost, data.partsCost, data.discount, items),
                status=QuoteStatus.DRAFT.value,
            )
            self.repo.replace_items(self.db, quote, items)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        logger.info(f"Quote {quote.number} ({quote.id}) created in tenant {self.tenant_id}")
        return quote

    def update_quote(self, quote_id: str, data: QuoteUpdate) -> Quote:
        fields = data.model_dump(exclude_unset=True)
        try:
            quote = self.get_quote(quote_id, for_update=True)
            status = QuoteStatus(quote.status)
            if status not in EDITABLE_STATUSES:
                raise InvalidTransition(
                    "quote", status.value, status.value, f"Quote in status {status.value} can no longer be edited"
                )

            customer_id = fields.get("customerId", quote.customer_id)
            self._ensure_references(
                fields.get("customerId"),
                fields.get("vehicleId"),
                fields.get("elevatorId"),
                owner_customer_id=customer_id,
            )

            column_map = {
                "customerId": "customer_id",
                "vehicleId": "vehicle_id",
                "elevatorId": "elevator_id",
                "reportedProblem": "reported_problem",
                "laborCost": "labor_cost",
                "partsCost": "parts_cost",
                "discount": "discount",
            }
            updates = {column_map[key]: value for key, value in fields.items() if key in column_map}
            for money_field in ("labor_cost", "parts_cost", "discount"):
                if money_field in updates and updates[money_field] is None:
                    updates[money_field] = 0
            self.repo.update_quote(self.db, quote, **updates)
            if data.items is not None:
                self.repo.replace_items(self.db, quote, self._build_items(data.items))
            quote.total_cost = compute_total(quote.labor_cost, quote.parts_cost, quote.discount, quote.items)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        logger.info(f"Quote {quote.number} updated: {sorted(fields)}")
        return quote

    def delete_quote(self, quote_id: str) -> None:
        """Delete a quote that has not become a service order"""
        try:
            quote = self.get_quote(quote_id, for_update=True)
            if quote.status == QuoteStatus.CONVERTED.value:
                raise InvalidTransition(
                    "quote",
                    quote.status,
                    "deleted",
                    "Quote was converted to a service order and cannot be deleted",
                )
            # Release elevator bookings made on approval
            released = set()
            for reservation in self.repo.get_reservations_for_quote(self.db, quote.id):
                if reservation.status == "active":
                    reservation.status = "cancelled"
                    released.add(reservation.elevator_id)
                reservation.quote_id = None
            # Unlink before the delete so the foreign key is clear
            self.db.flush()
            for elevator_id in released:
                self.elevators.release_if_unreserved(self.elevators.get_elevator(elevator_id, for_update=True))
            self.repo.delete_quote(self.db, quote)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Quote {quote_id} deleted from tenant {self.tenant_id}")

    # ========================================================================
    # WORKFLOW
    # ========================================================================

    def send_for_diagnosis(self, quote_id: str) -> Quote:
        return self._move(quote_id, QuoteStatus.PENDING_DIAGNOSIS)

    def assign_mechanic(
        self, quote_id: str, mechanic_id: Optional[str] = None, reason: Optional[str] = None
    ) -> Quote:
        """Assign (or clear, without mechanic_id) the diagnosing mechanic; status is unchanged"""
        try:
            quote = self.get_quote(quote_id, for_update=True)
            status = QuoteStatus(quote.status)
            if status not in ASSIGNABLE_STATUSES:
                raise InvalidTransition(
                    "quote",
                    status.value,
                    status.value,
                    f"Cannot assign a mechanic to a quote in status {status.value}",
                )
            if mechanic_id:
                require_mechanic(self.db, self.tenant_id, mechanic_id)

            previous = quote.assigned_mechanic_id
            if previous and previous != mechanic_id:
                logger.info(
                    f"Quote {quote.number} reassigned from {previous} to {mechanic_id}: "
                    f"{reason or 'no reason given'}"
                )

            self.repo.update_quote(
                self.db,
                quote,
                assigned_mechanic_id=mechanic_id,
                assignment_reason=reason,
                assigned_at=utcnow() if mechanic_id else None,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        logger.info(f"Quote {quote.number} assigned to mechanic {mechanic_id}")
        return quote

    def complete_diagnosis(self, quote_id: str, data: CompleteDiagnosisRequest) -> Quote:
        try:
            quote = self.get_quote(quote_id, for_update=True)
            require_transition(QuoteStatus(quote.status), QuoteStatus.DIAGNOSIS_COMPLETE)

            if data.items is not None:
                self.repo.replace_items(self.db, quote, self._build_items(data.items))
            estimated_hours = data.estimatedHours
            if estimated_hours is None:
                # Without an explicit estimate the service lines set the workload
                estimated_hours = sum(item.hours or 0 for item in quote.items)
                if not MIN_ESTIMATED_HOURS <= estimated_hours <= MAX_ESTIMATED_HOURS:
                    raise ValidationError(
                        f"estimatedHours is required unless service items add up to between "
                        f"{MIN_ESTIMATED_HOURS} and {MAX_ESTIMATED_HOURS} hours",
                        field="estimatedHours",
                    )

            updates = {
                "problem_category": data.identifiedProblemCategory,
                "problem_description": data.identifiedProblemDescription,
                "recommendations": data.recommendations,
                "diagnostic_notes": data.diagnosticNotes,
                "estimated_hours": estimated_hours,
                "diagnosed_at": utcnow(),
                "status": QuoteStatus.DIAGNOSIS_COMPLETE.value,
            }
            if data.laborCost is not None:
                updates["labor_cost"] = data.laborCost
            if data.partsCost is not None:
                updates["parts_cost"] = data.partsCost
            self.repo.update_quote(self.db, quote, **updates)
            quote.total_cost = compute_total(quote.labor_cost, quote.parts_cost, quote.discount, quote.items)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        logger.info(f"Quote {quote.number} diagnosis complete ({quote.estimated_hours}h)")
        return quote

    def send_to_customer(self, quote_id: str) -> Quote:
        return self._move(quote_id, QuoteStatus.AWAITING_APPROVAL, sent_at=utcnow())

    def approve(
        self,
        quote_id: str,
        signature: Optional[str] = None,
        elevator_id: Optional[str] = None,
        scheduled_start: Optional[datetime] = None,
    ) -> Quote:
        """
        Approve the quote, reserving the elevator in the same transaction.

        If the elevator is not free nothing is written: the quote stays in
        awaiting_approval and no reservation exists.
        """
        try:
            quote = self.get_quote(quote_id, for_update=True)
            require_transition(QuoteStatus(quote.status), QuoteStatus.APPROVED)

            target_elevator = elevator_id or quote.elevator_id
            if target_elevator:
                elevator = self.elevators.get_elevator(target_elevator, for_update=True)
                duration = (
                    round(quote.estimated_hours * 60)
                    if quote.estimated_hours
                    else DEFAULT_RESERVATION_MINUTES
                )
                self.elevators.place_reservation(
                    elevator,
                    to_utc_naive(scheduled_start) or utcnow(),
                    duration,
                    vehicle_id=quote.vehicle_id,
                    quote_id=quote.id,
                    notes=f"Quote {quote.number}",
                )
                quote.elevator_id = elevator.id

            self.repo.update_quote(
                self.db,
                quote,
                status=QuoteStatus.APPROVED.value,
                customer_signature=signature,
                approved_at=utcnow(),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        logger.info(
            f"Quote {quote.number} approved"
            + (f" with elevator {quote.elevator_id} reserved" if target_elevator else "")
        )
        return quote

    def reject(self, quote_id: str, reason: Optional[str] = None) -> Quote:
        return self._move(
            quote_id, QuoteStatus.REJECTED, rejected_at=utcnow(), rejection_reason=reason
        )

    def convert(self, quote_id: str) -> tuple[Quote, ServiceOrder]:
        """Turn an approved quote into a scheduled service order"""
        try:
            quote = self.get_quote(quote_id, for_update=True)
            require_transition(QuoteStatus(quote.status), QuoteStatus.CONVERTED)

            reservation = ElevatorRepository.find_active_reservation_for_quote(self.db, quote.id)
            notes = "\n".join(
                part for part in (quote.problem_description, quote.recommendations) if part
            )
            order = self.service_orders.create_service_order(
                self.db,
                self.tenant_id,
                customer_id=quote.customer_id,
                vehicle_id=quote.vehicle_id,
                technician_id=quote.assigned_mechanic_id,
                elevator_id=quote.elevator_id,
                quote_id=quote.id,
                appointment_date=reservation.start_time if reservation else None,
                estimated_hours=quote.estimated_hours,
                labor_cost=quote.labor_cost,
                parts_cost=quote.parts_cost,
                discount=quote.discount,
                total_cost=quote.total_cost,
                notes=notes or None,
                status=ServiceOrderStatus.SCHEDULED.value,
            )
            order.items = [
                ServiceOrderItem(
                    position=item.position,
                    type=item.type,
                    part_id=item.part_id,
                    service_id=item.service_id,
                    name=item.name,
                    description=item.description,
                    quantity=item.quantity,
                    unit_cost=item.unit_cost,
                    total_cost=item.total_cost,
                    hours=item.hours,
                )
                for item in quote.items
            ]
            self.db.flush()
            if reservation:
                reservation.service_order_id = order.id

            self.repo.update_quote(
                self.db,
                quote,
                status=QuoteStatus.CONVERTED.value,
                converted_at=utcnow(),
                service_order_id=order.id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        self.db.refresh(order)
        logger.info(f"Quote {quote.number} converted to service order {order.number}")
        return quote, order

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _move(self, quote_id: str, new_status: QuoteStatus, **updates) -> Quote:
        """Plain status change with optional timestamp fields"""
        try:
            quote = self.get_quote(quote_id, for_update=True)
            current = QuoteStatus(quote.status)
            require_transition(current, new_status)
            self.repo.update_quote(self.db, quote, status=new_status.value, **updates)
            self.db.commit()
        except InvalidTransition:
            self.db.rollback()
            logger.warning(f"Rejected quote transition {quote_id} -> {new_status.value}")
            raise
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(quote)
        logger.info(f"Quote {quote.number}: {current.value} -> {new_status.value}")
        return quote

    def _ensure_references(
        self,
        customer_id: Optional[str],
        vehicle_id: Optional[str],
        elevator_id: Optional[str],
        owner_customer_id: Optional[str] = None,
    ) -> None:
        if customer_id:
            require_customer(self.db, self.tenant_id, customer_id)
        if vehicle_id:
            require_vehicle(self.db, self.tenant_id, vehicle_id, owner_customer_id or customer_id)
        if elevator_id:
            require_elevator(self.db, self.tenant_id, elevator_id)

    def _build_items(self, items: list[QuoteItemInput]) -> list[QuoteItem]:
        """Validate quote lines against the tenant's inventory and price them"""
        built = []
        for position, item in enumerate(items):
            part = None
            if item.type == QuoteItemType.PART:
                if item.hours is not None:
                    raise ValidationError("Only service items carry hours", field=f"items[{position}].hours")
                if item.partId:
                    part = require_part(self.db, self.tenant_id, item.partId)
            elif item.partId:
                raise ValidationError("Service items cannot reference a part", field=f"items[{position}].partId")

            name = item.name or (part.name if part else None)
            if not name:
                raise ValidationError("Item name is required", field=f"items[{position}].name")
            unit_cost = item.unitCost if item.unitCost is not None else (part.sell_price if part else None)
            if unit_cost is None:
                raise ValidationError("Item unit cost is required", field=f"items[{position}].unitCost")

            built.append(
                QuoteItem(
                    position=position,
                    type=item.type.value,
                    part_id=part.id if part else None,
                    service_id=item.serviceId if item.type == QuoteItemType.SERVICE else None,
                    name=name,
                    description=item.description,
                    quantity=item.quantity,
                    unit_cost=unit_cost,
                    total_cost=line_total(item.quantity, unit_cost),
                    hours=item.hours,
                )
            )
        return built

