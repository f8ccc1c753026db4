import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base
from .shared.timeutils import utcnow


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class Tenant(Base):
    """A workshop. Every other record belongs to exactly one tenant."""

    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    # Operating hours (UTC); null falls back to the configured defaults
    work_start_hour = Column(Integer, nullable=True)
    work_end_hour = Column(Integer, nullable=True)
    slot_interval_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(String(50), default="mechanic", nullable=False)  # admin, manager, mechanic, receptionist
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    document = Column(String(50), nullable=True)  # CPF/CNPJ or other tax id
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    vehicles = relationship("Vehicle", back_populates="customer", cascade="all, delete-orphan")


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    plate = Column(String(20), nullable=True, index=True)
    vin = Column(String(17), nullable=True)
    make = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    mileage = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    customer = relationship("Customer", back_populates="vehicles")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_tenant_date", "tenant_id", "date"),
        Index("ix_appointments_mechanic_date", "assigned_to_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    service_order_id = Column(String(36), ForeignKey("service_orders.id"), nullable=True)
    assigned_to_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    elevator_id = Column(String(36), ForeignKey("elevators.id"), nullable=True, index=True)

    date = Column(DateTime, nullable=False)
    duration = Column(Integer, default=60, nullable=False)  # minutes, 15..480
    service_type = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    # scheduled → confirmed → in_progress → completed; cancelled / no_show side exits
    status = Column(String(50), default="scheduled", nullable=False, index=True)
    reminder_sent = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    customer = relationship("Customer")
    assigned_to = relationship("User")
    service_order = relationship("ServiceOrder")
    elevator = relationship("Elevator")


class Elevator(Base):
    __tablename__ = "elevators"
    __table_args__ = (UniqueConstraint("tenant_id", "number", name="uq_elevators_tenant_number"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    number = Column(String(50), nullable=False)
    type = Column(String(50), default="hydraulic", nullable=False)  # hydraulic, pneumatic, scissor
    capacity = Column(Float, nullable=True)  # kg
    status = Column(String(50), default="available", nullable=False)  # available, reserved, occupied, maintenance
    location = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    usages = relationship("ElevatorUsage", back_populates="elevator", cascade="all, delete-orphan")
    reservations = relationship(
        "ElevatorReservation", back_populates="elevator", cascade="all, delete-orphan"
    )


class ElevatorUsage(Base):
    """Physical occupancy of an elevator; open while end_time is null"""

    __tablename__ = "elevator_usages"
    __table_args__ = (
        # At most one open usage per elevator
        Index(
            "uq_elevator_usages_open",
            "elevator_id",
            unique=True,
            sqlite_where=text("end_time IS NULL"),
            postgresql_where=text("end_time IS NULL"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    elevator_id = Column(String(36), ForeignKey("elevators.id"), nullable=False, index=True)
    service_order_id = Column(String(36), ForeignKey("service_orders.id"), nullable=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)  # set once, when the usage ends
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    elevator = relationship("Elevator", back_populates="usages")
    service_order = relationship("ServiceOrder")
    vehicle = relationship("Vehicle")


class ElevatorReservation(Base):
    """Future claim on an elevator for the window [start_time, end_time)"""

    __tablename__ = "elevator_reservations"
    __table_args__ = (Index("ix_elevator_reservations_window", "elevator_id", "start_time"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    elevator_id = Column(String(36), ForeignKey("elevators.id"), nullable=False)
    service_order_id = Column(String(36), ForeignKey("service_orders.id"), nullable=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=True)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(50), default="active", nullable=False)  # active, fulfilled, cancelled
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    elevator = relationship("Elevator", back_populates="reservations")


class Quote(Base):
    __tablename__ = "quotes"
    __table_args__ = (UniqueConstraint("tenant_id", "number", name="uq_quotes_tenant_number"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    number = Column(String(50), nullable=False)  # ORC-YYYY-NNNN
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=True)
    elevator_id = Column(String(36), ForeignKey("elevators.id"), nullable=True)

    # draft → pending_diagnosis → diagnosis_complete → awaiting_approval → approved → converted
    status = Column(String(50), default="draft", nullable=False, index=True)

    reported_problem = Column(Text, nullable=True)

    # Mechanic assignment
    assigned_mechanic_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    assignment_reason = Column(Text, nullable=True)
    assigned_at = Column(DateTime, nullable=True)

    # Diagnosis
    problem_category = Column(String(50), nullable=True)
    problem_description = Column(Text, nullable=True)
    recommendations = Column(Text, nullable=True)
    diagnostic_notes = Column(Text, nullable=True)
    estimated_hours = Column(Float, nullable=True)
    diagnosed_at = Column(DateTime, nullable=True)

    # Pricing
    labor_cost = Column(Float, default=0, nullable=False)
    parts_cost = Column(Float, default=0, nullable=False)
    discount = Column(Float, default=0, nullable=False)
    total_cost = Column(Float, default=0, nullable=False)

    # Approval
    customer_signature = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    converted_at = Column(DateTime, nullable=True)
    service_order_id = Column(String(36), ForeignKey("service_orders.id"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    customer = relationship("Customer")
    vehicle = relationship("Vehicle")
    assigned_mechanic = relationship("User")
    elevator = relationship("Elevator")
    items = relationship(
        "QuoteItem", back_populates="quote", cascade="all, delete-orphan", order_by="QuoteItem.position"
    )


class QuoteItem(Base):
    """A priced line of a quote: a service (labor) or a part"""

    __tablename__ = "quote_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    quote_id = Column(String(36), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)
    type = Column(String(20), nullable=False)  # service, part
    part_id = Column(String(36), ForeignKey("parts.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(String(36), nullable=True)  # catalog reference, stored as given
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    unit_cost = Column(Float, default=0, nullable=False)
    total_cost = Column(Float, default=0, nullable=False)
    hours = Column(Float, nullable=True)

    quote = relationship("Quote", back_populates="items")


class ServiceOrder(Base):
    __tablename__ = "service_orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_service_orders_tenant_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    number = Column(String(50), nullable=False)  # OS-YYYY-NNNN
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=True)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=True)
    technician_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    elevator_id = Column(String(36), ForeignKey("elevators.id"), nullable=True)
    quote_id = Column(String(36), nullable=True)

    # scheduled → in_progress → completed; cancelled side exit
    status = Column(String(50), default="scheduled", nullable=False, index=True)
    appointment_date = Column(DateTime, nullable=True)
    estimated_hours = Column(Float, nullable=True)

    labor_cost = Column(Float, default=0, nullable=False)
    parts_cost = Column(Float, default=0, nullable=False)
    discount = Column(Float, default=0, nullable=False)
    total_cost = Column(Float, default=0, nullable=False)
    notes = Column(Text, nullable=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    customer = relationship("Customer")
    vehicle = relationship("Vehicle")
    technician = relationship("User")
    items = relationship(
        "ServiceOrderItem",
        back_populates="service_order",
        cascade="all, delete-orphan",
        order_by="ServiceOrderItem.position",
    )


class ServiceOrderItem(Base):
    """Work line carried over from the approved quote"""

    __tablename__ = "service_order_items"

    id = Column(String(36), primary_key=True, default=generate_id)
    service_order_id = Column(
        String(36), ForeignKey("service_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, default=0, nullable=False)
    type = Column(String(20), nullable=False)  # service, part
    part_id = Column(String(36), ForeignKey("parts.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(String(36), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    unit_cost = Column(Float, default=0, nullable=False)
    total_cost = Column(Float, default=0, nullable=False)
    hours = Column(Float, nullable=True)

    service_order = relationship("ServiceOrder", back_populates="items")


class Part(Base):
    __tablename__ = "parts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "part_number", name="uq_parts_tenant_part_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    part_number = Column(String(100), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    brand = Column(String(100), nullable=True)
    quantity = Column(Integer, default=0, nullable=False)
    min_quantity = Column(Integer, default=0, nullable=False)  # reorder threshold
    cost_price = Column(Float, default=0, nullable=False)
    sell_price = Column(Float, default=0, nullable=False)
    location = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def low_stock(self) -> bool:
        return self.quantity < self.min_quantity
