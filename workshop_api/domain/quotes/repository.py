"""Quote repository - Database operations for quotes"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ElevatorReservation, Quote, QuoteItem
from ...shared.numbering import add_numbered


class QuoteRepository:
    """Repository for quote database operations"""

    @staticmethod
    def get_quote_by_id(
        db: Session, quote_id: str, tenant_id: str, for_update: bool = False
    ) -> Optional[Quote]:
        """Get a specific quote; with for_update the row stays locked until commit"""
        query = db.query(Quote).filter(Quote.id == quote_id, Quote.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def search_quotes(
        db: Session,
        tenant_id: str,
        page: int,
        limit: int,
        status: Optional[str] = None,
        customer_id: Optional[str] = None,
        assigned_mechanic_id: Optional[str] = None,
    ) -> tuple[list[Quote], int]:
        query = db.query(Quote).filter(Quote.tenant_id == tenant_id)
        if status:
            query = query.filter(Quote.status == status)
        if customer_id:
            query = query.filter(Quote.customer_id == customer_id)
        if assigned_mechanic_id:
            query = query.filter(Quote.assigned_mechanic_id == assigned_mechanic_id)

        total = query.count()
        items = (
            query.options(joinedload(Quote.customer), joinedload(Quote.assigned_mechanic))
            .order_by(Quote.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def create_quote(db: Session, tenant_id: str, **quote_data) -> Quote:
        """Stage a new quote with the next ORC number; the caller commits"""
        return add_numbered(db, Quote(tenant_id=tenant_id, **quote_data), "ORC")

    @staticmethod
    def replace_items(db: Session, quote: Quote, items: list[QuoteItem]) -> Quote:
        """Swap the quote's lines; orphaned lines are deleted on flush"""
        quote.items = items
        db.flush()
        return quote

    @staticmethod
    def update_quote(db: Session, quote: Quote, **updates) -> Quote:
        for key, value in updates.items():
            if hasattr(quote, key):
                setattr(quote, key, value)
        db.flush()
        return quote

    @staticmethod
    def get_reservations_for_quote(db: Session, quote_id: str) -> list[ElevatorReservation]:
        return db.query(ElevatorReservation).filter(ElevatorReservation.quote_id == quote_id).all()

    @staticmethod
    def delete_quote(db: Session, quote: Quote) -> None:
        db.delete(quote)
        db.flush()
