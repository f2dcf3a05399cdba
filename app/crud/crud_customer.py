from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.customer import Customer, CustomerStatus
from app.schemas.customer import CustomerUpdate

class CRUDCustomer(CRUDBase[Customer, CustomerUpdate, CustomerUpdate]):
    def get_many(self, db: Session, *, ids: Iterable[int]) -> List[Customer]:
        ids = list(ids)
        if not ids:
            return []
        return db.query(Customer).filter(Customer.id.in_(ids)).all()

    def get_available(self, db: Session, *, skip: int = 0, limit: int = 100) -> List[Customer]:
        return (
            db.query(Customer)
            .filter(Customer.status == CustomerStatus.new)
            .order_by(Customer.scheduled_time.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count_available(self, db: Session) -> int:
        return db.query(Customer).filter(Customer.status == CustomerStatus.new).count()

    def get_unscheduled(
        self, db: Session, *, on_date: Optional[date] = None, priority: Optional[str] = None
    ) -> List[Customer]:
        query = db.query(Customer).filter(Customer.status == CustomerStatus.new)
        if on_date:
            start_of_day = datetime.combine(on_date, time.min)
            query = query.filter(
                Customer.scheduled_time >= start_of_day,
                Customer.scheduled_time < start_of_day + timedelta(days=1),
            )
        if priority:
            query = query.filter(Customer.priority == priority)
        return query.order_by(Customer.priority.asc(), Customer.scheduled_time.asc()).all()

    def update_many(self, db: Session, *, ids: Iterable[int], values: Dict[str, Any]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        result = db.execute(
            update(Customer)
            .where(Customer.id.in_(ids))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def reset_to_unassigned(self, db: Session, *, ids: Iterable[int]) -> int:
        """Put customers back into the unassigned pool."""
        return self.update_many(
            db,
            ids=ids,
            values={
                "status": CustomerStatus.new,
                "assigned_engineer": None,
                "scheduled_time": None,
            },
        )

# Create a singleton instance
customer = CRUDCustomer(Customer)
