from datetime import date
from typing import Any, Dict, List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.route import Route, RouteStatus
from app.schemas.route import RouteCreate

class CRUDRoute(CRUDBase[Route, RouteCreate, RouteCreate]):
    def get_for_engineer(self, db: Session, *, route_id: int, engineer_id: str) -> Optional[Route]:
        return (
            db.query(Route)
            .filter(Route.id == route_id, Route.engineer_id == engineer_id)
            .first()
        )

    def get_multi_by_date(self, db: Session, *, on_date: Optional[date] = None) -> List[Route]:
        query = db.query(Route)
        if on_date:
            query = query.filter(Route.date == on_date)
        return query.order_by(Route.date.asc()).all()

    def get_multi_for_engineer(
        self,
        db: Session,
        *,
        engineer_id: str,
        on_date: Optional[date] = None,
        status: Optional[RouteStatus] = None,
    ) -> List[Route]:
        query = db.query(Route).filter(Route.engineer_id == engineer_id)
        if on_date:
            query = query.filter(Route.date == on_date)
        if status:
            query = query.filter(Route.status == status)
        return query.order_by(Route.date.desc()).all()

    def update_status_if(
        self,
        db: Session,
        *,
        route_id: int,
        expected: RouteStatus,
        values: Dict[str, Any],
    ) -> Optional[Route]:
        """Conditional update against the expected prior route status."""
        result = db.execute(
            update(Route)
            .where(Route.id == route_id, Route.status == expected)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            return None
        route = db.get(Route, route_id)
        db.refresh(route)
        return route

# Create a singleton instance
route = CRUDRoute(Route)
