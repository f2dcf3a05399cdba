from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.job import Job, JobStatus
from app.schemas.job import JobUpdate

class CRUDJob(CRUDBase[Job, JobUpdate, JobUpdate]):
    def get_by_route(self, db: Session, *, route_id: int) -> List[Job]:
        return (
            db.query(Job)
            .filter(Job.route_id == route_id)
            .order_by(Job.route_order.asc())
            .all()
        )

    def get_by_customer(self, db: Session, *, customer_id: int) -> List[Job]:
        return db.query(Job).filter(Job.customer_id == customer_id).all()

    def get_by_engineer(self, db: Session, *, engineer_id: str) -> List[Job]:
        return (
            db.query(Job)
            .filter(Job.engineer_uuid == engineer_id)
            .order_by(Job.created_at.desc(), Job.id.desc())
            .all()
        )

    def update_status_if(
        self,
        db: Session,
        *,
        job_id: int,
        expected: JobStatus,
        values: Dict[str, Any],
    ) -> Optional[Job]:
        """
        Conditional update: apply ``values`` only while the stored status is ``expected``.

        Returns the refreshed job, or None when the row no longer matches
        (another request already moved it on).
        """
        result = db.execute(
            update(Job)
            .where(Job.id == job_id, Job.job_status == expected)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            return None
        job = db.get(Job, job_id)
        db.refresh(job)
        return job

    def detach_from_route(
        self,
        db: Session,
        *,
        route_id: int,
        status: JobStatus,
        expected: Optional[Iterable[JobStatus]] = None,
    ) -> int:
        """Set every job on the route to ``status`` and clear its linkage, optionally only jobs still in ``expected``."""
        conditions = [Job.route_id == route_id]
        if expected is not None:
            conditions.append(Job.job_status.in_(list(expected)))
        result = db.execute(
            update(Job)
            .where(*conditions)
            .values(job_status=status, route_id=None, route_order=None)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

    def delete_many(self, db: Session, *, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        result = db.execute(
            delete(Job).where(Job.id.in_(ids)).execution_options(synchronize_session="fetch")
        )
        return result.rowcount

# Create a singleton instance
job = CRUDJob(Job)
