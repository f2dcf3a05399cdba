from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.time_tracking import TimeTracking
from app.schemas.time_tracking import TimeEntryUpdate

class CRUDTimeTracking(CRUDBase[TimeTracking, TimeEntryUpdate, TimeEntryUpdate]):
    def get_open(self, db: Session, *, job_id: int, engineer_id: str) -> Optional[TimeTracking]:
        return (
            db.query(TimeTracking)
            .filter(
                TimeTracking.job_id == job_id,
                TimeTracking.engineer_id == engineer_id,
                TimeTracking.end_time.is_(None),
            )
            .first()
        )

    def get_latest_open_for_engineer(self, db: Session, *, engineer_id: str) -> Optional[TimeTracking]:
        return (
            db.query(TimeTracking)
            .filter(
                TimeTracking.engineer_id == engineer_id,
                TimeTracking.end_time.is_(None),
            )
            .order_by(TimeTracking.start_time.desc())
            .first()
        )

    def get_for_jobs(self, db: Session, *, job_ids: Iterable[int]) -> List[TimeTracking]:
        job_ids = list(job_ids)
        if not job_ids:
            return []
        return db.query(TimeTracking).filter(TimeTracking.job_id.in_(job_ids)).all()

    def get_open_for_jobs(self, db: Session, *, job_ids: Iterable[int]) -> List[TimeTracking]:
        job_ids = list(job_ids)
        if not job_ids:
            return []
        return (
            db.query(TimeTracking)
            .filter(TimeTracking.job_id.in_(job_ids), TimeTracking.end_time.is_(None))
            .all()
        )

    def update_open_if(
        self,
        db: Session,
        *,
        entry_id: int,
        values: Dict[str, Any],
        expected_paused: Optional[bool] = None,
    ) -> bool:
        """
        Conditional update on an open session.

        Applies only while the row is still open and, when given, still in the
        ``expected_paused`` state. Returns False when the precondition no longer holds.
        """
        conditions = [TimeTracking.id == entry_id, TimeTracking.end_time.is_(None)]
        if expected_paused is not None:
            conditions.append(TimeTracking.is_paused == expected_paused)
        result = db.execute(
            update(TimeTracking)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    def delete_for_jobs(self, db: Session, *, job_ids: Iterable[int]) -> int:
        job_ids = list(job_ids)
        if not job_ids:
            return 0
        result = db.execute(
            delete(TimeTracking)
            .where(TimeTracking.job_id.in_(job_ids))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount

# Create a singleton instance
time_tracking = CRUDTimeTracking(TimeTracking)
