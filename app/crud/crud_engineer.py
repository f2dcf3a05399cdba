from sqlalchemy.orm import Session

from app.crud.base import CRUDBase
from app.models.engineer import Engineer, UserRole
from app.schemas.engineer import EngineerLocationUpdate

class CRUDEngineer(CRUDBase[Engineer, EngineerLocationUpdate, EngineerLocationUpdate]):
    def has_role(self, db: Session, *, user_id: str, role: str) -> bool:
        return (
            db.query(UserRole)
            .filter(UserRole.user_id == user_id, UserRole.role == role)
            .first()
            is not None
        )

# Create a singleton instance
engineer = CRUDEngineer(Engineer)
