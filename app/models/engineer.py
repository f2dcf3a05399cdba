from sqlalchemy import Column, String, DateTime, Integer, Float, Time
from sqlalchemy.orm import relationship
from app.db.base_class import Base
from datetime import datetime

class Engineer(Base):
    __tablename__ = "engineers"

    # Same id as the identity provider's user id
    id = Column(String(36), primary_key=True, index=True)
    eng_name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=True)
    area = Column(String, nullable=True)
    speciality = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    work_start_time = Column(Time, nullable=True)
    work_end_time = Column(Time, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    routes = relationship("Route", back_populates="engineer")

    def __repr__(self):
        return f"<Engineer {self.eng_name}>"


class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    role = Column(String, nullable=False)  # admin, engineer
