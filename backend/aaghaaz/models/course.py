from sqlalchemy import Column, String, Boolean, Enum as SQLEnum, JSON, Numeric, ForeignKey
from sqlalchemy.orm import relationship
import enum

from aaghaaz.core.database import Base
from aaghaaz.core.types import GUID, generate_uuid
from aaghaaz.models.mixins import TimestampMixin


class ModeOfDelivery(str, enum.Enum):
    ONLINE = "Online"
    ONSITE = "Onsite"
    HYBRID = "Hybrid"


class Course(TimestampMixin, Base):
    """Course offered by the center"""
    __tablename__ = "courses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False, index=True)
    days = Column(JSON, nullable=False, default=list)  # ["Monday", "Wednesday"]
    timing = Column(JSON, nullable=True)  # {"start_time": "09:00", "end_time": "11:00"}
    duration = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    mode_of_delivery = Column(SQLEnum(ModeOfDelivery), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    creator = relationship("User", lazy="selectin")

    enrollments = relationship("Enrollment", back_populates="course", passive_deletes=True)

    def __repr__(self):
        return f"<Course {self.name}>"
