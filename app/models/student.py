import enum
from sqlalchemy import Column, String, Enum, ForeignKey, Index, Text
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.enums import PricingModel
from app.models.base import TimestampMixin, enum_values, new_id


class StudyPeriod(str, enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


class StudentStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class Student(Base, TimestampMixin):
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=new_id)
    guardian_id = Column(String(36), ForeignKey("guardians.id"), nullable=False)
    full_name = Column(String(255), nullable=False)
    grade = Column(String(64), nullable=False)
    period = Column(Enum(StudyPeriod, values_callable=enum_values), nullable=False)
    status = Column(Enum(StudentStatus, values_callable=enum_values), nullable=False, default=StudentStatus.ACTIVE)
    pricing_model = Column(Enum(PricingModel, values_callable=enum_values), nullable=False, default=PricingModel.PREPAID)
    observations = Column(Text, nullable=True)

    guardian = relationship("Guardian", back_populates="students")
    wallet = relationship("Wallet", back_populates="student", uselist=False)


Index("ix_students_guardian_status", Student.guardian_id, Student.status)
