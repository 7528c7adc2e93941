from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin, new_id


class Guardian(Base, TimestampMixin):
    __tablename__ = "guardians"

    id = Column(String(36), primary_key=True, default=new_id)
    full_name = Column(String(255), nullable=False)
    phone = Column(String(32), nullable=False)
    cpf = Column(String(14), unique=True, nullable=False, index=True)
    # street, number, complement, neighborhood, city, state, zip_code
    address = Column(JSON, nullable=True)
    terms_accepted_at = Column(DateTime(timezone=True), nullable=True)
    terms_version = Column(String(32), nullable=True)

    students = relationship("Student", back_populates="guardian")
