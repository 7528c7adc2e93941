from sqlalchemy import Column, String, Boolean, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.enums import UserRole
from app.models.base import TimestampMixin, enum_values, new_id


STAFF_ROLES = {UserRole.ADMIN, UserRole.OPERATOR}


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(Enum(UserRole, values_callable=enum_values), nullable=False, default=UserRole.GUARDIAN)
    # Set for guardian accounts; links the login to the guardian record.
    guardian_id = Column(String(36), ForeignKey("guardians.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    guardian = relationship("Guardian")


Index("ix_users_role_active", User.role, User.is_active)
