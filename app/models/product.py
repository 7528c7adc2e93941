from sqlalchemy import Column, String, Numeric, Boolean
from app.core.database import Base
from app.models.base import TimestampMixin, new_id


class Product(Base, TimestampMixin):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(120), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(64), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
