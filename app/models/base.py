import uuid

from sqlalchemy import Column, DateTime, func


def new_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


def enum_values(enum_cls) -> list[str]:
    # Persist enum values ("prepaid") rather than member names ("PREPAID").
    return [member.value for member in enum_cls]
