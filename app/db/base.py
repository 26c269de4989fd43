import uuid

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.sql import func

from app.core.db import Base


class BaseModel(Base):
    """Common columns: uuid primary key and timestamps"""
    __abstract__ = True

    uuid = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
