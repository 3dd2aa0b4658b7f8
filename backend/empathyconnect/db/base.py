from sqlalchemy.orm import DeclarativeBase, declared_attr
from sqlalchemy import Column, UUID
import uuid


class Base(DeclarativeBase):
    """Base class for all models."""

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()
