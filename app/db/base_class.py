from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects import mysql
import uuid

# Create base class for SQLAlchemy models
Base = declarative_base()

# MySQL DATETIME drops fractions of a second unless fsp is set
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")


def utcnow() -> datetime:
    """Naive UTC timestamp with microsecond precision"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Define a base model class with common fields
class BaseModel(Base):
    """Base model class with common fields for all SQLAlchemy models"""
    __abstract__ = True

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = Column(Timestamp, default=utcnow)
    updated_at = Column(Timestamp, default=utcnow, onupdate=utcnow)
