from datetime import datetime, timezone
from uuid import uuid4
from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()
metadata = Base.metadata


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, comparable with values read back from every backend."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def id_column():
    return Column(String(36), primary_key=True, default=new_id)


def created_at_column():
    return Column(DateTime, nullable=False, default=utcnow, server_default=func.now())


def updated_at_column():
    return Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())
