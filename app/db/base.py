"""
SQLAlchemy declarative base.

All models inherit from this Base class so alembic and the test suite can
build the schema from a single metadata object.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass
