"""Base model configuration for SQLAlchemy models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all WageFlow SQLAlchemy models."""

    pass
