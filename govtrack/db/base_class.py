"""
Base class for SQLAlchemy models.
"""

from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    """Base class for all governance models."""

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Generate table name from class name in snake_case (OnchainVote -> onchain_vote)."""
        return "".join(
            "_" + c.lower() if c.isupper() else c
            for c in cls.__name__
        ).lstrip("_")
