from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from govtrack.db.base_class import Base


class Drep(Base):
    """Delegated representative."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    drep_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    icon_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    voting_power: Mapped[int] = mapped_column(BigInteger, default=0)
    active: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Spo(Base):
    """Stake pool operator."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    pool_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    pool_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ticker: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    icon_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    voting_power: Mapped[int] = mapped_column(BigInteger, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class CommitteeMember(Base):
    """Constitutional Committee member, keyed by hot credential."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    cc_id: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    member_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    hot_credential: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    cold_credential: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    status: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
