"""
==============================================================================
SQLAlchemy ORM Models Module
==============================================================================

ORM models for recorded raffle entries.

Database Schema:
---------------

    ┌─────────────────────────────────────────────────────────────────┐
    │                        raffle_entries                            │
    ├─────────────────────────────────────────────────────────────────┤
    │ id (UUID, PK)                                                   │
    │ raffle_id (VARCHAR, NOT NULL, INDEX)                            │
    │ qr_id (VARCHAR, NULLABLE)                                       │
    │ tx_hash (VARCHAR(66), NOT NULL)                                 │
    │ user_address (VARCHAR(42), NOT NULL)                            │
    │ chain (VARCHAR, NOT NULL)                                       │
    │ created_at (DATETIME, DEFAULT now)                              │
    ├─────────────────────────────────────────────────────────────────┤
    │ UNIQUE (raffle_id, qr_id)                                       │
    └─────────────────────────────────────────────────────────────────┘

A QR token counts as used once an entry with its qr_id exists for the
raffle. Entries without a qr_id are never deduplicated (SQL NULLs are
distinct in unique constraints).

=============================================================================
"""

from __future__ import annotations

import uuid
from typing import Any, Dict

from sqlalchemy import Column, DateTime, String, UniqueConstraint, func

from app.db.database import Base


class RaffleEntryRecord(Base):
    """
    Recorded raffle entry.

    Attributes:
        id: Unique identifier (UUID)
        raffle_id: Raffle the entry belongs to
        qr_id: QR token used for the entry (None for direct entries)
        tx_hash: Entry transaction hash
        user_address: Wallet address of the entrant
        chain: Chain key the transaction was sent on
        created_at: Recording timestamp
    """

    __tablename__ = "raffle_entries"
    __table_args__ = (
        UniqueConstraint("raffle_id", "qr_id", name="uq_raffle_entries_raffle_qr"),
    )

    id: str = Column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        doc="Unique entry identifier (UUID)"
    )

    raffle_id: str = Column(
        String(128),
        nullable=False,
        index=True,
        doc="Raffle identifier"
    )

    qr_id: str = Column(
        String(256),
        nullable=True,
        doc="QR token identifier"
    )

    tx_hash: str = Column(
        String(66),
        nullable=False,
        doc="Entry transaction hash (0x-prefixed)"
    )

    user_address: str = Column(
        String(42),
        nullable=False,
        doc="Entrant wallet address (0x-prefixed)"
    )

    chain: str = Column(
        String(32),
        nullable=False,
        doc="Chain key (avalanche/fuji)"
    )

    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Recording timestamp"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "raffle_id": self.raffle_id,
            "qr_id": self.qr_id,
            "tx_hash": self.tx_hash,
            "user_address": self.user_address,
            "chain": self.chain,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"RaffleEntryRecord(raffle_id={self.raffle_id!r}, "
            f"qr_id={self.qr_id!r}, chain={self.chain!r})"
        )
