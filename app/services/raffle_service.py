"""
==============================================================================
Raffle Entry Service Module
==============================================================================

Records raffle entries and marks QR tokens as used.

Entry Flow:
----------
    wallet tx mined ──▶ POST /api/raffle/{raffleId}/enter ──▶ record_entry()
                                                                 │
                               ┌─────────────────────────────────┤
                               ▼                                 ▼
                    (raffle_id, qr_id) new              (raffle_id, qr_id) exists
                        → stored, ok                    → QR_ALREADY_USED (409)

==============================================================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core import exceptions
from app.db.models import RaffleEntryRecord
from app.services.chains import get_chain

if TYPE_CHECKING:
    from app.schemas.raffle import RaffleEntryCreate


# Module logger
logger = logging.getLogger(__name__)


class RaffleService:
    """
    Service for raffle entry bookkeeping.

    Example:
        >>> service = RaffleService(db_session)
        >>> record = service.record_entry("42", data)
        >>> service.is_qr_used("42", "abc")
        True
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def record_entry(self, raffle_id: str, data: "RaffleEntryCreate") -> RaffleEntryRecord:
        """
        Record an entry and mark its QR token as used.

        Args:
            raffle_id: Raffle identifier from the route
            data: Validated notifier body

        Returns:
            Stored record

        Raises:
            AppException: QR_ALREADY_USED when the token was used for this raffle,
                UNKNOWN_CHAIN when no chain is given and the default is invalid
        """
        chain_key = data.chain or get_settings().default_chain
        chain = get_chain(chain_key)
        if chain is None:
            raise exceptions.unknown_chain(chain_key)

        if data.qr_id is not None and self.is_qr_used(raffle_id, data.qr_id):
            logger.warning(f"QR {data.qr_id!r} already used for raffle {raffle_id}")
            raise exceptions.qr_already_used(raffle_id, data.qr_id)

        record = RaffleEntryRecord(
            raffle_id=raffle_id,
            qr_id=data.qr_id,
            tx_hash=data.tx_hash,
            user_address=data.user_address,
            chain=chain.key,
        )

        try:
            self._db.add(record)
            self._db.commit()
            self._db.refresh(record)
        except IntegrityError:
            # lost a race with a concurrent entry for the same token
            self._db.rollback()
            raise exceptions.qr_already_used(raffle_id, data.qr_id)

        logger.info(
            f"🎟️ Entry recorded: raffle={raffle_id} qr={data.qr_id} "
            f"chain={chain.key} tx={chain.tx_url(data.tx_hash)}"
        )
        return record

    def is_qr_used(self, raffle_id: str, qr_id: str) -> bool:
        return self._db.query(RaffleEntryRecord).filter(
            RaffleEntryRecord.raffle_id == raffle_id,
            RaffleEntryRecord.qr_id == qr_id,
        ).first() is not None

    def list_entries(self, raffle_id: str, limit: Optional[int] = None) -> List[RaffleEntryRecord]:
        """List entries for a raffle, oldest first."""
        query = self._db.query(RaffleEntryRecord).filter(
            RaffleEntryRecord.raffle_id == raffle_id
        ).order_by(RaffleEntryRecord.created_at, RaffleEntryRecord.id)

        if limit is not None:
            query = query.limit(limit)

        return query.all()
