"""
==============================================================================
Raffle Entry Schemas Module
==============================================================================

Request and response schemas for the raffle entry notifier.

The notifier body uses the wallet client's camelCase keys:

    {"qrId": "abc", "txHash": "0x...", "userAddress": "0x...", "chain": "fuji"}

==============================================================================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.chains import CHAINS
from app.utils.validators import AddressValidator, TxHashValidator


# =============================================================================
# CREATE SCHEMAS
# =============================================================================

class RaffleEntryCreate(BaseModel):
    """Entry notification sent after the entry transaction was mined."""

    model_config = ConfigDict(populate_by_name=True)

    qr_id: Optional[str] = Field(default=None, alias="qrId", max_length=256)
    tx_hash: str = Field(..., alias="txHash")
    user_address: str = Field(..., alias="userAddress")
    chain: Optional[str] = Field(default=None)

    @field_validator("qr_id", mode="before")
    @classmethod
    def normalize_qr_id(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("tx_hash")
    @classmethod
    def validate_tx_hash(cls, v: str) -> str:
        is_valid, normalized, error = TxHashValidator().validate(v)
        if not is_valid:
            raise ValueError(error)
        return normalized

    @field_validator("user_address")
    @classmethod
    def validate_user_address(cls, v: str) -> str:
        is_valid, normalized, error = AddressValidator().validate(v)
        if not is_valid:
            raise ValueError(error)
        return normalized

    @field_validator("chain")
    @classmethod
    def validate_chain(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        if v not in CHAINS:
            raise ValueError(f"Unknown chain '{v}'. Supported: {', '.join(sorted(CHAINS))}")
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class RaffleEntryResponse(BaseModel):
    """Recorded raffle entry."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    raffle_id: str
    qr_id: Optional[str] = None
    tx_hash: str
    user_address: str
    chain: str
    created_at: Optional[datetime] = None


class RaffleEntryListResponse(BaseModel):
    success: bool = Field(default=True)
    raffle_id: str
    entries: List[RaffleEntryResponse]
    total: int = Field(ge=0)
