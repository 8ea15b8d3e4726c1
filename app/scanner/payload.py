"""
==============================================================================
Raffle Payload Parser
==============================================================================

Turns raw scanned QR text into a structured RaffleEntry.

Accepted Formats (first match wins):
-----------------------------------
1. JSON object with at least "raffleId":
       {"raffleId":"123","qrId":"abc","valueWei":"1000000000000000"}
2. Absolute URI with query parameters:
       https://example.test/enter?raffleId=42&qr_id=zz&value_wei=10
   camelCase names are checked before snake_case names.

Anything else is unparseable and yields None. Parsing never raises.

Numeric values are kept as their literal text so wei amounts never pass
through a binary float.

==============================================================================
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError


# Schemes that are only meaningful with an authority component
HIERARCHICAL_SCHEMES = frozenset({"http", "https", "ws", "wss", "ftp"})


class RaffleEntry(BaseModel):
    """
    Normalized raffle entry read from a QR code.

    Attributes:
        raffle_id: Raffle identifier (required, non-empty)
        qr_token: Single-use QR identifier, if the code carries one
        stake_amount: Entry value in the smallest currency unit, as text

    Example:
        >>> entry = parse('{"raffleId": 7, "valueWei": 1000}')
        >>> entry.raffle_id, entry.stake_amount
        ('7', '1000')
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    raffle_id: str = Field(..., min_length=1, alias="raffleId")
    qr_token: Optional[str] = Field(default=None, alias="qrToken")
    stake_amount: Optional[str] = Field(default=None, alias="stakeAmount")


def parse(raw: str) -> Optional[RaffleEntry]:
    """
    Parse scanned text into a RaffleEntry.

    Args:
        raw: Text decoded from a QR code

    Returns:
        RaffleEntry, or None when the text is not a raffle payload
    """
    if not isinstance(raw, str):
        return None

    try:
        return _from_json(raw) or _from_uri(raw)
    except ValidationError:
        # text the model refuses, such as lone surrogates
        return None


# =============================================================================
# JSON FORMAT
# =============================================================================

def _from_json(raw: str) -> Optional[RaffleEntry]:
    try:
        data = json.loads(
            raw,
            parse_int=str,
            parse_float=str,
            parse_constant=str,
        )
    except (ValueError, RecursionError):
        return None

    if not isinstance(data, dict):
        return None

    raffle_id = _as_text(data.get("raffleId"))
    if not raffle_id:
        return None

    return RaffleEntry(
        raffle_id=raffle_id,
        qr_token=_as_text(data.get("qrId")),
        stake_amount=_as_text(data.get("valueWei")),
    )


def _as_text(value: Any) -> Optional[str]:
    """Coerce a decoded JSON value to text; null and empty mean absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, str):
        text = value
    elif isinstance(value, (dict, list)):
        text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    else:
        text = str(value)
    return text or None


# =============================================================================
# URI FORMAT
# =============================================================================

def _from_uri(raw: str) -> Optional[RaffleEntry]:
    text = raw.strip()
    if not text:
        return None

    try:
        parts = urlsplit(text)
        if not parts.scheme:
            return None
        if parts.scheme.lower() in HIERARCHICAL_SCHEMES and not parts.hostname:
            return None
        params = parse_qs(parts.query, keep_blank_values=True)
    except ValueError:
        return None

    raffle_id = _first(params, "raffleId", "raffle_id")
    if not raffle_id:
        return None

    return RaffleEntry(
        raffle_id=raffle_id,
        qr_token=_first(params, "qrId", "qr_id"),
        stake_amount=_first(params, "valueWei", "value_wei"),
    )


def _first(params: Dict[str, List[str]], *names: str) -> Optional[str]:
    """Return the first non-empty value among names, in priority order."""
    for name in names:
        values = params.get(name)
        if values and values[0]:
            return values[0]
    return None
