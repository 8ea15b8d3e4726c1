"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

Service classes implementing business logic.

This package provides:
- RaffleService: Raffle entry recording and QR token bookkeeping
- Chain registry: Avalanche chain descriptors

Architecture Pattern: Service Layer
----------------------------------
    ┌─────────────────┐
    │   API Router    │
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │    Service      │  ← Business Logic
    └────────┬────────┘
             │
    ┌────────▼────────┐
    │   Repository    │  ← Data Access (via ORM)
    └─────────────────┘

==============================================================================
"""

from .chains import ChainDescriptor, chain_key_for_id, get_chain, list_chains
from .raffle_service import RaffleService

__all__ = [
    "ChainDescriptor",
    "RaffleService",
    "chain_key_for_id",
    "get_chain",
    "list_chains",
]
