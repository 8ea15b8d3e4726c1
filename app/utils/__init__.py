"""
==============================================================================
Utilities Package
==============================================================================

Utility classes and functions for the application.

Modules:
--------
- validators: EVM address and transaction hash validation

==============================================================================
"""

from .validators import AddressValidator, TxHashValidator

__all__ = [
    "AddressValidator",
    "TxHashValidator",
]
