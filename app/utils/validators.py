"""
==============================================================================
Validation Utilities Module
==============================================================================

Validators for values a raffle entry carries on chain.

This module implements:
- AddressValidator: EVM account addresses
- TxHashValidator: EVM transaction hashes

Validation Rules:
----------------
- Address: "0x" followed by 40 hex digits
- Tx hash: "0x" followed by 64 hex digits
- Surrounding whitespace is ignored
- Stored as lowercase (checksum casing is not verified)

==============================================================================
"""

from __future__ import annotations

import re
from typing import Optional, Tuple


class HexValueValidator:
    """
    Validator for 0x-prefixed fixed-length hex values.

    Example:
        >>> validator = AddressValidator()
        >>> is_valid, normalized, error = validator.validate(" 0xAbC...")
    """

    PATTERN = re.compile(r"^0x[0-9a-fA-F]+$")
    HEX_LENGTH = 0
    LABEL = "Value"

    def validate(self, value: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a hex value.

        Args:
            value: Raw input

        Returns:
            Tuple of (is_valid, normalized_value, error_message)
            - If valid: (True, "0xabc...", None)
            - If invalid: (False, None, "Error description")
        """
        if not value or not isinstance(value, str):
            return False, None, f"{self.LABEL} is required"

        value = value.strip()

        if not value.lower().startswith("0x"):
            return False, None, f"{self.LABEL} must start with 0x"

        if not self.PATTERN.match(value):
            return False, None, f"{self.LABEL} must be hexadecimal"

        if len(value) != self.HEX_LENGTH + 2:
            return False, None, f"{self.LABEL} must have {self.HEX_LENGTH} hex digits"

        return True, value.lower(), None

    def is_valid(self, value: str) -> bool:
        """Quick validation check."""
        is_valid, _, _ = self.validate(value)
        return is_valid


class AddressValidator(HexValueValidator):
    """Validator for EVM account addresses."""

    HEX_LENGTH = 40
    LABEL = "Address"


class TxHashValidator(HexValueValidator):
    """Validator for EVM transaction hashes."""

    HEX_LENGTH = 64
    LABEL = "Transaction hash"
