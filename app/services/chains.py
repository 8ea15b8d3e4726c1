"""
==============================================================================
Chain Registry
==============================================================================

Avalanche chains a raffle entry may be sent on.

    key         chain id   hex      network
    ─────────   ────────   ──────   ──────────────────────
    avalanche   43114      0xa86a   Avalanche C-Chain
    fuji        43113      0xa869   Avalanche Fuji Testnet

Descriptors render as wallet_addEthereumChain parameters so a wallet
connector can switch to (or add) the chain.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


# Module logger
logger = logging.getLogger(__name__)


class NativeCurrency(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    symbol: str
    decimals: int


class ChainDescriptor(BaseModel):
    """
    EVM chain descriptor.

    Attributes:
        key: Registry key ("avalanche" or "fuji")
        chain_id: Numeric chain id
        name: Display name
        native_currency: Native currency metadata
        rpc_urls: Public RPC endpoints
        explorer_urls: Block explorer base URLs
    """

    model_config = ConfigDict(frozen=True)

    key: str
    chain_id: int
    name: str
    native_currency: NativeCurrency
    rpc_urls: List[str]
    explorer_urls: List[str]

    @property
    def hex_id(self) -> str:
        return hex(self.chain_id)

    def tx_url(self, tx_hash: str) -> Optional[str]:
        """Explorer link for a transaction."""
        if not self.explorer_urls:
            return None
        return f"{self.explorer_urls[0].rstrip('/')}/tx/{tx_hash}"

    def to_add_chain_params(self) -> Dict[str, Any]:
        """Render as wallet_addEthereumChain parameters."""
        return {
            "chainId": self.hex_id,
            "chainName": self.name,
            "nativeCurrency": self.native_currency.model_dump(),
            "rpcUrls": list(self.rpc_urls),
            "blockExplorerUrls": list(self.explorer_urls),
        }


AVAX = NativeCurrency(name="Avalanche", symbol="AVAX", decimals=18)

AVALANCHE_MAINNET = ChainDescriptor(
    key="avalanche",
    chain_id=43114,
    name="Avalanche C-Chain",
    native_currency=AVAX,
    rpc_urls=["https://api.avax.network/ext/bc/C/rpc"],
    explorer_urls=["https://snowtrace.io"],
)

AVALANCHE_FUJI = ChainDescriptor(
    key="fuji",
    chain_id=43113,
    name="Avalanche Fuji Testnet",
    native_currency=AVAX,
    rpc_urls=["https://api.avax-test.network/ext/bc/C/rpc"],
    explorer_urls=["https://testnet.snowtrace.io"],
)

CHAINS: Dict[str, ChainDescriptor] = {
    chain.key: chain for chain in (AVALANCHE_MAINNET, AVALANCHE_FUJI)
}


def get_chain(key: str) -> Optional[ChainDescriptor]:
    """Look up a chain by registry key (case-insensitive)."""
    if not isinstance(key, str):
        return None
    return CHAINS.get(key.strip().lower())


def list_chains() -> List[ChainDescriptor]:
    return list(CHAINS.values())


def chain_key_for_id(chain_id: Union[int, str]) -> str:
    """
    Map a connected wallet's chain id to a registry key.

    Mainnet (43114, decimal or hex) maps to "avalanche"; anything else
    is treated as the Fuji testnet.
    """
    text = str(chain_id).strip().lower()
    try:
        value = int(text, 16) if text.startswith("0x") else int(text)
    except ValueError:
        logger.warning(f"Unrecognized chain id {chain_id!r}, assuming fuji")
        return AVALANCHE_FUJI.key

    return AVALANCHE_MAINNET.key if value == AVALANCHE_MAINNET.chain_id else AVALANCHE_FUJI.key
