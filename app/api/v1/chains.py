"""
==============================================================================
Chain Endpoints
==============================================================================

Supported chains as wallet_addEthereumChain parameters.

==============================================================================
"""

from fastapi import APIRouter, Depends

from app.config import Settings, get_settings
from app.core import exceptions
from app.services.chains import get_chain, list_chains


router = APIRouter(prefix="/chains", tags=["Chains"])


@router.get("")
async def get_chains(settings: Settings = Depends(get_settings)):
    """List supported chains and the default chain key."""
    return {
        "success": True,
        "default": settings.default_chain,
        "chains": {
            chain.key: chain.to_add_chain_params() for chain in list_chains()
        }
    }


@router.get("/{key}")
async def get_chain_params(key: str):
    """Get wallet parameters for one chain."""
    chain = get_chain(key)
    if chain is None:
        raise exceptions.unknown_chain(key)
    return {"success": True, "key": chain.key, "params": chain.to_add_chain_params()}
