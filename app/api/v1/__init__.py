"""
==============================================================================
API v1 Endpoints
==============================================================================

Version 1 of the REST API.

Routers:
--------
- health: Health check endpoints
- scan: Payload parsing, still-image decoding, camera listing
- chains: Supported chain parameters

==============================================================================
"""

from . import chains, health, scan

__all__ = ["chains", "health", "scan"]
