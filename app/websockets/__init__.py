"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for QR capture.

Handlers:
---------
- scanner: Remote capture session driven by a browser camera

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]
