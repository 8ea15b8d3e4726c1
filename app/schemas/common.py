"""
==============================================================================
Common Schemas Module
==============================================================================

Shared response schemas.

==============================================================================
"""

from pydantic import BaseModel, Field


class OkResponse(BaseModel):
    """Notifier acknowledgement ({"ok": true})."""
    ok: bool = Field(default=True)
