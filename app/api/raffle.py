"""
==============================================================================
Raffle Entry Notifier
==============================================================================

Endpoint the wallet client calls after its entry transaction is mined.

Endpoints:
---------
- POST /api/raffle/{raffle_id}/enter    record entry, mark QR token used
- GET  /api/raffle/{raffle_id}/entries  list recorded entries

Response Contract:
-----------------
The client shows failure bodies verbatim, so errors are plain text:

    200  {"ok": true}
    400  invalid body / unknown chain
    409  QR token already used for this raffle
    500  unexpected failure

==============================================================================
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core import exceptions
from app.core.exceptions import AppException
from app.db.database import get_db
from app.schemas.common import OkResponse
from app.schemas.raffle import RaffleEntryCreate, RaffleEntryListResponse, RaffleEntryResponse
from app.services.raffle_service import RaffleService


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/raffle", tags=["Raffle"])


class RaffleController:
    """Controller for raffle entry operations."""

    def __init__(self, db: Session):
        self._service = RaffleService(db)

    async def enter(self, raffle_id: str, request: Request):
        try:
            body = await request.json()
        except ValueError:
            return PlainTextResponse("Invalid JSON body", status_code=400)

        if not isinstance(body, dict):
            return PlainTextResponse("Body must be a JSON object", status_code=400)

        logger.info(
            f"Entry notification: raffle={raffle_id} qrId={body.get('qrId')} "
            f"txHash={body.get('txHash')} chain={body.get('chain')}"
        )

        try:
            data = RaffleEntryCreate.model_validate(body)
        except ValidationError as e:
            return PlainTextResponse(self._describe(e), status_code=400)

        try:
            self._service.record_entry(raffle_id, data)
        except AppException as e:
            return PlainTextResponse(e.message, status_code=e.status_code)
        except Exception as e:
            logger.error(f"Entry recording failed: {e}")
            error = exceptions.internal_error(str(e) or "Entry recording failed")
            return PlainTextResponse(error.message, status_code=error.status_code)

        return JSONResponse(OkResponse().model_dump())

    def list_entries(self, raffle_id: str, limit: int) -> RaffleEntryListResponse:
        entries = [
            RaffleEntryResponse.model_validate(record)
            for record in self._service.list_entries(raffle_id, limit)
        ]
        return RaffleEntryListResponse(raffle_id=raffle_id, entries=entries, total=len(entries))

    @staticmethod
    def _describe(error: ValidationError) -> str:
        problems = []
        for item in error.errors():
            field = ".".join(str(part) for part in item.get("loc", ())) or "body"
            message = item.get("msg", "invalid").removeprefix("Value error, ")
            problems.append(f"{field}: {message}")
        return "Invalid body: " + "; ".join(problems)


@router.post("/{raffle_id}/enter")
async def enter_raffle(raffle_id: str, request: Request, db: Session = Depends(get_db)):
    """Record a mined raffle entry and mark its QR token as used."""
    controller = RaffleController(db)
    return await controller.enter(raffle_id, request)


@router.get("/{raffle_id}/entries", response_model=RaffleEntryListResponse)
async def list_entries(
    raffle_id: str,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db)
):
    """List recorded entries for a raffle."""
    controller = RaffleController(db)
    return controller.list_entries(raffle_id, limit)
