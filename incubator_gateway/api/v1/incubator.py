"""GET /v1/incubator - Incubator balance and funding progress"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from incubator_gateway.api.v1.schemas import IncubatorResponse
from incubator_gateway.api.dependencies import get_incubator_service, get_request_id
from incubator_gateway.domain.exceptions import SourceUnavailable
from incubator_gateway.services.incubator import IncubatorService

router = APIRouter()


@router.get("/incubator", response_model=IncubatorResponse)
async def get_incubator(
    request: Request,
    service: IncubatorService = Depends(get_incubator_service),
):
    """Current incubator USDT balance and progress toward the goal"""
    try:
        status = await service.get_status()
    except SourceUnavailable as e:
        logging.error(f"Ledger error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Ledger service unavailable")

    return IncubatorResponse(
        wallet=status.wallet,
        mint=status.mint,
        balance=status.balance,
        goal=status.goal,
        progress_pct=status.progress_pct,
    )
