"""GET /v1/deposits/{wallet} - Incubator deposit total for a wallet"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from incubator_gateway.api.v1.schemas import DepositResponse
from incubator_gateway.api.dependencies import get_deposit_service, get_request_id
from incubator_gateway.domain.exceptions import InvalidAccount, NoDataAvailable
from incubator_gateway.services.deposits import DepositService

router = APIRouter()


@router.get("/deposits/{wallet}", response_model=DepositResponse)
async def get_wallet_deposits(
    wallet: str,
    request: Request,
    service: DepositService = Depends(get_deposit_service),
):
    """
    Total USDT the wallet has transferred into the incubator.

    Served from cache while fresh; when the ledger is unavailable the last
    known total is returned with `stale: true`.
    """
    request_id = get_request_id(request)

    try:
        quote = await service.get_deposit_quote(wallet)
    except InvalidAccount as e:
        logging.warning(f"Invalid wallet: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=str(e))
    except NoDataAvailable as e:
        logging.error(f"Deposit data unavailable: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Ledger service unavailable")

    return DepositResponse(
        wallet=quote.wallet,
        amount=quote.amount,
        as_of=quote.as_of,
        stale=quote.stale,
        source=quote.source,
    )
