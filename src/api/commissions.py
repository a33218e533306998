"""Commission calculation, CRM sync and monthly run endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_crm, http_error
from src.db import get_db
from src.engine import MissingRuleTable, Period
from src.schemas import (
    CalculateRequest,
    CommissionResultResponse,
    MonthlyRunResponse,
    SyncResponse,
)
from src.services.commission_run import (
    calculate_for_rep,
    rep_for_request,
    run_monthly,
    sync_result,
)
from src.services.hubspot_client import CRMError, HubSpotClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commissions", tags=["Commissions"])


@router.post("/calculate", response_model=CommissionResultResponse)
async def calculate_commission(
    data: CalculateRequest,
    db: AsyncSession = Depends(get_db),
    crm: HubSpotClient = Depends(get_crm),
):
    """Compute one rep's commission for a period and log the run."""
    period = Period(start=data.start_date, end=data.end_date)
    try:
        rep = await rep_for_request(crm, data.rep_id, data.rep_name, data.team)
        result, _ = await calculate_for_rep(db, crm, rep, period)
    except (MissingRuleTable, CRMError) as e:
        logger.error(f"Commission calculation failed for {data.rep_id}: {e}")
        raise http_error(e)

    await db.commit()
    return CommissionResultResponse.from_result(result)


@router.post("/sync", response_model=SyncResponse)
async def sync_commission(
    data: CommissionResultResponse,
    crm: HubSpotClient = Depends(get_crm),
):
    """Push a computed commission to HubSpot as a commission statement."""
    try:
        record_id = await sync_result(crm, data.model_dump(mode="json"))
    except CRMError as e:
        raise http_error(e)

    return SyncResponse(success=True, record_id=record_id)


@router.post("/run-monthly", response_model=MonthlyRunResponse)
async def trigger_monthly_run(
    db: AsyncSession = Depends(get_db),
    crm: HubSpotClient = Depends(get_crm),
):
    """Run last month's commissions for every owner now."""
    try:
        period, statuses = await run_monthly(db, crm)
    except (MissingRuleTable, CRMError) as e:
        raise http_error(e)

    return MonthlyRunResponse(
        success=True,
        period_start=period.start,
        period_end=period.end,
        results=statuses,
    )
