"""Commission settings endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import get_db
from src.schemas import CommissionSettingsResponse, CommissionSettingsUpdate
from src.services.settings_store import (
    InvalidSettings,
    get_settings_record,
    settings_response,
    update_commission_settings,
)

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=CommissionSettingsResponse)
async def get_commission_settings(db: AsyncSession = Depends(get_db)):
    """Active commission rules (seeded with defaults on first read)."""
    record = await get_settings_record(db)
    await db.commit()
    return settings_response(record)


@router.put("", response_model=CommissionSettingsResponse)
async def put_commission_settings(
    data: CommissionSettingsUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update commission rules. Omitted fields are left unchanged."""
    try:
        record = await update_commission_settings(db, data)
    except InvalidSettings as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.problems,
        )

    await db.commit()
    await db.refresh(record)
    return settings_response(record)
