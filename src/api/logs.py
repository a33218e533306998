"""Commission run log endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db import get_db
from src.models import CommissionRunLog
from src.schemas import RunLogListResponse, RunLogResponse

router = APIRouter(prefix="/logs", tags=["Logs"])


@router.get("", response_model=RunLogListResponse)
async def get_run_logs(
    db: AsyncSession = Depends(get_db),
    rep_id: Optional[str] = Query(None),
    success: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
):
    """Run logs, newest first."""
    query = select(CommissionRunLog)

    if rep_id:
        query = query.where(CommissionRunLog.rep_id == rep_id)

    if success is not None:
        query = query.where(CommissionRunLog.success == success)

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total = await db.scalar(count_query)

    query = query.order_by(CommissionRunLog.run_date.desc(), CommissionRunLog.id.desc())
    query = query.offset((page - 1) * per_page).limit(per_page)

    result = await db.execute(query)
    logs = result.scalars().all()

    return RunLogListResponse(
        items=[RunLogResponse.model_validate(log) for log in logs],
        total=total or 0,
        page=page,
        per_page=per_page,
        pages=(total + per_page - 1) // per_page if total else 0,
    )
