"""Pydantic schemas for request/response validation."""

from src.schemas.commission import (
    CalculateRequest,
    CommissionResultResponse,
    CommissionSettingsResponse,
    CommissionSettingsUpdate,
    MonthlyRunResponse,
    OwnerResponse,
    RepRunStatus,
    RunLogListResponse,
    RunLogResponse,
    SyncResponse,
)

__all__ = [
    # Settings
    "CommissionSettingsResponse",
    "CommissionSettingsUpdate",
    # Calculation
    "CalculateRequest",
    "CommissionResultResponse",
    "SyncResponse",
    # Runs
    "OwnerResponse",
    "RepRunStatus",
    "MonthlyRunResponse",
    "RunLogResponse",
    "RunLogListResponse",
]
