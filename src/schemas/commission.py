"""Commission settings, calculation and run log schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from src.engine.models import CommissionResult


# ── Rule tables ───────────────────────────────────────────


class _RangeBase(BaseModel):
    min: Decimal = Field(default=Decimal("0"), ge=0)
    max: Optional[Decimal] = Field(None, description="Exclusive upper bound; null = unbounded")

    @model_validator(mode="after")
    def check_range(self):
        if self.max is not None and self.max <= self.min:
            raise ValueError("max must be greater than min")
        return self


class PercentBracket(_RangeBase):
    percent: Decimal = Field(..., ge=0, le=100)


class MultiplierBracket(_RangeBase):
    multiplier: Decimal = Field(..., ge=0)


class MeetingTier(_RangeBase):
    bonus_amount: Decimal = Field(..., ge=0)


class PaymentTermBonusSchema(BaseModel):
    term: str = Field(..., min_length=1, max_length=100)
    bonus_percent: Decimal = Field(..., ge=0, le=100)


class CommissionSettingsResponse(BaseModel):
    """Active commission rules. Null tables are missing."""

    ae_brackets: Optional[List[PercentBracket]] = None
    ae_payment_term_bonuses: Optional[List[PaymentTermBonusSchema]] = None
    ae_revenue_multiplier_brackets: Optional[List[MultiplierBracket]] = None
    sdr_meeting_tiers: Optional[List[MeetingTier]] = None
    sdr_closed_won_percent: Optional[Decimal] = None
    sdr_revenue_multiplier_brackets: Optional[List[MultiplierBracket]] = None
    marketing_same_as_sdr: bool = True
    marketing_inbound_percent: Optional[Decimal] = None
    marketing_revenue_multiplier_brackets: Optional[List[MultiplierBracket]] = None
    updated_at: Optional[datetime] = None


class CommissionSettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their stored value."""

    ae_brackets: Optional[List[PercentBracket]] = None
    ae_payment_term_bonuses: Optional[List[PaymentTermBonusSchema]] = None
    ae_revenue_multiplier_brackets: Optional[List[MultiplierBracket]] = None
    sdr_meeting_tiers: Optional[List[MeetingTier]] = None
    sdr_closed_won_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    sdr_revenue_multiplier_brackets: Optional[List[MultiplierBracket]] = None
    marketing_same_as_sdr: Optional[bool] = None
    marketing_inbound_percent: Optional[Decimal] = Field(None, ge=0, le=100)
    marketing_revenue_multiplier_brackets: Optional[List[MultiplierBracket]] = None


# ── Calculation ───────────────────────────────────────────


class CalculateRequest(BaseModel):
    """Compute one rep's commission for a period."""

    rep_id: str = Field(..., min_length=1, max_length=64)
    rep_name: str = Field(..., min_length=1, max_length=255)
    team: str = Field(..., min_length=1, max_length=100)
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def check_period(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class WeeklyBucketResponse(BaseModel):
    week: str
    week_label: Optional[str] = None
    meetings: int
    bonus: Decimal


class PaymentTermBonusUsageResponse(BaseModel):
    term: str
    amount: Decimal


class CommissionResultResponse(BaseModel):
    """Serialized CommissionResult; Decimals are emitted as strings."""

    rep_id: str
    rep_name: str
    team: str
    period_start: datetime
    period_end: datetime
    branch: str
    total_revenue: Decimal
    adjusted_revenue: Decimal
    deal_commission: Decimal
    meeting_bonus: Decimal
    total_commission: Decimal
    total_meetings: int
    weekly_breakdown: List[WeeklyBucketResponse] = Field(default_factory=list)
    used_bracket_percent: Optional[Decimal] = None
    used_payment_term_bonuses: List[PaymentTermBonusUsageResponse] = Field(default_factory=list)
    team_ambiguous: bool = False
    invalid_amounts: int = 0

    @classmethod
    def from_result(cls, result: CommissionResult) -> "CommissionResultResponse":
        return cls.model_validate(result.to_dict())


class SyncResponse(BaseModel):
    success: bool
    record_id: str


# ── Owners / runs / logs ──────────────────────────────────


class OwnerResponse(BaseModel):
    id: str
    name: str
    email: str
    team: str


class RepRunStatus(BaseModel):
    owner: str
    status: str  # "success" or "error"
    error: Optional[str] = None
    total_commission: Optional[Decimal] = None


class MonthlyRunResponse(BaseModel):
    success: bool
    period_start: datetime
    period_end: datetime
    results: List[RepRunStatus]


class RunLogResponse(BaseModel):
    id: int
    run_date: datetime
    rep_id: str
    rep_name: str
    team: str
    period_start: datetime
    period_end: datetime
    commission_json: dict
    success: bool
    error_message: Optional[str] = None
    crm_record_id: Optional[str] = None

    model_config = {"from_attributes": True}


class RunLogListResponse(BaseModel):
    items: List[RunLogResponse]
    total: int
    page: int
    per_page: int
    pages: int
