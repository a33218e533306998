"""
Engine data types.

All monetary values are Decimal. Every type here is an immutable snapshot:
the engine never mutates its inputs and returns a fresh CommissionResult.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from src.engine.errors import AmbiguousTeamClassification, InvalidNumericInput


class Team(str, Enum):
    """Rep categories with distinct commission rules."""
    AE = "AE"
    SDR = "SDR"
    MARKETING = "Marketing"


class CommissionBranch(str, Enum):
    """Which rule set produced a result."""
    AE = "ae"
    SDR = "sdr"
    MARKETING_AS_SDR = "marketing_as_sdr"
    MARKETING_INBOUND = "marketing_inbound"


@dataclass(frozen=True)
class Deal:
    """A CRM opportunity already attributed to the rep."""

    amount: Decimal
    stage: str = ""
    channel: Optional[str] = None
    payment_term: Optional[str] = None
    owner_attribution: Optional[str] = None
    close_date: Optional[datetime] = None
    deal_id: Optional[str] = None

    @property
    def is_closed_won(self) -> bool:
        stage = (self.stage or "").lower()
        return "closed" in stage and "won" in stage


@dataclass(frozen=True)
class Meeting:
    """A qualifying meeting already attributed to the rep."""

    timestamp: datetime


@dataclass(frozen=True)
class Period:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class RepContext:
    """Echoed identity of the rep a result belongs to."""

    rep_id: str
    rep_name: str
    team: Team
    team_ambiguous: bool = False


@dataclass(frozen=True)
class WeeklyBucket:
    week: str
    meetings: int
    bonus: Decimal
    week_label: Optional[str] = None


@dataclass(frozen=True)
class PaymentTermBonusUsage:
    term: str
    amount: Decimal


@dataclass
class EngineDiagnostics:
    """
    Optional side channel for recoverable problems.

    The engine appends to it but never raises for these entries.
    """

    invalid_inputs: List[InvalidNumericInput] = field(default_factory=list)
    ambiguous_teams: List[AmbiguousTeamClassification] = field(default_factory=list)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_inputs)


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class CommissionResult:
    """Commission breakdown for one rep and one period."""

    rep_id: str
    rep_name: str
    team: Team
    period_start: datetime
    period_end: datetime
    branch: CommissionBranch
    total_revenue: Decimal
    adjusted_revenue: Decimal
    deal_commission: Decimal
    meeting_bonus: Decimal
    total_meetings: int
    weekly_breakdown: Tuple[WeeklyBucket, ...] = ()
    used_bracket_percent: Optional[Decimal] = None
    used_payment_term_bonuses: Tuple[PaymentTermBonusUsage, ...] = ()
    team_ambiguous: bool = False
    invalid_amounts: int = 0

    @property
    def total_commission(self) -> Decimal:
        return self.deal_commission + self.meeting_bonus

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation; Decimals become strings."""
        return {
            "rep_id": self.rep_id,
            "rep_name": self.rep_name,
            "team": self.team.value,
            "period_start": _json_value(self.period_start),
            "period_end": _json_value(self.period_end),
            "branch": self.branch.value,
            "total_revenue": _json_value(self.total_revenue),
            "adjusted_revenue": _json_value(self.adjusted_revenue),
            "deal_commission": _json_value(self.deal_commission),
            "meeting_bonus": _json_value(self.meeting_bonus),
            "total_commission": _json_value(self.total_commission),
            "total_meetings": self.total_meetings,
            "weekly_breakdown": [
                {
                    "week": bucket.week,
                    "week_label": bucket.week_label,
                    "meetings": bucket.meetings,
                    "bonus": _json_value(bucket.bonus),
                }
                for bucket in self.weekly_breakdown
            ],
            "used_bracket_percent": _json_value(self.used_bracket_percent),
            "used_payment_term_bonuses": [
                {"term": usage.term, "amount": _json_value(usage.amount)}
                for usage in self.used_payment_term_bonuses
            ],
            "team_ambiguous": self.team_ambiguous,
            "invalid_amounts": self.invalid_amounts,
        }
