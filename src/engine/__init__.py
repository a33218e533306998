"""Pure commission engine: rule tables, week bucketing and computation."""

from src.engine.calculator import MeetingBonusMode, compute_commission, weekly_meeting_bonuses
from src.engine.errors import (
    AmbiguousTeamClassification,
    CommissionError,
    InvalidNumericInput,
    MissingRuleTable,
)
from src.engine.models import (
    CommissionBranch,
    CommissionResult,
    Deal,
    EngineDiagnostics,
    Meeting,
    PaymentTermBonusUsage,
    Period,
    RepContext,
    Team,
    WeeklyBucket,
)
from src.engine.rules import (
    DEFAULT_SETTINGS,
    Bracket,
    CommissionSettings,
    PaymentTermBonus,
    is_non_decreasing,
    validate_settings,
)
from src.engine.weeks import IsoWeekBucketing, MondayWeekBucketing, WeekBucketing, get_bucketing

__all__ = [
    # Computation
    "compute_commission",
    "weekly_meeting_bonuses",
    "MeetingBonusMode",
    # Errors
    "CommissionError",
    "MissingRuleTable",
    "InvalidNumericInput",
    "AmbiguousTeamClassification",
    # Models
    "Team",
    "CommissionBranch",
    "Deal",
    "Meeting",
    "Period",
    "RepContext",
    "CommissionResult",
    "WeeklyBucket",
    "PaymentTermBonusUsage",
    "EngineDiagnostics",
    # Rules
    "Bracket",
    "PaymentTermBonus",
    "CommissionSettings",
    "DEFAULT_SETTINGS",
    "validate_settings",
    "is_non_decreasing",
    # Weeks
    "WeekBucketing",
    "MondayWeekBucketing",
    "IsoWeekBucketing",
    "get_bucketing",
]
