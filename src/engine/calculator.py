"""
Commission computation engine.

compute_commission is a pure function: no I/O, no clock, no randomness.
Identical inputs always give an identical CommissionResult.

Rules:
- Revenue is the sum of closed-won deal amounts ("closed" and "won" both
  appear in the stage text). It is reported un-multiplied.
- The team's revenue multiplier bracket scales revenue before any rate.
- AE: revenue bracket percent on adjusted revenue, plus payment-term bonus
  percent on each closed-won deal amount.
- SDR (and Marketing when marketing_same_as_sdr): weekly meeting tier bonus
  plus a flat percent of adjusted closed-won revenue.
- Marketing otherwise: flat percent of multiplied inbound closed-won revenue.
"""

from collections import Counter
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from src.engine.errors import InvalidNumericInput, MissingRuleTable
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
    HUNDRED,
    ZERO,
    Bracket,
    CommissionSettings,
    apply_multiplier,
    find_bracket,
    find_payment_term_bonus,
    to_decimal,
)
from src.engine.weeks import MondayWeekBucketing, WeekBucketing


class MeetingBonusMode(str, Enum):
    """How a matched meeting tier turns into a weekly bonus."""
    FLAT = "flat"                # tier value paid once per week
    PER_MEETING = "per_meeting"  # tier value x meetings that week


def _amount(deal: Deal, diagnostics: EngineDiagnostics) -> Decimal:
    """Deal amount as Decimal; malformed values count as zero."""
    value = deal.amount
    try:
        return to_decimal(value)
    except ValueError:
        diagnostics.invalid_inputs.append(
            InvalidNumericInput("amount", value, record_id=deal.deal_id)
        )
        return ZERO


def _multiplier_table(team: Team, settings: CommissionSettings) -> Optional[Sequence[Bracket]]:
    if team is Team.AE:
        return settings.ae_revenue_multiplier_brackets
    if team is Team.SDR:
        return settings.sdr_revenue_multiplier_brackets
    return settings.marketing_revenue_multiplier_brackets


def _branch_for(team: Team, settings: CommissionSettings) -> CommissionBranch:
    if team is Team.AE:
        return CommissionBranch.AE
    if team is Team.SDR:
        return CommissionBranch.SDR
    if settings.marketing_same_as_sdr:
        return CommissionBranch.MARKETING_AS_SDR
    return CommissionBranch.MARKETING_INBOUND


def _require(settings: CommissionSettings, branch: CommissionBranch, team: Team) -> None:
    """Raise MissingRuleTable when a table the branch needs is absent."""
    required = {
        CommissionBranch.AE: ("ae_brackets", "ae_payment_term_bonuses"),
        CommissionBranch.SDR: ("sdr_meeting_tiers", "sdr_closed_won_percent"),
        CommissionBranch.MARKETING_AS_SDR: ("sdr_meeting_tiers", "sdr_closed_won_percent"),
        CommissionBranch.MARKETING_INBOUND: ("marketing_inbound_percent",),
    }[branch]
    for name in required:
        if getattr(settings, name) is None:
            raise MissingRuleTable(name, team.value)


def weekly_meeting_bonuses(
    meetings: Iterable[Meeting],
    tiers: Sequence[Bracket],
    bucketing: WeekBucketing,
    mode: MeetingBonusMode = MeetingBonusMode.FLAT,
) -> Tuple[Decimal, Tuple[WeeklyBucket, ...]]:
    """
    Bucket meetings by week and price each week against the tier table.

    Every week that has a meeting gets an entry (bonus 0 when no tier
    matches), so the bucket counts always add up to the meeting total.
    Entries are sorted by week key.
    """
    counts = Counter(bucketing.bucket_key(m.timestamp) for m in meetings)

    total = ZERO
    buckets: List[WeeklyBucket] = []
    for week in sorted(counts):
        count = counts[week]
        tier = find_bracket(tiers, Decimal(count))
        if tier is None:
            bonus = ZERO
        elif mode is MeetingBonusMode.PER_MEETING:
            bonus = tier.value * count
        else:
            bonus = tier.value
        total += bonus
        buckets.append(
            WeeklyBucket(week=week, meetings=count, bonus=bonus, week_label=bucketing.label(week))
        )
    return total, tuple(buckets)


def compute_commission(
    rep: RepContext,
    deals: Sequence[Deal],
    meetings: Sequence[Meeting],
    settings: CommissionSettings,
    period: Period,
    *,
    bucketing: Optional[WeekBucketing] = None,
    meeting_bonus_mode: MeetingBonusMode = MeetingBonusMode.FLAT,
    diagnostics: Optional[EngineDiagnostics] = None,
) -> CommissionResult:
    """
    Compute one rep's commission for one period.

    Args:
        rep: Rep identity and the already-resolved Team
        deals: Deals attributed to the rep; only stage is re-filtered here
        meetings: Qualifying meetings attributed to the rep
        settings: Rule snapshot (bracket tables pre-sorted by ascending min)
        period: Echoed into the result
        bucketing: Week strategy, Monday-anchored weeks by default
        meeting_bonus_mode: Flat tier bonus or per-meeting rate
        diagnostics: Collects malformed amounts; pass the one the adapter
            filled so ``invalid_amounts`` covers both. A fresh one if None.

    Returns:
        CommissionResult. ``adjusted_revenue`` is the figure the rate was
        applied to (multiplied inbound revenue for Marketing inbound).

    Raises:
        MissingRuleTable: a table required by the team's branch is None
    """
    diagnostics = diagnostics if diagnostics is not None else EngineDiagnostics()
    bucketing = bucketing or MondayWeekBucketing()

    team = rep.team
    branch = _branch_for(team, settings)
    _require(settings, branch, team)

    # Step 1: revenue recognition
    closed_won = [(deal, _amount(deal, diagnostics)) for deal in deals if deal.is_closed_won]
    total_revenue = sum((amount for _, amount in closed_won), ZERO)

    # Step 2: team revenue multiplier
    adjusted_revenue = apply_multiplier(_multiplier_table(team, settings), total_revenue)

    deal_commission = ZERO
    meeting_bonus = ZERO
    weekly_breakdown: Tuple[WeeklyBucket, ...] = ()
    used_bracket_percent: Optional[Decimal] = None
    used_term_bonuses: List[PaymentTermBonusUsage] = []

    # Step 3: per-team rules
    if branch is CommissionBranch.AE:
        bracket = find_bracket(settings.ae_brackets, adjusted_revenue)
        if bracket is not None:
            used_bracket_percent = bracket.value
            deal_commission = adjusted_revenue * bracket.value / HUNDRED

        for deal, amount in closed_won:
            bonus = find_payment_term_bonus(settings.ae_payment_term_bonuses, deal.payment_term)
            if bonus is None:
                continue
            bonus_amount = amount * bonus.bonus_percent / HUNDRED
            deal_commission += bonus_amount
            used_term_bonuses.append(PaymentTermBonusUsage(term=bonus.term, amount=bonus_amount))

    elif branch in (CommissionBranch.SDR, CommissionBranch.MARKETING_AS_SDR):
        meeting_bonus, weekly_breakdown = weekly_meeting_bonuses(
            meetings, settings.sdr_meeting_tiers, bucketing, meeting_bonus_mode
        )
        deal_commission = adjusted_revenue * settings.sdr_closed_won_percent / HUNDRED

    else:
        inbound_revenue = sum(
            (amount for deal, amount in closed_won if (deal.channel or "").lower() == "inbound"),
            ZERO,
        )
        adjusted_revenue = apply_multiplier(
            settings.marketing_revenue_multiplier_brackets, inbound_revenue
        )
        deal_commission = adjusted_revenue * settings.marketing_inbound_percent / HUNDRED

    # Step 5: assembly
    return CommissionResult(
        rep_id=rep.rep_id,
        rep_name=rep.rep_name,
        team=team,
        period_start=period.start,
        period_end=period.end,
        branch=branch,
        total_revenue=total_revenue,
        adjusted_revenue=adjusted_revenue,
        deal_commission=deal_commission,
        meeting_bonus=meeting_bonus,
        total_meetings=len(meetings),
        weekly_breakdown=weekly_breakdown,
        used_bracket_percent=used_bracket_percent,
        used_payment_term_bonuses=tuple(used_term_bonuses),
        team_ambiguous=rep.team_ambiguous,
        invalid_amounts=diagnostics.invalid_count,
    )
