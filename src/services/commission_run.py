"""
Commission run orchestration.

Fetches a rep's deals and meetings from HubSpot, runs the engine, writes a
run log row, and optionally pushes the statement back to HubSpot. The
monthly run does this for every CRM owner over the previous calendar month;
one rep failing never stops the others.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.engine import (
    CommissionResult,
    CommissionSettings,
    EngineDiagnostics,
    MeetingBonusMode,
    Period,
    RepContext,
    Team,
    compute_commission,
    get_bucketing,
)
from src.models import CommissionRunLog
from src.services.attribution import (
    Rep,
    attribute_deals,
    qualifying_meetings,
    rep_from_owner,
    resolve_team,
)
from src.services.hubspot_client import CRMError, HubSpotClient
from src.services.settings_store import load_commission_settings

logger = logging.getLogger(__name__)


def previous_month_period(now: Optional[datetime] = None) -> Period:
    """First instant to last second of the month before ``now`` (UTC)."""
    now = now or datetime.now(timezone.utc)
    first_this_month = now.astimezone(timezone.utc).replace(
        day=1, hour=0, minute=0, second=0, microsecond=0
    )
    last_prev_month = first_this_month - timedelta(days=1)
    start = last_prev_month.replace(day=1)
    end = last_prev_month.replace(hour=23, minute=59, second=59)
    return Period(start=start, end=end)


def _uses_meetings(team: Team, rules: CommissionSettings) -> bool:
    return team is Team.SDR or (team is Team.MARKETING and rules.marketing_same_as_sdr)


async def fetch_inputs(
    crm: HubSpotClient,
    rep: Rep,
    team: Team,
    period: Period,
    rules: CommissionSettings,
    diagnostics: EngineDiagnostics,
):
    """Pull and attribute one rep's deals and qualifying meetings."""
    extra_filters = None
    if team is Team.AE:
        extra_filters = [{"propertyName": "hubspot_owner_id", "operator": "EQ", "value": rep.id}]

    deal_records = await crm.search_deals(period.start, period.end, extra_filters)
    deals = attribute_deals(team, rep, deal_records, diagnostics)

    meetings = []
    if _uses_meetings(team, rules):
        meeting_records = await crm.search_meetings(rep.id, period.start, period.end)
        meetings = qualifying_meetings(
            meeting_records,
            settings.meeting_type_filter,
            settings.meeting_outcome_filter,
        )
        logger.info(
            f"{len(meetings)}/{len(meeting_records)} qualifying meetings for {rep.display_name}"
        )

    return deals, meetings


async def rep_for_request(
    crm: HubSpotClient,
    rep_id: str,
    rep_name: str,
    team_label: str,
) -> Rep:
    """
    Rep for an on-demand calculation.

    SDR deals are attributed by the sdr_owner property, which usually holds
    an email or full name, so the owner record is looked up to fill those in.
    """
    rep = Rep(id=rep_id, name=rep_name, team_label=team_label)
    if resolve_team(team_label).team is not Team.SDR:
        return rep

    try:
        owner = await crm.get_owner(rep_id)
    except CRMError as e:
        logger.warning(f"Could not load HubSpot owner {rep_id}, attributing by name only: {e}")
        return rep

    return Rep(
        id=rep_id,
        email=owner.get("email") or "",
        first_name=owner.get("firstName") or "",
        last_name=owner.get("lastName") or "",
        team_label=team_label,
        name=rep_name,
    )


async def calculate_for_rep(
    db: AsyncSession,
    crm: HubSpotClient,
    rep: Rep,
    period: Period,
    rules: Optional[CommissionSettings] = None,
) -> Tuple[CommissionResult, CommissionRunLog]:
    """
    Compute and log one rep's commission.

    Raises:
        MissingRuleTable: settings lack a table the rep's team needs
        CRMError: HubSpot could not be read
    """
    rules = rules or await load_commission_settings(db)
    diagnostics = EngineDiagnostics()
    resolution = resolve_team(rep.team_label, diagnostics)

    deals, meetings = await fetch_inputs(crm, rep, resolution.team, period, rules, diagnostics)

    result = compute_commission(
        RepContext(
            rep_id=rep.id,
            rep_name=rep.display_name,
            team=resolution.team,
            team_ambiguous=resolution.ambiguous,
        ),
        deals,
        meetings,
        rules,
        period,
        bucketing=get_bucketing(settings.week_bucketing),
        meeting_bonus_mode=MeetingBonusMode(settings.meeting_bonus_mode),
        diagnostics=diagnostics,
    )

    if diagnostics.invalid_count:
        logger.warning(
            f"{diagnostics.invalid_count} deal amounts for {rep.display_name} were not numeric "
            f"and counted as zero"
        )

    log = CommissionRunLog(
        rep_id=rep.id,
        rep_name=rep.display_name,
        team=result.team.value,
        period_start=period.start,
        period_end=period.end,
        commission_json=result.to_dict(),
        success=True,
    )
    db.add(log)
    await db.flush()

    logger.info(
        f"Commission for {rep.display_name} ({result.team.value}, {result.branch.value}): "
        f"{result.total_commission}"
    )
    return result, log


async def record_failure(
    db: AsyncSession,
    rep: Rep,
    period: Period,
    error: Exception,
    team: str = "Unknown",
) -> CommissionRunLog:
    log = CommissionRunLog(
        rep_id=rep.id,
        rep_name=rep.display_name,
        team=team,
        period_start=period.start,
        period_end=period.end,
        commission_json={},
        success=False,
        error_message=str(error),
    )
    db.add(log)
    await db.flush()
    return log


async def mark_failed(db: AsyncSession, log: CommissionRunLog, error: Exception) -> CommissionRunLog:
    """Flip an already written run log to failed, e.g. when the CRM sync breaks."""
    log.success = False
    log.error_message = str(error)
    log.crm_record_id = None
    await db.flush()
    return log


def statement_properties(result: Mapping[str, Any]) -> Dict[str, str]:
    """HubSpot commission statement properties from a serialized result."""
    return {
        "deals_commission": str(result["total_commission"]),
        "deals_rate_applied": str(result.get("used_bracket_percent") or 0),
        "deals_total_amount": str(result["total_revenue"]),
        "channel": str(result["team"]),
        "total_meetings": str(result["total_meetings"]),
        "period_start": str(result["period_start"]),
        "period_end": str(result["period_end"]),
        "rep_name": str(result["rep_name"]),
        "rep_id": str(result["rep_id"]),
        "deal_commission": str(result["deal_commission"]),
        "meeting_bonus": str(result["meeting_bonus"]),
    }


async def sync_result(crm: HubSpotClient, result: Mapping[str, Any]) -> str:
    """Create a commission statement in HubSpot; returns the record id."""
    logger.info(f"Syncing commission for {result['rep_name']} to HubSpot")
    return await crm.create_commission_statement(statement_properties(result))


async def _log_failure(db, log, rep, period, error):
    # one row per rep and run: reuse the row calculate_for_rep already wrote
    if log is None:
        return await record_failure(db, rep, period, error)
    return await mark_failed(db, log, error)


async def run_monthly(
    db: AsyncSession,
    crm: HubSpotClient,
    now: Optional[datetime] = None,
) -> Tuple[Period, List[Dict[str, Any]]]:
    """
    Run the previous month's commissions for every HubSpot owner.

    Returns:
        The period and one status dict per owner
    """
    period = previous_month_period(now)
    logger.info(f"Starting monthly commission run: {period.start} to {period.end}")

    owners = await crm.list_owners()
    rules = await load_commission_settings(db)

    statuses: List[Dict[str, Any]] = []
    for owner in owners:
        rep = rep_from_owner(owner)
        label = rep.email or rep.id
        log = None
        try:
            result, log = await calculate_for_rep(db, crm, rep, period, rules)
            if settings.sync_to_crm:
                log.crm_record_id = await sync_result(crm, log.commission_json)
            statuses.append(
                {"owner": label, "status": "success", "total_commission": result.total_commission}
            )
        except (CRMError, ValueError, LookupError) as e:
            logger.error(f"Error processing owner {label}: {e}")
            await _log_failure(db, log, rep, period, e)
            statuses.append({"owner": label, "status": "error", "error": str(e)})
        except Exception as e:
            # MissingRuleTable and anything unexpected: keep going with the next rep
            logger.exception(f"Unexpected error processing owner {label}")
            await _log_failure(db, log, rep, period, e)
            statuses.append({"owner": label, "status": "error", "error": str(e)})

    await db.commit()
    logger.info(
        f"Monthly commission run completed: "
        f"{sum(1 for s in statuses if s['status'] == 'success')}/{len(statuses)} succeeded"
    )
    return period, statuses
