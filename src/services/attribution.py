"""
Attribution adapter between raw HubSpot records and the commission engine.

Everything CRM-shaped stops here:
- free-form team labels are resolved once into a Team
- deal records are attributed to a rep (owner id, SDR owner, inbound channel)
- meeting records are filtered to completed discovery meetings
- dynamic property values are coerced into typed Deal / Meeting entities
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from src.engine.errors import AmbiguousTeamClassification, InvalidNumericInput
from src.engine.models import Deal, EngineDiagnostics, Meeting, Team
from src.engine.rules import ZERO, to_decimal

logger = logging.getLogger(__name__)

# Priority order when a label matches several keywords
TEAM_KEYWORDS: Tuple[Tuple[str, Team], ...] = (
    ("ae", Team.AE),
    ("sdr", Team.SDR),
    ("marketing", Team.MARKETING),
)

DEFAULT_TEAM = Team.AE


@dataclass(frozen=True)
class TeamResolution:
    team: Team
    ambiguous: bool = False
    matched: Tuple[Team, ...] = ()


@dataclass(frozen=True)
class Rep:
    """A CRM owner as seen by the commission run."""

    id: str
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    team_label: str = DEFAULT_TEAM.value
    name: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return self.name or self.full_name or self.email or self.id


def _norm(value: Any) -> str:
    return str(value).strip().lower() if value is not None else ""


def resolve_team(
    label: Optional[str],
    diagnostics: Optional[EngineDiagnostics] = None,
) -> TeamResolution:
    """
    Map a free-text team label to a Team.

    Case-insensitive containment against "ae", "sdr" and "marketing". A label
    matching several keywords resolves by AE > SDR > Marketing priority and
    is reported as ambiguous. A label matching nothing falls back to AE.
    """
    text = _norm(label)
    matched = tuple(team for keyword, team in TEAM_KEYWORDS if keyword in text)

    if not matched:
        logger.debug(f"Team label {label!r} matched no team, defaulting to {DEFAULT_TEAM.value}")
        return TeamResolution(team=DEFAULT_TEAM)

    if len(matched) > 1:
        issue = AmbiguousTeamClassification(
            label or "", [t.value for t in matched], matched[0].value
        )
        logger.warning(str(issue))
        if diagnostics is not None:
            diagnostics.ambiguous_teams.append(issue)
        return TeamResolution(team=matched[0], ambiguous=True, matched=matched)

    return TeamResolution(team=matched[0], matched=matched)


def coerce_amount(
    value: Any,
    diagnostics: Optional[EngineDiagnostics] = None,
    record_id: Optional[str] = None,
) -> Decimal:
    """
    Parse a CRM amount. Missing values are zero; malformed values are zero
    and recorded as InvalidNumericInput.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return ZERO
    try:
        return to_decimal(value)
    except ValueError:
        issue = InvalidNumericInput("amount", value, record_id=record_id)
        logger.warning(str(issue))
        if diagnostics is not None:
            diagnostics.invalid_inputs.append(issue)
        return ZERO


def parse_crm_datetime(value: Any) -> Optional[datetime]:
    """HubSpot sends either epoch milliseconds or ISO-8601 strings."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable CRM timestamp: {value!r}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _properties(record: Mapping[str, Any]) -> Mapping[str, Any]:
    return record.get("properties") or {}


def deal_from_crm(
    record: Mapping[str, Any],
    diagnostics: Optional[EngineDiagnostics] = None,
) -> Deal:
    props = _properties(record)
    record_id = str(record["id"]) if record.get("id") is not None else None
    return Deal(
        amount=coerce_amount(props.get("amount"), diagnostics, record_id),
        stage=props.get("dealstage") or "",
        channel=props.get("deal_channel") or None,
        payment_term=props.get("payment_terms") or None,
        owner_attribution=props.get("hubspot_owner_id") or None,
        close_date=parse_crm_datetime(props.get("closedate")),
        deal_id=record_id,
    )


def meeting_from_crm(record: Mapping[str, Any]) -> Optional[Meeting]:
    timestamp = parse_crm_datetime(_properties(record).get("hs_meeting_start_time"))
    if timestamp is None:
        return None
    return Meeting(timestamp=timestamp)


def rep_from_owner(owner: Mapping[str, Any]) -> Rep:
    """Build a Rep from a HubSpot owner; the first team name is the label."""
    teams = owner.get("teams") or []
    team_label = (teams[0].get("name") if teams else None) or DEFAULT_TEAM.value
    return Rep(
        id=str(owner.get("id", "")),
        email=owner.get("email") or "",
        first_name=owner.get("firstName") or "",
        last_name=owner.get("lastName") or "",
        team_label=team_label,
    )


def deal_belongs_to(team: Team, rep: Rep, record: Mapping[str, Any]) -> bool:
    """Attribution rule for one deal record."""
    props = _properties(record)

    if team is Team.AE:
        return _norm(props.get("hubspot_owner_id")) == _norm(rep.id)

    if team is Team.SDR:
        sdr_owner = _norm(props.get("sdr_owner"))
        if not sdr_owner:
            return False
        candidates = {_norm(rep.email), _norm(rep.full_name), _norm(rep.display_name), _norm(rep.id)}
        candidates.discard("")
        return sdr_owner in candidates

    return _norm(props.get("deal_channel")) == "inbound"


def attribute_deals(
    team: Team,
    rep: Rep,
    records: Iterable[Mapping[str, Any]],
    diagnostics: Optional[EngineDiagnostics] = None,
) -> List[Deal]:
    """Keep the records attributed to the rep and coerce them to Deals."""
    records = list(records)
    deals = [
        deal_from_crm(record, diagnostics)
        for record in records
        if deal_belongs_to(team, rep, record)
    ]
    logger.info(
        f"Attributed {len(deals)}/{len(records)} deals to {rep.display_name} ({team.value})"
    )
    return deals


def is_qualifying_meeting(
    record: Mapping[str, Any],
    type_filter: str,
    outcome_filter: str,
) -> bool:
    props = _properties(record)
    return (
        _norm(type_filter) in _norm(props.get("hs_meeting_type"))
        and _norm(props.get("hs_meeting_outcome")) == _norm(outcome_filter)
    )


def qualifying_meetings(
    records: Iterable[Mapping[str, Any]],
    type_filter: str,
    outcome_filter: str,
) -> List[Meeting]:
    """Completed meetings of the configured type, as Meetings."""
    meetings: List[Meeting] = []
    for record in records:
        if not is_qualifying_meeting(record, type_filter, outcome_filter):
            continue
        meeting = meeting_from_crm(record)
        if meeting is not None:
            meetings.append(meeting)
    return meetings


def owner_summary(rep: Rep) -> Dict[str, str]:
    """Shape returned by the owners endpoint."""
    return {
        "id": rep.id,
        "name": rep.full_name,
        "email": rep.email,
        "team": resolve_team(rep.team_label).team.value,
    }
