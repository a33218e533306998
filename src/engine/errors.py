"""
Commission engine error kinds.

Only MissingRuleTable is raised by the engine. InvalidNumericInput and
AmbiguousTeamClassification are recovered locally and reported through
EngineDiagnostics so the caller can count or log them.
"""

from typing import Any, Optional, Sequence


class CommissionError(Exception):
    """Base class for commission computation errors."""


class MissingRuleTable(CommissionError):
    """A rule table required by the active team is absent from settings."""

    def __init__(self, table: str, team: Optional[str] = None):
        self.table = table
        self.team = team
        message = f"Commission settings are missing required table '{table}'"
        if team:
            message += f" for team {team}"
        super().__init__(message)


class InvalidNumericInput(CommissionError):
    """A numeric CRM field could not be parsed and was treated as zero."""

    def __init__(self, field: str, value: Any, record_id: Optional[str] = None):
        self.field = field
        self.value = value
        self.record_id = record_id
        super().__init__(
            f"Invalid numeric value for '{field}': {value!r}"
            + (f" (record {record_id})" if record_id else "")
        )


class AmbiguousTeamClassification(CommissionError):
    """A team label matched more than one of AE, SDR and Marketing."""

    def __init__(self, label: str, matched: Sequence[str], chosen: str):
        self.label = label
        self.matched = tuple(matched)
        self.chosen = chosen
        super().__init__(
            f"Team label {label!r} matches {', '.join(self.matched)}; using {chosen}"
        )
