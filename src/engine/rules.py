"""
Rule tables: brackets, tiers and bonuses.

Every table is an ordered list of half-open ranges ``[min, max)`` where
``max=None`` means unbounded. Lookup is first-match, so callers must supply
tables sorted by ascending ``min``; validate_settings reports tables that are
not.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any) -> Decimal:
    """Convert a configured number to Decimal. Raises ValueError on garbage."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Not a number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


@dataclass(frozen=True)
class Bracket:
    """One half-open range mapped to a value (percent, multiplier or bonus)."""

    min: Decimal
    max: Optional[Decimal]
    value: Decimal

    def contains(self, amount: Decimal) -> bool:
        return amount >= self.min and (self.max is None or amount < self.max)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], value_key: str) -> "Bracket":
        raw_max = data.get("max")
        return cls(
            min=to_decimal(data.get("min", 0)),
            max=to_decimal(raw_max) if raw_max is not None else None,
            value=to_decimal(data[value_key]),
        )

    def to_dict(self, value_key: str) -> Dict[str, Any]:
        return {
            "min": self.min,
            "max": self.max,
            value_key: self.value,
        }


@dataclass(frozen=True)
class PaymentTermBonus:
    term: str
    bonus_percent: Decimal

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PaymentTermBonus":
        return cls(term=str(data["term"]), bonus_percent=to_decimal(data["bonus_percent"]))


BracketTable = Tuple[Bracket, ...]


def find_bracket(table: Optional[Sequence[Bracket]], amount: Decimal) -> Optional[Bracket]:
    """Return the first bracket containing ``amount``, or None."""
    if not table:
        return None
    for bracket in table:
        if bracket.contains(amount):
            return bracket
    return None


def apply_multiplier(table: Optional[Sequence[Bracket]], revenue: Decimal) -> Decimal:
    """Scale revenue by the first matching multiplier bracket (1.0 if none)."""
    bracket = find_bracket(table, revenue)
    if bracket is None:
        return revenue
    return revenue * bracket.value


def find_payment_term_bonus(
    bonuses: Optional[Sequence[PaymentTermBonus]],
    term: Optional[str],
) -> Optional[PaymentTermBonus]:
    """Exact, case-insensitive term match."""
    if not bonuses or not term:
        return None
    wanted = term.lower()
    for bonus in bonuses:
        if bonus.term.lower() == wanted:
            return bonus
    return None


def _bracket_table(raw: Any, value_keys: Iterable[str]) -> Optional[BracketTable]:
    if raw is None:
        return None
    keys = tuple(value_keys)
    table = []
    for item in raw:
        key = next((k for k in keys if k in item), None)
        if key is None:
            raise ValueError(f"Bracket {item!r} has none of {', '.join(keys)}")
        table.append(Bracket.from_dict(item, key))
    return tuple(table)


@dataclass(frozen=True)
class CommissionSettings:
    """
    Read-only rule snapshot shared by every rep in a run.

    A table set to None is missing; an empty tuple is a table that never
    matches.
    """

    ae_brackets: Optional[BracketTable] = None
    ae_payment_term_bonuses: Optional[Tuple[PaymentTermBonus, ...]] = None
    ae_revenue_multiplier_brackets: Optional[BracketTable] = None
    sdr_meeting_tiers: Optional[BracketTable] = None
    sdr_closed_won_percent: Optional[Decimal] = None
    sdr_revenue_multiplier_brackets: Optional[BracketTable] = None
    marketing_same_as_sdr: bool = True
    marketing_inbound_percent: Optional[Decimal] = None
    marketing_revenue_multiplier_brackets: Optional[BracketTable] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CommissionSettings":
        """Build from the stored JSON shape (snake_case keys)."""
        bonuses = data.get("ae_payment_term_bonuses")
        sdr_percent = data.get("sdr_closed_won_percent")
        inbound_percent = data.get("marketing_inbound_percent")
        same_as_sdr = data.get("marketing_same_as_sdr")
        return cls(
            ae_brackets=_bracket_table(data.get("ae_brackets"), ["percent"]),
            ae_payment_term_bonuses=(
                tuple(PaymentTermBonus.from_dict(b) for b in bonuses)
                if bonuses is not None else None
            ),
            ae_revenue_multiplier_brackets=_bracket_table(
                data.get("ae_revenue_multiplier_brackets"), ["multiplier"]
            ),
            # rate_per_meeting is the older name of the same column
            sdr_meeting_tiers=_bracket_table(
                data.get("sdr_meeting_tiers"), ["bonus_amount", "rate_per_meeting"]
            ),
            sdr_closed_won_percent=to_decimal(sdr_percent) if sdr_percent is not None else None,
            sdr_revenue_multiplier_brackets=_bracket_table(
                data.get("sdr_revenue_multiplier_brackets"), ["multiplier"]
            ),
            marketing_same_as_sdr=same_as_sdr is not False,
            marketing_inbound_percent=(
                to_decimal(inbound_percent) if inbound_percent is not None else None
            ),
            marketing_revenue_multiplier_brackets=_bracket_table(
                data.get("marketing_revenue_multiplier_brackets"), ["multiplier"]
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        def table(brackets, key):
            return [b.to_dict(key) for b in brackets] if brackets is not None else None

        return {
            "ae_brackets": table(self.ae_brackets, "percent"),
            "ae_payment_term_bonuses": (
                [{"term": b.term, "bonus_percent": b.bonus_percent} for b in self.ae_payment_term_bonuses]
                if self.ae_payment_term_bonuses is not None else None
            ),
            "ae_revenue_multiplier_brackets": table(self.ae_revenue_multiplier_brackets, "multiplier"),
            "sdr_meeting_tiers": table(self.sdr_meeting_tiers, "bonus_amount"),
            "sdr_closed_won_percent": self.sdr_closed_won_percent,
            "sdr_revenue_multiplier_brackets": table(self.sdr_revenue_multiplier_brackets, "multiplier"),
            "marketing_same_as_sdr": self.marketing_same_as_sdr,
            "marketing_inbound_percent": self.marketing_inbound_percent,
            "marketing_revenue_multiplier_brackets": table(
                self.marketing_revenue_multiplier_brackets, "multiplier"
            ),
        }


# Seed row written on first startup
DEFAULT_SETTINGS: Dict[str, Any] = {
    "ae_brackets": [
        {"min": 0, "max": 50000, "percent": 5},
        {"min": 50000, "max": 100000, "percent": 7.5},
        {"min": 100000, "max": None, "percent": 10},
    ],
    "ae_payment_term_bonuses": [
        {"term": "3 months", "bonus_percent": 1},
        {"term": "6 months", "bonus_percent": 2},
        {"term": "12 months", "bonus_percent": 3},
    ],
    "ae_revenue_multiplier_brackets": [],
    "sdr_meeting_tiers": [
        {"min": 0, "max": 5, "bonus_amount": 50},
        {"min": 5, "max": 10, "bonus_amount": 100},
        {"min": 10, "max": None, "bonus_amount": 150},
    ],
    "sdr_closed_won_percent": 5.0,
    "sdr_revenue_multiplier_brackets": [],
    "marketing_same_as_sdr": True,
    "marketing_inbound_percent": 3.0,
    "marketing_revenue_multiplier_brackets": [],
}


# ── Validation ────────────────────────────────────────────


def validate_table(name: str, table: Optional[Sequence[Bracket]]) -> List[str]:
    """Structural problems of one bracket table (empty list when valid)."""
    problems: List[str] = []
    if not table:
        return problems

    for i, bracket in enumerate(table):
        if bracket.max is not None and bracket.max <= bracket.min:
            problems.append(f"{name}[{i}]: max {bracket.max} must be greater than min {bracket.min}")
        if bracket.value < ZERO:
            problems.append(f"{name}[{i}]: value {bracket.value} must not be negative")

    for i, (prev, cur) in enumerate(zip(table, table[1:]), start=1):
        if cur.min < prev.min:
            problems.append(f"{name}[{i}]: brackets must be sorted by ascending min")
        elif prev.max is None or cur.min < prev.max:
            problems.append(f"{name}[{i}]: range overlaps {name}[{i - 1}]")

    return problems


def is_non_decreasing(table: Optional[Sequence[Bracket]]) -> bool:
    """True when each bracket's value is >= the previous one's."""
    if not table:
        return True
    return all(prev.value <= cur.value for prev, cur in zip(table, table[1:]))


def validate_settings(settings: CommissionSettings) -> List[str]:
    """Collect every structural problem in the settings snapshot."""
    problems: List[str] = []
    for name in (
        "ae_brackets",
        "ae_revenue_multiplier_brackets",
        "sdr_meeting_tiers",
        "sdr_revenue_multiplier_brackets",
        "marketing_revenue_multiplier_brackets",
    ):
        problems.extend(validate_table(name, getattr(settings, name)))

    for bonus in settings.ae_payment_term_bonuses or ():
        if bonus.bonus_percent < ZERO:
            problems.append(f"ae_payment_term_bonuses: '{bonus.term}' has a negative percent")
        if not bonus.term.strip():
            problems.append("ae_payment_term_bonuses: empty term")

    for name in ("sdr_closed_won_percent", "marketing_inbound_percent"):
        value = getattr(settings, name)
        if value is not None and value < ZERO:
            problems.append(f"{name}: must not be negative")

    return problems
