"""
Tests for the pure commission engine.

Covers:
- Worked scenarios for AE, SDR and Marketing
- Meeting tier modes (flat vs per-meeting)
- Revenue multipliers and payment-term bonuses
- Missing tables, empty tables and malformed amounts
- Stage filtering, monotonicity, total identity and idempotence
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from src.engine import (
    CommissionBranch,
    CommissionSettings,
    Deal,
    EngineDiagnostics,
    IsoWeekBucketing,
    Meeting,
    MeetingBonusMode,
    MissingRuleTable,
    Period,
    RepContext,
    Team,
    compute_commission,
    is_non_decreasing,
)


PERIOD = Period(
    start=datetime(2025, 11, 1, tzinfo=timezone.utc),
    end=datetime(2025, 11, 30, 23, 59, 59, tzinfo=timezone.utc),
)


def _rep(team=Team.AE, **kwargs):
    defaults = {"rep_id": "101", "rep_name": "Dana Reyes", "team": team}
    defaults.update(kwargs)
    return RepContext(**defaults)


def _deal(amount, stage="Closed Won", **kwargs):
    return Deal(amount=Decimal(str(amount)), stage=stage, **kwargs)


def _meetings(start, count):
    return [Meeting(timestamp=start + timedelta(hours=i)) for i in range(count)]


def _rules(**overrides):
    data = {
        "ae_brackets": [
            {"min": 0, "max": 50000, "percent": 5},
            {"min": 50000, "max": None, "percent": 7.5},
        ],
        "ae_payment_term_bonuses": [{"term": "6 months", "bonus_percent": 2}],
        "sdr_meeting_tiers": [
            {"min": 0, "max": 5, "bonus_amount": 50},
            {"min": 5, "max": 10, "bonus_amount": 100},
        ],
        "sdr_closed_won_percent": 5,
        "marketing_same_as_sdr": True,
        "marketing_inbound_percent": 3,
    }
    data.update(overrides)
    return CommissionSettings.from_dict(data)


# Week 1: Mon 3 Nov 2025, week 2: Mon 10 Nov 2025
WEEK_1 = datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)
WEEK_2 = datetime(2025, 11, 10, 9, 0, tzinfo=timezone.utc)


# ── Worked scenarios ──────────────────────────────────────


class TestScenarios:
    def test_ae_single_bracket_with_term_bonus(self):
        deals = [_deal(60000, payment_term="6 months")]
        result = compute_commission(_rep(), deals, [], _rules(), PERIOD)

        assert result.total_revenue == Decimal("60000")
        assert result.used_bracket_percent == Decimal("7.5")
        assert result.deal_commission == Decimal("5700")
        assert result.meeting_bonus == Decimal("0")
        assert result.total_commission == Decimal("5700")
        assert result.branch is CommissionBranch.AE
        assert [(u.term, u.amount) for u in result.used_payment_term_bonuses] == [
            ("6 months", Decimal("1200")),
        ]

    def test_sdr_two_weeks_flat_tier_bonus(self):
        meetings = _meetings(WEEK_1, 3) + _meetings(WEEK_2, 6)
        result = compute_commission(
            _rep(Team.SDR), [_deal(20000)], meetings, _rules(), PERIOD
        )

        assert result.meeting_bonus == Decimal("150")
        assert result.deal_commission == Decimal("1000")
        assert result.total_commission == Decimal("1150")
        assert result.total_meetings == 9
        assert [(b.week, b.meetings, b.bonus) for b in result.weekly_breakdown] == [
            ("2025-11-03", 3, Decimal("50")),
            ("2025-11-10", 6, Decimal("100")),
        ]

    def test_sdr_two_weeks_per_meeting_rate(self):
        meetings = _meetings(WEEK_1, 3) + _meetings(WEEK_2, 6)
        result = compute_commission(
            _rep(Team.SDR),
            [_deal(20000)],
            meetings,
            _rules(),
            PERIOD,
            meeting_bonus_mode=MeetingBonusMode.PER_MEETING,
        )

        assert result.meeting_bonus == Decimal("750")  # 3*50 + 6*100
        assert result.deal_commission == Decimal("1000")
        assert result.total_commission == Decimal("1750")

    def test_marketing_inbound_only(self):
        deals = [
            _deal(10000, channel="inbound"),
            _deal(5000, channel="outbound"),
        ]
        rules = _rules(marketing_same_as_sdr=False)
        result = compute_commission(_rep(Team.MARKETING), deals, [], rules, PERIOD)

        assert result.branch is CommissionBranch.MARKETING_INBOUND
        assert result.total_revenue == Decimal("15000")
        assert result.adjusted_revenue == Decimal("10000")
        assert result.deal_commission == Decimal("300")
        assert result.meeting_bonus == Decimal("0")

    def test_no_matching_bracket(self):
        rules = _rules(ae_brackets=[{"min": 1000, "max": None, "percent": 10}])
        result = compute_commission(_rep(), [_deal(500)], [], rules, PERIOD)

        assert result.deal_commission == Decimal("0")
        assert result.used_bracket_percent is None


# ── Team branches ─────────────────────────────────────────


class TestBranches:
    def test_marketing_same_as_sdr_uses_meeting_tiers(self):
        meetings = _meetings(WEEK_1, 6)
        result = compute_commission(
            _rep(Team.MARKETING), [_deal(10000)], meetings, _rules(), PERIOD
        )

        assert result.branch is CommissionBranch.MARKETING_AS_SDR
        assert result.meeting_bonus == Decimal("100")
        assert result.deal_commission == Decimal("500")

    def test_marketing_as_sdr_uses_marketing_multiplier(self):
        rules = _rules(
            sdr_revenue_multiplier_brackets=[{"min": 0, "max": None, "multiplier": 3}],
            marketing_revenue_multiplier_brackets=[{"min": 0, "max": None, "multiplier": 2}],
        )
        result = compute_commission(_rep(Team.MARKETING), [_deal(1000)], [], rules, PERIOD)

        assert result.adjusted_revenue == Decimal("2000")
        assert result.deal_commission == Decimal("100")

    def test_team_ambiguous_flag_is_echoed(self):
        result = compute_commission(
            _rep(Team.AE, team_ambiguous=True), [], [], _rules(), PERIOD
        )
        assert result.team_ambiguous is True


# ── Multipliers and bonuses ───────────────────────────────


class TestMultipliers:
    def test_ae_multiplier_scales_before_bracket(self):
        rules = _rules(
            ae_revenue_multiplier_brackets=[
                {"min": 0, "max": 40000, "multiplier": 1},
                {"min": 40000, "max": None, "multiplier": 1.5},
            ],
        )
        result = compute_commission(_rep(), [_deal(40000)], [], rules, PERIOD)

        assert result.total_revenue == Decimal("40000")
        assert result.adjusted_revenue == Decimal("60000")
        assert result.used_bracket_percent == Decimal("7.5")
        assert result.deal_commission == Decimal("4500")

    def test_payment_term_bonus_uses_unmultiplied_amount(self):
        rules = _rules(
            ae_revenue_multiplier_brackets=[{"min": 0, "max": None, "multiplier": 2}],
        )
        result = compute_commission(
            _rep(), [_deal(10000, payment_term="6 months")], [], rules, PERIOD
        )

        # 20000 * 5% + 10000 * 2%
        assert result.deal_commission == Decimal("1200")

    def test_payment_term_match_is_case_insensitive_and_exact(self):
        deals = [
            _deal(10000, payment_term="6 MONTHS"),
            _deal(10000, payment_term="6 months upfront"),
        ]
        result = compute_commission(_rep(), deals, [], _rules(), PERIOD)

        assert len(result.used_payment_term_bonuses) == 1
        assert result.deal_commission == Decimal("1200")  # 20000*5% + 10000*2%

    def test_sdr_multiplier_applies_to_closed_won_percent(self):
        rules = _rules(
            sdr_revenue_multiplier_brackets=[{"min": 10000, "max": None, "multiplier": 2}],
        )
        result = compute_commission(_rep(Team.SDR), [_deal(10000)], [], rules, PERIOD)

        assert result.deal_commission == Decimal("1000")


# ── Missing / empty tables ────────────────────────────────


class TestRuleTables:
    @pytest.mark.parametrize(
        "team, overrides, table",
        [
            (Team.AE, {"ae_brackets": None}, "ae_brackets"),
            (Team.AE, {"ae_payment_term_bonuses": None}, "ae_payment_term_bonuses"),
            (Team.SDR, {"sdr_meeting_tiers": None}, "sdr_meeting_tiers"),
            (Team.SDR, {"sdr_closed_won_percent": None}, "sdr_closed_won_percent"),
            (Team.MARKETING, {"sdr_meeting_tiers": None}, "sdr_meeting_tiers"),
            (
                Team.MARKETING,
                {"marketing_same_as_sdr": False, "marketing_inbound_percent": None},
                "marketing_inbound_percent",
            ),
        ],
    )
    def test_missing_table_raises(self, team, overrides, table):
        with pytest.raises(MissingRuleTable) as exc_info:
            compute_commission(_rep(team), [_deal(1000)], [], _rules(**overrides), PERIOD)
        assert exc_info.value.table == table

    def test_other_teams_tables_are_not_required(self):
        rules = _rules(ae_brackets=None, ae_payment_term_bonuses=None)
        result = compute_commission(_rep(Team.SDR), [_deal(1000)], [], rules, PERIOD)
        assert result.deal_commission == Decimal("50")

    def test_empty_tables_never_match(self):
        rules = _rules(ae_brackets=[], ae_payment_term_bonuses=[])
        result = compute_commission(
            _rep(), [_deal(60000, payment_term="6 months")], [], rules, PERIOD
        )
        assert result.deal_commission == Decimal("0")
        assert result.used_bracket_percent is None

    def test_weeks_without_a_tier_are_listed_with_zero_bonus(self):
        rules = _rules(sdr_meeting_tiers=[{"min": 5, "max": None, "bonus_amount": 100}])
        meetings = _meetings(WEEK_1, 2) + _meetings(WEEK_2, 5)
        result = compute_commission(_rep(Team.SDR), [], meetings, rules, PERIOD)

        assert [(b.meetings, b.bonus) for b in result.weekly_breakdown] == [
            (2, Decimal("0")),
            (5, Decimal("100")),
        ]
        assert result.meeting_bonus == Decimal("100")

    def test_legacy_rate_per_meeting_key(self):
        rules = _rules(sdr_meeting_tiers=[{"min": 0, "max": None, "rate_per_meeting": 25}])
        result = compute_commission(
            _rep(Team.SDR), [], _meetings(WEEK_1, 4), rules, PERIOD,
            meeting_bonus_mode=MeetingBonusMode.PER_MEETING,
        )
        assert result.meeting_bonus == Decimal("100")


# ── Malformed input ───────────────────────────────────────


class TestInvalidAmounts:
    def test_malformed_amount_counts_as_zero(self):
        deals = [Deal(amount="n/a", stage="Closed Won", deal_id="d-1"), _deal(1000)]
        diagnostics = EngineDiagnostics()
        result = compute_commission(
            _rep(), deals, [], _rules(), PERIOD, diagnostics=diagnostics
        )

        assert result.total_revenue == Decimal("1000")
        assert result.invalid_amounts == 1
        assert diagnostics.invalid_inputs[0].record_id == "d-1"

    def test_shared_diagnostics_are_counted(self):
        diagnostics = EngineDiagnostics()
        diagnostics.invalid_inputs.append(object())
        result = compute_commission(
            _rep(), [_deal(1000)], [], _rules(), PERIOD, diagnostics=diagnostics
        )
        assert result.invalid_amounts == 1

    def test_string_amounts_are_parsed(self):
        result = compute_commission(
            _rep(), [Deal(amount="2500.50", stage="closedwon")], [], _rules(), PERIOD
        )
        assert result.total_revenue == Decimal("2500.50")

    @pytest.mark.parametrize("bad", [
        Decimal("NaN"),
        Decimal("Infinity"),
        Decimal("-Infinity"),
        float("nan"),
        float("inf"),
    ])
    def test_non_finite_amount_counts_as_zero(self, bad):
        deals = [Deal(amount=bad, stage="Closed Won", deal_id="d-bad"), _deal(1000)]
        diagnostics = EngineDiagnostics()
        result = compute_commission(
            _rep(), deals, [], _rules(), PERIOD, diagnostics=diagnostics
        )

        assert result.total_revenue == Decimal("1000")
        assert result.deal_commission == Decimal("50")
        assert result.invalid_amounts == 1
        assert diagnostics.invalid_inputs[0].record_id == "d-bad"


# ── Properties ────────────────────────────────────────────


class TestProperties:
    def test_non_closed_won_deals_do_not_change_result(self):
        base = [_deal(30000)]
        noisy = base + [
            _deal(99999, stage="Closed Lost"),
            _deal(99999, stage="Won - pending"),
            _deal(99999, stage="appointmentscheduled"),
        ]
        a = compute_commission(_rep(), base, [], _rules(), PERIOD)
        b = compute_commission(_rep(), noisy, [], _rules(), PERIOD)
        assert a == b

    def test_ae_commission_is_monotone_in_revenue(self):
        rules = _rules()
        assert is_non_decreasing(rules.ae_brackets)

        previous = Decimal("-1")
        for amount in range(0, 200001, 5000):
            result = compute_commission(_rep(), [_deal(amount)], [], rules, PERIOD)
            assert result.deal_commission >= previous
            previous = result.deal_commission

    @pytest.mark.parametrize("team", [Team.AE, Team.SDR, Team.MARKETING])
    def test_total_is_deal_commission_plus_meeting_bonus(self, team):
        result = compute_commission(
            _rep(team),
            [_deal(45000, payment_term="6 months", channel="inbound")],
            _meetings(WEEK_1, 7),
            _rules(),
            PERIOD,
        )
        assert result.total_commission == result.deal_commission + result.meeting_bonus

    def test_identical_inputs_give_identical_results(self):
        meetings = _meetings(WEEK_2, 6) + _meetings(WEEK_1, 3)
        deals = [_deal(20000)]
        first = compute_commission(_rep(Team.SDR), deals, meetings, _rules(), PERIOD)
        second = compute_commission(
            _rep(Team.SDR), deals, list(reversed(meetings)), _rules(), PERIOD
        )

        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_week_counts_add_up_to_total_meetings(self):
        meetings = (
            _meetings(WEEK_1, 3)
            + _meetings(WEEK_2, 6)
            + _meetings(datetime(2025, 11, 20, tzinfo=timezone.utc), 11)
        )
        result = compute_commission(
            _rep(Team.SDR), [], meetings, _rules(), PERIOD, bucketing=IsoWeekBucketing()
        )
        assert sum(b.meetings for b in result.weekly_breakdown) == result.total_meetings == 20


# ── Serialization ─────────────────────────────────────────


class TestResultSerialization:
    def test_to_dict_emits_decimal_strings(self):
        result = compute_commission(
            _rep(), [_deal(60000, payment_term="6 months")], [], _rules(), PERIOD
        )
        data = result.to_dict()

        assert data["team"] == "AE"
        assert data["branch"] == "ae"
        assert Decimal(data["total_commission"]) == Decimal("5700")
        assert isinstance(data["deal_commission"], str)
        assert data["period_start"].startswith("2025-11-01")
        assert data["used_payment_term_bonuses"][0]["term"] == "6 months"
