"""Derived metrics and date helpers."""

from datetime import date, datetime, timezone

import pytest

from core.scoring import (
    average,
    calculate_lead_score,
    calculate_lifetime_value,
    calculate_risk_score,
    claims_action_items,
    group_claims_by,
    months_ago,
    parse_timestamp,
    recommend_renewal,
    sum_field,
    summarize_claims,
)


class TestMonthsAgo:
    def test_plain_subtraction(self):
        assert months_ago(6, today=date(2026, 10, 17)) == "2026-04-17"

    def test_crosses_year_boundary(self):
        assert months_ago(12, today=date(2026, 1, 15)) == "2025-01-15"

    def test_rolls_over_missing_day(self):
        assert months_ago(1, today=date(2026, 3, 31)) == "2026-03-03"

    def test_zero_months_is_today(self):
        assert months_ago(0, today=date(2026, 10, 17)) == "2026-10-17"


class TestRiskAndValue:
    @pytest.mark.parametrize(
        "claim_count, expected",
        [(0, 5), (1, 5.5), (4, 7), (6, 8), (20, 8)],
    )
    def test_risk_score(self, claim_count, expected):
        assert calculate_risk_score([{}] * claim_count) == expected

    def test_lifetime_value_ignores_missing_premiums(self):
        policies = [{"premium_amount": 1200}, {"premium_amount": 800.5}, {}, {"premium_amount": "n/a"}]

        assert calculate_lifetime_value(policies) == pytest.approx(2000.5 * 5)

    def test_lifetime_value_of_no_policies_is_zero(self):
        assert calculate_lifetime_value([]) == 0


class TestRenewalRecommendation:
    def test_three_claims_means_review(self):
        rec = recommend_renewal([{}, {}, {}])

        assert rec.action == "review"
        assert rec.confidence == 0.65
        assert rec.reasons == ["High claims frequency"]

    def test_two_claims_still_retain(self):
        rec = recommend_renewal([{}, {}])

        assert rec.action == "retain"
        assert rec.confidence == 0.85
        assert rec.suggested_adjustments == []


class TestClaimsAggregates:
    def test_summary_of_nothing(self):
        assert summarize_claims([]) == {
            "total_claims": 0,
            "total_amount": 0,
            "avg_amount": 0,
            "open_claims": 0,
            "closed_claims": 0,
        }

    def test_summary_counts_and_average(self):
        claims = [
            {"status": "open", "amount": 100},
            {"status": "closed", "amount": 300},
            {"status": "pending"},
        ]

        summary = summarize_claims(claims)

        assert summary["total_amount"] == 400
        assert summary["avg_amount"] == pytest.approx(400 / 3)
        assert summary["open_claims"] == 1
        assert summary["closed_claims"] == 1

    def test_group_by_puts_blank_in_unknown(self):
        claims = [
            {"type": "auto", "amount": 100},
            {"type": "auto", "amount": 50},
            {"amount": 10},
            {"type": "", "amount": 5},
        ]

        groups = group_claims_by(claims, "type")

        assert groups == {
            "auto": {"count": 2, "total_amount": 150},
            "unknown": {"count": 2, "total_amount": 15},
        }

    def test_action_items_flag_old_open_claims(self):
        now = datetime(2026, 10, 17, tzinfo=timezone.utc)
        claims = [
            {"status": "open", "date_created": "2026-08-01T10:00:00Z"},
            {"status": "open", "date_created": "2026-07-01"},
            {"status": "open", "date_created": "2026-10-10"},
            {"status": "closed", "date_created": "2025-01-01"},
            {"status": "open", "date_created": "not a date"},
        ]

        items = claims_action_items(claims, now=now)

        assert items == [{"priority": "high", "action": "Review old open claims", "count": 2}]

    def test_no_action_items_when_nothing_is_stale(self):
        now = datetime(2026, 10, 17, tzinfo=timezone.utc)

        assert claims_action_items([{"status": "open", "date_created": "2026-10-01"}], now=now) == []


class TestLeadScore:
    def test_base_score(self):
        assert calculate_lead_score({}, []) == 5

    def test_opportunities_and_contacts(self):
        lead = {"contacts": [{"id": 1}, {"id": 2}]}

        assert calculate_lead_score(lead, [{"value": 1}]) == 8

    def test_single_contact_adds_nothing(self):
        assert calculate_lead_score({"contacts": [{"id": 1}]}, [{"value": 1}]) == 7


class TestHelpers:
    def test_sum_field_skips_bools(self):
        assert sum_field([{"amount": True}, {"amount": 2}], "amount") == 2

    def test_average_of_zero_count(self):
        assert average(100, 0) == 0

    def test_parse_timestamp_naive_is_utc(self):
        assert parse_timestamp("2026-01-02").tzinfo is not None
        assert parse_timestamp(None) is None
