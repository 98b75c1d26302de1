"""Tests for the pure escalation countdown."""

from datetime import datetime, timedelta, timezone

import pytest

from eqms.config import CountdownState, TicketStatus
from eqms.sla.domain import EscalationCalculator, EscalationPolicy, SLAConfig

CREATED = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def config(key: str, minutes: int, warning_seconds=None) -> SLAConfig:
    return SLAConfig(id="c1", sbu_id="s1", ticket_status=key, sla_time=minutes, warning_seconds=warning_seconds)


def evaluate(status, cfg, elapsed: timedelta, warning_seconds: int = 300):
    return EscalationCalculator.evaluate(
        ticket_id="t1",
        status=status,
        created_at=CREATED,
        config=cfg,
        current_time=CREATED + elapsed,
        warning_seconds=warning_seconds,
    )


class TestRemainingSeconds:
    def test_counts_down_from_creation(self):
        remaining = EscalationCalculator.calculate_remaining_seconds(CREATED, 30, CREATED + timedelta(minutes=10))
        assert remaining == 20 * 60

    def test_rounds_partial_seconds_up(self):
        remaining = EscalationCalculator.calculate_remaining_seconds(
            CREATED, 1, CREATED + timedelta(seconds=59, milliseconds=500)
        )
        assert remaining == 1

    def test_never_negative(self):
        assert EscalationCalculator.calculate_remaining_seconds(CREATED, 1, CREATED + timedelta(hours=5)) == 0

    def test_deadline(self):
        assert EscalationCalculator.calculate_deadline(CREATED, 90) == CREATED + timedelta(minutes=90)


class TestEvaluate:
    def test_counting(self):
        countdown = evaluate(TicketStatus.NEW, config("open", 30), timedelta(minutes=5))
        assert countdown.state is CountdownState.COUNTING
        assert countdown.remaining_seconds == 25 * 60
        assert countdown.allotted_seconds == 30 * 60
        assert countdown.next_status is TicketStatus.ESCALATED_TIER1
        assert not countdown.should_escalate

    def test_warning_below_threshold(self):
        countdown = evaluate(TicketStatus.NEW, config("open", 30), timedelta(minutes=26))
        assert countdown.state is CountdownState.WARNING

    def test_expired_escalates(self):
        countdown = evaluate(TicketStatus.ESCALATED_TIER1, config("escalated_tier1", 60), timedelta(minutes=60))
        assert countdown.state is CountdownState.EXPIRED
        assert countdown.remaining_seconds == 0
        assert countdown.should_escalate
        assert countdown.next_status is TicketStatus.ESCALATED_TIER2

    def test_tier3_expires_without_successor(self):
        countdown = evaluate(TicketStatus.ESCALATED_TIER3, config("escalated_tier3", 10), timedelta(hours=1))
        assert countdown.state is CountdownState.EXPIRED
        assert countdown.next_status is None
        assert not countdown.should_escalate

    @pytest.mark.parametrize("status", [
        TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CLOSED
    ])
    def test_paused_statuses_never_escalate(self, status):
        countdown = evaluate(status, config(status.value, 1), timedelta(days=3))
        assert countdown.state is CountdownState.PAUSED
        assert countdown.remaining_seconds is None
        assert not countdown.should_escalate

    def test_missing_config_fails_closed(self):
        countdown = evaluate(TicketStatus.NEW, None, timedelta(days=3))
        assert countdown.state is CountdownState.UNKNOWN
        assert not countdown.should_escalate

    def test_repeated_evaluation_is_stable(self):
        cfg = config("open", 30)
        first = evaluate(TicketStatus.NEW, cfg, timedelta(minutes=7))
        second = evaluate(TicketStatus.NEW, cfg, timedelta(minutes=7))
        later = evaluate(TicketStatus.NEW, cfg, timedelta(minutes=8))
        assert first == second
        assert first.remaining_seconds - later.remaining_seconds == 60

    def test_to_dict(self):
        data = evaluate(TicketStatus.NEW, config("open", 30), timedelta(minutes=5)).to_dict()
        assert data["status"] == "new"
        assert data["state"] == "counting"
        assert data["next_status"] == "escalated_tier1"
        assert data["deadline"] == (CREATED + timedelta(minutes=30)).isoformat()


class TestEscalationPolicy:
    def test_new_key_normalized_to_open(self):
        policy = EscalationPolicy(default_sla_minutes={"new": 15})
        assert policy.get_default_minutes("open") == 15

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            EscalationPolicy(default_sla_minutes={"bogus": 15})

    def test_warning_threshold_precedence(self):
        policy = EscalationPolicy(warning_seconds={"open": 120}, default_warning_seconds=60)
        assert policy.get_warning_seconds("open", config("open", 30, warning_seconds=10)) == 10
        assert policy.get_warning_seconds("open", config("open", 30)) == 120
        assert policy.get_warning_seconds("escalated_tier1") == 60

    def test_seed_table_overrides_win(self):
        policy = EscalationPolicy(default_sla_minutes={"open": 30, "escalated_tier1": 60})
        table = policy.seed_table({"open": 5, "closed": 0})
        assert table == {"open": 5, "escalated_tier1": 60, "closed": 0}


def test_sla_config_rejects_negative_time():
    with pytest.raises(ValueError):
        config("open", -1)
