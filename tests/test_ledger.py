"""Tests for the points ledger transitions."""
from __future__ import annotations

from datetime import date, datetime

import pytest

from custom_components.ramadhanjournal import ledger
from custom_components.ramadhanjournal.exceptions import (
    ExemptModeActive,
    InvalidTransition,
    LedgerError,
    PrayerWindowNotOpen,
    UnknownActivity,
)
from custom_components.ramadhanjournal.models import ActivityEntry, ContentItem, DailyRecord, ReadReceipt

PAST = date(2026, 2, 27)
TODAY = date(2026, 3, 1)


def _complete(record, balance, activity, now, **kwargs):
    kwargs.setdefault("record_date", PAST)
    return ledger.complete_activity(record, balance, activity, now=now, **kwargs)


class TestPointRules:
    """Test the rule table."""

    @pytest.mark.parametrize(
        ("activity", "mode", "expected"),
        [
            ("sholatSubuh", "Jamaah", 20),
            ("sholatSubuh", "Sendiri", 10),
            ("sholatIsya", None, 10),
            ("tarawih", None, 15),
            ("dhuha", None, 10),
            ("puasa", None, 20),
        ],
    )
    def test_points_for(self, activity, mode, expected):
        assert ledger.points_for(activity, mode) == expected

    def test_debit_clamps_at_zero(self):
        assert ledger.debit(5, 20) == 0
        assert ledger.debit(25, 20) == 5
        assert ledger.credit(0, 15) == 15


class TestCompleteAndUndo:
    """Test NotStarted <-> Completed transitions."""

    def test_complete_awards_points(self, now):
        result = _complete(DailyRecord(), 0, "sholatSubuh", now, mode="Jamaah", place="Masjid")

        entry = result.record.entry("sholatSubuh")
        assert result.balance == 20
        assert result.delta == 20
        assert entry.completed is True
        assert entry.points_earned == 20
        assert entry.mode == "Jamaah"
        assert entry.place == "Masjid"
        assert entry.timestamp == now.isoformat()

    def test_prayer_defaults_to_solitary_at_home(self, now):
        entry = _complete(DailyRecord(), 0, "sholatZuhur", now).record.entry("sholatZuhur")
        assert entry.mode == "Sendiri"
        assert entry.place == "Rumah"
        assert entry.points_earned == 10

    def test_non_prayer_has_no_mode(self, now):
        entry = _complete(DailyRecord(), 0, "puasa", now, mode="Jamaah").record.entry("puasa")
        assert entry.mode is None
        assert entry.points_earned == 20

    def test_imam_kept_for_tarawih_only(self, now):
        tarawih = _complete(DailyRecord(), 0, "tarawih", now, imam="Ust. Hasan").record.entry("tarawih")
        dhuha = _complete(DailyRecord(), 0, "dhuha", now, imam="Ust. Hasan").record.entry("dhuha")
        assert tarawih.imam == "Ust. Hasan"
        assert dhuha.imam is None

    def test_input_record_not_mutated(self, now):
        record = DailyRecord()
        _complete(record, 0, "puasa", now)
        assert record.entries == {}

    def test_undo_replays_stored_award(self):
        """Undo subtracts what was awarded, not what the rules give today."""
        record = DailyRecord(entries={"sholatSubuh": ActivityEntry(completed=True, points_earned=7, mode="Jamaah")})

        result = ledger.undo_activity(record, 30, "sholatSubuh")

        assert result.balance == 23
        assert result.delta == -7
        assert result.record.entry("sholatSubuh") == ActivityEntry()

    def test_undo_clamps_balance(self):
        record = DailyRecord(entries={"puasa": ActivityEntry(completed=True, points_earned=20)})

        result = ledger.undo_activity(record, 5, "puasa")

        assert result.balance == 0
        assert result.delta == -5

    def test_undo_not_completed_raises(self):
        with pytest.raises(InvalidTransition):
            ledger.undo_activity(DailyRecord(), 10, "puasa")

    def test_complete_twice_raises(self, now):
        first = _complete(DailyRecord(), 0, "sholatSubuh", now, mode="Sendiri")
        with pytest.raises(InvalidTransition):
            _complete(first.record, first.balance, "sholatSubuh", now, mode="Jamaah")

    def test_change_mode_via_undo(self, now):
        """Solitary, undo, then communal leaves only the communal award."""
        step = _complete(DailyRecord(), 0, "sholatMaghrib", now, mode="Sendiri")
        assert step.balance == 10
        step = ledger.undo_activity(step.record, step.balance, "sholatMaghrib")
        assert step.balance == 0
        step = _complete(step.record, step.balance, "sholatMaghrib", now, mode="Jamaah")
        assert step.balance == 20

    def test_unknown_activity(self, now):
        with pytest.raises(UnknownActivity):
            _complete(DailyRecord(), 0, "sholatTahajud", now)
        with pytest.raises(UnknownActivity):
            ledger.undo_activity(DailyRecord(), 0, "sholatTahajud")

    def test_ledger_errors_share_base(self):
        assert issubclass(PrayerWindowNotOpen, LedgerError)
        assert issubclass(ExemptModeActive, LedgerError)

    def test_toggle_flips(self, now):
        kwargs = {"record_date": PAST, "now": now}
        done = ledger.toggle_activity(DailyRecord(), 0, "dhuha", **kwargs)
        assert done.balance == 10
        undone = ledger.toggle_activity(done.record, done.balance, "dhuha", **kwargs)
        assert undone.balance == 0
        assert undone.record.is_completed("dhuha") is False


class TestPrayerWindow:
    """Test the time guard on prayer completion."""

    def test_today_before_slot_raises(self, now, schedule):
        with pytest.raises(PrayerWindowNotOpen):
            _complete(DailyRecord(), 0, "sholatMaghrib", now, record_date=TODAY, schedule=schedule)

    def test_today_after_slot_allowed(self, now, schedule):
        result = _complete(DailyRecord(), 0, "sholatAsar", now, record_date=TODAY, schedule=schedule)
        assert result.balance == 10

    def test_future_date_raises(self, now, schedule):
        with pytest.raises(PrayerWindowNotOpen):
            _complete(DailyRecord(), 0, "sholatSubuh", now, record_date=date(2026, 3, 2), schedule=schedule)

    def test_no_schedule_is_open(self, now):
        result = _complete(DailyRecord(), 0, "sholatIsya", now, record_date=TODAY, schedule=None)
        assert result.balance == 10

    def test_non_prayer_not_guarded(self, schedule):
        early = datetime(2026, 3, 1, 3, 0)
        result = _complete(DailyRecord(), 0, "puasa", early, record_date=TODAY, schedule=schedule)
        assert result.balance == 20


class TestExemptMode:
    """Test the exempt override."""

    def _busy_record(self):
        return DailyRecord(
            entries={
                "sholatSubuh": ActivityEntry(completed=True, points_earned=20, mode="Jamaah"),
                "puasa": ActivityEntry(completed=True, points_earned=20),
                "tarawih": ActivityEntry(),
            }
        )

    def test_activation_reverses_entries_and_credits(self):
        result = ledger.toggle_exempt_mode(self._busy_record(), 50)

        assert result.record.exempt is True
        assert result.balance == 30
        assert result.delta == -20
        assert not any(e.completed for e in result.record.entries.values())

    def test_deactivation_removes_credit_only(self):
        active = ledger.toggle_exempt_mode(self._busy_record(), 50)

        result = ledger.toggle_exempt_mode(active.record, active.balance)

        assert result.record.exempt is False
        assert result.balance == 10
        assert result.delta == -20
        assert not result.record.is_completed("sholatSubuh")

    def test_activation_clamps_before_credit(self):
        result = ledger.toggle_exempt_mode(self._busy_record(), 5)
        assert result.balance == 20

    def test_deactivation_clamps(self):
        result = ledger.toggle_exempt_mode(DailyRecord(exempt=True), 5)
        assert result.balance == 0
        assert result.delta == -5

    def test_restricted_activity_locked(self, now):
        with pytest.raises(ExemptModeActive):
            _complete(DailyRecord(exempt=True), 20, "dhuha", now)

    def test_daily_points_includes_credit(self):
        assert ledger.daily_points(self._busy_record()) == 40
        assert ledger.daily_points(DailyRecord(exempt=True)) == 20
        assert ledger.daily_points(DailyRecord()) == 0


class TestContentCredit:
    """Test one-shot content awards."""

    reading = ContentItem(id="mat_1", title="Niat Puasa")
    quiz = ContentItem(id="quiz_1", title="Kuis", category="quiz")

    def test_first_open_awards(self, now):
        result = ledger.award_content_credit([], 0, self.reading, now=now)

        assert result.awarded == 5
        assert result.balance == 5
        assert result.receipts == [ReadReceipt(content_id="mat_1", timestamp=now.isoformat())]

    def test_second_open_is_noop(self, now):
        first = ledger.award_content_credit([], 0, self.reading, now=now)
        second = ledger.award_content_credit(first.receipts, first.balance, self.reading, now=now)

        assert second.awarded == 0
        assert second.balance == 5
        assert len(second.receipts) == 1

    def test_opening_assessment_awards_nothing(self, now):
        result = ledger.award_content_credit([], 0, self.quiz, now=now)
        assert result.awarded == 0
        assert result.receipts == []

    def test_claim_assessment_once(self, now):
        first = ledger.award_content_credit([], 0, self.quiz, now=now, claim=True)
        second = ledger.award_content_credit(first.receipts, first.balance, self.quiz, now=now, claim=True)

        assert first.awarded == 20
        assert second.awarded == 0
        assert second.balance == 20

    def test_claim_on_reading_item_awards_nothing(self, now):
        assert ledger.award_content_credit([], 0, self.reading, now=now, claim=True).awarded == 0
