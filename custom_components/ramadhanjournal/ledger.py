"""Points ledger for Ramadhan Journal integration.

Pure state transitions: every function takes a person's current daily record
(or read receipts) and balance and returns the new state. Nothing here
touches storage or the network.

A completed entry keeps the exact award it was given. Undo replays that
stored award and never recomputes it from the current rule table. The
balance is clamped at zero on every subtraction.
"""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from datetime import date as date_cls, datetime
import logging

from .const import (
    ACTIVITIES,
    ACTIVITY_TARAWIH,
    DEFAULT_PLACE,
    FLAT_AWARDS,
    MODE_COMMUNAL,
    MODE_SOLITARY,
    POINTS_ASSESSMENT,
    POINTS_CONTENT_READ,
    POINTS_DEFAULT,
    POINTS_EXEMPT_CREDIT,
    POINTS_PRAYER_COMMUNAL,
    POINTS_PRAYER_SOLITARY,
    PRAYER_ACTIVITIES,
    RESTRICTED_ACTIVITIES,
)
from .exceptions import (
    ExemptModeActive,
    InvalidTransition,
    PrayerWindowNotOpen,
    UnknownActivity,
)
from .models import ActivityEntry, ContentItem, DailyRecord, PrayerSchedule, ReadReceipt
from .prayer_times import is_prayer_window_open

_LOGGER = logging.getLogger(__name__)


@dataclass
class Transition:
    """Outcome of one ledger operation."""
    record: DailyRecord
    balance: int
    delta: int  # balance change actually applied, after clamping


@dataclass
class ReceiptTransition:
    receipts: list[ReadReceipt]
    balance: int
    awarded: int


def points_for(activity: str, mode: str | None = None) -> int:
    """Return the award for completing an activity under the current rules."""
    if activity in PRAYER_ACTIVITIES:
        return POINTS_PRAYER_COMMUNAL if mode == MODE_COMMUNAL else POINTS_PRAYER_SOLITARY
    return FLAT_AWARDS.get(activity, POINTS_DEFAULT)


def credit(balance: int, amount: int) -> int:
    return balance + amount


def debit(balance: int, amount: int) -> int:
    """Subtract an award, never going below zero."""
    return max(0, balance - amount)


def _check_activity(activity: str) -> None:
    if activity not in ACTIVITIES:
        raise UnknownActivity(f"Unknown activity: {activity}")


def complete_activity(
    record: DailyRecord,
    balance: int,
    activity: str,
    *,
    record_date: date_cls,
    now: datetime,
    schedule: PrayerSchedule | None = None,
    mode: str | None = None,
    place: str | None = None,
    imam: str | None = None,
) -> Transition:
    """NotStarted -> Completed, awarding points from the rule table."""
    _check_activity(activity)
    if record.exempt and activity in RESTRICTED_ACTIVITIES:
        raise ExemptModeActive(f"{activity} is locked on {record_date.isoformat()} (exempt mode)")
    if record.is_completed(activity):
        raise InvalidTransition(f"{activity} is already completed on {record_date.isoformat()}; undo it first")
    if activity in PRAYER_ACTIVITIES and not is_prayer_window_open(activity, record_date, now, schedule):
        raise PrayerWindowNotOpen(f"The time for {activity} has not started yet")

    if activity in PRAYER_ACTIVITIES:
        mode = mode or MODE_SOLITARY
        place = place or DEFAULT_PLACE
    else:
        mode = None
    points = points_for(activity, mode)

    new_record = deepcopy(record)
    new_record.entries[activity] = ActivityEntry(
        completed=True,
        points_earned=points,
        timestamp=now.isoformat(),
        mode=mode,
        place=place,
        imam=imam if activity == ACTIVITY_TARAWIH else None,
    )
    return Transition(record=new_record, balance=credit(balance, points), delta=points)


def undo_activity(record: DailyRecord, balance: int, activity: str) -> Transition:
    """Completed -> NotStarted, subtracting the award stored on the entry."""
    _check_activity(activity)
    entry = record.entry(activity)
    if not entry.completed:
        raise InvalidTransition(f"{activity} is not completed")

    new_balance = debit(balance, entry.points_earned)
    new_record = deepcopy(record)
    new_record.entries[activity] = ActivityEntry()
    return Transition(record=new_record, balance=new_balance, delta=new_balance - balance)


def toggle_activity(
    record: DailyRecord,
    balance: int,
    activity: str,
    *,
    record_date: date_cls,
    now: datetime,
    schedule: PrayerSchedule | None = None,
    mode: str | None = None,
    place: str | None = None,
    imam: str | None = None,
) -> Transition:
    """Undo a completed entry, otherwise complete it."""
    if record.is_completed(activity):
        return undo_activity(record, balance, activity)
    return complete_activity(
        record,
        balance,
        activity,
        record_date=record_date,
        now=now,
        schedule=schedule,
        mode=mode,
        place=place,
        imam=imam,
    )


def toggle_exempt_mode(record: DailyRecord, balance: int) -> Transition:
    """Switch the exempt override for one date.

    Activation reverses every completed restricted entry with its stored award
    and adds the flat credit. Deactivation only removes the flat credit; the
    cleared entries are not brought back.
    """
    new_record = deepcopy(record)
    new_balance = balance

    if not record.exempt:
        for activity in RESTRICTED_ACTIVITIES:
            entry = new_record.entries.get(activity)
            if entry and entry.completed:
                new_balance = debit(new_balance, entry.points_earned)
                _LOGGER.debug("Exempt mode reversed %s (-%d)", activity, entry.points_earned)
            if activity in new_record.entries:
                new_record.entries[activity] = ActivityEntry()
        new_balance = credit(new_balance, POINTS_EXEMPT_CREDIT)
        new_record.exempt = True
    else:
        new_balance = debit(new_balance, POINTS_EXEMPT_CREDIT)
        new_record.exempt = False

    return Transition(record=new_record, balance=new_balance, delta=new_balance - balance)


def award_content_credit(
    receipts: list[ReadReceipt],
    balance: int,
    item: ContentItem,
    *,
    now: datetime,
    claim: bool = False,
) -> ReceiptTransition:
    """One-shot credit for reading an item or claiming an assessment.

    Opening an assessment never awards; it needs an explicit claim. A second
    open or claim of the same item is a no-op.
    """
    if item.is_assessment() != claim:
        return ReceiptTransition(receipts=list(receipts), balance=balance, awarded=0)
    if any(receipt.content_id == item.id for receipt in receipts):
        return ReceiptTransition(receipts=list(receipts), balance=balance, awarded=0)

    amount = POINTS_ASSESSMENT if claim else POINTS_CONTENT_READ
    new_receipts = [*receipts, ReadReceipt(content_id=item.id, timestamp=now.isoformat())]
    return ReceiptTransition(receipts=new_receipts, balance=credit(balance, amount), awarded=amount)


def daily_points(record: DailyRecord) -> int:
    """Points currently held for one date."""
    total = sum(entry.points_earned for entry in record.entries.values() if entry.completed)
    if record.exempt:
        total += POINTS_EXEMPT_CREDIT
    return total
