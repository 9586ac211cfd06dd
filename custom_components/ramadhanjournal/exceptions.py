"""Errors raised by the Ramadhan Journal integration."""
from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class RamadhanJournalError(HomeAssistantError):
    """Base error for the integration."""


class RemoteUnavailable(RamadhanJournalError):
    """The remote system of record could not be reached."""


class MalformedRemoteResponse(RamadhanJournalError):
    """The remote answered with something other than the expected snapshot."""


class LocalStorageExhausted(RamadhanJournalError):
    """Writing a collection to local storage failed."""


class UnknownPerson(RamadhanJournalError):
    """No person with the given id."""


class UnknownContentItem(RamadhanJournalError):
    """No content item with the given id."""


class LedgerError(RamadhanJournalError):
    """A requested ledger transition is not allowed."""


class UnknownActivity(LedgerError):
    """The activity key is not tracked."""


class InvalidTransition(LedgerError):
    """The entry is not in a state that allows the transition."""


class ExemptModeActive(LedgerError):
    """Restricted activities are locked while the date is exempt."""


class PrayerWindowNotOpen(LedgerError):
    """The prayer's time window has not opened yet."""
