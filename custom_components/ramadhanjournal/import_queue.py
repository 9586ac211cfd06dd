"""Rate-limited batch import for Ramadhan Journal integration."""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from functools import partial
import logging
from typing import Any
import uuid

from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.event import async_call_later

from .const import ACTION_SAVE_PERSON, COLLECTION_PEOPLE, DEFAULT_IMPORT_DELAY, IMPORT_TEMPLATE_NAME
from .models import Person
from .storage import JournalLocalStore
from .sync import RemoteSyncGateway

_LOGGER = logging.getLogger(__name__)


def build_people(rows: list[dict[str, Any]]) -> list[Person]:
    """Turn parsed import rows into new person records.

    Rows need a name and a class; the template's sample row is skipped.
    """
    people = []
    for row in rows:
        name = str(row.get("name") or "").strip()
        class_name = str(row.get("class_name") or "").strip()
        if not name or not class_name or name == IMPORT_TEMPLATE_NAME:
            continue
        people.append(
            Person(
                id=f"stu_{uuid.uuid4().hex[:12]}",
                name=name,
                class_name=class_name,
                nis=str(row.get("nis") or "-"),
                nisn=str(row.get("nisn") or "-"),
            )
        )
    return people


class ImportQueue:
    """Stores a batch locally in one write, then pushes it one record at a time.

    Pushes are spaced ``delay`` seconds apart. Spacing is time based only; it
    does not slow down when the remote reports errors.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        store: JournalLocalStore,
        gateway: RemoteSyncGateway,
        delay: float = DEFAULT_IMPORT_DELAY,
    ) -> None:
        self.hass = hass
        self.store = store
        self.gateway = gateway
        self.delay = delay
        self._pending: dict[str, Callable[[], None]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def async_import(self, people: list[Person]) -> int:
        """Append the batch to the people collection and schedule the pushes."""
        if not people:
            return 0

        current = self.store.get_collection(COLLECTION_PEOPLE)
        await self.store.async_put_collection(COLLECTION_PEOPLE, [*current, *(p.to_dict() for p in people)])

        total = len(people)
        _LOGGER.info("Starting cloud sync of %d imported people", total)
        for index, person in enumerate(people):
            token = uuid.uuid4().hex
            self._pending[token] = async_call_later(
                self.hass,
                index * self.delay,
                partial(self._dispatch, token, person.to_dict(), index + 1, total),
            )
        return total

    @callback
    def _dispatch(self, token: str, payload: dict[str, Any], position: int, total: int, _now: datetime) -> None:
        self._pending.pop(token, None)
        _LOGGER.debug("Sending imported person %d/%d: %s", position, total, payload.get("name"))
        self.gateway.emit(ACTION_SAVE_PERSON, payload)

    @callback
    def async_cancel(self) -> None:
        """Drop pushes that have not fired yet."""
        if self._pending:
            _LOGGER.debug("Cancelling %d pending import pushes", len(self._pending))
        for unsub in self._pending.values():
            unsub()
        self._pending.clear()
