"""Data coordinator for Ramadhan Journal integration."""
from __future__ import annotations

from collections.abc import Callable
from datetime import date as date_cls, datetime
import hmac
import logging
from typing import Any
import uuid

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.util import dt as dt_util

from . import ledger
from .const import (
    ACTION_DELETE_CONTENT,
    ACTION_DELETE_PERSON,
    ACTION_SAVE_ANNOUNCEMENT,
    ACTION_SAVE_CONTENT,
    ACTION_SAVE_PERSON,
    ACTION_SAVE_SETTINGS,
    COLLECTION_ANNOUNCEMENTS,
    COLLECTION_CONTENT,
    COLLECTION_PEOPLE,
    COLLECTION_SETTINGS,
    CONF_ENDPOINT,
    CONF_IMPORT_DELAY,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    DEFAULT_IMPORT_DELAY,
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    LEADERBOARD_SIZE,
    POINTS_KAJIAN,
    POINTS_TADARUS,
    ROLE_ADMIN,
    ROLE_STUDENT,
    ROLE_TEACHER,
)
from .exceptions import InvalidTransition, MalformedRemoteResponse, RemoteUnavailable, UnknownContentItem, UnknownPerson
from .import_queue import ImportQueue, build_people
from .models import (
    Announcement,
    AppSettings,
    ContentItem,
    KajianLog,
    PERSON_SCHEMA_VERSION,
    Person,
    PrayerSchedule,
    Session,
    TadarusLog,
    normalize_person_data,
)
from .prayer_times import async_fetch_prayer_schedule
from .storage import JournalLocalStore
from .sync import RemoteSyncGateway

_LOGGER = logging.getLogger(__name__)


def _password_matches(given: str, expected: str) -> bool:
    """Constant-time equality that accepts any unicode text."""
    return hmac.compare_digest(str(given).encode(), str(expected).encode())


def _parse_date(value: str | date_cls | None, now: datetime) -> date_cls:
    if value is None:
        return now.date()
    if isinstance(value, date_cls):
        return value
    return date_cls.fromisoformat(value)


class RamadhanJournalCoordinator:
    """Application context: owns the store, gateway and import queue.

    Reads go to the local store. Writes run the ledger, commit to the local
    store, then emit the change to the remote without waiting.
    """

    def __init__(self, hass: HomeAssistant, config: dict[str, Any] | None = None) -> None:
        """Initialize the coordinator."""
        config = config or {}
        self.hass = hass
        self.store = JournalLocalStore(hass)
        self.gateway = RemoteSyncGateway(hass, config.get(CONF_ENDPOINT))
        self.import_queue = ImportQueue(
            hass, self.store, self.gateway, float(config.get(CONF_IMPORT_DELAY, DEFAULT_IMPORT_DELAY))
        )
        self.latitude = float(config.get(CONF_LATITUDE, DEFAULT_LATITUDE))
        self.longitude = float(config.get(CONF_LONGITUDE, DEFAULT_LONGITUDE))
        self.prayer_schedule: PrayerSchedule | None = None
        self.ready = False
        self._listeners: list[CALLBACK_TYPE] = []

    async def async_init(self) -> None:
        """Load the local cache, then try one pull from the remote."""
        await self.store.async_load()
        if not self.store.has_collection(COLLECTION_SETTINGS):
            await self.store.async_put_collection(COLLECTION_SETTINGS, AppSettings.from_dict(None).to_dict())
        await self.gateway.async_pull(self.store)
        await self._async_migrate_people()
        await self.async_refresh_prayer_schedule()
        self.ready = True

    async def _async_migrate_people(self) -> None:
        """Write legacy person records back in the current shape once."""
        people = self.store.get_collection(COLLECTION_PEOPLE)
        migrated = [normalize_person_data(raw) for raw in people]
        if migrated != people:
            await self.store.async_put_collection(COLLECTION_PEOPLE, migrated)
            _LOGGER.info("Migrated stored people to schema version %d", PERSON_SCHEMA_VERSION)

    async def async_refresh_prayer_schedule(self, now: datetime | None = None) -> None:
        """Fetch today's schedule, keeping the previous one on failure."""
        now = now or dt_util.now()
        try:
            self.prayer_schedule = await async_fetch_prayer_schedule(
                self.hass, self.latitude, self.longitude, now
            )
        except (RemoteUnavailable, MalformedRemoteResponse) as ex:
            _LOGGER.warning("Prayer time fetch error: %s", ex)
            return
        self._async_notify_listeners()

    @callback
    def async_shutdown(self) -> None:
        self.import_queue.async_cancel()

    # ---- listeners ----
    @callback
    def async_add_listener(self, update_callback: CALLBACK_TYPE) -> Callable[[], None]:
        """Register a callback run after every committed change."""
        self._listeners.append(update_callback)

        @callback
        def remove_listener() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return remove_listener

    @callback
    def _async_notify_listeners(self) -> None:
        for update_callback in list(self._listeners):
            update_callback()

    # ---- reads ----
    def get_people(self) -> list[Person]:
        return [Person.from_dict(raw) for raw in self.store.get_collection(COLLECTION_PEOPLE)]

    def get_person(self, person_id: str) -> Person | None:
        for raw in self.store.get_collection(COLLECTION_PEOPLE):
            if str(raw.get("id")) == person_id:
                return Person.from_dict(raw)
        return None

    def _require_person(self, person_id: str) -> Person:
        person = self.get_person(person_id)
        if person is None:
            raise UnknownPerson(f"Person not found: {person_id}")
        return person

    def get_points(self, person_id: str) -> int:
        person = self.get_person(person_id)
        return person.points if person else 0

    def visible_people(self, session: Session) -> list[Person]:
        """Filter people by what the session's role may see."""
        people = self.get_people()
        if session.role == ROLE_ADMIN:
            return people
        if session.role == ROLE_TEACHER:
            return [p for p in people if p.class_name == session.class_name]
        if session.role == ROLE_STUDENT:
            return [p for p in people if p.id == session.id]
        return []

    def get_content_items(self) -> list[ContentItem]:
        return [ContentItem.from_dict(raw) for raw in self.store.get_collection(COLLECTION_CONTENT)]

    def get_content_item(self, item_id: str) -> ContentItem | None:
        for item in self.get_content_items():
            if item.id == item_id:
                return item
        return None

    def get_announcements(self, active_only: bool = False) -> list[Announcement]:
        announcements = [Announcement.from_dict(raw) for raw in self.store.get_collection(COLLECTION_ANNOUNCEMENTS)]
        if active_only:
            announcements = [a for a in announcements if a.active]
        return announcements

    def get_settings(self) -> AppSettings:
        return AppSettings.from_dict(self.store.get_collection(COLLECTION_SETTINGS))

    def leaderboard(self, limit: int = LEADERBOARD_SIZE) -> list[Person]:
        return sorted(self.get_people(), key=lambda p: p.points, reverse=True)[:limit]

    def rank_of(self, person_id: str) -> int | None:
        """1-based position by points, None if unknown."""
        ranked = sorted(self.get_people(), key=lambda p: p.points, reverse=True)
        for index, person in enumerate(ranked):
            if person.id == person_id:
                return index + 1
        return None

    def unread_content_count(self, person_id: str) -> int:
        person = self.get_person(person_id)
        items = self.get_content_items()
        if person is None:
            return len(items)
        return sum(1 for item in items if not person.has_read(item.id))

    def daily_points(self, person_id: str, day: str | None = None) -> int:
        person = self.get_person(person_id)
        if person is None:
            return 0
        return ledger.daily_points(person.record_for(day or dt_util.now().date().isoformat()))

    # ---- auth ----
    def authenticate(
        self,
        role: str,
        password: str | None = None,
        person_id: str | None = None,
        class_name: str | None = None,
    ) -> Session | None:
        """Check credentials and return a session, or None on mismatch."""
        settings = self.get_settings()
        if role == ROLE_ADMIN:
            if password is not None and _password_matches(password, settings.admin_password):
                return Session(id="admin", role=ROLE_ADMIN)
            return None
        if role == ROLE_TEACHER:
            if password is not None and _password_matches(password, settings.teacher_password):
                return Session(id=f"teacher_{class_name}", role=ROLE_TEACHER, class_name=class_name)
            return None
        if role == ROLE_STUDENT and person_id:
            person = self.get_person(person_id)
            if person:
                return Session(id=person.id, role=ROLE_STUDENT, class_name=person.class_name)
        return None

    # ---- commits ----
    async def _async_commit_person(self, person: Person) -> None:
        payload = person.to_dict()
        await self.store.async_upsert(COLLECTION_PEOPLE, payload)
        self.gateway.emit(ACTION_SAVE_PERSON, payload)
        self._async_notify_listeners()

    # ---- ledger ----
    async def async_toggle_activity(
        self,
        person_id: str,
        activity: str,
        *,
        day: str | date_cls | None = None,
        mode: str | None = None,
        place: str | None = None,
        imam: str | None = None,
        completed: bool | None = None,
        now: datetime | None = None,
    ) -> int:
        """Complete or undo one activity. Returns the new balance.

        ``completed`` forces the direction; left as None the entry flips.
        """
        now = now or dt_util.now()
        record_date = _parse_date(day, now)
        person = self._require_person(person_id)
        key = record_date.isoformat()
        record = person.record_for(key)

        if completed is False:
            result = ledger.undo_activity(record, person.points, activity)
        else:
            transition = ledger.complete_activity if completed else ledger.toggle_activity
            result = transition(
                record,
                person.points,
                activity,
                record_date=record_date,
                now=now,
                schedule=self.prayer_schedule,
                mode=mode,
                place=place,
                imam=imam,
            )
        person.journal[key] = result.record
        person.points = result.balance
        await self._async_commit_person(person)
        _LOGGER.info("%s %s on %s (%+d -> %d)", person_id, activity, key, result.delta, result.balance)
        return result.balance

    async def async_toggle_exempt_mode(
        self, person_id: str, *, day: str | date_cls | None = None, now: datetime | None = None
    ) -> int:
        now = now or dt_util.now()
        key = _parse_date(day, now).isoformat()
        person = self._require_person(person_id)

        result = ledger.toggle_exempt_mode(person.record_for(key), person.points)
        person.journal[key] = result.record
        person.points = result.balance
        await self._async_commit_person(person)
        _LOGGER.info(
            "%s exempt mode %s on %s (%+d -> %d)",
            person_id, "on" if result.record.exempt else "off", key, result.delta, result.balance,
        )
        return result.balance

    async def _async_content_credit(self, person_id: str, item_id: str, claim: bool, now: datetime | None) -> int:
        person = self._require_person(person_id)
        item = self.get_content_item(item_id)
        if item is None:
            raise UnknownContentItem(f"Content item not found: {item_id}")

        result = ledger.award_content_credit(
            person.read_receipts, person.points, item, now=now or dt_util.now(), claim=claim
        )
        if not result.awarded:
            return 0
        person.read_receipts = result.receipts
        person.points = result.balance
        await self._async_commit_person(person)
        _LOGGER.info("%s earned %d for %s", person_id, result.awarded, item.title)
        return result.awarded

    async def async_open_content(self, person_id: str, item_id: str, now: datetime | None = None) -> int:
        """First open of a reading item credits the person once."""
        return await self._async_content_credit(person_id, item_id, False, now)

    async def async_claim_assessment(self, person_id: str, item_id: str, now: datetime | None = None) -> int:
        item = self.get_content_item(item_id)
        if item is not None and not item.is_assessment():
            raise InvalidTransition(f"{item.title} is not an assessment")
        return await self._async_content_credit(person_id, item_id, True, now)

    async def async_log_kajian(
        self,
        person_id: str,
        speaker: str,
        place: str,
        summary: str = "",
        link: str | None = None,
        now: datetime | None = None,
    ) -> int:
        now = now or dt_util.now()
        person = self._require_person(person_id)
        entry = KajianLog(
            id=f"kajian_{uuid.uuid4().hex[:12]}",
            date=now.isoformat(),
            speaker=speaker,
            place=f"Online: {link}" if link else place,
            summary=summary,
        )
        person.kajian_logs.insert(0, entry)
        person.points = ledger.credit(person.points, POINTS_KAJIAN)
        await self._async_commit_person(person)
        return person.points

    async def async_log_tadarus(self, person_id: str, surah: str, ayat: str, now: datetime | None = None) -> int:
        now = now or dt_util.now()
        person = self._require_person(person_id)
        entry = TadarusLog(id=f"tadarus_{uuid.uuid4().hex[:12]}", date=now.isoformat(), surah=surah, ayat=ayat)
        person.tadarus_logs.insert(0, entry)
        person.points = ledger.credit(person.points, POINTS_TADARUS)
        await self._async_commit_person(person)
        return person.points

    # ---- admin ----
    async def async_save_person(
        self,
        name: str,
        class_name: str,
        person_id: str | None = None,
        nis: str | None = None,
        nisn: str | None = None,
    ) -> str:
        """Create a person or edit identity fields, keeping points and logs."""
        person = self.get_person(person_id) if person_id else None
        if person is None:
            person = Person(id=person_id or f"stu_{uuid.uuid4().hex[:12]}", name=name)
        person.name = name
        person.class_name = class_name
        if nis is not None:
            person.nis = nis
        if nisn is not None:
            person.nisn = nisn
        await self._async_commit_person(person)
        return person.id

    async def async_delete_person(self, person_id: str) -> None:
        await self.store.async_remove(COLLECTION_PEOPLE, person_id)
        self.gateway.emit(ACTION_DELETE_PERSON, {"id": person_id})
        self._async_notify_listeners()

    async def async_import_people(self, rows: list[dict[str, Any]]) -> int:
        count = await self.import_queue.async_import(build_people(rows))
        if count:
            self._async_notify_listeners()
        return count

    async def async_save_content_item(
        self,
        title: str,
        content: str,
        category: str,
        item_id: str | None = None,
        media_url: str | None = None,
    ) -> str:
        existing = self.get_content_item(item_id) if item_id else None
        item = ContentItem(
            id=item_id or f"mat_{uuid.uuid4().hex[:12]}",
            title=title,
            category=category.lower(),
            content=content,
            created_at=existing.created_at if existing else dt_util.utcnow().isoformat(),
            media_url=media_url,
        )
        payload = item.to_dict()
        await self.store.async_upsert(COLLECTION_CONTENT, payload)
        self.gateway.emit(ACTION_SAVE_CONTENT, payload)
        self._async_notify_listeners()
        return item.id

    async def async_delete_content_item(self, item_id: str) -> None:
        await self.store.async_remove(COLLECTION_CONTENT, item_id)
        self.gateway.emit(ACTION_DELETE_CONTENT, {"id": item_id})
        self._async_notify_listeners()

    async def async_save_announcement(
        self, message: str, active: bool = True, announcement_id: str | None = None
    ) -> str:
        existing = next((a for a in self.get_announcements() if a.id == announcement_id), None)
        announcement = Announcement(
            id=announcement_id or f"bc_{uuid.uuid4().hex[:12]}",
            message=message,
            created_at=existing.created_at if existing else dt_util.utcnow().isoformat(),
            active=active,
        )
        payload = announcement.to_dict()
        await self.store.async_upsert(COLLECTION_ANNOUNCEMENTS, payload)
        self.gateway.emit(ACTION_SAVE_ANNOUNCEMENT, payload)
        self._async_notify_listeners()
        return announcement.id

    async def async_save_settings(self, changes: dict[str, Any]) -> AppSettings:
        """Merge changed settings (wire field names) over the current ones."""
        settings = AppSettings.from_dict({**self.get_settings().to_dict(), **changes})
        payload = settings.to_dict()
        await self.store.async_put_collection(COLLECTION_SETTINGS, payload)
        self.gateway.emit(ACTION_SAVE_SETTINGS, payload)
        self._async_notify_listeners()
        return settings
