"""Data models for Ramadhan Journal integration.

Records serialise to the camelCase dictionaries used by the remote system of
record, so a pulled snapshot can be cached as-is.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from homeassistant.util import dt as dt_util

from .const import (
    ACTIVITIES,
    ASSESSMENT_CATEGORY,
    DEFAULT_CATEGORY,
    DEFAULT_SETTINGS,
    FLAT_AWARDS,
    POINTS_DEFAULT,
    POINTS_PRAYER_SOLITARY,
    PRAYER_ACTIVITIES,
    ROLE_GUEST,
)

PERSON_SCHEMA_VERSION = 2


@dataclass
class ActivityEntry:
    completed: bool = False
    points_earned: int = 0  # award at completion time, replayed verbatim on undo
    timestamp: str | None = None
    mode: str | None = None  # "Jamaah" | "Sendiri" for prayers
    place: str | None = None
    imam: str | None = None  # officiant, tarawih only

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ActivityEntry:
        return cls(
            completed=bool(data.get("completed", False)),
            points_earned=int(data.get("pointsEarned") or 0),
            timestamp=data.get("timestamp"),
            mode=data.get("type"),
            place=data.get("place"),
            imam=data.get("imam"),
        )

    def to_dict(self) -> dict[str, Any]:
        if not self.completed:
            return {"completed": False}
        data: dict[str, Any] = {"completed": True, "pointsEarned": self.points_earned}
        for key, value in (("timestamp", self.timestamp), ("type", self.mode), ("place", self.place), ("imam", self.imam)):
            if value is not None:
                data[key] = value
        return data


@dataclass
class DailyRecord:
    """Activity entries for one calendar date."""

    entries: dict[str, ActivityEntry] = field(default_factory=dict)
    exempt: bool = False

    def entry(self, key: str) -> ActivityEntry:
        """Return the entry for an activity, NotStarted if never touched."""
        return self.entries.get(key) or ActivityEntry()

    def is_completed(self, key: str) -> bool:
        return self.entry(key).completed

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyRecord:
        entries = {
            key: ActivityEntry.from_dict(value)
            for key, value in data.items()
            if isinstance(value, dict)
        }
        return cls(entries=entries, exempt=bool(data.get("haid", False)))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {key: entry.to_dict() for key, entry in self.entries.items()}
        if self.exempt:
            data["haid"] = True
        return data


@dataclass
class ReadReceipt:
    content_id: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReadReceipt:
        return cls(content_id=data["materialId"], timestamp=data.get("timestamp", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"materialId": self.content_id, "timestamp": self.timestamp}


@dataclass
class KajianLog:
    """An attended lecture."""
    id: str
    date: str
    speaker: str
    place: str
    summary: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KajianLog:
        return cls(
            id=data["id"],
            date=data.get("date", ""),
            speaker=data.get("speaker", ""),
            place=data.get("place", ""),
            summary=data.get("summary", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return vars(self).copy()


@dataclass
class TadarusLog:
    """A Quran recitation report."""
    id: str
    date: str
    surah: str
    ayat: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TadarusLog:
        return cls(
            id=data["id"],
            date=data.get("date", ""),
            surah=str(data.get("surah", "")),
            ayat=str(data.get("ayat", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return vars(self).copy()


def _legacy_award(activity: str) -> int:
    # Boolean entries carry no execution mode
    if activity in PRAYER_ACTIVITIES:
        return POINTS_PRAYER_SOLITARY
    return FLAT_AWARDS.get(activity, POINTS_DEFAULT)


def _normalize_record(record: dict[str, Any]) -> dict[str, Any]:
    """Turn ``{"puasa": true}`` style entries into entry objects."""
    normalized = dict(record)
    for key, value in record.items():
        if key in ACTIVITIES and isinstance(value, bool):
            normalized[key] = (
                {"completed": True, "pointsEarned": _legacy_award(key)} if value else {"completed": False}
            )
    return normalized


def normalize_person_data(data: dict[str, Any]) -> dict[str, Any]:
    """Bring a stored person record up to the current schema version.

    Version 1 records may carry the flat ``readMaterialIds`` list instead of
    timestamped ``readLogs``, plain booleans as journal entries, and missing
    or null activity logs.
    """
    if int(data.get("schemaVersion") or 1) >= PERSON_SCHEMA_VERSION:
        return data

    data = dict(data)
    legacy_ids = data.pop("readMaterialIds", None) or []
    if not data.get("readLogs"):
        # Legacy reads have no time of their own
        migrated_at = dt_util.utcnow().isoformat()
        data["readLogs"] = [{"materialId": item_id, "timestamp": migrated_at} for item_id in legacy_ids]
    data["kajianLogs"] = data.get("kajianLogs") or []
    data["tadarusLogs"] = data.get("tadarusLogs") or []
    data["journal"] = {
        date: _normalize_record(record)
        for date, record in (data.get("journal") or {}).items()
        if isinstance(record, dict)
    }
    data["schemaVersion"] = PERSON_SCHEMA_VERSION
    return data


@dataclass
class Person:
    id: str
    name: str
    class_name: str = ""
    nis: str = "-"
    nisn: str = "-"
    points: int = 0
    journal: dict[str, DailyRecord] = field(default_factory=dict)  # key: YYYY-MM-DD
    kajian_logs: list[KajianLog] = field(default_factory=list)
    tadarus_logs: list[TadarusLog] = field(default_factory=list)
    read_receipts: list[ReadReceipt] = field(default_factory=list)

    def record_for(self, date: str) -> DailyRecord:
        return self.journal.get(date) or DailyRecord()

    def has_read(self, content_id: str) -> bool:
        return any(receipt.content_id == content_id for receipt in self.read_receipts)

    def receipt_for(self, content_id: str) -> ReadReceipt | None:
        for receipt in self.read_receipts:
            if receipt.content_id == content_id:
                return receipt
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Person:
        data = normalize_person_data(data)
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            class_name=data.get("className", ""),
            nis=str(data.get("nis", "-")),
            nisn=str(data.get("nisn", "-")),
            points=max(0, int(data.get("points") or 0)),
            journal={
                date: DailyRecord.from_dict(record)
                for date, record in (data.get("journal") or {}).items()
                if isinstance(record, dict)
            },
            kajian_logs=[KajianLog.from_dict(e) for e in data.get("kajianLogs") or []],
            tadarus_logs=[TadarusLog.from_dict(e) for e in data.get("tadarusLogs") or []],
            read_receipts=[ReadReceipt.from_dict(e) for e in data.get("readLogs") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "className": self.class_name,
            "nis": self.nis,
            "nisn": self.nisn,
            "points": self.points,
            "journal": {date: record.to_dict() for date, record in self.journal.items()},
            "kajianLogs": [e.to_dict() for e in self.kajian_logs],
            "tadarusLogs": [e.to_dict() for e in self.tadarus_logs],
            "readLogs": [e.to_dict() for e in self.read_receipts],
            "schemaVersion": PERSON_SCHEMA_VERSION,
        }


@dataclass
class ContentItem:
    id: str
    title: str
    category: str = DEFAULT_CATEGORY
    content: str = ""
    created_at: str = ""
    media_url: str | None = None

    def is_assessment(self) -> bool:
        """Check if this item is a quiz rather than reading material."""
        return self.category == ASSESSMENT_CATEGORY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentItem:
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            category=str(data.get("category") or DEFAULT_CATEGORY).lower(),
            content=data.get("content", ""),
            created_at=data.get("createdAt", ""),
            media_url=data.get("youtubeUrl") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "content": self.content,
            "createdAt": self.created_at,
        }
        if self.media_url:
            data["youtubeUrl"] = self.media_url
        return data


@dataclass
class Announcement:
    id: str
    message: str
    created_at: str = ""
    active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Announcement:
        return cls(
            id=str(data["id"]),
            message=data.get("message", ""),
            created_at=data.get("createdAt", ""),
            active=bool(data.get("active", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "message": self.message, "createdAt": self.created_at, "active": self.active}


@dataclass
class AppSettings:
    school_name: str
    ramadhan_year: str
    gregorian_year: str
    login_title: str
    admin_password: str
    teacher_password: str
    copyright_text: str

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AppSettings:
        merged = {**DEFAULT_SETTINGS, **(data or {})}
        # Spreadsheet cells may come back as numbers
        merged = {key: "" if value is None else str(value) for key, value in merged.items()}
        return cls(
            school_name=merged["schoolName"],
            ramadhan_year=merged["ramadhanYear"],
            gregorian_year=merged["gregorianYear"],
            login_title=merged["loginTitle"],
            admin_password=merged["adminPassword"],
            teacher_password=merged["teacherPassword"],
            copyright_text=merged["copyrightText"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "schoolName": self.school_name,
            "ramadhanYear": self.ramadhan_year,
            "gregorianYear": self.gregorian_year,
            "loginTitle": self.login_title,
            "adminPassword": self.admin_password,
            "teacherPassword": self.teacher_password,
            "copyrightText": self.copyright_text,
        }


@dataclass(frozen=True)
class Session:
    """Identity handed over by the presentation layer."""
    id: str
    role: str = ROLE_GUEST
    class_name: str | None = None


@dataclass
class PrayerSchedule:
    """One day's prayer times as minutes after midnight."""
    date: str
    times: dict[str, int] = field(default_factory=dict)  # slot name -> minutes

    def minutes_for(self, slot: str) -> int | None:
        return self.times.get(slot)
