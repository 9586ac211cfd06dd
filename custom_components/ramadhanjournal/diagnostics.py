"""Diagnostics support for Ramadhan Journal integration."""
from __future__ import annotations

from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_ENDPOINT, DOMAIN
from .coordinator import RamadhanJournalCoordinator
from .ledger import daily_points

TO_REDACT = {CONF_ENDPOINT, "admin_password", "teacher_password", "adminPassword", "teacherPassword"}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    coordinator: RamadhanJournalCoordinator = hass.data[DOMAIN][entry.entry_id]

    if not coordinator.ready:
        return {"error": "Coordinator not initialized"}

    people = coordinator.get_people()
    content = coordinator.get_content_items()

    # Points held by journal entries versus the stored balance
    people_summary = {}
    for person in people:
        journal_points = sum(daily_points(record) for record in person.journal.values())
        people_summary[person.id] = {
            "class_name": person.class_name,
            "current_points": person.points,
            "journal_points": journal_points,
            "journal_days": len(person.journal),
            "read_receipts": len(person.read_receipts),
            "kajian_logs": len(person.kajian_logs),
            "tadarus_logs": len(person.tadarus_logs),
        }

    return {
        "config_data": async_redact_data({**entry.data, **entry.options}, TO_REDACT),
        "settings": async_redact_data(coordinator.get_settings().to_dict(), TO_REDACT),
        "statistics": {
            "total_people": len(people),
            "total_points": sum(p.points for p in people),
            "content_items": len(content),
            "assessments": sum(1 for item in content if item.is_assessment()),
            "announcements": len(coordinator.get_announcements()),
            "active_announcements": len(coordinator.get_announcements(active_only=True)),
        },
        "people_summary": people_summary,
        "sync_status": {
            "configured": coordinator.gateway.configured,
            "online": coordinator.gateway.online,
            "last_pull": coordinator.gateway.last_pull,
            "pushes_sent": coordinator.gateway.pushes_sent,
            "push_failures": coordinator.gateway.push_failures,
            "pending_imports": coordinator.import_queue.pending_count,
        },
        "prayer_schedule": (
            {"date": coordinator.prayer_schedule.date, "times": coordinator.prayer_schedule.times}
            if coordinator.prayer_schedule
            else None
        ),
        "storage_status": coordinator.store.storage_info(),
    }
