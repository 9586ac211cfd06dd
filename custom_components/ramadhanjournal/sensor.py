"""Sensor entities for Ramadhan Journal integration."""
from __future__ import annotations

from typing import Any

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util import dt as dt_util

from .const import DOMAIN
from .coordinator import RamadhanJournalCoordinator
from .prayer_times import next_prayer


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, add_entities: AddEntitiesCallback):
    coordinator: RamadhanJournalCoordinator = hass.data[DOMAIN][entry.entry_id]
    known: set[str] = set()

    def _points_sensors() -> list[SensorEntity]:
        new = [person for person in coordinator.get_people() if person.id not in known]
        known.update(person.id for person in new)
        return [RamadhanJournalPointsSensor(coordinator, person.id, person.name) for person in new]

    entities = _points_sensors()
    entities.append(RamadhanJournalNextPrayerSensor(coordinator))
    entities.append(RamadhanJournalAnnouncementsSensor(coordinator))

    add_entities(entities, True)

    @callback
    def _async_add_new_people() -> None:
        # People saved or imported after setup get their sensor here
        if new_entities := _points_sensors():
            add_entities(new_entities, True)

    entry.async_on_unload(coordinator.async_add_listener(_async_add_new_people))


class _CoordinatorSensor(SensorEntity):
    _attr_should_poll = False

    def __init__(self, coord: RamadhanJournalCoordinator):
        self._coord = coord

    async def async_added_to_hass(self) -> None:
        self.async_on_remove(self._coord.async_add_listener(self.async_write_ha_state))

    @property
    def available(self) -> bool:
        """Check if coordinator is ready."""
        return self._coord.ready


class RamadhanJournalPointsSensor(_CoordinatorSensor):
    """Current point balance of one person."""

    def __init__(self, coord: RamadhanJournalCoordinator, person_id: str, name: str):
        super().__init__(coord)
        self._person_id = person_id
        self._attr_unique_id = f"{DOMAIN}_{person_id}_points"
        self._attr_name = f"{name} Points"
        self._attr_icon = "mdi:star-circle-outline"
        self._attr_native_unit_of_measurement = "points"

    @property
    def available(self) -> bool:
        return self._coord.ready and self._coord.get_person(self._person_id) is not None

    @property
    def native_value(self):
        return self._coord.get_points(self._person_id)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        person = self._coord.get_person(self._person_id)
        if person is None:
            return {}
        today = dt_util.now().date().isoformat()
        record = person.record_for(today)
        return {
            "person_id": person.id,
            "class_name": person.class_name,
            "today_points": self._coord.daily_points(person.id, today),
            "today_completed": sorted(k for k, e in record.entries.items() if e.completed),
            "exempt_today": record.exempt,
            "rank": self._coord.rank_of(person.id),
            "unread_content": self._coord.unread_content_count(person.id),
            "kajian_count": len(person.kajian_logs),
            "tadarus_count": len(person.tadarus_logs),
        }


class RamadhanJournalNextPrayerSensor(_CoordinatorSensor):
    """Countdown to the next prayer, recomputed on every poll."""

    _attr_should_poll = True

    def __init__(self, coord: RamadhanJournalCoordinator):
        super().__init__(coord)
        self._attr_unique_id = f"{DOMAIN}_next_prayer"
        self._attr_name = "Ramadhan Journal Next Prayer"
        self._attr_icon = "mdi:mosque"

    @property
    def available(self) -> bool:
        return self._coord.prayer_schedule is not None

    @property
    def native_value(self):
        if self._coord.prayer_schedule is None:
            return None
        return next_prayer(self._coord.prayer_schedule, dt_util.now()).name

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        if self._coord.prayer_schedule is None:
            return {}
        upcoming = next_prayer(self._coord.prayer_schedule, dt_util.now())
        return {
            "time": upcoming.time,
            "minutes_left": upcoming.minutes_left,
            "time_left": f"{upcoming.minutes_left // 60} jam {upcoming.minutes_left % 60} menit",
            "tomorrow": upcoming.tomorrow,
            "schedule_date": self._coord.prayer_schedule.date,
        }


class RamadhanJournalAnnouncementsSensor(_CoordinatorSensor):
    def __init__(self, coord: RamadhanJournalCoordinator):
        super().__init__(coord)
        self._attr_unique_id = f"{DOMAIN}_announcements"
        self._attr_name = "Ramadhan Journal Announcements"
        self._attr_icon = "mdi:bullhorn"

    @property
    def native_value(self):
        """Return the number of active announcements."""
        return len(self._coord.get_announcements(active_only=True))

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {
            "messages": [
                {"id": a.id, "message": a.message, "created_at": a.created_at}
                for a in self._coord.get_announcements(active_only=True)
            ],
            "online": self._coord.gateway.online,
        }
