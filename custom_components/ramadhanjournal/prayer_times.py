"""Daily prayer schedule for Ramadhan Journal integration."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date as date_cls, datetime
import logging
from typing import Any

import aiohttp
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import (
    PRAYER_SCHEDULE_SLOTS,
    PRAYER_TIMES_METHOD,
    PRAYER_TIMES_URL,
    REQUEST_TIMEOUT,
    SCHEDULE_SLOTS,
)
from .exceptions import MalformedRemoteResponse, RemoteUnavailable
from .models import PrayerSchedule

_LOGGER = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class NextPrayer:
    name: str
    time: str  # HH:MM
    minutes_left: int
    tomorrow: bool = False


def parse_time(value: str) -> int:
    """Turn "HH:MM" (optionally followed by a zone label) into minutes."""
    hours, minutes = value.strip()[:5].split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_schedule(timings: dict[str, Any], day: date_cls) -> PrayerSchedule:
    """Build a schedule from an aladhan ``timings`` block."""
    times: dict[str, int] = {}
    for slot in SCHEDULE_SLOTS:
        raw = timings.get(slot)
        if not isinstance(raw, str):
            raise MalformedRemoteResponse(f"Missing prayer time for {slot}")
        try:
            times[slot] = parse_time(raw)
        except ValueError as ex:
            raise MalformedRemoteResponse(f"Invalid prayer time for {slot}: {raw}") from ex
    return PrayerSchedule(date=day.isoformat(), times=times)


def is_prayer_window_open(
    activity: str,
    record_date: date_cls,
    now: datetime,
    schedule: PrayerSchedule | None,
) -> bool:
    """Check whether a prayer may be marked done for the given date.

    Past dates are always open and future dates never are. For today the
    current time must have reached the prayer's slot. Without a schedule the
    window is treated as open.
    """
    slot = PRAYER_SCHEDULE_SLOTS.get(activity)
    if slot is None:
        return True
    today = now.date()
    if record_date < today:
        return True
    if record_date > today:
        return False
    if schedule is None or schedule.minutes_for(slot) is None:
        return True
    return now.hour * 60 + now.minute >= schedule.minutes_for(slot)


def next_prayer(schedule: PrayerSchedule, now: datetime) -> NextPrayer:
    """Return the upcoming slot, rolling over to tomorrow's Imsak after Isha."""
    current = now.hour * 60 + now.minute
    for slot in SCHEDULE_SLOTS:
        minutes = schedule.minutes_for(slot)
        if minutes is not None and minutes > current:
            return NextPrayer(name=slot, time=format_minutes(minutes), minutes_left=minutes - current)

    imsak = schedule.minutes_for("Imsak") or 0
    diff = imsak - current
    if diff < 0:
        diff += MINUTES_PER_DAY
    return NextPrayer(name="Imsak", time=format_minutes(imsak), minutes_left=diff, tomorrow=True)


async def async_fetch_prayer_schedule(
    hass: HomeAssistant, latitude: float, longitude: float, now: datetime
) -> PrayerSchedule:
    """Fetch today's prayer times for a location."""
    session = async_get_clientsession(hass)
    url = PRAYER_TIMES_URL.format(timestamp=int(now.timestamp()))
    params = {"latitude": latitude, "longitude": longitude, "method": PRAYER_TIMES_METHOD}

    try:
        async with asyncio.timeout(REQUEST_TIMEOUT):
            async with session.get(url, params=params) as response:
                if response.status != 200:
                    raise RemoteUnavailable(f"HTTP {response.status} fetching prayer times")
                payload = await response.json(content_type=None)
    except (aiohttp.ClientError, TimeoutError) as ex:
        raise RemoteUnavailable(f"Prayer times unavailable: {ex}") from ex
    except ValueError as ex:
        raise MalformedRemoteResponse(f"Prayer times response is not JSON: {ex}") from ex

    if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
        raise MalformedRemoteResponse("Unexpected prayer times response shape")
    timings = payload["data"].get("timings")
    if not isinstance(timings, dict):
        raise MalformedRemoteResponse("Prayer times response has no timings")

    schedule = parse_schedule(timings, now.date())
    _LOGGER.debug("Prayer schedule for %s: %s", schedule.date, schedule.times)
    return schedule
