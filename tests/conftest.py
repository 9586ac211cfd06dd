"""Pytest configuration for Ramadhan Journal tests."""
from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, Mock, patch

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
import pytest
import pytest_asyncio

from custom_components.ramadhanjournal.const import DOMAIN
from custom_components.ramadhanjournal.models import PrayerSchedule


def _close_coroutine(coro, name=None):
    """Stand in for the event loop: drop background work without a warning."""
    coro.close()
    return Mock()


@pytest.fixture
def mock_config_entry():
    """Return a mock config entry."""
    entry = Mock(spec=ConfigEntry)
    entry.entry_id = "test_entry_id"
    entry.domain = DOMAIN
    entry.title = "Ramadhan Journal"
    entry.data = {
        "endpoint": "https://script.example.com/exec",
        "latitude": -7.67,
        "longitude": 112.54,
        "import_delay": 1.0,
    }
    entry.options = {}
    return entry


@pytest_asyncio.fixture
async def mock_hass():
    """Return a mock Home Assistant instance."""
    hass = Mock(spec=HomeAssistant)
    hass.data = {}
    hass.config_entries = Mock()
    hass.services = Mock()
    hass.states = Mock()
    hass.loop = Mock()

    # Mock async methods
    hass.config_entries.async_forward_entry_setups = AsyncMock(return_value=True)
    hass.config_entries.async_unload_platforms = AsyncMock(return_value=True)
    hass.config_entries.async_reload = AsyncMock()
    hass.services.async_register = Mock()
    hass.services.async_remove = Mock()
    hass.services.async_call = AsyncMock()
    hass.async_create_background_task = Mock(side_effect=_close_coroutine)

    return hass


@pytest.fixture
def person_data():
    """Return one stored person record."""
    return {
        "id": "stu_1",
        "name": "Ahmad",
        "className": "VII A",
        "nis": "1001",
        "nisn": "0045601",
        "points": 0,
        "journal": {},
        "kajianLogs": [],
        "tadarusLogs": [],
        "readLogs": [],
        "schemaVersion": 2,
    }


@pytest.fixture
def schedule():
    """Return a prayer schedule for 2026-03-01."""
    return PrayerSchedule(
        date="2026-03-01",
        times={
            "Imsak": 4 * 60 + 5,
            "Fajr": 4 * 60 + 15,
            "Dhuhr": 11 * 60 + 40,
            "Asr": 15 * 60,
            "Maghrib": 17 * 60 + 50,
            "Isha": 19 * 60,
        },
    )


@pytest.fixture
def now():
    """Afternoon of 2026-03-01, after Asr and before Maghrib."""
    return datetime(2026, 3, 1, 16, 0)


@pytest.fixture
def coordinator(mock_hass, person_data):
    """Return a coordinator backed by in-memory stores."""
    from custom_components.ramadhanjournal.coordinator import RamadhanJournalCoordinator

    # Patch the Store to avoid real file operations
    with patch("custom_components.ramadhanjournal.storage.Store") as mock_store_class:
        mock_store_class.side_effect = lambda hass, version, key: Mock(
            key=key,
            version=version,
            async_load=AsyncMock(return_value=None),
            async_save=AsyncMock(),
        )
        coord = RamadhanJournalCoordinator(mock_hass, {"endpoint": "https://script.example.com/exec"})

    coord.store._data = {
        "people": [
            person_data,
            {**person_data, "id": "stu_2", "name": "Budi", "className": "VII B", "points": 40},
            {**person_data, "id": "stu_3", "name": "Citra", "className": "VII A", "points": 25},
        ],
        "content_items": [
            {"id": "mat_1", "title": "Niat Puasa", "category": "fiqih", "content": "...", "createdAt": ""},
            {"id": "quiz_1", "title": "Kuis Puasa", "category": "Quiz", "content": "...", "createdAt": ""},
        ],
        "announcements": [
            {"id": "bc_1", "message": "Selamat berpuasa", "createdAt": "", "active": True},
            {"id": "bc_2", "message": "Arsip", "createdAt": "", "active": False},
        ],
    }
    coord.ready = True
    return coord
