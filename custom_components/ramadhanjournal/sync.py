"""Remote sync gateway for Ramadhan Journal integration.

Pull runs once at startup and overwrites local collections with the remote
snapshot. Push is one-way: ``emit`` schedules a background POST and returns
at once. Nothing a push learns flows back into the local store, so the remote
copy may drift; the local cache is authoritative.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.json import json_dumps
from homeassistant.util import dt as dt_util

from .const import (
    CLASSES,
    COLLECTION_ANNOUNCEMENTS,
    COLLECTION_CONTENT,
    COLLECTION_PEOPLE,
    COLLECTION_SETTINGS,
    DEFAULT_SETTINGS,
    DOMAIN,
    REMOTE_FIELDS,
    REMOTE_SETTINGS_FIELD,
    REQUEST_TIMEOUT,
    SEED_PEOPLE_PER_CLASS,
)
from .exceptions import MalformedRemoteResponse, RemoteUnavailable
from .models import Announcement, ContentItem, Person
from .storage import JournalLocalStore

_LOGGER = logging.getLogger(__name__)


def _is_record_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, dict) and "id" in item for item in value)


def seed_people() -> list[dict[str, Any]]:
    """Deterministic placeholder roster used when no data is available."""
    people = []
    for class_index, class_name in enumerate(CLASSES):
        for number in range(1, SEED_PEOPLE_PER_CLASS + 1):
            people.append(
                Person(
                    id=f"stu_{class_index}_{number}",
                    name=f"Siswa {class_name} {number}",
                    class_name=class_name,
                    nis=f"10{class_index}{number}",
                    nisn=f"00456{class_index}{number}",
                ).to_dict()
            )
    return people


async def async_seed_local_data(store: JournalLocalStore) -> None:
    """Fill an empty cache so the integration is usable offline."""
    await store.async_put_collection(COLLECTION_PEOPLE, seed_people())
    created_at = dt_util.utcnow().isoformat()

    if not store.get_collection(COLLECTION_CONTENT):
        item = ContentItem(
            id="mat_1",
            title="Niat Puasa Ramadhan",
            category="fiqih",
            content=(
                "Niat puasa adalah: Nawaitu shauma ghadin an adai fardhi syahri "
                "ramadhana hadzihis sanati lillahi ta'ala."
            ),
            created_at=created_at,
        )
        await store.async_put_collection(COLLECTION_CONTENT, [item.to_dict()])

    if not store.get_collection(COLLECTION_ANNOUNCEMENTS):
        announcement = Announcement(
            id="bc_1",
            message="Selamat Menunaikan Ibadah Puasa. Aplikasi berjalan dalam mode Offline.",
            created_at=created_at,
        )
        await store.async_put_collection(COLLECTION_ANNOUNCEMENTS, [announcement.to_dict()])
    _LOGGER.info("Seeded local cache with placeholder data")


class RemoteSyncGateway:
    """Best-effort channel to the remote system of record."""

    def __init__(self, hass: HomeAssistant, endpoint: str | None) -> None:
        self.hass = hass
        self.endpoint = (endpoint or "").strip()
        self.online = False
        self.last_pull: str | None = None
        self.pushes_sent = 0
        self.push_failures = 0

    @property
    def configured(self) -> bool:
        return bool(self.endpoint)

    async def async_fetch_snapshot(self) -> dict[str, Any]:
        """GET the full snapshot. Raises RemoteUnavailable or MalformedRemoteResponse."""
        session = async_get_clientsession(self.hass)
        params = {"action": "getData", "_": str(int(dt_util.utcnow().timestamp() * 1000))}
        try:
            async with asyncio.timeout(REQUEST_TIMEOUT):
                async with session.get(self.endpoint, params=params) as response:
                    if response.status != 200:
                        raise RemoteUnavailable(f"HTTP {response.status} fetching snapshot")
                    payload = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as ex:
            raise RemoteUnavailable(f"Snapshot request failed: {ex}") from ex
        except ValueError as ex:
            raise MalformedRemoteResponse(f"Snapshot is not JSON: {ex}") from ex

        if not isinstance(payload, dict):
            raise MalformedRemoteResponse("Unexpected snapshot shape")
        return payload

    async def async_pull(self, store: JournalLocalStore) -> bool:
        """Absorb the remote snapshot into the store, or fall back to the cache.

        Returns True when a snapshot was applied.
        """
        if not self.configured:
            _LOGGER.info("No endpoint configured, running in offline mode")
            await self._async_ensure_seeded(store)
            return False

        try:
            snapshot = await self.async_fetch_snapshot()
        except (RemoteUnavailable, MalformedRemoteResponse) as ex:
            _LOGGER.warning("Cloud sync failed, using local data: %s", ex)
            self.online = False
            await self._async_ensure_seeded(store)
            return False

        for field, collection in REMOTE_FIELDS.items():
            value = snapshot.get(field)
            if value is None:
                continue
            if not _is_record_list(value):
                _LOGGER.warning("Ignoring malformed %s in snapshot", field)
                continue
            await store.async_put_collection(collection, value)

        settings = snapshot.get(REMOTE_SETTINGS_FIELD)
        if isinstance(settings, dict):
            await store.async_put_collection(COLLECTION_SETTINGS, {**DEFAULT_SETTINGS, **settings})
        elif settings is not None:
            _LOGGER.warning("Ignoring malformed %s in snapshot", REMOTE_SETTINGS_FIELD)

        self.online = True
        self.last_pull = dt_util.utcnow().isoformat()
        _LOGGER.info("Data synced from cloud")
        return True

    async def _async_ensure_seeded(self, store: JournalLocalStore) -> None:
        if not store.get_collection(COLLECTION_PEOPLE):
            await async_seed_local_data(store)

    @callback
    def emit(self, action: str, payload: dict[str, Any]) -> None:
        """Send a mutation without waiting for it. Never raises, never retries."""
        if not self.configured:
            _LOGGER.debug("Skipping push of %s, no endpoint configured", action)
            return
        self.hass.async_create_background_task(
            self._async_send(action, payload), name=f"{DOMAIN} push {action}"
        )

    async def _async_send(self, action: str, payload: dict[str, Any]) -> None:
        session = async_get_clientsession(self.hass)
        body = json_dumps({"action": action, "payload": payload, "id": payload.get("id")})
        try:
            # The response is not read; delivery is at most once
            async with session.post(self.endpoint, data=body, headers={"Content-Type": "text/plain"}):
                pass
        except (aiohttp.ClientError, TimeoutError, OSError) as ex:
            self.push_failures += 1
            _LOGGER.warning("Failed to sync %s for %s: %s", action, payload.get("id"), ex)
            return
        self.pushes_sent += 1
        _LOGGER.debug("Pushed %s for %s", action, payload.get("id"))
