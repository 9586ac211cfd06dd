"""Storage utilities for Ramadhan Journal integration."""
from __future__ import annotations

from collections.abc import Callable
from copy import deepcopy
import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .const import COLLECTION_SETTINGS, COLLECTIONS, DOMAIN, STORAGE_VERSION
from .exceptions import LocalStorageExhausted

_LOGGER = logging.getLogger(__name__)


def _default_key(item: dict[str, Any]) -> Any:
    return item.get("id")


def _empty(name: str) -> Any:
    return {} if name == COLLECTION_SETTINGS else []


class JournalLocalStore:
    """Durable cache of whole-entity collections.

    Every collection lives under its own storage key and is held in memory,
    so reads are synchronous. Writes replace the in-memory value first and
    then persist it. ``async_upsert`` is a read-modify-write over the whole
    collection without any locking; the last writer wins.
    """

    def __init__(self, hass: HomeAssistant):
        self._stores: dict[str, Store] = {
            name: Store(hass, STORAGE_VERSION, f"{DOMAIN}_{name}") for name in COLLECTIONS
        }
        self._data: dict[str, Any] = {}

    async def async_load(self) -> None:
        for name, store in self._stores.items():
            data = await store.async_load()
            if data is not None:
                self._data[name] = data
        _LOGGER.debug("Loaded local collections: %s", {k: len(v) for k, v in self._data.items()})

    def has_collection(self, name: str) -> bool:
        return name in self._data

    def get_collection(self, name: str) -> Any:
        """Return a copy of a collection, empty if it was never written."""
        if name not in self._data:
            return _empty(name)
        return deepcopy(self._data[name])

    async def async_put_collection(self, name: str, items: Any) -> bool:
        """Replace a collection wholesale. Returns False if persisting failed."""
        if name not in self._stores:
            raise KeyError(f"Unknown collection: {name}")
        self._data[name] = deepcopy(items)
        try:
            await self._async_persist(name)
        except LocalStorageExhausted as ex:
            _LOGGER.error("Local write lost, keeping in-memory copy: %s", ex)
            return False
        return True

    async def _async_persist(self, name: str) -> None:
        try:
            await self._stores[name].async_save(self._data[name])
        except (OSError, HomeAssistantError) as ex:
            raise LocalStorageExhausted(f"Could not persist {name}: {ex}") from ex

    async def async_upsert(
        self, name: str, item: dict[str, Any], key: Callable[[dict[str, Any]], Any] = _default_key
    ) -> bool:
        """Replace the item with the same key, or append it."""
        items = self.get_collection(name)
        item_key = key(item)
        for index, existing in enumerate(items):
            if key(existing) == item_key:
                items[index] = item
                break
        else:
            items.append(item)
        return await self.async_put_collection(name, items)

    async def async_remove(
        self, name: str, item_id: Any, key: Callable[[dict[str, Any]], Any] = _default_key
    ) -> bool:
        items = [item for item in self.get_collection(name) if key(item) != item_id]
        return await self.async_put_collection(name, items)

    def storage_info(self) -> dict[str, Any]:
        return {name: {"key": store.key, "version": store.version} for name, store in self._stores.items()}
