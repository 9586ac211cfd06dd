"""The Ramadhan Journal integration."""
from __future__ import annotations

import asyncio
from datetime import datetime
import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import ConfigEntryNotReady, HomeAssistantError
import homeassistant.helpers.config_validation as cv
from homeassistant.helpers.event import async_track_time_change
from homeassistant.helpers.typing import ConfigType
import voluptuous as vol

from .const import (
    ACTIVITIES,
    DOMAIN,
    EXECUTION_MODES,
    PLATFORMS,
    SERVICE_CLAIM_ASSESSMENT,
    SERVICE_DELETE_CONTENT,
    SERVICE_DELETE_PERSON,
    SERVICE_IMPORT_PEOPLE,
    SERVICE_LOG_KAJIAN,
    SERVICE_LOG_TADARUS,
    SERVICE_OPEN_CONTENT,
    SERVICE_SAVE_ANNOUNCEMENT,
    SERVICE_SAVE_CONTENT,
    SERVICE_SAVE_PERSON,
    SERVICE_SAVE_SETTINGS,
    SERVICE_TOGGLE_ACTIVITY,
    SERVICE_TOGGLE_EXEMPT,
    SERVICES,
)
from .coordinator import RamadhanJournalCoordinator

_LOGGER = logging.getLogger(__name__)

# Service field -> stored settings field
SETTINGS_FIELDS = {
    "school_name": "schoolName",
    "ramadhan_year": "ramadhanYear",
    "gregorian_year": "gregorianYear",
    "login_title": "loginTitle",
    "admin_password": "adminPassword",
    "teacher_password": "teacherPassword",
    "copyright_text": "copyrightText",
}


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Set up the Ramadhan Journal component."""
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Ramadhan Journal from a config entry."""
    try:
        coordinator = RamadhanJournalCoordinator(hass, {**entry.data, **entry.options})
        await coordinator.async_init()
    except (asyncio.TimeoutError, ConnectionError, OSError) as ex:
        raise ConfigEntryNotReady(f"Failed to initialize Ramadhan Journal coordinator: {ex}") from ex
    except Exception as ex:
        _LOGGER.exception("Unexpected error setting up Ramadhan Journal")
        raise ConfigEntryNotReady(f"Setup failed: {ex}") from ex

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = coordinator

    try:
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    except Exception as ex:
        _LOGGER.exception("Failed to set up platforms")
        raise ConfigEntryNotReady(f"Failed to set up platforms: {ex}") from ex

    async def _refresh_schedule(now: datetime) -> None:
        await coordinator.async_refresh_prayer_schedule(now)

    entry.async_on_unload(async_track_time_change(hass, _refresh_schedule, hour=0, minute=5, second=0))
    entry.async_on_unload(coordinator.async_shutdown)
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    # ---- Services ----
    async def _toggle_activity(call: ServiceCall) -> ServiceResponse:
        """Toggle activity service handler."""
        try:
            data = call.data
            person_id = data["person_id"]
            activity = data["activity"]

            old_points = coordinator.get_points(person_id)
            new_points = await coordinator.async_toggle_activity(
                person_id,
                activity,
                day=data.get("date"),
                mode=data.get("mode"),
                place=data.get("place"),
                imam=data.get("imam"),
                completed=data.get("completed"),
            )
            _LOGGER.info("Toggled %s for %s (%d -> %d)", activity, person_id, old_points, new_points)
            return {"points": new_points}

        except HomeAssistantError:
            raise
        except KeyError as ex:
            _LOGGER.error("Missing required parameter in toggle_activity service: %s", ex)
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except (ValueError, TypeError) as ex:
            _LOGGER.error("Invalid parameter value in toggle_activity service: %s", ex)
            raise HomeAssistantError(f"Invalid parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in toggle_activity service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _toggle_exempt(call: ServiceCall) -> ServiceResponse:
        """Toggle exempt mode service handler."""
        try:
            data = call.data
            new_points = await coordinator.async_toggle_exempt_mode(data["person_id"], day=data.get("date"))
            return {"points": new_points}

        except HomeAssistantError:
            raise
        except KeyError as ex:
            _LOGGER.error("Missing required parameter in toggle_exempt_mode service: %s", ex)
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except (ValueError, TypeError) as ex:
            _LOGGER.error("Invalid parameter value in toggle_exempt_mode service: %s", ex)
            raise HomeAssistantError(f"Invalid parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in toggle_exempt_mode service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _open_content(call: ServiceCall) -> ServiceResponse:
        """Open content service handler."""
        try:
            awarded = await coordinator.async_open_content(call.data["person_id"], call.data["content_id"])
            return {"awarded": awarded}
        except HomeAssistantError:
            raise
        except KeyError as ex:
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in open_content service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _claim_assessment(call: ServiceCall) -> ServiceResponse:
        """Claim assessment service handler."""
        try:
            awarded = await coordinator.async_claim_assessment(call.data["person_id"], call.data["content_id"])
            return {"awarded": awarded}
        except HomeAssistantError:
            raise
        except KeyError as ex:
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in claim_assessment service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _log_kajian(call: ServiceCall) -> None:
        """Log lecture service handler."""
        try:
            data = call.data
            points = await coordinator.async_log_kajian(
                data["person_id"],
                data["speaker"],
                data.get("place", ""),
                data.get("summary", ""),
                data.get("link"),
            )
            _LOGGER.info("Logged kajian for %s, now %d points", data["person_id"], points)
        except HomeAssistantError:
            raise
        except KeyError as ex:
            _LOGGER.error("Missing required parameter in log_kajian service: %s", ex)
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in log_kajian service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _log_tadarus(call: ServiceCall) -> None:
        """Log recitation service handler."""
        try:
            data = call.data
            points = await coordinator.async_log_tadarus(data["person_id"], data["surah"], data["ayat"])
            _LOGGER.info("Logged tadarus for %s, now %d points", data["person_id"], points)
        except HomeAssistantError:
            raise
        except KeyError as ex:
            _LOGGER.error("Missing required parameter in log_tadarus service: %s", ex)
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in log_tadarus service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _save_person(call: ServiceCall) -> ServiceResponse:
        """Save person service handler."""
        try:
            data = call.data
            person_id = await coordinator.async_save_person(
                data["name"],
                data["class_name"],
                person_id=data.get("person_id"),
                nis=data.get("nis"),
                nisn=data.get("nisn"),
            )
            _LOGGER.info("Saved person %s (%s)", person_id, data["name"])
            return {"person_id": person_id}
        except HomeAssistantError:
            raise
        except KeyError as ex:
            _LOGGER.error("Missing required parameter in save_person service: %s", ex)
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in save_person service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _delete_person(call: ServiceCall) -> None:
        """Delete person service handler."""
        try:
            await coordinator.async_delete_person(call.data["person_id"])
            _LOGGER.info("Deleted person %s", call.data["person_id"])
        except KeyError as ex:
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex

    async def _import_people(call: ServiceCall) -> ServiceResponse:
        """Import people service handler."""
        try:
            count = await coordinator.async_import_people(list(call.data["people"]))
            _LOGGER.info("Imported %d people, cloud sync continues in the background", count)
            return {"imported": count}
        except HomeAssistantError:
            raise
        except KeyError as ex:
            _LOGGER.error("Missing required parameter in import_people service: %s", ex)
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in import_people service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _save_content(call: ServiceCall) -> ServiceResponse:
        """Save content service handler."""
        try:
            data = call.data
            item_id = await coordinator.async_save_content_item(
                data["title"],
                data["content"],
                data["category"],
                item_id=data.get("content_id"),
                media_url=data.get("media_url"),
            )
            return {"content_id": item_id}
        except HomeAssistantError:
            raise
        except KeyError as ex:
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex
        except Exception as ex:
            _LOGGER.exception("Unexpected error in save_content service")
            raise HomeAssistantError(f"Service failed: {ex}") from ex

    async def _delete_content(call: ServiceCall) -> None:
        """Delete content service handler."""
        try:
            await coordinator.async_delete_content_item(call.data["content_id"])
        except KeyError as ex:
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex

    async def _save_announcement(call: ServiceCall) -> ServiceResponse:
        """Save announcement service handler."""
        try:
            data = call.data
            announcement_id = await coordinator.async_save_announcement(
                data["message"], data.get("active", True), data.get("announcement_id")
            )
            return {"announcement_id": announcement_id}
        except KeyError as ex:
            raise HomeAssistantError(f"Missing required parameter: {ex}") from ex

    async def _save_settings(call: ServiceCall) -> None:
        """Save settings service handler."""
        changes = {SETTINGS_FIELDS[key]: value for key, value in call.data.items() if key in SETTINGS_FIELDS}
        if not changes:
            raise HomeAssistantError("No settings given")
        await coordinator.async_save_settings(changes)
        _LOGGER.info("Saved settings: %s", sorted(k for k in changes if "Password" not in k))

    # Service schemas
    toggle_activity_schema = vol.Schema({
        vol.Required("person_id"): cv.string,
        vol.Required("activity"): vol.In(ACTIVITIES),
        vol.Optional("date"): cv.date,
        vol.Optional("mode"): vol.In(EXECUTION_MODES),
        vol.Optional("place"): cv.string,
        vol.Optional("imam"): cv.string,
        vol.Optional("completed"): cv.boolean,
    })

    person_date_schema = vol.Schema({
        vol.Required("person_id"): cv.string,
        vol.Optional("date"): cv.date,
    })

    content_credit_schema = vol.Schema({
        vol.Required("person_id"): cv.string,
        vol.Required("content_id"): cv.string,
    })

    log_kajian_schema = vol.Schema({
        vol.Required("person_id"): cv.string,
        vol.Required("speaker"): cv.string,
        vol.Optional("place", default=""): cv.string,
        vol.Optional("summary", default=""): cv.string,
        vol.Optional("link"): cv.url,
    })

    log_tadarus_schema = vol.Schema({
        vol.Required("person_id"): cv.string,
        vol.Required("surah"): cv.string,
        vol.Required("ayat"): cv.string,
    })

    save_person_schema = vol.Schema({
        vol.Optional("person_id"): cv.string,
        vol.Required("name"): cv.string,
        vol.Required("class_name"): cv.string,
        vol.Optional("nis"): cv.string,
        vol.Optional("nisn"): cv.string,
    })

    person_schema = vol.Schema({
        vol.Required("person_id"): cv.string,
    })

    import_people_schema = vol.Schema({
        vol.Required("people"): vol.All(cv.ensure_list, [vol.Schema({
            vol.Required("name"): cv.string,
            vol.Required("class_name"): cv.string,
            vol.Optional("nis"): cv.string,
            vol.Optional("nisn"): cv.string,
        })]),
    })

    save_content_schema = vol.Schema({
        vol.Optional("content_id"): cv.string,
        vol.Required("title"): cv.string,
        vol.Required("content"): cv.string,
        vol.Required("category"): cv.string,
        vol.Optional("media_url"): cv.url,
    })

    content_schema = vol.Schema({
        vol.Required("content_id"): cv.string,
    })

    save_announcement_schema = vol.Schema({
        vol.Optional("announcement_id"): cv.string,
        vol.Required("message"): cv.string,
        vol.Optional("active", default=True): cv.boolean,
    })

    save_settings_schema = vol.Schema({vol.Optional(key): cv.string for key in SETTINGS_FIELDS})

    optional_response = {"supports_response": SupportsResponse.OPTIONAL}
    hass.services.async_register(DOMAIN, SERVICE_TOGGLE_ACTIVITY, _toggle_activity, schema=toggle_activity_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_TOGGLE_EXEMPT, _toggle_exempt, schema=person_date_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_OPEN_CONTENT, _open_content, schema=content_credit_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_CLAIM_ASSESSMENT, _claim_assessment, schema=content_credit_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_LOG_KAJIAN, _log_kajian, schema=log_kajian_schema)
    hass.services.async_register(DOMAIN, SERVICE_LOG_TADARUS, _log_tadarus, schema=log_tadarus_schema)
    hass.services.async_register(DOMAIN, SERVICE_SAVE_PERSON, _save_person, schema=save_person_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_DELETE_PERSON, _delete_person, schema=person_schema)
    hass.services.async_register(DOMAIN, SERVICE_IMPORT_PEOPLE, _import_people, schema=import_people_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_SAVE_CONTENT, _save_content, schema=save_content_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_DELETE_CONTENT, _delete_content, schema=content_schema)
    hass.services.async_register(DOMAIN, SERVICE_SAVE_ANNOUNCEMENT, _save_announcement, schema=save_announcement_schema, **optional_response)
    hass.services.async_register(DOMAIN, SERVICE_SAVE_SETTINGS, _save_settings, schema=save_settings_schema)

    return True


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload so a changed endpoint or location takes effect."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        # Unregister services if this is the last instance
        if not hass.data[DOMAIN]:
            for service in SERVICES:
                hass.services.async_remove(DOMAIN, service)
    return unload_ok
