"""Config flow for Ramadhan Journal integration."""
from __future__ import annotations

from typing import Any

from homeassistant import config_entries
from homeassistant.core import callback
import voluptuous as vol

from .const import (
    CONF_ENDPOINT,
    CONF_IMPORT_DELAY,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    DEFAULT_IMPORT_DELAY,
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    DOMAIN,
)


def _validate(user_input: dict[str, Any]) -> dict[str, str]:
    errors = {}
    endpoint = user_input.get(CONF_ENDPOINT, "").strip()
    if endpoint and not endpoint.startswith(("http://", "https://")):
        errors[CONF_ENDPOINT] = "invalid_url"
    if not -90 <= user_input.get(CONF_LATITUDE, 0) <= 90:
        errors[CONF_LATITUDE] = "invalid_coordinates"
    if not -180 <= user_input.get(CONF_LONGITUDE, 0) <= 180:
        errors[CONF_LONGITUDE] = "invalid_coordinates"
    return errors


def _schema(defaults: dict[str, Any]) -> vol.Schema:
    return vol.Schema({
        vol.Optional(CONF_ENDPOINT, default=defaults.get(CONF_ENDPOINT, "")): str,
        vol.Optional(CONF_LATITUDE, default=defaults.get(CONF_LATITUDE, DEFAULT_LATITUDE)): vol.Coerce(float),
        vol.Optional(CONF_LONGITUDE, default=defaults.get(CONF_LONGITUDE, DEFAULT_LONGITUDE)): vol.Coerce(float),
        vol.Optional(CONF_IMPORT_DELAY, default=defaults.get(CONF_IMPORT_DELAY, DEFAULT_IMPORT_DELAY)): vol.All(
            vol.Coerce(float), vol.Range(min=0)
        ),
    })


class RamadhanJournalConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        # Check for existing instance
        if self._async_current_entries():
            return self.async_abort(reason="single_instance_allowed")

        errors = {}
        if user_input is not None:
            errors = _validate(user_input)
            if not errors:
                return self.async_create_entry(title="Ramadhan Journal", data=user_input)

        return self.async_show_form(step_id="user", data_schema=_schema(user_input or {}), errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        return RamadhanJournalOptionsFlow(config_entry)


class RamadhanJournalOptionsFlow(config_entries.OptionsFlow):
    def __init__(self, entry):
        self.entry = entry

    async def async_step_init(self, user_input=None):
        errors = {}
        if user_input is not None:
            errors = _validate(user_input)
            if not errors:
                return self.async_create_entry(title="", data=user_input)

        defaults = {**self.entry.data, **self.entry.options, **(user_input or {})}
        return self.async_show_form(step_id="init", data_schema=_schema(defaults), errors=errors)
