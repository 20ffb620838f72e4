"""Config flow for UniFi Access Hub integration."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import ConfigFlow, OptionsFlow, ConfigEntry
from homeassistant.const import CONF_HOST, CONF_PASSWORD, CONF_USERNAME
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers.selector import (
    BooleanSelector,
    NumberSelector,
    NumberSelectorConfig,
    TextSelector,
    TextSelectorConfig,
    TextSelectorType,
)

from .api import AccessApiClient
from .const import (
    CONF_DOORBELL,
    CONF_DOORBELL_TRIGGER,
    CONF_DPS,
    CONF_LOCK_DELAY_INTERVAL,
    CONF_LOCK_TRIGGER,
    CONF_LOG_DOORBELL,
    CONF_LOG_DPS,
    CONF_LOG_LOCK,
    CONF_LOG_REL,
    CONF_LOG_REN,
    CONF_LOG_REX,
    CONF_MQTT_ENABLED,
    CONF_MQTT_TOPIC,
    CONF_REL,
    CONF_REN,
    CONF_REX,
    CONF_VERIFY_SSL,
    DEFAULT_MQTT_TOPIC,
    DEFAULT_VERIFY_SSL,
    DOMAIN,
)
from .exceptions import AccessAuthError, UnifiAccessError

_LOGGER = logging.getLogger(__name__)

# Boolean options and their defaults
FEATURE_DEFAULTS: dict[str, bool] = {
    CONF_DOORBELL: True,
    CONF_DOORBELL_TRIGGER: False,
    CONF_LOCK_TRIGGER: False,
    CONF_DPS: True,
    CONF_REL: True,
    CONF_REN: True,
    CONF_REX: True,
    CONF_LOG_LOCK: True,
    CONF_LOG_DPS: True,
    CONF_LOG_DOORBELL: True,
    CONF_LOG_REL: True,
    CONF_LOG_REN: True,
    CONF_LOG_REX: True,
    CONF_MQTT_ENABLED: False,
}


class UnifiAccessConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for UniFi Access Hub."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle the initial step - console address and credentials."""
        errors: dict[str, str] = {}

        if user_input is not None:
            await self.async_set_unique_id(user_input[CONF_HOST])
            self._abort_if_unique_id_configured()

            client = AccessApiClient(
                host=user_input[CONF_HOST],
                username=user_input[CONF_USERNAME],
                password=user_input[CONF_PASSWORD],
                verify_ssl=user_input.get(CONF_VERIFY_SSL, DEFAULT_VERIFY_SSL),
            )
            try:
                await client.authenticate()
            except AccessAuthError:
                errors["base"] = "invalid_auth"
            except UnifiAccessError as err:
                _LOGGER.warning("Unable to connect to UniFi Access: %s", err)
                errors["base"] = "cannot_connect"
            finally:
                await client.close()

            if not errors:
                return self.async_create_entry(
                    title=f"UniFi Access ({user_input[CONF_HOST]})",
                    data=user_input,
                )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema({
                vol.Required(CONF_HOST): TextSelector(
                    TextSelectorConfig(type=TextSelectorType.TEXT)
                ),
                vol.Required(CONF_USERNAME): TextSelector(
                    TextSelectorConfig(type=TextSelectorType.TEXT)
                ),
                vol.Required(CONF_PASSWORD): TextSelector(
                    TextSelectorConfig(type=TextSelectorType.PASSWORD)
                ),
                vol.Optional(CONF_VERIFY_SSL, default=DEFAULT_VERIFY_SSL): BooleanSelector(),
            }),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(
        config_entry: ConfigEntry,
    ) -> OptionsFlow:
        """Get the options flow for this handler."""
        return UnifiAccessOptionsFlow()


class UnifiAccessOptionsFlow(OptionsFlow):
    """Handle options flow for UniFi Access Hub."""

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle options flow."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        current = {**self.config_entry.options}

        schema: dict[Any, Any] = {
            vol.Optional(
                CONF_LOCK_DELAY_INTERVAL,
                description={"suggested_value": current.get(CONF_LOCK_DELAY_INTERVAL)},
            ): NumberSelector(
                NumberSelectorConfig(min=0, max=1440, step=1, mode="box", unit_of_measurement="min")
            ),
        }
        for key, default in FEATURE_DEFAULTS.items():
            schema[vol.Optional(key, default=current.get(key, default))] = BooleanSelector()

        schema[
            vol.Optional(CONF_MQTT_TOPIC, default=current.get(CONF_MQTT_TOPIC, DEFAULT_MQTT_TOPIC))
        ] = TextSelector(TextSelectorConfig(type=TextSelectorType.TEXT))

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(schema),
        )
