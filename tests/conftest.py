import os
import sys
import types
from dataclasses import dataclass
from datetime import datetime, timezone
from unittest.mock import MagicMock

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Global Mock for Home Assistant
# This must run before any test imports that rely on 'homeassistant'
if "homeassistant" not in sys.modules:
    ha = types.ModuleType("homeassistant")
    ha.__path__ = []
    sys.modules["homeassistant"] = ha

    # Mock DUC
    class MockDataUpdateCoordinator:
        def __init__(self, hass, logger, name, update_interval, **kwargs):
            self.hass = hass
            self.logger = logger
            self.name = name
            self.update_interval = update_interval
            self.config_entry = kwargs.get("config_entry")
            self.data = None
        async def _async_update_data(self): pass
        def async_add_listener(self, *args): pass
        async def async_refresh(self):
            self.data = await self._async_update_data()
        async def async_request_refresh(self):
            await self.async_refresh()
        async def async_config_entry_first_refresh(self):
            await self.async_refresh()
        def __class_getitem__(cls, item): return cls

    class MockCoordinatorEntity:
        def __init__(self, coordinator):
            self.coordinator = coordinator
        def __class_getitem__(cls, item): return cls

    class MockUpdateFailed(Exception): pass

    update_coordinator = MagicMock()
    update_coordinator.DataUpdateCoordinator = MockDataUpdateCoordinator
    update_coordinator.CoordinatorEntity = MockCoordinatorEntity
    update_coordinator.UpdateFailed = MockUpdateFailed

    dt_mock = MagicMock()
    dt_mock.UTC = timezone.utc
    dt_mock.utcnow.side_effect = lambda: datetime.now(timezone.utc)
    dt_mock.get_default_time_zone.return_value = timezone.utc
    dt_mock.utc_from_timestamp.side_effect = lambda ts: datetime.fromtimestamp(ts, timezone.utc)
    dt_mock.as_local.side_effect = lambda value: value

    diagnostics = MagicMock()
    diagnostics.async_redact_data = lambda data, keys: {
        k: ("**REDACTED**" if k in keys else v) for k, v in data.items()
    }

    # Entity bases need to be real classes so platforms can subclass them
    class MockEntity:
        pass

    @dataclass(frozen=True, kw_only=True)
    class MockButtonEntityDescription:
        key: str
        translation_key: str | None = None
        icon: str | None = None

    sensor = MagicMock()
    sensor.SensorEntity = MockEntity
    binary_sensor = MagicMock()
    binary_sensor.BinarySensorEntity = MockEntity
    button = MagicMock()
    button.ButtonEntity = MockEntity
    button.ButtonEntityDescription = MockButtonEntityDescription
    device_registry = MagicMock()
    device_registry.DeviceInfo = dict

    # Flow bases: results are plain dicts like the real FlowResult
    class MockOptionsFlow:
        def async_show_form(self, **kwargs):
            return {"type": "form", **kwargs}
        def async_create_entry(self, **kwargs):
            return {"type": "create_entry", **kwargs}
        def add_suggested_values_to_schema(self, schema, values):
            self.suggested_values = dict(values)
            return schema

    class MockConfigFlow(MockOptionsFlow):
        def __init_subclass__(cls, domain=None, **kwargs):
            super().__init_subclass__(**kwargs)
            cls.domain = domain

    config_entries = MagicMock()
    config_entries.ConfigFlow = MockConfigFlow
    config_entries.OptionsFlow = MockOptionsFlow

    ha_const = MagicMock()
    ha_const.CONF_NAME = "name"

    modules = {
        "homeassistant.core": MagicMock(),
        "homeassistant.config_entries": config_entries,
        "homeassistant.const": ha_const,
        "homeassistant.exceptions": MagicMock(),
        "homeassistant.data_entry_flow": MagicMock(),
        "homeassistant.helpers": MagicMock(),
        "homeassistant.helpers.event": MagicMock(),
        "homeassistant.helpers.update_coordinator": update_coordinator,
        "homeassistant.helpers.storage": MagicMock(),
        "homeassistant.helpers.issue_registry": MagicMock(),
        "homeassistant.helpers.aiohttp_client": MagicMock(),
        "homeassistant.helpers.config_validation": MagicMock(),
        "homeassistant.helpers.device_registry": device_registry,
        "homeassistant.helpers.entity": MagicMock(),
        "homeassistant.helpers.entity_platform": MagicMock(),
        "homeassistant.helpers.selector": MagicMock(),
        "homeassistant.util": MagicMock(),
        "homeassistant.util.dt": dt_mock,
        "homeassistant.components": MagicMock(),
        "homeassistant.components.sensor": sensor,
        "homeassistant.components.binary_sensor": binary_sensor,
        "homeassistant.components.button": button,
        "homeassistant.components.diagnostics": diagnostics,
    }
    # callback decorator must hand the function back unchanged
    modules["homeassistant.core"].callback = lambda func: func
    modules["homeassistant.util"].dt = dt_mock
    modules["homeassistant.helpers"].update_coordinator = update_coordinator

    for name, module in modules.items():
        sys.modules[name] = module
        setattr(ha, name.split(".")[1], sys.modules["homeassistant." + name.split(".")[1]])
