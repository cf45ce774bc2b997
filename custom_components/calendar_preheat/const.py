"""Constants for the Calendar Preheat integration."""
from typing import Final

DOMAIN: Final = "calendar_preheat"
VERSION = "1.2.0"

# Config keys
CONF_CALENDAR_URL: Final = "calendar_url"
CONF_CAL_USER: Final = "calendar_username"
CONF_CAL_PASS: Final = "calendar_password"
CONF_TEMPERATURE: Final = "temperature_sensor"
CONF_SETPOINT_WARM: Final = "setpoint_warm"
CONF_HEATING_RATE: Final = "heating_rate"
CONF_LOOKAHEAD_HOURS: Final = "lookahead_hours"
CONF_BUFFER_MIN: Final = "buffer_minutes"
CONF_EVAL_INTERVAL: Final = "evaluation_interval"
CONF_HOLD_STRATEGY: Final = "hold_strategy"
CONF_EVENT_BLACKLIST: Final = "event_blacklist"
CONF_UPCOMING_COUNT: Final = "upcoming_count"

# Hold strategies
HOLD_SUSTAIN: Final = 0       # Keep demand on until the event ends
HOLD_PREHEAT_ONLY: Final = 1  # Release at event start (event itself still forces on)

# Defaults
DEFAULT_NAME: Final = "Meeting Room"
DEFAULT_SETPOINT_WARM: Final = 21.0
DEFAULT_HEATING_RATE: Final = 1.0    # K per hour
DEFAULT_LOOKAHEAD_HOURS: Final = 36
DEFAULT_BUFFER_MIN: Final = 0
DEFAULT_EVAL_INTERVAL: Final = 60    # Seconds
MIN_EVAL_INTERVAL: Final = 15
DEFAULT_HOLD_STRATEGY: Final = HOLD_SUSTAIN
DEFAULT_EVENT_BLACKLIST: Final = "[]"
DEFAULT_UPCOMING_COUNT: Final = 10
DEFAULT_FETCH_TIMEOUT: Final = 30    # Seconds per candidate URL

# Recurrence runaway guards
MAX_DAILY_ITERATIONS: Final = 2000
MAX_WEEKLY_ITERATIONS: Final = 520   # ~10 years of weeks

SECONDS_PER_DAY: Final = 86400
SECONDS_PER_WEEK: Final = 604800

# Health status
STATUS_OK: Final = "ok"
STATUS_UNCONFIGURED: Final = "calendar_source_unconfigured"
STATUS_FETCH_ERROR: Final = "fetch_error"
STATUS_AUTH_ERROR: Final = "auth_error"
STATUS_OPTIONS: Final = [STATUS_OK, STATUS_UNCONFIGURED, STATUS_FETCH_ERROR, STATUS_AUTH_ERROR]

# Display labels
LABEL_RUNNING: Final = "Running"
LABEL_PREHEATING: Final = "Preheating"
LABEL_COMPLETED: Final = "Completed"
LABEL_CANCELLED: Final = "Cancelled — no heating"
LABEL_UNTITLED: Final = "Untitled event"

# Placeholder for "no instant" in ISO outputs
NO_VALUE: Final = "-"

# Warning codes (collected per cycle, also logged)
WARN_NO_TEMPERATURE: Final = "temperature_unavailable"
WARN_HEATING_RATE: Final = "heating_rate_invalid"
WARN_BLACKLIST_DECODE: Final = "blacklist_decode_failed"
WARN_BLACKLIST_LEGACY: Final = "blacklist_legacy_pattern"
WARN_ENGINE_ERROR: Final = "engine_error"

# Storage
STORAGE_VERSION: Final = 1
STORAGE_KEY_TEMPLATE: Final = "calendar_preheat.{}"
