"""Constants for UniFi Access Hub integration."""
from enum import StrEnum
from typing import Final

DOMAIN: Final = "unifi_access_hub"
MANUFACTURER: Final = "Ubiquiti"

# Configuration keys
CONF_VERIFY_SSL: Final = "verify_ssl"
CONF_LOCK_DELAY_INTERVAL: Final = "lock_delay_interval"
CONF_DOORBELL: Final = "doorbell"
CONF_DOORBELL_TRIGGER: Final = "doorbell_trigger"
CONF_LOCK_TRIGGER: Final = "lock_trigger"
CONF_DPS: Final = "dps"
CONF_REL: Final = "rel"
CONF_REN: Final = "ren"
CONF_REX: Final = "rex"
CONF_LOG_LOCK: Final = "log_lock"
CONF_LOG_DPS: Final = "log_dps"
CONF_LOG_DOORBELL: Final = "log_doorbell"
CONF_LOG_REL: Final = "log_rel"
CONF_LOG_REN: Final = "log_ren"
CONF_LOG_REX: Final = "log_rex"
CONF_MQTT_ENABLED: Final = "mqtt_enabled"
CONF_MQTT_TOPIC: Final = "mqtt_topic"

# Default values
DEFAULT_VERIFY_SSL: Final = False
DEFAULT_MQTT_TOPIC: Final = "unifi/access"

# Timeouts
API_TIMEOUT: Final = 30
WEBSOCKET_RECONNECT_DELAY: Final = 10

# Auto-relock timing (seconds)
AUTO_RESET_DELAY: Final = 6.0
G3_READER_RESET_DELAY: Final = 5.0
AUTO_RESET_RETRY_DELAY: Final = 5.0
AUTO_RESET_MAX_ATTEMPTS: Final = 6

# Home Assistant bus event fired once per doorbell ring
EVENT_DOORBELL_RING: Final = f"{DOMAIN}_doorbell_ring"

# Device capability tags
CAPABILITY_HUB: Final = "is_hub"
CAPABILITY_DOORBELL: Final = "door_bell"
CAPABILITY_GATE: Final = ("is_gate", "is_gate_hub")
CAPABILITY_DPS: Final = ("dps_alarm", "dps_mode_selectable", "dps_trigger_level")

# Device classes (normalized) and model literals
G3_READER_CLASS_PREFIXES: Final = ("UAG3READER", "UAG3B")
G3_INTERCOM_CLASS: Final = "UAG3INTERCOM"
MODEL_HUB_DOOR_MINI: Final = "UA-Hub-Door-Mini"
MODEL_ULTRA: Final = "UA-ULTRA"
MODEL_HUB: Final = "UAH"
MINI_OR_ULTRA_MODELS: Final = (MODEL_HUB_DOOR_MINI, MODEL_ULTRA)

# Raw configuration keys reported by the controller
KEY_LOCK_RELAY: Final = "input_state_rly-lock_dry"
KEY_LOCK_RELAY_MINI: Final = "output_d1_lock_relay"
KEY_DPS: Final = "input_state_dps"
KEY_DPS_MINI: Final = "input_d1_dps"
DPS_WIRING_MINI: Final = ("wiring_state_d1-dps-neg", "wiring_state_d1-dps-pos")
DPS_WIRING_HUB: Final = ("wiring_state_dps-neg", "wiring_state_dps-pos")

# Lock relay value word sets
LOCK_ACTIVE_WORDS: Final = frozenset({"on", "true", "unlocked", "open", "active"})
LOCK_INACTIVE_WORDS: Final = frozenset({"off", "false", "locked", "closed", "inactive", "secured"})

# Dry contact value word sets
CONTACT_ACTIVE_WORDS: Final = frozenset({"1", "active", "closed", "on", "true"})
CONTACT_INACTIVE_WORDS: Final = frozenset({"0", "inactive", "open", "off", "false"})

# API
API_SUCCESS_CODE: Final = "SUCCESS"


class DeviceVariant(StrEnum):
    """Behavioral profile selecting config keys and command paths."""

    STANDARD = "standard"
    MINI_OR_ULTRA = "mini_or_ultra"
    G3_READER = "g3_reader"


class DeviceKind(StrEnum):
    """Which accessory a device presents as."""

    HUB = "hub"
    GATE = "gate"
    INTERCOM = "intercom"


class LockState(StrEnum):
    """Canonical lock states."""

    SECURED = "secured"
    UNSECURED = "unsecured"
    UNKNOWN = "unknown"


class ContactState(StrEnum):
    """Canonical contact sensor states."""

    DETECTED = "detected"
    NOT_DETECTED = "not_detected"
    UNKNOWN = "unknown"


class SensorChannel(StrEnum):
    """Position sensor and dry contact inputs."""

    DPS = "dps"
    REL = "rel"
    REN = "ren"
    REX = "rex"


DRY_CONTACTS: Final = (SensorChannel.REL, SensorChannel.REN, SensorChannel.REX)

# Dry contact always considered wired on Mini/Ultra hubs
MINI_ALWAYS_WIRED_CONTACT: Final = SensorChannel.REX


class AccessMethodType(StrEnum):
    """Access methods exposed as toggles."""

    FACE = "face"
    HAND = "hand"
    MOBILE = "mobile"
    NFC = "nfc"
    PIN = "pin"
    QR = "qr"


# Metadata per access method: labels, reserved identity and match keywords.
# Iteration order is the match priority.
ACCESS_METHODS: Final = {
    AccessMethodType.FACE: {
        "name": "Face Unlock",
        "reserved": "AccessMethod.Face",
        "keywords": ("face",),
    },
    AccessMethodType.HAND: {
        "name": "Hand Wave",
        "reserved": "AccessMethod.Hand",
        "keywords": ("hand_wave", "handwave", "wave"),
    },
    AccessMethodType.MOBILE: {
        "name": "Mobile Unlock",
        "reserved": "AccessMethod.Mobile",
        "keywords": ("mobile", "tap_to_unlock", "bt_button"),
    },
    AccessMethodType.NFC: {
        "name": "NFC Card",
        "reserved": "AccessMethod.NFC",
        "keywords": ("nfc", "card"),
    },
    AccessMethodType.PIN: {
        "name": "PIN Code",
        "reserved": "AccessMethod.PIN",
        "keywords": ("pin",),
    },
    AccessMethodType.QR: {
        "name": "QR Code",
        "reserved": "AccessMethod.QR",
        "keywords": ("qr",),
    },
}


class AccessEventType(StrEnum):
    """Controller event types handled by the dispatcher."""

    DEVICE_REMOTE_UNLOCK = "access.data.device.remote_unlock"
    LOCATION_REMOTE_UNLOCK = "access.data.location.remote_unlock"
    DEVICE_ACCESS_GRANTED = "access.data.device.access_granted"
    LOCATION_ACCESS_GRANTED = "access.data.location.access_granted"
    DEVICE_UPDATE = "access.data.device.update"
    REMOTE_VIEW = "access.remote_view"
    REMOTE_CALL = "access.remote_call"
    REMOTE_VIEW_CHANGE = "access.remote_view.change"
    REMOTE_CALL_CHANGE = "access.remote_call.change"


# Event types a device subscribes to by type rather than by its own id
TYPE_SCOPED_EVENTS: Final = (
    AccessEventType.LOCATION_REMOTE_UNLOCK,
    AccessEventType.LOCATION_ACCESS_GRANTED,
    AccessEventType.REMOTE_VIEW,
    AccessEventType.REMOTE_CALL,
    AccessEventType.REMOTE_VIEW_CHANGE,
    AccessEventType.REMOTE_CALL_CHANGE,
)


class TelemetryChannel(StrEnum):
    """MQTT telemetry channels."""

    LOCK = "lock"
    DPS = "dps"
    REL = "rel"
    REN = "ren"
    REX = "rex"
    DOORBELL = "doorbell"
