"""Value objects exchanged with the regulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from .constants import PLACEHOLDER

# Display slot -> wire keys, first present key wins.
TELEMETRY_WIRE_KEYS: dict[str, tuple[str, ...]] = {
    "voltage": ("voltage",),
    "current": ("current",),
    "field_pwm": ("pwm", "field_pwm"),
    "alt_temp": ("alt_temp",),
    "batt_temp": ("batt_temp",),
    "rpm": ("rpm",),
    "stage": ("stage",),
    "can_status": ("can_status",),
    "last_can": ("last_can",),
    "bms_permission": ("bms_permission",),
}


def _display_text(value: Any) -> str:
    # Falsy readings such as 0 collapse into the placeholder as well.
    if not value:
        return PLACEHOLDER
    if isinstance(value, bool):
        return "true"
    return str(value)


@dataclass(frozen=True, slots=True)
class TelemetrySnapshot:
    """Latest telemetry reported by ``GET /status``."""

    voltage: Any = None
    current: Any = None
    field_pwm: Any = None
    alt_temp: Any = None
    batt_temp: Any = None
    rpm: Any = None
    stage: Any = None
    can_status: Any = None
    last_can_update: Any = None
    bms_permission: Optional[bool] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TelemetrySnapshot":
        if not isinstance(payload, Mapping):
            raise TypeError(f"status payload must be an object, got {type(payload).__name__}")

        def pick(slot: str) -> Any:
            for key in TELEMETRY_WIRE_KEYS[slot]:
                if key in payload:
                    return payload[key]
            return None

        permission = pick("bms_permission")
        return cls(
            voltage=pick("voltage"),
            current=pick("current"),
            field_pwm=pick("field_pwm"),
            alt_temp=pick("alt_temp"),
            batt_temp=pick("batt_temp"),
            rpm=pick("rpm"),
            stage=pick("stage"),
            can_status=pick("can_status"),
            last_can_update=pick("last_can"),
            bms_permission=None if permission is None else bool(permission),
        )

    def display_values(self) -> dict[str, str]:
        """Text for each telemetry display slot."""

        return {
            "voltage": _display_text(self.voltage),
            "current": _display_text(self.current),
            "field_pwm": _display_text(self.field_pwm),
            "alt_temp": _display_text(self.alt_temp),
            "batt_temp": _display_text(self.batt_temp),
            "rpm": _display_text(self.rpm),
            "stage": _display_text(self.stage),
            "can_status": _display_text(self.can_status),
            "last_can": _display_text(self.last_can_update),
            "bms_permission": "Yes" if self.bms_permission else "No",
        }


# Attribute name -> wire key for the persisted configuration.
CONFIG_WIRE_KEYS: dict[str, str] = {
    "target_voltage": "targetVoltage",
    "current_limit": "currentLimit",
    "float_voltage": "floatVoltage",
    "derate_temp": "derateTemp",
    "can_input": "canInput",
}


@dataclass(slots=True)
class DeviceConfig:
    """Regulator settings persisted by ``POST /config``.

    Numeric settings travel as text, exactly as typed by the operator.
    """

    target_voltage: str = "14.4"
    current_limit: str = "100"
    float_voltage: str = "13.6"
    derate_temp: str = "82"
    can_input: bool = True

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DeviceConfig":
        if not isinstance(payload, Mapping):
            raise TypeError(f"config payload must be an object, got {type(payload).__name__}")

        def text(key: str) -> str:
            value = payload.get(key)
            return str(value) if value else ""

        return cls(
            target_voltage=text("targetVoltage"),
            current_limit=text("currentLimit"),
            float_voltage=text("floatVoltage"),
            derate_temp=text("derateTemp"),
            can_input=payload.get("canInput") is True,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            wire_key: getattr(self, attr) for attr, wire_key in CONFIG_WIRE_KEYS.items()
        }


@dataclass(frozen=True, slots=True)
class NetworkCredentials:
    ssid: str = ""
    password: str = field(default="", repr=False)

    def to_payload(self) -> dict[str, str]:
        return {"wifiSSID": self.ssid, "wifiPassword": self.password}


@dataclass(frozen=True, slots=True)
class Confirmed:
    """Enable state acknowledged by the device."""

    value: bool


@dataclass(frozen=True, slots=True)
class Pending:
    """Optimistic enable state awaiting the device's answer."""

    optimistic: bool
    previous: bool


EnableState = Union[Confirmed, Pending]


def displayed_enable(state: EnableState) -> bool:
    if isinstance(state, Pending):
        return state.optimistic
    return state.value
