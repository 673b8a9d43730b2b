"""Values returned by :class:`tuyalink.Client` operations."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class EnergySource(str, enum.Enum):
    REAL = "real"
    """Readings came from the device's data points."""

    SIMULATED = "simulated"
    """The device reports no energy data points; values are random."""


@dataclass(frozen=True)
class Device:
    """A device on a linked account, as listed by the cloud."""

    id: str
    name: str
    category: str
    online: bool
    icon: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "online": self.online,
            "icon": self.icon,
        }


@dataclass(frozen=True)
class SwitchStatus:
    """Switch state plus the raw data points it was read from."""

    on: bool
    raw: list[dict[str, object]] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {"on": self.on, "raw": self.raw}


@dataclass(frozen=True)
class EnergySnapshot:
    power_w: float
    voltage_v: float
    current_a: float
    timestamp: int
    """Epoch milliseconds when the snapshot was derived."""

    source: EnergySource

    @property
    def simulated(self) -> bool:
        return self.source is EnergySource.SIMULATED

    def to_dict(self) -> dict[str, object]:
        return {
            "powerW": self.power_w,
            "voltageV": self.voltage_v,
            "currentA": self.current_a,
            "ts": self.timestamp,
        }
