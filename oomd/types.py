"""Core value types shared across the daemon."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import timedelta

# Process exit status used when the daemon hits an unrecoverable state.
EXIT_CANT_RECOVER = 3


class ResourceType(enum.Enum):
    """Kind of resource a pressure reading refers to."""

    MEMORY = enum.auto()
    IO = enum.auto()


class DeviceType(enum.Enum):
    """Kind of block device."""

    HDD = enum.auto()
    SSD = enum.auto()


@dataclass
class DeviceIOStat:
    """Per-device counters from io.stat."""

    dev_id: str = ""
    rbytes: int = 0
    wbytes: int = 0
    rios: int = 0
    wios: int = 0
    dbytes: int = 0
    dios: int = 0


IOStat = list[DeviceIOStat]


@dataclass
class IOCostCoeffs:
    """Coefficients of the io cost model."""

    read_iops: float = 0.0
    readbw: float = 0.0
    write_iops: float = 0.0
    writebw: float = 0.0
    trim_iops: float = 0.0
    trimbw: float = 0.0


@dataclass
class ResourcePressure:
    """Pressure averages over 10, 60 and 300 seconds plus total stall time."""

    sec_10: float = 0.0
    sec_60: float = 0.0
    sec_300: float = 0.0
    total: timedelta | None = None


@dataclass
class SystemContext:
    """System-wide memory and swap state."""

    swaptotal: int = 0
    swapused: int = 0
    swappiness: int = 0
    vmstat: dict[str, int] = field(default_factory=dict)
    # moving averages of the swap-out rate derived from vmstat["pswpout"]
    swapout_bps: float = 0.0
    swapout_bps_60: float = 0.0
    swapout_bps_300: float = 0.0


class KillPreference(enum.IntEnum):
    """How strongly a cgroup should be preferred as a kill target."""

    PREFER = 1
    NORMAL = 0
    AVOID = -1

    def __str__(self) -> str:
        return self.name

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


class LogSources(enum.IntFlag):
    """Log sources that a ruleset may silence."""

    ENGINE = 1 << 0
    PLUGINS = 1 << 1


class CoreStats(str, enum.Enum):
    """Keys of the statistics maintained by the core."""

    KILLS = "oomd.kills"
    NUM_DROP_IN_ADDS = "oomd.dropin.added"
    NUM_DROP_IN_FIRED = "oomd.dropin.fired"

    def __str__(self) -> str:
        return self.value