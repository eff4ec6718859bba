"""
Tool: Context Awareness
Purpose: Read device signals and reduce them to a ContextSnapshot

The engine never caches context; it asks a ContextProvider on every
suggestion. Providers may be slow (device APIs, calendar lookups), so
the engine goes through fetch_context(), which bounds the wait and
degrades to a neutral snapshot.

Derived signals (SignalContextProvider):
    is_commuting: moving faster than 5 m/s (~18 km/h)
    is_deep_work_possible: battery above 20% or charging, on wifi,
        not in a meeting, not commuting

Usage:
    provider = SignalContextProvider.from_config(
        load_config(), battery=read_battery, network=read_network
    )
    snapshot = await fetch_context(provider, timeout=2.0)
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from brio.logging_config import get_logger
from brio.planning.config import PlanningConfig
from brio.planning.models import ContextSnapshot

logger = get_logger(__name__)

COMMUTING_SPEED_MPS = 5.0
DEEP_WORK_MIN_BATTERY = 0.2

SignalReader = Callable[[], Awaitable[Any]]


class ContextProvider(ABC):
    @abstractmethod
    async def get_current_context(self) -> ContextSnapshot:
        """Return the current context. Raise DataUnavailable on failure."""


class StaticContextProvider(ContextProvider):
    """Always returns the same snapshot."""

    def __init__(self, snapshot: ContextSnapshot | None = None):
        self.snapshot = snapshot or ContextSnapshot.neutral()

    async def get_current_context(self) -> ContextSnapshot:
        return self.snapshot


@dataclass
class DeviceSignals:
    """Raw readings before derivation."""

    battery_level: float = 1.0
    is_charging: bool = False
    network_type: str = "unknown"  # 'wifi' | 'cellular' | 'none' | 'unknown'
    speed: float = 0.0  # m/s
    is_meeting_now: bool = False


def _battery_reading(value: Any) -> tuple[float, bool]:
    if isinstance(value, (tuple, list)):
        level, charging = value
    else:
        level, charging = value, False
    level = float(level)
    if not 0.0 <= level <= 1.0:
        raise ValueError(f"battery level {level} outside 0-1")
    return level, bool(charging)


def _network_reading(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"network type must be a string, got {type(value).__name__}")
    return value.lower()


def _speed_reading(value: Any) -> float:
    if value is None:
        return 0.0
    speed = float(value)
    if not speed >= 0.0:
        raise ValueError(f"speed {speed} is negative or not a number")
    return speed


def derive_snapshot(signals: DeviceSignals) -> ContextSnapshot:
    is_commuting = signals.speed > COMMUTING_SPEED_MPS
    is_deep_work_possible = (
        (signals.battery_level > DEEP_WORK_MIN_BATTERY or signals.is_charging)
        and signals.network_type == "wifi"
        and not signals.is_meeting_now
        and not is_commuting
    )
    return ContextSnapshot(
        is_deep_work_possible=is_deep_work_possible,
        battery_level=signals.battery_level,
        is_charging=signals.is_charging,
        is_commuting=is_commuting,
    )


class SignalContextProvider(ContextProvider):
    """
    Builds a snapshot from injectable async signal readers.

    Readers:
        battery: returns (level 0-1, is_charging)
        network: returns the network type string
        location: returns current speed in m/s, or None when unknown
        calendar: returns True while an event is in progress

    A missing reader, or one that raises or returns a malformed value,
    contributes its neutral default, so one broken sensor never hides the
    others. A battery reader may also return a bare level (not charging).
    """

    def __init__(
        self,
        battery: SignalReader | None = None,
        network: SignalReader | None = None,
        location: SignalReader | None = None,
        calendar: SignalReader | None = None,
        cache_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.battery = battery
        self.network = network
        self.location = location
        self.calendar = calendar
        self.cache_seconds = cache_seconds
        self._clock = clock
        self._last: ContextSnapshot | None = None
        self._last_read = 0.0

    async def get_current_context(self, force_refresh: bool = False) -> ContextSnapshot:
        now = self._clock()
        if not force_refresh and self._last and now - self._last_read < self.cache_seconds:
            return self._last

        (level, charging), network, speed, meeting = await asyncio.gather(
            self._read("battery", self.battery, _battery_reading, (1.0, False)),
            self._read("network", self.network, _network_reading, "unknown"),
            self._read("location", self.location, _speed_reading, 0.0),
            self._read("calendar", self.calendar, bool, False),
        )

        snapshot = derive_snapshot(
            DeviceSignals(
                battery_level=level,
                is_charging=charging,
                network_type=network,
                speed=speed,
                is_meeting_now=meeting,
            )
        )
        self._last = snapshot
        self._last_read = now
        return snapshot

    @classmethod
    def from_config(cls, config: PlanningConfig, **kwargs: Any) -> "SignalContextProvider":
        """Provider whose snapshot cache follows ``context_cache_seconds``.

        Remaining keyword arguments (readers, clock) go to the constructor.
        """
        return cls(cache_seconds=config.context_cache_seconds, **kwargs)

    async def _read(
        self,
        name: str,
        reader: SignalReader | None,
        normalise: Callable[[Any], Any],
        default: Any,
    ) -> Any:
        if reader is None:
            return default
        try:
            return normalise(await reader())
        except Exception as e:
            # Device APIs raise whatever their platform binding raises
            logger.warning("context_signal_failed", signal=name, error=str(e))
            return default


async def fetch_context(provider: ContextProvider, timeout: float) -> ContextSnapshot:
    """Await the provider for at most ``timeout`` seconds; neutral on failure."""
    try:
        return await asyncio.wait_for(provider.get_current_context(), timeout)
    except TimeoutError:
        logger.warning("context_fetch_timeout", timeout=timeout)
    except Exception as e:
        # DataUnavailable, or whatever a platform binding raises
        logger.warning("context_fetch_failed", error=str(e), error_type=type(e).__name__)
    return ContextSnapshot.neutral()


__all__ = [
    "ContextProvider",
    "DeviceSignals",
    "SignalContextProvider",
    "StaticContextProvider",
    "derive_snapshot",
    "fetch_context",
]
