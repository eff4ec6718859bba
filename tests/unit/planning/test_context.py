"""Tests for brio/planning/context.py"""

import asyncio

import pytest

from brio.planning.config import PlanningConfig
from brio.planning.context import (
    DeviceSignals,
    SignalContextProvider,
    StaticContextProvider,
    derive_snapshot,
    fetch_context,
)
from brio.planning.errors import DataUnavailable
from brio.planning.models import ContextSnapshot


def returning(value):
    async def _reader():
        return value

    return _reader


def counting(value, calls):
    async def _reader():
        calls.append(1)
        return value

    return _reader


async def broken_reader():
    raise RuntimeError("sensor offline")


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


# ─────────────────────────────────────────────────────────────────────────────
# Derivation
# ─────────────────────────────────────────────────────────────────────────────


class TestDeriveSnapshot:
    def test_desk_on_wifi_allows_deep_work(self):
        snapshot = derive_snapshot(DeviceSignals(battery_level=0.8, network_type="wifi"))

        assert snapshot.is_deep_work_possible is True
        assert snapshot.is_commuting is False

    def test_low_battery_blocks_deep_work(self):
        snapshot = derive_snapshot(DeviceSignals(battery_level=0.15, network_type="wifi"))

        assert snapshot.is_deep_work_possible is False

    def test_low_battery_while_charging_allows_deep_work(self):
        snapshot = derive_snapshot(
            DeviceSignals(battery_level=0.15, is_charging=True, network_type="wifi")
        )

        assert snapshot.is_deep_work_possible is True

    def test_cellular_blocks_deep_work(self):
        snapshot = derive_snapshot(DeviceSignals(battery_level=0.9, network_type="cellular"))

        assert snapshot.is_deep_work_possible is False

    def test_meeting_blocks_deep_work(self):
        snapshot = derive_snapshot(
            DeviceSignals(battery_level=0.9, network_type="wifi", is_meeting_now=True)
        )

        assert snapshot.is_deep_work_possible is False

    def test_speed_threshold_is_exclusive(self):
        assert derive_snapshot(DeviceSignals(speed=5.0)).is_commuting is False
        assert derive_snapshot(DeviceSignals(speed=5.1)).is_commuting is True

    def test_commuting_blocks_deep_work(self):
        snapshot = derive_snapshot(DeviceSignals(battery_level=0.9, network_type="wifi", speed=12.0))

        assert snapshot.is_commuting is True
        assert snapshot.is_deep_work_possible is False


# ─────────────────────────────────────────────────────────────────────────────
# Providers
# ─────────────────────────────────────────────────────────────────────────────


class TestStaticContextProvider:
    @pytest.mark.asyncio
    async def test_defaults_to_neutral(self):
        assert await StaticContextProvider().get_current_context() == ContextSnapshot.neutral()

    @pytest.mark.asyncio
    async def test_returns_given_snapshot(self):
        snapshot = ContextSnapshot(is_commuting=True)

        assert await StaticContextProvider(snapshot).get_current_context() is snapshot


class TestSignalContextProvider:
    @pytest.mark.asyncio
    async def test_combines_readers(self):
        provider = SignalContextProvider(
            battery=returning((0.6, False)),
            network=returning("wifi"),
            location=returning(1.2),
            calendar=returning(False),
        )

        snapshot = await provider.get_current_context()

        assert snapshot == ContextSnapshot(
            is_deep_work_possible=True, battery_level=0.6, is_charging=False, is_commuting=False
        )

    @pytest.mark.asyncio
    async def test_missing_readers_use_defaults(self):
        snapshot = await SignalContextProvider().get_current_context()

        # Unknown network means no deep work
        assert snapshot.is_deep_work_possible is False
        assert snapshot.battery_level == 1.0
        assert snapshot.is_commuting is False

    @pytest.mark.asyncio
    async def test_unknown_speed_is_not_commuting(self):
        provider = SignalContextProvider(network=returning("wifi"), location=returning(None))

        snapshot = await provider.get_current_context()

        assert snapshot.is_commuting is False
        assert snapshot.is_deep_work_possible is True

    @pytest.mark.asyncio
    async def test_failing_reader_does_not_hide_others(self):
        provider = SignalContextProvider(
            battery=broken_reader,
            network=returning("wifi"),
            calendar=returning(True),
        )

        snapshot = await provider.get_current_context()

        assert snapshot.battery_level == 1.0
        # Calendar still read: in a meeting
        assert snapshot.is_deep_work_possible is False

    @pytest.mark.asyncio
    async def test_bare_battery_level_means_not_charging(self):
        provider = SignalContextProvider(battery=returning(0.5), network=returning("wifi"))

        snapshot = await provider.get_current_context()

        assert snapshot.battery_level == 0.5
        assert snapshot.is_charging is False
        assert snapshot.is_deep_work_possible is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reading",
        [None, "full", 1.7, -0.2, (0.5,), (0.5, True, "extra"), float("nan")],
    )
    async def test_malformed_battery_falls_back_alone(self, reading):
        provider = SignalContextProvider(
            battery=returning(reading),
            network=returning("wifi"),
            location=returning(12.0),
        )

        snapshot = await provider.get_current_context()

        assert snapshot.battery_level == 1.0
        # The other signals are still read
        assert snapshot.is_commuting is True

    @pytest.mark.asyncio
    async def test_malformed_network_and_speed_fall_back(self):
        provider = SignalContextProvider(
            battery=returning((0.9, True)),
            network=returning(42),
            location=returning("fast"),
        )

        snapshot = await provider.get_current_context()

        assert snapshot.is_charging is True
        assert snapshot.is_commuting is False
        assert snapshot.is_deep_work_possible is False

    @pytest.mark.asyncio
    async def test_negative_speed_ignored(self):
        provider = SignalContextProvider(network=returning("WiFi"), location=returning(-3.0))

        snapshot = await provider.get_current_context()

        assert snapshot.is_commuting is False
        assert snapshot.is_deep_work_possible is True

    def test_from_config_uses_cache_window(self):
        config = PlanningConfig(context_cache_seconds=45)

        provider = SignalContextProvider.from_config(config, network=returning("wifi"))

        assert provider.cache_seconds == 45
        assert provider.battery is None

    @pytest.mark.asyncio
    async def test_from_config_cache_window_applies(self):
        calls = []
        clock = FakeClock()
        provider = SignalContextProvider.from_config(
            PlanningConfig(context_cache_seconds=10), network=counting("wifi", calls), clock=clock
        )

        await provider.get_current_context()
        clock.now += 11
        await provider.get_current_context()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_caches_within_window(self):
        calls = []
        clock = FakeClock()
        provider = SignalContextProvider(network=counting("wifi", calls), cache_seconds=300, clock=clock)

        await provider.get_current_context()
        clock.now += 299
        await provider.get_current_context()

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_refreshes_after_window(self):
        calls = []
        clock = FakeClock()
        provider = SignalContextProvider(network=counting("wifi", calls), cache_seconds=300, clock=clock)

        await provider.get_current_context()
        clock.now += 300
        await provider.get_current_context()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self):
        calls = []
        provider = SignalContextProvider(network=counting("wifi", calls), clock=FakeClock())

        await provider.get_current_context()
        await provider.get_current_context(force_refresh=True)

        assert len(calls) == 2


# ─────────────────────────────────────────────────────────────────────────────
# Bounded fetch
# ─────────────────────────────────────────────────────────────────────────────


class SleepyProvider(StaticContextProvider):
    async def get_current_context(self):
        await asyncio.sleep(5)
        return ContextSnapshot(is_deep_work_possible=True)


class UnavailableProvider(StaticContextProvider):
    async def get_current_context(self):
        raise DataUnavailable("read_context", "location permission denied")


class CrashingProvider(StaticContextProvider):
    async def get_current_context(self):
        raise RuntimeError("device API crashed")


class TestFetchContext:
    @pytest.mark.asyncio
    async def test_returns_provider_snapshot(self):
        snapshot = ContextSnapshot(is_deep_work_possible=True)

        assert await fetch_context(StaticContextProvider(snapshot), timeout=1.0) == snapshot

    @pytest.mark.asyncio
    async def test_timeout_gives_neutral(self):
        snapshot = await fetch_context(SleepyProvider(), timeout=0.01)

        assert snapshot == ContextSnapshot.neutral()

    @pytest.mark.asyncio
    async def test_data_unavailable_gives_neutral(self):
        snapshot = await fetch_context(UnavailableProvider(), timeout=1.0)

        assert snapshot == ContextSnapshot.neutral()

    @pytest.mark.asyncio
    async def test_unexpected_provider_error_gives_neutral(self):
        snapshot = await fetch_context(CrashingProvider(), timeout=1.0)

        assert snapshot == ContextSnapshot.neutral()
