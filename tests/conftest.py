"""Shared fixtures for the betting core."""

from dataclasses import dataclass

import pytest

from blackbook.betting import (
    BetEventHub,
    BetLifecycleEngine,
    BetRegistry,
    PriceFeed,
)

from tests.fakes import FakeClock, RecordingLedger, StaticPriceSource


@dataclass
class Core:
    clock: FakeClock
    source: StaticPriceSource
    ledger: RecordingLedger
    feed: PriceFeed
    registry: BetRegistry
    events: BetEventHub
    engine: BetLifecycleEngine


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> StaticPriceSource:
    return StaticPriceSource()


@pytest.fixture
def ledger() -> RecordingLedger:
    return RecordingLedger({"alice": 1000.0, "bob": 5.0})


@pytest.fixture
def core(clock, source, ledger) -> Core:
    feed = PriceFeed(source, request_timeout=0.5, clock=clock)
    registry = BetRegistry(settled_history_limit=50)
    events = BetEventHub()
    engine = BetLifecycleEngine(
        registry,
        feed,
        ledger,
        events=events,
        ledger_timeout=0.5,
        clock=clock,
    )
    return Core(clock, source, ledger, feed, registry, events, engine)
