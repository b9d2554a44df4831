"""Unit tests for the in-memory bet registry."""

from datetime import timedelta

import pytest

from blackbook.betting import (
    BetNotFound,
    BetRegistry,
    BetStatus,
    DuplicateId,
    InvalidTransition,
)

from tests.fakes import T0, make_bet


def test_insert_and_get() -> None:
    registry = BetRegistry()
    bet = make_bet()
    registry.insert(bet)

    assert registry.get(bet.id) is bet
    assert bet.id in registry
    assert len(registry) == 1


def test_duplicate_id_rejected() -> None:
    registry = BetRegistry()
    bet = make_bet()
    registry.insert(bet)

    with pytest.raises(DuplicateId):
        registry.insert(bet)


def test_removed_id_is_never_reissued() -> None:
    registry = BetRegistry()
    bet = make_bet()
    registry.insert(bet)
    registry.remove(bet.id)

    with pytest.raises(DuplicateId):
        registry.insert(make_bet(id=bet.id))


def test_get_unknown_raises_not_found() -> None:
    with pytest.raises(BetNotFound, match="bet_missing"):
        BetRegistry().get("bet_missing")


def test_update_terminal_once() -> None:
    registry = BetRegistry()
    bet = make_bet()
    registry.insert(bet)

    settled = registry.update_terminal(bet.id, 50001.0, BetStatus.WON, settled_at=T0)
    assert settled.status is BetStatus.WON
    assert settled.end_price == 50001.0
    assert registry.get(bet.id) is settled

    with pytest.raises(InvalidTransition):
        registry.update_terminal(bet.id, 49000.0, BetStatus.LOST)
    assert registry.get(bet.id) is settled


def test_update_terminal_requires_terminal_status() -> None:
    registry = BetRegistry()
    bet = make_bet()
    registry.insert(bet)

    with pytest.raises(InvalidTransition):
        registry.update_terminal(bet.id, 50001.0, BetStatus.ACTIVE)
    assert registry.get(bet.id).is_active


def test_active_ids_is_a_point_in_time_snapshot() -> None:
    registry = BetRegistry()
    bets = [make_bet() for _ in range(3)]
    for bet in bets:
        registry.insert(bet)

    ids = registry.active_ids()
    registry.update_terminal(bets[0].id, 1.0, BetStatus.LOST)
    registry.remove(bets[1].id)
    registry.insert(make_bet())

    assert list(ids) == [b.id for b in bets]
    assert list(ids) == list(ids)
    assert len(registry.active_ids()) == 2


def test_history_newest_first() -> None:
    registry = BetRegistry()
    older = make_bet()
    newer = make_bet(start_time=T0 + timedelta(seconds=5))
    registry.insert(older)
    registry.insert(newer)

    assert [b.id for b in registry.history()] == [newer.id, older.id]
    assert [b.id for b in registry.history(limit=1)] == [newer.id]


def test_settled_bets_evicted_beyond_limit() -> None:
    registry = BetRegistry(settled_history_limit=2)
    bets = [make_bet() for _ in range(3)]
    active = make_bet()
    for bet in [*bets, active]:
        registry.insert(bet)
    for bet in bets:
        registry.update_terminal(bet.id, 1.0, BetStatus.LOST)

    assert bets[0].id not in registry
    assert bets[1].id in registry and bets[2].id in registry
    assert active.id in registry


def test_settled_history_limit_must_keep_one() -> None:
    with pytest.raises(ValueError):
        BetRegistry(settled_history_limit=0)

    registry = BetRegistry(settled_history_limit=1)
    bet = make_bet()
    registry.insert(bet)
    registry.update_terminal(bet.id, 1.0, BetStatus.LOST)

    with pytest.raises(InvalidTransition):
        registry.update_terminal(bet.id, 2.0, BetStatus.WON)
