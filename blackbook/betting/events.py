"""Upward notifications for the presentation layer."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .models import Bet

logger = logging.getLogger(__name__)

BetListener = Callable[[Bet], object]


class BetEventHub:
    """Fan-out of ``bet_created`` / ``bet_settled`` to registered callbacks.

    Listener failures are logged and never reach the engine.
    """

    def __init__(self) -> None:
        self._created: list[BetListener] = []
        self._settled: list[BetListener] = []

    def on_bet_created(self, listener: BetListener) -> None:
        self._created.append(listener)

    def on_bet_settled(self, listener: BetListener) -> None:
        self._settled.append(listener)

    def bet_created(self, bet: Bet) -> None:
        self._dispatch("bet_created", self._created, bet)

    def bet_settled(self, bet: Bet) -> None:
        self._dispatch("bet_settled", self._settled, bet)

    @staticmethod
    def _dispatch(name: str, listeners: list[BetListener], bet: Bet) -> None:
        for listener in list(listeners):
            try:
                listener(bet)
            except Exception as e:
                logger.error(f"{name} listener failed for {bet.id}: {e}")
