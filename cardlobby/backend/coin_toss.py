"""Two-party coin toss that decides who opens a game.

Each lobby has at most one open negotiation. The first choice creates it,
a repeated choice from the same player overwrites theirs, and the second
distinct player's choice resolves the toss, broadcasts the outcome and
discards the negotiation so the next choice starts fresh.
"""

from __future__ import annotations

import logging
import random
from typing import Any

from .errors import InvalidArgumentError
from .hub import TopicHub
from .locks import KeyedLocks
from .models import COIN_SIDES, CoinTossNegotiation, coin_toss_topic
from .state import build_coin_toss_state

logger = logging.getLogger(__name__)

PLAYERS_PER_TOSS = 2


def pick_starter(choices: dict[int, str], toss_result: str) -> int:
    """Return the player whose side matches ``toss_result``.

    When both or neither player picked the winning side the lowest player id
    among the candidates starts.
    """
    winners = [player_id for player_id, side in choices.items() if side == toss_result]
    candidates = winners if len(winners) == 1 else list(choices)
    return min(candidates)


class CoinTossCoordinator:
    def __init__(
        self,
        hub: TopicHub,
        rng: random.Random | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._hub = hub
        self._rng = rng if rng is not None else random.SystemRandom()
        self._locks = locks if locks is not None else KeyedLocks()
        self._negotiations: dict[int, CoinTossNegotiation] = {}

    def pending(self, lobby_id: int) -> dict[int, str] | None:
        negotiation = self._negotiations.get(lobby_id)
        if negotiation is None:
            return None
        return dict(negotiation.choices)

    def discard(self, lobby_id: int) -> None:
        self._negotiations.pop(lobby_id, None)

    async def submit_choice(self, lobby_id: int, player_id: int, side: str) -> dict[str, Any]:
        side = str(side).lower()
        if side not in COIN_SIDES:
            raise InvalidArgumentError(f"Side must be one of {', '.join(COIN_SIDES)}")

        async with self._locks.hold(lobby_id):
            negotiation = self._negotiations.get(lobby_id)
            if negotiation is None:
                negotiation = CoinTossNegotiation(lobby_id=lobby_id)
                self._negotiations[lobby_id] = negotiation
            negotiation.choices[player_id] = side

            if len(negotiation.choices) < PLAYERS_PER_TOSS:
                state = build_coin_toss_state(negotiation)
                await self._publish(lobby_id, state)
                return state

            toss_result = self._rng.choice(COIN_SIDES)
            starter = pick_starter(negotiation.choices, toss_result)
            state = build_coin_toss_state(negotiation, toss_result=toss_result, starter_player=starter)
            self._negotiations.pop(lobby_id, None)
            logger.info("Coin toss in lobby %s landed %s, player %s starts", lobby_id, toss_result, starter)

            await self._publish(lobby_id, state)
            return state

    async def _publish(self, lobby_id: int, state: dict[str, Any]) -> None:
        await self._hub.publish(coin_toss_topic(lobby_id), {"type": "coin_toss.state", "toss": state})
