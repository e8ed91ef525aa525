from __future__ import annotations

import random
import time
from typing import Callable, List, Sequence, Tuple

from websockets.exceptions import ConnectionClosedOK

from threecard.cards import Card, Deck, parse_cards
from threecard.models import PlayerAction
from threecard.protocol import GameResult, InitialBet, PlayerActionMessage
from threecard.session import GameSession


def hand(*labels: str) -> List[Card]:
    return parse_cards(labels)


class StackedDeck(Deck):
    """Deck that always deals ``top`` first (player cards, then dealer cards)."""

    def __init__(self, top: Sequence[Card]) -> None:
        self.top = list(top)
        super().__init__(rng=random.Random(0))

    def shuffle(self) -> None:
        super().shuffle()
        rest = [card for card in self._cards if card not in self.top]
        self._cards = self.top + rest


def create_session(player: Sequence[str], dealer: Sequence[str], client_id: int = 1) -> GameSession:
    """Session whose every hand deals the given player and dealer cards."""
    return GameSession(client_id, deck=StackedDeck(parse_cards(list(player) + list(dealer))))


def play_hand(
    session: GameSession,
    ante: int = 10,
    pair_plus: int = 0,
    action: PlayerAction = PlayerAction.PLAY,
) -> GameResult:
    dealt = session.handle(InitialBet(ante_bet=ante, pair_plus_bet=pair_plus))
    assert dealt.has_reply, dealt
    result = session.handle(
        PlayerActionMessage(
            player_action=action,
            ante_bet=ante,
            pair_plus_bet=pair_plus,
            play_bet=ante if action == PlayerAction.PLAY else 0,
            player_cards=dealt.reply.player_cards,  # type: ignore[union-attr]
            dealer_cards=dealt.reply.dealer_cards,  # type: ignore[union-attr]
        )
    )
    assert result.has_reply, result
    assert isinstance(result.reply, GameResult)
    return result.reply


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeWebSocket:
    """Stands in for a ServerConnection: replays ``frames`` and records sends."""

    remote_address: Tuple[str, int] = ("127.0.0.1", 0)

    def __init__(self, frames: Sequence[str] = ()) -> None:
        self.frames = list(frames)
        self.sent: List[str] = []
        self.closed = False

    def recv(self) -> str:
        if self.closed or not self.frames:
            raise ConnectionClosedOK(None, None)
        return self.frames.pop(0)

    def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent.append(message)

    def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
