#!/usr/bin/env python3
"""Plays a few hands of Three Card Poker against a running host.

Usage:
    python scripts/auto_client.py --url ws://localhost:5555 --hands 5 --ante 10 --pair-plus 5
"""

from __future__ import annotations

import argparse
import logging
from typing import List

from websockets.sync.client import ClientConnection, connect

from threecard.cards import Card
from threecard.evaluator import HAND_NAMES, HandCategory, classify
from threecard.models import PlayerAction
from threecard.protocol import (
    CardsDealt,
    Disconnect,
    GameResult,
    InitialBet,
    PlayAgain,
    PlayerActionMessage,
    decode,
    encode,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
LOGGER = logging.getLogger("auto_client")

STRATEGIES = ("always-play", "always-fold", "queen-six-four")


def should_play(strategy: str, cards: List[Card]) -> bool:
    if strategy == "always-play":
        return True
    if strategy == "always-fold":
        return False
    # Common house-edge strategy: play Q-6-4 or better.
    if classify(cards) > HandCategory.HIGH_CARD:
        return True
    values = sorted((card.rank.high_value for card in cards), reverse=True)
    return values >= [12, 6, 4]


class AutoClient:
    def __init__(self, url: str, strategy: str) -> None:
        self.url = url
        self.strategy = strategy
        self.total_winnings = 0

    def run(self, hands: int, ante: int, pair_plus: int) -> int:
        with connect(self.url) as ws:
            LOGGER.info("Connected to %s", self.url)
            for hand in range(1, hands + 1):
                self.play_hand(ws, hand, ante, pair_plus)
                if hand < hands:
                    ws.send(encode(PlayAgain()))
            ws.send(encode(Disconnect()))
        LOGGER.info("Disconnected. Final winnings: %s", self.total_winnings)
        return self.total_winnings

    def play_hand(self, ws: ClientConnection, hand: int, ante: int, pair_plus: int) -> None:
        LOGGER.info("HAND #%s | total=%s | ante=%s pair_plus=%s", hand, self.total_winnings, ante, pair_plus)
        ws.send(encode(InitialBet(ante_bet=ante, pair_plus_bet=pair_plus)))
        dealt = decode(ws.recv())
        if not isinstance(dealt, CardsDealt):
            raise RuntimeError(f"Expected CARDS_DEALT, got {dealt!r}")
        LOGGER.info("  cards: %s", " ".join(card.label for card in dealt.player_cards))

        play = should_play(self.strategy, dealt.player_cards)
        ws.send(
            encode(
                PlayerActionMessage(
                    player_action=PlayerAction.PLAY if play else PlayerAction.FOLD,
                    ante_bet=ante,
                    pair_plus_bet=pair_plus,
                    play_bet=ante if play else 0,
                    player_cards=dealt.player_cards,
                    dealer_cards=dealt.dealer_cards,
                )
            )
        )
        result = decode(ws.recv())
        if not isinstance(result, GameResult):
            raise RuntimeError(f"Expected GAME_RESULT, got {result!r}")
        self.total_winnings = result.total_winnings

        LOGGER.info("  action: %s", "PLAY" if play else "FOLD")
        LOGGER.info("  dealer: %s", " ".join(card.label for card in result.dealer_cards))
        if result.hand_rank_player is not None and result.hand_rank_dealer is not None:
            LOGGER.info(
                "  %s vs dealer %s (qualified=%s)",
                HAND_NAMES[HandCategory(result.hand_rank_player)],
                HAND_NAMES[HandCategory(result.hand_rank_dealer)],
                result.dealer_qualified,
            )
        LOGGER.info("  %s", result.status_message)
        if pair_plus:
            LOGGER.info("  pair plus payout: %s", result.pair_plus_payout)
        LOGGER.info("  delta=%s total=%s", result.delta_winnings, result.total_winnings)


def main() -> None:
    parser = argparse.ArgumentParser(description="Automated Three Card Poker client")
    parser.add_argument("--url", default="ws://localhost:5555")
    parser.add_argument("--hands", type=int, default=5)
    parser.add_argument("--ante", type=int, default=10)
    parser.add_argument("--pair-plus", type=int, default=0)
    parser.add_argument("--strategy", choices=STRATEGIES, default="queen-six-four")
    args = parser.parse_args()

    AutoClient(args.url, args.strategy).run(args.hands, args.ante, args.pair_plus)


if __name__ == "__main__":
    main()
