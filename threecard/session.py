from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .cards import Card, Deck
from .evaluator import HAND_SIZE, Outcome, classify, compare, dealer_qualifies, describe_hand, side_payout
from .models import Disposition, PlayerAction, SessionState, TableConfig
from .protocol import (
    CardsDealt,
    Disconnect,
    GameResult,
    InitialBet,
    Message,
    PlayAgain,
    PlayerActionMessage,
    UnknownMessage,
)

LOGGER = logging.getLogger("threecard.session")

# GameSession is the per-connection game. It never touches sockets: the host
# feeds it decoded messages and sends whatever reply it hands back.


@dataclass
class SessionResult:
    disposition: Disposition
    reply: Optional[Message] = None
    reason: Optional[str] = None

    @property
    def has_reply(self) -> bool:
        return self.disposition == Disposition.REPLY and self.reply is not None


@dataclass
class Wager:
    ante: int
    pair_plus: int


class GameSession:
    """One player's table: private deck, running total and the open hand."""

    def __init__(self, client_id: int, table: Optional[TableConfig] = None, deck: Optional[Deck] = None) -> None:
        self.client_id = client_id
        self.table = table or TableConfig()
        self.deck = deck or Deck()
        self.state = SessionState.AWAITING_BET
        self.hand_number = 0
        self.total_winnings = 0
        self.player_hand: List[Card] = []
        self.dealer_hand: List[Card] = []
        self.wager: Optional[Wager] = None

    @property
    def closed(self) -> bool:
        return self.state == SessionState.DISCONNECTED

    def handle(self, message: Union[Message, UnknownMessage]) -> SessionResult:
        if self.closed:
            return SessionResult(Disposition.IGNORED, reason="SESSION_CLOSED")
        if isinstance(message, InitialBet):
            return self._on_initial_bet(message)
        if isinstance(message, PlayerActionMessage):
            return self._on_player_action(message)
        if isinstance(message, PlayAgain):
            LOGGER.info("Client %s ready for another hand", self.client_id)
            return SessionResult(Disposition.ACKNOWLEDGED)
        if isinstance(message, Disconnect):
            self.close()
            return SessionResult(Disposition.DISCONNECT)
        if isinstance(message, UnknownMessage):
            LOGGER.warning("Client %s: unknown message type %r", self.client_id, message.type_name)
        else:
            LOGGER.warning("Client %s: unexpected %s from client", self.client_id, type(message).__name__)
        return SessionResult(Disposition.IGNORED, reason="UNKNOWN_TYPE")

    def close(self) -> None:
        if self.closed:
            return
        self.state = SessionState.DISCONNECTED
        self.player_hand = []
        self.dealer_hand = []
        self.wager = None
        LOGGER.info("Client %s session closed; total winnings %s", self.client_id, self.total_winnings)

    # Betting ---------------------------------------------------------

    def _on_initial_bet(self, message: InitialBet) -> SessionResult:
        if self.state != SessionState.AWAITING_BET:
            return self._out_of_state(message)
        if not self.table.ante_ok(message.ante_bet):
            return self._reject("ANTE_OUT_OF_RANGE", "Invalid ante bet: %s", message.ante_bet)
        if not self.table.pair_plus_ok(message.pair_plus_bet):
            return self._reject("PAIR_PLUS_OUT_OF_RANGE", "Invalid pair plus bet: %s", message.pair_plus_bet)

        self.hand_number += 1
        self.deck.reset()
        self.player_hand = self.deck.deal(HAND_SIZE)
        self.dealer_hand = self.deck.deal(HAND_SIZE)
        self.wager = Wager(ante=message.ante_bet, pair_plus=message.pair_plus_bet)
        self.state = SessionState.AWAITING_ACTION
        LOGGER.info(
            "Client %s hand #%s: ante=%s pair_plus=%s",
            self.client_id,
            self.hand_number,
            message.ante_bet,
            message.pair_plus_bet,
        )
        reply = CardsDealt(
            player_cards=list(self.player_hand),
            dealer_cards=list(self.dealer_hand),
            ante_bet=message.ante_bet,
            pair_plus_bet=message.pair_plus_bet,
            client_id=self.client_id,
            hand_number=self.hand_number,
            dealer_cards_hidden=True,
        )
        return SessionResult(Disposition.REPLY, reply=reply)

    # Settlement ------------------------------------------------------

    def _on_player_action(self, message: PlayerActionMessage) -> SessionResult:
        if self.state != SessionState.AWAITING_ACTION or self.wager is None:
            return self._out_of_state(message)
        if message.player_action is None:
            return self._reject("ACTION_REQUIRED", "No player action specified")
        wager = self.wager
        if message.player_action == PlayerAction.PLAY and message.play_bet != wager.ante:
            return self._reject(
                "PLAY_BET_MISMATCH",
                "Play bet (%s) must equal ante (%s)",
                message.play_bet,
                wager.ante,
            )
        self._warn_on_echo_mismatch(message)

        if message.player_action == PlayerAction.FOLD:
            result = self._settle_fold(wager)
        else:
            result = self._settle_play(wager, message.play_bet)

        self.total_winnings += result.delta_winnings
        result.total_winnings = self.total_winnings
        LOGGER.info(
            "Client %s hand #%s: delta=%s total=%s",
            self.client_id,
            self.hand_number,
            result.delta_winnings,
            self.total_winnings,
        )
        self.wager = None
        self.state = SessionState.AWAITING_BET
        return SessionResult(Disposition.REPLY, reply=result)

    def _settle_fold(self, wager: Wager) -> GameResult:
        LOGGER.info("Client %s hand #%s: folded", self.client_id, self.hand_number)
        return self._result(
            delta=-(wager.ante + wager.pair_plus),
            status="Player folded. Lost Ante and Pair Plus.",
        )

    def _settle_play(self, wager: Wager, play_bet: int) -> GameResult:
        player_category = classify(self.player_hand)
        dealer_category = classify(self.dealer_hand)
        qualified = dealer_qualifies(self.dealer_hand)

        if not qualified:
            ante_play_delta = 0
            ante_play_payout = play_bet
            status = "Dealer not qualified. Play bet returned. Ante pushes."
        else:
            outcome = compare(self.dealer_hand, self.player_hand)
            if outcome == Outcome.DEALER_WINS:
                ante_play_delta = -(wager.ante + play_bet)
                status = "Dealer wins. Lost Ante and Play."
            elif outcome == Outcome.PLAYER_WINS:
                ante_play_delta = wager.ante + play_bet
                status = "Player wins! Paid 1:1 on Ante and Play."
            else:
                ante_play_delta = 0
                status = "Tie. Ante and Play push."
            ante_play_payout = ante_play_delta

        pair_plus_payout = side_payout(self.player_hand, wager.pair_plus)
        pair_plus_delta = 0
        if wager.pair_plus > 0:
            pair_plus_delta = pair_plus_payout - wager.pair_plus
            LOGGER.info(
                "Client %s hand #%s: pair plus %s (%s) net %s",
                self.client_id,
                self.hand_number,
                "won" if pair_plus_payout else "lost",
                describe_hand(self.player_hand),
                pair_plus_delta,
            )

        LOGGER.info(
            "Client %s hand #%s: %s vs dealer %s, qualified=%s",
            self.client_id,
            self.hand_number,
            describe_hand(self.player_hand),
            describe_hand(self.dealer_hand),
            qualified,
        )
        return self._result(
            delta=ante_play_delta + pair_plus_delta,
            status=status,
            dealer_qualified=qualified,
            hand_rank_player=int(player_category),
            hand_rank_dealer=int(dealer_category),
            pair_plus_payout=pair_plus_payout,
            ante_play_payout=ante_play_payout,
        )

    def _result(self, delta: int, status: str, **fields: object) -> GameResult:
        return GameResult(
            player_cards=list(self.player_hand),
            dealer_cards=list(self.dealer_hand),
            delta_winnings=delta,
            total_winnings=self.total_winnings,
            status_message=status,
            client_id=self.client_id,
            hand_number=self.hand_number,
            dealer_cards_hidden=False,
            **fields,  # type: ignore[arg-type]
        )

    # Helpers ---------------------------------------------------------

    def _warn_on_echo_mismatch(self, message: PlayerActionMessage) -> None:
        wager = self.wager
        assert wager is not None
        if message.ante_bet != wager.ante or message.pair_plus_bet != wager.pair_plus:
            LOGGER.warning(
                "Client %s: echoed bets ante=%s pair_plus=%s differ from placed ante=%s pair_plus=%s",
                self.client_id,
                message.ante_bet,
                message.pair_plus_bet,
                wager.ante,
                wager.pair_plus,
            )
        if message.player_cards and message.player_cards != self.player_hand:
            LOGGER.warning("Client %s: echoed player cards differ from the dealt hand", self.client_id)
        if message.dealer_cards and message.dealer_cards != self.dealer_hand:
            LOGGER.warning("Client %s: echoed dealer cards differ from the dealt hand", self.client_id)

    def _out_of_state(self, message: object) -> SessionResult:
        LOGGER.warning(
            "Client %s: %s ignored in state %s",
            self.client_id,
            type(message).__name__,
            self.state.value,
        )
        return SessionResult(Disposition.IGNORED, reason="OUT_OF_STATE")

    def _reject(self, reason: str, fmt: str, *args: object) -> SessionResult:
        # No reply goes out, so the client keeps waiting on this hand.
        LOGGER.warning("Client %s: " + fmt + " [%s]", self.client_id, *args, reason)
        return SessionResult(Disposition.REJECTED, reason=reason)
