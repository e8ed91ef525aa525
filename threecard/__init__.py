"""Three Card Poker primitives shared by the host and its clients."""

from .cards import Card, Deck, Rank, Suit, cards_to_labels, parse_cards, parse_label
from .evaluator import (
    HandCategory,
    Outcome,
    PAIR_PLUS_MULTIPLIERS,
    classify,
    compare,
    dealer_qualifies,
    side_payout,
)
from .models import Disposition, MessageType, PlayerAction, ServerConfig, SessionState, TableConfig
from .protocol import ProtocolError, decode, encode
from .session import GameSession, SessionResult

__all__ = [
    "Card",
    "Deck",
    "Rank",
    "Suit",
    "cards_to_labels",
    "parse_cards",
    "parse_label",
    "HandCategory",
    "Outcome",
    "PAIR_PLUS_MULTIPLIERS",
    "classify",
    "compare",
    "dealer_qualifies",
    "side_payout",
    "Disposition",
    "MessageType",
    "PlayerAction",
    "ServerConfig",
    "SessionState",
    "TableConfig",
    "ProtocolError",
    "decode",
    "encode",
    "GameSession",
    "SessionResult",
]
