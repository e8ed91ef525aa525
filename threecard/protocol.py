"""Wire contract between clients and the poker host.

Every message travels as one WebSocket text frame holding a JSON object:
``{"type": <MessageType>, "v": 1, "ts": <iso timestamp>, ...fields}``.
Cards are two-character labels such as ``"Ah"`` or ``"Tc"``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .cards import Card, cards_to_labels, parse_cards
from .models import MessageType, PlayerAction

LOGGER = logging.getLogger("threecard.protocol")

PROTOCOL_VERSION = 1


class ProtocolError(ValueError):
    def __init__(self, code: str, msg: str) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg


@dataclass
class InitialBet:
    ante_bet: int
    pair_plus_bet: int = 0

    type = MessageType.INITIAL_BET

    def to_payload(self) -> Dict[str, Any]:
        return {"ante_bet": self.ante_bet, "pair_plus_bet": self.pair_plus_bet}

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "InitialBet":
        return cls(
            ante_bet=_int_field(data, "ante_bet"),
            pair_plus_bet=_int_field(data, "pair_plus_bet"),
        )


@dataclass
class CardsDealt:
    player_cards: List[Card]
    dealer_cards: List[Card]
    ante_bet: int = 0
    pair_plus_bet: int = 0
    client_id: Optional[int] = None
    hand_number: Optional[int] = None
    dealer_cards_hidden: bool = True

    type = MessageType.CARDS_DEALT

    def to_payload(self) -> Dict[str, Any]:
        return {
            "player_cards": cards_to_labels(self.player_cards),
            "dealer_cards": cards_to_labels(self.dealer_cards),
            "dealer_cards_hidden": self.dealer_cards_hidden,
            "ante_bet": self.ante_bet,
            "pair_plus_bet": self.pair_plus_bet,
            "client_id": self.client_id,
            "hand_number": self.hand_number,
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "CardsDealt":
        return cls(
            player_cards=_cards_field(data, "player_cards"),
            dealer_cards=_cards_field(data, "dealer_cards"),
            ante_bet=_int_field(data, "ante_bet"),
            pair_plus_bet=_int_field(data, "pair_plus_bet"),
            client_id=_optional_int_field(data, "client_id"),
            hand_number=_optional_int_field(data, "hand_number"),
            dealer_cards_hidden=_bool_field(data, "dealer_cards_hidden", True),
        )


@dataclass
class PlayerActionMessage:
    player_action: Optional[PlayerAction]
    ante_bet: int = 0
    pair_plus_bet: int = 0
    play_bet: int = 0
    player_cards: List[Card] = field(default_factory=list)
    dealer_cards: List[Card] = field(default_factory=list)

    type = MessageType.PLAYER_ACTION

    def to_payload(self) -> Dict[str, Any]:
        return {
            "player_action": self.player_action.value if self.player_action else None,
            "ante_bet": self.ante_bet,
            "pair_plus_bet": self.pair_plus_bet,
            "play_bet": self.play_bet,
            "player_cards": cards_to_labels(self.player_cards),
            "dealer_cards": cards_to_labels(self.dealer_cards),
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "PlayerActionMessage":
        raw_action = data.get("player_action")
        action: Optional[PlayerAction] = None
        if raw_action is not None:
            try:
                action = PlayerAction(raw_action)
            except ValueError:
                raise ProtocolError("INVALID_ACTION", f"Unknown player action: {raw_action!r}") from None
        return cls(
            player_action=action,
            ante_bet=_int_field(data, "ante_bet"),
            pair_plus_bet=_int_field(data, "pair_plus_bet"),
            play_bet=_int_field(data, "play_bet"),
            player_cards=_cards_field(data, "player_cards"),
            dealer_cards=_cards_field(data, "dealer_cards"),
        )


@dataclass
class GameResult:
    player_cards: List[Card]
    dealer_cards: List[Card]
    delta_winnings: int
    total_winnings: int
    status_message: str = ""
    dealer_qualified: Optional[bool] = None
    hand_rank_player: Optional[int] = None
    hand_rank_dealer: Optional[int] = None
    pair_plus_payout: int = 0
    ante_play_payout: int = 0
    client_id: Optional[int] = None
    hand_number: Optional[int] = None
    dealer_cards_hidden: bool = False

    type = MessageType.GAME_RESULT

    def to_payload(self) -> Dict[str, Any]:
        return {
            "player_cards": cards_to_labels(self.player_cards),
            "dealer_cards": cards_to_labels(self.dealer_cards),
            "dealer_cards_hidden": self.dealer_cards_hidden,
            "dealer_qualified": self.dealer_qualified,
            "hand_rank_player": self.hand_rank_player,
            "hand_rank_dealer": self.hand_rank_dealer,
            "pair_plus_payout": self.pair_plus_payout,
            "ante_play_payout": self.ante_play_payout,
            "delta_winnings": self.delta_winnings,
            "total_winnings": self.total_winnings,
            "status_message": self.status_message,
            "client_id": self.client_id,
            "hand_number": self.hand_number,
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "GameResult":
        qualified = data.get("dealer_qualified")
        if qualified is not None and not isinstance(qualified, bool):
            raise ProtocolError("BAD_SCHEMA", "dealer_qualified must be a boolean")
        status = data.get("status_message") or ""
        if not isinstance(status, str):
            raise ProtocolError("BAD_SCHEMA", "status_message must be a string")
        return cls(
            player_cards=_cards_field(data, "player_cards"),
            dealer_cards=_cards_field(data, "dealer_cards"),
            delta_winnings=_int_field(data, "delta_winnings"),
            total_winnings=_int_field(data, "total_winnings"),
            status_message=status,
            dealer_qualified=qualified,
            hand_rank_player=_optional_int_field(data, "hand_rank_player"),
            hand_rank_dealer=_optional_int_field(data, "hand_rank_dealer"),
            pair_plus_payout=_int_field(data, "pair_plus_payout"),
            ante_play_payout=_int_field(data, "ante_play_payout"),
            client_id=_optional_int_field(data, "client_id"),
            hand_number=_optional_int_field(data, "hand_number"),
            dealer_cards_hidden=_bool_field(data, "dealer_cards_hidden", False),
        )


@dataclass
class PlayAgain:
    type = MessageType.PLAY_AGAIN

    def to_payload(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "PlayAgain":
        return cls()


@dataclass
class Disconnect:
    type = MessageType.DISCONNECT

    def to_payload(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "Disconnect":
        return cls()


@dataclass
class UnknownMessage:
    """Well-formed envelope carrying a type this host does not know."""

    type_name: str


Message = Union[InitialBet, CardsDealt, PlayerActionMessage, GameResult, PlayAgain, Disconnect]

MESSAGE_CLASSES = {
    MessageType.INITIAL_BET: InitialBet,
    MessageType.CARDS_DEALT: CardsDealt,
    MessageType.PLAYER_ACTION: PlayerActionMessage,
    MessageType.GAME_RESULT: GameResult,
    MessageType.PLAY_AGAIN: PlayAgain,
    MessageType.DISCONNECT: Disconnect,
}


def encode(message: Message) -> str:
    body: Dict[str, Any] = {
        "type": message.type.value,
        "v": PROTOCOL_VERSION,
        "ts": datetime.now(timezone.utc).isoformat(),
    }
    body.update(message.to_payload())
    return json.dumps(body)


def decode(raw: Union[str, bytes]) -> Union[Message, UnknownMessage]:
    if not isinstance(raw, str):
        raise ProtocolError("BAD_FRAME", "Expected a text frame")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProtocolError("BAD_JSON", f"Invalid JSON: {exc.msg}") from None
    except RecursionError:
        raise ProtocolError("BAD_JSON", "Invalid JSON: nested too deeply") from None
    if not isinstance(data, dict):
        raise ProtocolError("BAD_SCHEMA", "Message must be a JSON object")

    type_name = data.get("type")
    if not isinstance(type_name, str) or not type_name:
        raise ProtocolError("BAD_SCHEMA", "type required")
    version = data.get("v", PROTOCOL_VERSION)
    if isinstance(version, int) and version > PROTOCOL_VERSION:
        LOGGER.debug("Reading v%s message as v%s", version, PROTOCOL_VERSION)

    try:
        msg_type = MessageType(type_name)
    except ValueError:
        return UnknownMessage(type_name)
    return MESSAGE_CLASSES[msg_type].from_payload(data)


def _int_field(data: Dict[str, Any], name: str, default: int = 0) -> int:
    value = data.get(name)
    if value is None:
        return default
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError("BAD_SCHEMA", f"{name} must be an integer")
    return value


def _optional_int_field(data: Dict[str, Any], name: str) -> Optional[int]:
    if data.get(name) is None:
        return None
    return _int_field(data, name)


def _bool_field(data: Dict[str, Any], name: str, default: bool) -> bool:
    value = data.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ProtocolError("BAD_SCHEMA", f"{name} must be a boolean")
    return value


def _cards_field(data: Dict[str, Any], name: str) -> List[Card]:
    value = data.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProtocolError("BAD_SCHEMA", f"{name} must be a list of card labels")
    try:
        return parse_cards(value)
    except ValueError as exc:
        raise ProtocolError("BAD_CARD", str(exc)) from None
