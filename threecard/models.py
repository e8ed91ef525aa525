from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MessageType(str, Enum):
    INITIAL_BET = "INITIAL_BET"
    CARDS_DEALT = "CARDS_DEALT"
    PLAYER_ACTION = "PLAYER_ACTION"
    GAME_RESULT = "GAME_RESULT"
    PLAY_AGAIN = "PLAY_AGAIN"
    DISCONNECT = "DISCONNECT"


class PlayerAction(str, Enum):
    PLAY = "PLAY"
    FOLD = "FOLD"


class SessionState(str, Enum):
    AWAITING_BET = "AWAITING_BET"
    AWAITING_ACTION = "AWAITING_ACTION"
    DISCONNECTED = "DISCONNECTED"


class Disposition(str, Enum):
    """What a session did with one inbound message."""

    REPLY = "REPLY"
    REJECTED = "REJECTED"
    IGNORED = "IGNORED"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    DISCONNECT = "DISCONNECT"


@dataclass
class TableConfig:
    min_bet: int = 5
    max_bet: int = 25

    def ante_ok(self, amount: int) -> bool:
        return self.min_bet <= amount <= self.max_bet

    def pair_plus_ok(self, amount: int) -> bool:
        return amount == 0 or self.min_bet <= amount <= self.max_bet


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 5555
    max_clients: int = 8
    shutdown_timeout: float = 2.0
    close_timeout: float = 1.0
    table: TableConfig = field(default_factory=TableConfig)
