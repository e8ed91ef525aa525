from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Iterable, List, Optional, Sequence


class Suit(str, Enum):
    CLUBS = "c"
    DIAMONDS = "d"
    HEARTS = "h"
    SPADES = "s"


class Rank(IntEnum):
    ACE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8
    NINE = 9
    TEN = 10
    JACK = 11
    QUEEN = 12
    KING = 13

    @property
    def high_value(self) -> int:
        # Ace plays low inside straights but high everywhere else.
        return 14 if self is Rank.ACE else int(self)

    @property
    def symbol(self) -> str:
        return RANK_SYMBOLS[self]


RANK_SYMBOLS = {
    Rank.ACE: "A",
    Rank.TWO: "2",
    Rank.THREE: "3",
    Rank.FOUR: "4",
    Rank.FIVE: "5",
    Rank.SIX: "6",
    Rank.SEVEN: "7",
    Rank.EIGHT: "8",
    Rank.NINE: "9",
    Rank.TEN: "T",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
}
SYMBOL_RANKS = {symbol: rank for rank, symbol in RANK_SYMBOLS.items()}


@dataclass(frozen=True)
class Card:
    rank: Rank
    suit: Suit

    def __post_init__(self) -> None:
        if not isinstance(self.rank, Rank):
            raise ValueError(f"Invalid rank: {self.rank}")
        if not isinstance(self.suit, Suit):
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def label(self) -> str:
        return f"{self.rank.symbol}{self.suit.value}"

    def __str__(self) -> str:
        return self.label


def full_deck() -> List[Card]:
    return [Card(rank, suit) for suit in Suit for rank in Rank]


class Deck:
    """A 52-card deck that deals from the front without replacement."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()
        self._cards: List[Card] = []
        self.reset()

    def reset(self) -> None:
        self._cards = full_deck()
        self.shuffle()

    def shuffle(self) -> None:
        self.rng.shuffle(self._cards)

    def deal(self, count: int) -> List[Card]:
        if len(self._cards) < count:
            raise ValueError("Not enough cards left in deck")
        cards = self._cards[:count]
        del self._cards[:count]
        return cards

    def deal_one(self) -> Card:
        return self.deal(1)[0]

    @property
    def remaining(self) -> int:
        return len(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    def __contains__(self, card: object) -> bool:
        return card in self._cards


def cards_to_labels(cards: Iterable[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if not isinstance(label, str) or len(label) != 2:
        raise ValueError(f"Invalid card label: {label!r}")
    rank = SYMBOL_RANKS.get(label[0].upper())
    if rank is None:
        raise ValueError(f"Invalid rank: {label[0]}")
    try:
        suit = Suit(label[1].lower())
    except ValueError:
        raise ValueError(f"Invalid suit: {label[1]}") from None
    return Card(rank, suit)


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
