"""Three Card Poker hand evaluator.

Hands are exactly three cards. Categories follow the three-card ranking,
where a straight beats a flush. Ace is low (value 1) when checking for a
straight and high (14) for every magnitude comparison.
"""

from __future__ import annotations

from collections import Counter
from enum import IntEnum
from typing import Dict, List, Optional, Sequence

from .cards import Card

HAND_SIZE = 3
QUALIFYING_HIGH_CARD = 12  # Queen


class HandCategory(IntEnum):
    HIGH_CARD = 0
    PAIR = 1
    FLUSH = 2
    STRAIGHT = 3
    THREE_OF_A_KIND = 4
    STRAIGHT_FLUSH = 5


class Outcome(IntEnum):
    DEALER_WINS = -1
    TIE = 0
    PLAYER_WINS = 1


HAND_NAMES = {
    HandCategory.HIGH_CARD: "High Card",
    HandCategory.PAIR: "Pair",
    HandCategory.FLUSH: "Flush",
    HandCategory.STRAIGHT: "Straight",
    HandCategory.THREE_OF_A_KIND: "Three of a Kind",
    HandCategory.STRAIGHT_FLUSH: "Straight Flush",
}

# Total return per unit staked, original stake included.
PAIR_PLUS_MULTIPLIERS: Dict[HandCategory, int] = {
    HandCategory.STRAIGHT_FLUSH: 41,
    HandCategory.THREE_OF_A_KIND: 31,
    HandCategory.STRAIGHT: 7,
    HandCategory.FLUSH: 4,
    HandCategory.PAIR: 2,
}


def _check_hand(hand: Sequence[Card]) -> List[Card]:
    if hand is None or len(hand) != HAND_SIZE:
        raise ValueError(f"Hand must contain exactly {HAND_SIZE} cards")
    return sorted(hand, key=lambda card: int(card.rank))


def _is_straight(values: List[int]) -> bool:
    low, mid, high = values
    if mid == low + 1 and high == mid + 1:
        return True
    # A-2-3 and Q-K-A; the ace sorts first at value 1 in both.
    return values == [1, 2, 3] or values == [1, 12, 13]


def classify(hand: Sequence[Card]) -> HandCategory:
    ordered = _check_hand(hand)
    values = [int(card.rank) for card in ordered]
    distinct = len(set(values))

    flush = len({card.suit for card in ordered}) == 1
    straight = _is_straight(values)

    if flush and straight:
        return HandCategory.STRAIGHT_FLUSH
    if distinct == 1:
        return HandCategory.THREE_OF_A_KIND
    if straight:
        return HandCategory.STRAIGHT
    if flush:
        return HandCategory.FLUSH
    if distinct == 2:
        return HandCategory.PAIR
    return HandCategory.HIGH_CARD


def _matched_value(hand: Sequence[Card]) -> Optional[int]:
    """High value of the rank appearing more than once, if any."""
    counts = Counter(card.rank for card in hand)
    rank, count = counts.most_common(1)[0]
    if count < 2:
        return None
    return rank.high_value


def _high_values(hand: Sequence[Card]) -> List[int]:
    return sorted((card.rank.high_value for card in hand), reverse=True)


def compare(dealer_hand: Sequence[Card], player_hand: Sequence[Card]) -> Outcome:
    dealer_category = classify(dealer_hand)
    player_category = classify(player_hand)
    if dealer_category != player_category:
        return Outcome.PLAYER_WINS if player_category > dealer_category else Outcome.DEALER_WINS

    if dealer_category in (HandCategory.PAIR, HandCategory.THREE_OF_A_KIND):
        dealer_match = _matched_value(dealer_hand)
        player_match = _matched_value(player_hand)
        if dealer_match != player_match:
            return Outcome.PLAYER_WINS if player_match > dealer_match else Outcome.DEALER_WINS

    for dealer_value, player_value in zip(_high_values(dealer_hand), _high_values(player_hand)):
        if player_value > dealer_value:
            return Outcome.PLAYER_WINS
        if dealer_value > player_value:
            return Outcome.DEALER_WINS
    return Outcome.TIE


def dealer_qualifies(dealer_hand: Sequence[Card]) -> bool:
    if classify(dealer_hand) > HandCategory.HIGH_CARD:
        return True
    return max(card.rank.high_value for card in dealer_hand) >= QUALIFYING_HIGH_CARD


def side_payout(hand: Sequence[Card], bet: int) -> int:
    """Pair Plus total return for ``bet``; 0 means the wager is lost."""
    category = classify(hand)
    if category < HandCategory.PAIR:
        return 0
    if category == HandCategory.PAIR:
        # Guard only: the lowest three-card pair is deuces.
        matched = _matched_value(hand)
        if matched is None or matched < 2:
            return 0
    return bet * PAIR_PLUS_MULTIPLIERS[category]


def describe_hand(hand: Sequence[Card]) -> str:
    return HAND_NAMES[classify(hand)]
