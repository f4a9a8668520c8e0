"""
Hand evaluation: total calculation and ace resolution.

Aces are resolved one at a time: an ace counts 11 only if every ace
still unresolved after it can count 1 without busting the hand,
otherwise it counts 1. At most one ace can ever hold the 11.

All functions operate on tuples of rank integers.
"""

from __future__ import annotations

from typing import NamedTuple

from .cards import RANK_ACE, RANK_VALUES, normalize_rank


class HandTotals(NamedTuple):
    """Totals of a hand.

    Attributes:
        hard:    Total with every ace counted as 1.
        soft:    Total with one ace counted as 11, or None if the hand is hard.
        is_soft: True if an ace currently contributes 11 to ``best``.
        best:    Total used for every comparison (soft if soft, else hard).
    """

    hard: int
    soft: int | None
    is_soft: bool
    best: int


def resolve_ace(aces_left: int, current_total: int) -> int:
    """Choose the value of the next ace given the running total.

    Args:
        aces_left: Aces still unresolved after this one.
        current_total: Sum of non-ace cards and previously resolved aces.

    Returns:
        11 if the hand can absorb it with the remaining aces at 1, else 1.

    Examples:
        >>> resolve_ace(0, 10)   # A-10: 10+11=21
        11
        >>> resolve_ace(1, 0)    # first of A-A: 0+11 leaves room for 1
        11
        >>> resolve_ace(0, 11)   # second of A-A: 11+11 busts
        1
        >>> resolve_ace(0, 15)
        1
    """
    return 11 if current_total + 11 <= 21 - aces_left else 1


def calculate_totals(cards: tuple[int, ...]) -> HandTotals:
    """Compute hard, soft and best totals for a hand.

    Examples:
        >>> calculate_totals((12, 5))         # A-7
        HandTotals(hard=8, soft=18, is_soft=True, best=18)
        >>> calculate_totals((12, 12))        # A-A
        HandTotals(hard=2, soft=12, is_soft=True, best=12)
        >>> calculate_totals((11, 10, 3))     # K-Q-5
        HandTotals(hard=25, soft=None, is_soft=False, best=25)
    """
    non_ace_total = 0
    num_aces = 0
    for rank in cards:
        if rank == RANK_ACE:
            num_aces += 1
        else:
            non_ace_total += RANK_VALUES[rank]

    hard = non_ace_total + num_aces
    total = non_ace_total
    high_aces = 0
    for i in range(num_aces):
        value = resolve_ace(num_aces - 1 - i, total)
        if value == 11:
            high_aces += 1
        total += value

    is_soft = high_aces > 0 and total <= 21
    if is_soft:
        return HandTotals(hard, total, True, total)
    return HandTotals(hard, None, False, hard)


def best_total(cards: tuple[int, ...]) -> int:
    """Return the best total of a hand."""
    return calculate_totals(cards).best


def is_bust(cards: tuple[int, ...]) -> bool:
    """Return True if the hand's best total exceeds 21.

    Examples:
        >>> is_bust((11, 10, 3))
        True
        >>> is_bust((12, 12, 11))   # A-A-K = 12
        False
    """
    return calculate_totals(cards).best > 21


def is_natural(cards: tuple[int, ...]) -> bool:
    """Return True for a two-card 21 containing an ace (blackjack)."""
    return len(cards) == 2 and RANK_ACE in cards and calculate_totals(cards).best == 21


def is_pair(cards: tuple[int, ...]) -> bool:
    """Return True for two cards of equal normalized rank (K-10 is a pair).

    Examples:
        >>> is_pair((11, 8))
        True
        >>> is_pair((12, 11))
        False
    """
    return len(cards) == 2 and normalize_rank(cards[0]) == normalize_rank(cards[1])
