"""
Rank constants, encoding, and human-readable I/O helpers.

Rank encoding (integer 0–12):
    0=2, 1=3, ..., 7=9, 8=10, 9=J, 10=Q, 11=K, 12=A

Suits never affect blackjack EV, so the shoe and every hand are tracked
by rank alone. String representations are used only at I/O boundaries.
"""

from __future__ import annotations

from typing import Iterable

# Blackjack point value by rank index. Ace is counted as 11 here;
# hand.py decides when it drops to 1.
RANK_VALUES: list[int] = [2, 3, 4, 5, 6, 7, 8, 9, 10, 10, 10, 10, 11]

RANK_NAMES: list[str] = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']

NUM_RANKS: int = 13
CARDS_PER_RANK_PER_DECK: int = 4

RANK_TEN: int = 8
RANK_JACK: int = 9
RANK_QUEEN: int = 10
RANK_KING: int = 11
RANK_ACE: int = 12

TEN_VALUE_RANKS: frozenset[int] = frozenset({RANK_TEN, RANK_JACK, RANK_QUEEN, RANK_KING})

# Accepted spellings that are not in RANK_NAMES.
_RANK_ALIASES: dict[str, str] = {'T': '10'}


def rank_value(rank: int) -> int:
    """Return the point value of a rank (ace = 11).

    Examples:
        >>> rank_value(0)    # 2
        2
        >>> rank_value(11)   # K
        10
        >>> rank_value(12)   # A
        11
    """
    return RANK_VALUES[rank]


def normalize_rank(rank: int) -> int:
    """Fold J/Q/K onto 10 for pair and equal-rank comparisons.

    Examples:
        >>> normalize_rank(RANK_KING) == RANK_TEN
        True
        >>> normalize_rank(RANK_ACE) == RANK_ACE
        True
    """
    return RANK_TEN if rank in TEN_VALUE_RANKS else rank


def rank_to_str(rank: int) -> str:
    """Convert a rank index to its display name.

    Examples:
        >>> rank_to_str(8)
        '10'
        >>> rank_to_str(12)
        'A'
    """
    return RANK_NAMES[rank]


def str_to_rank(s: str) -> int:
    """Parse a rank symbol into its integer index.

    Accepts '2'-'10', 'J', 'Q', 'K', 'A' (case-insensitive) plus 'T' for 10.

    Raises:
        ValueError: If the symbol is not one of the 13 ranks.

    Examples:
        >>> str_to_rank('A')
        12
        >>> str_to_rank('t')
        8
    """
    key = str(s).strip().upper()
    key = _RANK_ALIASES.get(key, key)
    try:
        return RANK_NAMES.index(key)
    except ValueError:
        raise ValueError(f"Invalid rank {s!r}; expected one of {' '.join(RANK_NAMES)}.") from None


def to_rank(card: int | str) -> int:
    """Accept either a rank index or a rank symbol and return the index.

    Raises:
        ValueError: If an integer is outside 0–12 or a string is not a rank.
    """
    if isinstance(card, str):
        return str_to_rank(card)
    rank = int(card)
    if not 0 <= rank < NUM_RANKS:
        raise ValueError(f"Rank index {card!r} out of range 0–{NUM_RANKS - 1}.")
    return rank


def parse_hand(cards: Iterable[int | str]) -> tuple[int, ...]:
    """Convert a sequence of ranks (indices or symbols) to a hand tuple.

    Examples:
        >>> parse_hand(['A', '7'])
        (12, 5)
        >>> parse_hand('K Q'.split())
        (11, 10)
    """
    return tuple(to_rank(c) for c in cards)


def hand_to_str(cards: tuple[int, ...]) -> str:
    """Convert a hand (tuple of rank indices) to a human-readable string.

    Examples:
        >>> hand_to_str((12, 8))
        'A 10'
    """
    return ' '.join(rank_to_str(c) for c in cards)
