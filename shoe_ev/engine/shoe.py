"""
Finite shoe: counts of the cards still undealt, by rank.

The shoe is a numpy int16 array of length 13 indexed by rank
(0=2 … 12=A), wrapped in a small class that keeps the running total and
enforces the count invariant 0 <= count <= 4 × decks.

The solver explores draws speculatively. Every draw on a recursion path
is taken through ``Shoe.drawn``, a context manager that puts the card
back when the block exits, by return or by exception, so sibling
branches always see the same shoe.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator

import numpy as np

from .cards import CARDS_PER_RANK_PER_DECK, NUM_RANKS, RANK_NAMES, to_rank

MIN_DECKS: int = 1
MAX_DECKS: int = 8


def _check_decks(decks: int) -> int:
    decks = int(decks)
    if not MIN_DECKS <= decks <= MAX_DECKS:
        raise ValueError(f"Deck count must be between {MIN_DECKS} and {MAX_DECKS}, got {decks}.")
    return decks


class Shoe:
    """Mutable multiset of remaining ranks.

    Attributes:
        decks:  Number of decks the shoe was built from.
        counts: int16 array of shape (13,), remaining cards per rank.
    """

    __slots__ = ("decks", "counts", "_total")

    def __init__(self, decks: int, counts: np.ndarray | None = None) -> None:
        self.decks = _check_decks(decks)
        capacity = self.capacity
        if counts is None:
            self.counts = np.full(NUM_RANKS, capacity, dtype=np.int16)
        else:
            arr = np.asarray(counts, dtype=np.int16).copy()
            if arr.shape != (NUM_RANKS,):
                raise ValueError(f"Shoe counts must have shape ({NUM_RANKS},), got {arr.shape}.")
            if (arr < 0).any() or (arr > capacity).any():
                raise ValueError(f"Shoe counts must lie in [0, {capacity}].")
            self.counts = arr
        self._total = int(self.counts.sum())

    # ─── Queries ──────────────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        """Cards of each rank in a full shoe."""
        return CARDS_PER_RANK_PER_DECK * self.decks

    def total(self) -> int:
        """Return the number of cards remaining."""
        return self._total

    def count(self, rank: int) -> int:
        return int(self.counts[rank])

    def probability(self, rank: int) -> float:
        """Return the probability that the next card is ``rank`` (0.0 if empty)."""
        if self._total == 0:
            return 0.0
        return int(self.counts[rank]) / self._total

    def weighted_ranks(self) -> Iterator[tuple[int, float]]:
        """Yield ``(rank, probability)`` for each rank still in the shoe.

        Ranks come out in index order so that accumulated sums are
        reproducible bit for bit. An empty shoe yields nothing.
        The weights are fixed when iteration starts; callers draw and
        restore inside the loop body.
        """
        total = self._total
        if total == 0:
            return
        for rank in np.flatnonzero(self.counts):
            count = int(self.counts[rank])
            yield int(rank), count / total

    def signature(self) -> bytes:
        """Fixed-width encoding of the counts, used as a memo key component."""
        return self.counts.tobytes()

    def as_dict(self) -> dict[str, int]:
        """Return remaining counts keyed by rank name."""
        return {RANK_NAMES[r]: int(c) for r, c in enumerate(self.counts)}

    def copy(self) -> Shoe:
        return Shoe(self.decks, self.counts)

    # ─── Mutation ─────────────────────────────────────────────────────────

    def draw(self, rank: int) -> None:
        """Remove one card of ``rank``.

        Raises:
            ValueError: If no card of that rank remains.
        """
        if self.counts[rank] <= 0:
            raise ValueError(f"No {RANK_NAMES[rank]} left in the shoe.")
        self.counts[rank] -= 1
        self._total -= 1

    def undraw(self, rank: int) -> None:
        """Return one card of ``rank`` to the shoe; exact inverse of draw().

        Raises:
            ValueError: If the shoe already holds a full complement of ``rank``.
        """
        if self.counts[rank] >= self.capacity:
            raise ValueError(f"Shoe already holds every {RANK_NAMES[rank]}.")
        self.counts[rank] += 1
        self._total += 1

    @contextmanager
    def drawn(self, rank: int) -> Iterator[Shoe]:
        """Draw ``rank`` for the duration of a ``with`` block.

        Examples:
            >>> shoe = Shoe(1)
            >>> with shoe.drawn(12):
            ...     shoe.count(12)
            3
            >>> shoe.count(12)
            4
        """
        self.draw(rank)
        try:
            yield self
        finally:
            self.undraw(rank)

    def remove_visible(self, rank: int) -> None:
        """Remove a card seen on the table, ignoring ranks already exhausted."""
        if self.counts[rank] > 0:
            self.counts[rank] -= 1
            self._total -= 1

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Shoe):
            return NotImplemented
        return self.decks == other.decks and bool(np.array_equal(self.counts, other.counts))

    def __repr__(self) -> str:
        return f"Shoe(decks={self.decks}, remaining={self._total})"


def create_shoe(decks: int) -> Shoe:
    """Create a full shoe of ``decks`` decks.

    Examples:
        >>> create_shoe(6).total()
        312
    """
    return Shoe(decks)


def init_shoe(
    decks: int,
    visible_hands: Iterable[Iterable[int | str]],
    upcard: int | str | None = None,
) -> Shoe:
    """Build the shoe left after the visible cards were dealt.

    Every card of every visible hand, and the dealer upcard, is removed once.
    Removal is clamped at zero so impossible input (five aces from one deck)
    leaves that rank empty instead of negative.

    Raises:
        ValueError: On an invalid deck count or rank.

    Examples:
        >>> shoe = init_shoe(1, [['A', '7']], '6')
        >>> shoe.total()
        49
    """
    shoe = create_shoe(decks)
    for hand in visible_hands:
        for card in hand:
            shoe.remove_visible(to_rank(card))
    if upcard is not None:
        shoe.remove_visible(to_rank(upcard))
    return shoe
