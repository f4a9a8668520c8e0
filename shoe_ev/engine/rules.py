"""
Table rules and stand settlement.

Rules are an immutable input to every evaluation. Validation happens once,
at construction, so the solver can trust every field.

Payout convention (from player's perspective, per unit bet):
    +1  = player wins
    -1  = player loses
     0  = push (bet returned)
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Mapping

from .shoe import MAX_DECKS, MIN_DECKS

BLACKJACK_PAYOUTS: tuple[float, ...] = (1.5, 1.2)
"""Allowed blackjack payout ratios: 3:2 and 6:5."""

MAX_RESPLITS: int = 6

DEALER_BUST: str = "bust"
"""Outcome key for a dealer bust; standing totals are keyed by int."""

DEALER_STAND_TOTALS: tuple[int, ...] = (17, 18, 19, 20, 21)


class Outcome(Enum):
    WIN = auto()
    LOSS = auto()
    PUSH = auto()


@dataclass(frozen=True)
class Rules:
    """Rule set for one evaluation.

    Attributes:
        decks:                 Number of decks in the shoe (1–8).
        dealer_hits_soft17:    True for H17, False for S17.
        blackjack_payout:      1.5 (3:2) or 1.2 (6:5).
        late_surrender:        Surrender of an initial two-card hand for half the bet.
        double_allowed:        Doubling on two-card hands.
        double_after_split:    Doubling on hands created by a split.
        max_resplits:          Splits allowed after the first (0–6).
        split_aces_one_card:   Split aces receive exactly one card each.
        resplit_aces:          Split aces may be split again.
    """

    decks: int = 6
    dealer_hits_soft17: bool = True
    blackjack_payout: float = 1.5
    late_surrender: bool = True
    double_allowed: bool = True
    double_after_split: bool = True
    max_resplits: int = 3
    split_aces_one_card: bool = True
    resplit_aces: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.decks, bool) or not isinstance(self.decks, int):
            raise ValueError(f"decks must be an int, got {self.decks!r}.")
        if not MIN_DECKS <= self.decks <= MAX_DECKS:
            raise ValueError(f"decks must be between {MIN_DECKS} and {MAX_DECKS}, got {self.decks}.")
        if self.blackjack_payout not in BLACKJACK_PAYOUTS:
            raise ValueError(
                f"blackjack_payout must be one of {BLACKJACK_PAYOUTS}, got {self.blackjack_payout!r}."
            )
        if not 0 <= self.max_resplits <= MAX_RESPLITS:
            raise ValueError(f"max_resplits must be between 0 and {MAX_RESPLITS}, got {self.max_resplits}.")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> Rules:
        """Build rules from a plain mapping, defaulting missing fields.

        Raises:
            ValueError: On an unknown field name or an invalid value.

        Examples:
            >>> Rules.from_mapping({"decks": 1, "dealer_hits_soft17": False}).decks
            1
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown rule(s): {', '.join(unknown)}.")
        return cls(**dict(values))

    def replace(self, **changes: Any) -> Rules:
        """Return a validated copy with ``changes`` applied."""
        return dataclasses.replace(self, **changes)

    def dealer_stands(self, total: int, soft: bool) -> bool:
        """Apply the dealer drawing rule to a non-bust total.

        Examples:
            >>> Rules(dealer_hits_soft17=True).dealer_stands(17, True)
            False
            >>> Rules(dealer_hits_soft17=False).dealer_stands(17, True)
            True
            >>> Rules().dealer_stands(16, False)
            False
        """
        if soft:
            if total > 17:
                return True
            if total == 17:
                return not self.dealer_hits_soft17
            return False
        return total >= 17


DEFAULT_RULES: Rules = Rules()


# ─── Settlement ───────────────────────────────────────────────────────────────

def settle_stand(player_total: int, dealer_outcome: int | str) -> tuple[Outcome, float]:
    """Settle a standing player total against one dealer outcome.

    Args:
        player_total:   Player's best total.
        dealer_outcome: Dealer's final total, or ``DEALER_BUST``.

    Returns:
        (Outcome, payout) with payout in units of the bet on this hand.

    Settlement rules applied in order:
        1. Player bust → LOSS, -1 (even on dealer bust)
        2. Dealer bust → WIN, +1
        3. Higher total wins; equal totals push

    Examples:
        >>> settle_stand(20, 18)
        (<Outcome.WIN: 1>, 1.0)
        >>> settle_stand(22, 'bust')
        (<Outcome.LOSS: 2>, -1.0)
        >>> settle_stand(17, 17)
        (<Outcome.PUSH: 3>, 0.0)
    """
    if player_total > 21:
        return Outcome.LOSS, -1.0
    if dealer_outcome == DEALER_BUST:
        return Outcome.WIN, 1.0
    if player_total > dealer_outcome:
        return Outcome.WIN, 1.0
    if player_total < dealer_outcome:
        return Outcome.LOSS, -1.0
    return Outcome.PUSH, 0.0
