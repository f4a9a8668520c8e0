"""
Dealer outcome distribution over a finite shoe.

Fixed dealer strategy: hit below 17, stand on hard 17+, hit or stand on
soft 17 according to ``Rules.dealer_hits_soft17``.

The dealer's hand is abstracted as (best total, soft, card count). Every
hit is drawn from the real shoe without replacement, so the memo key
carries the shoe signature as well as the total:

    (best, soft, shoe.signature())

Two hands with the same total and softness reached through different
card orders leave the same shoe behind and share one entry, which keeps
the otherwise exponential branching tractable. The card count is not part
of the key: it only matters for the two-card 21 check, and every 21 is a
standing 21 whatever the card count.
"""

from __future__ import annotations

from shoe_ev.engine.cards import RANK_ACE, RANK_VALUES, TEN_VALUE_RANKS
from shoe_ev.engine.rules import DEALER_BUST, DEALER_STAND_TOTALS, Rules
from shoe_ev.engine.shoe import Shoe

DealerDist = dict[int | str, float]
"""{17..21: prob, 'bust': prob}."""

_OUTCOME_ORDER: tuple[int | str, ...] = (*DEALER_STAND_TOTALS, DEALER_BUST)


# ─── Composition helpers ──────────────────────────────────────────────────────


def _add_rank(total: int, soft: bool, drawn_rank: int) -> tuple[int, bool]:
    """Apply one card to a (best total, soft) pair.

    A soft hand holds exactly one ace at 11. The drawn ace joins as 11
    and aces are demoted to 1 while the hand would bust.

    Examples:
        >>> _add_rank(16, False, 3)          # hard 16 + 5
        (21, False)
        >>> _add_rank(16, True, 8)           # soft 16 + 10 → hard 16
        (16, False)
        >>> _add_rank(12, True, RANK_ACE)    # A-A + A → soft 13
        (13, True)
        >>> _add_rank(6, False, RANK_ACE)    # 6 + A → soft 17
        (17, True)
    """
    total += RANK_VALUES[drawn_rank]
    high_aces = int(soft) + (drawn_rank == RANK_ACE)
    while total > 21 and high_aces:
        total -= 10
        high_aces -= 1
    return total, high_aces > 0


def _upcard_state(upcard: int) -> tuple[int, bool]:
    if upcard == RANK_ACE:
        return 11, True
    return RANK_VALUES[upcard], False


# ─── Recursion ────────────────────────────────────────────────────────────────


def _dealer_play_recursive(
    total: int,
    soft: bool,
    nc: int,
    shoe: Shoe,
    rules: Rules,
    memo: dict,
) -> DealerDist:
    """Recursively compute the dealer's final outcome distribution.

    Args:
        total: Dealer best total.
        soft:  True if an ace is counted as 11.
        nc:    Number of dealer cards.
        shoe:  Remaining shoe; drawn from and restored in place.
        rules: Rule set (soft-17 behaviour).
        memo:  Memoization cache shared within one evaluation.

    Returns:
        Dict mapping outcome to probability. Standing totals are keyed as
        ints, bust as ``'bust'``. Sums to 1.0 unless the shoe runs dry on
        a branch that had to hit, in which case that branch weighs 0.
    """
    key = (total, soft, shoe.signature())
    cached = memo.get(key)
    if cached is not None:
        return cached

    # Terminal: two-card 21 (dealer blackjack)
    if nc == 2 and total == 21:
        result: DealerDist = {21: 1.0}
        memo[key] = result
        return result

    # Terminal: bust
    if total > 21:
        result = {DEALER_BUST: 1.0}
        memo[key] = result
        return result

    if rules.dealer_stands(total, soft):
        result = {total: 1.0}
        memo[key] = result
        return result

    # HIT: weight every remaining rank by its share of the shoe
    result = {}
    for rank, prob in shoe.weighted_ranks():
        new_total, new_soft = _add_rank(total, soft, rank)
        with shoe.drawn(rank):
            sub_dist = _dealer_play_recursive(new_total, new_soft, nc + 1, shoe, rules, memo)
        for outcome, p in sub_dist.items():
            result[outcome] = result.get(outcome, 0.0) + prob * p

    memo[key] = result
    return result


# ─── Public API ───────────────────────────────────────────────────────────────


def dealer_distribution(
    upcard: int,
    shoe: Shoe,
    rules: Rules,
    memo: dict | None = None,
) -> DealerDist:
    """Compute the dealer's final-outcome distribution for an upcard.

    The hole card is unknown, so it is marginalised out: each rank is drawn
    as the hole card with its share of the shoe, the dealer plays out, and
    the card is returned before the next candidate.

    Args:
        upcard: Rank index of the dealer's visible card (already removed
                from ``shoe``).
        shoe:   Remaining shoe. Restored to its original counts on return.
        rules:  Rule set.
        memo:   Optional cache to share across calls on the same evaluation.

    Returns:
        Dict mapping each reachable outcome (17–21, ``'bust'``) to its
        probability, in that order. Empty if the shoe is empty.
    """
    if memo is None:
        memo = {}

    up_total, up_soft = _upcard_state(upcard)
    dist: DealerDist = {}
    for hole_rank, prob in shoe.weighted_ranks():
        total2, soft2 = _add_rank(up_total, up_soft, hole_rank)
        with shoe.drawn(hole_rank):
            sub_dist = _dealer_play_recursive(total2, soft2, 2, shoe, rules, memo)
        for outcome, p in sub_dist.items():
            dist[outcome] = dist.get(outcome, 0.0) + prob * p

    return {k: dist[k] for k in _OUTCOME_ORDER if k in dist}


def dealer_blackjack_probability(upcard: int, shoe: Shoe) -> float:
    """Return P(dealer holds a natural) given the upcard and remaining shoe.

    Only an ace or a ten-value upcard can start a natural; the hole card
    completes it with probability (matching cards left) / (cards left).

    Examples:
        >>> from shoe_ev.engine.shoe import init_shoe
        >>> dealer_blackjack_probability(4, init_shoe(1, [], '6'))
        0.0
        >>> round(dealer_blackjack_probability(RANK_ACE, init_shoe(1, [], 'A')), 4)
        0.3137
    """
    total = shoe.total()
    if total == 0:
        return 0.0
    if upcard == RANK_ACE:
        tens = sum(shoe.count(r) for r in TEN_VALUE_RANKS)
        return tens / total
    if upcard in TEN_VALUE_RANKS:
        return shoe.count(RANK_ACE) / total
    return 0.0


def bust_probability(dist: DealerDist) -> float:
    """Return the bust share of a dealer distribution."""
    return dist.get(DEALER_BUST, 0.0)
