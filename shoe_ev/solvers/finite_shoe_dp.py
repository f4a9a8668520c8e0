"""
Exact player EV per action over a finite shoe, by memoized recursion.

Every action EV is expressed in units of the original bet:

    STAND      settle the best total against the dealer distribution
    HIT        draw each remaining rank (weighted by its share of the shoe),
               then play the extended hand optimally
    DOUBLE     one weighted card, forced stand, EV × 2
    SURRENDER  fixed -0.5 on an initial two-card hand
    SPLIT      two one-card hands, each completed by a weighted draw and
               played optimally under the split context
    BLACKJACK  an initial natural; settled at the payout unless the dealer
               also holds a natural

Illegal actions are never computed and never appear in a table.

All per-call state (the shoe being recursed over, the player and dealer
memo tables) lives in one ``EvaluationState`` that is threaded through
the recursion. Nothing is cached at module level, so two evaluations with
different shoes or rules cannot see each other's results.

Split approximation: each sub-hand's completion card is weighted against
the shoe as it stands when the pair is split. The two sub-hands are not
enumerated jointly, so the rare case where both would want the same
scarce card is slightly misweighted near shoe depletion.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum

from shoe_ev.engine.cards import RANK_ACE, normalize_rank
from shoe_ev.engine.hand import HandTotals, calculate_totals, is_natural, is_pair
from shoe_ev.engine.rules import Rules, settle_stand
from shoe_ev.engine.shoe import Shoe
from shoe_ev.solvers.dealer_dist import DealerDist, dealer_blackjack_probability, dealer_distribution

SURRENDER_EV: float = -0.5
BUST_EV: float = -1.0


# ─── Action ───────────────────────────────────────────────────────────────────


class Action(Enum):
    """Player decisions, in tie-break order."""

    STAND = "Stand"
    HIT = "Hit"
    DOUBLE = "Double"
    SURRENDER = "Surrender"
    SPLIT = "Split"
    BLACKJACK = "Blackjack"


# ─── Contexts ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DecisionContext:
    """Per-node decision state.

    Attributes:
        rules:       Active rule set.
        upcard:      Dealer upcard rank index.
        can_double:  Doubling is permitted by the context (hand size and
                     rules are checked separately).
        can_split:   Splitting a pair is permitted at this node.
        split_depth: Number of splits above this hand (0 at the root).
        split_aces:  The hand descends from a pair of split aces.
    """

    rules: Rules
    upcard: int
    can_double: bool = True
    can_split: bool = True
    split_depth: int = 0
    split_aces: bool = False

    def split_child(self, splitting_aces: bool) -> DecisionContext:
        """Context for each hand produced by splitting a pair here."""
        can_resplit = self.split_depth < self.rules.max_resplits and (
            self.rules.resplit_aces if splitting_aces else True
        )
        return dataclasses.replace(
            self,
            can_double=self.rules.double_after_split,
            can_split=can_resplit,
            split_depth=self.split_depth + 1,
            split_aces=splitting_aces,
        )

    @property
    def forced_stand(self) -> bool:
        """Split aces dealt one card each may only stand."""
        return self.split_aces and self.rules.split_aces_one_card


@dataclass
class EvaluationState:
    """Mutable state owned by one top-level evaluation.

    Attributes:
        shoe:          Shoe being recursed over; every draw is restored.
        rules:         Rule set, fixed for the whole evaluation.
        upcard:        Dealer upcard, fixed for the whole evaluation.
        player_memo:   Best-EV cache keyed by hand, context flags and shoe.
        dealer_memo:   Dealer recursion cache keyed by (total, soft, shoe).
        dealer_dists:  Top-level dealer distributions keyed by shoe signature.
    """

    shoe: Shoe
    rules: Rules
    upcard: int
    player_memo: dict = field(default_factory=dict)
    dealer_memo: dict = field(default_factory=dict)
    dealer_dists: dict = field(default_factory=dict)

    @classmethod
    def for_context(cls, context: DecisionContext, shoe: Shoe) -> EvaluationState:
        return cls(shoe=shoe, rules=context.rules, upcard=context.upcard)

    def dealer_distribution(self) -> DealerDist:
        """Dealer distribution for the shoe as it currently stands."""
        sig = self.shoe.signature()
        dist = self.dealer_dists.get(sig)
        if dist is None:
            dist = dealer_distribution(self.upcard, self.shoe, self.rules, self.dealer_memo)
            self.dealer_dists[sig] = dist
        return dist


# ─── Memo key ─────────────────────────────────────────────────────────────────


def _hand_signature(cards: tuple[int, ...]) -> int:
    """Pack the hand composition into one integer, 6 bits per normalized rank.

    Card order and the 10/J/Q/K distinction do not affect EV, so hands that
    differ only in those respects share a signature.

    Examples:
        >>> _hand_signature((11, 5)) == _hand_signature((5, 8))
        True
    """
    sig = 0
    for rank in cards:
        sig += 1 << (6 * normalize_rank(rank))
    return sig


def _memo_key(cards: tuple[int, ...], totals: HandTotals, ctx: DecisionContext, shoe: Shoe) -> tuple:
    return (
        _hand_signature(cards),
        totals.best,
        totals.is_soft,
        ctx.can_double,
        ctx.can_split,
        ctx.split_depth,
        ctx.split_aces,
        shoe.signature(),
    )


# ─── Action EVs ───────────────────────────────────────────────────────────────


def _ev_stand(cards: tuple[int, ...], state: EvaluationState) -> float:
    """EV of standing with ``cards`` against the dealer on the current shoe."""
    player_total = calculate_totals(cards).best
    if player_total > 21:
        return BUST_EV

    ev = 0.0
    for outcome, prob in state.dealer_distribution().items():
        ev += prob * settle_stand(player_total, outcome)[1]
    return ev


def _ev_hit(cards: tuple[int, ...], ctx: DecisionContext, state: EvaluationState) -> float:
    """EV of drawing one card and continuing optimally."""
    shoe = state.shoe
    ev = 0.0
    for rank, prob in shoe.weighted_ranks():
        with shoe.drawn(rank):
            ev += prob * _best_ev((*cards, rank), ctx, state)
    return ev


def _ev_double(cards: tuple[int, ...], state: EvaluationState) -> float:
    """EV of doubling: one card, forced stand, twice the stake."""
    shoe = state.shoe
    ev = 0.0
    for rank, prob in shoe.weighted_ranks():
        with shoe.drawn(rank):
            ev += prob * _ev_stand((*cards, rank), state)
    return 2.0 * ev


def _ev_split(cards: tuple[int, ...], ctx: DecisionContext, state: EvaluationState) -> float:
    """EV of splitting a pair: the sum of both resulting hands.

    Each hand keeps one card of the pair and draws its completion card from
    the shoe as it stands at the split.
    """
    splitting_aces = cards[0] == RANK_ACE and cards[1] == RANK_ACE
    child = ctx.split_child(splitting_aces)
    shoe = state.shoe

    ev = 0.0
    for card in cards:
        hand_ev = 0.0
        for rank, prob in shoe.weighted_ranks():
            with shoe.drawn(rank):
                hand_ev += prob * _best_ev((card, rank), child, state)
        ev += hand_ev
    return ev


def _ev_blackjack(state: EvaluationState) -> float:
    """EV of an initial natural: pushes only against a dealer natural."""
    p_dealer_bj = dealer_blackjack_probability(state.upcard, state.shoe)
    return (1.0 - p_dealer_bj) * state.rules.blackjack_payout


def action_evs(
    cards: tuple[int, ...],
    ctx: DecisionContext,
    state: EvaluationState,
) -> dict[Action, float]:
    """Return the EV of every legal action for ``cards`` under ``ctx``.

    Legality:
        - bust hand           → STAND only (-1.0)
        - initial natural     → BLACKJACK only
        - split aces, one-card rule, completion card dealt → STAND only
        - HIT                 → any other hand
        - DOUBLE              → two cards, ``ctx.can_double`` and ``rules.double_allowed``
        - SURRENDER           → two cards at split depth 0 with ``rules.late_surrender``
        - SPLIT               → a pair with ``ctx.can_split``

    Args:
        cards: Player hand as a tuple of rank indices.
        ctx:   Decision context for this node.
        state: Evaluation state holding the shoe and caches.

    Returns:
        Dict mapping each legal Action to its EV, in tie-break order.
    """
    totals = calculate_totals(cards)
    rules = ctx.rules

    if totals.best > 21:
        return {Action.STAND: BUST_EV}

    two_cards = len(cards) == 2
    if two_cards and ctx.split_depth == 0 and is_natural(cards):
        return {Action.BLACKJACK: _ev_blackjack(state)}

    table: dict[Action, float] = {Action.STAND: _ev_stand(cards, state)}

    if ctx.forced_stand and len(cards) >= 2:
        return table

    table[Action.HIT] = _ev_hit(cards, ctx, state)

    if two_cards and ctx.can_double and rules.double_allowed:
        table[Action.DOUBLE] = _ev_double(cards, state)

    if two_cards and ctx.split_depth == 0 and rules.late_surrender:
        table[Action.SURRENDER] = SURRENDER_EV

    if ctx.can_split and is_pair(cards):
        table[Action.SPLIT] = _ev_split(cards, ctx, state)

    return table


def _best_ev(cards: tuple[int, ...], ctx: DecisionContext, state: EvaluationState) -> float:
    """Return the EV of the best legal action, memoized on the full state."""
    totals = calculate_totals(cards)
    key = _memo_key(cards, totals, ctx, state.shoe)
    cached = state.player_memo.get(key)
    if cached is not None:
        return cached

    if totals.best > 21:
        best = BUST_EV
    else:
        best = max(action_evs(cards, ctx, state).values())

    state.player_memo[key] = best
    return best


def best_ev(cards: tuple[int, ...], ctx: DecisionContext, state: EvaluationState) -> float:
    """Public wrapper around the memoized best-EV recursion."""
    return _best_ev(tuple(cards), ctx, state)
