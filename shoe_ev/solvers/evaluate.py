"""
Aggregation layer: per-hand EV tables, best move, and multi-hand evaluation.

    evaluate_hand(hand, context, shoe) : EV table + best action for one hand
    evaluate_many(hands, upcard, rules): every hand against one shared shoe
    best_move(action_evs)              : arg-max over a table

In multi-hand mode every visible card (all player hands and the upcard)
is removed from the shoe once. Each hand is then evaluated on its own
against that snapshot: the other hands' cards are out of the shoe but
their future draws are not modelled.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from shoe_ev.engine.cards import hand_to_str, parse_hand, rank_to_str, to_rank
from shoe_ev.engine.hand import HandTotals, calculate_totals
from shoe_ev.engine.rules import DEFAULT_RULES, Rules
from shoe_ev.engine.shoe import Shoe, init_shoe
from shoe_ev.solvers.finite_shoe_dp import (
    Action,
    DecisionContext,
    EvaluationState,
    action_evs,
)

logger = logging.getLogger(__name__)


# ─── Result types ─────────────────────────────────────────────────────────────


@dataclass
class HandEvaluation:
    """EV table and best move for one player hand.

    Attributes:
        hand:        Player hand as rank indices.
        totals:      Hard/soft/best totals of the hand.
        context:     Decision context the hand was evaluated under.
        action_evs:  EV of every legal action; a missing key means the
                     action is not offered.
        best_action: Action with the highest EV.
        best_ev:     EV of ``best_action``.
    """

    hand: tuple[int, ...]
    totals: HandTotals
    context: DecisionContext
    action_evs: dict[Action, float]
    best_action: Action
    best_ev: float

    def __str__(self) -> str:
        evs = "  ".join(f"{a.value}={ev:+.4f}" for a, ev in self.action_evs.items())
        return f"{hand_to_str(self.hand)} (total={self.totals.best}) | {evs} | best={self.best_action.value}"


@dataclass
class MultiHandEvaluation:
    """Results of evaluating several hands against one shared shoe.

    Attributes:
        per_hand: One HandEvaluation per input hand, in input order.
        total_ev: Sum of every hand's best EV.
        shoe:     The shared shoe snapshot the hands were evaluated on.
    """

    per_hand: list[HandEvaluation]
    total_ev: float
    shoe: Shoe


# ─── Helpers ──────────────────────────────────────────────────────────────────


def best_move(evs: dict[Action, float]) -> tuple[Action, float]:
    """Return the (action, EV) with the highest EV.

    Ties go to the action listed first in ``evs``.

    Raises:
        ValueError: If ``evs`` is empty.

    Examples:
        >>> best_move({Action.STAND: -0.2, Action.HIT: 0.1, Action.DOUBLE: 0.1})
        (<Action.HIT: 'Hit'>, 0.1)
    """
    if not evs:
        raise ValueError("Cannot pick a best move from an empty EV table.")
    best_action, best_value = None, float("-inf")
    for action, ev in evs.items():
        if ev > best_value:
            best_action, best_value = action, ev
    return best_action, best_value


def initial_context(hand: Sequence[int], upcard: int | str, rules: Rules = DEFAULT_RULES) -> DecisionContext:
    """Root decision context for a freshly dealt hand."""
    return DecisionContext(
        rules=rules,
        upcard=to_rank(upcard),
        can_double=len(hand) == 2,
        can_split=True,
        split_depth=0,
        split_aces=False,
    )


# ─── Public API ───────────────────────────────────────────────────────────────


def evaluate_hand(
    hand: Iterable[int | str],
    context: DecisionContext,
    shoe: Shoe,
    rules: Rules | None = None,
) -> HandEvaluation:
    """Evaluate every legal action for one hand.

    The shoe is recursed over in place and comes back with the same counts.
    Caches are local to this call.

    Args:
        hand:    Player cards as rank indices or symbols.
        context: Decision context (see ``initial_context`` for a root hand).
        shoe:    Shoe with every visible card already removed.
        rules:   If given, replaces ``context.rules``.

    Raises:
        ValueError: If the hand is empty or holds an invalid rank.
    """
    cards = parse_hand(hand)
    if not cards:
        raise ValueError("A hand needs at least one card.")
    if rules is not None and rules != context.rules:
        context = dataclasses.replace(context, rules=rules)

    state = EvaluationState.for_context(context, shoe)
    return _evaluate_with_state(cards, context, state)


def _evaluate_with_state(
    cards: tuple[int, ...],
    context: DecisionContext,
    state: EvaluationState,
) -> HandEvaluation:
    evs = action_evs(cards, context, state)
    action, ev = best_move(evs)
    logger.debug(
        "hand=%s up=%s remaining=%d player_memo=%d dealer_memo=%d best=%s ev=%+.6f",
        hand_to_str(cards),
        rank_to_str(context.upcard),
        state.shoe.total(),
        len(state.player_memo),
        len(state.dealer_memo),
        action.value,
        ev,
    )
    return HandEvaluation(
        hand=cards,
        totals=calculate_totals(cards),
        context=context,
        action_evs=evs,
        best_action=action,
        best_ev=ev,
    )


def evaluate_many(
    hands: Iterable[Iterable[int | str]],
    upcard: int | str,
    rules: Rules = DEFAULT_RULES,
) -> MultiHandEvaluation:
    """Evaluate several hands against one shoe with all visible cards removed.

    Args:
        hands:  Player hands as sequences of rank indices or symbols.
        upcard: Dealer upcard.
        rules:  Rule set; ``rules.decks`` sizes the shoe.

    Returns:
        MultiHandEvaluation with per-hand results and the summed best EV.

    Raises:
        ValueError: If any hand is empty or a rank is invalid.
    """
    parsed = [parse_hand(h) for h in hands]
    if any(not h for h in parsed):
        raise ValueError("A hand needs at least one card.")
    up = to_rank(upcard)
    shoe = init_shoe(rules.decks, parsed, up)

    # One state for the whole call: same shoe snapshot, rules and upcard.
    state = EvaluationState(shoe=shoe, rules=rules, upcard=up)
    per_hand = [_evaluate_with_state(cards, initial_context(cards, up, rules), state) for cards in parsed]
    total_ev = sum(r.best_ev for r in per_hand)
    logger.debug("evaluated %d hand(s) vs %s: total_ev=%+.6f", len(per_hand), rank_to_str(up), total_ev)
    return MultiHandEvaluation(per_hand=per_hand, total_ev=total_ev, shoe=shoe)


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import argparse
    import time

    parser = argparse.ArgumentParser(description="Finite-shoe blackjack EV for one or more hands.")
    parser.add_argument("cards", nargs="+", help="player ranks; separate hands with '/' (e.g. A 7 / 10 6)")
    parser.add_argument("--up", required=True, help="dealer upcard")
    parser.add_argument("--decks", type=int, default=DEFAULT_RULES.decks)
    parser.add_argument("--s17", action="store_true", help="dealer stands on soft 17")
    parser.add_argument("--payout", type=float, default=DEFAULT_RULES.blackjack_payout)
    args = parser.parse_args()

    table_rules = DEFAULT_RULES.replace(
        decks=args.decks,
        dealer_hits_soft17=not args.s17,
        blackjack_payout=args.payout,
    )
    groups: list[list[str]] = [[]]
    for token in args.cards:
        if token == "/":
            groups.append([])
        else:
            groups[-1].append(token)

    t0 = time.time()
    result = evaluate_many(groups, args.up, table_rules)
    elapsed = time.time() - t0

    print(f"Dealer upcard {args.up}, {table_rules.decks} deck(s), {result.shoe.total()} cards left")
    for evaluation in result.per_hand:
        print(f"  {evaluation}")
    print(f"Total EV: {result.total_ev:+.4f}  ({elapsed:.2f}s)")
