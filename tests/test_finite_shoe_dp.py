"""
Tests for shoe_ev/solvers/finite_shoe_dp.py: per-action EV recursion.

Shoes holding a single rank make every draw certain, so several tables
below are checked against exact hand-derived values.
"""

from __future__ import annotations

import numpy as np
import pytest

from shoe_ev.engine.cards import RANK_ACE, RANK_TEN, str_to_rank
from shoe_ev.engine.rules import DEFAULT_RULES, Rules
from shoe_ev.engine.shoe import Shoe, init_shoe
from shoe_ev.solvers.finite_shoe_dp import (
    BUST_EV,
    SURRENDER_EV,
    Action,
    DecisionContext,
    EvaluationState,
    _ev_stand,
    _hand_signature,
    action_evs,
    best_ev,
)
from tests.conftest import hand

SIX = str_to_rank('6')


def only(rank_counts: dict[str, int], decks: int = 1) -> Shoe:
    counts = np.zeros(13, dtype=np.int16)
    for symbol, n in rank_counts.items():
        counts[str_to_rank(symbol)] = n
    return Shoe(decks, counts)


def root(upcard: int, rules: Rules = DEFAULT_RULES, **flags) -> DecisionContext:
    return DecisionContext(rules=rules, upcard=upcard, **flags)


def table(cards, ctx: DecisionContext, shoe: Shoe) -> dict[Action, float]:
    return action_evs(cards, ctx, EvaluationState.for_context(ctx, shoe))


# ─── DecisionContext ──────────────────────────────────────────────────────────


class TestDecisionContext:
    def test_defaults(self):
        ctx = root(SIX)
        assert ctx.can_double and ctx.can_split
        assert ctx.split_depth == 0
        assert not ctx.split_aces

    def test_split_child_flags(self):
        child = root(SIX).split_child(splitting_aces=False)
        assert child.split_depth == 1
        assert child.can_double == DEFAULT_RULES.double_after_split
        assert child.can_split
        assert not child.split_aces

    def test_no_das(self):
        child = root(SIX, Rules(double_after_split=False)).split_child(False)
        assert not child.can_double

    def test_resplit_limit(self):
        ctx = root(SIX, Rules(max_resplits=1))
        child = ctx.split_child(False)
        assert child.can_split
        grandchild = child.split_child(False)
        assert not grandchild.can_split

    def test_no_resplits(self):
        assert not root(SIX, Rules(max_resplits=0)).split_child(False).can_split

    def test_aces_need_resplit_aces(self):
        assert not root(SIX, Rules(resplit_aces=False)).split_child(True).can_split
        assert root(SIX, Rules(resplit_aces=True)).split_child(True).can_split

    def test_forced_stand(self):
        assert root(SIX).split_child(True).forced_stand
        assert not root(SIX, Rules(split_aces_one_card=False)).split_child(True).forced_stand
        assert not root(SIX).split_child(False).forced_stand


# ─── Memo key ─────────────────────────────────────────────────────────────────


class TestHandSignature:
    def test_order_independent(self):
        assert _hand_signature(hand('A', '5', '9')) == _hand_signature(hand('9', 'A', '5'))

    def test_face_cards_equivalent(self):
        assert _hand_signature(hand('K', '6')) == _hand_signature(hand('10', '6'))

    def test_distinct_compositions(self):
        assert _hand_signature(hand('9', '7')) != _hand_signature(hand('10', '6'))
        assert _hand_signature(hand('8', '8')) != _hand_signature(hand('8', '8', '8'))


# ─── Legality ─────────────────────────────────────────────────────────────────


class TestLegalActions:
    def test_bust_hand_stand_only(self):
        shoe = init_shoe(1, [['10', '10', '5']], '6')
        assert table(hand('10', '10', '5'), root(SIX), shoe) == {Action.STAND: BUST_EV}

    def test_initial_two_card_hand(self):
        shoe = init_shoe(1, [['10', '6']], '10')
        evs = table(hand('10', '6'), root(RANK_TEN), shoe)
        assert list(evs) == [Action.STAND, Action.HIT, Action.DOUBLE, Action.SURRENDER]
        assert evs[Action.SURRENDER] == SURRENDER_EV

    def test_no_surrender_rule(self):
        rules = Rules(late_surrender=False)
        shoe = init_shoe(1, [['10', '6']], '10')
        assert Action.SURRENDER not in table(hand('10', '6'), root(RANK_TEN, rules), shoe)

    def test_no_double_rule(self):
        rules = Rules(double_allowed=False)
        shoe = init_shoe(1, [['10', '6']], '10')
        assert Action.DOUBLE not in table(hand('10', '6'), root(RANK_TEN, rules), shoe)

    def test_context_forbids_double(self):
        shoe = init_shoe(1, [['10', '6']], '10')
        assert Action.DOUBLE not in table(hand('10', '6'), root(RANK_TEN, can_double=False), shoe)

    def test_three_card_hand_stand_or_hit(self):
        shoe = init_shoe(1, [['5', '5', '6']], '10')
        assert list(table(hand('5', '5', '6'), root(RANK_TEN), shoe)) == [Action.STAND, Action.HIT]

    def test_no_surrender_after_split(self):
        ctx = root(RANK_TEN, Rules(split_aces_one_card=False)).split_child(False)
        shoe = init_shoe(1, [['10', '6']], '10')
        assert Action.SURRENDER not in table(hand('10', '6'), ctx, shoe)

    def test_split_aces_one_card_stand_only(self):
        ctx = root(SIX).split_child(splitting_aces=True)
        shoe = init_shoe(1, [['A', 'A', '5']], '6')
        assert list(table(hand('A', '5'), ctx, shoe)) == [Action.STAND]

    def test_split_aces_without_one_card_rule(self):
        ctx = root(SIX, Rules(split_aces_one_card=False)).split_child(splitting_aces=True)
        shoe = init_shoe(1, [['A', 'A', '5']], '6')
        assert list(table(hand('A', '5'), ctx, shoe)) == [Action.STAND, Action.HIT, Action.DOUBLE]

    def test_no_blackjack_after_split(self):
        ctx = root(SIX).split_child(splitting_aces=False)
        shoe = init_shoe(1, [['K', 'K', 'A']], '6')
        evs = table(hand('K', 'A'), ctx, shoe)
        assert Action.BLACKJACK not in evs
        assert Action.STAND in evs

    def test_face_pair_is_splittable(self):
        shoe = only({'10': 4})
        assert Action.SPLIT in table(hand('K', 'Q'), root(SIX), shoe)

    def test_context_forbids_split(self):
        shoe = only({'10': 4})
        assert Action.SPLIT not in table(hand('K', 'Q'), root(SIX, can_split=False), shoe)


# ─── Blackjack ────────────────────────────────────────────────────────────────


class TestBlackjack:
    def test_bypasses_action_tree(self):
        shoe = init_shoe(6, [['A', 'K']], '6')
        assert table(hand('A', 'K'), root(SIX), shoe) == {Action.BLACKJACK: 1.5}

    def test_six_to_five(self):
        rules = Rules(blackjack_payout=1.2)
        shoe = init_shoe(6, [['A', 'K']], '6')
        assert table(hand('A', 'K'), root(SIX, rules), shoe) == {Action.BLACKJACK: 1.2}

    def test_vs_ace_pushes_on_dealer_natural(self):
        shoe = init_shoe(1, [['A', 'K']], 'A')
        evs = table(hand('A', 'K'), root(RANK_ACE), shoe)
        assert evs[Action.BLACKJACK] == pytest.approx((1 - 15 / 49) * 1.5)


# ─── Exact values on single-rank shoes ────────────────────────────────────────


class TestSingleRankShoes:
    def test_hit_to_21(self):
        # Only 5s left. Dealer 10 + 5 + 5 = 20; player 16 + 5 = 21.
        evs = table(hand('10', '6'), root(RANK_TEN), only({'5': 4}))
        assert evs == {
            Action.STAND: -1.0,
            Action.HIT: 1.0,
            Action.DOUBLE: 2.0,
            Action.SURRENDER: -0.5,
        }

    def test_split_tens_sequential_approximation(self):
        # Only tens left; dealer 6 needs two tens to bust. Each split hand is
        # completed against the shoe as it stands at the split, so both halves
        # see the same tens and resplitting compounds.
        evs = table(hand('K', 'Q'), root(SIX), only({'10': 4}))
        assert evs[Action.STAND] == 1.0
        assert evs[Action.HIT] == -1.0
        assert evs[Action.DOUBLE] == -2.0
        assert evs[Action.SPLIT] == 4.0

    def test_split_tens_without_resplit(self):
        rules = Rules(max_resplits=0)
        evs = table(hand('K', 'Q'), root(SIX, rules), only({'10': 4}))
        assert evs[Action.SPLIT] == 2.0

    def test_empty_shoe_draws_weigh_zero(self):
        evs = table(hand('10', '6'), root(RANK_TEN), only({}))
        assert evs[Action.STAND] == 0.0
        assert evs[Action.HIT] == 0.0
        assert evs[Action.DOUBLE] == 0.0


# ─── Real shoes ───────────────────────────────────────────────────────────────


class TestRealShoe:
    def test_hard_20_vs_6(self):
        shoe = init_shoe(1, [['10', 'K']], '6')
        evs = table(hand('10', 'K'), root(SIX), shoe)
        assert evs[Action.STAND] > 0.5
        assert evs[Action.HIT] < evs[Action.STAND]
        assert evs[Action.DOUBLE] < evs[Action.STAND]

    def test_double_is_twice_one_card_stand(self):
        cards = hand('6', '5')
        ctx = root(SIX)
        shoe = init_shoe(1, [cards], '6')
        state = EvaluationState.for_context(ctx, shoe)
        evs = action_evs(cards, ctx, state)

        expected = 0.0
        for rank, prob in shoe.weighted_ranks():
            with shoe.drawn(rank):
                expected += prob * _ev_stand((*cards, rank), state)
        assert evs[Action.DOUBLE] == pytest.approx(2.0 * expected)

    def test_stand_ev_bounds(self):
        shoe = init_shoe(1, [['10', '7']], '9')
        evs = table(hand('10', '7'), root(str_to_rank('9')), shoe)
        assert -1.0 <= evs[Action.STAND] <= 1.0

    def test_best_ev_is_max_of_table(self):
        cards = hand('10', '5', '3')
        ctx = root(RANK_TEN)
        shoe = init_shoe(1, [cards], '10')
        state = EvaluationState.for_context(ctx, shoe)
        assert best_ev(cards, ctx, state) == max(action_evs(cards, ctx, state).values())

    def test_shoe_restored(self):
        cards = hand('10', '4')
        shoe = init_shoe(1, [cards], '10')
        before = shoe.counts.copy()
        table(cards, root(RANK_TEN), shoe)
        assert np.array_equal(shoe.counts, before)
        assert shoe.total() == 49

    def test_memo_populated(self):
        cards = hand('10', '5')
        ctx = root(RANK_TEN)
        state = EvaluationState.for_context(ctx, init_shoe(1, [cards], '10'))
        action_evs(cards, ctx, state)
        assert state.player_memo
        assert state.dealer_memo
        assert state.dealer_dists
