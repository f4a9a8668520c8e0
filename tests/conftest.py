"""
Shared pytest fixtures for the finite-shoe solver tests.

Provides a ``hand()`` helper that turns rank symbols into rank tuples,
plus fresh shoes and the default rule set.
"""

from __future__ import annotations

import pytest

from shoe_ev.engine.cards import parse_hand
from shoe_ev.engine.rules import DEFAULT_RULES, Rules
from shoe_ev.engine.shoe import Shoe, create_shoe


def hand(*ranks: str) -> tuple[int, ...]:
    """Build a hand tuple from rank symbols.

    Examples:
        >>> hand('A', 'A')
        (12, 12)
        >>> hand('7', '7', '7')
        (5, 5, 5)
    """
    return parse_hand(ranks)


@pytest.fixture
def fresh_shoe() -> Shoe:
    """Return a full six-deck shoe."""
    return create_shoe(6)


@pytest.fixture
def single_deck() -> Shoe:
    """Return a full single-deck shoe."""
    return create_shoe(1)


@pytest.fixture
def default_rules() -> Rules:
    return DEFAULT_RULES


@pytest.fixture
def h():
    """Expose the hand() helper as a fixture for convenience."""
    return hand
