"""Composition-dependent strategy charts built from the finite-shoe solver.

Each cell is one two-card hand against one dealer upcard, evaluated on a
fresh shoe of ``rules.decks`` decks with the hand and the upcard removed.

    build_strategy_chart(hands, upcards, rules): StrategyChart of NumPy matrices
    print_strategy_chart(chart, label)         : terminal grid of action codes
    plot_strategy_chart(chart, title, ...)     : matplotlib heat map of best EV

Matrix convention:
    Shape  : (len(hands), len(upcards)), rows = hands and cols = upcards
    actions: one-letter codes (see ACTION_CODES)
    evs    : best EV per cell, float64
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import matplotlib
import matplotlib.colors
import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np

from shoe_ev.engine.cards import hand_to_str, parse_hand, rank_to_str, to_rank
from shoe_ev.engine.rules import DEFAULT_RULES, Rules
from shoe_ev.engine.shoe import init_shoe
from shoe_ev.solvers.evaluate import evaluate_hand, initial_context
from shoe_ev.solvers.finite_shoe_dp import Action

# ─── Constants ────────────────────────────────────────────────────────────────

ACTION_CODES: dict[Action, str] = {
    Action.STAND: "S",
    Action.HIT: "H",
    Action.DOUBLE: "D",
    Action.SURRENDER: "R",
    Action.SPLIT: "P",
    Action.BLACKJACK: "B",
}

DEFAULT_UPCARDS: list[str] = ["2", "3", "4", "5", "6", "7", "8", "9", "10", "A"]

DEFAULT_HANDS: list[tuple[str, ...]] = [
    # hard 9–16
    ("5", "4"), ("6", "4"), ("7", "4"), ("10", "2"),
    ("10", "3"), ("10", "4"), ("10", "5"), ("10", "6"),
    # soft 13–18
    ("A", "2"), ("A", "3"), ("A", "4"), ("A", "5"), ("A", "6"), ("A", "7"),
    # pairs
    ("2", "2"), ("3", "3"), ("6", "6"), ("7", "7"), ("8", "8"), ("9", "9"), ("A", "A"),
]

_EV_CMAP_NAME: str = "RdYlGn"


@dataclass
class StrategyChart:
    """Best actions and EVs for a grid of hands × upcards."""

    hands: list[tuple[int, ...]]
    upcards: list[int]
    actions: np.ndarray
    evs: np.ndarray
    rules: Rules

    @property
    def row_labels(self) -> list[str]:
        return [hand_to_str(h) for h in self.hands]

    @property
    def col_labels(self) -> list[str]:
        return [rank_to_str(u) for u in self.upcards]


# ─── Data builder ─────────────────────────────────────────────────────────────


def build_strategy_chart(
    hands: Sequence[Sequence[int | str]] = DEFAULT_HANDS,
    upcards: Sequence[int | str] = DEFAULT_UPCARDS,
    rules: Rules = DEFAULT_RULES,
) -> StrategyChart:
    """Evaluate every (hand, upcard) cell and collect best action and EV.

    Every cell is solved exactly, so a full default chart takes a while;
    pass a subset of hands or upcards for a quick look.

    Args:
        hands:   Two-card (or longer) player hands, as symbols or indices.
        upcards: Dealer upcards.
        rules:   Rule set; ``rules.decks`` sizes each cell's shoe.

    Returns:
        StrategyChart with ``actions`` (dtype '<U1') and ``evs`` (float64).
    """
    parsed_hands = [parse_hand(h) for h in hands]
    parsed_ups = [to_rank(u) for u in upcards]

    actions = np.full((len(parsed_hands), len(parsed_ups)), "", dtype="<U1")
    evs = np.full((len(parsed_hands), len(parsed_ups)), np.nan)

    for r, cards in enumerate(parsed_hands):
        for c, up in enumerate(parsed_ups):
            shoe = init_shoe(rules.decks, [cards], up)
            result = evaluate_hand(cards, initial_context(cards, up, rules), shoe)
            actions[r, c] = ACTION_CODES[result.best_action]
            evs[r, c] = result.best_ev

    return StrategyChart(hands=parsed_hands, upcards=parsed_ups, actions=actions, evs=evs, rules=rules)


# ─── Terminal display ─────────────────────────────────────────────────────────


def print_strategy_chart(
    chart: StrategyChart,
    label: str,
    *,
    show_ev: bool = False,
) -> None:
    """Print the chart as a terminal grid.

    Rows: hands. Cols: dealer upcards. Cells: action codes, or the best EV
    rounded to 3 decimals when ``show_ev=True``.
    """
    col_w = 7 if show_ev else 4
    header = "".join(f"{lbl:>{col_w}}" for lbl in chart.col_labels)
    divider = "─" * (10 + col_w * len(chart.upcards))

    print(f"\nStrategy Chart: {label}")
    print(f"{'':10}{header}")
    print(divider)

    for r, row_label in enumerate(chart.row_labels):
        cells = ""
        for c in range(len(chart.upcards)):
            cell = f"{chart.evs[r, c]:+.3f}" if show_ev else str(chart.actions[r, c])
            cells += f"{cell:>{col_w}}"
        print(f"{row_label:<10}{cells}")

    codes = "  ".join(f"{code}={action.value}" for action, code in ACTION_CODES.items())
    print(f"\n{codes}")


# ─── Heat map ─────────────────────────────────────────────────────────────────


def _make_ev_cmap() -> matplotlib.colors.Colormap:
    """RdYlGn gradient: red = losing cell, green = winning cell."""
    cmap = matplotlib.colormaps[_EV_CMAP_NAME].copy()
    cmap.set_bad(color="#cccccc")
    return cmap


def plot_strategy_chart(
    chart: StrategyChart,
    title: str,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot best EV per cell as a heat map annotated with action codes.

    The colour scale is symmetric around 0 so that break-even cells are
    yellow whatever the EV range.

    Args:
        chart:     StrategyChart from build_strategy_chart().
        title:     Figure title.
        show:      If True, call plt.show().
        save_path: If not None, save the figure to this path.

    Returns:
        matplotlib.figure.Figure.
    """
    n_rows, n_cols = chart.evs.shape
    fig, ax = plt.subplots(figsize=(1.0 + 0.7 * n_cols, 1.0 + 0.4 * n_rows))
    fig.suptitle(title, fontsize=13, fontweight="bold")

    finite = chart.evs[np.isfinite(chart.evs)]
    bound = float(np.max(np.abs(finite))) if finite.size else 1.0
    bound = bound or 1.0

    im = ax.imshow(
        np.ma.masked_invalid(chart.evs),
        cmap=_make_ev_cmap(),
        vmin=-bound,
        vmax=bound,
        aspect="auto",
    )

    ax.set_xticks(range(n_cols))
    ax.set_xticklabels(chart.col_labels, fontsize=9)
    ax.set_yticks(range(n_rows))
    ax.set_yticklabels(chart.row_labels, fontsize=9)
    ax.set_xlabel("Dealer upcard", fontsize=9)
    ax.set_ylabel("Player hand", fontsize=9)

    for r in range(n_rows):
        for c in range(n_cols):
            if not np.isfinite(chart.evs[r, c]):
                continue
            ax.text(c, r, chart.actions[r, c], ha="center", va="center", fontsize=9, fontweight="bold")

    plt.colorbar(im, ax=ax, label="Best EV", fraction=0.046, pad=0.04)
    plt.tight_layout()

    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()

    return fig


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys
    import time

    decks = int(sys.argv[1]) if len(sys.argv) > 1 else 1
    chart_rules = DEFAULT_RULES.replace(decks=decks)

    print(f"Solving strategy chart for {decks} deck(s) …")
    t0 = time.time()
    result = build_strategy_chart(rules=chart_rules)
    print(f"Solved in {time.time() - t0:.1f}s")

    print_strategy_chart(result, f"{decks} deck(s), H17, DAS")
    plot_strategy_chart(result, f"Best action by hand ({decks} deck(s))", show=False, save_path="strategy_chart.png")
    print("Saved: strategy_chart.png")
