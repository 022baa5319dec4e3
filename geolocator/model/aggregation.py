"""
Cell Aggregation - Per-cell evidence for one query
==================================================

Sums weighted token evidence per cell:

         S
    p(c) = Σ p(c|t_i) * w(e(t_i))
        i=1

where w is the Gaussian entropy weight. Tokens missing from the table
contribute nothing. Repeated tokens contribute once per occurrence.
"""

from dataclasses import dataclass
from typing import Dict, Iterable

from .cells import CellId
from .table import ProbabilityTable
from .weighting import GaussianWeight


@dataclass
class CellScore:
    """Accumulated evidence for one cell within one query."""
    total: float = 0.0
    count: int = 0

    def add(self, value: float) -> None:
        self.total += value
        self.count += 1


def aggregate(
    tokens: Iterable[str],
    table: ProbabilityTable,
    weight: GaussianWeight,
) -> Dict[CellId, CellScore]:
    """
    Aggregate weighted cell probabilities over the query tokens.

    Args:
        tokens: Query tokens, in any order, duplicates allowed
        table: Probability table
        weight: Entropy weight model fit for this table

    Returns:
        Fresh map of cell id -> CellScore (empty when no token is known)
    """
    cell_scores: Dict[CellId, CellScore] = {}

    for token in tokens:
        if token not in table:
            continue

        w = weight.weight(table.entropy(token))
        for cell_id, prob in table.cells(token).items():
            score = cell_scores.get(cell_id)
            if score is None:
                score = cell_scores[cell_id] = CellScore()
            score.add(prob * w)

    return cell_scores
