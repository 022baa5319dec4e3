"""
MLC Selection - Most Likely Cell and its confidence
===================================================

Picks the cell with the highest aggregate score and measures how much of
the query's evidence lies near it.

Selection
---------
    One pass over the candidates finds the maximum score and the total
    mass together. Exact score ties go to the smallest cell id, so equal
    inputs always give the same answer.

Confidence
----------
    Square window of half-width l (degrees) around the winner's decoded
    coordinates, bounds inclusive on both axes:

        confidence = Σ score(c in window) / Σ score(c)

    Always within [0, 1]. When every score underflowed to zero the
    confidence is 0.0.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from .aggregation import CellScore
from .cells import CellCodec, CellId
from .validation import validate_window


@dataclass(frozen=True)
class CellEstimate:
    """Most Likely Cell for one query."""
    cell: CellId
    latitude: float
    longitude: float
    confidence: float
    score: float
    token_count: int
    candidates: int

    def to_dict(self) -> dict:
        return {
            "cell": self.cell,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "confidence": round(self.confidence, 6),
            "score": self.score,
            "tokenCount": self.token_count,
            "candidates": self.candidates,
        }


def window_confidence(
    cell_scores: Mapping[CellId, CellScore],
    codec: CellCodec,
    winner: CellId,
    window: float,
    total: float,
) -> float:
    """
    Fraction of total mass inside the square window around ``winner``.

    Args:
        cell_scores: Candidate cells for the query
        codec: Codec that produced the cell ids
        winner: Selected cell id
        window: Half-width of the window, same units as decoded coordinates
        total: Sum of all candidate scores

    Returns:
        Confidence in [0, 1]. With no mass at all (every weight underflowed)
        it is 1.0 when the window holds every candidate and 0.0 otherwise.
    """
    m_lat, m_lon = codec.decode(winner)
    inside = 0.0
    outside = 0

    for cell_id, score in cell_scores.items():
        lat, lon = codec.decode(cell_id)
        if (m_lat - window <= lat <= m_lat + window
                and m_lon - window <= lon <= m_lon + window):
            inside += score.total
        else:
            outside += 1

    if total <= 0.0:
        return 0.0 if outside else 1.0

    return min(1.0, max(0.0, inside / total))


def select_mlc(
    cell_scores: Mapping[CellId, CellScore],
    codec: CellCodec,
    window: Optional[float] = None,
) -> Optional[CellEstimate]:
    """
    Select the Most Likely Cell.

    Args:
        cell_scores: Output of aggregate()
        codec: Codec that produced the cell ids
        window: Confidence half-width (default Config.SCORING.CONFIDENCE_WINDOW)

    Returns:
        CellEstimate, or None when there are no candidates
    """
    if not cell_scores:
        return None

    _window = validate_window(window)

    best_id: Optional[CellId] = None
    best: Optional[CellScore] = None
    total = 0.0

    for cell_id, score in cell_scores.items():
        total += score.total
        if (best is None
                or score.total > best.total
                or (score.total == best.total and cell_id < best_id)):
            best_id, best = cell_id, score

    lat, lon = codec.decode(best_id)

    return CellEstimate(
        cell=best_id,
        latitude=lat,
        longitude=lon,
        confidence=window_confidence(cell_scores, codec, best_id, _window, total),
        score=best.total,
        token_count=best.count,
        candidates=len(cell_scores),
    )
