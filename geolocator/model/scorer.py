"""
Scorer - Query-level entry points
=================================

    score(tokens, bundle, window)
        Aggregate the query's evidence and select the Most Likely Cell.
        Returns None when no token of the query is in the table.

    score_batch(queries, bundle, window, max_workers)
        Score independent queries on a thread pool. All workers read the
        same immutable bundle; no locking is needed. Results keep input
        order, and a failing query yields None without stopping the batch.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

from .aggregation import aggregate
from .selection import CellEstimate, select_mlc
from .settings import Config
from .table import TableBundle

logger = logging.getLogger("Geolocator.Scorer")

ScoredQuery = Tuple[str, Optional[CellEstimate]]


def score(
    tokens: Iterable[str],
    bundle: TableBundle,
    window: Optional[float] = None,
) -> Optional[CellEstimate]:
    """
    Estimate the Most Likely Cell for a list of tokens.

    Example:
        >>> estimate = score(["eiffel", "louvre"], bundle)
        >>> estimate.cell, (estimate.latitude, estimate.longitude)
        (499892120, (48.85, 2.35))
    """
    cell_scores = aggregate(tokens, bundle.table, bundle.weight)
    return select_mlc(cell_scores, bundle.codec, window)


def _score_one(query_id: str, tokens: Sequence[str], bundle: TableBundle,
               window: Optional[float]) -> ScoredQuery:
    try:
        return query_id, score(tokens, bundle, window)
    except Exception as e:
        logger.error(f"Error scoring query {query_id}: {e}")
        return query_id, None


def score_batch(
    queries: Iterable[Tuple[str, Sequence[str]]],
    bundle: TableBundle,
    window: Optional[float] = None,
    max_workers: Optional[int] = None,
) -> List[ScoredQuery]:
    """
    Score many queries concurrently against one bundle.

    Args:
        queries: (query_id, tokens) pairs
        bundle: Shared table bundle
        window: Confidence half-width (default from Config.SCORING)
        max_workers: Thread count (default Config.WORKER.MAX_WORKERS)

    Returns:
        (query_id, estimate or None) in input order
    """
    workers = max_workers or Config.WORKER.MAX_WORKERS
    queries = list(queries)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [
            pool.submit(_score_one, query_id, tokens, bundle, window)
            for query_id, tokens in queries
        ]
        results = [f.result() for f in futures]

    located = sum(1 for _, estimate in results if estimate is not None)
    logger.info(f"Scored {len(results)} queries ({located} located, {len(results) - located} without coverage)")
    return results
