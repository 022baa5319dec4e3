"""
Sources - Line readers and selection inputs for the table loader
================================================================

Plain-text inputs consumed around the probability table:

    read_lines(path)
        Yield lines of a UTF-8 text file without trailing newlines.

    read_queries(lines)
        Parse a query corpus: "<query_id>\\t<token> <token> ...".
        Lines without a tab use their 1-based line number as the id.

    extract_vocabulary(queries)
        Set of every token in a query corpus (vocabulary restriction).

    select_features(lines, theta_g, theta_t)
        Tokens whose accuracy > theta_g and frequency > theta_t, from
        "<token> <accuracy> <frequency>" lines.

    Progress
        Periodic progress logging for long loads.
"""

import logging
import math
import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple, Union

from .errors import MalformedRecordError
from .settings import Config

logger = logging.getLogger("Geolocator.Sources")

Query = Tuple[str, List[str]]


def read_lines(path: Union[str, Path]) -> Iterator[str]:
    """Yield lines of a text file with line endings stripped."""
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            yield line.rstrip("\r\n")


class Progress:
    """
    Logs a progress line at most once per interval.

    Purely observational: it never changes what the caller computes.

    Example:
        >>> progress = Progress("loading", interval_seconds=10)
        >>> for line in lines:
        ...     progress.update()
        >>> progress.finish()
    """

    def __init__(
        self,
        label: str,
        interval_seconds: Optional[float] = None,
        log: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.label = label
        self.interval = (
            interval_seconds
            if interval_seconds is not None
            else Config.LOADER.PROGRESS_INTERVAL_SECONDS
        )
        self.log = log or logger
        self._clock = clock
        self.start_time = clock()
        self._last_report = self.start_time
        self.count = 0

    def update(self, count: int = 1) -> None:
        self.count += count
        now = self._clock()
        if now - self._last_report >= self.interval:
            self._last_report = now
            elapsed = now - self.start_time
            rate = self.count / elapsed if elapsed > 0 else 0.0
            self.log.info(f"{self.label}: {self.count} lines in {elapsed:.0f}s ({rate:.0f} lines/s)")

    @property
    def elapsed(self) -> float:
        return self._clock() - self.start_time

    def finish(self) -> float:
        """Log the final count and return elapsed seconds."""
        elapsed = self.elapsed
        self.log.debug(f"{self.label}: finished {self.count} lines in {elapsed:.1f}s")
        return elapsed


def read_queries(lines: Iterable[str]) -> List[Query]:
    """
    Parse a query corpus into (query_id, tokens) pairs.

    Tokens are split on whitespace; order and duplicates are kept.
    Blank lines are skipped but still advance the line number.
    """
    queries: List[Query] = []
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        if "\t" in line:
            query_id, text = line.split("\t", 1)
            query_id = query_id.strip() or str(line_number)
        else:
            query_id, text = str(line_number), line
        queries.append((query_id, text.split()))
    return queries


def extract_vocabulary(queries: Iterable[Query]) -> Set[str]:
    """Union of all tokens appearing in the queries."""
    vocabulary: Set[str] = set()
    for _, tokens in queries:
        vocabulary.update(tokens)
    return vocabulary


def parse_accuracy_line(line: str, line_number: Optional[int] = None) -> Tuple[str, float, float]:
    """
    Parse "<token> <accuracy> <frequency>".

    Raises:
        MalformedRecordError: If a field is missing or not numeric
    """
    fields = line.split()
    if len(fields) < 3:
        raise MalformedRecordError(
            f"Accuracy line needs 3 fields, got {len(fields)}",
            line_number=line_number,
        )

    token = fields[0]
    try:
        accuracy = float(fields[1])
        frequency = float(fields[2])
    except ValueError:
        raise MalformedRecordError(
            f"Non-numeric accuracy or frequency for token {token!r}",
            line_number=line_number,
        )

    if math.isnan(accuracy) or math.isnan(frequency):
        raise MalformedRecordError(
            f"NaN accuracy or frequency for token {token!r}",
            line_number=line_number,
        )

    return token, accuracy, frequency


def select_features(
    lines: Iterable[str],
    theta_g: Optional[float] = None,
    theta_t: Optional[float] = None,
) -> Set[str]:
    """
    Select tokens by historical accuracy and frequency.

    Args:
        lines: Accuracy file lines
        theta_g: Accuracy threshold (default Config.FEATURES.THETA_G)
        theta_t: Frequency threshold (default Config.FEATURES.THETA_T)

    Returns:
        Tokens with accuracy > theta_g and frequency > theta_t
    """
    _theta_g = theta_g if theta_g is not None else Config.FEATURES.THETA_G
    _theta_t = theta_t if theta_t is not None else Config.FEATURES.THETA_T
    logger.debug(f"Feature selection thresholds: theta_g={_theta_g}, theta_t={_theta_t}")

    selected: Set[str] = set()
    total = 0
    malformed = 0

    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            token, accuracy, frequency = parse_accuracy_line(line, line_number)
        except MalformedRecordError as e:
            malformed += 1
            logger.debug(f"Skipping accuracy line: {e}")
            continue

        total += 1
        if accuracy > _theta_g and frequency > _theta_t:
            selected.add(token)

    logger.info(f"{len(selected)} tokens selected from the total of {total} tokens")
    if total:
        logger.info(f"Ratio of the selected tokens: {len(selected) / total:.4f}")
    if malformed:
        logger.warning(f"Skipped {malformed} malformed accuracy lines")

    return selected


def load_feature_selection(
    path: Union[str, Path],
    theta_g: Optional[float] = None,
    theta_t: Optional[float] = None,
) -> Set[str]:
    """select_features() over an accuracy file."""
    logger.info(f"Selecting features from {path}")
    return select_features(read_lines(path), theta_g, theta_t)
