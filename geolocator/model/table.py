"""
Probability Table - Token to cell probabilities with spatial entropy
====================================================================

Loads the precomputed token/cell statistics that drive location scoring
and fits the entropy weight model over exactly the retained tokens.

Source Format
-------------
One record per line, tab-delimited:

    <token>\\t<entropy>\\t<cell>><prob> <cell>><prob> ...

    token:    word or tag, used verbatim
    entropy:  spatial entropy of the token (finite, >= 0)
    cells:    space-separated cell>probability pairs, 0 < prob <= 1

Parsing Policy
--------------
    parse_record() never raises for bad input; it returns a RecordParse
    carrying either the record or the MalformedRecordError. Bad cell pairs
    inside an otherwise valid line are dropped one by one and reported as
    MalformedCellError entries. A line whose every pair is bad is itself
    malformed.

    build_table() skips and counts malformed lines and pairs by default.
    With LoadOptions(strict=True) the first error aborts the build.

Selection Filters
-----------------
    vocabulary:         keep only tokens in this set (None = keep all)
    selected_features:  keep only tokens in this set (None = disabled)

    A token is kept when it passes both. Filtering happens before a line
    is parsed, so malformed lines of filtered tokens are never examined.

Lifecycle
---------
    The returned TableBundle (table + weight model + codec + report) is
    immutable and may be shared by any number of concurrent scorers.
    Several bundles built with different options can coexist.

Public Functions
----------------
    parse_cell_pair(pair, codec)
    parse_record(line, codec, line_number)
    build_table(lines, codec, options, progress)
    load_table(path, codec, options)
"""

import logging
import math
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import (
    AbstractSet, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
)

from .cells import CellCodec, CellId, get_codec
from .errors import EmptyTableError, MalformedCellError, MalformedRecordError
from .settings import Config
from .sources import Progress, read_lines
from .weighting import GaussianWeight

logger = logging.getLogger("Geolocator.Table")

FIELD_SEPARATOR = "\t"
PAIR_SEPARATOR = ">"
REQUIRED_FIELDS = 3


# ═══════════════════════════════════════════════════════════════════════════════
# Data Classes
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TableRecord:
    """One parsed table line."""
    token: str
    entropy: float
    cells: Dict[CellId, float]


@dataclass(frozen=True)
class RecordParse:
    """Outcome of parsing one line: a record or the reason it was rejected."""
    record: Optional[TableRecord] = None
    error: Optional[MalformedRecordError] = None
    cell_errors: Tuple[MalformedCellError, ...] = ()

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class LoadOptions:
    """Selection filters and strictness for build_table()."""
    vocabulary: Optional[AbstractSet[str]] = None
    selected_features: Optional[AbstractSet[str]] = None
    strict: bool = False
    skip_header: bool = False

    @classmethod
    def from_config(
        cls,
        vocabulary: Optional[AbstractSet[str]] = None,
        selected_features: Optional[AbstractSet[str]] = None,
    ) -> "LoadOptions":
        """Options with strictness and header handling from Config.LOADER."""
        return cls(
            vocabulary=vocabulary,
            selected_features=selected_features,
            strict=Config.LOADER.STRICT,
            skip_header=Config.LOADER.SKIP_HEADER,
        )


@dataclass(frozen=True)
class LoadReport:
    """Counters collected while building a table, fixed once the build ends."""
    lines_read: int = 0
    blank_lines: int = 0
    header_skipped: bool = False
    tokens_loaded: int = 0
    duplicate_tokens: int = 0
    malformed_records: int = 0
    malformed_cells: int = 0
    filtered_by_vocabulary: int = 0
    filtered_by_features: int = 0
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict:
        return {
            "linesRead": self.lines_read,
            "blankLines": self.blank_lines,
            "headerSkipped": self.header_skipped,
            "tokensLoaded": self.tokens_loaded,
            "duplicateTokens": self.duplicate_tokens,
            "malformedRecords": self.malformed_records,
            "malformedCells": self.malformed_cells,
            "filteredByVocabulary": self.filtered_by_vocabulary,
            "filteredByFeatures": self.filtered_by_features,
            "elapsedSeconds": round(self.elapsed_seconds, 3),
        }


class ProbabilityTable:
    """
    Read-only token -> {cell: probability} map with per-token entropy.

    Every token in the table has an entropy value and at least one cell.
    """

    def __init__(
        self,
        probabilities: Mapping[str, Mapping[CellId, float]],
        entropies: Mapping[str, float],
    ):
        if set(probabilities) != set(entropies):
            raise ValueError("probabilities and entropies must cover the same tokens")

        self._probabilities = MappingProxyType({
            token: MappingProxyType(dict(cells))
            for token, cells in probabilities.items()
        })
        self._entropies = MappingProxyType(dict(entropies))

    def __contains__(self, token: object) -> bool:
        return token in self._probabilities

    def __len__(self) -> int:
        return len(self._probabilities)

    def __iter__(self) -> Iterator[str]:
        return iter(self._probabilities)

    def cells(self, token: str) -> Mapping[CellId, float]:
        """Cell probabilities for a token (KeyError if absent)."""
        return self._probabilities[token]

    def entropy(self, token: str) -> float:
        """Spatial entropy for a token (KeyError if absent)."""
        return self._entropies[token]

    @property
    def entropies(self) -> Mapping[str, float]:
        return self._entropies

    @property
    def cell_count(self) -> int:
        """Number of distinct cells referenced by any token."""
        seen = set()
        for cells in self._probabilities.values():
            seen.update(cells)
        return len(seen)


@dataclass(frozen=True)
class TableBundle:
    """Everything a scorer needs, built once and shared read-only."""
    table: ProbabilityTable
    weight: GaussianWeight
    codec: CellCodec
    report: LoadReport = field(default_factory=LoadReport, compare=False)

    def to_dict(self) -> dict:
        return {
            "tokens": len(self.table),
            "cells": self.table.cell_count,
            "codec": self.codec.name,
            "precision": self.codec.precision,
            "weight": self.weight.to_dict(),
            "load": self.report.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════════

def parse_cell_pair(pair: str, codec: CellCodec) -> Tuple[CellId, float]:
    """
    Parse one "<cell>><probability>" pair.

    Raises:
        MalformedCellError: If the separator is missing, the cell text is
            invalid, or the probability is not in (0, 1]
    """
    parts = pair.split(PAIR_SEPARATOR)
    if len(parts) != 2:
        raise MalformedCellError(
            f"Cell pair must look like cell>probability, got {pair!r}",
            details={"pair": pair},
        )

    cell_text, prob_text = parts
    cell_id = codec.encode(cell_text)

    try:
        prob = float(prob_text)
    except ValueError:
        raise MalformedCellError(
            f"Non-numeric probability in pair {pair!r}",
            details={"pair": pair},
        )

    if not (0.0 < prob <= 1.0):
        raise MalformedCellError(
            f"Probability out of range (0, 1] in pair {pair!r}",
            details={"pair": pair},
        )

    return cell_id, prob


def parse_record(
    line: str,
    codec: CellCodec,
    line_number: Optional[int] = None,
) -> RecordParse:
    """
    Parse one table line.

    Args:
        line: Raw line without trailing newline
        codec: Codec used to encode cell text
        line_number: 1-based position, for error details

    Returns:
        RecordParse with the record (and any dropped-pair errors), or the
        MalformedRecordError explaining why the whole line was rejected
    """
    fields = line.split(FIELD_SEPARATOR)
    if len(fields) < REQUIRED_FIELDS:
        return RecordParse(error=MalformedRecordError(
            f"Expected {REQUIRED_FIELDS} tab-separated fields, got {len(fields)}",
            line_number=line_number,
        ))

    token = fields[0]
    if not token.strip():
        return RecordParse(error=MalformedRecordError(
            "Empty token", line_number=line_number,
        ))

    try:
        entropy = float(fields[1])
    except ValueError:
        return RecordParse(error=MalformedRecordError(
            f"Non-numeric entropy for token {token!r}: {fields[1]!r}",
            line_number=line_number,
        ))

    if not math.isfinite(entropy) or entropy < 0.0:
        return RecordParse(error=MalformedRecordError(
            f"Entropy must be finite and non-negative for token {token!r}: {entropy}",
            line_number=line_number,
        ))

    cells: Dict[CellId, float] = {}
    cell_errors: List[MalformedCellError] = []
    for pair in fields[2].split():
        try:
            cell_id, prob = parse_cell_pair(pair, codec)
        except MalformedCellError as e:
            cell_errors.append(e)
            continue
        cells[cell_id] = prob

    if not cells:
        return RecordParse(
            error=MalformedRecordError(
                f"No valid cell pairs for token {token!r}",
                line_number=line_number,
            ),
            cell_errors=tuple(cell_errors),
        )

    return RecordParse(
        record=TableRecord(token=token, entropy=entropy, cells=cells),
        cell_errors=tuple(cell_errors),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Building
# ═══════════════════════════════════════════════════════════════════════════════

def build_table(
    lines: Iterable[str],
    codec: Optional[CellCodec] = None,
    options: Optional[LoadOptions] = None,
    progress: Optional[Progress] = None,
) -> TableBundle:
    """
    Build the probability table and its weight model from table lines.

    Args:
        lines: Source table lines
        codec: Cell codec (default from Config.CELLS)
        options: Filters and strictness (default LoadOptions.from_config())
        progress: Optional progress reporter, updated once per line

    Returns:
        Immutable TableBundle

    Raises:
        MalformedRecordError / MalformedCellError: Only when options.strict
        EmptyTableError: If no token is retained
        DegenerateDistributionError: If retained entropies have no spread
    """
    codec = codec or get_codec()
    options = options or LoadOptions.from_config()
    counts: Counter = Counter()
    header_skipped = False
    start_time = time.time()

    probabilities: Dict[str, Dict[CellId, float]] = {}
    entropies: Dict[str, float] = {}

    for line_number, line in enumerate(lines, start=1):
        counts["lines_read"] += 1
        if progress is not None:
            progress.update()

        if line_number == 1 and options.skip_header:
            header_skipped = True
            continue

        if not line.strip():
            counts["blank_lines"] += 1
            continue

        token = line.split(FIELD_SEPARATOR, 1)[0]
        if options.vocabulary is not None and token not in options.vocabulary:
            counts["filtered_by_vocabulary"] += 1
            continue
        if options.selected_features is not None and token not in options.selected_features:
            counts["filtered_by_features"] += 1
            continue

        parsed = parse_record(line, codec, line_number)
        counts["malformed_cells"] += len(parsed.cell_errors)

        if options.strict:
            if parsed.cell_errors:
                raise parsed.cell_errors[0]
            if parsed.error is not None:
                raise parsed.error

        if not parsed.ok:
            counts["malformed_records"] += 1
            logger.debug(f"Skipping line {line_number}: {parsed.error}")
            continue

        record = parsed.record
        if record.token in probabilities:
            counts["duplicate_tokens"] += 1
        probabilities[record.token] = record.cells
        entropies[record.token] = record.entropy

    report = LoadReport(
        header_skipped=header_skipped,
        tokens_loaded=len(probabilities),
        elapsed_seconds=time.time() - start_time,
        **counts,
    )

    if not probabilities:
        raise EmptyTableError(
            f"No tokens retained from {report.lines_read} lines",
            details=report.to_dict(),
        )

    weight = GaussianWeight.fit(entropies.values())

    if report.malformed_records or report.malformed_cells:
        logger.warning(
            f"Skipped {report.malformed_records} malformed lines and "
            f"{report.malformed_cells} malformed cell pairs"
        )

    return TableBundle(
        table=ProbabilityTable(probabilities, entropies),
        weight=weight,
        codec=codec,
        report=report,
    )


def load_table(
    path: Union[str, Path],
    codec: Optional[CellCodec] = None,
    options: Optional[LoadOptions] = None,
) -> TableBundle:
    """
    build_table() over a table file, with progress logging.

    Example:
        >>> bundle = load_table("tag_cell_probs.tsv",
        ...                     options=LoadOptions(vocabulary={"paris", "eiffel"}))
        >>> len(bundle.table)
        2
    """
    logger.info(f"Opening file {path}")
    logger.info("Loading cells' probabilities for all tokens")

    progress = Progress("loading", log=logger)
    bundle = build_table(read_lines(path), codec=codec, options=options, progress=progress)
    progress.finish()

    logger.info(
        f"{len(bundle.table)} tokens loaded in {bundle.report.elapsed_seconds:.1f}s "
        f"(entropy mean={bundle.weight.mean:.4f}, std={bundle.weight.std:.4f})"
    )
    return bundle
