"""
Location Model for geolocator
=============================

Estimates where a short text was written from the words or tags it
contains, using precomputed token/cell probabilities over a fixed
latitude/longitude grid.

Components
----------
    cells:
        Cell codecs. Convert "lat_lon" cell text to numeric or text ids
        and decode ids back to coordinates.

    table:
        Probability table loader. Parses tab-delimited token records,
        applies vocabulary and feature-selection filters, and fits the
        entropy weight model. Produces an immutable TableBundle.

    weighting:
        Gaussian weight over spatial entropy.

    aggregation:
        Per-query weighted evidence per cell.

    selection:
        Most Likely Cell with square-window confidence.

    scorer:
        score() for one query, score_batch() for many on a thread pool.

    sources:
        Line readers, query corpus parsing, vocabulary extraction,
        feature selection and progress logging.

Usage Example
-------------
    from geolocator.model import LoadOptions, load_table, score

    bundle = load_table("tag_cell_probs.tsv", options=LoadOptions(strict=False))
    estimate = score(["eiffel", "louvre"], bundle)
    if estimate is not None:
        print(estimate.cell, estimate.confidence)
"""

from .cells import (
    CellCodec,
    CellId,
    NumericCellCodec,
    TextCellCodec,
    get_codec,
    parse_coordinates,
)
from .table import (
    LoadOptions,
    LoadReport,
    ProbabilityTable,
    RecordParse,
    TableBundle,
    TableRecord,
    build_table,
    load_table,
    parse_cell_pair,
    parse_record,
)
from .weighting import GaussianWeight
from .aggregation import CellScore, aggregate
from .selection import CellEstimate, select_mlc, window_confidence
from .scorer import score, score_batch
from .sources import (
    Progress,
    extract_vocabulary,
    load_feature_selection,
    parse_accuracy_line,
    read_lines,
    read_queries,
    select_features,
)
from .errors import (
    ErrorCode,
    LocatorError,
    MalformedCellError,
    MalformedRecordError,
    EmptyTableError,
    DegenerateDistributionError,
    api_success,
    api_error,
    api_error_from_exception,
)
from .settings import Config, reload_config
from .validation import ValidationError

__all__ = [
    # Cells
    "CellCodec",
    "CellId",
    "NumericCellCodec",
    "TextCellCodec",
    "get_codec",
    "parse_coordinates",
    # Table
    "LoadOptions",
    "LoadReport",
    "ProbabilityTable",
    "RecordParse",
    "TableBundle",
    "TableRecord",
    "build_table",
    "load_table",
    "parse_cell_pair",
    "parse_record",
    # Weighting
    "GaussianWeight",
    # Aggregation
    "CellScore",
    "aggregate",
    # Selection
    "CellEstimate",
    "select_mlc",
    "window_confidence",
    # Scorer
    "score",
    "score_batch",
    # Sources
    "Progress",
    "extract_vocabulary",
    "load_feature_selection",
    "parse_accuracy_line",
    "read_lines",
    "read_queries",
    "select_features",
    # Errors
    "ErrorCode",
    "LocatorError",
    "MalformedCellError",
    "MalformedRecordError",
    "EmptyTableError",
    "DegenerateDistributionError",
    "api_success",
    "api_error",
    "api_error_from_exception",
    # Config
    "Config",
    "reload_config",
    # Validation
    "ValidationError",
]
