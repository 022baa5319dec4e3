import logging
import sys
from typing import Any, Dict, Iterable, List, Optional, TextIO

from geolocator.config import load_config, save_config
from geolocator.model.cells import get_codec
from geolocator.model.errors import LocatorError
from geolocator.model.scorer import ScoredQuery, score_batch
from geolocator.model.selection import CellEstimate
from geolocator.model.settings import Config
from geolocator.model.sources import (
    Query,
    extract_vocabulary,
    load_feature_selection,
    read_lines,
    read_queries,
)
from geolocator.model.table import LoadOptions, TableBundle, load_table
from geolocator.model.validation import (
    ValidationError,
    validate_positive_int,
    validate_window,
)

logger = logging.getLogger("Geolocator")

NO_RESULT = "N/A"


def setup_logging(config: dict) -> None:
    log_level = config.get("logging", {}).get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, log_level),
        format=config.get("logging", {}).get("format"),
    )


def build_bundle(config: Dict[str, Any], queries: Optional[List[Query]] = None) -> TableBundle:
    """
    Load the probability table described by ``config``.

    When queries are given and queries.restrict_vocabulary is set, only
    tokens occurring in the queries are kept.
    """
    table_cfg = config["table"]
    features_cfg = config["features"]

    if not table_cfg.get("path"):
        raise ValueError("No probability table configured (table.path / --table)")

    vocabulary = None
    if queries is not None and config["queries"].get("restrict_vocabulary", True):
        vocabulary = extract_vocabulary(queries)
        logger.info(f"Restricting table to {len(vocabulary)} query tokens")

    selected = None
    if features_cfg.get("enabled"):
        if not features_cfg.get("accuracy_file"):
            raise ValueError("Feature selection enabled without features.accuracy_file")
        selected = load_feature_selection(
            features_cfg["accuracy_file"],
            theta_g=features_cfg.get("theta_g"),
            theta_t=features_cfg.get("theta_t"),
        )

    strict = table_cfg.get("strict")
    skip_header = table_cfg.get("skip_header")
    options = LoadOptions(
        vocabulary=vocabulary,
        selected_features=selected,
        strict=Config.LOADER.STRICT if strict is None else bool(strict),
        skip_header=Config.LOADER.SKIP_HEADER if skip_header is None else bool(skip_header),
    )
    codec = get_codec(table_cfg.get("codec"), table_cfg.get("precision"))

    return load_table(table_cfg["path"], codec=codec, options=options)


def format_result(query_id: str, estimate: Optional[CellEstimate]) -> str:
    """One output line: id, cell, lat, lon, confidence (tab-separated)."""
    if estimate is None:
        return f"{query_id}\t{NO_RESULT}"
    return (
        f"{query_id}\t{estimate.cell}\t{estimate.latitude}\t"
        f"{estimate.longitude}\t{estimate.confidence:.6f}"
    )


def write_results(results: Iterable[ScoredQuery], out: TextIO) -> int:
    count = 0
    for query_id, estimate in results:
        out.write(format_result(query_id, estimate) + "\n")
        count += 1
    return count


def run_batch(config: Dict[str, Any]) -> int:
    """Score every query of the configured corpus and write the results."""
    queries_cfg = config["queries"]
    scoring_cfg = config["scoring"]

    window = validate_window(scoring_cfg.get("window"))
    workers = validate_positive_int(
        scoring_cfg.get("max_workers"), "workers", default=Config.WORKER.MAX_WORKERS
    )

    queries = read_queries(read_lines(queries_cfg["path"]))
    logger.info(f"Read {len(queries)} queries from {queries_cfg['path']}")

    bundle = build_bundle(config, queries)
    results = score_batch(queries, bundle, window=window, max_workers=workers)

    output = queries_cfg.get("output")
    if output:
        with open(output, "w", encoding="utf-8") as f:
            written = write_results(results, f)
        logger.info(f"Wrote {written} results to {output}")
    else:
        write_results(results, sys.stdout)

    return 0


def run_server(config: Dict[str, Any]) -> int:
    # Imported here so batch runs do not need the web stack
    from geolocator.web.locate_api import start_server

    bundle = build_bundle(config)
    http_cfg = config["http"]
    start_server(bundle, host=http_cfg["host"], port=http_cfg["port"])
    return 0


def apply_overrides(config: Dict[str, Any], args) -> Dict[str, Any]:
    if args.log_level:
        config["logging"]["level"] = args.log_level
    if args.table:
        config["table"]["path"] = args.table
    if args.codec:
        config["table"]["codec"] = args.codec
    if args.strict:
        config["table"]["strict"] = True
    if args.queries:
        config["queries"]["path"] = args.queries
    if args.output:
        config["queries"]["output"] = args.output
    if args.accuracy_file:
        config["features"]["enabled"] = True
        config["features"]["accuracy_file"] = args.accuracy_file
    if args.theta_g is not None:
        config["features"]["theta_g"] = args.theta_g
    if args.theta_t is not None:
        config["features"]["theta_t"] = args.theta_t
    if args.window is not None:
        config["scoring"]["window"] = args.window
    if args.workers is not None:
        config["scoring"]["max_workers"] = args.workers
    if args.port is not None:
        config["http"]["port"] = args.port
    return config


def main(argv: Optional[List[str]] = None) -> int:

    import argparse

    parser = argparse.ArgumentParser(description="Most Likely Cell geolocation for short texts")
    parser.add_argument("--config", help="Path to YAML config file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument("--table", help="Token/cell probability table (TSV)")
    parser.add_argument("--codec", choices=["numeric", "text"], help="Cell id representation")
    parser.add_argument("--strict", action="store_true", help="Abort on malformed table lines")
    parser.add_argument("--queries", help="Query corpus: <id>\\t<tokens...> per line")
    parser.add_argument("--output", help="Result file (default: stdout)")
    parser.add_argument("--accuracy-file", help="Token accuracy file, enables feature selection")
    parser.add_argument("--theta-g", type=float, help="Feature selection accuracy threshold")
    parser.add_argument("--theta-t", type=int, help="Feature selection frequency threshold")
    parser.add_argument("--window", type=float, help="Confidence window half-width in degrees")
    parser.add_argument("--workers", type=int, help="Batch scoring threads")
    parser.add_argument("--serve", action="store_true", help="Serve the locate API instead of batch scoring")
    parser.add_argument("--port", type=int, help="HTTP port for --serve")
    parser.add_argument("--write-config", help="Write the effective config to this path and exit")

    args = parser.parse_args(argv)

    config = apply_overrides(load_config(args.config), args)
    setup_logging(config)

    if args.write_config:
        save_config(config, args.write_config)
        return 0

    try:
        if args.serve:
            return run_server(config)
        if not config["queries"].get("path"):
            parser.error("batch mode needs --queries (or queries.path in the config)")
        return run_batch(config)
    except LocatorError as e:
        logger.error(f"Cannot build location model: {e}")
        return 1
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Fatal error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
