from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from . import __version__
from .config import (
    CONTIG_STYLES,
    DEFAULT_CONSENSUS_THRESHOLD,
    DEFAULT_MIN_MAPQ,
    DEFAULT_WRAP_WIDTH,
    ERROR_POLICIES,
    ConsensusConfig,
)
from .driver import run_consensus
from .errors import ConsensusError


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1: {value}")
    return n


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {value}")
    return n


def _handle_error(err: Exception) -> int:
    if not isinstance(err, ConsensusError):
        logging.getLogger("bamconsensus").debug("Unexpected failure", exc_info=err)
    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bamconsensus",
        description=(
            "bamconsensus: per-interval consensus sequences from an indexed BAM. "
            "Upper case marks columns whose summed base quality reaches the threshold, "
            "lower case marks low-confidence columns, '-' marks uncovered columns."
        ),
    )
    p.add_argument("--version", action="version", version=f"bamconsensus {__version__}")

    # Required inputs; checked after parsing so a missing one exits with status 1.
    p.add_argument("--bam", default=None, help="Input BAM file (coordinate-sorted).")
    p.add_argument("--bai", default=None, help="Index of the input BAM (.bai).")
    p.add_argument("--bed", default=None, help="Intervals (BED, optionally .gz).")

    p.add_argument(
        "--min-mapq",
        type=_non_negative_int,
        default=DEFAULT_MIN_MAPQ,
        help="Ignore reads with mapping quality below this value.",
    )
    p.add_argument(
        "--threshold",
        type=_non_negative_int,
        default=DEFAULT_CONSENSUS_THRESHOLD,
        help="Summed quality at or above which a column is written upper case.",
    )
    p.add_argument(
        "--width",
        type=_positive_int,
        default=DEFAULT_WRAP_WIDTH,
        help="Sequence characters per output line.",
    )
    p.add_argument(
        "--threads",
        type=_positive_int,
        default=1,
        help="Worker processes; output order always follows the BED file.",
    )
    p.add_argument(
        "--on-error",
        choices=list(ERROR_POLICIES),
        default="abort",
        help=(
            "abort: stop at the first error. skip: drop reads whose letter/quality "
            "lengths differ and intervals whose region cannot be queried."
        ),
    )
    p.add_argument(
        "--contig-style",
        choices=list(CONTIG_STYLES),
        default="exact",
        help="Contig naming style used to match BED contigs to BAM references.",
    )
    p.add_argument("--summary-json", default=None, help="Write a run summary JSON to this path.")
    p.add_argument("--progress", action="store_true", help="Show a progress bar on stderr.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")
    return p


def config_from_args(args: argparse.Namespace) -> ConsensusConfig:
    return ConsensusConfig(
        bam_path=str(args.bam),
        bai_path=str(args.bai),
        bed_path=str(args.bed),
        min_mapq=int(args.min_mapq),
        threshold=int(args.threshold),
        width=int(args.width),
        threads=int(args.threads),
        error_policy=str(args.on_error),
        contig_style=str(args.contig_style),
        summary_json=args.summary_json,
        progress=bool(args.progress),
    ).validate()


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    missing = [flag for flag, value in (("--bam", args.bam), ("--bai", args.bai), ("--bed", args.bed)) if not value]
    if missing:
        parser.print_usage(sys.stderr)
        sys.stderr.write(f"{parser.prog}: missing required argument(s): {', '.join(missing)}\n")
        return 1

    _setup_logging(args.verbose)
    logger = logging.getLogger("bamconsensus")
    logger.info("bamconsensus %s", __version__)

    try:
        config = config_from_args(args)
        run_consensus(config, sys.stdout)
        return 0
    except Exception as e:
        return _handle_error(e)


if __name__ == "__main__":
    raise SystemExit(main())
