from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, TextIO, Tuple

import pysam
from tqdm import tqdm

from .config import GAP, ConsensusConfig
from .emitter import format_consensus
from .errors import (
    ConsensusError,
    CorruptRecordError,
    IndexQueryError,
    IntervalParseError,
    OpenError,
    OutputError,
    RecordIterationError,
)
from .intervals import iter_intervals
from .models import ConsensusSequence, GenomicInterval, RawReadRecord
from .pileup import Pileup
from .reads import build_anchored, raw_record_from_segment
from .utils import chunked, write_json
from .validation import check_input_paths, resolve_contig

logger = logging.getLogger(__name__)

# Intervals handed to one worker task when running with several processes.
_INTERVALS_PER_TASK = 16


@dataclass
class IntervalStats:
    reads_seen: int = 0
    reads_kept: int = 0
    reads_filtered_mapq: int = 0
    reads_skipped_corrupt: int = 0


@dataclass(frozen=True)
class IntervalResult:
    """Outcome for one interval; ``consensus`` is None when the interval was skipped."""

    interval: GenomicInterval
    consensus: Optional[ConsensusSequence]
    stats: IntervalStats
    skipped_reason: Optional[str] = None


@dataclass
class RunSummary:
    intervals_total: int = 0
    intervals_emitted: int = 0
    intervals_empty: int = 0
    intervals_skipped: int = 0
    reads_seen: int = 0
    reads_kept: int = 0
    reads_filtered_mapq: int = 0
    reads_skipped_corrupt: int = 0
    columns_total: int = 0
    columns_high_confidence: int = 0
    columns_low_confidence: int = 0
    columns_gap: int = 0
    runtime_seconds: float = 0.0
    skipped: List[Dict[str, str]] = field(default_factory=list)

    def add(self, result: IntervalResult) -> None:
        self.intervals_total += 1
        st = result.stats
        self.reads_seen += st.reads_seen
        self.reads_kept += st.reads_kept
        self.reads_filtered_mapq += st.reads_filtered_mapq
        self.reads_skipped_corrupt += st.reads_skipped_corrupt

        if result.consensus is None:
            self.intervals_skipped += 1
            self.skipped.append(
                {"interval": str(result.interval), "reason": result.skipped_reason or ""}
            )
            return

        letters = result.consensus.letters
        self.intervals_emitted += 1
        if not letters:
            self.intervals_empty += 1
        gaps = letters.count(GAP)
        upper = sum(1 for c in letters if c.isupper())
        self.columns_total += len(letters)
        self.columns_gap += gaps
        self.columns_high_confidence += upper
        self.columns_low_confidence += len(letters) - gaps - upper


class ConsensusRunner:
    """Holds the open alignment file and computes consensus one interval at a time.

    Use as a context manager so the alignment handle is closed on every exit path.
    """

    def __init__(self, config: ConsensusConfig) -> None:
        self.config = config
        self._bam: Optional[pysam.AlignmentFile] = None

    def open(self) -> "ConsensusRunner":
        cfg = self.config
        check_input_paths(bam_path=cfg.bam_path, bai_path=cfg.bai_path, bed_path=cfg.bed_path)
        try:
            bam = pysam.AlignmentFile(cfg.bam_path, "rb", index_filename=cfg.bai_path)
        except (OSError, ValueError) as e:
            raise OpenError(f"Failed to open alignment file {cfg.bam_path} with index {cfg.bai_path}: {e}") from e
        if not bam.has_index():
            bam.close()
            raise OpenError(f"Failed to read alignment index {cfg.bai_path}")
        self._bam = bam
        logger.debug("Opened %s (%d references)", cfg.bam_path, bam.nreferences)
        return self

    def close(self) -> None:
        if self._bam is not None:
            self._bam.close()
            self._bam = None

    def __enter__(self) -> "ConsensusRunner":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def bam(self) -> pysam.AlignmentFile:
        if self._bam is None:
            raise OpenError("Alignment file is not open")
        return self._bam

    @contextmanager
    def fetch_records(self, interval: GenomicInterval) -> Iterator[Iterator[RawReadRecord]]:
        """Scoped iterator over the records overlapping ``interval``.

        The underlying region iterator is released when the block exits,
        whether normally or through an exception.
        """
        bam = self.bam
        contig = resolve_contig(interval.chrom, bam.references, self.config.contig_style)
        if contig is None:
            raise IndexQueryError(
                f"Could not query {interval}: reference '{interval.chrom}' is not in the alignment header"
            )
        try:
            region = bam.fetch(contig, interval.start, interval.end)
        except (ValueError, OSError) as e:
            raise IndexQueryError(f"Could not query {interval}: {e}") from e

        records = _iter_raw_records(region, interval)
        try:
            yield records
        finally:
            records.close()

    def consense_interval(self, interval: GenomicInterval) -> IntervalResult:
        cfg = self.config
        stats = IntervalStats()
        pileup = Pileup()

        with self.fetch_records(interval) as records:
            for rec in records:
                stats.reads_seen += 1
                try:
                    seq = build_anchored(rec, min_mapq=cfg.min_mapq)
                except CorruptRecordError as e:
                    if not cfg.skip_errors:
                        raise
                    stats.reads_skipped_corrupt += 1
                    logger.warning("%s (interval %s); record skipped", e, interval)
                    continue
                if seq is None:
                    stats.reads_filtered_mapq += 1
                    continue
                pileup.add(seq)
                stats.reads_kept += 1

        letters = pileup.consensus(threshold=cfg.threshold)
        span = pileup.span
        consensus = ConsensusSequence(
            interval=interval,
            start=span[0] if span is not None else interval.start,
            letters=letters,
        )
        logger.debug(
            "%s: %d reads seen, %d kept, %d below MAPQ, %d columns",
            interval,
            stats.reads_seen,
            stats.reads_kept,
            stats.reads_filtered_mapq,
            len(letters),
        )
        return IntervalResult(interval=interval, consensus=consensus, stats=stats)

    def process(self, interval: GenomicInterval) -> IntervalResult:
        """Consense one interval, applying the configured error policy to lookup failures."""
        try:
            return self.consense_interval(interval)
        except IndexQueryError as e:
            if not self.config.skip_errors:
                raise
            logger.warning("%s; interval skipped", e)
            return IntervalResult(
                interval=interval,
                consensus=None,
                stats=IntervalStats(),
                skipped_reason=str(e),
            )


def _iter_raw_records(region: Iterable[pysam.AlignedSegment], interval: GenomicInterval) -> Iterator[RawReadRecord]:
    try:
        for read in region:
            yield raw_record_from_segment(read)
    except OSError as e:
        raise RecordIterationError(f"Failed reading records for {interval}: {e}") from e


def _windows(intervals: Iterable[GenomicInterval], size: int) -> Iterator[List[GenomicInterval]]:
    """Batch intervals; a parse error is re-raised only after the intervals before it."""
    window: List[GenomicInterval] = []
    pending: Optional[IntervalParseError] = None
    try:
        for iv in intervals:
            window.append(iv)
            if len(window) >= size:
                yield window
                window = []
    except IntervalParseError as e:
        pending = e
    if window:
        yield window
    if pending is not None:
        raise pending


def _consense_chunk(
    config: ConsensusConfig, intervals: List[GenomicInterval]
) -> Tuple[List[IntervalResult], Optional[ConsensusError]]:
    """Worker task: results for the intervals completed, plus the error that stopped it."""
    results: List[IntervalResult] = []
    try:
        with ConsensusRunner(config) as runner:
            for iv in intervals:
                results.append(runner.process(iv))
    except ConsensusError as e:
        return results, e
    return results, None


def _iter_parallel(config: ConsensusConfig, intervals: Iterable[GenomicInterval]) -> Iterator[IntervalResult]:
    window_size = config.threads * _INTERVALS_PER_TASK
    with ProcessPoolExecutor(max_workers=config.threads) as pool:
        for window in _windows(intervals, window_size):
            chunks = list(chunked(window, _INTERVALS_PER_TASK))
            # map() yields in submission order, which restores interval order.
            for results, error in pool.map(_consense_chunk, [config] * len(chunks), chunks):
                yield from results
                if error is not None:
                    raise error


def run_consensus(config: ConsensusConfig, out: TextIO) -> RunSummary:
    """Stream every interval of the BED file through fetch, build, consense and emit.

    Blocks are written to ``out`` in interval order. Any error not absorbed by
    the error policy propagates; blocks already written stay written and the
    failing interval writes nothing.
    """
    t0 = time.time()
    summary = RunSummary()

    with ConsensusRunner(config) as runner:
        intervals: Iterable[GenomicInterval] = iter_intervals(config.bed_path)
        if config.progress:
            intervals = tqdm(intervals, unit="interval", desc="Consensus")

        if config.threads > 1:
            results: Iterable[IntervalResult] = _iter_parallel(config, intervals)
        else:
            results = (runner.process(iv) for iv in intervals)

        for result in results:
            summary.add(result)
            if result.consensus is not None:
                out.write(format_consensus(result.consensus, config.width))

    summary.runtime_seconds = float(time.time() - t0)
    logger.info(
        "Processed %d intervals (%d emitted, %d skipped); %d/%d reads used",
        summary.intervals_total,
        summary.intervals_emitted,
        summary.intervals_skipped,
        summary.reads_kept,
        summary.reads_seen,
    )
    if config.summary_json is not None:
        try:
            write_json(config.summary_json, asdict(summary))
        except OSError as e:
            raise OutputError(f"Failed to write summary {config.summary_json}: {e}") from e
    return summary
