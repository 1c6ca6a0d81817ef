from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

DEFAULT_MIN_MAPQ = 0
DEFAULT_CONSENSUS_THRESHOLD = 40
DEFAULT_WRAP_WIDTH = 60

GAP = "-"

ERROR_POLICIES = ("abort", "skip")
CONTIG_STYLES = ("exact", "auto", "ucsc", "ensembl")


@dataclass(frozen=True)
class ConsensusConfig:
    """Run configuration, built once at startup and passed explicitly.

    Attributes
    ----------
    bam_path, bai_path, bed_path:
        Alignment data, its index, and the interval list.
    min_mapq:
        Reads with mapping quality below this are ignored.
    threshold:
        Columns whose winning summed quality reaches this are upper-case.
    width:
        Sequence characters per output line.
    threads:
        Worker processes for interval-level parallelism (1 = sequential).
    error_policy:
        'abort' stops on the first error; 'skip' drops corrupt records and
        intervals whose region lookup fails.
    contig_style:
        How interval contig names are matched to the BAM header: 'exact', or
        remapped to 'ucsc'/'ensembl' naming, or 'auto' (try exact, then remap).
    summary_json:
        Optional path for a machine-readable run summary.
    progress:
        Show a progress bar over intervals on stderr.
    """

    bam_path: str
    bai_path: str
    bed_path: str
    min_mapq: int = DEFAULT_MIN_MAPQ
    threshold: int = DEFAULT_CONSENSUS_THRESHOLD
    width: int = DEFAULT_WRAP_WIDTH
    threads: int = 1
    error_policy: str = "abort"
    contig_style: str = "exact"
    summary_json: Optional[str] = None
    progress: bool = False

    @property
    def skip_errors(self) -> bool:
        return self.error_policy == "skip"

    def validate(self) -> "ConsensusConfig":
        if self.min_mapq < 0:
            raise ValueError(f"min_mapq must be >= 0 (got {self.min_mapq})")
        if self.threshold < 0:
            raise ValueError(f"threshold must be >= 0 (got {self.threshold})")
        if self.width < 1:
            raise ValueError(f"width must be >= 1 (got {self.width})")
        if self.threads < 1:
            raise ValueError(f"threads must be >= 1 (got {self.threads})")
        if self.error_policy not in ERROR_POLICIES:
            raise ValueError(f"error_policy must be one of {ERROR_POLICIES} (got {self.error_policy!r})")
        if self.contig_style not in CONTIG_STYLES:
            raise ValueError(f"contig_style must be one of {CONTIG_STYLES} (got {self.contig_style!r})")
        return self

    def with_overrides(self, **kwargs) -> "ConsensusConfig":
        return replace(self, **kwargs).validate()
