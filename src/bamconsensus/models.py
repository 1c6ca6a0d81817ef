from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .errors import CorruptRecordError


@dataclass(frozen=True)
class GenomicInterval:
    """A region of interest read from the interval list.

    Coordinates are 0-based half-open, as in BED.

    Attributes
    ----------
    chrom:
        Contig name as written in the interval file.
    start:
        0-based start (inclusive).
    end:
        0-based end (exclusive).
    name:
        Optional feature name (BED column 4). Not part of the identity.
    """

    chrom: str
    start: int
    end: int
    name: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{self.chrom}:{self.start}-{self.end}"


@dataclass(frozen=True)
class RawReadRecord:
    """One alignment record as handed over by the alignment reader.

    ``letters`` is the expanded nucleotide sequence and ``qualities`` the
    parallel Phred values; both are expected to be of equal length.
    """

    name: str
    chrom: str
    start: int
    letters: str
    qualities: Tuple[int, ...]
    mapq: int


@dataclass(frozen=True)
class AnchoredQualitySequence:
    """Read letters paired 1:1 with qualities, anchored at a reference coordinate.

    Letters are stored upper-case; unequal letter and quality lengths raise
    CorruptRecordError.
    """

    name: str
    start: int
    letters: str
    qualities: Tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.letters) != len(self.qualities):
            raise CorruptRecordError(self.name, len(self.letters), len(self.qualities))
        object.__setattr__(self, "letters", self.letters.upper())
        object.__setattr__(self, "qualities", tuple(self.qualities))

    @property
    def end(self) -> int:
        return self.start + len(self.letters)

    def __len__(self) -> int:
        return len(self.letters)


@dataclass(frozen=True)
class ConsensusSequence:
    """Per-column consensus of one interval's pileup.

    ``start`` is the first column of the pileup span; for an empty pileup it
    is the interval start and ``letters`` is empty.
    """

    interval: GenomicInterval
    start: int
    letters: str

    @property
    def end(self) -> int:
        return self.start + len(self.letters)

    def __len__(self) -> int:
        return len(self.letters)
