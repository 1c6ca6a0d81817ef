from __future__ import annotations

import logging
from typing import Optional

import pysam

from .config import DEFAULT_MIN_MAPQ
from .errors import CorruptRecordError
from .models import AnchoredQualitySequence, RawReadRecord

logger = logging.getLogger(__name__)

# BAM stores 0xff for every base when the QUAL field is absent ('*').
_MISSING_QUAL = 0xFF


def raw_record_from_segment(read: pysam.AlignedSegment) -> RawReadRecord:
    """Convert a pysam alignment into a RawReadRecord.

    The full stored sequence is used, soft clips included, anchored at the
    alignment start; no CIGAR-aware realignment is performed.
    """
    letters = read.query_sequence or ""
    quals = read.query_qualities
    if quals is None:
        qualities = tuple([_MISSING_QUAL] * len(letters))
    else:
        qualities = tuple(int(q) for q in quals)

    return RawReadRecord(
        name=str(read.query_name),
        chrom=read.reference_name if read.reference_name is not None else "*",
        start=int(read.reference_start),
        letters=letters,
        qualities=qualities,
        mapq=int(read.mapping_quality),
    )


def build_anchored(
    record: RawReadRecord,
    *,
    min_mapq: int = DEFAULT_MIN_MAPQ,
) -> Optional[AnchoredQualitySequence]:
    """Anchor a record's letters and qualities at its reference start.

    Returns None for reads below ``min_mapq``; raises CorruptRecordError when
    the letter and quality arrays differ in length.
    """
    if record.mapq < min_mapq:
        return None

    if len(record.letters) != len(record.qualities):
        raise CorruptRecordError(record.name, len(record.letters), len(record.qualities))

    return AnchoredQualitySequence(
        name=record.name,
        start=record.start,
        letters=record.letters.upper(),
        qualities=tuple(record.qualities),
    )
