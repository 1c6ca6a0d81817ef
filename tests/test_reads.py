import array

import pysam
import pytest

from bamconsensus.errors import CorruptRecordError
from bamconsensus.models import RawReadRecord
from bamconsensus.reads import build_anchored, raw_record_from_segment

_HEADER = pysam.AlignmentHeader.from_dict({"SQ": [{"SN": "chr1", "LN": 1000}]})


def make_segment(seq: str, start: int = 100, quals=None, mapq: int = 60) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment(_HEADER)
    a.query_name = "r1"
    a.query_sequence = seq
    a.flag = 0
    a.reference_name = "chr1"
    a.reference_start = start
    a.mapping_quality = mapq
    a.cigartuples = [(0, len(seq))]
    if quals is not None:
        a.query_qualities = array.array("B", quals)
    return a


def record(letters="ACGT", qualities=(30, 30, 30, 30), mapq=20, start=5) -> RawReadRecord:
    return RawReadRecord(name="rec", chrom="chr1", start=start, letters=letters, qualities=tuple(qualities), mapq=mapq)


def test_segment_conversion_keeps_letters_qualities_and_anchor():
    rec = raw_record_from_segment(make_segment("ACGTA", start=42, quals=[10, 20, 30, 40, 50], mapq=17))
    assert rec.name == "r1"
    assert rec.chrom == "chr1"
    assert rec.start == 42
    assert rec.letters == "ACGTA"
    assert rec.qualities == (10, 20, 30, 40, 50)
    assert rec.mapq == 17


def test_segment_without_stored_qualities_uses_bam_missing_value():
    rec = raw_record_from_segment(make_segment("ACG"))
    assert rec.qualities == (255, 255, 255)


def test_build_anchored_pairs_letters_with_qualities():
    seq = build_anchored(record(letters="acgT", qualities=(1, 2, 3, 4), start=9))
    assert seq is not None
    assert seq.start == 9
    assert seq.end == 13
    assert seq.letters == "ACGT"
    assert seq.qualities == (1, 2, 3, 4)


def test_reads_below_min_mapq_are_dropped_silently():
    assert build_anchored(record(mapq=4), min_mapq=5) is None
    assert build_anchored(record(mapq=5), min_mapq=5) is not None


def test_default_min_mapq_accepts_mapq_zero():
    assert build_anchored(record(mapq=0)) is not None


def test_length_mismatch_is_corrupt_record():
    with pytest.raises(CorruptRecordError) as exc:
        build_anchored(record(letters="ACGT", qualities=(30, 30)))
    assert exc.value.read_name == "rec"
    assert exc.value.n_letters == 4
    assert exc.value.n_qualities == 2
    assert "rec" in str(exc.value)


def test_mapq_filter_applies_before_corruption_check():
    assert build_anchored(record(letters="ACGT", qualities=(30,), mapq=0), min_mapq=10) is None


def test_low_mapq_reads_never_change_the_consensus():
    from bamconsensus.pileup import consense

    good = [
        RawReadRecord("a", "chr1", 0, "ACGT", (30, 30, 30, 30), 60),
        RawReadRecord("b", "chr1", 2, "GTTT", (20, 20, 20, 20), 60),
    ]
    noisy = good + [RawReadRecord("c", "chr1", 0, "TTTTTT", (60,) * 6, 3)]

    def run(records):
        anchored = [build_anchored(r, min_mapq=10) for r in records]
        return consense([a for a in anchored if a is not None])

    assert run(noisy) == run(good)
