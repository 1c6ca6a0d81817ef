import gzip
from pathlib import Path

import pytest

from bamconsensus.errors import IntervalParseError, OpenError
from bamconsensus.intervals import iter_intervals, parse_bed_line
from bamconsensus.models import GenomicInterval


def test_parse_bed_line_with_and_without_name():
    assert parse_bed_line("chr1\t10\t20\n") == GenomicInterval("chr1", 10, 20)
    iv = parse_bed_line("chr1\t10\t20\tgeneA\t0\t+\n")
    assert iv.name == "geneA"
    assert iv == GenomicInterval("chr1", 10, 20)
    assert str(iv) == "chr1:10-20"


def test_name_is_not_part_of_interval_identity():
    a = GenomicInterval("chr1", 1, 2, "a")
    b = GenomicInterval("chr1", 1, 2, "b")
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1
    assert a != GenomicInterval("chr1", 1, 3, "a")


@pytest.mark.parametrize(
    "line",
    [
        "chr1\t10\n",
        "chr1\tten\t20\n",
        "chr1\t-1\t20\n",
        "chr1\t30\t20\n",
        "\t10\t20\n",
    ],
)
def test_malformed_rows_raise(line):
    with pytest.raises(IntervalParseError):
        parse_bed_line(line, path="x.bed", line_number=3)


def test_iter_intervals_skips_headers_and_blank_lines(tmp_path: Path):
    bed = tmp_path / "regions.bed"
    bed.write_text(
        "track name=test\n# comment\nbrowser position chr1\n\nchr1\t0\t5\ta\nchr2\t7\t9\n",
        encoding="utf-8",
    )
    intervals = list(iter_intervals(bed))
    assert intervals == [GenomicInterval("chr1", 0, 5), GenomicInterval("chr2", 7, 9)]
    assert [iv.name for iv in intervals] == ["a", None]


def test_iter_intervals_reads_gzip(tmp_path: Path):
    bed = tmp_path / "regions.bed.gz"
    with gzip.open(bed, "wt") as fh:
        fh.write("chr1\t1\t2\n")
    assert list(iter_intervals(bed)) == [GenomicInterval("chr1", 1, 2)]


def test_iter_intervals_yields_rows_before_a_malformed_one(tmp_path: Path):
    bed = tmp_path / "regions.bed"
    bed.write_text("chr1\t0\t5\nchr1\t5\n", encoding="utf-8")
    it = iter_intervals(bed)
    assert next(it) == GenomicInterval("chr1", 0, 5)
    with pytest.raises(IntervalParseError) as exc:
        next(it)
    assert exc.value.line_number == 2
    assert "regions.bed:2" in str(exc.value)


def test_missing_interval_file_is_open_error(tmp_path: Path):
    with pytest.raises(OpenError):
        list(iter_intervals(tmp_path / "absent.bed"))
