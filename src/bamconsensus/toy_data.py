from __future__ import annotations

import array
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import pysam

from .models import GenomicInterval
from .utils import ensure_outdir, write_json


def make_read(
    name: str,
    start0: int,
    seq: str,
    *,
    quals: Optional[Sequence[int]] = None,
    mapq: int = 60,
    reference_id: int = 0,
) -> pysam.AlignedSegment:
    """A forward, fully matched alignment; default qualities are Q40 at every base."""
    if quals is None:
        quals = [40] * len(seq)
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = 0
    a.reference_id = reference_id
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = [(0, len(seq))]
    a.query_qualities = array.array("B", quals)
    return a


def write_bam(
    path: str | Path,
    reads: Iterable[pysam.AlignedSegment],
    contigs: Dict[str, int],
) -> Dict[str, str]:
    """Write a coordinate-sorted BAM and its .bai index; return both paths."""
    bam_path = Path(path)
    bam_path.parent.mkdir(parents=True, exist_ok=True)
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": length} for name, length in contigs.items()],
    }
    ordered = sorted(reads, key=lambda r: (r.reference_id, r.reference_start))
    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in ordered:
            bam.write(r)
    pysam.index(str(bam_path))
    return {"bam": str(bam_path), "bai": str(bam_path) + ".bai"}


def write_bed(path: str | Path, intervals: Iterable[GenomicInterval]) -> str:
    rows: List[str] = []
    for iv in intervals:
        fields = [iv.chrom, str(iv.start), str(iv.end)]
        if iv.name:
            fields.append(iv.name)
        rows.append("\t".join(fields))
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return str(p)


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny BAM, index, and BED suitable for quick demos/tests.

    The BED holds three intervals on chr1:
    - agree:    two identical high-quality reads -> upper-case consensus
    - overlap:  two offset reads leaving no gap  -> mixed-depth consensus
    - empty:    no reads at all                  -> empty consensus

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    contig = "chr1"

    reads = [
        make_read("agree_1", 10, "ACGTACGTAC", quals=[50] * 10),
        make_read("agree_2", 10, "ACGTACGTAC", quals=[50] * 10),
        make_read("overlap_1", 100, "AAAAA", quals=[30] * 5),
        make_read("overlap_2", 103, "CCCCC", quals=[30] * 5),
        make_read("lowmapq", 100, "GGGGG", quals=[60] * 5, mapq=0),
    ]
    paths = write_bam(outdir_p / "toy.bam", reads, {contig: 500})

    intervals = [
        GenomicInterval(contig, 10, 20, "agree"),
        GenomicInterval(contig, 100, 108, "overlap"),
        GenomicInterval(contig, 300, 310, "empty"),
    ]
    bed = write_bed(outdir_p / "toy.bed", intervals)

    summary = {
        "bam": paths["bam"],
        "bai": paths["bai"],
        "bed": bed,
        "outdir": str(outdir_p),
    }
    write_json(outdir_p / "toy_summary.json", summary)
    return summary
