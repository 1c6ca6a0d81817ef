from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

from .errors import IntervalParseError, OpenError
from .models import GenomicInterval
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

_SKIP_PREFIXES = ("#", "track", "browser")


def parse_bed_line(line: str, *, path: str | Path = "<bed>", line_number: int | None = None) -> GenomicInterval:
    """Parse one BED row (chrom, start, end[, name, ...]); extra columns are ignored."""
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) < 3:
        raise IntervalParseError(
            f"expected at least 3 tab-separated columns, found {len(fields)}",
            path=path,
            line_number=line_number,
        )

    chrom = fields[0].strip()
    if not chrom:
        raise IntervalParseError("empty reference name", path=path, line_number=line_number)

    try:
        start = int(fields[1])
        end = int(fields[2])
    except ValueError:
        raise IntervalParseError(
            f"non-integer coordinates: {fields[1]!r}, {fields[2]!r}",
            path=path,
            line_number=line_number,
        ) from None

    if start < 0 or end < start:
        raise IntervalParseError(
            f"invalid interval [{start}, {end})", path=path, line_number=line_number
        )

    name = fields[3].strip() if len(fields) > 3 and fields[3].strip() else None
    return GenomicInterval(chrom=chrom, start=start, end=end, name=name)


def iter_intervals(path: str | Path) -> Iterator[GenomicInterval]:
    """Yield intervals from a BED file (optionally gzipped) in file order.

    Parsing is lazy: intervals before a malformed row are yielded before the
    IntervalParseError for that row is raised.
    """
    try:
        fh = open_textmaybe_gzip(path, "rt")
    except OSError as e:
        raise OpenError(f"Failed to open interval file {path}: {e}") from e

    n = 0
    with fh:
        try:
            for line_number, line in enumerate(fh, start=1):
                if not line.strip() or line.startswith(_SKIP_PREFIXES):
                    continue
                n += 1
                yield parse_bed_line(line, path=path, line_number=line_number)
        except (OSError, UnicodeDecodeError, EOFError) as e:
            raise IntervalParseError(f"failed reading interval stream: {e}", path=path) from e
    logger.debug("Read %d intervals from %s", n, path)
