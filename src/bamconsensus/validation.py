from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .errors import OpenError

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"


def check_input_paths(*, bam_path: str | Path, bai_path: str | Path, bed_path: str | Path) -> None:
    """Ensure all three inputs exist; raise OpenError naming the missing one."""
    for label, p in (("alignment", bam_path), ("index", bai_path), ("interval", bed_path)):
        path = Path(p)
        if not path.exists():
            raise OpenError(f"Input {label} file does not exist: {path}")
        if path.is_dir():
            raise OpenError(f"Input {label} path is a directory: {path}")


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def remap_contig(contig: str, style: str) -> str:
    """Remap a contig name to the requested style (ucsc or ensembl)."""
    if style == "ucsc":
        if contig.startswith(_UCSC_PREFIX):
            return contig
        if contig == "MT":
            return "chrM"
        return f"{_UCSC_PREFIX}{contig}"
    if style == "ensembl":
        if contig.startswith(_UCSC_PREFIX):
            core = contig[len(_UCSC_PREFIX) :]
            if core == "M":
                return "MT"
            return core
        return contig
    return contig


def resolve_contig(contig: str, references: Sequence[str], style: str = "exact") -> Optional[str]:
    """Map an interval contig name onto a BAM reference name.

    'exact' requires the name as written. 'ucsc'/'ensembl' remap the name to
    that style first. 'auto' tries the exact name, then the style detected
    from the BAM header. Returns None when no reference matches.
    """
    refs = set(references)
    if style == "exact":
        return contig if contig in refs else None
    if style in ("ucsc", "ensembl"):
        mapped = remap_contig(contig, style)
        return mapped if mapped in refs else None

    if contig in refs:
        return contig
    mapped = remap_contig(contig, detect_contig_style(references))
    if mapped in refs:
        logger.debug("Remapped contig %s -> %s to match BAM header", contig, mapped)
        return mapped
    return None
