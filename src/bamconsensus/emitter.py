from __future__ import annotations

from typing import List

from .config import DEFAULT_WRAP_WIDTH
from .models import ConsensusSequence


def header_line(consensus: ConsensusSequence) -> str:
    iv = consensus.interval
    header = f">{iv.chrom}:{iv.start}-{iv.end}"
    if iv.name:
        header += f" {iv.name}"
    return header


def wrap(letters: str, width: int = DEFAULT_WRAP_WIDTH) -> List[str]:
    """Split letters into lines of exactly ``width`` characters; the last may be shorter."""
    if width < 1:
        raise ValueError(f"wrap width must be >= 1 (got {width})")
    return [letters[i : i + width] for i in range(0, len(letters), width)]


def format_consensus(consensus: ConsensusSequence, width: int = DEFAULT_WRAP_WIDTH) -> str:
    """Render one interval's consensus as a FASTA-style text block ending in a newline."""
    lines = [header_line(consensus)]
    lines.extend(wrap(consensus.letters, width))
    return "\n".join(lines) + "\n"
