"""bamconsensus: per-interval, quality-weighted consensus sequences from indexed BAMs.

Public API is intentionally small; most users should use the CLI:

    bamconsensus --bam reads.bam --bai reads.bam.bai --bed regions.bed

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
