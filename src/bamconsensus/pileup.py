"""Column-wise pileup of anchored reads and its quality-weighted consensus.

Every anchored read is laid onto a shared column axis spanning
[min(start), max(end)). For each column the qualities of covering reads are
summed per letter; the letter with the largest sum wins, with ties going to
the lexicographically smallest letter. The winning sum is the column's
confidence, folded into the output as letter case:

    confidence >= threshold  -> upper case
    confidence <  threshold  -> lower case
    no covering read         -> gap symbol

All columns are evaluated at once as numpy arrays; no column reads another
column's state, so the result does not depend on the order reads were added.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .config import DEFAULT_CONSENSUS_THRESHOLD, GAP
from .models import AnchoredQualitySequence

logger = logging.getLogger(__name__)

_ORD_A = ord("A")
_ORD_Z = ord("Z")
_CASE_OFFSET = ord("a") - ord("A")


class Pileup:
    """Anchored reads accumulated for one interval."""

    def __init__(self, sequences: Iterable[AnchoredQualitySequence] = ()) -> None:
        self._sequences: List[AnchoredQualitySequence] = []
        for seq in sequences:
            self.add(seq)

    def add(self, seq: AnchoredQualitySequence) -> None:
        self._sequences.append(seq)

    def __len__(self) -> int:
        return len(self._sequences)

    @property
    def span(self) -> Optional[Tuple[int, int]]:
        """(start, end) of the pileup, or None if no read was added."""
        if not self._sequences:
            return None
        start = min(s.start for s in self._sequences)
        end = max(s.end for s in self._sequences)
        return start, end

    def column_evidence(self, pos: int) -> Dict[str, int]:
        """Summed quality per letter over the reads covering reference position ``pos``."""
        out: Dict[str, int] = {}
        for seq in self._sequences:
            if seq.start <= pos < seq.end:
                i = pos - seq.start
                letter = seq.letters[i]
                out[letter] = out.get(letter, 0) + int(seq.qualities[i])
        return out

    def _stack(self, span_start: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Flatten all reads into parallel (column, letter code, quality) arrays."""
        cols = [np.arange(s.start - span_start, s.end - span_start, dtype=np.int64) for s in self._sequences]
        codes = [np.frombuffer(s.letters.encode("ascii"), dtype=np.uint8) for s in self._sequences]
        quals = [np.asarray(s.qualities, dtype=np.int64) for s in self._sequences]
        return np.concatenate(cols), np.concatenate(codes), np.concatenate(quals)

    def consensus(self, *, threshold: int = DEFAULT_CONSENSUS_THRESHOLD) -> str:
        """Case-encoded consensus letters for every column of the span."""
        span = self.span
        if span is None:
            return ""
        start, end = span
        n_cols = end - start
        if n_cols <= 0:
            return ""

        cols, codes, quals = self._stack(start)
        if codes.size == 0:
            return GAP * n_cols

        # np.unique sorts, so argmax ties resolve to the smallest letter.
        alphabet, letter_idx = np.unique(codes, return_inverse=True)
        letter_idx = letter_idx.reshape(-1)

        weights = np.zeros((alphabet.size, n_cols), dtype=np.int64)
        counts = np.zeros((alphabet.size, n_cols), dtype=np.int64)
        np.add.at(weights, (letter_idx, cols), quals)
        np.add.at(counts, (letter_idx, cols), 1)

        # Letters absent from a column must never win it, even at zero quality.
        masked = np.where(counts > 0, weights, -1)
        winner = np.argmax(masked, axis=0)
        confidence = masked[winner, np.arange(n_cols)]
        covered = counts.sum(axis=0) > 0

        out = alphabet[winner].astype(np.uint8)
        low = (confidence < threshold) & (out >= _ORD_A) & (out <= _ORD_Z)
        out[low] += _CASE_OFFSET
        out[~covered] = ord(GAP)

        logger.debug(
            "Consensus over %d reads, span %d-%d: %d gap columns, %d low-confidence columns",
            len(self._sequences),
            start,
            end,
            int(n_cols - covered.sum()),
            int((low & covered).sum()),
        )
        return out.tobytes().decode("ascii")


def consense(
    sequences: Iterable[AnchoredQualitySequence],
    *,
    threshold: int = DEFAULT_CONSENSUS_THRESHOLD,
) -> str:
    return Pileup(sequences).consensus(threshold=threshold)
