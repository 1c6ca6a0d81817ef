"""Error taxonomy for consensus runs.

Every stage raises one of these; only the CLI decides how a failure maps to
a diagnostic and an exit status.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ConsensusError(RuntimeError):
    """Base class for all run failures."""


class OpenError(ConsensusError):
    """An input file could not be opened or its header/index could not be read."""


class IndexQueryError(ConsensusError):
    """Overlapping records could not be looked up for an interval."""


class RecordIterationError(ConsensusError):
    """The per-interval record iterator failed while being read or released."""


class CorruptRecordError(ConsensusError):
    """A read's letter and quality arrays differ in length."""

    def __init__(self, read_name: str, n_letters: int, n_qualities: int) -> None:
        super().__init__(
            f"Corrupt record '{read_name}': {n_letters} letters but {n_qualities} qualities"
        )
        self.read_name = read_name
        self.n_letters = int(n_letters)
        self.n_qualities = int(n_qualities)

    def __reduce__(self):
        # Raised inside worker processes; must survive pickling.
        return (self.__class__, (self.read_name, self.n_letters, self.n_qualities))


class IntervalParseError(ConsensusError):
    """A row of the interval list is malformed."""

    def __init__(self, message: str, path: str | Path, line_number: Optional[int] = None) -> None:
        where = f"{path}:{line_number}" if line_number is not None else str(path)
        super().__init__(f"{where}: {message}")
        self.message = message
        self.path = str(path)
        self.line_number = line_number

    def __reduce__(self):
        return (self.__class__, (self.message, self.path, self.line_number))


class OutputError(ConsensusError):
    """A run output (such as the summary file) could not be written."""
