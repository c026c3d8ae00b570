"""
Record types passed between the counting and ranking phases
"""

from typing import NamedTuple


class CountEntry(NamedTuple):
    """One distinct stock code with its total count (Phase 1 output)"""
    code: str
    count: int


class PivotEntry(NamedTuple):
    """Count/code pair with the count first so it drives the sort"""
    count: int
    code: str


class RankedEntry(NamedTuple):
    """Final ranked line"""
    rank: int
    code: str
    count: int

    def to_line(self) -> str:
        return f"{self.rank}:{self.code},{self.count}"
