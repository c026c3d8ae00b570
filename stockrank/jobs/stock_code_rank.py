"""
Stock code rank job (Phase 2).
Reads the "<code> <count>" lines written by the count job and assigns
contiguous ranks ordered by descending count.

Codes are separated from counts by commas or whitespace, so a code that
contains either one (for example "BRK A") splits into too many tokens and
is dropped here even though the count job counted it.
"""

import re

from stockrank.common.types import PivotEntry, RankedEntry

TOKEN_SEPARATOR = re.compile(r'[,\s]+')

# Ranks must come from one total order, so all pivoted entries go to a
# single reduce partition.
NUM_REDUCE_TASKS = 1


def parse_count_entry(line):
    """
    Parse one intermediate line into a PivotEntry.

    Lines that do not split into exactly two tokens are dropped (None).
    A count that is not an integer raises ValueError, since it means the
    intermediate dataset is corrupt.
    """
    tokens = TOKEN_SEPARATOR.split(line.strip())
    if len(tokens) != 2:
        return None
    code, count = tokens
    return PivotEntry(int(count.strip()), code.strip())


def map_function(key, value):
    """
    Map function: pivot (code, count) into (count, code).

    Args:
        key: Line position (unused)
        value: Intermediate line "<code><sep><count>"

    Yields:
        (count, code) tuples
    """
    entry = parse_count_entry(value)
    if entry is not None:
        yield (entry.count, entry.code)


def sort_key(count):
    """Order reduce groups from the highest count to the lowest"""
    return -count


class RankAssigner:
    """
    Assigns ranks over the globally sorted stream of count groups.

    One instance owns the running rank for a whole ranking run. Codes that
    share a count get consecutive ranks in lexicographic order.
    """

    def __init__(self):
        self.next_rank = 1

    def assign(self, count, codes):
        for code in sorted(codes):
            yield RankedEntry(self.next_rank, code, count)
            self.next_rank += 1

    def reduce(self, key, values):
        for entry in self.assign(key, values):
            yield (entry.rank, entry)


def make_reduce_function():
    """Return a fresh reducer bound to a new RankAssigner"""
    return RankAssigner().reduce


def format_output(key, value):
    """Render one ranked entry as rank:code,count"""
    return value.to_line()
