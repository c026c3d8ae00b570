"""
Stock code count job (Phase 1).
Counts how many records carry each stock code.

Input lines are comma separated with exactly four fields, the stock code
being the last one. The engine drops the dataset header before map_function
sees any line.
"""

from stockrank.common.types import CountEntry

FIELD_COUNT = 4
CODE_INDEX = 3

SKIP_HEADER = True


def parse_record(line):
    """
    Extract the stock code from one raw input line.

    Args:
        line: Raw text line

    Returns:
        The trimmed stock code, or None when the line does not have
        exactly four fields or the code field is blank
    """
    fields = line.split(',')
    if len(fields) != FIELD_COUNT:
        return None
    code = fields[CODE_INDEX].strip()
    return code or None


def map_function(key, value):
    """
    Map function: emit (code, 1) for each well-formed record.

    Args:
        key: Line position (unused)
        value: Text line

    Yields:
        (code, 1) tuples
    """
    code = parse_record(value)
    if code is not None:
        yield (code, 1)


def reduce_function(key, values):
    """
    Reduce function: total count for one stock code.

    Args:
        key: Stock code
        values: Counts (1s from map or partial sums from the combiner)

    Yields:
        (code, total_count) tuple
    """
    yield CountEntry(key, sum(values))


def combiner_function(key, values):
    """
    Combiner function: partial sum of the counts seen by one map task.
    Addition is associative and commutative, so partial sums merge exactly.
    """
    yield (key, sum(values))
