"""
Line-oriented input splits
Reads a byte range of a text file aligned to line boundaries, and wraps
line iterators with the header-skip rule used by the counting job.
"""

import os
from typing import Iterable, Iterator, List, Tuple


def read_split(path: str, start_offset: int, end_offset: int) -> Iterator[Tuple[int, str]]:
    """
    Yield the lines owned by the byte range [start_offset, end_offset)

    A line belongs to the split in which it starts. A split that does not
    begin at offset 0 discards the tail of the line it lands in, which the
    previous split reads to completion.

    Args:
        path: Path to the input file
        start_offset: Byte offset where this split starts
        end_offset: Byte offset where this split stops

    Yields:
        (line_number, line_content) tuples, line_number relative to the split
    """
    with open(path, 'rb') as f:
        if start_offset > 0:
            # Position on the byte before the split so a line starting exactly
            # at start_offset is not discarded
            f.seek(start_offset - 1)
            f.readline()

        line_num = 0
        while f.tell() < end_offset:
            raw = f.readline()
            if not raw:
                break
            yield line_num, raw.decode('utf-8', errors='ignore').rstrip('\r\n')
            line_num += 1


def skip_header(records: Iterable) -> Iterator:
    """Drop the first element of any record iterator, whatever it contains"""
    iterator = iter(records)
    next(iterator, None)
    return iterator


def compute_splits(paths: List[str], num_splits: int) -> List[Tuple[str, int, int]]:
    """
    Divide input files into roughly num_splits byte ranges

    Every file gets at least one split so that empty files still produce a
    (trivially empty) map task.

    Returns:
        List of (path, start_offset, end_offset) tuples in input order
    """
    if num_splits < 1:
        raise ValueError("num_splits must be >= 1")

    sizes = [os.path.getsize(p) for p in paths]
    total = sum(sizes)
    splits = []

    for path, size in zip(paths, sizes):
        share = max(1, round(num_splits * size / total)) if total else 1
        chunk_size = max(1, size // share)
        start = 0
        for i in range(share):
            end = size if i == share - 1 else min(size, start + chunk_size)
            splits.append((path, start, end))
            start = end
    return splits
