"""
Row-range work splitting shared by the index assigner and the interpolator.

Numpy releases the GIL for the array work done per range, so a thread pool is
enough to keep several cores busy without copying grids between processes.
"""

import concurrent.futures
from typing import Callable, List, Tuple, TypeVar

T = TypeVar('T')

RowRange = Tuple[int, int]


def row_ranges(row_count: int, chunk_count: int) -> List[RowRange]:
    """
    Split `row_count` rows into at most `chunk_count` contiguous, non-empty
    [start, stop) ranges that together cover every row once, in order.
    """
    if row_count < 1:
        return []
    chunk_count = max(1, min(chunk_count, row_count))
    base, extra = divmod(row_count, chunk_count)

    ranges = []
    start = 0
    for c in range(chunk_count):
        stop = start + base + (1 if c < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


def map_row_ranges(fn: Callable[[int, int], T], row_count: int, workers: int) -> List[T]:
    """
    Call fn(start, stop) for each row range and return the results in row
    order. One worker runs in the calling thread. Any exception raised by fn
    propagates to the caller unchanged.
    """
    ranges = row_ranges(row_count, workers)
    if workers <= 1 or len(ranges) <= 1:
        return [fn(start, stop) for start, stop in ranges]

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(fn, start, stop) for start, stop in ranges]
        return [future.result() for future in futures]
