"""
Incremental wheel sieve driven by a priority queue.

No up-front work and no storage proportional to the bound: the only state
is a min-heap of (next composite, stride) entries, one per prime whose
square is still in range. Time and space grow as primes are generated.

Algorithm credit: Melissa E. O'Neill, "The Genuine Sieve of Eratosthenes".
"""

import heapq
from typing import Iterator, Sequence

from primegen.primes import U64_MAX, Generator

# Gaps between consecutive 6k±1 numbers, starting from 5.
WHEEL_HALF = (2, 4)


def symmetric_wheel(half: Sequence[int]) -> Iterator[int]:
    """
    Yield wheel gaps by walking back and forth across half the pattern.

    Wheel gap sequences are palindromic, so only half needs storing;
    (2, 4) yields 2, 4, 2, 4, ...
    """
    if len(half) == 1:
        while True:
            yield half[0]
    last = len(half) - 1
    pos, forwards = 1, False
    while True:
        if forwards:
            if pos < last:
                pos += 1
            else:
                forwards = False
                pos -= 1
        else:
            if pos > 0:
                pos -= 1
            else:
                forwards = True
                pos += 1
        yield half[pos]


class HeapSieve(Generator):
    """Unbounded prime generator; each call to iterate starts from scratch."""

    def limit(self) -> int:
        return U64_MAX

    def _wheel_primes(self, start: int, stop: int) -> Iterator[int]:
        heap = []  # (next composite, stride)
        k = 5
        for gap in symmetric_wheel(WHEEL_HALF):
            if k > stop:
                return

            composite = False
            while heap and heap[0][0] <= k:
                multiple, stride = heap[0]
                if multiple == k:
                    composite = True
                heapq.heapreplace(heap, (multiple + stride, stride))

            if not composite:
                if k * k <= stop:
                    # odd multiples only; even ones never hit the wheel
                    heapq.heappush(heap, (k * k, 2 * k))
                if k >= start:
                    yield k

            k += gap
