"""
Parallel segmented wheel sieve.

Same bitset as wheel_sieve.BitSieve, filled in two phases:
1. Sequential: sieve the first ceil(sqrt(words)) words, which holds every
   prime up to sqrt(n).
2. Parallel: split the remaining words into cache-sized segments and let a
   thread pool mark them. Segments are disjoint word ranges of one shared
   array, so no locking is needed while marking.
"""

import logging
import math
from functools import partial
from multiprocessing import cpu_count
from multiprocessing.pool import ThreadPool
from typing import List, Optional, Tuple

import numpy as np

from primegen.wheel_sieve import (
    WORD,
    WORD_BITS,
    BitSieve,
    mark_multiples,
    n_to_index,
    pack_bits,
    sieve_prefix,
    sieve_words,
    unpack_words,
    wheel_positions,
)

logger = logging.getLogger(__name__)

# Assumed L2 size; half of it is left for everything else.
DEFAULT_L2_CACHE_BYTES = 4_000_000

# Integers represented per bit.
DENSITY = 3


def plan_segments(n_words: int, first_word: int, num_workers: int,
                  l2_quota: int) -> List[Tuple[int, int]]:
    """
    Split words [first_word, n_words) into contiguous segments.

    Each worker gets an equal share of the cache quota, so a segment holds
    at most l2_quota // num_workers bytes.

    Returns
    -------
    list of (start, end)
        Word ranges, end exclusive, in increasing order.
    """
    words_left = n_words - first_word
    if words_left <= 0:
        return []
    seg_quota = max(WORD.itemsize, l2_quota // num_workers)
    n_segments = -(-(words_left * WORD.itemsize) // seg_quota)
    words_per_segment = -(-words_left // n_segments)
    return [(start, min(start + words_per_segment, n_words))
            for start in range(first_word, n_words, words_per_segment)]


def _sieving_primes(prefix: np.ndarray, prefix_hi: int, hi: int) -> List[int]:
    """Primes recorded in the prefix bitset whose square lies before position hi."""
    pos = np.flatnonzero(unpack_words(prefix)[:prefix_hi] == 0)
    primes = []
    for p in (3 * pos + 5 - (pos & 1)).tolist():
        if n_to_index(p * p) >= hi:
            break
        primes.append(p)
    return primes


def _sieve_segment(segment: Tuple[int, int], words: np.ndarray,
                   prefix: np.ndarray, prefix_hi: int,
                   n_pos: int) -> Tuple[int, int]:
    """
    Mark composites in words[start:end] using primes from the prefix.

    Only this task writes words[start:end]; the prefix is read-only.
    """
    start, end = segment
    lo = start * WORD_BITS
    hi = min(end * WORD_BITS, n_pos)

    bits = np.zeros((end - start) * WORD_BITS, dtype=bool)
    for p in _sieving_primes(prefix, prefix_hi, hi):
        mark_multiples(bits, p, lo, hi)

    words[start:end] = pack_bits(bits)
    return segment


class SegmentedSieve(BitSieve):
    """
    Wheel sieve built by a pool of worker threads.

    Parameters
    ----------
    n : int
        Upper bound (inclusive).
    l2_cache_bytes : int
        Assumed L2 cache size. Half of it is shared among the workers and
        determines the segment size.
    num_workers : int, optional
        Worker threads. Defaults to CPU count.
    """

    def __init__(self, n: int, l2_cache_bytes: int = DEFAULT_L2_CACHE_BYTES,
                 num_workers: Optional[int] = None):
        if num_workers is None:
            num_workers = cpu_count()
        if num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {num_workers}")
        if l2_cache_bytes < 2 * WORD.itemsize:
            raise ValueError(
                f"l2_cache_bytes must be >= {2 * WORD.itemsize}, got {l2_cache_bytes}")

        self.l2_cache_bytes = l2_cache_bytes
        self.num_workers = num_workers
        super().__init__(n)

    def _sieve(self, n: int) -> np.ndarray:
        l2_quota = self.l2_cache_bytes // 2

        # Whole sieve fits in the quota: no segmentation needed
        if n < l2_quota * DENSITY * 8:
            return sieve_words(n)

        n_pos = wheel_positions(n)
        n_words = -(-n_pos // WORD_BITS)
        words = np.zeros(n_words, dtype=WORD)

        # Step 1: sequential sieve of the prefix
        words_sq = math.isqrt(n_words - 1) + 1
        prefix_hi = min(words_sq * WORD_BITS, n_pos)
        bits = np.zeros(words_sq * WORD_BITS, dtype=bool)
        sieve_prefix(bits, prefix_hi)
        words[:words_sq] = pack_bits(bits)

        prefix = words[:words_sq]
        prefix.setflags(write=False)

        # Step 2: segments for the rest
        segments = plan_segments(n_words, words_sq, self.num_workers, l2_quota)
        logger.info("Sieving %d words: %d prefix words, %d segments, %d workers",
                    n_words, words_sq, len(segments), self.num_workers)

        # Step 3: dispatch and wait for every segment
        task = partial(_sieve_segment, words=words, prefix=prefix,
                       prefix_hi=prefix_hi, n_pos=n_pos)
        done = 0
        with ThreadPool(self.num_workers) as pool:
            for start, end in pool.imap_unordered(task, segments):
                done += 1
                logger.debug("Segment [%d, %d) done (%d/%d)",
                             start, end, done, len(segments))

        return words


if __name__ == '__main__':
    import time

    # Benchmark
    for N in [10**7, 10**8, 10**9]:
        print(f"\nN = {N:,}")

        t0 = time.time()
        par = SegmentedSieve(N)
        t_par = time.time() - t0
        print(f"  Parallel: {t_par:.1f}s")

        # Sequential (for comparison, only for small N)
        if N <= 10**8:
            t0 = time.time()
            seq = BitSieve(N)
            t_seq = time.time() - t0
            print(f"  Sequential: {t_seq:.1f}s")
            print(f"  Speedup: {t_seq/t_par:.1f}x")

            assert np.array_equal(par.composite, seq.composite), "Results don't match!"
            print("  ✓ Verified")
