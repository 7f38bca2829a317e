"""
Bit-packed wheel sieve for 6k±1 numbers only.

Multiples of 2 and 3 are never stored: one bit per number ≡ 1 or 5 (mod 6),
so a bound of n needs about n/3 bits.

Index mapping:
- Index 2i   → 6(i+1) - 1 = 6i + 5  (≡ 5 mod 6)
- Index 2i+1 → 6(i+1) + 1 = 6i + 7  (≡ 1 mod 6)

Reverse (n → index):
- n ≡ 5 (mod 6): index = (n - 5) // 3
- n ≡ 1 (mod 6): index = (n - 4) // 3

Word layout: little-endian uint64 words, position i lives in word i // 64,
bit i % 64. A set bit means the number at that position is composite.
"""

import logging
import math
from typing import Iterator, Tuple

import numpy as np

from primegen.primes import Generator, check_bound, primes_in

logger = logging.getLogger(__name__)

WORD = np.dtype("<u8")
WORD_BITS = 64

# Composite bits for positions 0..63 (5 through 193).
SMALL_COMPOSITES = np.array([0x3294C9E069128480], dtype=WORD)
SMALL_COMPOSITES.setflags(write=False)
SMALL_COMPOSITE_LIMIT = 3 * WORD_BITS * len(SMALL_COMPOSITES)

# Words unpacked per step while iterating.
_BLOCK_WORDS = 512


def index_to_n(i: int) -> int:
    """Convert wheel index to actual number."""
    # i=0 → 5, i=1 → 7, i=2 → 11, i=3 → 13, ...
    if i % 2 == 0:
        return 3 * i + 5  # 6k-1 numbers
    else:
        return 3 * i + 4  # 6k+1 numbers


def n_to_index(n: int) -> int:
    """Convert number (must be ≡ 1 or 5 mod 6) to wheel index."""
    r = n % 6
    if r == 5:
        return (n - 5) // 3
    elif r == 1:
        return (n - 4) // 3
    else:
        raise ValueError(f"{n} is not ≡ 1 or 5 (mod 6)")


def wheel_positions(n: int) -> int:
    """Number of wheel positions holding values in [5, n]."""
    if n < 5:
        return 0
    q, r = divmod(n, 6)
    # 6k±1 numbers in [1, n], minus the number 1 itself
    return 2 * q + (r >= 1) + (r >= 5) - 1


def wheel_starts(p: int) -> Tuple[int, int]:
    """
    Positions of the first two wheel multiples of prime p worth marking.

    These are p*p and p times the wheel number following p. Every later
    wheel multiple of p is one of the two plus a multiple of 2p positions.
    """
    step = 2 if p % 6 == 5 else 4
    return n_to_index(p * p), n_to_index(p * (p + step))


def mark_multiples(bits: np.ndarray, p: int, lo: int, hi: int) -> None:
    """
    Mark wheel multiples of p (from p*p) whose positions fall in [lo, hi).

    Parameters
    ----------
    bits : np.ndarray
        Unpacked bool array; bits[0] is absolute position lo.
    p : int
        Sieving prime (>= 5).
    lo, hi : int
        Absolute position range to mark.
    """
    stride = 2 * p
    for s in wheel_starts(p):
        if s < lo:
            # first multiple at or after the segment start
            s -= ((s - lo) // stride) * stride
        bits[s - lo:hi - lo:stride] = True


def sieve_prefix(bits: np.ndarray, hi: int) -> None:
    """
    Run the single-threaded sieve over positions [0, hi) of bits, in place.

    Walks the wheel from 5; every position still clear when reached is prime
    and has its multiples marked. Stops once p*p is past hi.
    """
    i = 0
    while True:
        p = index_to_n(i)
        if n_to_index(p * p) >= hi:
            break
        if not bits[i]:
            mark_multiples(bits, p, 0, hi)
        i += 1


def pack_bits(bits: np.ndarray) -> np.ndarray:
    """Pack a bool array (length a multiple of 64) into little-endian words."""
    return np.packbits(bits, bitorder="little").view(WORD)


def unpack_words(words: np.ndarray) -> np.ndarray:
    """Unpack words into one 0/1 byte per position."""
    return np.unpackbits(np.ascontiguousarray(words, dtype=WORD).view(np.uint8),
                         bitorder="little")


def sieve_words(n: int) -> np.ndarray:
    """
    Compute composite words for all 6k±1 numbers up to n.

    Parameters
    ----------
    n : int
        Upper bound (inclusive).

    Returns
    -------
    np.ndarray
        Composite bitset as uint64 words; unused trailing bits are clear.
    """
    n_pos = wheel_positions(n)
    n_words = -(-n_pos // WORD_BITS)
    logger.debug("Sieving %d wheel positions (%d words) up to %d",
                 n_pos, n_words, n)

    bits = np.zeros(n_words * WORD_BITS, dtype=bool)
    sieve_prefix(bits, n_pos)
    return pack_bits(bits)


def iter_primes(words: np.ndarray, start: int, stop: int) -> Iterator[int]:
    """
    Yield primes in [start, stop] recorded in a composite bitset.

    Walks the words in order, a block at a time, so early termination
    never unpacks more than one block past the last visited prime.
    start must be >= 5.
    """
    first = wheel_positions(start - 1)
    last = wheel_positions(stop) - 1
    if first > last:
        return

    w = first // WORD_BITS
    last_word = last // WORD_BITS
    while w <= last_word:
        block = words[w:min(w + _BLOCK_WORDS, last_word + 1)]
        pos = np.flatnonzero(unpack_words(block) == 0) + w * WORD_BITS
        pos = pos[(pos >= first) & (pos <= last)]
        yield from (3 * pos + 5 - (pos & 1)).tolist()
        w += _BLOCK_WORDS


def bound_for_count(count: int) -> int:
    """
    Return a bound n with at least count primes <= n.

    Uses p_k < k (ln k + ln ln k), valid for k >= 6; small counts are
    served by the precomputed bitset.
    """
    if count <= SMALL_PI_LIMIT:
        return SMALL_COMPOSITE_LIMIT
    ln = math.log(count)
    return math.ceil(count * (ln + math.log(ln)))


class BitSieve(Generator):
    """
    Sieve of Eratosthenes over the 2,3-wheel, one bit per candidate.

    The whole sieve runs in the constructor; afterwards the bitset is
    read-only and iteration is cheap. Bounds up to SMALL_COMPOSITE_LIMIT
    share a precomputed bitset and run no sieve at all.
    """

    def __init__(self, n: int):
        self._limit = check_bound(n, "n")
        if self._limit <= SMALL_COMPOSITE_LIMIT:
            self.composite = SMALL_COMPOSITES
        else:
            self.composite = self._sieve(self._limit)

    @classmethod
    def with_count(cls, count: int, **kwargs) -> "BitSieve":
        """Construct a sieve holding at least count primes."""
        check_bound(count, "count")
        return cls(bound_for_count(count), **kwargs)

    def _sieve(self, n: int) -> np.ndarray:
        return sieve_words(n)

    def limit(self) -> int:
        return self._limit

    def _wheel_primes(self, start: int, stop: int) -> Iterator[int]:
        return iter_primes(self.composite, start, stop)


SMALL_PI_LIMIT = 2 + int(np.count_nonzero(
    unpack_words(SMALL_COMPOSITES)[:wheel_positions(SMALL_COMPOSITE_LIMIT)] == 0))


if __name__ == '__main__':
    # Quick sanity check
    print("Testing wheel sieve...")

    for i in range(10):
        n = index_to_n(i)
        i_back = n_to_index(n)
        print(f"  i={i} → n={n} → i={i_back}")
        assert i == i_back

    words = sieve_words(SMALL_COMPOSITE_LIMIT)
    status = "✓" if words[0] == SMALL_COMPOSITES[0] else "✗"
    print(f"\nSmall composite word: {int(words[0]):#018x} {status}")

    print("\nPrime counts:")
    for n in [10**4, 10**6, 10**7]:
        print(f"  pi({n:,}) = {len(primes_in(BitSieve(n), 0, n)):,}")
