"""
Tests for the bit-packed wheel sieve.

Covers the 6k±1 index mapping, the precomputed small bitset, prime counts
and the sieve-by-count constructor.
"""

import numpy as np
import pytest

from primegen.heap_sieve import HeapSieve
from primegen.primes import primes_in
from primegen.wheel_sieve import (
    SMALL_COMPOSITE_LIMIT,
    SMALL_COMPOSITES,
    SMALL_PI_LIMIT,
    WORD,
    BitSieve,
    bound_for_count,
    index_to_n,
    n_to_index,
    sieve_words,
    unpack_words,
    wheel_positions,
    wheel_starts,
)

# Number of primes <= n
PRIME_COUNTS = [
    (0, 0),
    (1, 0),
    (2, 1),
    (3, 2),
    (4, 2),
    (5, 3),
    (6, 3),
    (7, 4),
    (8, 4),
    (100, 25),
    (192, 43),
    (193, 44),
    (1000, 168),
    (10**6, 78498),
]


def count_primes(generator, n):
    count = 0

    def visit(_):
        nonlocal count
        count += 1
        return False

    assert generator.iterate(1, n, visit)
    return count


class TestIndexMapping:
    """Wheel position <-> number conversions."""

    def test_first_positions(self):
        assert [index_to_n(i) for i in range(8)] == [5, 7, 11, 13, 17, 19, 23, 25]

    def test_round_trip(self):
        for i in range(2000):
            assert n_to_index(index_to_n(i)) == i

    @pytest.mark.parametrize("n", [0, 2, 3, 4, 6, 9, 15, 100])
    def test_non_wheel_numbers_rejected(self, n):
        with pytest.raises(ValueError):
            n_to_index(n)

    def test_wheel_positions_matches_brute_force(self):
        for n in range(0, 500):
            expected = sum(1 for m in range(5, n + 1) if m % 6 in (1, 5))
            assert wheel_positions(n) == expected, f"wheel_positions({n})"

    def test_wheel_starts(self):
        # 5: 25 and 35; 7: 49 and 77
        assert wheel_starts(5) == (n_to_index(25), n_to_index(35))
        assert wheel_starts(7) == (n_to_index(49), n_to_index(77))


class TestSmallComposites:
    """The precomputed bitset must match what the sieve would produce."""

    def test_constant_reproduced_by_sieve(self):
        words = sieve_words(SMALL_COMPOSITE_LIMIT)
        assert len(words) == len(SMALL_COMPOSITES)
        assert words.dtype == WORD
        np.testing.assert_array_equal(words, SMALL_COMPOSITES)

    def test_constant_bits(self):
        bits = unpack_words(SMALL_COMPOSITES)
        for i in range(64):
            n = index_to_n(i)
            is_comp = any(n % p == 0 for p in range(5, int(n**0.5) + 1))
            assert bool(bits[i]) == is_comp, f"bit {i} ({n})"

    def test_small_bound_skips_sieve(self):
        for n in [0, 1, 29, 100, SMALL_COMPOSITE_LIMIT]:
            assert BitSieve(n).composite is SMALL_COMPOSITES

    def test_above_small_bound_runs_sieve(self):
        s = BitSieve(SMALL_COMPOSITE_LIMIT + 1)
        assert s.composite is not SMALL_COMPOSITES
        assert s.composite[0] == SMALL_COMPOSITES[0]

    def test_constant_is_read_only(self):
        with pytest.raises(ValueError):
            SMALL_COMPOSITES[0] = 0

    def test_small_pi_limit(self):
        assert SMALL_PI_LIMIT == 43


class TestZeroSieve:
    """A sieve with bound 0 is valid but answers nothing above 0."""

    def test_limit(self):
        assert BitSieve(0).limit() == 0

    def test_iterate_zero_range(self):
        assert BitSieve(0).iterate(0, 0, lambda p: False)

    def test_iterate_above_limit(self):
        assert not BitSieve(0).iterate(0, 1, lambda p: False)


class TestPrimeCounts:
    """Counting primes from 1 to n."""

    @pytest.mark.parametrize("n,expected", PRIME_COUNTS)
    def test_count(self, n, expected):
        assert count_primes(BitSieve(n), n) == expected

    @pytest.mark.slow
    def test_count_1e8(self):
        assert count_primes(BitSieve(10**8), 10**8) == 5761455


class TestIteration:
    """Iteration across word and block boundaries."""

    def test_ranges_across_blocks(self):
        sieve = BitSieve(500000)
        for start, stop in [(90000, 200000), (98000, 99000), (5, 500000)]:
            np.testing.assert_array_equal(
                primes_in(sieve, start, stop),
                primes_in(HeapSieve(), start, stop),
                err_msg=f"[{start}, {stop}]",
            )

    def test_word_boundary(self):
        # position 63 is 193, position 64 is 197
        assert primes_in(BitSieve(200), 190, 200).tolist() == [191, 193, 197, 199]

    def test_no_primes_past_limit(self):
        sieve = BitSieve(1000)
        assert primes_in(sieve, 990, 1000).tolist() == [991, 997]


class TestWithCount:
    """Sieve sized to hold at least a given number of primes."""

    def test_small_count_uses_constant(self):
        s = BitSieve.with_count(SMALL_PI_LIMIT)
        assert s.limit() == SMALL_COMPOSITE_LIMIT
        assert s.composite is SMALL_COMPOSITES
        assert len(primes_in(s)) == SMALL_PI_LIMIT

    def test_one_more_runs_sieve(self):
        s = BitSieve.with_count(SMALL_PI_LIMIT + 1)
        assert s.composite is not SMALL_COMPOSITES
        assert len(primes_in(s)) >= SMALL_PI_LIMIT + 1

    @pytest.mark.parametrize("count,nth", [(100, 541), (1000, 7919), (10000, 104729)])
    def test_nth_prime_present(self, count, nth):
        primes = primes_in(BitSieve.with_count(count))
        assert len(primes) >= count
        assert primes[count - 1] == nth

    def test_bound_for_count_monotonic(self):
        bounds = [bound_for_count(c) for c in range(1, 2000)]
        assert bounds == sorted(bounds)


class TestValidation:
    """Bad bounds are programming errors."""

    @pytest.mark.parametrize("n", [-1, 2**64])
    def test_out_of_range(self, n):
        with pytest.raises(ValueError):
            BitSieve(n)

    @pytest.mark.parametrize("n", [1.5, "100", None])
    def test_not_an_integer(self, n):
        with pytest.raises(TypeError):
            BitSieve(n)

    def test_numpy_integer_accepted(self):
        assert BitSieve(np.int64(100)).limit() == 100


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
