"""
Tests for the priority-queue wheel sieve.
"""

import itertools

import pytest

from primegen.heap_sieve import WHEEL_HALF, HeapSieve, symmetric_wheel
from primegen.primes import U64_MAX, iterator, primes_in
from primegen.wheel_sieve import BitSieve

TWENTY = [2, 3, 5, 7, 11, 13, 17, 19, 23, 29,
          31, 37, 41, 43, 47, 53, 59, 61, 67, 71]

PRIMES_1000_1100 = [1009, 1013, 1019, 1021, 1031, 1033, 1039, 1049, 1051,
                    1061, 1063, 1069, 1087, 1091, 1093, 1097]


class TestSymmetricWheel:
    """Gap generator walks the half pattern back and forth."""

    def test_two_three_wheel(self):
        gaps = list(itertools.islice(symmetric_wheel(WHEEL_HALF), 8))
        assert gaps == [2, 4, 2, 4, 2, 4, 2, 4]

    def test_wheel_values(self):
        values = list(itertools.accumulate(
            itertools.islice(symmetric_wheel(WHEEL_HALF), 9), initial=5))
        assert values == [5, 7, 11, 13, 17, 19, 23, 25, 29, 31]

    def test_longer_half(self):
        gaps = list(itertools.islice(symmetric_wheel((1, 2, 3)), 9))
        assert gaps == [1, 2, 3, 2, 1, 2, 3, 2, 1]

    def test_single_gap(self):
        assert list(itertools.islice(symmetric_wheel((2,)), 4)) == [2, 2, 2, 2]


class TestHeapSieve:
    """Known primes and agreement with the bit sieve."""

    def test_limit(self):
        assert HeapSieve().limit() == U64_MAX

    def test_twenty(self):
        assert primes_in(HeapSieve(), 0, TWENTY[-1]).tolist() == TWENTY

    def test_high_start(self):
        assert primes_in(HeapSieve(), 1000, 1100).tolist() == PRIMES_1000_1100

    def test_prime_squares_excluded(self):
        primes = set(primes_in(HeapSieve(), 0, 1000).tolist())
        for p in [5, 7, 11, 13, 17, 19, 23, 29, 31]:
            assert p * p not in primes, f"{p}^2 reported as prime"

    @pytest.mark.parametrize("n", [10, 121, 1000, 65536, 300007])
    def test_matches_bit_sieve(self, n):
        assert primes_in(HeapSieve(), 0, n).tolist() == primes_in(BitSieve(n), 0, n).tolist()

    def test_no_state_between_calls(self):
        engine = HeapSieve()
        first = primes_in(engine, 500, 600).tolist()
        primes_in(engine, 0, 10000)
        assert primes_in(engine, 500, 600).tolist() == first

    def test_unbounded_iterator(self):
        it = iterator(HeapSieve(), 10**5)
        assert next(it) == 100003
        assert next(it) == 100019


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
