"""
Deterministic strong probable-prime (Miller-Rabin) test below 2**32.

Witness sets are tiered by the size of the candidate; each set is proven
to have no strong pseudoprimes below its limit.
Reference: http://miller-rabin.appspot.com/

Compared with the sieves there is no setup cost and no storage, but every
candidate pays for a few modular exponentiations.
"""

import bisect
from typing import Iterator, List, Optional, Tuple

from primegen.primes import Generator

SPRP_LIMIT = 2**32 - 1

# (exclusive upper limit, witnesses)
BASE_SETS: Tuple[Tuple[int, Tuple[int, ...]], ...] = (
    (5329, (377687,)),
    (316349281, (11000544, 31481107)),
    (2**32, (2, 7, 61)),
)
_TIER_LIMITS = [limit for limit, _ in BASE_SETS]

# reference: http://graphics.stanford.edu/~seander/bithacks.html
_DEBRUIJN32_MULTIPLE = 0x077CB531
_DEBRUIJN32_SHIFT = 27
_DEBRUIJN32_BITS = (
    0, 1, 28, 2, 29, 14, 24, 3, 30, 22, 20, 15, 25, 17, 4, 8,
    31, 27, 13, 23, 21, 19, 16, 7, 26, 12, 18, 6, 11, 5, 10, 9,
)


def trailing_zeros32(v: int) -> int:
    """Count trailing zero bits of a 32-bit value (0 for v == 0)."""
    lowest = v & -v
    return _DEBRUIJN32_BITS[((lowest * _DEBRUIJN32_MULTIPLE) & 0xFFFFFFFF)
                            >> _DEBRUIJN32_SHIFT]


def tier_index(n: int) -> int:
    """Index into BASE_SETS of the witness set that covers n."""
    return bisect.bisect_right(_TIER_LIMITS, n)


def _check_candidate(n: int) -> None:
    if n < 0 or n > SPRP_LIMIT:
        raise ValueError(f"n must be in [0, {SPRP_LIMIT}], got {n}")


def is_prime(n: int) -> bool:
    """
    Stateless primality test for 0 <= n < 2**32.

    Safe to call from several threads; SPRPTester.is_prime gives the same
    answers while reusing cached powers.
    """
    _check_candidate(n)
    if n < 4:
        return n > 1
    if n % 2 == 0:
        return False

    nm1 = n - 1
    s = trailing_zeros32(nm1)
    d = nm1 >> s
    for a in BASE_SETS[tier_index(n)][1]:
        if a % n == 0:
            continue
        x = pow(a, d, n)
        if x == 1 or x == nm1:
            continue
        for _ in range(s - 1):
            x = x * x % n
            if x == nm1:
                break
            if x == 1:
                return False
        else:
            return False
    return True


class SPRPTester(Generator):
    """
    Miller-Rabin prime generator with cached witness state.

    The cache holds the active witness set and, for each witness a, the
    powers a**(2**k) mod n already computed for the current candidate n.
    It is rebuilt whenever the candidate changes tier or value, so any
    call order gives correct answers; scanning upward keeps the tier
    lookup cheap. Not safe for concurrent use.
    """

    def __init__(self):
        self.current_base_set_index = 0
        self.current_limit = BASE_SETS[0][0]
        self.bases: Tuple[int, ...] = BASE_SETS[0][1]
        self._modulus: Optional[int] = None
        self._powers: List[List[int]] = []
        self._reset_limit(3)

    def limit(self) -> int:
        return SPRP_LIMIT

    def _reset_limit(self, n: int) -> None:
        """Select the witness set for n from scratch."""
        self.current_base_set_index = tier_index(n)
        self.current_limit, self.bases = BASE_SETS[self.current_base_set_index]
        self._modulus = None

    def _select_tier(self, n: int) -> None:
        floor = (BASE_SETS[self.current_base_set_index - 1][0]
                 if self.current_base_set_index else 0)
        if n < floor:
            self._reset_limit(n)
            return
        if n >= self.current_limit:
            while n >= self.current_limit:
                self.current_base_set_index += 1
                self.current_limit = BASE_SETS[self.current_base_set_index][0]
            self.bases = BASE_SETS[self.current_base_set_index][1]
            self._modulus = None

    def _power(self, i: int, d: int, n: int) -> int:
        """bases[i]**d mod n by binary exponentiation over cached squares."""
        if n != self._modulus:
            self._modulus = n
            self._powers = [[a % n] for a in self.bases]
        squares = self._powers[i]

        x = 1
        bit = 0
        while d:
            if bit == len(squares):
                squares.append(squares[-1] * squares[-1] % n)
            if d & 1:
                x = x * squares[bit] % n
            d >>= 1
            bit += 1
        return x

    def is_prime(self, n: int) -> bool:
        """Return True if n is prime; 0 <= n < 2**32."""
        _check_candidate(n)
        if n < 4:
            return n > 1
        if n % 2 == 0:
            return False
        self._select_tier(n)

        nm1 = n - 1
        s = trailing_zeros32(nm1)
        d = nm1 >> s
        for i, a in enumerate(self.bases):
            if a % n == 0:
                continue
            x = self._power(i, d, n)
            if x == 1 or x == nm1:
                continue
            for _ in range(s - 1):
                x = x * x % n
                if x == nm1:
                    break
                if x == 1:
                    return False
            else:
                return False
        return True

    def _wheel_primes(self, start: int, stop: int) -> Iterator[int]:
        c = start | 1
        self._reset_limit(c)
        for c in range(c, stop + 1, 2):
            if self.is_prime(c):
                yield c
