"""
Prime generator contract.

Responsibility: the interface shared by every prime engine, plus the two
generic ways of consuming one. No sieve logic lives here.

Every engine answers primes up to its own limit(). 2 and 3 are emitted
here, identically for all engines; engines only produce primes >= 5.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, Optional

import numpy as np

U64_MAX = 2**64 - 1

# A visitor returns True to stop iteration.
Visitor = Callable[[int], bool]


def check_bound(value: int, name: str = "bound") -> int:
    """
    Validate an unsigned 64-bit bound passed to a constructor.

    Parameters
    ----------
    value : int
        Candidate bound.
    name : str
        Parameter name used in error messages.

    Returns
    -------
    int
        The bound as a plain Python int.
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    value = int(value)
    if value < 0 or value > U64_MAX:
        raise ValueError(f"{name} must be in [0, 2**64 - 1], got {value}")
    return value


class Generator(ABC):
    """
    Source of prime numbers in increasing order.

    Subclasses implement limit() and _wheel_primes(); iterate() and the
    module-level helpers are built only on those two.
    """

    @abstractmethod
    def limit(self) -> int:
        """Largest value this generator can answer (U64_MAX if unbounded)."""

    @abstractmethod
    def _wheel_primes(self, start: int, stop: int) -> Iterator[int]:
        """
        Yield the primes in [start, stop] in increasing order.

        Called with 5 <= start <= stop <= limit().
        """

    def _generate(self, start: int, stop: int) -> Iterator[int]:
        if stop < 2 or start > stop:
            return
        if start <= 2:
            yield 2
        if start <= 3 and stop >= 3:
            yield 3
        start = max(start, 5)
        if start <= stop:
            yield from self._wheel_primes(start, stop)

    def iterate(self, start: int, stop: int, visitor: Visitor) -> bool:
        """
        Call visitor for each prime in [start, stop], inclusive.

        Parameters
        ----------
        start : int
            Lower bound (inclusive).
        stop : int
            Upper bound (inclusive).
        visitor : callable
            Called with each prime; a True return stops iteration.

        Returns
        -------
        bool
            False if stop > limit() (nothing is visited), True otherwise,
            including after early termination or when no primes are in range.
        """
        if stop > self.limit():
            return False
        for p in self._generate(start, stop):
            if visitor(p):
                break
        return True


def _bounds(generator: Generator, start: Optional[int], stop: Optional[int],
            default_start: int):
    if start is None:
        start = default_start
    if stop is None:
        stop = generator.limit()
    elif stop > generator.limit():
        return None
    return start, stop


def primes_in(generator: Generator, start: Optional[int] = None,
              stop: Optional[int] = None) -> Optional[np.ndarray]:
    """
    Return array of all primes in [start, stop].

    Parameters
    ----------
    generator : Generator
        Engine to draw primes from.
    start : int, optional
        Lower bound (inclusive). Defaults to 0.
    stop : int, optional
        Upper bound (inclusive). Defaults to generator.limit().
        Note that for an unbounded engine the default asks for every prime
        below 2**64.

    Returns
    -------
    np.ndarray or None
        uint64 array of primes, or None if stop exceeds the generator's limit.
    """
    bounds = _bounds(generator, start, stop, 0)
    if bounds is None:
        return None
    found = []
    generator.iterate(bounds[0], bounds[1], lambda p: found.append(p))
    return np.array(found, dtype=np.uint64)


def iterator(generator: Generator, start: Optional[int] = None,
             stop: Optional[int] = None) -> Optional[Iterator[int]]:
    """
    Return a lazy, single-pass iterator over the primes in [start, stop].

    Primes are produced one at a time as the consumer asks for them, so this
    is the way to walk an unbounded engine.

    Parameters
    ----------
    generator : Generator
        Engine to draw primes from.
    start : int, optional
        Lower bound (inclusive). Defaults to 2.
    stop : int, optional
        Upper bound (inclusive). Defaults to generator.limit().

    Returns
    -------
    iterator or None
        Iterator of ints, or None if stop exceeds the generator's limit.
    """
    bounds = _bounds(generator, start, stop, 2)
    if bounds is None:
        return None
    return generator._generate(bounds[0], bounds[1])
