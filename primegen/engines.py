"""
Registry of the available prime engines.

The set of engines is closed; callers pick one by name and then use it only
through the Generator interface.
"""

from typing import Callable, Dict

from primegen.heap_sieve import HeapSieve
from primegen.parallel_sieve import SegmentedSieve
from primegen.primes import Generator
from primegen.sprp import SPRPTester
from primegen.wheel_sieve import BitSieve

ENGINES: Dict[str, Callable[..., Generator]] = {
    "sieve": lambda bound, **options: BitSieve(bound),
    "segment": lambda bound, **options: SegmentedSieve(bound, **options),
    "queue": lambda bound, **options: HeapSieve(),
    "sprp": lambda bound, **options: SPRPTester(),
}


def make_generator(name: str, bound: int, **options) -> Generator:
    """
    Construct the named engine.

    Parameters
    ----------
    name : str
        One of ENGINES.
    bound : int
        Upper bound for bounded engines; ignored by unbounded ones.
    **options
        Engine options, e.g. l2_cache_bytes and num_workers for "segment".

    Returns
    -------
    Generator
    """
    try:
        factory = ENGINES[name]
    except KeyError:
        raise KeyError(f"unknown engine {name!r}, expected one of {sorted(ENGINES)}") from None
    return factory(bound, **options)
