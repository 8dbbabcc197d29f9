"""
Construction of the growth stream, the single random generator that one
generation pass draws all of its growth, rotation and size-jitter values from.
"""

from typing import Optional

import numpy as np


def make_growth_stream(seed: int, ambient: Optional[np.random.Generator] = None) -> np.random.Generator:
    """
    Return the generator for one generation pass.

    A nonzero seed gives a freshly seeded, fully reproducible stream. Seed 0
    means "use whatever state the stream is currently in": the caller's
    ambient generator is used as-is when supplied, otherwise a generator
    seeded from OS entropy.
    """
    if seed != 0:
        return np.random.default_rng(abs(int(seed)))
    if ambient is not None:
        return ambient
    return np.random.default_rng()


def fork_stream(seed: int) -> np.random.Generator:
    """
    Child generator for a reproducible sub-sequence. It shares no state with
    the growth stream, so drawing from it never shifts the growth draws.
    """
    return np.random.default_rng(abs(int(seed)))


def uniform(rng: np.random.Generator, low: float, high: float) -> float:
    return float(rng.uniform(low, high))


def value(rng: np.random.Generator) -> float:
    return float(rng.random())
