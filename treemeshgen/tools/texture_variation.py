"""
Per-element UV variation that breaks up visible texture repetition.

Two parts are combined: a fixed offset that depends only on an integer seed,
and a coherent-noise offset that depends only on world position. Neither
reads from the growth stream.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from noise import pnoise2

from treemeshgen.tools.common import vec3
from treemeshgen.tools.random_stream import fork_stream

UV = Tuple[float, float]


@dataclass(frozen=True)
class UVVariation:
    offset_strength: float = 0.0
    noise_scale: float = 1.0
    noise_strength: float = 0.0


@lru_cache(maxsize=4096)
def random_uv_offset(seed: int) -> UV:
    """Offset in [0, 1)^2 drawn from a generator forked from 'seed'."""
    rng = fork_stream(seed)
    return float(rng.random()), float(rng.random())


def uv_noise_offset(world_position: vec3, noise_scale: float, noise_strength: float) -> UV:
    if noise_strength <= 0.0:
        return 0.0, 0.0
    noise_u = pnoise2(world_position.x * noise_scale, world_position.y * noise_scale)
    noise_v = pnoise2(world_position.z * noise_scale, world_position.x * noise_scale)
    return noise_u * 0.5 * noise_strength, noise_v * 0.5 * noise_strength


def apply_uv_variation(base_uv: UV, world_position: vec3, seed: int, variation: UVVariation) -> UV:
    u, v = base_uv

    if variation.offset_strength > 0.0:
        offset_u, offset_v = random_uv_offset(seed)
        u += offset_u * variation.offset_strength
        v += offset_v * variation.offset_strength

    if variation.noise_strength > 0.0:
        noise_u, noise_v = uv_noise_offset(world_position, variation.noise_scale, variation.noise_strength)
        u += noise_u
        v += noise_v

    return u, v
