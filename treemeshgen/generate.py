from dataclasses import dataclass
from typing import Optional

import numpy as np

from treemeshgen.config import GrowthConfig, LeafMode, StructureMode
from treemeshgen.progress_logging import log_progress
from treemeshgen.tools.branches import Forest
from treemeshgen.tools.gen_guided import generate_guided_branches
from treemeshgen.tools.gen_lsystem import generate_lsystem_branches
from treemeshgen.tools.gen_mesh import MeshBuffers, TubeSettings
from treemeshgen.tools.leaf_planes import create_plane_leaves
from treemeshgen.tools.leaf_volumes import create_leaf_clusters, create_leaf_domes
from treemeshgen.tools.random_stream import make_growth_stream
from treemeshgen.tools.texture_variation import UVVariation

GROWTH_STRATEGIES = {
    StructureMode.LSYSTEM: generate_lsystem_branches,
    StructureMode.GUIDED_GROWTH: generate_guided_branches,
}

FOLIAGE_STRATEGIES = {
    LeafMode.PLANES: create_plane_leaves,
    LeafMode.CLUSTERS: create_leaf_clusters,
    LeafMode.DOMES: create_leaf_domes,
}


@dataclass
class TreeResult:
    bark: MeshBuffers
    foliage: MeshBuffers
    forest: Forest
    config: GrowthConfig


def bark_tube_settings(config: GrowthConfig) -> TubeSettings:
    return TubeSettings(
        blend_distance=config.branch_blend_distance,
        tiling_horizontal=config.bark_tiling_horizontal,
        tiling_vertical=config.bark_tiling_vertical,
        uv_variation=UVVariation(
            offset_strength=config.bark_uv_randomness,
            noise_scale=config.bark_uv_noise_scale,
            noise_strength=config.bark_uv_noise_strength,
        ),
    )


def generate_tree(config: GrowthConfig, rng: Optional[np.random.Generator] = None,
                  enable_progress_prints: bool = False) -> TreeResult:
    """
    Grow one tree: branch skeleton, bark tubes and foliage.

    Every random decision is drawn from a single growth stream. A nonzero
    'random_seed' makes the whole result reproducible; a zero seed draws
    from 'rng' when given, otherwise from fresh OS entropy.

    Degenerate settings never raise; they yield empty buffers instead.
    """
    stream = make_growth_stream(config.random_seed, ambient=rng)
    grow_branches = GROWTH_STRATEGIES[config.structure_mode]
    place_foliage = FOLIAGE_STRATEGIES[config.leaf_mode]

    log_progress(enable_progress_prints, f"Growing branches: mode={config.structure_mode.value}")
    bark = MeshBuffers()
    forest = grow_branches(config, bark, bark_tube_settings(config), stream)
    log_progress(
        enable_progress_prints,
        "Bark built: "
        f"branches={len(forest)}, "
        f"vertices={bark.vertex_count}, "
        f"triangles={bark.triangle_count}",
    )

    foliage = MeshBuffers(with_colors=True)
    if config.leaf_density > 0.0 and forest:
        log_progress(enable_progress_prints, f"Placing foliage: mode={config.leaf_mode.value}")
        element_count = place_foliage(config, forest, foliage, stream)
        log_progress(
            enable_progress_prints,
            "Foliage built: "
            f"elements={element_count}, "
            f"vertices={foliage.vertex_count}, "
            f"triangles={foliage.triangle_count}",
        )
    else:
        log_progress(enable_progress_prints, "Skipping foliage: leaf_density is zero or no branches grew")

    return TreeResult(bark=bark, foliage=foliage, forest=forest, config=config)
