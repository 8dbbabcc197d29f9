import math
from typing import List

import numpy as np

from treemeshgen.tools.branches import Forest
from treemeshgen.tools.common import UP, clamp01, get_perpendicular, lerp, lerp_vec, slerp, vec3
from treemeshgen.tools.gen_mesh import MeshBuffers
from treemeshgen.tools.leaf_targets import calculate_height_range
from treemeshgen.tools.random_stream import uniform, value
from treemeshgen.tools.texture_variation import UVVariation, apply_uv_variation

MIN_LEAF_TEXTURE_TILING = 0.01
QUAD_UVS = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))


def _leaf_count(leaves_for_segment: float, rng: np.random.Generator) -> int:
    """Floor, plus one more with probability equal to the remainder."""
    count = int(math.floor(leaves_for_segment))
    if value(rng) < leaves_for_segment - count:
        count += 1
    return count


def _clump_anchors(config, rng: np.random.Generator) -> List[float]:
    """
    Segment parameters leaves gather around. Fewer anchors for clumpier
    foliage, each skewed toward the segment's far end by 'leaf_tip_bias'.
    """
    anchor_count = min(3, max(1, int(round(1.0 + 2.0 * (1.0 - config.leaf_clumpiness)))))
    tip_power = 1.0 + 2.0 * config.leaf_tip_bias
    return [1.0 - value(rng) ** tip_power for _ in range(anchor_count)]


def _along_segment(config, anchors: List[float], rng: np.random.Generator) -> float:
    if anchors and value(rng) < config.leaf_clumpiness:
        anchor = anchors[int(value(rng) * len(anchors)) % len(anchors)]
        spread = uniform(rng, -config.leaf_clump_spread, config.leaf_clump_spread)
        return clamp01(anchor + spread)
    return value(rng)


def add_leaf_quad(mesh: MeshBuffers, center: vec3, right: vec3, up: vec3, width: float, length: float,
                  double_sided: bool, color, uv_tiling: float, leaf_seed: int, uv_variation: UVVariation):
    """
    Appends one billboard quad spanned by unit axes 'right' (width) and 'up'
    (length). A double sided quad reuses its vertices for the back face.
    """
    start_index = len(mesh.vertices)
    half_right = right * (width * 0.5)
    half_up = up * (length * 0.5)

    corners = (
        center - half_right - half_up,
        center + half_right - half_up,
        center + half_right + half_up,
        center - half_right + half_up,
    )
    for corner, (u, v) in zip(corners, QUAD_UVS):
        mesh.vertices.append(corner)
        mesh.colors.append(color)
        mesh.uvs.append(apply_uv_variation((u * uv_tiling, v * uv_tiling), corner, leaf_seed, uv_variation))

    mesh.triangles.append((start_index, start_index + 1, start_index + 2))
    mesh.triangles.append((start_index, start_index + 2, start_index + 3))
    if double_sided:
        mesh.triangles.append((start_index + 2, start_index + 1, start_index))
        mesh.triangles.append((start_index + 3, start_index + 2, start_index))


def create_plane_leaves(config, forest: Forest, foliage: MeshBuffers, rng: np.random.Generator) -> int:
    """
    Scatter billboard leaves along every qualifying branch segment.

    A segment qualifies when its start is at or above 'leaf_start_height'
    (as a fraction of the tree's height range) and at least
    'min_branch_radius_for_leaves' thick. 'leaf_density' is the expected
    number of leaves per segment, optionally thinned on slender branches.

    :return: Number of leaves generated.
    """
    if not forest:
        return 0

    min_z, _, height_range = calculate_height_range(forest)
    uv_variation = UVVariation(
        offset_strength=config.leaf_uv_randomness,
        noise_scale=config.leaf_uv_noise_scale,
        noise_strength=config.leaf_uv_noise_strength,
    )
    uv_tiling = max(MIN_LEAF_TEXTURE_TILING, config.plane_leaf_texture_tiling)
    color = (1.0, 1.0, 1.0, config.leaf_transparency)
    cap = config.max_leaf_count

    leaves_generated = 0
    leaf_seed = 0

    for branch in forest:
        if len(branch) < 2:
            continue
        segment_count = len(branch) - 1

        for i in range(segment_count):
            if cap > 0 and leaves_generated >= cap:
                return leaves_generated

            start = branch[i]
            end = branch[i + 1]
            height_t = (start.position.z - min_z) / height_range
            if height_t < config.leaf_start_height or start.radius < config.min_branch_radius_for_leaves:
                continue

            density_multiplier = 1.0
            if config.optimize_leaf_distribution and config.base_thickness > 0.0:
                density_multiplier = clamp01(start.radius / config.base_thickness)
            leaf_count = _leaf_count(config.leaf_density * density_multiplier, rng)
            if cap > 0:
                leaf_count = min(leaf_count, cap - leaves_generated)
            if leaf_count <= 0:
                continue

            direction = (end.position - start.position).normalized()
            perpendicular = get_perpendicular(direction)
            binormal = direction.cross(perpendicular).normalized()
            anchors = _clump_anchors(config, rng) if config.leaf_clumpiness > 0.0 else []

            height_multiplier = 1.0
            if config.enable_plane_leaf_size_by_height:
                height_multiplier = lerp(config.plane_leaf_size_bottom, config.plane_leaf_size_top, clamp01(height_t))

            for _ in range(leaf_count):
                along = _along_segment(config, anchors, rng)
                position = lerp_vec(start.position, end.position, along)

                angle = math.radians(uniform(rng, 0.0, 360.0))
                radial = (perpendicular * math.cos(angle) + binormal * math.sin(angle)).normalized()
                radial_offset = start.radius + config.leaf_distance_from_branch \
                    + uniform(rng, -config.leaf_radial_jitter, config.leaf_radial_jitter)
                position = position + radial * max(start.radius, radial_offset)

                # Leaf length runs outward from the branch, lifted toward the sky.
                leaf_up = slerp(radial, UP, clamp01(0.5 * config.leaf_up_alignment)).normalized()
                leaf_right = leaf_up.cross(direction)
                if leaf_right.sqr_length() < 0.0001:
                    leaf_right = get_perpendicular(leaf_up)
                leaf_right = leaf_right.normalized().rotate(leaf_up, math.radians(uniform(rng, 0.0, 360.0)))

                progress = (i + along) / segment_count
                size = (1.0 + uniform(rng, -config.leaf_size_variation, config.leaf_size_variation)) \
                    * height_multiplier * lerp(1.0, 1.0 - config.leaf_size_by_height, progress)

                add_leaf_quad(
                    foliage,
                    position,
                    leaf_right.normalized(),
                    leaf_up,
                    config.leaf_width * size,
                    config.leaf_length * size,
                    config.double_sided_leaves,
                    color,
                    uv_tiling,
                    leaf_seed,
                    uv_variation,
                )
                leaf_seed += 1
                leaves_generated += 1

    return leaves_generated
