"""
Volumetric foliage placed on branch tips: closed noisy ellipsoids (clusters)
or open-bottom half ellipsoids (domes). Both share one placement pass and one
surface generator; they differ only in polar range and constants.
"""

import math
from dataclasses import dataclass

import numpy as np
from noise import pnoise2

from treemeshgen.tools.branches import Forest
from treemeshgen.tools.common import rotate_euler, vec3
from treemeshgen.tools.gen_mesh import MeshBuffers
from treemeshgen.tools.leaf_targets import (
    PROXIMITY_RADIUS_MULTIPLIER,
    build_leaf_targets,
    calculate_cluster_size,
    calculate_height_range,
    calculate_max_distance,
    calculate_tree_center,
    collect_leaf_endpoints,
)
from treemeshgen.tools.random_stream import uniform
from treemeshgen.tools.texture_variation import UVVariation, apply_uv_variation

OUTER_SHELL_SEED_OFFSET = 1000
OUTER_SHELL_NOISE_MULTIPLIER = 1.5
OUTER_SHELL_NOISE_SCALE = 0.8
CLUSTER_TIP_INSET = 0.2
DOME_TIP_INSET = 0.15


@dataclass(frozen=True)
class VolumeShape:
    """
    Parameters of one foliage solid.
    - polar_range: pi for a closed ellipsoid, pi / 2 for a dome
    - shape:       per-axis stretch; 'shape.z' is the vertical axis
    """
    radius: float
    polar_range: float
    shape: vec3
    segments: int
    noise_scale: float
    noise_strength: float
    texture_tiling: float
    tip_inset: float
    tip_offset: float
    randomize_rotation: bool
    outer_shell: bool


def cluster_shape(config) -> VolumeShape:
    return VolumeShape(
        radius=config.cluster_radius,
        polar_range=math.pi,
        shape=vec3(config.cluster_shape_x, config.cluster_shape_z, config.cluster_shape_y),
        segments=config.cluster_segments,
        noise_scale=config.cluster_noise_scale,
        noise_strength=config.cluster_noise_strength,
        texture_tiling=config.cluster_texture_tiling,
        tip_inset=config.cluster_radius * CLUSTER_TIP_INSET,
        tip_offset=config.cluster_offset,
        randomize_rotation=config.randomize_cluster_rotation,
        outer_shell=config.enable_outer_shell,
    )


def dome_shape(config) -> VolumeShape:
    return VolumeShape(
        radius=config.dome_radius,
        polar_range=math.pi * 0.5,
        shape=vec3(config.dome_shape_x, config.dome_shape_z, config.dome_shape_y),
        segments=config.dome_segments,
        noise_scale=config.dome_noise_scale,
        noise_strength=config.dome_noise_strength,
        texture_tiling=config.dome_texture_tiling,
        tip_inset=config.dome_radius * DOME_TIP_INSET,
        tip_offset=config.dome_offset,
        randomize_rotation=config.randomize_dome_rotation,
        outer_shell=config.enable_dome_outer_shell,
    )


def surface_noise(local: vec3, seed: float) -> float:
    """Two independent Perlin lookups on different axis pairs, summed."""
    half = seed * 0.5
    return pnoise2(local.x + seed, local.y + seed) + pnoise2(local.z + half, local.x + half)


def add_volume_surface(mesh: MeshBuffers, center: vec3, radius: float, shape: VolumeShape, rotation,
                       noise_scale: float, noise_strength: float, seed: int, color,
                       uv_variation: UVVariation):
    """
    Appends a ring/segment grid over the polar range of 'shape', each vertex
    pushed along its own radius by coherent noise.

    :param rotation: Euler angles (x, y, z) in degrees, or None
    :param seed:     Element seed for the noise field and UV variation
    """
    segments = max(3, shape.segments)
    rings = max(1, segments // 2)
    start_index = len(mesh.vertices)

    for ring in range(rings + 1):
        phi = shape.polar_range * ring / rings
        vertical = math.cos(phi)
        ring_radius = math.sin(phi)

        for seg in range(segments + 1):
            theta = 2.0 * math.pi * seg / segments
            local = vec3(
                ring_radius * math.cos(theta) * shape.shape.x,
                ring_radius * math.sin(theta) * shape.shape.y,
                vertical * shape.shape.z,
            )
            if noise_strength > 0.0:
                local = local * (1.0 + surface_noise(local * noise_scale, seed) * noise_strength)

            offset = local * radius
            if rotation is not None:
                offset = rotate_euler(offset, rotation)
            position = center + offset

            mesh.vertices.append(position)
            mesh.colors.append(color)
            base_uv = (seg / segments * shape.texture_tiling, ring / rings * shape.texture_tiling)
            mesh.uvs.append(apply_uv_variation(base_uv, position, seed, uv_variation))

    row = segments + 1
    for ring in range(rings):
        for seg in range(segments):
            current = start_index + ring * row + seg
            below = current + row
            mesh.triangles.append((current, below, current + 1))
            mesh.triangles.append((current + 1, below, below + 1))


def surface_triangle_count(segments: int) -> int:
    segments = max(3, segments)
    return 2 * segments * max(1, segments // 2)


def add_foliage_volume(config, mesh: MeshBuffers, center: vec3, radius: float, shape: VolumeShape, rotation,
                       seed: int, uv_variation: UVVariation):
    """One foliage element: the inner surface plus its optional outer shell."""
    add_volume_surface(
        mesh, center, radius, shape, rotation,
        shape.noise_scale, shape.noise_strength, seed,
        (1.0, 1.0, 1.0, config.leaf_transparency), uv_variation,
    )

    if shape.outer_shell and config.outer_shell_thickness > 1.0:
        add_volume_surface(
            mesh, center, radius * config.outer_shell_thickness, shape, rotation,
            shape.noise_scale * OUTER_SHELL_NOISE_SCALE,
            shape.noise_strength * OUTER_SHELL_NOISE_MULTIPLIER,
            seed + OUTER_SHELL_SEED_OFFSET,
            (1.0, 1.0, 1.0, config.outer_shell_transparency), uv_variation,
        )


def create_leaf_volumes(config, forest: Forest, foliage: MeshBuffers, rng: np.random.Generator,
                        shape: VolumeShape) -> int:
    """
    Cover the least crowded branch tips with foliage solids.

    'leaf_density' is the number of elements, not a frequency. Each element
    is sized by neighbor crowding and distance from the canopy center.

    :return: Number of elements generated.
    """
    if not forest:
        return 0

    min_z, _, height_range = calculate_height_range(forest)
    endpoints = collect_leaf_endpoints(
        forest, min_z, height_range, shape.tip_inset, shape.tip_offset,
        config.leaf_start_height, config.min_branch_radius_for_leaves,
    )
    tree_center = calculate_tree_center(endpoints)
    targets = build_leaf_targets(endpoints, shape.radius * PROXIMITY_RADIUS_MULTIPLIER,
                                 int(round(config.leaf_density)))

    max_elements = len(targets)
    if config.max_leaf_count > 0:
        max_elements = min(config.max_leaf_count, max_elements)
    max_distance = calculate_max_distance([position for position, _ in targets], tree_center)

    uv_variation = UVVariation(
        offset_strength=config.leaf_uv_randomness,
        noise_scale=config.leaf_uv_noise_scale,
        noise_strength=config.leaf_uv_noise_strength,
    )

    for seed, (position, nearby_count) in enumerate(targets[:max_elements]):
        size = calculate_cluster_size(position, nearby_count, tree_center, max_distance, config, rng)
        rotation = None
        if shape.randomize_rotation:
            rotation = (uniform(rng, 0.0, 360.0), uniform(rng, 0.0, 360.0), uniform(rng, 0.0, 360.0))
        add_foliage_volume(config, foliage, position, shape.radius * size, shape, rotation, seed, uv_variation)

    return max_elements


def create_leaf_clusters(config, forest: Forest, foliage: MeshBuffers, rng: np.random.Generator) -> int:
    return create_leaf_volumes(config, forest, foliage, rng, cluster_shape(config))


def create_leaf_domes(config, forest: Forest, foliage: MeshBuffers, rng: np.random.Generator) -> int:
    return create_leaf_volumes(config, forest, foliage, rng, dome_shape(config))
