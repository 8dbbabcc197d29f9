import math
from typing import List, Sequence

import numpy as np

from treemeshgen.tools.branches import Branch, BranchPoint, Forest
from treemeshgen.tools.common import (
    GOLDEN_ANGLE_DEGREES,
    UP,
    clamp01,
    get_perpendicular,
    inverse_lerp,
    lerp,
    noise_vector,
    rotate_around_axis,
    sample_branch_point,
    slerp,
    vec3,
)
from treemeshgen.tools.gen_mesh import MeshBuffers, TubeSettings, add_tube
from treemeshgen.tools.random_stream import uniform, value

TRUNK_SLERP_WEIGHT = 0.6
BRANCH_SLERP_WEIGHT = 0.55
TRUNK_NOISE_SEED_OFFSET = 13
BRANCH_NOISE_DEPTH_SEED = 31
MIN_START_RADIUS = 0.001


def _random_lean_direction(rng: np.random.Generator) -> vec3:
    """Random horizontal unit vector."""
    azimuth = math.radians(uniform(rng, 0.0, 360.0))
    return vec3(math.cos(azimuth), math.sin(azimuth), 0.0)


def _grow_trunk(config, base_pos: vec3, height: float, rng: np.random.Generator) -> List[BranchPoint]:
    """
    Grow the trunk as a smoothly curving polyline.

    Each step turns the current direction part of the way toward
    (up + lean + noise); the lean grows with height while the noise fades.
    """
    trunk_segments = max(2, int(round(height / config.segment_length)))
    trunk_step = height / trunk_segments
    lean_dir = _random_lean_direction(rng)

    pos = base_pos
    direction = UP
    radius = config.base_thickness
    points = [BranchPoint(pos, radius)]

    for i in range(trunk_segments):
        t = (i + 1) / trunk_segments
        noise_fade = lerp(1.0, 0.4, t)
        noise = noise_vector(pos, config.trunk_noise_scale, config.random_seed + TRUNK_NOISE_SEED_OFFSET) \
            * (config.trunk_noise_strength * noise_fade)
        lean = lean_dir * (config.trunk_lean_strength * t)
        target_dir = (UP + lean + noise).normalized()
        direction = slerp(direction, target_dir, TRUNK_SLERP_WEIGHT).normalized()

        pos = pos + direction * trunk_step
        radius *= config.branch_thinning_rate
        points.append(BranchPoint(pos, radius))

    return points


def canopy_attraction(volume, position: vec3, base_pos: vec3, tree_height: float) -> float:
    """
    Attraction of one canopy volume at 'position': zero below the volume's
    height band, ramping up to its full strength at the top of the band.
    """
    low = base_pos.z + tree_height * volume.height_start
    high = base_pos.z + tree_height * volume.height_end
    return clamp01(inverse_lerp(low, high, position.z)) * volume.attraction


def canopy_target_direction(position: vec3, center: vec3, radii: vec3, surface_target: bool) -> vec3:
    """
    Direction from 'position' toward the canopy: either its center, or the
    point of the ellipsoid surface along the ray from the center.
    """
    to_center = center - position
    if not surface_target or radii.sqr_length() < 0.0001:
        return to_center.normalized()

    from_center = position - center
    if from_center.sqr_length() < 0.0001:
        return to_center.normalized()

    surface_pos = center + from_center.normalized().scaled(radii)
    return (surface_pos - position).normalized()


def _apply_canopy_volumes(target_dir: vec3, pos: vec3, base_pos: vec3, tree_height: float,
                          canopy_volumes: Sequence) -> vec3:
    for volume in canopy_volumes:
        center = base_pos + volume.center_offset
        canopy_dir = canopy_target_direction(pos, center, volume.radii, volume.surface_target)
        if canopy_dir.sqr_length() <= 0.0001:
            continue
        attraction = canopy_attraction(volume, pos, base_pos, tree_height)
        if attraction > 0.0:
            target_dir = slerp(target_dir, canopy_dir, attraction).normalized()
    return target_dir


def _grow_branch(config, start_pos: vec3, start_dir: vec3, length: float, start_radius: float,
                 depth: int, branch_seed: int, base_pos: vec3, tree_height: float) -> List[BranchPoint]:
    """
    Grow one branch from 'start_pos'.

    Per step the direction is pulled toward noise, a droop that grows toward
    the tip, and any active canopy volume; its vertical component is floored
    at 'min_branch_upward'.

    :param depth:       Branching generation, 1 for branches on the trunk.
    :param branch_seed: Seed offset for this branch's noise field.
    :param tree_height: Trunk height, used to place canopy height bands.
    """
    segments = max(2, int(round(length / config.segment_length)))
    step = length / segments
    depth_factor = depth / max(1.0, config.branch_levels)

    pos = start_pos
    direction = start_dir.normalized()
    radius = start_radius
    points = [BranchPoint(pos, radius)]

    for i in range(segments):
        t = (i + 1) / segments
        noise_fade = lerp(0.6, 0.2, t) * lerp(1.0, 0.7, depth_factor)
        noise = noise_vector(pos, config.branch_noise_scale, branch_seed + depth * BRANCH_NOISE_DEPTH_SEED) \
            * (config.branch_noise_strength * noise_fade)
        droop = vec3(0.0, 0.0, -config.branch_droop * t * 0.6)
        target_dir = (direction + noise + droop).normalized()

        if config.canopy_volumes:
            target_dir = _apply_canopy_volumes(target_dir, pos, base_pos, tree_height, config.canopy_volumes)

        if target_dir.z < config.min_branch_upward:
            target_dir = vec3(target_dir.x, target_dir.y, config.min_branch_upward).normalized()
        direction = slerp(direction, target_dir, BRANCH_SLERP_WEIGHT).normalized()

        pos = pos + direction * step
        if config.clamp_branches_above_base:
            min_z = base_pos.z + config.branch_ground_clearance
            if pos.z < min_z:
                pos = vec3(pos.x, pos.y, min_z)
                if direction.z < config.min_branch_upward:
                    direction = vec3(direction.x, direction.y, config.min_branch_upward).normalized()

        radius *= config.branch_thinning_rate
        points.append(BranchPoint(pos, radius))

    return points


def children_per_parent(config, depth: int) -> int:
    return max(1, int(round(config.branches_per_level * config.branch_level_density_falloff ** depth)))


def _spawn_parameter(config, rng: np.random.Generator) -> float:
    """Attachment point along the parent, skewed toward its tip."""
    u = value(rng)
    biased = 1.0 - (1.0 - u) ** max(0.0001, config.branch_distribution_power)
    return lerp(config.branch_spawn_start, config.branch_spawn_end, biased)


def generate_guided_branches(config, bark: MeshBuffers, tube_settings: TubeSettings,
                             rng: np.random.Generator, base_pos: vec3 = None) -> Forest:
    """
    Grow a trunk and 'branch_levels' generations of children, appending every
    branch's tube to 'bark'.

    Siblings are spread around the parent axis by the golden angle, so they
    fan out evenly without any collision checks. Growth stops as soon as
    'max_generated_branches' (trunk included) is reached.

    :return: The forest, trunk first, then each generation in spawn order.
    """
    if base_pos is None:
        base_pos = vec3(0.0, 0.0, 0.0)

    height = config.trunk_height * uniform(rng, 1.0 - config.trunk_height_variation, 1.0 + config.trunk_height_variation)
    height = max(config.segment_length * 2.0, height)

    trunk = Branch(points=tuple(_grow_trunk(config, base_pos, height, rng)), depth=0, seed=0)
    add_tube(bark, trunk.points, config.radial_segments, None, 0, tube_settings)
    forest: Forest = [trunk]

    branch_cap = config.max_generated_branches
    parents = [trunk]
    branch_seed = 1

    for depth in range(1, config.branch_levels + 1):
        if not parents:
            break

        next_parents = []
        depth_factor = depth / max(1.0, config.branch_levels)
        desired = children_per_parent(config, depth)

        for parent in parents:
            for i in range(desired):
                if branch_cap > 0 and len(forest) >= branch_cap:
                    break

                start_point, parent_dir = sample_branch_point(parent.points, _spawn_parameter(config, rng))
                axis = parent_dir if parent_dir.sqr_length() > 0.0001 else UP
                perpendicular = get_perpendicular(axis)
                azimuth = i * GOLDEN_ANGLE_DEGREES + uniform(rng, -config.branch_twist_jitter, config.branch_twist_jitter)
                outward = rotate_around_axis(perpendicular, axis, azimuth).normalized()

                angle = uniform(rng, config.branch_angle_min, config.branch_angle_max)
                base_dir = slerp(axis, outward, clamp01(angle / 90.0)).normalized()
                base_dir = slerp(base_dir, UP, clamp01(config.branch_upward_bias * (1.0 - depth_factor))).normalized()

                length = height * config.branch_length_factor * config.branch_length_falloff ** (depth - 1) \
                    * uniform(rng, 0.85, 1.15)
                start_radius = max(MIN_START_RADIUS, start_point.radius * config.child_branch_thickness)

                points = _grow_branch(config, start_point.position, base_dir, length, start_radius,
                                      depth, branch_seed, base_pos, height)
                branch = Branch(points=tuple(points), depth=depth, seed=branch_seed, parent_direction=axis)
                add_tube(bark, branch.points, config.radial_segments, axis, branch_seed, tube_settings)
                forest.append(branch)
                next_parents.append(branch)
                branch_seed += 1

        parents = next_parents

    return forest
