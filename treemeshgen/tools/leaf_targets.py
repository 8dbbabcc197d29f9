"""
Candidate pass shared by the foliage strategies: height normalization,
qualifying branch tips and the density-driven size model used by clusters
and domes.
"""

from typing import List, Sequence, Tuple

import numpy as np

from treemeshgen.tools.branches import Forest
from treemeshgen.tools.common import HEIGHT_RANGE_EPSILON, clamp01, lerp, vec3
from treemeshgen.tools.random_stream import uniform
from treemeshgen.tools.spatial_hash import SpatialHash

PROXIMITY_RADIUS_MULTIPLIER = 3.0
ISOLATED_NEIGHBOR_COUNT = 2


def calculate_height_range(forest: Forest) -> Tuple[float, float, float]:
    """
    :return: (min_z, max_z, height_range) over every branch point. The range
             is clamped so it can always be divided by.
    """
    min_z = float("inf")
    max_z = float("-inf")
    for branch in forest:
        for point in branch:
            min_z = min(min_z, point.position.z)
            max_z = max(max_z, point.position.z)

    if min_z > max_z:
        return 0.0, 0.0, HEIGHT_RANGE_EPSILON
    return min_z, max_z, max(HEIGHT_RANGE_EPSILON, max_z - min_z)


def collect_leaf_endpoints(forest: Forest, min_z: float, height_range: float, tip_inset: float,
                           tip_offset: float, leaf_start_height: float,
                           min_branch_radius: float) -> List[vec3]:
    """
    Tip of every branch high and thick enough to carry foliage, pulled back by
    'tip_inset' and pushed forward by 'tip_offset' along the final segment.
    """
    endpoints = []
    for branch in forest:
        if len(branch) < 2:
            continue

        tip = branch.tip
        height_t = (tip.position.z - min_z) / height_range
        if height_t < leaf_start_height or tip.radius < min_branch_radius:
            continue

        direction = branch.tip_direction
        endpoints.append(tip.position - direction * tip_inset + direction * tip_offset)
    return endpoints


def build_leaf_targets(endpoints: Sequence[vec3], proximity_radius: float,
                       target_count: int) -> List[Tuple[vec3, int]]:
    """
    Rank endpoints by how many other endpoints lie within 'proximity_radius'
    and keep the 'target_count' least crowded ones. Ties keep collection
    order, so isolated tips are always covered first.

    :return: [(position, nearby_count)], least crowded first.
    """
    if not endpoints or target_count <= 0:
        return []

    spatial_hash = SpatialHash(endpoints, proximity_radius)
    ranked = [(endpoints[i], spatial_hash.count_neighbors_of(i)) for i in range(len(endpoints))]
    ranked.sort(key=lambda item: item[1])
    return ranked[:target_count]


def calculate_tree_center(positions: Sequence[vec3]) -> vec3:
    if not positions:
        return vec3(0.0, 0.0, 0.0)
    center = vec3(0.0, 0.0, 0.0)
    for position in positions:
        center = center + position
    return center / len(positions)


def calculate_max_distance(positions: Sequence[vec3], center: vec3) -> float:
    return max(((position - center).length() for position in positions), default=0.0)


def calculate_cluster_size(position: vec3, nearby_count: int, tree_center: vec3, max_distance: float,
                           config, rng: np.random.Generator) -> float:
    """
    Size multiplier for one cluster or dome.

    Crowded tips grow toward 'cluster_size_max' (saturating at
    'max_proximity_branch_count' neighbors), while tips far from the canopy
    center shrink toward 'cluster_size_min'. The two are blended by
    'proximity_size_weight' and jittered by 'random_size_variation'.
    """
    isolated_size = (config.cluster_size_min + config.cluster_size_max) * 0.5
    if nearby_count <= ISOLATED_NEIGHBOR_COUNT:
        proximity_size = isolated_size
    else:
        saturation = max(1, config.max_proximity_branch_count - ISOLATED_NEIGHBOR_COUNT)
        proximity_size = lerp(isolated_size, config.cluster_size_max,
                              clamp01((nearby_count - ISOLATED_NEIGHBOR_COUNT) / saturation))

    distance_t = (position - tree_center).length() / max_distance if max_distance > 0.0 else 0.0
    center_distance_size = lerp(config.cluster_size_max, config.cluster_size_min, distance_t)

    size = lerp(center_distance_size, proximity_size, config.proximity_size_weight)
    return size * uniform(rng, 1.0 - config.random_size_variation, 1.0 + config.random_size_variation)
