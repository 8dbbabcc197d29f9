import numpy as np
from scipy.spatial import cKDTree

from treemeshgen.tools.common import vec3
from treemeshgen.tools.spatial_hash import SpatialHash


def _random_points(count, seed, extent=10.0):
    rng = np.random.default_rng(seed)
    coords = rng.uniform(-extent, extent, size=(count, 3))
    return coords, [vec3(*row) for row in coords]


def test_neighbor_counts_match_kdtree():
    coords, points = _random_points(200, seed=1)
    radius = 2.5
    spatial_hash = SpatialHash(points, radius)
    tree = cKDTree(coords)

    for i, row in enumerate(coords):
        expected = len(tree.query_ball_point(row, radius)) - 1
        assert spatial_hash.count_neighbors_of(i) == expected


def test_neighbor_relation_is_symmetric():
    _, points = _random_points(150, seed=2, extent=5.0)
    spatial_hash = SpatialHash(points, 1.5)

    neighbor_sets = [set(spatial_hash.neighbors(p)) for p in points]
    for a in range(len(points)):
        for b in neighbor_sets[a]:
            assert a in neighbor_sets[b]


def test_points_across_cell_borders_are_found():
    # Both sides of the origin land in different cells but are 0.2 apart.
    points = [vec3(-0.1, 0.0, 0.0), vec3(0.1, 0.0, 0.0), vec3(5.0, 5.0, 5.0)]
    spatial_hash = SpatialHash(points, 1.0)

    assert spatial_hash.cell_of(points[0]) != spatial_hash.cell_of(points[1])
    assert spatial_hash.count_neighbors_of(0) == 1
    assert spatial_hash.count_neighbors_of(1) == 1
    assert spatial_hash.count_neighbors_of(2) == 0


def test_distance_equal_to_radius_is_excluded():
    points = [vec3(0.0, 0.0, 0.0), vec3(1.0, 0.0, 0.0)]
    spatial_hash = SpatialHash(points, 1.0)
    assert spatial_hash.count_neighbors_of(0) == 0


def test_zero_radius_uses_minimum_cell_size():
    points = [vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 0.0)]
    spatial_hash = SpatialHash(points, 0.0)
    assert spatial_hash.cell_size > 0.0
    assert spatial_hash.count_neighbors_of(0) == 0
    assert len(spatial_hash) == 2
