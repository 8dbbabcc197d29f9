import math

import numpy as np
import pytest

from treemeshgen import GrowthConfig, LeafMode, StructureMode, generate_tree
from treemeshgen.config import CanopyVolume
from treemeshgen.tools.common import GOLDEN_ANGLE_DEGREES, vec3
from treemeshgen.tools.gen_guided import canopy_attraction, canopy_target_direction, children_per_parent
from treemeshgen.tools.leaf_targets import calculate_height_range, collect_leaf_endpoints

EPSILON = 1e-9


def _assert_same_buffers(first, second):
    for a, b in zip(first.to_arrays(), second.to_arrays()):
        if a is None or b is None:
            assert a is None and b is None
        else:
            np.testing.assert_array_equal(a, b)


@pytest.mark.parametrize("structure_mode", [StructureMode.GUIDED_GROWTH, StructureMode.LSYSTEM])
@pytest.mark.parametrize("leaf_mode", [LeafMode.PLANES, LeafMode.CLUSTERS, LeafMode.DOMES])
def test_nonzero_seed_is_reproducible(structure_mode, leaf_mode):
    config = GrowthConfig(random_seed=1234, structure_mode=structure_mode, leaf_mode=leaf_mode,
                          leaf_density=3.0, leaf_start_height=0.2, min_branch_radius_for_leaves=0.0,
                          bark_uv_randomness=0.4, leaf_uv_randomness=0.3)
    first = generate_tree(config)
    second = generate_tree(config)

    _assert_same_buffers(first.bark, second.bark)
    _assert_same_buffers(first.foliage, second.foliage)


def test_different_seeds_differ():
    first = generate_tree(GrowthConfig(random_seed=1))
    second = generate_tree(GrowthConfig(random_seed=2))
    assert not np.array_equal(first.bark.to_arrays()[0], second.bark.to_arrays()[0])


def test_seed_zero_follows_the_supplied_stream():
    config = GrowthConfig(random_seed=0, leaf_density=2.0)
    first = generate_tree(config, rng=np.random.default_rng(77))
    second = generate_tree(config, rng=np.random.default_rng(77))
    _assert_same_buffers(first.bark, second.bark)


def test_texture_variation_does_not_shift_growth():
    plain = generate_tree(GrowthConfig(random_seed=21, bark_uv_randomness=0.0, bark_uv_noise_strength=0.0))
    varied = generate_tree(GrowthConfig(random_seed=21, bark_uv_randomness=0.8, bark_uv_noise_strength=0.5))

    np.testing.assert_array_equal(plain.bark.to_arrays()[0], varied.bark.to_arrays()[0])
    np.testing.assert_array_equal(plain.bark.to_arrays()[1], varied.bark.to_arrays()[1])
    assert not np.array_equal(plain.bark.to_arrays()[2], varied.bark.to_arrays()[2])


@pytest.mark.parametrize("structure_mode", [StructureMode.GUIDED_GROWTH, StructureMode.LSYSTEM])
def test_branches_taper(structure_mode):
    config = GrowthConfig(random_seed=8, structure_mode=structure_mode, leaf_density=0.0)
    result = generate_tree(config)

    for branch in result.forest:
        radii = [point.radius for point in branch]
        for i in range(1, len(radii) - 1):
            assert radii[i + 1] <= radii[i] * config.branch_thinning_rate + EPSILON


@pytest.mark.parametrize("structure_mode", [StructureMode.GUIDED_GROWTH, StructureMode.LSYSTEM])
def test_branch_cap(structure_mode):
    config = GrowthConfig(random_seed=3, structure_mode=structure_mode, max_generated_branches=6,
                          branch_levels=4, branches_per_level=6, lsystem_iterations=5, leaf_density=0.0)
    result = generate_tree(config)
    assert 1 <= len(result.forest) <= 6


def test_unlimited_branch_cap_grows_every_child():
    config = GrowthConfig(random_seed=3, max_generated_branches=0, branch_levels=2, branches_per_level=3,
                          branch_level_density_falloff=1.0, leaf_density=0.0)
    result = generate_tree(config)
    assert len(result.forest) == 1 + 3 + 3 * 3


def test_guided_forest_is_ordered_by_depth():
    result = generate_tree(GrowthConfig(random_seed=5, leaf_density=0.0))
    depths = [branch.depth for branch in result.forest]
    assert depths[0] == 0
    assert depths == sorted(depths)


def test_trunk_scenario():
    config = GrowthConfig(random_seed=17, trunk_height=6.0, segment_length=1.0, trunk_height_variation=0.0,
                          base_thickness=0.5, branch_thinning_rate=0.9, leaf_density=0.0)
    trunk = generate_tree(config).forest[0]

    assert len(trunk) == 7
    for i, point in enumerate(trunk):
        assert point.radius == pytest.approx(0.5 * 0.9 ** i)
    assert trunk[0].position == vec3(0.0, 0.0, 0.0)


def test_trunk_only_tree():
    result = generate_tree(GrowthConfig(random_seed=2, branch_levels=0, leaf_density=0.0))
    assert len(result.forest) == 1
    assert result.bark.triangle_count == 2 * 8 * (len(result.forest[0]) - 1) + 8


def test_planes_with_zero_density_have_no_foliage():
    config = GrowthConfig(random_seed=9, leaf_mode=LeafMode.PLANES, leaf_density=0.0,
                          leaf_start_height=0.0, min_branch_radius_for_leaves=0.0)
    result = generate_tree(config)
    assert result.foliage.is_empty()
    assert not result.bark.is_empty()


def test_plane_leaf_cap():
    config = GrowthConfig(random_seed=4, leaf_mode=LeafMode.PLANES, leaf_density=20.0, max_leaf_count=25,
                          leaf_start_height=0.0, min_branch_radius_for_leaves=0.0)
    result = generate_tree(config)
    assert result.foliage.vertex_count // 4 <= 25


@pytest.mark.parametrize("leaf_mode", [LeafMode.CLUSTERS, LeafMode.DOMES])
def test_volume_leaf_cap(leaf_mode):
    config = GrowthConfig(random_seed=4, leaf_mode=leaf_mode, leaf_density=50.0, max_leaf_count=3,
                          enable_outer_shell=False, leaf_start_height=0.0, min_branch_radius_for_leaves=0.0,
                          cluster_segments=8, dome_segments=8)
    result = generate_tree(config)
    assert result.foliage.vertex_count <= 3 * (8 // 2 + 1) * (8 + 1)


def test_every_qualifying_tip_is_a_candidate():
    config = GrowthConfig(random_seed=12, leaf_start_height=0.4, min_branch_radius_for_leaves=0.05)
    result = generate_tree(config)
    forest = result.forest

    min_z, _, height_range = calculate_height_range(forest)
    endpoints = collect_leaf_endpoints(forest, min_z, height_range, 0.0, 0.0,
                                       config.leaf_start_height, config.min_branch_radius_for_leaves)
    qualifying = [
        branch.tip.position for branch in forest
        if len(branch) >= 2
        and (branch.tip.position.z - min_z) / height_range >= config.leaf_start_height
        and branch.tip.radius >= config.min_branch_radius_for_leaves
    ]
    assert endpoints == qualifying


def test_children_per_parent_never_drops_to_zero():
    config = GrowthConfig(branches_per_level=3, branch_level_density_falloff=0.1)
    assert children_per_parent(config, 1) == 1
    assert children_per_parent(config, 4) == 1
    assert children_per_parent(GrowthConfig(branches_per_level=4, branch_level_density_falloff=1.0), 2) == 4


def test_canopy_attraction_ramps_over_height_band():
    volume = CanopyVolume(attraction=0.5, height_start=0.5, height_end=1.0)
    base = vec3(0.0, 0.0, 0.0)
    assert canopy_attraction(volume, vec3(0, 0, 2.0), base, 10.0) == 0.0
    assert canopy_attraction(volume, vec3(0, 0, 7.5), base, 10.0) == pytest.approx(0.25)
    assert canopy_attraction(volume, vec3(0, 0, 12.0), base, 10.0) == pytest.approx(0.5)


def test_canopy_surface_target_points_at_the_shell():
    center = vec3(0.0, 0.0, 5.0)
    radii = vec3(2.0, 2.0, 2.0)
    # Outside the shell the surface lies between the point and the center.
    outside = canopy_target_direction(vec3(4.0, 0.0, 5.0), center, radii, True)
    np.testing.assert_allclose(list(outside), [-1.0, 0.0, 0.0], atol=1e-9)
    # Inside the shell the surface lies outward.
    inside = canopy_target_direction(vec3(1.0, 0.0, 5.0), center, radii, True)
    np.testing.assert_allclose(list(inside), [1.0, 0.0, 0.0], atol=1e-9)
    toward_center = canopy_target_direction(vec3(1.0, 0.0, 5.0), center, radii, False)
    np.testing.assert_allclose(list(toward_center), [-1.0, 0.0, 0.0], atol=1e-9)


def test_canopy_volumes_generate():
    config = GrowthConfig(
        random_seed=6,
        canopy_volumes=(
            CanopyVolume(center_offset=vec3(0, 0, 4), radii=vec3(4, 4, 2), attraction=0.6),
            CanopyVolume(center_offset=vec3(0, 0, 6), radii=vec3(2, 2, 2), attraction=0.3, surface_target=False),
        ),
        leaf_density=2.0,
    )
    result = generate_tree(config)
    assert len(result.forest) > 1
    assert not result.bark.is_empty()


def test_ground_clamp_keeps_branches_above_base():
    config = GrowthConfig(random_seed=10, clamp_branches_above_base=True, branch_ground_clearance=0.5,
                          branch_droop=1.0, min_branch_upward=-0.5, branch_spawn_start=0.0,
                          branch_spawn_end=0.2, leaf_density=0.0)
    result = generate_tree(config)
    for branch in result.forest[1:]:
        for point in branch.points[1:]:
            assert point.position.z >= 0.5 - EPSILON


def test_progress_prints(capsys):
    generate_tree(GrowthConfig(random_seed=1, leaf_density=1.0), enable_progress_prints=True)
    output = capsys.readouterr().out
    assert "Growing branches" in output
    assert "Bark built" in output
    assert "Foliage built" in output

    generate_tree(GrowthConfig(random_seed=1, leaf_density=1.0))
    assert capsys.readouterr().out == ""


def _straight_trunk_config(**overrides):
    values = dict(random_seed=12, trunk_lean_strength=0.0, trunk_noise_strength=0.0, branch_levels=1,
                  branches_per_level=5, branch_level_density_falloff=1.0, branch_angle_min=60.0,
                  branch_angle_max=60.0, branch_upward_bias=0.0, branch_noise_strength=0.0,
                  max_generated_branches=0, leaf_density=0.0)
    values.update(overrides)
    return GrowthConfig(**values)


def _final_step_directions(forest):
    return [(branch.points[-1].position - branch.points[-2].position).normalized() for branch in forest[1:]]


def test_vertical_floor_stops_drooping_branches_from_turning_down():
    floored = generate_tree(_straight_trunk_config(branch_droop=2.0, min_branch_upward=0.3))
    # A floored target (x, y, 0.3) normalizes to at least 0.3 / sqrt(1.09).
    settled = 0.3 / math.sqrt(1.09)
    for direction in _final_step_directions(floored.forest):
        assert direction.z >= settled - 1e-6

    unfloored = generate_tree(_straight_trunk_config(branch_droop=2.0, min_branch_upward=-1.0))
    assert min(direction.z for direction in _final_step_directions(unfloored.forest)) < 0.0


def test_siblings_are_spread_by_the_golden_angle():
    result = generate_tree(_straight_trunk_config(branch_twist_jitter=0.0, branch_droop=0.0))
    children = result.forest[1:]
    assert len(children) == 5

    headings = []
    for branch in children:
        offset = branch.tip.position - branch[0].position
        headings.append(vec3(offset.x, offset.y, 0.0))

    for first, second in zip(headings, headings[1:]):
        assert math.degrees(first.angle(second)) == pytest.approx(GOLDEN_ANGLE_DEGREES, abs=1e-3)
