from treemeshgen.config import GrowthConfig, growth_config_from_dict

# Broad oak: short stout trunk, wide open crown of large soft clusters
oak_config = {
    "structure_mode": "guided_growth",
    "segment_length": 0.65,
    "base_thickness": 0.75,
    "branch_thinning_rate": 0.92,
    "child_branch_thickness": 0.7,

    "trunk_height": 7.5,
    "trunk_height_variation": 0.18,
    "trunk_lean_strength": 0.15,
    "trunk_noise_scale": 0.35,
    "trunk_noise_strength": 0.18,
    "branch_levels": 2,
    "branches_per_level": 4,
    "branch_level_density_falloff": 0.8,
    "branch_length_factor": 0.9,
    "branch_length_falloff": 0.7,
    "branch_spawn_start": 0.12,
    "branch_spawn_end": 0.85,
    "branch_distribution_power": 1.25,
    "branch_angle_min": 30.0,            # wide crotch angles for a spreading crown
    "branch_angle_max": 70.0,
    "branch_upward_bias": 0.05,
    "branch_droop": 0.25,
    "branch_noise_scale": 0.35,
    "branch_noise_strength": 0.1,
    "branch_twist_jitter": 10.0,
    "max_generated_branches": 90,
    "min_branch_upward": 0.03,

    # Lower wide lobe plus a narrower crown on top
    "canopy_volumes": [
        {"center_offset": [0.0, 0.0, 4.4], "radii": [4.8, 4.8, 2.4], "attraction": 0.5,
         "surface_target": True, "height_start": 0.2, "height_end": 0.75},
        {"center_offset": [0.0, 0.0, 6.2], "radii": [3.2, 3.2, 2.2], "attraction": 0.35,
         "surface_target": True, "height_start": 0.6, "height_end": 1.0},
    ],

    "leaf_mode": "clusters",
    "leaf_density": 9,                   # number of clusters
    "leaf_start_height": 0.22,
    "leaf_size_variation": 0.25,
    "leaf_transparency": 0.95,
    "cluster_radius": 1.7,
    "cluster_size_min": 0.85,
    "cluster_size_max": 1.5,
    "cluster_shape_x": 1.35,
    "cluster_shape_y": 0.9,
    "cluster_shape_z": 1.25,
    "cluster_noise_strength": 0.22,
    "cluster_noise_scale": 2.2,
    "enable_outer_shell": True,
    "outer_shell_thickness": 1.25,
    "outer_shell_transparency": 0.32,
    "cluster_segments": 16,
    "cluster_texture_tiling": 4.5,
    "cluster_offset": 0.2,
    "min_branch_radius_for_leaves": 0.015,
    "max_leaf_count": 11000,
    "branch_blend_distance": 0.25,
}


# Pine: tall straight trunk, narrow angles, needle planes that shrink toward the top
pine_config = {
    "structure_mode": "guided_growth",
    "segment_length": 0.9,
    "base_thickness": 0.55,
    "branch_thinning_rate": 0.94,
    "child_branch_thickness": 0.62,

    "trunk_height": 12.0,
    "trunk_height_variation": 0.12,
    "trunk_lean_strength": 0.08,
    "trunk_noise_scale": 0.25,
    "trunk_noise_strength": 0.12,
    "branch_levels": 3,
    "branches_per_level": 4,
    "branch_level_density_falloff": 0.8,
    "branch_length_factor": 0.95,
    "branch_length_falloff": 0.6,
    "branch_spawn_start": 0.15,
    "branch_spawn_end": 0.98,
    "branch_distribution_power": 1.1,
    "branch_angle_min": 10.0,
    "branch_angle_max": 35.0,
    "branch_upward_bias": 0.02,
    "branch_droop": 0.3,
    "branch_noise_scale": 0.3,
    "branch_noise_strength": 0.08,
    "branch_twist_jitter": 8.0,
    "max_generated_branches": 120,
    "min_branch_upward": 0.02,

    "canopy_volumes": [
        {"center_offset": [0.0, 0.0, 6.0], "radii": [3.6, 3.6, 3.2], "attraction": 0.3,
         "surface_target": True, "height_start": 0.2, "height_end": 0.7},
        {"center_offset": [0.0, 0.0, 10.5], "radii": [1.9, 1.9, 3.6], "attraction": 0.45,
         "surface_target": True, "height_start": 0.5, "height_end": 1.0},
    ],

    "leaf_mode": "planes",
    "leaf_width": 1.25,
    "leaf_length": 4.5,
    "leaf_density": 14,                  # expected leaves per segment
    "leaf_start_height": 0.1,
    "leaf_size_variation": 0.12,
    "double_sided_leaves": True,
    "leaf_distance_from_branch": 0.035,
    "enable_plane_leaf_size_by_height": True,
    "plane_leaf_size_bottom": 2.0,
    "plane_leaf_size_top": 0.5,
    "leaf_clumpiness": 0.7,
    "leaf_clump_spread": 0.2,
    "leaf_tip_bias": 0.8,
    "leaf_up_alignment": 0.1,
    "leaf_size_by_height": 0.55,
    "leaf_radial_jitter": 0.04,
    "min_branch_radius_for_leaves": 0.015,
    "max_leaf_count": 9500,
    "branch_blend_distance": 0.16,
}


# Birch: slim trunk, upswept branches, light clusters high in the crown
birch_config = {
    "structure_mode": "guided_growth",
    "segment_length": 0.7,
    "base_thickness": 0.4,
    "branch_thinning_rate": 0.94,
    "child_branch_thickness": 0.65,

    "trunk_height": 9.5,
    "trunk_height_variation": 0.15,
    "trunk_lean_strength": 0.2,
    "trunk_noise_scale": 0.35,
    "trunk_noise_strength": 0.18,
    "branch_levels": 2,
    "branches_per_level": 4,
    "branch_level_density_falloff": 0.8,
    "branch_length_factor": 0.65,
    "branch_length_falloff": 0.7,
    "branch_spawn_start": 0.45,
    "branch_spawn_end": 0.95,
    "branch_distribution_power": 1.35,
    "branch_angle_min": 15.0,
    "branch_angle_max": 40.0,
    "branch_upward_bias": 0.45,
    "branch_droop": 0.12,
    "branch_noise_scale": 0.3,
    "branch_noise_strength": 0.08,
    "branch_twist_jitter": 8.0,
    "max_generated_branches": 70,
    "min_branch_upward": 0.03,

    "leaf_mode": "clusters",
    "leaf_density": 8,
    "leaf_start_height": 0.55,
    "leaf_size_variation": 0.18,
    "cluster_radius": 1.5,
    "cluster_size_min": 0.85,
    "cluster_size_max": 1.2,
    "cluster_shape_x": 1.15,
    "cluster_shape_y": 0.95,
    "cluster_shape_z": 1.05,
    "cluster_noise_strength": 0.14,
    "cluster_noise_scale": 1.8,
    "cluster_segments": 16,
    "cluster_texture_tiling": 4.5,
    "cluster_offset": 0.15,
    "min_branch_radius_for_leaves": 0.015,
    "max_leaf_count": 7800,
    "branch_blend_distance": 0.22,
}


# Bush: short leaning stem, many spreading shoots, dense round clusters
bush_config = {
    "structure_mode": "guided_growth",
    "segment_length": 0.45,
    "base_thickness": 0.3,
    "branch_thinning_rate": 0.9,
    "child_branch_thickness": 0.75,

    "trunk_height": 2.5,
    "trunk_height_variation": 0.25,
    "trunk_lean_strength": 0.3,
    "trunk_noise_scale": 0.6,
    "trunk_noise_strength": 0.3,
    "branch_levels": 2,
    "branches_per_level": 5,
    "branch_level_density_falloff": 0.85,
    "branch_length_factor": 0.9,
    "branch_length_falloff": 0.8,
    "branch_spawn_start": 0.1,
    "branch_spawn_end": 0.95,
    "branch_distribution_power": 1.2,
    "branch_angle_min": 30.0,
    "branch_angle_max": 60.0,
    "branch_upward_bias": 0.2,
    "branch_droop": 0.25,
    "branch_noise_scale": 0.45,
    "branch_noise_strength": 0.12,
    "branch_twist_jitter": 12.0,
    "max_generated_branches": 90,
    "min_branch_upward": 0.02,
    "branch_ground_clearance": 0.03,

    "leaf_mode": "clusters",
    "leaf_density": 9,
    "leaf_start_height": 0.1,
    "leaf_size_variation": 0.25,
    "cluster_radius": 1.5,
    "cluster_size_min": 0.9,
    "cluster_size_max": 1.2,
    "cluster_shape_x": 1.2,
    "cluster_shape_y": 1.0,
    "cluster_shape_z": 1.2,
    "cluster_noise_strength": 0.2,
    "cluster_noise_scale": 2.0,
    "cluster_segments": 14,
    "cluster_texture_tiling": 4.5,
    "cluster_offset": 0.15,
    "min_branch_radius_for_leaves": 0.012,
    "max_leaf_count": 8000,
    "branch_blend_distance": 0.18,
}


# Grammar-built shrub with domes on its tips
lsystem_shrub_config = {
    "structure_mode": "lsystem",
    "lsystem_axiom": "FB",
    "lsystem_iterations": 4,
    "growth_probability": 40.0,
    "branch_probability": 50.0,
    "angle_x_min": 20.0,
    "angle_x_max": 40.0,
    "angle_y_min": -45.0,
    "angle_y_max": 45.0,
    "segment_length": 0.5,
    "base_thickness": 0.2,
    "branch_thinning_rate": 0.9,
    "child_branch_thickness": 0.8,
    "max_generated_branches": 80,

    "leaf_mode": "domes",
    "leaf_density": 12,
    "leaf_start_height": 0.3,
    "dome_radius": 0.6,
    "dome_offset": 0.2,
    "dome_segments": 10,
    "min_branch_radius_for_leaves": 0.01,
    "max_leaf_count": 200,
    "branch_blend_distance": 0.1,
}


PRESETS = {
    "oak": oak_config,
    "pine": pine_config,
    "birch": birch_config,
    "bush": bush_config,
    "lsystem_shrub": lsystem_shrub_config,
}

PRESET_NAMES = tuple(PRESETS)


def get_preset(name: str) -> GrowthConfig:
    key = str(name).strip().lower()
    if key not in PRESETS:
        raise ValueError(f"Unknown preset '{name}'. Expected one of: {', '.join(PRESET_NAMES)}")
    return growth_config_from_dict(PRESETS[key])
