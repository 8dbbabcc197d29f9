from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Tuple

import yaml

from treemeshgen.tools.common import vec3


class StructureMode(Enum):
    LSYSTEM = "lsystem"
    GUIDED_GROWTH = "guided_growth"


class LeafMode(Enum):
    PLANES = "planes"        # quad billboards along branch segments
    CLUSTERS = "clusters"    # noisy ellipsoids at branch tips
    DOMES = "domes"          # open-bottom half ellipsoids at branch tips


@dataclass(frozen=True)
class CanopyVolume:
    center_offset: vec3 = field(default_factory=lambda: vec3(0.0, 0.0, 5.0))
    radii: vec3 = field(default_factory=lambda: vec3(3.0, 3.0, 2.5))
    attraction: float = 0.35
    surface_target: bool = True
    height_start: float = 0.35
    height_end: float = 1.0


@dataclass(frozen=True)
class GrowthConfig:
    # Structure
    structure_mode: StructureMode = StructureMode.GUIDED_GROWTH
    random_seed: int = 0                    # 0 = keep the ambient stream state
    segment_length: float = 1.0

    # Grammar mode
    lsystem_axiom: str = "FB"
    lsystem_iterations: int = 3
    growth_probability: float = 50.0        # percent chance F -> FF
    branch_probability: float = 50.0        # percent chance of the [lFB][rrFB] rule
    angle_x_min: float = 15.0
    angle_x_max: float = 45.0
    angle_y_min: float = -30.0
    angle_y_max: float = 30.0

    # Trunk
    trunk_height: float = 6.0
    trunk_height_variation: float = 0.15
    trunk_lean_strength: float = 0.2
    trunk_noise_scale: float = 0.35
    trunk_noise_strength: float = 0.2

    # Branches
    branch_levels: int = 3
    branches_per_level: int = 3
    branch_level_density_falloff: float = 0.7
    branch_length_factor: float = 0.75
    branch_length_falloff: float = 0.7
    branch_spawn_start: float = 0.3
    branch_spawn_end: float = 0.9
    branch_distribution_power: float = 1.4
    branch_angle_min: float = 20.0
    branch_angle_max: float = 55.0
    branch_upward_bias: float = 0.2
    branch_droop: float = 0.25
    branch_noise_scale: float = 0.6
    branch_noise_strength: float = 0.2
    branch_twist_jitter: float = 12.0
    max_generated_branches: int = 120       # 0 = unlimited
    min_branch_upward: float = 0.02
    clamp_branches_above_base: bool = False
    branch_ground_clearance: float = 0.05

    # Canopy targeting (guided growth only)
    canopy_volumes: Tuple[CanopyVolume, ...] = ()

    # Thickness
    base_thickness: float = 0.5
    branch_thinning_rate: float = 0.9
    child_branch_thickness: float = 0.7

    # Bark
    radial_segments: int = 8
    bark_tiling_horizontal: float = 1.0
    bark_tiling_vertical: float = 1.0
    bark_uv_randomness: float = 0.3
    bark_uv_noise_strength: float = 0.1
    bark_uv_noise_scale: float = 1.0
    branch_blend_distance: float = 0.2

    # Leaves
    leaf_mode: LeafMode = LeafMode.CLUSTERS
    leaf_width: float = 0.25
    leaf_length: float = 0.4
    leaf_density: float = 1.2
    leaf_start_height: float = 0.5
    leaf_size_variation: float = 0.2
    double_sided_leaves: bool = False
    leaf_distance_from_branch: float = 0.1
    plane_leaf_texture_tiling: float = 1.0
    enable_plane_leaf_size_by_height: bool = False
    plane_leaf_size_bottom: float = 1.0
    plane_leaf_size_top: float = 1.0
    leaf_clumpiness: float = 0.5
    leaf_clump_spread: float = 0.25
    leaf_tip_bias: float = 0.6
    leaf_up_alignment: float = 0.7
    leaf_size_by_height: float = 0.3
    leaf_radial_jitter: float = 0.04
    leaf_transparency: float = 1.0
    leaf_uv_randomness: float = 0.2
    leaf_uv_noise_strength: float = 0.05
    leaf_uv_noise_scale: float = 2.0

    # Clusters
    cluster_radius: float = 0.8
    cluster_size_min: float = 0.8
    cluster_size_max: float = 1.2
    cluster_shape_x: float = 1.2
    cluster_shape_y: float = 0.8            # vertical stretch
    cluster_shape_z: float = 1.1
    cluster_noise_strength: float = 0.15
    cluster_noise_scale: float = 2.0
    enable_outer_shell: bool = True
    outer_shell_thickness: float = 1.2
    outer_shell_transparency: float = 0.3
    cluster_segments: int = 12
    cluster_texture_tiling: float = 1.0
    randomize_cluster_rotation: bool = True
    cluster_offset: float = 0.3

    # Domes
    dome_radius: float = 1.2
    dome_shape_x: float = 1.15
    dome_shape_y: float = 0.75              # vertical stretch
    dome_shape_z: float = 1.05
    dome_offset: float = 0.5
    dome_segments: int = 12
    dome_noise_scale: float = 2.0
    dome_noise_strength: float = 0.12
    randomize_dome_rotation: bool = True
    dome_texture_tiling: float = 1.0
    enable_dome_outer_shell: bool = False

    # Cluster / dome sizing
    proximity_size_weight: float = 0.7
    max_proximity_branch_count: int = 8
    random_size_variation: float = 0.1

    # Performance
    max_leaf_count: int = 2000              # 0 = unlimited
    optimize_leaf_distribution: bool = True
    min_branch_radius_for_leaves: float = 0.05

    def with_overrides(self, **overrides) -> "GrowthConfig":
        return replace(self, **overrides)


_VECTOR_KEYS = {"center_offset", "radii"}


def _to_vec3(key, value) -> vec3:
    if isinstance(value, vec3):
        return value
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ValueError(f"'{key}' must be a list of three numbers, got {value!r}")
    return vec3(float(value[0]), float(value[1]), float(value[2]))


def _to_enum(enum_type, key, value):
    if isinstance(value, enum_type):
        return value
    text = str(value).strip().lower()
    for member in enum_type:
        if text in (member.value, member.name.lower()):
            return member
    names = ", ".join(m.value for m in enum_type)
    raise ValueError(f"Unknown {key} '{value}'. Expected one of: {names}")


def canopy_volume_from_dict(values: dict) -> CanopyVolume:
    known = {f.name for f in fields(CanopyVolume)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown canopy volume parameters: {sorted(unknown)}")

    kwargs = {}
    for key, value in values.items():
        kwargs[key] = _to_vec3(key, value) if key in _VECTOR_KEYS else value
    return CanopyVolume(**kwargs)


def growth_config_from_dict(values: dict, base: GrowthConfig | None = None) -> GrowthConfig:
    """
    Build a GrowthConfig from plain data (YAML or preset dicts).

    Keys not given keep the value of 'base' (or the defaults). Unknown keys
    and unknown enum names raise ValueError; numeric ranges are not checked.
    """
    base = base or GrowthConfig()
    known = {f.name for f in fields(GrowthConfig)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown growth parameters: {sorted(unknown)}")

    overrides = {}
    for key, value in values.items():
        if key == "structure_mode":
            value = _to_enum(StructureMode, key, value)
        elif key == "leaf_mode":
            value = _to_enum(LeafMode, key, value)
        elif key == "canopy_volumes":
            value = tuple(
                v if isinstance(v, CanopyVolume) else canopy_volume_from_dict(v) for v in (value or ())
            )
        overrides[key] = value
    return replace(base, **overrides)


@dataclass
class RunConfiguration:
    """Everything the command line needs for one run."""
    growth: GrowthConfig
    output_directory: Path = Path("outputs")
    file_format: str = "obj"
    save_skeleton_plot: bool = False
    enable_progress_prints: bool = True


def load_configuration(config_path: Path) -> dict:
    with config_path.open("r", encoding="utf-8") as file:
        return yaml.safe_load(file) or {}


def run_configuration_from_dict(configuration: dict) -> RunConfiguration:
    from treemeshgen.presets.trees import get_preset

    preset_name = configuration.get("preset")
    base = get_preset(preset_name) if preset_name else GrowthConfig()
    growth = growth_config_from_dict(configuration.get("growth", {}) or {}, base=base)

    output_config = configuration.get("output", {}) or {}
    logging_config = configuration.get("runtime_progress_logging", {}) or {}

    return RunConfiguration(
        growth=growth,
        output_directory=Path(output_config.get("output_directory", "outputs")),
        file_format=str(output_config.get("file_format", "obj")).lower(),
        save_skeleton_plot=bool(output_config.get("save_skeleton_plot", False)),
        enable_progress_prints=bool(logging_config.get("enable_progress_prints", True)),
    )


def load_run_configuration(config_path: Path) -> RunConfiguration:
    if not config_path.exists():
        raise ValueError(f"Config file not found: {config_path}")
    return run_configuration_from_dict(load_configuration(config_path))


def load_growth_config(config_path: Path) -> GrowthConfig:
    return load_run_configuration(Path(config_path)).growth
